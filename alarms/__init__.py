"""Alarm recurrence and scheduling core."""

from .backend import NotificationBackend, TriggerRequest
from .command_router import CommandRouter
from .errors import AlarmNotFound, PersistenceDecodeFailure
from .manager import AlarmManager
from .parser import AlarmCommand, parse_command
from .recurrence import next_fire_instants
from .scheduler import Scheduler
from .snooze import SnoozeHandler
from .storage import Alarm
from .store import AlarmStore
