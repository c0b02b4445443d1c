from __future__ import annotations

import abc
from dataclasses import dataclass
from typing import Callable, List, Optional

from .recurrence import Schedule

ALARM_CATEGORY = "ALARM_CATEGORY"
SNOOZE_ACTION = "SNOOZE_ACTION"

ALARM_ID_PREFIX = "alarm-"
SNOOZE_ID_PREFIX = "snooze-"


@dataclass(frozen=True)
class TriggerRequest:
    identifier: str
    schedule: Schedule
    title: str
    body: str
    sound_id: str
    category_id: str = ALARM_CATEGORY


Completion = Callable[[Optional[Exception]], None]
ActionHandler = Callable[[str, TriggerRequest], None]
ForegroundHandler = Callable[[TriggerRequest], None]


def alarm_id_from_identifier(identifier: str) -> Optional[str]:
    """Recover the alarm id from an ``alarm-<id>-<nonce>`` trigger identifier."""
    if not identifier.startswith(ALARM_ID_PREFIX):
        return None
    alarm_id, sep, _nonce = identifier[len(ALARM_ID_PREFIX):].rpartition("-")
    return alarm_id if sep and alarm_id else None


class NotificationBackend(abc.ABC):
    """Capability interface over a local notification service.

    Submission and cancellation are fire-and-forget: the outcome is reported
    through ``completion`` with ``None`` on success or the failure.
    """

    @abc.abstractmethod
    def submit_trigger(self, request: TriggerRequest, completion: Completion) -> None:
        ...

    @abc.abstractmethod
    def cancel_trigger(self, identifier: str, completion: Optional[Completion] = None) -> None:
        ...

    @abc.abstractmethod
    def pending_requests(self) -> List[TriggerRequest]:
        ...

    @abc.abstractmethod
    def set_action_handler(self, handler: Optional[ActionHandler]) -> None:
        ...

    @abc.abstractmethod
    def set_foreground_handler(self, handler: Optional[ForegroundHandler]) -> None:
        ...

    def start(self) -> None:
        pass

    def shutdown(self) -> None:
        pass
