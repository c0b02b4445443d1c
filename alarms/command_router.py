from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional

from .errors import AlarmNotFound
from .manager import AlarmManager
from .parser import AlarmCommand, parse_command
from .recurrence import repeat_summary
from .sounds import AVAILABLE_SOUNDS, DEFAULT_SOUND
from .storage import NO_DAYS, Alarm

logger = logging.getLogger(__name__)

HELP_TEXT = """Commands:
  add HH:MM [daily | mon,wed,... | weekdays | weekends] [sound=<name>] [reason]
  edit <n> HH:MM [daily | days] [sound=<name>] [reason]
  delete <n>
  list
  snooze
  sounds
  help"""


@dataclass
class CommandResult:
    handled: bool
    response_text: Optional[str] = None
    action: Optional[str] = None


class CommandRouter:
    def __init__(self, alarm_manager: AlarmManager, default_sound: str = DEFAULT_SOUND):
        self.alarm_manager = alarm_manager
        self.default_sound = default_sound

    def handle_text(self, text: str) -> CommandResult:
        parsed = parse_command(text)
        if not parsed:
            return CommandResult(handled=False)
        logger.debug("Parsed command: %s", parsed)

        if parsed.error:
            return CommandResult(handled=True, response_text=parsed.error, action=parsed.action)

        if parsed.action == "help":
            return CommandResult(handled=True, response_text=HELP_TEXT, action="help")

        if parsed.action == "sounds":
            lines = [f"{name}{' (default)' if name == self.default_sound else ''}" for name in AVAILABLE_SOUNDS]
            return CommandResult(handled=True, response_text="Available sounds:\n" + "\n".join(lines), action="sounds")

        if parsed.action == "list":
            alarms = self.alarm_manager.list_alarms()
            if not alarms:
                resp = "No alarms scheduled."
            else:
                parts = [f"{idx}) {describe_alarm(alarm)}" for idx, alarm in enumerate(alarms, start=1)]
                resp = "Scheduled Alarms:\n" + "\n".join(parts)
            return CommandResult(handled=True, response_text=resp, action="list")

        if parsed.action == "snooze":
            request = self.alarm_manager.snooze()
            if request:
                fire_at = request.schedule[0].fire_at  # type: ignore[union-attr]
                resp = f"Snoozed until {fire_at.strftime('%H:%M')}."
            else:
                resp = "Could not snooze, see the log."
            return CommandResult(handled=True, response_text=resp, action="snooze")

        if parsed.action == "delete":
            alarm = self._alarm_at(parsed.index)
            if alarm is None:
                return CommandResult(handled=True, response_text="No such alarm.", action="delete")
            try:
                removed = self.alarm_manager.delete_alarm(alarm.id)
            except AlarmNotFound:
                return CommandResult(handled=True, response_text="No such alarm.", action="delete")
            return CommandResult(
                handled=True, response_text=f"Deleted alarm {describe_alarm(removed)}.", action="delete"
            )

        if parsed.action == "add":
            alarm = self.alarm_manager.save_alarm(
                parsed.time,
                reason=parsed.reason,
                repeat_daily=parsed.repeat_daily,
                selected_days=parsed.selected_days or NO_DAYS,
                sound_id=parsed.sound_id or self.default_sound,
            )
            return CommandResult(handled=True, response_text=f"Alarm set: {describe_alarm(alarm)}.", action="add")

        if parsed.action == "edit":
            return self._edit(parsed)

        return CommandResult(handled=True, response_text=None, action=parsed.action)

    def _edit(self, parsed: AlarmCommand) -> CommandResult:
        alarm = self._alarm_at(parsed.index)
        if alarm is None:
            return CommandResult(handled=True, response_text="No such alarm.", action="edit")
        try:
            updated = self.alarm_manager.update_alarm(
                alarm.id,
                time=parsed.time,
                reason=parsed.reason,
                repeat_daily=parsed.repeat_daily,
                selected_days=parsed.selected_days or NO_DAYS,
                sound_id=parsed.sound_id or alarm.sound_id,
            )
        except AlarmNotFound:
            return CommandResult(handled=True, response_text="No such alarm.", action="edit")
        return CommandResult(handled=True, response_text=f"Alarm updated: {describe_alarm(updated)}.", action="edit")

    def _alarm_at(self, index: Optional[int]) -> Optional[Alarm]:
        alarms: List[Alarm] = self.alarm_manager.list_alarms()
        if index is None or not 1 <= index <= len(alarms):
            return None
        return alarms[index - 1]


def describe_alarm(alarm: Alarm) -> str:
    parts = [alarm.time.strftime("%H:%M"), repeat_summary(alarm)]
    if alarm.reason:
        parts.append(f"Reason: {alarm.reason}")
    parts.append(f"Sound: {alarm.sound_id}")
    return " | ".join(parts)
