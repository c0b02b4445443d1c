from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import time
from typing import List, Optional, Tuple

from .sounds import AVAILABLE_SOUNDS

# Sunday-first, matching Alarm.selected_days.
DAY_NAMES = {
    "sun": 0,
    "sunday": 0,
    "mon": 1,
    "monday": 1,
    "tue": 2,
    "tues": 2,
    "tuesday": 2,
    "wed": 3,
    "wednesday": 3,
    "thu": 4,
    "thur": 4,
    "thurs": 4,
    "thursday": 4,
    "fri": 5,
    "friday": 5,
    "sat": 6,
    "saturday": 6,
}

DAY_GROUPS = {
    "weekdays": (1, 2, 3, 4, 5),
    "weekends": (0, 6),
}

ACTIONS = ("add", "edit", "delete", "list", "snooze", "sounds", "help")

_ALIASES = {
    "new": "add",
    "set": "add",
    "update": "edit",
    "change": "edit",
    "remove": "delete",
    "rm": "delete",
    "ls": "list",
    "show": "list",
}

_TIME_RE = re.compile(r"^([0-9]{1,2})(?:[:.]([0-9]{2}))?\s*(am|pm)?$")


@dataclass
class AlarmCommand:
    action: str
    time: Optional[time] = None
    reason: str = ""
    repeat_daily: bool = False
    selected_days: Optional[Tuple[bool, ...]] = None
    sound_id: Optional[str] = None
    index: Optional[int] = None
    error: Optional[str] = None
    raw_text: str = ""


def parse_command(text: str) -> Optional[AlarmCommand]:
    """Parse a console command into a structured alarm command."""

    cleaned = text.strip()
    if not cleaned:
        return None
    tokens = cleaned.split()
    verb = tokens[0].lower()
    verb = _ALIASES.get(verb, verb)
    rest = tokens[1:]

    if verb not in ACTIONS:
        return AlarmCommand(action="unknown", error=f"Unknown command '{tokens[0]}'. Type 'help'.", raw_text=cleaned)

    if verb in ("list", "snooze", "sounds", "help"):
        return AlarmCommand(action=verb, raw_text=cleaned)

    index = None
    if verb in ("edit", "delete"):
        if not rest or not re.fullmatch(r"[0-9]+", rest[0]) or int(rest[0]) < 1:
            return AlarmCommand(action=verb, error="Which alarm? Give its number from 'list'.", raw_text=cleaned)
        index = int(rest[0])
        rest = rest[1:]
        if verb == "delete":
            return AlarmCommand(action="delete", index=index, raw_text=cleaned)

    command = AlarmCommand(action=verb, index=index, raw_text=cleaned)
    if not rest:
        command.error = "Missing time, e.g. 07:30."
        return command

    rest = _join_meridiem(rest)
    at = parse_time(rest[0])
    if at is None:
        command.error = f"Could not understand time '{rest[0]}'."
        return command
    command.time = at
    rest = rest[1:]

    if rest and rest[0].lower() == "daily":
        command.repeat_daily = True
        rest = rest[1:]
    elif rest:
        days = parse_days(rest[0])
        if days is not None:
            command.selected_days = days
            rest = rest[1:]

    if rest and rest[0].lower().startswith("sound="):
        sound_id = rest[0].split("=", 1)[1]
        if sound_id not in AVAILABLE_SOUNDS:
            command.error = f"Unknown sound '{sound_id}'. Type 'sounds' to list them."
            return command
        command.sound_id = sound_id
        rest = rest[1:]

    command.reason = " ".join(rest)
    return command


def parse_time(value: str) -> Optional[time]:
    match = _TIME_RE.match(value.strip().lower())
    if not match:
        return None
    hour = int(match.group(1))
    minute = int(match.group(2)) if match.group(2) else 0
    meridiem = match.group(3)
    if meridiem:
        if not 1 <= hour <= 12:
            return None
        hour = hour % 12 + (12 if meridiem == "pm" else 0)
    elif match.group(2) is None:
        # A bare number is only a time with am/pm.
        return None
    if not (0 <= hour <= 23 and 0 <= minute <= 59):
        return None
    return time(hour, minute)


def parse_days(value: str) -> Optional[Tuple[bool, ...]]:
    lowered = value.lower()
    if lowered in DAY_GROUPS:
        picked = DAY_GROUPS[lowered]
    else:
        picked_list: List[int] = []
        for part in lowered.split(","):
            part = part.strip()
            if not part:
                continue
            if part not in DAY_NAMES:
                return None
            picked_list.append(DAY_NAMES[part])
        if not picked_list:
            return None
        picked = tuple(picked_list)
    return tuple(day in picked for day in range(7))


def _join_meridiem(tokens: List[str]) -> List[str]:
    # "7:30 pm" -> "7:30pm"
    if len(tokens) >= 2 and tokens[1].lower() in ("am", "pm"):
        return [tokens[0] + tokens[1]] + tokens[2:]
    return tokens
