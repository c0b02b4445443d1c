from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from datetime import time
from pathlib import Path
from threading import Lock
from typing import Dict, List, Optional, Sequence, Tuple

from .errors import PersistenceDecodeFailure
from .sounds import DEFAULT_SOUND

logger = logging.getLogger(__name__)

DAYS_IN_WEEK = 7
NO_DAYS: Tuple[bool, ...] = (False,) * DAYS_IN_WEEK


@dataclass(frozen=True)
class Alarm:
    id: str
    time: time
    reason: str = ""
    repeat_daily: bool = False
    selected_days: Tuple[bool, ...] = field(default=NO_DAYS)
    sound_id: str = DEFAULT_SOUND
    fired: bool = False

    def __post_init__(self) -> None:
        days = tuple(bool(d) for d in self.selected_days)
        if len(days) != DAYS_IN_WEEK:
            raise ValueError(f"selected_days must have {DAYS_IN_WEEK} entries, got {len(days)}")
        object.__setattr__(self, "selected_days", days)
        # Only hour and minute are meaningful for scheduling.
        object.__setattr__(self, "time", time(self.time.hour, self.time.minute))
        object.__setattr__(self, "reason", self.reason or "")

    @property
    def is_one_time(self) -> bool:
        return not self.repeat_daily and not any(self.selected_days)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "time": self.time.strftime("%H:%M"),
            "reason": self.reason,
            "repeat_daily": self.repeat_daily,
            "selected_days": list(self.selected_days),
            "sound_id": self.sound_id,
            "fired": self.fired,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Alarm":
        alarm_id = data.get("id")
        time_raw = data.get("time")
        if not alarm_id or not time_raw:
            raise ValueError("Alarm payload missing id/time fields")
        hour, minute = parse_hhmm(str(time_raw))
        selected_days = data.get("selected_days")
        if selected_days is None:
            selected_days = NO_DAYS
        if not isinstance(selected_days, list):
            raise ValueError("selected_days must be a list")
        return cls(
            id=str(alarm_id),
            time=time(hour, minute),
            reason=str(data.get("reason") or ""),
            repeat_daily=bool(data.get("repeat_daily", False)),
            selected_days=tuple(selected_days),
            sound_id=str(data.get("sound_id") or DEFAULT_SOUND),
            fired=bool(data.get("fired", False)),
        )


def parse_hhmm(value: str) -> Tuple[int, int]:
    parts = value.strip().split(":")
    if len(parts) != 2:
        raise ValueError(f"time must be HH:MM, got {value!r}")
    hour, minute = int(parts[0]), int(parts[1])
    if not (0 <= hour <= 23 and 0 <= minute <= 59):
        raise ValueError(f"hour/minute out of range in {value!r}")
    return hour, minute


def serialize_alarms(alarms: Sequence[Alarm]) -> bytes:
    payload = [a.to_dict() for a in alarms]
    return json.dumps(payload, ensure_ascii=False, indent=2).encode("utf-8")


def deserialize_alarms(blob: bytes) -> List[Alarm]:
    try:
        payload = json.loads(blob.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise PersistenceDecodeFailure(f"Alarm blob is not valid JSON: {exc}") from exc
    if not isinstance(payload, list):
        raise PersistenceDecodeFailure("Alarm blob must contain a list")
    alarms: List[Alarm] = []
    for item in payload:
        if not isinstance(item, dict):
            raise PersistenceDecodeFailure(f"Alarm record must be an object, got {type(item).__name__}")
        try:
            alarms.append(Alarm.from_dict(item))
        except (TypeError, ValueError) as exc:
            raise PersistenceDecodeFailure(f"Malformed alarm record: {exc}") from exc
    return alarms


class KeyValueStore:
    """Minimal blob store: one opaque value per key."""

    def get(self, key: str) -> Optional[bytes]:
        raise NotImplementedError

    def set(self, key: str, value: bytes) -> None:
        raise NotImplementedError


class MemoryKeyValueStore(KeyValueStore):
    def __init__(self, initial: Optional[Dict[str, bytes]] = None):
        self._data: Dict[str, bytes] = dict(initial or {})
        self._lock = Lock()

    def get(self, key: str) -> Optional[bytes]:
        with self._lock:
            return self._data.get(key)

    def set(self, key: str, value: bytes) -> None:
        with self._lock:
            self._data[key] = value


class FileKeyValueStore(KeyValueStore):
    def __init__(self, directory: Path):
        self.directory = Path(directory)

    def _path(self, key: str) -> Path:
        return self.directory / f"{key}.json"

    def get(self, key: str) -> Optional[bytes]:
        path = self._path(key)
        if not path.exists():
            return None
        return path.read_bytes()

    def set(self, key: str, value: bytes) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        path = self._path(key)
        tmp_path = path.with_suffix(".tmp")
        with tmp_path.open("wb") as f:
            f.write(value)
        os.replace(tmp_path, path)


def load_alarms(kv: KeyValueStore, key: str) -> List[Alarm]:
    try:
        blob = kv.get(key)
    except OSError as exc:
        logger.error("Failed to read alarms under key %s: %s", key, exc)
        return []
    if blob is None:
        return []
    try:
        return deserialize_alarms(blob)
    except PersistenceDecodeFailure as exc:
        logger.error("Failed to decode alarms under key %s: %s", key, exc)
        return []


def save_alarms(kv: KeyValueStore, key: str, alarms: Sequence[Alarm]) -> None:
    kv.set(key, serialize_alarms(alarms))
