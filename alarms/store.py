from __future__ import annotations

import dataclasses
import logging
from threading import RLock
from typing import Callable, List, Tuple

from .errors import AlarmNotFound
from .storage import Alarm, KeyValueStore, load_alarms, save_alarms

logger = logging.getLogger(__name__)

StoreListener = Callable[[List[Alarm]], None]


class AlarmStore:
    """Ordered, persisted collection of alarms keyed by id."""

    def __init__(self, kv: KeyValueStore, key: str = "alarms"):
        self.kv = kv
        self.key = key
        self._alarms: List[Alarm] = []
        self._lock = RLock()
        self._listeners: List[StoreListener] = []

    def load(self) -> None:
        alarms = load_alarms(self.kv, self.key)
        with self._lock:
            self._alarms = alarms
        logger.info("Loaded %s alarms from key %s", len(alarms), self.key)
        self._notify()

    def subscribe(self, listener: StoreListener) -> Callable[[], None]:
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def add(self, alarm: Alarm) -> Alarm:
        with self._lock:
            if any(a.id == alarm.id for a in self._alarms):
                raise ValueError(f"Alarm id {alarm.id} already exists")
            self._commit(self._alarms + [alarm])
        logger.info("Added alarm %s at %s", alarm.id, alarm.time.strftime("%H:%M"))
        self._notify()
        return alarm

    def update(self, alarm_id: str, **fields) -> Tuple[Alarm, Alarm]:
        fields.pop("id", None)
        with self._lock:
            index = self._index_of(alarm_id)
            old = self._alarms[index]
            new = dataclasses.replace(old, **fields)
            updated = list(self._alarms)
            updated[index] = new
            self._commit(updated)
        logger.info("Updated alarm %s", alarm_id)
        self._notify()
        return old, new

    def remove(self, alarm_id: str) -> Alarm:
        with self._lock:
            index = self._index_of(alarm_id)
            removed = self._alarms[index]
            self._commit(self._alarms[:index] + self._alarms[index + 1 :])
        logger.info("Removed alarm %s", alarm_id)
        self._notify()
        return removed

    def get(self, alarm_id: str) -> Alarm:
        with self._lock:
            return self._alarms[self._index_of(alarm_id)]

    def list(self) -> List[Alarm]:
        with self._lock:
            return list(self._alarms)

    def __len__(self) -> int:
        with self._lock:
            return len(self._alarms)

    def _index_of(self, alarm_id: str) -> int:
        for index, alarm in enumerate(self._alarms):
            if alarm.id == alarm_id:
                return index
        raise AlarmNotFound(alarm_id)

    def _commit(self, alarms: List[Alarm]) -> None:
        # Saved first; memory only changes once the write succeeded.
        save_alarms(self.kv, self.key, alarms)
        self._alarms = alarms

    def _notify(self) -> None:
        snapshot = self.list()
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(snapshot)
            except Exception:  # pragma: no cover - listener safety
                logger.error("Alarm store listener failed", exc_info=True)
