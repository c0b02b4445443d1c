from __future__ import annotations

import logging
import uuid
from datetime import time
from threading import RLock
from typing import Callable, List, Optional, Sequence

from .backend import SNOOZE_ID_PREFIX, NotificationBackend, TriggerRequest, alarm_id_from_identifier
from .errors import AlarmNotFound
from .recurrence import is_recurring
from .scheduler import Scheduler
from .snooze import SnoozeHandler
from .sounds import DEFAULT_SOUND, AlarmSoundPlayer, is_available_sound
from .storage import NO_DAYS, Alarm
from .store import AlarmStore, StoreListener

logger = logging.getLogger(__name__)


class AlarmManager:
    """Entry point for a UI layer: alarm CRUD kept in step with the backend.

    Every mutation runs under one lock, so a store change and the matching
    cancel/submit calls are never interleaved with another mutation.
    """

    def __init__(
        self,
        store: AlarmStore,
        scheduler: Scheduler,
        snooze_handler: SnoozeHandler,
        backend: NotificationBackend,
        sound_player: Optional[AlarmSoundPlayer] = None,
        on_alarm_triggered: Optional[Callable[[TriggerRequest], None]] = None,
    ):
        self.store = store
        self.scheduler = scheduler
        self.snooze_handler = snooze_handler
        self.backend = backend
        self.sound_player = sound_player
        self.on_alarm_triggered = on_alarm_triggered
        self._lock = RLock()

    def start(self) -> None:
        with self._lock:
            self.store.load()
            self.scheduler.reconcile(self.store.list())
        self.backend.set_action_handler(self.snooze_handler.handle_action)
        self.backend.set_foreground_handler(self._on_foreground_deliver)
        self.backend.start()
        logger.info("Alarm manager started with %s alarms", len(self.store))

    def shutdown(self) -> None:
        self.backend.shutdown()
        self.backend.set_action_handler(None)
        self.backend.set_foreground_handler(None)
        if self.sound_player:
            self.sound_player.stop()

    def subscribe(self, listener: StoreListener) -> Callable[[], None]:
        return self.store.subscribe(listener)

    def save_alarm(
        self,
        at: time,
        reason: str = "",
        repeat_daily: bool = False,
        selected_days: Sequence[bool] = NO_DAYS,
        sound_id: str = DEFAULT_SOUND,
    ) -> Alarm:
        _check_sound(sound_id)
        alarm = Alarm(
            id=uuid.uuid4().hex,
            time=at,
            reason=reason,
            repeat_daily=repeat_daily,
            selected_days=tuple(selected_days),
            sound_id=sound_id,
        )
        with self._lock:
            self.store.add(alarm)
            self.scheduler.schedule(alarm)
        return alarm

    def update_alarm(self, alarm_id: str, **fields) -> Alarm:
        if "sound_id" in fields:
            _check_sound(fields["sound_id"])
        if "selected_days" in fields:
            fields["selected_days"] = tuple(fields["selected_days"])
        if "at" in fields:
            fields["time"] = fields.pop("at")
        # An edited alarm is armed again.
        fields.setdefault("fired", False)
        with self._lock:
            old, new = self.store.update(alarm_id, **fields)
            self.scheduler.reschedule(old, new)
        return new

    def delete_alarm(self, alarm_id: str) -> Alarm:
        with self._lock:
            removed = self.store.remove(alarm_id)
            self.scheduler.cancel(removed.id)
        return removed

    def get_alarm(self, alarm_id: str) -> Alarm:
        return self.store.get(alarm_id)

    def list_alarms(self) -> List[Alarm]:
        return self.store.list()

    def snooze(self) -> Optional[TriggerRequest]:
        return self.snooze_handler.snooze()

    def _on_foreground_deliver(self, request: TriggerRequest) -> None:
        # Banner and sound are shown even while the app is active.
        logger.info("ALARM: %s - %s", request.title, request.body)
        if not request.identifier.startswith(SNOOZE_ID_PREFIX) and not is_recurring(request.schedule):
            self._mark_fired(request.identifier)
        if self.sound_player:
            self.sound_player.play(request.sound_id)
        if self.on_alarm_triggered:
            try:
                self.on_alarm_triggered(request)
            except Exception:  # pragma: no cover - callback safety
                logger.error("on_alarm_triggered callback failed", exc_info=True)

    def _mark_fired(self, identifier: str) -> None:
        alarm_id = alarm_id_from_identifier(identifier)
        with self._lock:
            if alarm_id is None or self.scheduler.handle_for(alarm_id) != identifier:
                return
            self.scheduler.forget(identifier)
            try:
                self.store.update(alarm_id, fired=True)
            except AlarmNotFound:
                logger.debug("Fired alarm %s no longer stored", alarm_id)
            except OSError as exc:
                logger.error("Failed to persist fired alarm %s: %s", alarm_id, exc)


def _check_sound(sound_id: str) -> None:
    if not is_available_sound(sound_id):
        raise ValueError(f"Unknown sound {sound_id!r}")

