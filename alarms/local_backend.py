from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass
from datetime import datetime
from threading import Event, Lock, Thread
from typing import Callable, Deque, Dict, List, Optional, Tuple

from .backend import (
    ActionHandler,
    Completion,
    ForegroundHandler,
    NotificationBackend,
    TriggerRequest,
)
from .errors import BackendSubmitFailure
from .recurrence import next_fire_time

logger = logging.getLogger(__name__)


@dataclass
class _Pending:
    request: TriggerRequest
    next_fire: datetime


class LocalNotificationBackend(NotificationBackend):
    """In-process notification service driven by a polling thread."""

    def __init__(self, clock: Callable[[], datetime], check_interval: float = 0.5):
        self.clock = clock
        self.check_interval = max(0.05, check_interval)
        self._pending: Dict[str, _Pending] = {}
        self._lock = Lock()
        self._stop_event = Event()
        self._thread: Optional[Thread] = None
        self._action_handler: Optional[ActionHandler] = None
        self._foreground_handler: Optional[ForegroundHandler] = None
        self.delivered: Deque[TriggerRequest] = deque(maxlen=100)

    def submit_trigger(self, request: TriggerRequest, completion: Completion) -> None:
        error: Optional[Exception] = None
        if not request.schedule:
            error = BackendSubmitFailure(request.identifier, "empty schedule")
        else:
            next_fire = next_fire_time(request.schedule, self.clock())
            if next_fire is None:
                error = BackendSubmitFailure(request.identifier, "trigger date is in the past")
            else:
                with self._lock:
                    self._pending[request.identifier] = _Pending(request, next_fire)
                logger.debug("Trigger %s pending until %s", request.identifier, next_fire.isoformat())
        _complete(completion, error)

    def cancel_trigger(self, identifier: str, completion: Optional[Completion] = None) -> None:
        with self._lock:
            removed = self._pending.pop(identifier, None)
        if removed is None:
            logger.debug("Cancel of unknown trigger %s ignored", identifier)
        if completion:
            _complete(completion, None)

    def pending_requests(self) -> List[TriggerRequest]:
        with self._lock:
            entries = sorted(self._pending.values(), key=lambda p: p.next_fire)
            return [p.request for p in entries]

    def next_fire_for(self, identifier: str) -> Optional[datetime]:
        with self._lock:
            pending = self._pending.get(identifier)
            return pending.next_fire if pending else None

    def set_action_handler(self, handler: Optional[ActionHandler]) -> None:
        self._action_handler = handler

    def set_foreground_handler(self, handler: Optional[ForegroundHandler]) -> None:
        self._foreground_handler = handler

    def perform_action(self, identifier: str, action_id: str) -> None:
        """Deliver a user action on a notification, e.g. the snooze button."""
        request = self._find_delivered(identifier)
        if request is None:
            raise ValueError(f"No delivered notification {identifier}")
        handler = self._action_handler
        if handler:
            handler(action_id, request)

    def start(self) -> None:
        self._stop_event.clear()
        self._thread = Thread(target=self._loop, name="notification-backend", daemon=True)
        self._thread.start()

    def shutdown(self) -> None:
        self._stop_event.set()
        if self._thread:
            self._thread.join(timeout=2)
        self._thread = None

    def tick(self, now: Optional[datetime] = None) -> List[TriggerRequest]:
        now = now or self.clock()
        due: List[Tuple[datetime, TriggerRequest]] = []
        with self._lock:
            for identifier, pending in list(self._pending.items()):
                if pending.next_fire > now:
                    continue
                due.append((pending.next_fire, pending.request))
                following = next_fire_time(pending.request.schedule, now)
                if following is None:
                    del self._pending[identifier]
                else:
                    pending.next_fire = following
        fired = [request for _, request in sorted(due, key=lambda item: item[0])]
        for request in fired:
            self._deliver(request)
        return fired

    def _loop(self) -> None:
        while not self._stop_event.is_set():
            try:
                self.tick()
            except Exception:  # pragma: no cover - keep the poller alive
                logger.error("Notification backend tick failed", exc_info=True)
            self._stop_event.wait(self.check_interval)

    def _deliver(self, request: TriggerRequest) -> None:
        logger.info("Delivering %s: %s - %s", request.identifier, request.title, request.body)
        with self._lock:
            self.delivered.append(request)
        handler = self._foreground_handler
        if handler:
            try:
                handler(request)
            except Exception:  # pragma: no cover - callback safety
                logger.error("Foreground handler failed for %s", request.identifier, exc_info=True)

    def _find_delivered(self, identifier: str) -> Optional[TriggerRequest]:
        with self._lock:
            for request in reversed(self.delivered):
                if request.identifier == identifier:
                    return request
        return None


def _complete(completion: Completion, error: Optional[Exception]) -> None:
    try:
        completion(error)
    except Exception:  # pragma: no cover - callback safety
        logger.error("Trigger completion callback failed", exc_info=True)
