from __future__ import annotations

import logging
import uuid
from datetime import datetime
from threading import Lock
from typing import Callable, Dict, Iterable, Optional

from .backend import (
    ALARM_CATEGORY,
    ALARM_ID_PREFIX,
    SNOOZE_ID_PREFIX,
    NotificationBackend,
    TriggerRequest,
    alarm_id_from_identifier,
)
from .recurrence import OneShotTrigger, is_recurring, next_fire_instants
from .sounds import DEFAULT_SOUND
from .storage import Alarm

logger = logging.getLogger(__name__)

ALARM_TITLE = "Alarm"
DEFAULT_BODY = "Time to wake up!"
SNOOZE_BODY = "Snoozed Alarm!"


def _nonce() -> str:
    return uuid.uuid4().hex[:12]


class Scheduler:
    """Keeps one outstanding backend trigger per alarm id."""

    def __init__(
        self,
        backend: NotificationBackend,
        clock: Callable[[], datetime],
        weekly_recurrence: bool = True,
        category_id: str = ALARM_CATEGORY,
    ):
        self.backend = backend
        self.clock = clock
        self.weekly_recurrence = weekly_recurrence
        self.category_id = category_id
        self._handles: Dict[str, str] = {}
        self._lock = Lock()

    def handle_for(self, alarm_id: str) -> Optional[str]:
        with self._lock:
            return self._handles.get(alarm_id)

    def schedule(self, alarm: Alarm) -> TriggerRequest:
        request = self._build_request(alarm)
        with self._lock:
            previous = self._handles.get(alarm.id)
            self._handles[alarm.id] = request.identifier
        if previous:
            # Never leave two live triggers for one alarm.
            self._cancel_identifier(previous)
        logger.info("Scheduling alarm %s as %s (%s)", alarm.id, request.identifier, request.schedule)
        self.backend.submit_trigger(request, self._submit_logger(request))
        return request

    def reschedule(self, old_alarm: Alarm, new_alarm: Alarm) -> TriggerRequest:
        self.cancel(old_alarm.id)
        return self.schedule(new_alarm)

    def cancel(self, alarm_id: str) -> None:
        with self._lock:
            identifier = self._handles.pop(alarm_id, None)
        if identifier is None:
            logger.debug("No trigger to cancel for alarm %s", alarm_id)
            return
        self._cancel_identifier(identifier)

    def forget(self, identifier: str) -> None:
        alarm_id = alarm_id_from_identifier(identifier)
        if alarm_id is None:
            return
        with self._lock:
            if self._handles.get(alarm_id) == identifier:
                del self._handles[alarm_id]

    def submit_snooze(self, fire_at: datetime, sound_id: str = DEFAULT_SOUND) -> TriggerRequest:
        request = TriggerRequest(
            identifier=f"{SNOOZE_ID_PREFIX}{_nonce()}",
            schedule=(OneShotTrigger(fire_at),),
            title=ALARM_TITLE,
            body=SNOOZE_BODY,
            sound_id=sound_id,
            category_id=self.category_id,
        )
        logger.info("Scheduling snooze %s for %s", request.identifier, fire_at.isoformat())
        self.backend.submit_trigger(request, self._submit_logger(request))
        return request

    def reconcile(self, alarms: Iterable[Alarm]) -> None:
        """Align backend triggers with the stored alarms after a restart.

        Pending triggers of unknown alarms and duplicates are cancelled.
        Alarms without a pending trigger are scheduled again, except a
        non-recurring alarm whose trigger was already delivered.
        """
        alarms = list(alarms)
        known = {a.id: a for a in alarms}
        adopted: Dict[str, str] = {}
        for request in self.backend.pending_requests():
            alarm_id = alarm_id_from_identifier(request.identifier)
            if alarm_id is None:
                continue
            if alarm_id not in known or alarm_id in adopted:
                logger.info("Cancelling stale trigger %s", request.identifier)
                self._cancel_identifier(request.identifier)
                continue
            adopted[alarm_id] = request.identifier
        with self._lock:
            self._handles = dict(adopted)
        for alarm in alarms:
            if alarm.id in adopted:
                continue
            if alarm.fired and not is_recurring(next_fire_instants(alarm, self.clock(), weekly=self.weekly_recurrence)):
                logger.info("Alarm %s already fired, leaving it unscheduled", alarm.id)
                continue
            self.schedule(alarm)

    def _build_request(self, alarm: Alarm) -> TriggerRequest:
        schedule = next_fire_instants(alarm, self.clock(), weekly=self.weekly_recurrence)
        return TriggerRequest(
            identifier=f"{ALARM_ID_PREFIX}{alarm.id}-{_nonce()}",
            schedule=schedule,
            title=ALARM_TITLE,
            body=alarm.reason or DEFAULT_BODY,
            sound_id=alarm.sound_id,
            category_id=self.category_id,
        )

    def _cancel_identifier(self, identifier: str) -> None:
        def completion(error: Optional[Exception]) -> None:
            if error:
                logger.error("Error cancelling trigger %s: %s", identifier, error)
            else:
                logger.debug("Trigger %s cancelled", identifier)

        self.backend.cancel_trigger(identifier, completion)

    @staticmethod
    def _submit_logger(request: TriggerRequest):
        def completion(error: Optional[Exception]) -> None:
            if error:
                logger.error("Error scheduling trigger %s: %s", request.identifier, error)
            else:
                logger.info("Trigger %s successfully set", request.identifier)

        return completion
