from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Callable, Optional

from .backend import SNOOZE_ACTION, TriggerRequest
from .scheduler import Scheduler
from .sounds import DEFAULT_SOUND

logger = logging.getLogger(__name__)


class SnoozeHandler:
    def __init__(
        self,
        scheduler: Scheduler,
        clock: Callable[[], datetime],
        minutes: int = 5,
        sound_id: str = DEFAULT_SOUND,
    ):
        self.scheduler = scheduler
        self.clock = clock
        self.minutes = max(1, minutes)
        self.sound_id = sound_id

    def handle_action(self, action_id: str, request: Optional[TriggerRequest] = None) -> Optional[TriggerRequest]:
        if action_id != SNOOZE_ACTION:
            logger.debug("Ignoring notification action %s", action_id)
            return None
        logger.info("Snooze pressed on %s", request.identifier if request else "notification")
        return self.snooze()

    def snooze(self) -> Optional[TriggerRequest]:
        fire_at = self.clock() + timedelta(minutes=self.minutes)
        try:
            return self.scheduler.submit_snooze(fire_at, sound_id=self.sound_id)
        except Exception:
            logger.error("Failed to register snooze for %s", fire_at.isoformat(), exc_info=True)
            return None
