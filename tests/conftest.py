from datetime import datetime, timedelta, timezone
from typing import Dict, List, Tuple

import pytest

from alarms.backend import NotificationBackend, TriggerRequest
from alarms.errors import BackendCancelFailure, BackendSubmitFailure


class FakeClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


class RecordingBackend(NotificationBackend):
    """Keeps pending requests in a dict and records every call in order."""

    def __init__(self):
        self.calls: List[Tuple[str, str]] = []
        self.pending: Dict[str, TriggerRequest] = {}
        self.errors: List[Exception] = []
        self.fail_submit = False
        self.fail_cancel = False
        self.action_handler = None
        self.foreground_handler = None

    def submit_trigger(self, request, completion):
        self.calls.append(("submit", request.identifier))
        if self.fail_submit:
            error = BackendSubmitFailure(request.identifier, "denied")
            self.errors.append(error)
            completion(error)
            return
        self.pending[request.identifier] = request
        completion(None)

    def cancel_trigger(self, identifier, completion=None):
        self.calls.append(("cancel", identifier))
        if self.fail_cancel:
            error = BackendCancelFailure(identifier, "denied")
            self.errors.append(error)
            if completion:
                completion(error)
            return
        self.pending.pop(identifier, None)
        if completion:
            completion(None)

    def pending_requests(self):
        return list(self.pending.values())

    def set_action_handler(self, handler):
        self.action_handler = handler

    def set_foreground_handler(self, handler):
        self.foreground_handler = handler

    def submitted(self) -> List[str]:
        return [identifier for kind, identifier in self.calls if kind == "submit"]

    def cancelled(self) -> List[str]:
        return [identifier for kind, identifier in self.calls if kind == "cancel"]

    def requests_for(self, alarm_id: str) -> List[TriggerRequest]:
        return [r for r in self.pending.values() if r.identifier.startswith(f"alarm-{alarm_id}-")]


@pytest.fixture
def clock() -> FakeClock:
    # Wednesday
    return FakeClock(datetime(2025, 1, 1, 6, 0, tzinfo=timezone.utc))


@pytest.fixture
def backend() -> RecordingBackend:
    return RecordingBackend()
