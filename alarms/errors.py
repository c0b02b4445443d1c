from __future__ import annotations


class AlarmError(Exception):
    """Base class for alarm core errors."""


class AlarmNotFound(AlarmError, KeyError):
    def __init__(self, alarm_id: str):
        super().__init__(alarm_id)
        self.alarm_id = alarm_id

    def __str__(self) -> str:
        return f"Alarm {self.alarm_id} not found"


class PersistenceDecodeFailure(AlarmError, ValueError):
    """Stored alarm blob could not be decoded."""


class BackendSubmitFailure(AlarmError):
    def __init__(self, identifier: str, reason: str):
        super().__init__(f"Failed to submit trigger {identifier}: {reason}")
        self.identifier = identifier
        self.reason = reason


class BackendCancelFailure(AlarmError):
    def __init__(self, identifier: str, reason: str):
        super().__init__(f"Failed to cancel trigger {identifier}: {reason}")
        self.identifier = identifier
        self.reason = reason
