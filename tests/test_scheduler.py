import dataclasses
from datetime import time

from alarms.backend import ALARM_CATEGORY, TriggerRequest, alarm_id_from_identifier
from alarms.recurrence import DailyTrigger, OneShotTrigger, WeeklyTrigger
from alarms.scheduler import DEFAULT_BODY, SNOOZE_BODY, Scheduler
from alarms.storage import Alarm

MON_FRI = (False, True, False, False, False, True, False)


def _alarm(alarm_id: str = "a1", **kwargs) -> Alarm:
    kwargs.setdefault("time", time(8, 0))
    return Alarm(id=alarm_id, **kwargs)


def test_schedule_one_time_alarm(backend, clock):
    scheduler = Scheduler(backend, clock)
    request = scheduler.schedule(_alarm())
    assert backend.submitted() == [request.identifier]
    assert alarm_id_from_identifier(request.identifier) == "a1"
    assert scheduler.handle_for("a1") == request.identifier
    assert request.schedule == (OneShotTrigger(clock().replace(hour=8)),)
    assert request.title == "Alarm"
    assert request.body == DEFAULT_BODY
    assert request.category_id == ALARM_CATEGORY


def test_schedule_uses_reason_and_sound(backend, clock):
    request = Scheduler(backend, clock).schedule(_alarm(reason="Take pills", sound_id="morning_tone.wav"))
    assert request.body == "Take pills"
    assert request.sound_id == "morning_tone.wav"


def test_schedule_identifiers_are_fresh(backend, clock):
    scheduler = Scheduler(backend, clock)
    first = scheduler.schedule(_alarm(repeat_daily=True))
    second = scheduler.schedule(_alarm(repeat_daily=True))
    assert first.identifier != second.identifier
    # the first trigger is cancelled before the second is submitted
    assert backend.calls == [
        ("submit", first.identifier),
        ("cancel", first.identifier),
        ("submit", second.identifier),
    ]
    assert len(backend.requests_for("a1")) == 1


def test_schedule_weekly_and_legacy(backend, clock):
    weekly = Scheduler(backend, clock).schedule(_alarm("w", selected_days=MON_FRI))
    assert weekly.schedule == (WeeklyTrigger(1, 8, 0), WeeklyTrigger(5, 8, 0))

    legacy = Scheduler(backend, clock, weekly_recurrence=False).schedule(_alarm("l", selected_days=MON_FRI))
    assert len(legacy.schedule) == 1
    assert isinstance(legacy.schedule[0], OneShotTrigger)


def test_reschedule_cancels_before_submit(backend, clock):
    scheduler = Scheduler(backend, clock)
    old = _alarm(repeat_daily=True)
    first = scheduler.schedule(old)
    new = dataclasses.replace(old, time=time(9, 30))
    second = scheduler.reschedule(old, new)
    assert backend.calls[-2:] == [("cancel", first.identifier), ("submit", second.identifier)]
    assert backend.requests_for("a1") == [second]
    assert second.schedule == (DailyTrigger(9, 30),)


def test_reschedule_without_trigger_behaves_like_schedule(backend, clock):
    scheduler = Scheduler(backend, clock)
    alarm = _alarm(repeat_daily=True)
    request = scheduler.reschedule(alarm, alarm)
    assert backend.cancelled() == []
    assert backend.submitted() == [request.identifier]
    assert backend.errors == []


def test_cancel_unknown_alarm_is_noop(backend, clock):
    Scheduler(backend, clock).cancel("missing")
    assert backend.calls == []


def test_cancel_removes_handle(backend, clock):
    scheduler = Scheduler(backend, clock)
    request = scheduler.schedule(_alarm())
    scheduler.cancel("a1")
    assert backend.cancelled() == [request.identifier]
    assert scheduler.handle_for("a1") is None
    assert backend.pending == {}


def test_submit_failure_is_logged_not_raised(backend, clock, caplog):
    backend.fail_submit = True
    scheduler = Scheduler(backend, clock)
    request = scheduler.schedule(_alarm())
    assert backend.pending == {}
    assert "Error scheduling trigger %s" % request.identifier in caplog.text


def test_cancel_failure_is_logged_not_raised(backend, clock, caplog):
    scheduler = Scheduler(backend, clock)
    request = scheduler.schedule(_alarm())
    backend.fail_cancel = True
    scheduler.cancel("a1")
    assert "Error cancelling trigger %s" % request.identifier in caplog.text


def test_submit_snooze(backend, clock):
    fire_at = clock().replace(minute=5)
    request = Scheduler(backend, clock).submit_snooze(fire_at)
    assert request.identifier.startswith("snooze-")
    assert alarm_id_from_identifier(request.identifier) is None
    assert request.body == SNOOZE_BODY
    assert request.schedule == (OneShotTrigger(fire_at),)


def test_forget_only_drops_matching_handle(backend, clock):
    scheduler = Scheduler(backend, clock)
    request = scheduler.schedule(_alarm())
    scheduler.forget("alarm-a1-stale")
    assert scheduler.handle_for("a1") == request.identifier
    scheduler.forget(request.identifier)
    assert scheduler.handle_for("a1") is None


def test_reconcile_cancels_orphans_and_duplicates(backend, clock):
    daily = _alarm("d", repeat_daily=True)
    for identifier in ("alarm-d-1", "alarm-d-2", "alarm-gone-1", "snooze-1"):
        backend.pending[identifier] = TriggerRequest(identifier, (DailyTrigger(8, 0),), "Alarm", "x", "s")

    scheduler = Scheduler(backend, clock)
    scheduler.reconcile([daily])

    assert sorted(backend.cancelled()) == ["alarm-d-2", "alarm-gone-1"]
    assert scheduler.handle_for("d") == "alarm-d-1"
    assert "snooze-1" in backend.pending
    assert backend.submitted() == []


def test_reconcile_schedules_missing_unless_fired(backend, clock):
    daily = _alarm("d", repeat_daily=True, fired=True)
    weekly = _alarm("w", selected_days=MON_FRI)
    once = _alarm("o")
    done = _alarm("f", fired=True)
    scheduler = Scheduler(backend, clock)
    scheduler.reconcile([daily, weekly, once, done])
    assert scheduler.handle_for("d") is not None
    assert scheduler.handle_for("w") is not None
    assert scheduler.handle_for("o") is not None
    assert scheduler.handle_for("f") is None
    assert len(backend.submitted()) == 3


def test_reconcile_legacy_multi_day_fired_is_not_rearmed(backend, clock):
    fired = _alarm("l", selected_days=MON_FRI, fired=True)
    Scheduler(backend, clock, weekly_recurrence=False).reconcile([fired])
    assert backend.submitted() == []

    # the same record is weekly again once weekly recurrence is on
    scheduler = Scheduler(backend, clock)
    scheduler.reconcile([fired])
    assert scheduler.handle_for("l") is not None
