import json
from datetime import time

import pytest

from alarms.errors import PersistenceDecodeFailure
from alarms.sounds import DEFAULT_SOUND
from alarms.storage import (
    Alarm,
    FileKeyValueStore,
    MemoryKeyValueStore,
    deserialize_alarms,
    load_alarms,
    save_alarms,
    serialize_alarms,
)


def _alarms():
    return [
        Alarm(id="a1", time=time(7, 30), reason="Gym", selected_days=(False, True, False, True, False, False, False)),
        Alarm(id="a2", time=time(6, 0), repeat_daily=True, sound_id="beep_alert.mp3"),
        Alarm(id="a3", time=time(23, 59)),
    ]


def test_serialize_round_trip_keeps_order():
    alarms = _alarms()
    assert deserialize_alarms(serialize_alarms(alarms)) == alarms


def test_serialize_empty_list():
    assert deserialize_alarms(serialize_alarms([])) == []


def test_serialized_format():
    payload = json.loads(serialize_alarms(_alarms()[:1]).decode("utf-8"))
    assert payload == [
        {
            "id": "a1",
            "time": "07:30",
            "reason": "Gym",
            "repeat_daily": False,
            "selected_days": [False, True, False, True, False, False, False],
            "sound_id": DEFAULT_SOUND,
            "fired": False,
        }
    ]


def test_missing_sound_defaults():
    blob = json.dumps([{"id": "x", "time": "08:00"}]).encode("utf-8")
    [alarm] = deserialize_alarms(blob)
    assert alarm.sound_id == DEFAULT_SOUND
    assert alarm.selected_days == (False,) * 7
    assert alarm.is_one_time


@pytest.mark.parametrize(
    "blob",
    [
        b"not json",
        b"\xff\xfe",
        b'{"id": "a1"}',
        b'[{"id": "a1"}]',
        b'[{"id": "a1", "time": "25:00"}]',
        b'[{"id": "a1", "time": "08:00", "selected_days": [true]}]',
        b"[1]",
    ],
)
def test_malformed_blob_raises(blob):
    with pytest.raises(PersistenceDecodeFailure):
        deserialize_alarms(blob)


def test_alarm_requires_seven_days():
    with pytest.raises(ValueError):
        Alarm(id="a", time=time(8, 0), selected_days=(True, False))


def test_load_missing_key_is_empty():
    assert load_alarms(MemoryKeyValueStore(), "alarms") == []


def test_load_corrupted_blob_is_empty():
    kv = MemoryKeyValueStore({"alarms": b"{broken"})
    assert load_alarms(kv, "alarms") == []


def test_file_store_round_trip(tmp_path):
    kv = FileKeyValueStore(tmp_path / "data")
    assert kv.get("alarms") is None
    save_alarms(kv, "alarms", _alarms())
    assert (tmp_path / "data" / "alarms.json").exists()
    assert load_alarms(FileKeyValueStore(tmp_path / "data"), "alarms") == _alarms()
