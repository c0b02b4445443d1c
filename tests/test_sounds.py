import wave

from alarms.sounds import AVAILABLE_SOUNDS, DEFAULT_SOUND, AlarmSoundPlayer, ensure_alarm_sound


def test_catalog():
    assert AVAILABLE_SOUNDS == ("minions_wake_up.wav", "morning_tone.wav", "beep_alert.mp3")
    assert DEFAULT_SOUND == "minions_wake_up.wav"


def test_ensure_alarm_sound_writes_wav(tmp_path):
    path = tmp_path / "tone.wav"
    ensure_alarm_sound(path, duration_seconds=0.1)
    with wave.open(str(path), "r") as wav:
        assert wav.getnchannels() == 1
        assert wav.getsampwidth() == 2
        assert wav.getnframes() == 2400


def test_player_resolves_missing_wav_and_unknown_ids(tmp_path):
    player = AlarmSoundPlayer(tmp_path)
    assert player.resolve("morning_tone.wav").exists()
    assert player.resolve("nope.wav").name == DEFAULT_SOUND
    # mp3 assets are never synthesized
    assert not player.resolve("beep_alert.mp3").exists()
    player.play("beep_alert.mp3")
    assert player.last_played == "beep_alert.mp3"
