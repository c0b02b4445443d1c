from __future__ import annotations

import logging
import wave
from pathlib import Path
from threading import Lock
from typing import Optional, Tuple

import numpy as np

try:
    import winsound
except ImportError:  # pragma: no cover - non-Windows fallback
    winsound = None  # type: ignore

logger = logging.getLogger(__name__)

AVAILABLE_SOUNDS: Tuple[str, ...] = ("minions_wake_up.wav", "morning_tone.wav", "beep_alert.mp3")
DEFAULT_SOUND = AVAILABLE_SOUNDS[0]

# Tone used when a .wav asset is missing on disk.
_FALLBACK_TONES = {
    "minions_wake_up.wav": 880.0,
    "morning_tone.wav": 660.0,
}


def is_available_sound(sound_id: str) -> bool:
    return sound_id in AVAILABLE_SOUNDS


def ensure_alarm_sound(path: Path, freq: float = 880.0, duration_seconds: float = 1.5) -> None:
    if path.exists():
        return
    path.parent.mkdir(parents=True, exist_ok=True)
    sample_rate = 24000
    amplitude = 0.4
    t = np.arange(int(duration_seconds * sample_rate)) / sample_rate
    samples = (32767 * amplitude * np.sin(2 * np.pi * freq * t)).astype("<i2")
    with wave.open(str(path), "w") as wav:
        wav.setnchannels(1)
        wav.setsampwidth(2)
        wav.setframerate(sample_rate)
        wav.writeframes(samples.tobytes())
    logger.info("Generated fallback alarm sound at %s", path)


class AlarmSoundPlayer:
    def __init__(self, sounds_dir: Path):
        self.sounds_dir = Path(sounds_dir)
        self._lock = Lock()
        self.last_played: Optional[str] = None

    def resolve(self, sound_id: str) -> Path:
        if not is_available_sound(sound_id):
            logger.warning("Unknown sound %s, using %s", sound_id, DEFAULT_SOUND)
            sound_id = DEFAULT_SOUND
        path = self.sounds_dir / sound_id
        if path.suffix == ".wav" and not path.exists():
            ensure_alarm_sound(path, freq=_FALLBACK_TONES.get(sound_id, 880.0))
        return path

    def play(self, sound_id: str) -> None:
        path = self.resolve(sound_id)
        with self._lock:
            self.last_played = path.name
        if winsound and path.suffix == ".wav":
            try:
                winsound.PlaySound(str(path), winsound.SND_FILENAME | winsound.SND_ASYNC)
                return
            except RuntimeError:
                logger.warning("winsound.PlaySound failed for %s", path)
        logger.info("Alarm ringing (%s)", path.name)

    def stop(self) -> None:
        if winsound:
            try:
                winsound.PlaySound(None, winsound.SND_PURGE)
            except RuntimeError:
                logger.debug("winsound.PlaySound purge failed")
