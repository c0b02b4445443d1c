import logging
import logging.handlers
import os
from dataclasses import dataclass
from datetime import tzinfo
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from alarms.sounds import DEFAULT_SOUND, is_available_sound
from time_utils import resolve_timezone


def _get_env_bool(name: str, default: bool = False) -> bool:
    val = os.getenv(name)
    if val is None:
        return default
    return val.strip() in {"1", "true", "True", "yes", "YES", "y"}


def _get_env_int(name: str, default: int) -> int:
    val = os.getenv(name)
    if val is None or val == "":
        return default
    try:
        return int(val)
    except ValueError as exc:
        raise ValueError(f"Environment variable {name} must be an integer") from exc


@dataclass
class Config:
    data_dir: Path
    storage_key: str
    sounds_dir: Path
    default_sound: str
    snooze_minutes: int
    alarm_check_interval_ms: int
    weekly_recurrence: bool
    timezone: tzinfo
    log_level: str
    log_file: Path = Path("logs/alarms.log")


def load_config(env_path: Optional[Path] = None) -> Config:
    if env_path is None:
        env_path = Path(".env")
    if env_path.exists():
        load_dotenv(env_path)

    default_sound = os.getenv("ALARM_DEFAULT_SOUND", DEFAULT_SOUND)
    if not is_available_sound(default_sound):
        raise ValueError(f"ALARM_DEFAULT_SOUND {default_sound!r} is not an available sound")

    snooze_minutes = _get_env_int("ALARM_SNOOZE_MIN", 5)
    if snooze_minutes < 1:
        raise ValueError("ALARM_SNOOZE_MIN must be at least 1")

    return Config(
        data_dir=Path(os.getenv("ALARM_DATA_DIR", "data")),
        storage_key=os.getenv("ALARM_STORAGE_KEY", "alarms"),
        sounds_dir=Path(os.getenv("ALARM_SOUNDS_DIR", "sounds")),
        default_sound=default_sound,
        snooze_minutes=snooze_minutes,
        alarm_check_interval_ms=_get_env_int("ALARM_CHECK_INTERVAL_MS", 500),
        weekly_recurrence=_get_env_bool("ALARM_WEEKLY_RECURRENCE", True),
        timezone=resolve_timezone(os.getenv("ALARM_TIMEZONE")),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        log_file=Path(os.getenv("ALARM_LOG_FILE", "logs/alarms.log")),
    )


def setup_logging(log_level: str = "INFO", log_path: Path = Path("logs/alarms.log")) -> None:
    log_path = Path(log_path)
    log_path.parent.mkdir(parents=True, exist_ok=True)

    formatter = logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s")

    file_handler = logging.handlers.RotatingFileHandler(
        log_path, maxBytes=1_000_000, backupCount=3, encoding="utf-8"
    )
    file_handler.setFormatter(formatter)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)

    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        handlers=[file_handler, console_handler],
    )
