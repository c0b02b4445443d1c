import logging
import signal
from datetime import datetime
from typing import Callable, Optional

from alarms.backend import SNOOZE_ACTION, TriggerRequest
from alarms.command_router import CommandRouter
from alarms.local_backend import LocalNotificationBackend
from alarms.manager import AlarmManager
from alarms.scheduler import Scheduler
from alarms.snooze import SnoozeHandler
from alarms.sounds import AlarmSoundPlayer
from alarms.storage import FileKeyValueStore
from alarms.store import AlarmStore
from config import Config, load_config, setup_logging
from time_utils import format_tz_offset, now_in_tz

logger = logging.getLogger("alarm_app")


def graceful_exit(signum, frame) -> None:  # pragma: no cover - signal handler
    logger.info("Shutting down (signal %s)", signum)
    raise KeyboardInterrupt()


def build_alarm_manager(
    config: Config,
    clock: Optional[Callable[[], datetime]] = None,
    on_alarm_triggered: Optional[Callable[[TriggerRequest], None]] = None,
) -> AlarmManager:
    if clock is None:
        tz = config.timezone

        def clock() -> datetime:
            return now_in_tz(tz)

    backend = LocalNotificationBackend(clock, check_interval=config.alarm_check_interval_ms / 1000.0)
    scheduler = Scheduler(backend, clock, weekly_recurrence=config.weekly_recurrence)
    return AlarmManager(
        store=AlarmStore(FileKeyValueStore(config.data_dir), key=config.storage_key),
        scheduler=scheduler,
        snooze_handler=SnoozeHandler(
            scheduler, clock, minutes=config.snooze_minutes, sound_id=config.default_sound
        ),
        backend=backend,
        sound_player=AlarmSoundPlayer(config.sounds_dir),
        on_alarm_triggered=on_alarm_triggered,
    )


class ConsoleApp:
    def __init__(self, config: Config, clock: Optional[Callable[[], datetime]] = None):
        self.config = config
        self.last_delivered: Optional[TriggerRequest] = None
        self.manager = build_alarm_manager(config, clock=clock, on_alarm_triggered=self._on_alarm_triggered)
        self.router = CommandRouter(self.manager, default_sound=config.default_sound)

    def run(self) -> None:
        self.manager.start()
        print("Alarm App. Type 'help' for commands, Ctrl+C to quit.")
        try:
            while True:
                text = input("> ")
                self.handle_line(text)
        except (KeyboardInterrupt, EOFError):
            logger.info("Interrupted by user")
        finally:
            self.manager.shutdown()

    def handle_line(self, text: str) -> None:
        # A snooze right after a notification goes through the notification action.
        if text.strip().lower() == "snooze" and self.last_delivered:
            backend = self.manager.backend
            if isinstance(backend, LocalNotificationBackend):
                backend.perform_action(self.last_delivered.identifier, SNOOZE_ACTION)
                self.last_delivered = None
                print("Snoozed for %s minutes." % self.config.snooze_minutes)
                return
        try:
            result = self.router.handle_text(text)
        except ValueError as exc:
            print(str(exc))
            return
        if result.response_text:
            print(result.response_text)

    def _on_alarm_triggered(self, request: TriggerRequest) -> None:
        self.last_delivered = request
        print(f"\n*** {request.title}: {request.body} *** (type 'snooze' to snooze)")


def main() -> None:
    config = load_config()
    setup_logging(config.log_level, config.log_file)
    signal.signal(signal.SIGINT, graceful_exit)
    logger.info(
        "Starting alarm app (data=%s, timezone=UTC%s, weekly recurrence=%s)",
        config.data_dir,
        format_tz_offset(config.timezone),
        config.weekly_recurrence,
    )
    ConsoleApp(config).run()


if __name__ == "__main__":
    main()
