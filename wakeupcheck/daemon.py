#!/usr/bin/env python3
"""wakeupcheck - suspend/resume hook deciding how to handle a wake cycle.

This program is called by a systemd sleep hook twice per suspend cycle:

- ``pre``: turns the display off and programs the RTC to wake the device at
  the next check (default interval, end of quiet hours or before an alarm)
- ``post``: turns the display off and, if the resume was caused by the RTC,
  decides to stay awake, notify the user or suspend again

Runs are serialized by a lock file. SIGTERM/SIGINT turn the display back on
and end the run with exit code 6.
"""

import datetime
import logging
import signal
import threading

from . import Action, DisplayControlMethod, Mode
from .__main__ import parser
from .backends.alarms import GnomeClocksAlarms
from .backends.base import AlarmProvider, ConnectivityProber, DisplayController, NotificationWatcher
from .backends.display import create_display
from .backends.network import PingProber
from .backends.notifications import BusctlNotificationWatcher
from .backends.rtc import RTCException, SysfsRTC
from .backends.session import UserSession, fbcli_alert, missing_commands, request_suspend
from .classifier import classify_resume
from .config import Configuration, ConfigurationError, read_configuration
from .decision import RunInterrupted, WakeDecisionEngine
from .lock import RunLock
from .scheduler import RTCWakeScheduler, WakeScheduleError, WakeTimestampFile

logger = logging.getLogger("wakeupcheck")

EXIT_OK = 0
EXIT_CONFIG = 1
EXIT_INTERRUPTED = 6

REQUIRED_COMMANDS = ("sudo", "gsettings", "busctl", "ping", "systemctl")

LOG_FORMAT = "[%(asctime)s] [%(levelname)s] %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"


class WakeupCheck:
    """Single run of the suspend/resume hook.

    Args:
        config: Configuration
        display: Display controller
        alarms: Source of upcoming alarms
        prober: Connectivity prober
        watcher: Notification watcher
        rtc_factory: Creates the RTC device, only called before suspend
        suspend: Requests a system suspend
        alert: Forwards an allowed notification, e.g. via fbcli
        clock: Returns the current time
        stop: Cancellation event, set by the signal handlers
    """

    def __init__(
        self,
        config: Configuration,
        display: DisplayController,
        alarms: AlarmProvider,
        prober: ConnectivityProber,
        watcher: NotificationWatcher,
        rtc_factory=None,
        suspend=request_suspend,
        alert=None,
        clock=None,
        stop: threading.Event | None = None,
    ):
        self._config = config
        self._display = display
        self._alarms = alarms
        self._rtc_factory = rtc_factory or (lambda: SysfsRTC(config.rtc_device, tz=config.tz))
        self._suspend = suspend
        self._alert = alert
        self._clock = clock or (lambda: datetime.datetime.now(tz=config.tz))
        self._stop = stop or threading.Event()
        self._store = WakeTimestampFile(config.wake_timestamp_file)
        self._engine = WakeDecisionEngine(config, alarms, prober, watcher, clock=self._clock, stop=self._stop)

    def terminate(self, sig):
        """Handle termination signals.

        Only flags the run as cancelled; the run itself restores the display.

        Args:
            sig: Signal number received (SIGTERM or SIGINT)
        """
        logger.warning("Caught %s, terminating.", signal.Signals(sig).name)
        self._stop.set()

    def install_signal_handlers(self):
        signal.signal(signal.SIGINT, lambda sig, _: self.terminate(sig))
        signal.signal(signal.SIGTERM, lambda sig, _: self.terminate(sig))

    def _check_stop(self):
        if self._stop.is_set():
            raise RunInterrupted("Run interrupted")

    def pre(self) -> int:
        """Prepare for suspend: display off, then schedule the next RTC wake."""
        self._display.off()
        self._check_stop()

        rtc = self._rtc_factory()
        scheduler = RTCWakeScheduler(self._config, self._alarms, rtc, self._store)
        wake_ts = scheduler.schedule(self._clock())
        self._check_stop()
        return wake_ts

    def post(self) -> Action:
        """Handle a resume: display off, classify, decide and apply the action."""
        self._display.off()
        self._check_stop()

        rtc_wake = classify_resume(self._clock(), self._store, self._config.rtc_wake_window)
        action = self._engine.decide(rtc_wake)
        self._check_stop()

        self.apply(action)
        return action

    def apply(self, action: Action):
        if action is Action.STAY_AWAKE:
            self._display.on()
        elif action is Action.SUSPEND_AGAIN:
            self._suspend()
        elif action is Action.NOTIFY:
            if self._config.notify_turn_on_display:
                logger.info("Turning display on due to notification...")
                self._display.on()
            if self._config.notify_use_fbcli and self._alert:
                logger.info("Calling fbcli due to notification...")
                self._alert()
        else:
            raise ValueError(f"Unhandled action: {action}")

    def run(self, mode: Mode) -> int:
        """Run one half of the suspend cycle.

        Returns:
            Exit code: 0 on success, 1 on fatal errors, 6 if interrupted
        """
        logger.info("===== wakeupcheck started (mode: %s) =====", mode.value)
        try:
            if mode is Mode.PRE:
                self.pre()
            elif mode is Mode.POST:
                self.post()
            else:
                raise ValueError(f"Unhandled mode: {mode}")
            return EXIT_OK
        except RunInterrupted:
            logger.error("Script interrupted (SIGINT or SIGTERM).")
            self._display.on()
            return EXIT_INTERRUPTED
        except (RTCException, WakeScheduleError) as ex:
            logger.error("%s", ex)
            return EXIT_CONFIG
        finally:
            logger.info("===== wakeupcheck finished (mode: %s) =====", mode.value)


def configure_logging(verbose: int):
    logging_level = max(0, logging.WARN - (verbose * 10))
    logging_stderr = logging.StreamHandler()
    logging_stderr.setLevel(logging_level)
    logging_stderr.setFormatter(logging.Formatter(LOG_FORMAT, LOG_DATEFMT))
    logging.basicConfig(level=logging.DEBUG, handlers=[logging_stderr])


def add_logfile(config: Configuration) -> logging.Handler:
    """Log to the configured append-only log file.

    Raises:
        ConfigurationError: If the log file can't be opened
    """
    try:
        config.logfile.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(config.logfile, mode="a", encoding="utf-8")
    except OSError as e:
        raise ConfigurationError(f"Couldn't open logfile {config.logfile}: {e}") from e

    handler.setLevel(config.loglevel)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, LOG_DATEFMT))
    logging.getLogger().addHandler(handler)
    return handler


def build(config: Configuration, stop: threading.Event) -> WakeupCheck:
    """Set up all collaborators for the configured system.

    Raises:
        ConfigurationError: If a required command or the user's session is missing
    """
    commands = list(REQUIRED_COMMANDS)
    if config.display_control_method is DisplayControlMethod.SCREENSAVER:
        commands.append("gdbus")
    if missing_commands(commands):
        raise ConfigurationError("Install the missing dependencies and try again.")

    try:
        session = UserSession(config.target_user)
    except KeyError as e:
        raise ConfigurationError(f"Unknown target user {config.target_user}") from e
    except FileNotFoundError as e:
        raise ConfigurationError(str(e)) from e

    try:
        display = create_display(config.display_control_method, config, session)
    except ValueError as e:
        raise ConfigurationError(str(e)) from e

    return WakeupCheck(
        config,
        display,
        GnomeClocksAlarms(session),
        PingProber(),
        BusctlNotificationWatcher(session),
        alert=lambda: fbcli_alert(session),
        stop=stop,
    )


def main(argv: list[str] | None = None) -> int:
    """Entry point for the wakeupcheck hook.

    Exit codes:
        0: Success
        1: Configuration or usage error, missing RTC device
        6: Interrupted by SIGINT/SIGTERM
    """
    try:
        args, extra = parser.parse_known_args(argv)
    except SystemExit as ex:
        return EXIT_OK if ex.code in (0, None) else EXIT_CONFIG
    configure_logging(args.verbose)

    with RunLock(args.lock):
        try:
            config = read_configuration(args.config)
            add_logfile(config)
        except ConfigurationError as ex:
            logger.error("%s", ex)
            return EXIT_CONFIG

        if extra:
            logger.error("Unexpected arguments: %s", " ".join(extra))
            return EXIT_CONFIG
        if not args.mode:
            logger.error("No mode specified (expected 'pre' or 'post')")
            return EXIT_CONFIG
        try:
            mode = Mode(args.mode)
        except ValueError:
            logger.error("Invalid mode: %s (expected 'pre' or 'post')", args.mode)
            return EXIT_CONFIG

        stop = threading.Event()
        try:
            check = build(config, stop)
        except ConfigurationError as ex:
            logger.error("%s", ex)
            return EXIT_CONFIG

        check.install_signal_handlers()
        return check.run(mode)


if __name__ == "__main__":
    raise SystemExit(main())
