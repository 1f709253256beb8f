"""Post-resume wake decision.

After an RTC-triggered resume the device checks, in this order:

1. an alarm is about to ring: stay awake
2. quiet hours: suspend again
3. no network within ``max_wait``: suspend again
4. a whitelisted app notifies within ``notification_timeout``: notify,
   otherwise suspend again. If the watcher fails, stay awake.

Any other resume was triggered by the user and always stays awake.
"""

import datetime
import logging
import threading

from . import Action
from .backends.base import (
    AlarmProvider,
    ConnectivityProber,
    NotificationWatcher,
    WatchOutcome,
    Whitelist,
)

logger = logging.getLogger("wakeupcheck.decision")


class RunInterrupted(Exception):
    """Raised when the run was cancelled by a termination signal."""

    pass


def alarm_within(next_alarm: int | None, now: int, lead_seconds: int | float) -> bool:
    """Check if an alarm rings within ``lead_seconds`` from ``now``."""
    if next_alarm is None:
        logger.info("No valid next alarm time found")
        return False

    diff = next_alarm - now
    logger.info("Next alarm in %s seconds (limit: %d seconds)", diff, lead_seconds)
    return 0 <= diff <= lead_seconds


class WakeDecisionEngine:
    """Decides what to do after a resume.

    Args:
        config: Configuration
        alarms: Source of upcoming alarms
        prober: Connectivity prober
        watcher: Notification watcher
        clock: Returns the current time, defaults to now in the configured timezone
        stop: Cancellation event, set by the signal handler
    """

    def __init__(
        self,
        config,
        alarms: AlarmProvider,
        prober: ConnectivityProber,
        watcher: NotificationWatcher,
        clock=None,
        stop: threading.Event | None = None,
    ):
        self._config = config
        self._alarms = alarms
        self._prober = prober
        self._watcher = watcher
        self._clock = clock or (lambda: datetime.datetime.now(tz=config.tz))
        self._stop = stop or threading.Event()
        self._whitelist = Whitelist(config.app_whitelist)

    def _check_stop(self):
        if self._stop.is_set():
            raise RunInterrupted("Wake decision interrupted")

    def decide(self, is_rtc_wake: bool) -> Action:
        """Decide the action after a resume.

        Args:
            is_rtc_wake: Whether the resume was caused by the programmed RTC alarm

        Returns:
            Action to take

        Raises:
            RunInterrupted: If the stop event was set during the decision
        """
        self._check_stop()
        if not is_rtc_wake:
            logger.info("Not an RTC wake. -> turn on display")
            return Action.STAY_AWAKE

        logger.info("RTC wake detected.")
        now = self._clock()

        lead = self._config.wake_before_alarm.total_seconds()
        if alarm_within(self._alarms.next_alarm(), int(now.timestamp()), lead):
            logger.info("Alarm is coming up soon - staying awake.")
            return Action.STAY_AWAKE
        self._check_stop()

        if self._config.quiet_hours.contains(now):
            logger.info("Currently in quiet hours - suspending again.")
            return Action.SUSPEND_AGAIN

        reachable = self._prober.wait_for_reachable(
            self._config.ping_host,
            self._config.max_wait.total_seconds(),
            self._stop,
        )
        self._check_stop()
        if not reachable:
            logger.warning("No internet connection detected - suspending")
            return Action.SUSPEND_AGAIN

        logger.info("Internet connection detected")
        result = self._watcher.watch(
            self._config.notification_timeout.total_seconds(),
            self._whitelist,
            self._stop,
        )
        self._check_stop()

        if result.outcome is WatchOutcome.ALLOWED:
            logger.info("Allowed notification from %s received. -> notify", result.app)
            return Action.NOTIFY
        elif result.outcome is WatchOutcome.TIMEOUT:
            logger.info("Timeout reached without receiving notifications. -> sleep")
            return Action.SUSPEND_AGAIN
        elif result.outcome is WatchOutcome.DISALLOWED:
            logger.info("Only disallowed notifications received (last from %s). -> sleep", result.app)
            return Action.SUSPEND_AGAIN
        elif result.outcome is WatchOutcome.ERROR:
            logger.error("Unexpected error occurred in notification monitoring. -> stay awake")
            return Action.STAY_AWAKE
        else:
            raise ValueError(f"Unhandled watch outcome: {result.outcome}")
