"""RTC wake scheduling before suspend.

Computes when the device should wake up next, persists the timestamp and
programs the RTC wake alarm.
"""

import datetime
import logging
import pathlib
import re

from . import WakeWindow, format_ts
from .backends.base import AlarmProvider
from .backends.rtc import SysfsRTC

logger = logging.getLogger("wakeupcheck.scheduler")

TIMESTAMP_RE = re.compile(r"[0-9]+")


class WakeScheduleError(Exception):
    """Raised if the wake time is invalid or couldn't be persisted."""

    pass


class WakeTimestampFile:
    """Plain file holding the last programmed wake time as decimal integer.

    Args:
        path: Location of the timestamp file
    """

    def __init__(self, path: str | pathlib.Path):
        self.path = pathlib.Path(path)

    def read(self) -> int | None:
        """Read the stored timestamp.

        Returns:
            Stored Unix timestamp, or None if the file is missing or invalid.
        """
        try:
            raw = self.path.read_text().strip()
        except FileNotFoundError:
            logger.error("No wake timestamp file found")
            return None
        except (IOError, OSError, ValueError) as e:
            logger.error("Couldn't read wake timestamp file %s: %s", self.path, e)
            return None

        if not TIMESTAMP_RE.fullmatch(raw):
            logger.error("Invalid timestamp in file: %s", self.path)
            return None
        return int(raw)

    def write(self, ts: int):
        """Persist a timestamp.

        Raises:
            WakeScheduleError: If the file couldn't be written
        """
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(f"{ts}\n")
        except (IOError, OSError) as e:
            raise WakeScheduleError(f"Failed to write timestamp file: {self.path} ({e})") from e


def compute_wake_timestamp(
    now: datetime.datetime,
    window: WakeWindow,
    next_alarm: int | None,
    interval: datetime.timedelta,
    lead: datetime.timedelta,
) -> int:
    """Compute the next RTC wake time.

    Inside quiet hours the device wakes at their end, otherwise after the
    default interval. An alarm between now and that time moves the wake up
    to ``lead`` before the alarm.

    Args:
        now: Current time (timezone aware)
        window: Quiet hours
        next_alarm: Unix timestamp of the earliest alarm, or None
        interval: Default time until the next wake outside quiet hours
        lead: How long before an alarm the device has to be awake

    Returns:
        Wake time as Unix timestamp

    Raises:
        WakeScheduleError: If the result is not a non-negative integer
    """
    now_ts = int(now.timestamp())

    quiet = window.active_range(now)
    if quiet:
        wake_ts = int(quiet[1].timestamp())
        logger.info("In quiet hours, setting wake time to end of quiet hours: %s", quiet[1])
    else:
        wake_ts = now_ts + int(interval.total_seconds())
        logger.info(
            "Not in quiet hours - setting default RTC wake in %s: %s",
            interval,
            format_ts(wake_ts, now.tzinfo),
        )

    if next_alarm is not None and now_ts < next_alarm < wake_ts:
        wake_ts = next_alarm - int(lead.total_seconds())
        logger.info(
            "Alarm is earlier than current wake time - adjusting RTC wake to: %s",
            format_ts(wake_ts, now.tzinfo),
        )

    if not isinstance(wake_ts, int) or wake_ts < 0:
        raise WakeScheduleError(f"Invalid wake_ts: {wake_ts}")

    return wake_ts


class RTCWakeScheduler:
    """Schedules the next RTC wake before the device suspends.

    Args:
        config: Configuration
        alarms: Source of upcoming alarms
        rtc: RTC device to program
        store: File the wake timestamp is persisted to
    """

    def __init__(self, config, alarms: AlarmProvider, rtc: SysfsRTC, store: WakeTimestampFile):
        self._config = config
        self._alarms = alarms
        self._rtc = rtc
        self._store = store

    def schedule(self, now: datetime.datetime | None = None) -> int:
        """Compute, persist and program the next wake time.

        A mismatch between the programmed alarm and the persisted timestamp is
        logged but not fatal, as some RTCs round the alarm time.

        Returns:
            Programmed wake time as Unix timestamp

        Raises:
            WakeScheduleError: If the wake time is invalid or couldn't be persisted
            RTCException: If the RTC couldn't be programmed
        """
        now = now or datetime.datetime.now(tz=self._config.tz)
        window = self._config.quiet_hours

        start, end = window.resolve(now)
        logger.info("Quiet hours: %s - %s", start.strftime("%Y-%m-%d %H:%M:%S"), end.strftime("%Y-%m-%d %H:%M:%S"))

        next_alarm = self._alarms.next_alarm()
        if next_alarm is not None:
            logger.info("Next alarm at: %s", format_ts(next_alarm, now.tzinfo))
        else:
            logger.info("No valid alarm found - skipping alarm adjustment")

        wake_ts = compute_wake_timestamp(
            now,
            window,
            next_alarm,
            self._config.next_wake_interval,
            self._config.wake_before_alarm,
        )

        self._store.write(wake_ts)
        self._rtc.set_wakealarm(wake_ts)

        stored = self._store.read()
        programmed = self._rtc.get_wakealarm()
        if programmed is not None and programmed == stored:
            if next_alarm is not None and wake_ts == next_alarm - int(self._config.wake_before_alarm.total_seconds()):
                reason = "alarm adjustment"
            elif window.contains(now):
                reason = "end of quiet hours"
            else:
                reason = "default timing"
            logger.info("Will wake system at: %s due to: %s", format_ts(wake_ts, now.tzinfo), reason)
        else:
            logger.error("RTC wakealarm mismatch - actual: %s, timestampfile: %s", programmed, stored)

        return wake_ts
