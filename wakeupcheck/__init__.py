"""wakeupcheck - suspend/resume wake decisions for mobile Linux devices.

This package decides what a phone should do around a suspend cycle. Before
suspend it programs the real-time clock (RTC) to wake the device again, taking
quiet hours and upcoming GNOME Clocks alarms into account. After resume it
decides whether the device should stay awake, show a notification or go back
to sleep.

Main Classes:
    WakeWindow: Daily quiet hours window, possibly spanning midnight
    Mode: Which half of the suspend cycle is handled
    Action: Outcome of the post-resume decision
    DisplayControlMethod: How the display is switched on and off

Example:
    >>> import datetime
    >>> from wakeupcheck import WakeWindow
    >>> window = WakeWindow.from_strings("22:00", "06:00")
    >>> now = datetime.datetime(2024, 1, 1, 12, 0).astimezone()
    >>> start, end = window.resolve(now)
    >>> print(end - start)
    8:00:00
"""

import datetime
import enum
import importlib.metadata

__version__ = importlib.metadata.version(__name__)


class Mode(enum.Enum):
    """Half of the suspend cycle handled by a single run."""

    PRE = "pre"
    POST = "post"


class Action(enum.Enum):
    """Decision taken after an RTC-triggered resume.

    Attributes:
        STAY_AWAKE: Leave the display on and end the run
        SUSPEND_AGAIN: Request a system suspend
        NOTIFY: An allowed notification arrived, alert the user
    """

    STAY_AWAKE = "stay-awake"
    SUSPEND_AGAIN = "suspend-again"
    NOTIFY = "notify"


class DisplayControlMethod(enum.Enum):
    """Strategy used to turn the display on and off."""

    BRIGHTNESS = "brightness"
    SCREENSAVER = "screensaver"


def local_tz() -> datetime.tzinfo:
    return datetime.datetime.now().astimezone().tzinfo


def parse_time_of_day(value: str) -> datetime.time:
    """Parse a "HH:MM" string into a time of day.

    Args:
        value: Time of day, e.g. "22:00" or "6:30"

    Returns:
        Naive time object

    Raises:
        ValueError: If the string is not a valid "HH:MM" time
    """
    try:
        hour, minute = str(value).strip().split(":")
        return datetime.time(int(hour), int(minute))
    except (ValueError, TypeError) as e:
        raise ValueError(f"Invalid time of day '{value}', expected HH:MM") from e


def format_ts(ts: int | float, tz: datetime.tzinfo | None = None) -> str:
    try:
        return datetime.datetime.fromtimestamp(ts, tz=tz).strftime("%Y-%m-%d %H:%M:%S")
    except (OverflowError, OSError, ValueError):
        return str(ts)


class WakeWindow:
    """Daily window of quiet hours.

    The window is defined by two times of day. If the end is not after the
    start, the window spans midnight and ends on the following day.

    Args:
        start: Time of day the quiet hours begin
        end: Time of day the quiet hours end

    Example:
        >>> window = WakeWindow(datetime.time(22, 0), datetime.time(6, 0))
        >>> window.wraps_midnight
        True
    """

    def __init__(self, start: datetime.time, end: datetime.time):
        self.start = start
        self.end = end

    @classmethod
    def from_strings(cls, start: str, end: str) -> "WakeWindow":
        return cls(parse_time_of_day(start), parse_time_of_day(end))

    @property
    def wraps_midnight(self) -> bool:
        return self.end <= self.start

    def resolve(self, now: datetime.datetime) -> tuple[datetime.datetime, datetime.datetime]:
        """Resolve the window to absolute instants for the day of ``now``.

        Args:
            now: Timezone aware reference time; its date and tzinfo are used

        Returns:
            Tuple of (start, end). If the window spans midnight, end lies on
            the following day.
        """
        day = now.date()
        start = datetime.datetime.combine(day, self.start, tzinfo=now.tzinfo)
        end = datetime.datetime.combine(day, self.end, tzinfo=now.tzinfo)
        if self.wraps_midnight:
            end += datetime.timedelta(days=1)
        return start, end

    def active_range(self, now: datetime.datetime) -> tuple[datetime.datetime, datetime.datetime] | None:
        """Get today's window if it contains ``now``.

        Only the window resolved for the day of ``now`` is considered. With
        quiet hours of 22:00-06:00, 02:00 lies before today's window and is
        therefore outside quiet hours.

        Returns:
            Tuple of (start, end) of today's window, or None
        """
        start, end = self.resolve(now)
        if start <= now < end:
            return start, end
        return None

    def contains(self, now: datetime.datetime) -> bool:
        return self.active_range(now) is not None

    def __repr__(self):
        return f"{self.__class__.__name__}(start={self.start:%H:%M}, end={self.end:%H:%M})"


__all__ = [
    "Action",
    "DisplayControlMethod",
    "Mode",
    "WakeWindow",
    "format_ts",
    "local_tz",
    "parse_time_of_day",
]
