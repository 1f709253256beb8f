"""Classification of resume events."""

import datetime
import logging

from . import format_ts
from .scheduler import WakeTimestampFile

logger = logging.getLogger("wakeupcheck.classifier")


def is_rtc_wake(now: int, stored: int | None, window: int | float) -> bool:
    """Check if a resume was caused by the programmed RTC alarm.

    Args:
        now: Current time as Unix timestamp
        stored: Programmed wake time as Unix timestamp, None if unknown
        window: Seconds a resume may lag behind the programmed time

    Returns:
        True if ``0 <= now - stored <= window``
    """
    if stored is None or isinstance(stored, bool) or not isinstance(stored, int):
        logger.info("No valid wake timestamp, not an RTC wake")
        return False

    diff = now - stored
    if 0 <= diff <= window:
        logger.info("RTC wake confirmed now: %s, timestamp: %s, diff: %s", format_ts(now), format_ts(stored), diff)
        return True

    logger.info("Not an RTC wake: %s, timestamp: %s, diff: %s", format_ts(now), format_ts(stored), diff)
    return False


def classify_resume(now: datetime.datetime, store: WakeTimestampFile, window: datetime.timedelta) -> bool:
    """Classify the current resume using the persisted wake timestamp."""
    return is_rtc_wake(int(now.timestamp()), store.read(), window.total_seconds())
