"""GNOME Clocks alarm provider.

Alarms are stored by GNOME Clocks in GSettings (schema ``org.gnome.clocks``,
key ``alarms``) as a GVariant array of dictionaries. Each scheduled alarm
carries a ``ring_time`` in ISO 8601 format.
"""

import datetime
import logging
import re
import subprocess

from .base import AlarmProvider
from .session import UserSession

logger = logging.getLogger("wakeupcheck.backends.alarms")

SCHEMA = "org.gnome.clocks"
KEY = "alarms"

RING_TIME_RE = re.compile(r"'ring_time': <'([^']+)'>")


def parse_ring_times(alarms_raw: str) -> list[str]:
    """Extract all ISO 8601 ring times from a gsettings alarms value."""
    return RING_TIME_RE.findall(alarms_raw or "")


def iso_to_timestamp(value: str) -> int | None:
    """Convert an ISO 8601 time to a Unix timestamp.

    Naive times are interpreted in the local timezone.
    """
    try:
        return int(datetime.datetime.fromisoformat(value).timestamp())
    except (TypeError, ValueError, OverflowError):
        return None


def earliest_alarm(alarms_raw: str) -> int | None:
    """Get the earliest ring time of a gsettings alarms value.

    ISO 8601 times sort chronologically, so the lexicographic minimum is the
    earliest alarm.

    Returns:
        Unix timestamp of the earliest alarm, or None
    """
    if not alarms_raw or alarms_raw.strip() == "@as []":
        logger.info("No alarms found in GSettings")
        return None

    logger.debug("Raw alarm data: %s", alarms_raw)

    ring_times = parse_ring_times(alarms_raw)
    if not ring_times:
        logger.info("No ring_time entries found in alarms list")
        return None

    for ring_time in ring_times:
        logger.debug("Extracted alarm time: %s", ring_time)

    next_alarm = min(ring_times)
    logger.info("Next alarm ISO time: %s", next_alarm)

    ts = iso_to_timestamp(next_alarm)
    if ts is None:
        logger.warning("Failed to parse next alarm time to UNIX timestamp")
    else:
        logger.info("Next alarm UNIX timestamp: %s", ts)
    return ts


class GnomeClocksAlarms(AlarmProvider):
    """Read alarms of GNOME Clocks from the user's GSettings.

    Args:
        session: Desktop session of the user owning the alarms
    """

    def __init__(self, session: UserSession):
        self._session = session

    def next_alarm(self) -> int | None:
        logger.info("Retrieving alarms from GSettings for user: %s", self._session.user)
        try:
            result = self._session.run(["gsettings", "get", SCHEMA, KEY])
        except (OSError, subprocess.SubprocessError) as e:
            logger.error("Failed to read GSettings for %s %s: %s", SCHEMA, KEY, e)
            return None

        return earliest_alarm(result.stdout.strip())
