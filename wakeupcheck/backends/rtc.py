"""Linux sysfs RTC backend.

Programs the wake alarm of a real-time clock through
``/sys/class/rtc/<device>/wakealarm``.
"""

import datetime
import logging
import pathlib

logger = logging.getLogger("wakeupcheck.backends.rtc")

RTC_CLASS_PATH = "/sys/class/rtc"


class RTCException(Exception):
    """Exception raised for RTC device errors.

    Raised when the RTC device doesn't exist or its wake alarm can't be
    written.
    """

    pass


class SysfsRTC:
    """Interface to a Linux RTC wake alarm via sysfs.

    Args:
        device: RTC device name (default: rtc0)
        root: Directory containing the RTC devices (default: /sys/class/rtc)
        tz: Timezone used for log output

    Raises:
        RTCException: If the RTC device doesn't exist
    """

    def __init__(self, device: str = "rtc0", root: str | pathlib.Path = RTC_CLASS_PATH, tz=None):
        self.device = device
        self._path = pathlib.Path(root) / device
        self._tz = tz

        if not self._path.is_dir():
            raise RTCException(f"RTC Device {device} does not exist!")

        logger.debug("Using RTC device %s", self._path)

    @property
    def wakealarm_path(self) -> pathlib.Path:
        return self._path / "wakealarm"

    def set_wakealarm(self, ts: int):
        """Program the wake alarm.

        The alarm is always cleared before the new value is written, as most
        RTC drivers refuse to overwrite an armed alarm.

        Args:
            ts: Wake time as Unix timestamp

        Raises:
            RTCException: If the alarm couldn't be cleared or written
        """
        try:
            self.wakealarm_path.write_text("0")
            self.wakealarm_path.write_text(str(int(ts)))
        except (IOError, OSError) as e:
            raise RTCException(f"Failed to set RTC wakealarm on {self.device}: {e}") from e

        logger.debug(
            "Wake alarm set for %s (timestamp: %d)",
            datetime.datetime.fromtimestamp(ts, tz=self._tz),
            ts,
        )

    def get_wakealarm(self) -> int | None:
        """Read back the programmed wake alarm.

        Returns:
            Unix timestamp of the armed alarm, or None if disabled or unreadable.
        """
        try:
            alarm_value = self.wakealarm_path.read_text().strip()
            if not alarm_value or alarm_value == "0":
                return None
            return int(alarm_value)
        except (IOError, OSError, ValueError) as e:
            logger.debug("Failed to read wake alarm: %s", e)
            return None
