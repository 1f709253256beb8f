"""Configuration loading for wakeupcheck.

The configuration is read once at startup from a YAML file and turned into an
immutable :class:`Configuration`, which is handed to every component.

Example configuration::

    target_user: purism
    logfile: /var/log/wakeup-check.log
    loglevel: INFO
    quiet_hours:
      start: "22:00"
      end: "06:00"
    wake_timestamp_file: /var/lib/wakeup-check/wake_ts
    rtc_wake_window: 20s
    next_rtc_wake: 5m
    wake_before_alarm: 1
    ping_host: 9.9.9.9
    max_wait: 40
    notification_timeout: 60s
    brightness: 120
    display_control_method: brightness
    app_whitelist: [signal, chatty]
"""

import dataclasses
import datetime
import logging
import pathlib
from zoneinfo import ZoneInfo

import pytimeparse
import yaml

from . import DisplayControlMethod, WakeWindow, local_tz

logger = logging.getLogger("wakeupcheck.config")

DEFAULT_CONFIG_PATH = "/etc/wakeup-check.yml"

REQUIRED_KEYS = (
    "target_user",
    "logfile",
    "quiet_hours",
    "wake_timestamp_file",
    "rtc_wake_window",
    "next_rtc_wake",
    "wake_before_alarm",
    "ping_host",
    "max_wait",
    "notification_timeout",
    "brightness",
    "loglevel",
)


class ConfigurationError(Exception):
    """Raised for missing or invalid configuration values."""

    pass


@dataclasses.dataclass(frozen=True)
class Configuration:
    """Validated, immutable wakeupcheck configuration.

    Attributes:
        target_user: Desktop user owning the session bus
        logfile: Append-only log file
        loglevel: Log level for the log file
        quiet_hours: Daily quiet hours window
        wake_timestamp_file: File holding the programmed RTC wake timestamp
        rtc_wake_window: Tolerance between programmed and actual resume
        next_wake_interval: Default time until the next RTC wake
        wake_before_alarm: Lead time before an alarm
        ping_host: Host used to check connectivity
        max_wait: Maximum time to wait for connectivity
        notification_timeout: Time notifications are monitored
        brightness: Brightness saved when no other value is known
        rtc_device: RTC device name below /sys/class/rtc
        tz: Timezone for quiet hours calculations
        display_control_method: How the display is switched on and off
        brightness_path: Backlight brightness file
        brightness_save_path: File the brightness is saved to while off
        app_whitelist: Lower-cased app identifiers allowed to notify
        notify_turn_on_display: Turn the display on for allowed notifications
        notify_use_fbcli: Trigger feedbackd via fbcli for allowed notifications
    """

    target_user: str
    logfile: pathlib.Path
    loglevel: int
    quiet_hours: WakeWindow
    wake_timestamp_file: pathlib.Path
    rtc_wake_window: datetime.timedelta
    next_wake_interval: datetime.timedelta
    wake_before_alarm: datetime.timedelta
    ping_host: str
    max_wait: datetime.timedelta
    notification_timeout: datetime.timedelta
    brightness: int
    rtc_device: str = "rtc0"
    tz: datetime.tzinfo = dataclasses.field(default_factory=local_tz)
    display_control_method: DisplayControlMethod = DisplayControlMethod.BRIGHTNESS
    brightness_path: pathlib.Path = pathlib.Path("/sys/class/backlight/backlight/brightness")
    brightness_save_path: pathlib.Path = pathlib.Path("/var/lib/wakeup-check/brightness")
    app_whitelist: tuple[str, ...] = ()
    notify_turn_on_display: bool = True
    notify_use_fbcli: bool = False


def parse_duration(key: str, value, granularity: str = "seconds") -> datetime.timedelta:
    """Parse a duration setting.

    Integers are interpreted in the unit given by ``granularity``, strings are
    parsed with pytimeparse (e.g. "20s", "5m", "00:05").

    Raises:
        ConfigurationError: If the value cannot be parsed or is negative
    """
    if isinstance(value, bool):
        raise ConfigurationError(f"Invalid duration for '{key}': {value}")

    if isinstance(value, (int, float)):
        seconds = value * 60 if granularity == "minutes" else value
    else:
        seconds = pytimeparse.parse(str(value), granularity=granularity)

    if seconds is None or seconds < 0:
        raise ConfigurationError(f"Invalid duration for '{key}': {value}")

    return datetime.timedelta(seconds=seconds)


def _parse_loglevel(value) -> int:
    level = logging.getLevelName(str(value).upper())
    if not isinstance(level, int):
        raise ConfigurationError(f"Unknown loglevel '{value}'")
    return level


def _parse_tz(value) -> datetime.tzinfo:
    try:
        tz = ZoneInfo(str(value))
        logger.info("Using timezone from config: %s", value)
        return tz
    except Exception as e:
        logger.warning("Invalid timezone '%s' in config: %s, using system timezone", value, e)
        return local_tz()


def load_configuration(raw: dict) -> Configuration:
    """Validate a raw configuration dictionary.

    Args:
        raw: Dictionary as loaded from the YAML configuration file

    Returns:
        Immutable Configuration

    Raises:
        ConfigurationError: If a required setting is missing or a value is invalid
    """
    if not isinstance(raw, dict):
        raise ConfigurationError("Configuration must be a mapping")

    for key in REQUIRED_KEYS:
        if raw.get(key) in (None, ""):
            raise ConfigurationError(f"Required config variable '{key}' is not set.")

    quiet_hours = raw["quiet_hours"]
    if not isinstance(quiet_hours, dict) or not quiet_hours.get("start") or not quiet_hours.get("end"):
        raise ConfigurationError("quiet_hours requires 'start' and 'end'")
    try:
        window = WakeWindow.from_strings(quiet_hours["start"], quiet_hours["end"])
    except ValueError as e:
        raise ConfigurationError(str(e)) from e

    try:
        method = DisplayControlMethod(str(raw.get("display_control_method", "brightness")).lower())
    except ValueError as e:
        raise ConfigurationError(
            f"Unknown display_control_method '{raw.get('display_control_method')}'"
        ) from e

    try:
        brightness = int(raw["brightness"])
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Invalid brightness '{raw['brightness']}'") from e

    whitelist = raw.get("app_whitelist") or []
    if isinstance(whitelist, str):
        whitelist = whitelist.split()
    # ordered, case-insensitive and without duplicates
    whitelist = tuple(dict.fromkeys(str(app).lower() for app in whitelist))

    notification = raw.get("notification") or {}

    options = {}
    if "rtc_device" in raw:
        options["rtc_device"] = str(raw["rtc_device"])
    if "tz" in raw:
        options["tz"] = _parse_tz(raw["tz"])
    if "brightness_path" in raw:
        options["brightness_path"] = pathlib.Path(raw["brightness_path"])
    if "brightness_save_path" in raw:
        options["brightness_save_path"] = pathlib.Path(raw["brightness_save_path"])
    if "turn_on_display" in notification:
        options["notify_turn_on_display"] = bool(notification["turn_on_display"])
    if "use_fbcli" in notification:
        options["notify_use_fbcli"] = bool(notification["use_fbcli"])

    config = Configuration(
        target_user=str(raw["target_user"]),
        logfile=pathlib.Path(raw["logfile"]),
        loglevel=_parse_loglevel(raw["loglevel"]),
        quiet_hours=window,
        wake_timestamp_file=pathlib.Path(raw["wake_timestamp_file"]),
        rtc_wake_window=parse_duration("rtc_wake_window", raw["rtc_wake_window"]),
        next_wake_interval=parse_duration("next_rtc_wake", raw["next_rtc_wake"], granularity="minutes"),
        wake_before_alarm=parse_duration("wake_before_alarm", raw["wake_before_alarm"], granularity="minutes"),
        ping_host=str(raw["ping_host"]),
        max_wait=parse_duration("max_wait", raw["max_wait"]),
        notification_timeout=parse_duration("notification_timeout", raw["notification_timeout"]),
        brightness=brightness,
        display_control_method=method,
        app_whitelist=whitelist,
        **options,
    )
    logger.debug("%s", config)
    return config


def read_configuration(path: str | pathlib.Path = DEFAULT_CONFIG_PATH) -> Configuration:
    """Read and validate the YAML configuration file.

    Raises:
        ConfigurationError: If the file is missing, unreadable or invalid
    """
    path = pathlib.Path(path)
    try:
        with path.open(encoding="utf-8") as fp:
            raw = yaml.safe_load(fp)
    except FileNotFoundError as e:
        raise ConfigurationError(f"Missing config file: {path}") from e
    except (OSError, yaml.YAMLError) as e:
        raise ConfigurationError(f"Couldn't read config file {path}: {e}") from e

    return load_configuration(raw)
