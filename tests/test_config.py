import datetime
import logging
import pathlib

import pytest

from wakeupcheck import DisplayControlMethod
from wakeupcheck.config import ConfigurationError, load_configuration, parse_duration, read_configuration


def test_load_configuration_parses_values(raw_config):
    config = load_configuration(raw_config)

    assert config.target_user == "purism"
    assert config.loglevel == logging.DEBUG
    assert config.rtc_wake_window == datetime.timedelta(seconds=20)
    assert config.next_wake_interval == datetime.timedelta(minutes=5)
    assert config.wake_before_alarm == datetime.timedelta(minutes=1)
    assert config.max_wait == datetime.timedelta(seconds=40)
    assert config.quiet_hours.start == datetime.time(22, 0)
    assert config.quiet_hours.end == datetime.time(6, 0)
    assert config.wake_timestamp_file == pathlib.Path(raw_config["wake_timestamp_file"])


def test_load_configuration_defaults(raw_config):
    config = load_configuration(raw_config)

    assert config.rtc_device == "rtc0"
    assert config.display_control_method is DisplayControlMethod.BRIGHTNESS
    assert config.notify_turn_on_display is True
    assert config.notify_use_fbcli is False


def test_load_configuration_whitelist_is_lowercased_and_unique(raw_config):
    raw_config["app_whitelist"] = ["Signal", "chatty", "signal"]
    config = load_configuration(raw_config)

    assert config.app_whitelist == ("signal", "chatty")


def test_load_configuration_duration_strings(raw_config):
    raw_config["rtc_wake_window"] = "20s"
    raw_config["next_rtc_wake"] = "10m"
    raw_config["notification_timeout"] = "1m"
    config = load_configuration(raw_config)

    assert config.rtc_wake_window == datetime.timedelta(seconds=20)
    assert config.next_wake_interval == datetime.timedelta(minutes=10)
    assert config.notification_timeout == datetime.timedelta(seconds=60)


def test_load_configuration_options(raw_config):
    raw_config["display_control_method"] = "Screensaver"
    raw_config["rtc_device"] = "rtc1"
    raw_config["notification"] = {"turn_on_display": False, "use_fbcli": True}
    config = load_configuration(raw_config)

    assert config.display_control_method is DisplayControlMethod.SCREENSAVER
    assert config.rtc_device == "rtc1"
    assert config.notify_turn_on_display is False
    assert config.notify_use_fbcli is True


@pytest.mark.parametrize("key", ["target_user", "ping_host", "quiet_hours", "brightness", "loglevel"])
def test_load_configuration_missing_required(raw_config, key):
    del raw_config[key]
    with pytest.raises(ConfigurationError, match=key):
        load_configuration(raw_config)


@pytest.mark.parametrize(
    "key,value",
    [
        ("display_control_method", "backlight"),
        ("loglevel", "chatty"),
        ("max_wait", "soon"),
        ("brightness", "bright"),
        ("quiet_hours", {"start": "22:00"}),
        ("quiet_hours", {"start": "22:00", "end": "late"}),
    ],
)
def test_load_configuration_invalid_values(raw_config, key, value):
    raw_config[key] = value
    with pytest.raises(ConfigurationError):
        load_configuration(raw_config)


def test_configuration_is_immutable(config):
    with pytest.raises(AttributeError):
        config.ping_host = "example.org"


def test_parse_duration_minutes_granularity():
    assert parse_duration("next_rtc_wake", 2, granularity="minutes") == datetime.timedelta(minutes=2)
    assert parse_duration("next_rtc_wake", "30s", granularity="minutes") == datetime.timedelta(seconds=30)


def test_parse_duration_rejects_negative():
    with pytest.raises(ConfigurationError):
        parse_duration("max_wait", -1)


def test_read_configuration_from_yaml(tmp_path):
    path = tmp_path / "wakeup-check.yml"
    path.write_text(
        "target_user: purism\n"
        f"logfile: {tmp_path / 'log'}\n"
        "loglevel: info\n"
        "quiet_hours:\n"
        '  start: "23:00"\n'
        '  end: "07:00"\n'
        f"wake_timestamp_file: {tmp_path / 'wake_ts'}\n"
        "rtc_wake_window: 20s\n"
        "next_rtc_wake: 5\n"
        "wake_before_alarm: 1\n"
        "ping_host: 9.9.9.9\n"
        "max_wait: 40\n"
        "notification_timeout: 60\n"
        "brightness: 100\n"
        "app_whitelist: [signal]\n",
        encoding="utf-8",
    )

    config = read_configuration(path)

    assert config.loglevel == logging.INFO
    assert config.quiet_hours.start == datetime.time(23, 0)
    assert config.app_whitelist == ("signal",)


def test_read_configuration_missing_file(tmp_path):
    with pytest.raises(ConfigurationError, match="Missing config file"):
        read_configuration(tmp_path / "missing.yml")


def test_read_configuration_not_a_mapping(tmp_path):
    path = tmp_path / "wakeup-check.yml"
    path.write_text("- just\n- a list\n", encoding="utf-8")

    with pytest.raises(ConfigurationError):
        read_configuration(path)
