import pytest

from wakeupcheck.config import load_configuration


@pytest.fixture
def raw_config(tmp_path):
    return {
        "target_user": "purism",
        "logfile": str(tmp_path / "wakeup-check.log"),
        "loglevel": "DEBUG",
        "quiet_hours": {"start": "22:00", "end": "06:00"},
        "wake_timestamp_file": str(tmp_path / "wake_ts"),
        "rtc_wake_window": 20,
        "next_rtc_wake": 5,
        "wake_before_alarm": 1,
        "ping_host": "9.9.9.9",
        "max_wait": 40,
        "notification_timeout": 60,
        "brightness": 120,
        "brightness_path": str(tmp_path / "brightness"),
        "brightness_save_path": str(tmp_path / "state" / "brightness"),
        "app_whitelist": ["signal", "Chatty"],
    }


@pytest.fixture
def config(raw_config):
    return load_configuration(raw_config)
