import datetime
import logging

import pytest

from wakeupcheck import WakeWindow
from wakeupcheck.backends.base import AlarmProvider
from wakeupcheck.backends.rtc import RTCException, SysfsRTC
from wakeupcheck.scheduler import (
    RTCWakeScheduler,
    WakeScheduleError,
    WakeTimestampFile,
    compute_wake_timestamp,
)

UTC = datetime.timezone.utc
NOW = datetime.datetime(2024, 1, 1, 12, 0, tzinfo=UTC)
NOW_TS = int(NOW.timestamp())
QUIET = WakeWindow.from_strings("22:00", "06:00")
FIVE_MIN = datetime.timedelta(minutes=5)
ONE_MIN = datetime.timedelta(minutes=1)


class FakeAlarms(AlarmProvider):
    def __init__(self, ts=None):
        self.ts = ts

    def next_alarm(self):
        return self.ts


class CoercingRTC:
    def set_wakealarm(self, ts):
        self.ts = ts

    def get_wakealarm(self):
        # some RTCs only store minutes
        return self.ts - self.ts % 60 + 60


@pytest.fixture
def rtc_root(tmp_path):
    device = tmp_path / "rtc" / "rtc0"
    device.mkdir(parents=True)
    (device / "wakealarm").write_text("")
    return tmp_path / "rtc"


def test_default_interval_outside_quiet_hours():
    assert compute_wake_timestamp(NOW, QUIET, None, FIVE_MIN, ONE_MIN) == NOW_TS + 300


def test_alarm_after_default_wake_does_not_override():
    alarm = NOW_TS + 30 * 60
    assert compute_wake_timestamp(NOW, QUIET, alarm, FIVE_MIN, ONE_MIN) == NOW_TS + 300


def test_alarm_before_default_wake_overrides():
    alarm = NOW_TS + 30 * 60
    wake = compute_wake_timestamp(NOW, QUIET, alarm, datetime.timedelta(minutes=60), ONE_MIN)
    assert wake == alarm - 60


def test_alarm_equal_to_default_wake_does_not_override():
    alarm = NOW_TS + 300
    assert compute_wake_timestamp(NOW, QUIET, alarm, FIVE_MIN, ONE_MIN) == NOW_TS + 300


def test_past_alarm_is_ignored():
    alarm = NOW_TS - 60
    assert compute_wake_timestamp(NOW, QUIET, alarm, FIVE_MIN, ONE_MIN) == NOW_TS + 300


def test_in_quiet_hours_wakes_at_their_end():
    now = datetime.datetime(2024, 1, 1, 23, 0, tzinfo=UTC)
    end = datetime.datetime(2024, 1, 2, 6, 0, tzinfo=UTC)
    assert compute_wake_timestamp(now, QUIET, None, FIVE_MIN, ONE_MIN) == int(end.timestamp())


def test_after_midnight_uses_default_interval():
    now = datetime.datetime(2024, 1, 2, 2, 0, tzinfo=UTC)
    assert compute_wake_timestamp(now, QUIET, None, FIVE_MIN, ONE_MIN) == int(now.timestamp()) + 300


def test_alarm_during_quiet_hours_wakes_before_alarm():
    now = datetime.datetime(2024, 1, 1, 23, 0, tzinfo=UTC)
    alarm = int(datetime.datetime(2024, 1, 2, 5, 30, tzinfo=UTC).timestamp())
    lead = datetime.timedelta(minutes=10)
    assert compute_wake_timestamp(now, QUIET, alarm, FIVE_MIN, lead) == alarm - 600


def test_negative_wake_time_is_rejected():
    now = datetime.datetime(1970, 1, 1, 0, 0, 30, tzinfo=UTC)
    window = WakeWindow.from_strings("13:00", "15:00")
    with pytest.raises(WakeScheduleError):
        compute_wake_timestamp(now, window, 60, FIVE_MIN, FIVE_MIN)


def test_compute_is_idempotent():
    alarm = NOW_TS + 120
    first = compute_wake_timestamp(NOW, QUIET, alarm, FIVE_MIN, ONE_MIN)
    second = compute_wake_timestamp(NOW, QUIET, alarm, FIVE_MIN, ONE_MIN)
    assert first == second


def test_schedule_persists_and_programs_rtc(config, rtc_root):
    rtc = SysfsRTC("rtc0", root=rtc_root)
    store = WakeTimestampFile(config.wake_timestamp_file)
    scheduler = RTCWakeScheduler(config, FakeAlarms(), rtc, store)

    wake_ts = scheduler.schedule(NOW)

    assert wake_ts == NOW_TS + 300
    assert store.read() == wake_ts
    assert rtc.get_wakealarm() == wake_ts
    assert scheduler.schedule(NOW) == wake_ts


def test_schedule_rtc_mismatch_is_not_fatal(config, caplog):
    store = WakeTimestampFile(config.wake_timestamp_file)
    scheduler = RTCWakeScheduler(config, FakeAlarms(), CoercingRTC(), store)

    with caplog.at_level(logging.ERROR, logger="wakeupcheck.scheduler"):
        wake_ts = scheduler.schedule(NOW)

    assert store.read() == wake_ts
    assert "mismatch" in caplog.text


def test_schedule_persistence_failure_is_fatal(config, rtc_root, tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("")
    store = WakeTimestampFile(blocker / "wake_ts")
    scheduler = RTCWakeScheduler(config, FakeAlarms(), SysfsRTC("rtc0", root=rtc_root), store)

    with pytest.raises(WakeScheduleError):
        scheduler.schedule(NOW)


def test_missing_rtc_device(tmp_path):
    with pytest.raises(RTCException):
        SysfsRTC("rtc7", root=tmp_path)


def test_rtc_write_failure(tmp_path):
    (tmp_path / "rtc0").mkdir()
    rtc = SysfsRTC("rtc0", root=tmp_path)
    (tmp_path / "rtc0" / "wakealarm").mkdir()

    with pytest.raises(RTCException):
        rtc.set_wakealarm(NOW_TS)


def test_timestamp_file_invalid_content(tmp_path):
    path = tmp_path / "wake_ts"
    store = WakeTimestampFile(path)
    assert store.read() is None

    path.write_text("tomorrow\n")
    assert store.read() is None

    store.write(1704110400)
    assert path.read_text() == "1704110400\n"
    assert store.read() == 1704110400
