import itertools
import subprocess
import threading
from unittest.mock import MagicMock, patch

from wakeupcheck.backends.network import PingProber


def _prober():
    return PingProber(interval=0, clock=itertools.count(0, 10).__next__)


@patch("wakeupcheck.backends.network.subprocess.run")
def test_reachable_on_first_ping(mock_run):
    mock_run.return_value = MagicMock(returncode=0)

    assert _prober().wait_for_reachable("9.9.9.9", 40) is True
    assert mock_run.call_count == 1
    assert mock_run.call_args.args[0][-1] == "9.9.9.9"


@patch("wakeupcheck.backends.network.subprocess.run")
def test_reachable_after_retries(mock_run):
    mock_run.side_effect = [MagicMock(returncode=1), MagicMock(returncode=2), MagicMock(returncode=0)]

    assert _prober().wait_for_reachable("9.9.9.9", 40) is True
    assert mock_run.call_count == 3


@patch("wakeupcheck.backends.network.subprocess.run")
def test_unreachable_until_timeout(mock_run):
    mock_run.return_value = MagicMock(returncode=1)

    assert _prober().wait_for_reachable("9.9.9.9", 40) is False
    # probes at 10s, 20s and 30s, timeout at 40s
    assert mock_run.call_count == 3


@patch("wakeupcheck.backends.network.subprocess.run")
def test_ping_failure_counts_as_unreachable(mock_run):
    mock_run.side_effect = FileNotFoundError("ping")

    assert _prober().wait_for_reachable("9.9.9.9", 40) is False


@patch("wakeupcheck.backends.network.subprocess.run")
def test_ping_timeout_counts_as_unreachable(mock_run):
    mock_run.side_effect = subprocess.TimeoutExpired("ping", 6)

    assert _prober().ping("9.9.9.9") is False


@patch("wakeupcheck.backends.network.subprocess.run")
def test_stopped_wait(mock_run):
    stop = threading.Event()
    stop.set()

    assert _prober().wait_for_reachable("9.9.9.9", 40, stop) is False
    mock_run.assert_not_called()


@patch("wakeupcheck.backends.network.subprocess.run")
def test_waits_default_interval_between_probes(mock_run):
    mock_run.return_value = MagicMock(returncode=1)
    stop = MagicMock(spec=threading.Event)
    stop.is_set.return_value = False
    prober = PingProber(clock=itertools.count(0, 10).__next__)

    assert prober.wait_for_reachable("9.9.9.9", 40, stop) is False
    assert mock_run.call_count == 3
    assert stop.wait.call_count == 3
    stop.wait.assert_called_with(1.0)
