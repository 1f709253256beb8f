"""Connectivity prober based on ping."""

import logging
import subprocess
import threading
import time

from .base import ConnectivityProber

logger = logging.getLogger("wakeupcheck.backends.network")


class PingProber(ConnectivityProber):
    """Poll a host with ICMP echo requests until it answers.

    Args:
        interval: Seconds between two probes (default: 1)
        clock: Monotonic clock, replaceable for tests
    """

    def __init__(self, interval: float = 1.0, clock=time.monotonic):
        self._interval = interval
        self._clock = clock

    def ping(self, host: str) -> bool:
        try:
            result = subprocess.run(
                ["ping", "-c", "1", "-W", "1", host],
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                timeout=max(self._interval, 1) + 5,
            )
        except (OSError, subprocess.SubprocessError) as e:
            logger.debug("ping %s failed: %s", host, e)
            return False
        return result.returncode == 0

    def wait_for_reachable(self, host: str, max_wait: float, stop: threading.Event | None = None) -> bool:
        logger.info("Waiting up to %s seconds for internet...", max_wait)
        stop = stop or threading.Event()
        start = self._clock()

        while not stop.is_set():
            elapsed = self._clock() - start
            if elapsed >= max_wait:
                logger.error(
                    "Timeout reached. Internet connection not available within %s seconds.", max_wait
                )
                return False

            if self.ping(host):
                logger.info("Internet connection established after %d seconds.", elapsed)
                return True

            stop.wait(self._interval)

        logger.warning("Waiting for internet cancelled")
        return False
