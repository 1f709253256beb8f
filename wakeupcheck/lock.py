"""Process-wide run lock based on flock(2)."""

import fcntl
import logging
import os
import pathlib

logger = logging.getLogger("wakeupcheck.lock")

DEFAULT_LOCK_PATH = "/var/lock/wakeup-check.lock"


class RunLock:
    """Exclusive lock serializing all runs.

    A second run blocks until the first one releases the lock. Use as context
    manager; the lock is released on exit. The lock file itself is kept, so
    waiting runs never end up locking an unlinked file.

    Args:
        path: Lock file location

    Example:
        >>> with RunLock("/tmp/wakeupcheck.lock"):
        ...     pass
    """

    def __init__(self, path: str | pathlib.Path = DEFAULT_LOCK_PATH):
        self.path = pathlib.Path(path)
        self._fd: int | None = None

    @property
    def locked(self) -> bool:
        return self._fd is not None

    def acquire(self):
        fd = os.open(self.path, os.O_WRONLY | os.O_CREAT, 0o644)
        try:
            fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
        except BlockingIOError:
            logger.info("Another instance is already running. Waiting...")
            try:
                fcntl.flock(fd, fcntl.LOCK_EX)
            except BaseException:
                os.close(fd)
                raise
        self._fd = fd
        logger.debug("Acquired lock %s", self.path)

    def release(self):
        if self._fd is None:
            return
        try:
            fcntl.flock(self._fd, fcntl.LOCK_UN)
        finally:
            os.close(self._fd)
            self._fd = None
        logger.info("Lockfile released.")

    def __enter__(self):
        self.acquire()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.release()
        return False
