"""Notification watcher based on ``busctl monitor``.

Desktop notifications are method calls to ``org.freedesktop.Notifications``
on the user's session bus. ``busctl --json=short`` prints each observed
message as one JSON object per line; for a ``Notify`` call the payload is the
argument list ``(app_name, replaces_id, app_icon, summary, body, actions,
hints, expire_timeout)``.
"""

import json
import logging
import os
import selectors
import subprocess
import threading
import time

from .base import NotificationWatcher, WatchOutcome, WatchResult, Whitelist
from .session import UserSession

logger = logging.getLogger("wakeupcheck.backends.notifications")

MONITOR_COMMAND = ["busctl", "--user", "monitor", "org.freedesktop.Notifications", "--json=short"]

# how often the stop event is checked while no output arrives
POLL_INTERVAL = 0.5


def resolve_app_name(app_name: str | None, desktop_entry: str | None) -> str:
    """Resolve the app a notification originates from.

    The desktop entry hint is preferred; its last dot-delimited segment names
    the app, e.g. ``sm.puri.Chatty`` resolves to ``Chatty``.
    """
    if desktop_entry:
        return desktop_entry.rsplit(".", 1)[-1]
    return app_name or ""


def notification_app(line: str | bytes) -> str | None:
    """Get the originating app of a busctl JSON line.

    Returns:
        App name if the line is a Notify call, None otherwise
    """
    try:
        message = json.loads(line)
    except ValueError:
        logger.debug("Ignoring unparsable monitor output: %r", line)
        return None

    if not isinstance(message, dict) or message.get("member") != "Notify":
        return None

    data = (message.get("payload") or {}).get("data") or []
    app_name = data[0] if data and isinstance(data[0], str) else None

    desktop_entry = None
    if len(data) > 6 and isinstance(data[6], dict):
        entry = data[6].get("desktop-entry")
        if isinstance(entry, dict) and isinstance(entry.get("data"), str):
            desktop_entry = entry["data"]

    return resolve_app_name(app_name, desktop_entry)


def _terminate(proc: subprocess.Popen):
    if proc.poll() is not None:
        return
    proc.terminate()
    try:
        proc.wait(timeout=2)
    except subprocess.TimeoutExpired:
        proc.kill()
        proc.wait()


class BusctlNotificationWatcher(NotificationWatcher):
    """Watch notifications in the user's session with busctl.

    Args:
        session: Desktop session to monitor
        command: Monitor command, overrides the session based command
        clock: Monotonic clock, replaceable for tests
    """

    def __init__(self, session: UserSession | None = None, command: list[str] | None = None, clock=time.monotonic):
        if command is None:
            if session is None:
                raise ValueError("Either session or command is required")
            command = session.command(MONITOR_COMMAND)
        self._command = command
        self._clock = clock

    def watch(self, timeout: float, whitelist: Whitelist, stop: threading.Event | None = None) -> WatchResult:
        logger.info("Monitoring notifications for %s seconds...", timeout)
        stop = stop or threading.Event()

        try:
            proc = subprocess.Popen(self._command, stdout=subprocess.PIPE, stderr=subprocess.DEVNULL)
        except OSError as e:
            logger.error("Couldn't start notification monitor: %s", e)
            return WatchResult(WatchOutcome.ERROR)

        last_app: str | None = None
        deadline = self._clock() + timeout
        fd = proc.stdout.fileno()
        buffer = b""

        try:
            with selectors.DefaultSelector() as selector:
                selector.register(fd, selectors.EVENT_READ)

                while not stop.is_set():
                    remaining = deadline - self._clock()
                    if remaining <= 0:
                        break
                    if not selector.select(min(remaining, POLL_INTERVAL)):
                        continue

                    chunk = os.read(fd, 4096)
                    if not chunk:
                        returncode = proc.wait()
                        if returncode != 0:
                            logger.error("Notification monitor exited with code %s", returncode)
                            return WatchResult(WatchOutcome.ERROR)
                        logger.warning("Notification monitor ended early")
                        break

                    buffer += chunk
                    while b"\n" in buffer:
                        line, buffer = buffer.split(b"\n", 1)
                        app = notification_app(line)
                        if app is None:
                            continue

                        if app in whitelist:
                            logger.info("Allowed notification from: %s", app)
                            return WatchResult(WatchOutcome.ALLOWED, app)

                        logger.info("Disallowed notification from: %s", app)
                        last_app = app
        except OSError as e:
            logger.error("Reading notification monitor failed: %s", e)
            return WatchResult(WatchOutcome.ERROR)
        finally:
            _terminate(proc)
            proc.stdout.close()

        if last_app is not None:
            return WatchResult(WatchOutcome.DISALLOWED, last_app)
        return WatchResult(WatchOutcome.TIMEOUT)
