"""Base classes for the collaborators of the wake decision logic.

This module defines the interfaces the core needs from the outside world:
alarms, notifications, display control and connectivity. Implementations
never raise across these interfaces; they log and return sentinel values.
"""

import dataclasses
import enum
import threading


class WatchOutcome(enum.Enum):
    """Result kinds of a notification watch.

    Attributes:
        ALLOWED: A notification from a whitelisted app was observed
        DISALLOWED: Notifications were observed, none from a whitelisted app
        TIMEOUT: No notification arrived before the timeout
        ERROR: The watcher failed internally
    """

    ALLOWED = "allowed"
    DISALLOWED = "disallowed"
    TIMEOUT = "timeout"
    ERROR = "error"


@dataclasses.dataclass(frozen=True)
class WatchResult:
    outcome: WatchOutcome
    app: str | None = None


class AlarmProvider:
    """Source of scheduled user alarms."""

    def next_alarm(self) -> int | None:
        """Get the earliest scheduled alarm.

        Returns:
            Ring time of the earliest alarm as Unix timestamp, or None if no
            alarm is scheduled or alarms couldn't be read.
        """
        raise NotImplementedError


class NotificationWatcher:
    """Observer of desktop notifications."""

    def watch(
        self,
        timeout: float,
        whitelist: "Whitelist",
        stop: threading.Event | None = None,
    ) -> WatchResult:
        """Watch for notifications for a bounded time.

        Args:
            timeout: Seconds to watch before giving up
            whitelist: Apps allowed to notify the user
            stop: Event ending the watch early when set

        Returns:
            WatchResult, ALLOWED as soon as a whitelisted app notifies.
        """
        raise NotImplementedError


class DisplayController:
    """Switches the display on and off."""

    def on(self):
        raise NotImplementedError

    def off(self):
        raise NotImplementedError


class ConnectivityProber:
    """Checks network reachability."""

    def wait_for_reachable(self, host: str, max_wait: float, stop: threading.Event | None = None) -> bool:
        """Wait until ``host`` is reachable.

        Args:
            host: Host to probe
            max_wait: Seconds to wait at most
            stop: Event ending the wait early when set

        Returns:
            True if the host became reachable in time, False otherwise.
        """
        raise NotImplementedError


class Whitelist:
    """Ordered set of app identifiers, matched case-insensitively.

    Example:
        >>> "Signal" in Whitelist(["signal", "chatty"])
        True
    """

    def __init__(self, apps):
        self._apps = tuple(dict.fromkeys(str(app).casefold() for app in apps))

    def __contains__(self, app) -> bool:
        if not app:
            return False
        return str(app).casefold() in self._apps

    def __iter__(self):
        return iter(self._apps)

    def __len__(self):
        return len(self._apps)

    def __repr__(self):
        return f"{self.__class__.__name__}({list(self._apps)})"
