"""Collaborator implementations for wakeupcheck.

This package contains the system- and desktop-specific parts: RTC, display,
alarms, notifications, connectivity and the user session.
"""

from .alarms import GnomeClocksAlarms
from .base import (
    AlarmProvider,
    ConnectivityProber,
    DisplayController,
    NotificationWatcher,
    WatchOutcome,
    WatchResult,
    Whitelist,
)
from .display import BrightnessDisplay, ScreensaverDisplay, create_display
from .network import PingProber
from .notifications import BusctlNotificationWatcher
from .rtc import RTCException, SysfsRTC
from .session import UserSession

__all__ = [
    "AlarmProvider",
    "BrightnessDisplay",
    "BusctlNotificationWatcher",
    "ConnectivityProber",
    "DisplayController",
    "GnomeClocksAlarms",
    "NotificationWatcher",
    "PingProber",
    "RTCException",
    "ScreensaverDisplay",
    "SysfsRTC",
    "UserSession",
    "WatchOutcome",
    "WatchResult",
    "Whitelist",
    "create_display",
]
