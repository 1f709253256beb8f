"""Access to the desktop user's session and to system power commands.

The daemon runs as root from a systemd sleep hook, while alarms, notifications
and the screensaver live in the session bus of the desktop user. Commands
targeting the session are therefore run via ``sudo -u``.
"""

import logging
import pathlib
import pwd
import shutil
import subprocess

logger = logging.getLogger("wakeupcheck.backends.session")

RUNTIME_ROOT = "/run/user"


class UserSession:
    """Desktop session of the target user.

    Args:
        user: Name of the desktop user
        runtime_root: Parent directory of the per-user runtime directories

    Raises:
        KeyError: If the user doesn't exist
        FileNotFoundError: If the user has no running session
    """

    def __init__(self, user: str, runtime_root: str | pathlib.Path = RUNTIME_ROOT):
        self.user = user
        self.uid = pwd.getpwnam(user).pw_uid
        self.runtime_dir = pathlib.Path(runtime_root) / str(self.uid)

        if not self.runtime_dir.is_dir():
            raise FileNotFoundError(f"DBus session for user {user} not found")

    @property
    def bus_address(self) -> str:
        return f"unix:path={self.runtime_dir}/bus"

    def command(self, args: list[str]) -> list[str]:
        """Wrap a command to run inside the user's session."""
        return ["sudo", "-u", self.user, f"DBUS_SESSION_BUS_ADDRESS={self.bus_address}", *args]

    def run(self, args: list[str], timeout: float | None = 30) -> subprocess.CompletedProcess:
        """Run a command inside the user's session.

        Raises:
            OSError: If the command couldn't be started
            subprocess.SubprocessError: On failure or timeout
        """
        return subprocess.run(self.command(args), check=True, capture_output=True, text=True, timeout=timeout)


def missing_commands(commands) -> list[str]:
    """Get the commands that are not available on PATH."""
    missing = []
    for command in commands:
        if shutil.which(command) is None:
            logger.error("'%s' is not installed or not in PATH.", command)
            missing.append(command)
    return missing


def request_suspend() -> bool:
    """Ask systemd to suspend the system.

    Returns:
        True if the request was accepted, False otherwise.
    """
    logger.info("Requesting system suspend")
    try:
        subprocess.run(["systemctl", "suspend"], check=True, capture_output=True, text=True, timeout=30)
        return True
    except (OSError, subprocess.SubprocessError) as e:
        logger.error("Failed to request suspend: %s", e)
        return False


def fbcli_alert(session: UserSession, event: str = "message-new-instant") -> bool:
    """Trigger haptic/audio feedback for a notification via feedbackd's fbcli."""
    if shutil.which("fbcli") is None:
        logger.error("fbcli not found, skipping fbcli notifications")
        return False

    logger.info("Using fbcli for notification")
    try:
        subprocess.run(
            ["sudo", "-u", session.user, "fbcli", "-E", event],
            check=True,
            capture_output=True,
            text=True,
            timeout=60,
        )
        return True
    except (OSError, subprocess.SubprocessError) as e:
        logger.error("fbcli failed: %s", e)
        return False
