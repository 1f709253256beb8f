"""Display control backends.

Two interchangeable strategies are supported: writing the backlight
brightness directly, or activating the GNOME screensaver via the session bus.
"""

import logging
import pathlib
import subprocess

from .. import DisplayControlMethod
from .base import DisplayController
from .session import UserSession

logger = logging.getLogger("wakeupcheck.backends.display")

DEFAULT_BRIGHTNESS = 50


def _read_int(path: pathlib.Path) -> int | None:
    try:
        return int(path.read_text().strip())
    except (IOError, OSError, ValueError):
        return None


class BrightnessDisplay(DisplayController):
    """Turn the display off by setting the backlight brightness to 0.

    The brightness before switching off is saved to a file, so it survives the
    suspend and can be restored afterwards.

    Args:
        brightness_path: Backlight brightness file
        save_path: File holding the saved brightness
        default_brightness: Value saved if the display is already off and no
            saved value exists
    """

    def __init__(self, brightness_path: pathlib.Path, save_path: pathlib.Path, default_brightness: int):
        self._brightness_path = pathlib.Path(brightness_path)
        self._save_path = pathlib.Path(save_path)
        self._default_brightness = default_brightness

    def _save(self, value: int) -> bool:
        try:
            self._save_path.parent.mkdir(parents=True, exist_ok=True)
            self._save_path.write_text(f"{value}\n")
            return True
        except (IOError, OSError) as e:
            logger.error("Failed to save brightness to %s: %s", self._save_path, e)
            return False

    def off(self):
        logger.info("Turning off display (brightness)")

        if not self._brightness_path.exists():
            logger.error("Brightness path not found: %s", self._brightness_path)
            return

        current = _read_int(self._brightness_path)
        if current:
            if self._save(current):
                logger.info("Saved current brightness value: %s", current)
        else:
            logger.warning("Current brightness is 0")
            saved = _read_int(self._save_path)
            if saved:
                logger.info("Existing saved brightness value (%s) is valid.", saved)
            else:
                logger.warning("No valid saved brightness, saving default brightness %s", self._default_brightness)
                self._save(self._default_brightness)

        try:
            self._brightness_path.write_text("0")
            logger.info("Brightness successfully set to 0")
        except (IOError, OSError) as e:
            logger.error("Failed to set brightness to 0: %s", e)

    def on(self):
        logger.info("Turning on display (brightness)")

        saved = _read_int(self._save_path)
        if saved:
            brightness = saved
            logger.info("Restored saved brightness value: %s", brightness)
        else:
            brightness = DEFAULT_BRIGHTNESS
            logger.warning("No valid saved brightness value found, setting brightness to %s", brightness)

        try:
            self._brightness_path.write_text(str(brightness))
            logger.info("Brightness set to %s", brightness)
        except (IOError, OSError) as e:
            logger.error("Failed to set brightness to %s: %s", brightness, e)


class ScreensaverDisplay(DisplayController):
    """Turn the display off by activating the GNOME screensaver.

    Args:
        session: Desktop session the screensaver runs in
    """

    def __init__(self, session: UserSession):
        self._session = session

    def _set_active(self, active: bool) -> bool:
        try:
            self._session.run(
                [
                    "gdbus",
                    "call",
                    "--session",
                    "--dest",
                    "org.gnome.ScreenSaver",
                    "--object-path",
                    "/org/gnome/ScreenSaver",
                    "--method",
                    "org.gnome.ScreenSaver.SetActive",
                    "true" if active else "false",
                ]
            )
            return True
        except (OSError, subprocess.SubprocessError) as e:
            logger.error("GNOME ScreenSaver call failed: %s", e)
            return False

    def off(self):
        logger.info("Turning off display (screensaver)")
        if self._set_active(True):
            logger.info("Display locked via GNOME ScreenSaver")
        else:
            logger.error("Failed to lock display via GNOME ScreenSaver")

    def on(self):
        logger.info("Turning on display (screensaver)")
        if self._set_active(False):
            logger.info("Display unlock requested via GNOME ScreenSaver")
        else:
            logger.error("Failed to unlock display via GNOME ScreenSaver")


def create_display(method: DisplayControlMethod, config, session: UserSession | None) -> DisplayController:
    """Create the display controller for the configured method.

    Args:
        method: Selected display control method
        config: Configuration providing brightness paths and defaults
        session: Desktop session, required for the screensaver method

    Raises:
        ValueError: If the method is not handled
    """
    if method is DisplayControlMethod.BRIGHTNESS:
        return BrightnessDisplay(config.brightness_path, config.brightness_save_path, config.brightness)
    elif method is DisplayControlMethod.SCREENSAVER:
        if session is None:
            raise ValueError("Screensaver display control requires a user session")
        return ScreensaverDisplay(session)
    else:
        raise ValueError(f"Unhandled display control method: {method}")
