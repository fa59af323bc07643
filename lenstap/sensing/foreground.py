"""
Foreground gate: activates the trigger engine while a camera app is in the
foreground and suspends it otherwise.
"""

from __future__ import annotations

import logging
from typing import Iterable, Optional

from lenstap.config.settings import DEFAULT_CAMERA_PACKAGES, Settings
from lenstap.sensing.engine import TriggerEngine

logger = logging.getLogger(__name__)


class ForegroundGate:
    """
    Maps window-change notifications onto ``engine.start()`` / ``engine.stop()``.

    Only transitions matter: switching from one camera app to another, or
    receiving the same package twice, does not restart the engine.

    Parameters
    ----------
    engine : TriggerEngine
        Engine to drive.
    camera_packages : iterable of str, optional
        Package names treated as camera apps. ``None`` selects the built-in
        list; an empty iterable means no app activates the engine.
    """

    def __init__(self, engine: TriggerEngine, camera_packages: Optional[Iterable[str]] = None) -> None:
        self._engine = engine
        self._packages = frozenset(
            DEFAULT_CAMERA_PACKAGES if camera_packages is None else camera_packages
        )
        self._foreground: Optional[str] = None

    @classmethod
    def from_settings(cls, engine: TriggerEngine, settings: Settings) -> "ForegroundGate":
        """Gate using the ``camera_packages`` of the application settings."""
        return cls(engine, camera_packages=settings.camera_packages)

    @property
    def camera_packages(self) -> frozenset:
        return self._packages

    @property
    def foreground_package(self) -> Optional[str]:
        return self._foreground

    def is_camera_package(self, package_name: str) -> bool:
        return package_name in self._packages

    def on_window_changed(self, package_name: Optional[str]) -> bool:
        """
        Handle a window-state change.

        A notification without a package name is ignored.

        Returns
        -------
        bool
            Whether the engine is active after the notification.
        """
        if not package_name:
            return self._engine.is_active

        self._foreground = package_name
        is_camera = self.is_camera_package(package_name)

        if is_camera and not self._engine.is_active:
            logger.info("Camera app %s in foreground, activating triggers", package_name)
            self._engine.start()
        elif not is_camera and self._engine.is_active:
            logger.info("Camera app left the foreground (now %s), suspending triggers", package_name)
            self._engine.stop()

        return self._engine.is_active

    def interrupt(self) -> None:
        """Host interruption: suspend the engine and forget the foreground app."""
        self._foreground = None
        self._engine.stop()
