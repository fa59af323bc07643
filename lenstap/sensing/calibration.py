"""
Back-tap sensitivity calibration.

The user taps the back of the device a few times while the trigger engine
is suspended. Each sharp z-axis impulse is recorded; once enough have been
collected their mean, scaled down, becomes the back-tap threshold.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import List, Optional, Tuple

from lenstap.exceptions import LensTapError
from lenstap.sensing.clock import Clock, MonotonicClock
from lenstap.sensing.preferences import KEY_BACK_TAP_THRESHOLD, PreferenceStore
from lenstap.sensing.thresholds import (
    CALIBRATION_DEBOUNCE_MS,
    CALIBRATION_IMPULSE_FLOOR,
    CALIBRATION_REQUIRED_TAPS,
    CALIBRATION_SCALE,
    calibrated_threshold,
)

logger = logging.getLogger(__name__)


class CalibrationIncompleteError(LensTapError):
    """Exception raised when a result is requested before enough taps were recorded."""
    pass


class CalibrationState(Enum):
    """Lifecycle of a calibration session."""

    IDLE = "idle"
    COLLECTING = "collecting"
    DONE = "done"


class CalibrationSession:
    """
    Collects tap impulses and reduces them to a back-tap threshold.

    An impulse is a z-axis change above ``impulse_floor`` that arrives more
    than ``debounce_ms`` after the previously recorded one (the first is never
    debounced), so one physical tap ringing through several samples is
    counted once. The floor is fixed; it does not follow the user's current
    threshold.

    When ``required_taps`` impulses are in, the threshold is
    ``mean(forces) * scale`` and, if a store is attached, it is written to
    ``back_tap_threshold``. That key is the only thing a session ever
    writes. A session abandoned early writes nothing.

    Parameters
    ----------
    store : PreferenceStore, optional
        Where the threshold is saved on completion.
    clock : Clock, optional
        Millisecond time source (``MonotonicClock`` if omitted).
    required_taps, impulse_floor, debounce_ms, scale
        Tuning constants; the defaults are 3 taps, 15.0 m/s^2, 300 ms, 0.75.
    """

    def __init__(
        self,
        store: Optional[PreferenceStore] = None,
        clock: Optional[Clock] = None,
        required_taps: int = CALIBRATION_REQUIRED_TAPS,
        impulse_floor: float = CALIBRATION_IMPULSE_FLOOR,
        debounce_ms: int = CALIBRATION_DEBOUNCE_MS,
        scale: float = CALIBRATION_SCALE,
    ) -> None:
        if required_taps < 1:
            raise ValueError("required_taps must be at least 1")
        self._store = store
        self._clock = clock or MonotonicClock()
        self._required = required_taps
        self._floor = impulse_floor
        self._debounce = debounce_ms
        self._scale = scale

        self._state = CalibrationState.IDLE
        self._forces: List[float] = []
        self._last_z = 0.0
        self._last_tap_time: Optional[int] = None
        self._threshold: Optional[float] = None

    # -- public API ----------------------------------------------------------

    @property
    def state(self) -> CalibrationState:
        return self._state

    @property
    def forces(self) -> Tuple[float, ...]:
        """Impulses recorded so far, oldest first."""
        return tuple(self._forces)

    @property
    def progress(self) -> Tuple[int, int]:
        """``(recorded, required)``"""
        return len(self._forces), self._required

    def start(self) -> None:
        """Begin (or restart) collecting. Previous impulses are discarded."""
        self._forces.clear()
        self._last_z = 0.0
        self._last_tap_time = None
        self._threshold = None
        self._state = CalibrationState.COLLECTING
        logger.info("Calibration started: tap the back of the device %d times", self._required)

    def abandon(self) -> None:
        """Stop collecting without producing a threshold."""
        if self._state is CalibrationState.COLLECTING:
            logger.info(
                "Calibration abandoned after %d of %d taps", len(self._forces), self._required
            )
            self._forces.clear()
            self._state = CalibrationState.IDLE

    def feed_accelerometer(self, x: float, y: float, z: float) -> bool:
        """
        Offer one accelerometer reading to the session.

        Only the z axis is used. Readings are ignored unless the session is
        collecting.

        Returns
        -------
        bool
            True if this reading completed the session.
        """
        if self._state is not CalibrationState.COLLECTING:
            return False

        now = self._clock.uptime_millis()
        delta_z = abs(z - self._last_z)
        self._last_z = z

        debounced = self._last_tap_time is None or now - self._last_tap_time > self._debounce
        if delta_z > self._floor and debounced:
            self._last_tap_time = now
            self._forces.append(delta_z)
            logger.info("Taps recorded: %d of %d (dz=%.2f)", len(self._forces), self._required, delta_z)

            if len(self._forces) >= self._required:
                self._finish()
                return True
        return False

    def is_complete(self) -> bool:
        return self._state is CalibrationState.DONE

    def result(self) -> float:
        """
        The calibrated threshold.

        Raises
        ------
        CalibrationIncompleteError
            If the session has not collected enough taps.
        """
        if self._threshold is None:
            recorded, required = self.progress
            raise CalibrationIncompleteError(
                f"Calibration incomplete: {recorded} of {required} taps recorded"
            )
        return self._threshold

    # -- internals -----------------------------------------------------------

    def _finish(self) -> None:
        self._threshold = calibrated_threshold(self._forces, self._scale)
        self._state = CalibrationState.DONE
        if self._store is not None:
            self._store.put_float(KEY_BACK_TAP_THRESHOLD, self._threshold)
        logger.info("Calibration complete! Sensitivity set to %.2f", self._threshold)

    def __repr__(self) -> str:
        recorded, required = self.progress
        return f"CalibrationSession(state={self._state.value}, taps={recorded}/{required})"
