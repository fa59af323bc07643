"""
Timing constants and threshold arithmetic shared by the detectors and the
calibration session.

All times are milliseconds, all accelerations m/s^2.
"""

from __future__ import annotations

from typing import Sequence, Tuple

import numpy as np

# -- proximity wave ---------------------------------------------------------
PROXIMITY_WAVE_MAX_MS = 500

# -- shake ------------------------------------------------------------------
SHAKE_BASE_THRESHOLD = 10.0     # threshold at sensitivity 100
SHAKE_MAX_THRESHOLD = 60.0      # threshold at sensitivity 0
SHAKE_COOLDOWN_MS = 500

# -- back-tap double tap ----------------------------------------------------
BACK_TAP_WINDOW_MS = 500
BACK_TAP_COOLDOWN_MS = 1000

# -- single-event gates -----------------------------------------------------
FINGERPRINT_COOLDOWN_MS = 500
VOLUME_KEY_COOLDOWN_MS = 500

# -- calibration ------------------------------------------------------------
CALIBRATION_IMPULSE_FLOOR = 15.0
CALIBRATION_DEBOUNCE_MS = 300
CALIBRATION_REQUIRED_TAPS = 3
CALIBRATION_SCALE = 0.75


def shake_threshold(sensitivity: int) -> float:
    """
    Map a 0-100 sensitivity onto the shake threshold.

    Higher sensitivity means a lower threshold: 0 -> 60.0, 50 -> 35.0,
    100 -> 10.0.
    """
    progress = sensitivity / 100.0
    return SHAKE_MAX_THRESHOLD - progress * (SHAKE_MAX_THRESHOLD - SHAKE_BASE_THRESHOLD)


def axis_deltas(
    current: Tuple[float, float, float],
    previous: Tuple[float, float, float],
) -> Tuple[float, float, float]:
    """Absolute per-axis change between two accelerometer readings."""
    return (
        abs(current[0] - previous[0]),
        abs(current[1] - previous[1]),
        abs(current[2] - previous[2]),
    )


def calibrated_threshold(forces: Sequence[float], scale: float = CALIBRATION_SCALE) -> float:
    """
    Reduce recorded tap impulses to a back-tap threshold.

    The threshold is ``scale`` times the mean impulse, so a tap about as
    hard as the calibration taps clears it comfortably.

    Raises
    ------
    ValueError
        If *forces* is empty.
    """
    if len(forces) == 0:
        raise ValueError("Cannot derive a threshold from zero recorded impulses")
    return float(np.mean(np.asarray(forces, dtype=np.float64)) * scale)
