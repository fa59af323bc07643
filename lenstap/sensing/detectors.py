"""
Stateful gesture detectors.

Each detector consumes one event stream and returns a fire decision per
event. Detectors never read each other's state; the only value two of them
share is the previous accelerometer reading, which the engine owns and
passes in by value.

Detectors:
    ProximityWaveDetector     -- brief cover/uncover of the proximity sensor
    ShakeTapDetector          -- sharp acceleration change on any axis
    BackTapDoubleTapDetector  -- two z-axis impulses inside a short window
    FingerprintSwipeDetector  -- touch-move on the capture surface, debounced
    VolumeKeyDetector         -- volume key-down, debounced

Every ``update`` takes an ``enabled`` flag read from the current preference
snapshot. A disabled detector returns False and leaves its state untouched.
Numeric settings are assumed to be within their documented ranges.
"""

from __future__ import annotations

import logging
from typing import Optional

from lenstap.sensing.thresholds import (
    BACK_TAP_COOLDOWN_MS,
    BACK_TAP_WINDOW_MS,
    FINGERPRINT_COOLDOWN_MS,
    PROXIMITY_WAVE_MAX_MS,
    SHAKE_COOLDOWN_MS,
    VOLUME_KEY_COOLDOWN_MS,
    axis_deltas,
    shake_threshold,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Proximity wave
# ---------------------------------------------------------------------------

class ProximityWaveDetector:
    """
    Fires when the proximity sensor is covered and uncovered again in less
    than ``max_duration_ms``. A long occlusion (phone in a pocket, face on a
    call) is ignored.
    """

    def __init__(self, max_duration_ms: int = PROXIMITY_WAVE_MAX_MS) -> None:
        self._max_duration = max_duration_ms
        self.reset()

    def reset(self) -> None:
        self.covered = False
        self.cover_time = 0

    def update(self, distance: float, max_range: float, now: int, enabled: bool) -> bool:
        if not enabled:
            return False

        if distance < max_range:
            if not self.covered:
                self.covered = True
                self.cover_time = now
            return False

        if self.covered:
            duration = now - self.cover_time
            self.covered = False
            if duration < self._max_duration:
                return True
            logger.debug("Proximity covered for %d ms, too long for a wave", duration)
        return False


# ---------------------------------------------------------------------------
# Shake
# ---------------------------------------------------------------------------

class ShakeTapDetector:
    """
    Fires when the change of any axis since the previous reading exceeds a
    sensitivity-scaled threshold, at most once per ``cooldown_ms``.
    """

    def __init__(self, cooldown_ms: int = SHAKE_COOLDOWN_MS) -> None:
        self._cooldown = cooldown_ms
        self.reset()

    def reset(self) -> None:
        self.last_fire_time: Optional[int] = None

    def update(
        self,
        x: float,
        y: float,
        z: float,
        last_x: float,
        last_y: float,
        last_z: float,
        sensitivity: int,
        now: int,
        enabled: bool,
    ) -> bool:
        if not enabled:
            return False

        if self.last_fire_time is not None and now - self.last_fire_time < self._cooldown:
            return False

        threshold = shake_threshold(sensitivity)
        if any(d > threshold for d in axis_deltas((x, y, z), (last_x, last_y, last_z))):
            self.last_fire_time = now
            return True
        return False


# ---------------------------------------------------------------------------
# Back-tap double tap
# ---------------------------------------------------------------------------

class BackTapDoubleTapDetector:
    """
    Fires on two z-axis impulses above the calibrated threshold whose
    spacing is at most ``window_ms``.

    After a fire the window is anchored at ``suppressed_until`` (fire time
    plus ``cooldown_ms``) instead of the last tap. The counter is zero at
    that point, so the next qualifying impulse always opens a new sequence
    at one. The anchor is released as soon as a new impulse registers.

    Per event the order is: impulse check, count update, fire check, then
    expiry of a stale sequence.
    """

    def __init__(
        self,
        window_ms: int = BACK_TAP_WINDOW_MS,
        cooldown_ms: int = BACK_TAP_COOLDOWN_MS,
    ) -> None:
        self._window = window_ms
        self._cooldown = cooldown_ms
        self.reset()

    def reset(self) -> None:
        self.tap_count = 0
        self.last_tap_time = 0
        self.suppressed_until: Optional[int] = None

    @property
    def window_anchor(self) -> int:
        """Time the double-tap window is measured from."""
        if self.suppressed_until is not None:
            return self.suppressed_until
        return self.last_tap_time

    def update(self, z: float, last_z: float, threshold: float, now: int, enabled: bool) -> bool:
        if not enabled:
            return False

        delta_z = abs(z - last_z)
        if delta_z > threshold:
            if now - self.window_anchor > self._window:
                self.tap_count = 1
            else:
                self.tap_count += 1
            self.last_tap_time = now
            self.suppressed_until = None
            logger.debug("Back tap %d registered (dz=%.2f > %.2f)", self.tap_count, delta_z, threshold)

            if self.tap_count == 2:
                self.tap_count = 0
                self.suppressed_until = now + self._cooldown
                return True

        if now - self.window_anchor > self._window:
            self.tap_count = 0

        return False


# ---------------------------------------------------------------------------
# Single-event cooldown gates
# ---------------------------------------------------------------------------

class CooldownGate:
    """Fires on an event unless the previous fire is at most ``cooldown_ms`` old."""

    def __init__(self, cooldown_ms: int) -> None:
        self._cooldown = cooldown_ms
        self.reset()

    def reset(self) -> None:
        self.last_fire_time: Optional[int] = None

    def update(self, now: int, enabled: bool) -> bool:
        if not enabled:
            return False

        if self.last_fire_time is None or now - self.last_fire_time > self._cooldown:
            self.last_fire_time = now
            return True
        return False


class FingerprintSwipeDetector(CooldownGate):
    """Touch-move events from the fingerprint-area capture surface."""

    def __init__(self, cooldown_ms: int = FINGERPRINT_COOLDOWN_MS) -> None:
        super().__init__(cooldown_ms)


class VolumeKeyDetector(CooldownGate):
    """Volume up/down key-down events."""

    def __init__(self, cooldown_ms: int = VOLUME_KEY_COOLDOWN_MS) -> None:
        super().__init__(cooldown_ms)
