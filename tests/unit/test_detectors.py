"""
Unit tests for the gesture detectors.

Tests cover:
    - Disabled detectors never fire and never change state
    - Proximity wave duration limit
    - Shake sensitivity scaling and cooldown
    - Back-tap double-tap window, restart and stale-sequence expiry
    - Back-tap behaviour after a fire (cooldown anchor)
    - Fingerprint / volume-key cooldown gates
"""

from __future__ import annotations

import pytest

from lenstap.sensing.detectors import (
    BackTapDoubleTapDetector,
    FingerprintSwipeDetector,
    ProximityWaveDetector,
    ShakeTapDetector,
    VolumeKeyDetector,
)
from lenstap.sensing.thresholds import (
    axis_deltas,
    calibrated_threshold,
    shake_threshold,
)


# ===========================================================================
# Threshold helpers
# ===========================================================================

class TestThresholds:
    def test_shake_threshold_endpoints(self):
        assert shake_threshold(0) == pytest.approx(60.0)
        assert shake_threshold(50) == pytest.approx(35.0)
        assert shake_threshold(100) == pytest.approx(10.0)

    def test_higher_sensitivity_lowers_threshold(self):
        assert shake_threshold(80) < shake_threshold(20)

    def test_axis_deltas_are_absolute(self):
        assert axis_deltas((1.0, -2.0, 3.0), (4.0, 2.0, 3.0)) == (3.0, 4.0, 0.0)

    def test_calibrated_threshold_is_scaled_mean(self):
        assert calibrated_threshold([20.0, 22.0, 21.0]) == pytest.approx(15.75)

    def test_calibrated_threshold_rejects_empty(self):
        with pytest.raises(ValueError, match="zero recorded impulses"):
            calibrated_threshold([])


# ===========================================================================
# Proximity wave
# ===========================================================================

class TestProximityWaveDetector:
    def test_brief_cover_fires_once(self):
        det = ProximityWaveDetector()
        assert det.update(0.0, 5.0, now=0, enabled=True) is False
        assert det.covered is True
        assert det.update(5.0, 5.0, now=100, enabled=True) is True
        assert det.covered is False
        # Further uncovered readings do not fire again
        assert det.update(5.0, 5.0, now=150, enabled=True) is False

    def test_long_cover_never_fires(self):
        det = ProximityWaveDetector()
        det.update(0.0, 5.0, now=0, enabled=True)
        assert det.update(5.0, 5.0, now=500, enabled=True) is False
        assert det.covered is False

    def test_repeated_covered_readings_keep_first_cover_time(self):
        det = ProximityWaveDetector()
        det.update(0.0, 5.0, now=0, enabled=True)
        det.update(1.0, 5.0, now=300, enabled=True)
        assert det.cover_time == 0
        assert det.update(5.0, 5.0, now=450, enabled=True) is True

    def test_uncover_without_cover_is_ignored(self):
        det = ProximityWaveDetector()
        assert det.update(5.0, 5.0, now=10, enabled=True) is False

    def test_disabled_never_fires_or_mutates(self):
        det = ProximityWaveDetector()
        assert det.update(0.0, 5.0, now=0, enabled=False) is False
        assert det.covered is False
        assert det.cover_time == 0
        assert det.update(5.0, 5.0, now=100, enabled=False) is False

    def test_reset_forgets_cover(self):
        det = ProximityWaveDetector()
        det.update(0.0, 5.0, now=0, enabled=True)
        det.reset()
        assert det.update(5.0, 5.0, now=100, enabled=True) is False


# ===========================================================================
# Shake
# ===========================================================================

class TestShakeTapDetector:
    def test_large_delta_fires(self):
        det = ShakeTapDetector()
        assert det.update(50.0, 50.0, 50.0, 0.0, 0.0, 0.0, sensitivity=50, now=0, enabled=True) is True
        assert det.last_fire_time == 0

    def test_small_delta_does_not_fire(self):
        det = ShakeTapDetector()
        assert det.update(1.0, 1.0, 1.0, 0.0, 0.0, 0.0, sensitivity=50, now=0, enabled=True) is False
        assert det.last_fire_time is None

    def test_any_single_axis_is_enough(self):
        det = ShakeTapDetector()
        assert det.update(0.0, -36.0, 0.0, 0.0, 0.0, 0.0, sensitivity=50, now=0, enabled=True) is True

    def test_cooldown_suppresses_second_fire(self):
        det = ShakeTapDetector()
        results = [
            det.update(40.0, 0.0, 0.0, 0.0, 0.0, 0.0, sensitivity=50, now=0, enabled=True),
            det.update(0.0, 0.0, 0.0, 40.0, 0.0, 0.0, sensitivity=50, now=499, enabled=True),
        ]
        assert results.count(True) == 1
        assert det.last_fire_time == 0

    def test_fires_again_once_cooldown_elapsed(self):
        det = ShakeTapDetector()
        det.update(40.0, 0.0, 0.0, 0.0, 0.0, 0.0, sensitivity=50, now=0, enabled=True)
        assert det.update(0.0, 0.0, 0.0, 40.0, 0.0, 0.0, sensitivity=50, now=500, enabled=True) is True
        assert det.last_fire_time == 500

    def test_high_sensitivity_accepts_smaller_delta(self):
        low = ShakeTapDetector()
        high = ShakeTapDetector()
        args = (20.0, 0.0, 0.0, 0.0, 0.0, 0.0)
        assert low.update(*args, sensitivity=0, now=0, enabled=True) is False
        assert high.update(*args, sensitivity=100, now=0, enabled=True) is True

    def test_disabled_never_fires_or_mutates(self):
        det = ShakeTapDetector()
        assert det.update(90.0, 90.0, 90.0, 0.0, 0.0, 0.0, sensitivity=100, now=0, enabled=False) is False
        assert det.last_fire_time is None


# ===========================================================================
# Back-tap double tap
# ===========================================================================

class TestBackTapDoubleTapDetector:
    def test_two_taps_inside_window_fire_once_and_reset(self):
        det = BackTapDoubleTapDetector()
        assert det.update(12.0, 0.0, threshold=10.0, now=0, enabled=True) is False
        assert det.tap_count == 1
        assert det.update(26.0, 12.0, threshold=10.0, now=200, enabled=True) is True
        assert det.tap_count == 0
        assert det.suppressed_until == 1200

    def test_second_tap_after_window_restarts_at_one(self):
        det = BackTapDoubleTapDetector()
        det.update(12.0, 0.0, threshold=10.0, now=0, enabled=True)
        assert det.update(26.0, 12.0, threshold=10.0, now=600, enabled=True) is False
        assert det.tap_count == 1
        assert det.last_tap_time == 600

    def test_delta_must_exceed_threshold(self):
        det = BackTapDoubleTapDetector()
        assert det.update(10.0, 0.0, threshold=10.0, now=0, enabled=True) is False
        assert det.tap_count == 0

    def test_stale_sequence_expires_on_quiet_sample(self):
        det = BackTapDoubleTapDetector()
        det.update(12.0, 0.0, threshold=10.0, now=0, enabled=True)
        det.update(12.1, 12.0, threshold=10.0, now=400, enabled=True)
        assert det.tap_count == 1
        det.update(12.2, 12.1, threshold=10.0, now=501, enabled=True)
        assert det.tap_count == 0

    def test_next_sequence_after_fire_starts_at_one(self):
        det = BackTapDoubleTapDetector()
        det.update(12.0, 0.0, threshold=10.0, now=0, enabled=True)
        det.update(26.0, 12.0, threshold=10.0, now=200, enabled=True)

        assert det.update(40.0, 26.0, threshold=10.0, now=300, enabled=True) is False
        assert det.tap_count == 1
        assert det.suppressed_until is None
        assert det.last_tap_time == 300

    def test_tap_far_beyond_cooldown_also_starts_at_one(self):
        det = BackTapDoubleTapDetector()
        det.update(12.0, 0.0, threshold=10.0, now=0, enabled=True)
        det.update(26.0, 12.0, threshold=10.0, now=200, enabled=True)

        assert det.update(40.0, 26.0, threshold=10.0, now=5000, enabled=True) is False
        assert det.tap_count == 1

    def test_window_anchor_follows_cooldown(self):
        det = BackTapDoubleTapDetector()
        assert det.window_anchor == 0
        det.update(12.0, 0.0, threshold=10.0, now=0, enabled=True)
        det.update(26.0, 12.0, threshold=10.0, now=200, enabled=True)
        assert det.window_anchor == 1200
        # A quiet sample inside the cooldown leaves it armed
        det.update(26.1, 26.0, threshold=10.0, now=800, enabled=True)
        assert det.window_anchor == 1200
        assert det.tap_count == 0

    def test_disabled_never_fires_or_mutates(self):
        det = BackTapDoubleTapDetector()
        assert det.update(50.0, 0.0, threshold=10.0, now=0, enabled=False) is False
        assert det.update(0.0, 50.0, threshold=10.0, now=100, enabled=False) is False
        assert det.tap_count == 0
        assert det.last_tap_time == 0
        assert det.suppressed_until is None


# ===========================================================================
# Cooldown gates
# ===========================================================================

@pytest.mark.parametrize("detector_cls", [FingerprintSwipeDetector, VolumeKeyDetector])
class TestCooldownGates:
    def test_first_event_fires(self, detector_cls):
        det = detector_cls()
        assert det.update(now=0, enabled=True) is True
        assert det.last_fire_time == 0

    def test_cooldown_then_fire_again(self, detector_cls):
        det = detector_cls()
        assert det.update(now=0, enabled=True) is True
        assert det.update(now=100, enabled=True) is False
        assert det.update(now=500, enabled=True) is False
        assert det.update(now=600, enabled=True) is True

    def test_suppressed_event_does_not_extend_cooldown(self, detector_cls):
        det = detector_cls()
        det.update(now=0, enabled=True)
        det.update(now=400, enabled=True)
        assert det.update(now=501, enabled=True) is True

    def test_disabled_never_fires_or_mutates(self, detector_cls):
        det = detector_cls()
        assert det.update(now=0, enabled=False) is False
        assert det.last_fire_time is None
