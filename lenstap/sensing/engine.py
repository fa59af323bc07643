"""
Trigger engine: routes typed sensor samples to the detectors and turns a
fire decision into a single "take picture" signal.

The engine is synchronous. Each sample is handled to completion, the
preference snapshot is re-read for every sample, and the fire callback is
invoked inline before ``dispatch`` returns.
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Optional

from lenstap.sensing.clock import Clock, MonotonicClock
from lenstap.sensing.detectors import (
    BackTapDoubleTapDetector,
    FingerprintSwipeDetector,
    ProximityWaveDetector,
    ShakeTapDetector,
    VolumeKeyDetector,
)
from lenstap.sensing.events import (
    AccelerometerSample,
    KeyPressSample,
    ProximitySample,
    SampleType,
    SensorSample,
    TouchMoveSample,
)
from lenstap.sensing.preferences import PreferenceStore, TriggerPreferences, read_preferences

logger = logging.getLogger(__name__)


class TriggerSource(Enum):
    """Which detector produced a fire."""

    PROXIMITY_WAVE = "proximity_wave"
    SHAKE = "shake"
    BACK_TAP = "back_tap"
    FINGERPRINT = "fingerprint"
    VOLUME_KEY = "volume_key"


@dataclass(frozen=True)
class TriggerEvent:
    """A fire decision, handed to the ``on_fire`` callback."""

    source: TriggerSource
    timestamp_ms: int


FireCallback = Callable[[TriggerEvent], None]


class TriggerEngine:
    """
    Owns one instance of every detector and routes samples to them.

    Accelerometer samples go to the back-tap detector first; only if it
    does not fire is the shake detector consulted, so at most one fire
    happens per sample. The previous accelerometer reading used by both is
    updated after every accelerometer sample, fire or not.

    The engine starts inactive. ``start()`` and ``stop()`` are idempotent
    and cheap; ``start()`` resets every detector so nothing carries over
    from a previous activation.

    Parameters
    ----------
    store : PreferenceStore
        Source of enable flags, sensitivity and calibrated threshold.
    clock : Clock, optional
        Millisecond time source (``MonotonicClock`` if omitted).
    on_fire : callable, optional
        Invoked with a ``TriggerEvent`` for every fire.
    clamp_sensitivity : bool
        Passed to ``read_preferences``.
    """

    def __init__(
        self,
        store: PreferenceStore,
        clock: Optional[Clock] = None,
        on_fire: Optional[FireCallback] = None,
        clamp_sensitivity: bool = True,
    ) -> None:
        self._store = store
        self._clock = clock or MonotonicClock()
        self._on_fire = on_fire
        self._clamp = clamp_sensitivity

        self.proximity_detector = ProximityWaveDetector()
        self.shake_detector = ShakeTapDetector()
        self.back_tap_detector = BackTapDoubleTapDetector()
        self.fingerprint_detector = FingerprintSwipeDetector()
        self.volume_key_detector = VolumeKeyDetector()

        self._active = False
        self._fire_counts: Counter = Counter()
        self._samples_seen = 0
        self._reset_state()

    # -- lifecycle -----------------------------------------------------------

    @property
    def is_active(self) -> bool:
        return self._active

    def start(self) -> None:
        """Activate the engine with fresh detector state."""
        self._reset_state()
        if not self._active:
            self._active = True
            logger.info("Trigger engine started")

    def stop(self) -> None:
        """Deactivate the engine. Samples are ignored until the next start."""
        if self._active:
            self._active = False
            logger.info("Trigger engine stopped")

    def _reset_state(self) -> None:
        for detector in (
            self.proximity_detector,
            self.shake_detector,
            self.back_tap_detector,
            self.fingerprint_detector,
            self.volume_key_detector,
        ):
            detector.reset()
        self.last_x = 0.0
        self.last_y = 0.0
        self.last_z = 0.0

    # -- event source entry points -------------------------------------------

    def proximity(self, distance: float, max_range: float) -> bool:
        return self.dispatch(ProximitySample(distance=distance, max_range=max_range))

    def accelerometer(self, x: float, y: float, z: float) -> bool:
        return self.dispatch(AccelerometerSample(x=x, y=y, z=z))

    def touch_move(self) -> bool:
        return self.dispatch(TouchMoveSample())

    def key_down(self, key: int) -> bool:
        return self.dispatch(KeyPressSample(key=key))

    # -- routing --------------------------------------------------------------

    def dispatch(self, sample: SensorSample) -> bool:
        """
        Route one sample to its detector(s).

        Returns
        -------
        bool
            True if this sample produced a fire. The ``on_fire`` callback has
            already run when this returns.
        """
        if not self._active:
            return False

        now = self._clock.uptime_millis()
        prefs = read_preferences(self._store, clamp=self._clamp)
        self._samples_seen += 1

        source = self._route(sample, prefs, now)
        if source is None:
            return False

        self._fire_counts[source] += 1
        event = TriggerEvent(source=source, timestamp_ms=now)
        logger.info("Trigger fired by %s at %d ms", source.value, now)
        if self._on_fire is not None:
            self._on_fire(event)
        return True

    def _route(self, sample: SensorSample, prefs: TriggerPreferences, now: int) -> Optional[TriggerSource]:
        if sample.type is SampleType.ACCELEROMETER:
            return self._handle_accelerometer(sample, prefs, now)

        if sample.type is SampleType.PROXIMITY:
            fired = self.proximity_detector.update(
                sample.distance, sample.max_range, now, prefs.proximity_enabled
            )
            return TriggerSource.PROXIMITY_WAVE if fired else None

        if sample.type is SampleType.TOUCH_MOVE:
            fired = self.fingerprint_detector.update(now, prefs.fingerprint_enabled)
            return TriggerSource.FINGERPRINT if fired else None

        if sample.type is SampleType.KEY_DOWN:
            if not sample.is_volume_key:
                return None
            fired = self.volume_key_detector.update(now, prefs.volume_key_enabled)
            return TriggerSource.VOLUME_KEY if fired else None

        raise TypeError(f"Unsupported sensor sample: {sample!r}")

    def _handle_accelerometer(
        self, sample: AccelerometerSample, prefs: TriggerPreferences, now: int
    ) -> Optional[TriggerSource]:
        source = None
        if self.back_tap_detector.update(
            sample.z, self.last_z, prefs.back_tap_threshold, now, prefs.back_tap_enabled
        ):
            source = TriggerSource.BACK_TAP
        elif self.shake_detector.update(
            sample.x, sample.y, sample.z,
            self.last_x, self.last_y, self.last_z,
            prefs.vibration_sensitivity, now, prefs.vibration_enabled,
        ):
            source = TriggerSource.SHAKE

        self.last_x = sample.x
        self.last_y = sample.y
        self.last_z = sample.z
        return source

    # -- statistics -----------------------------------------------------------

    def get_statistics(self) -> Dict[str, int]:
        """Samples handled and fires per source since construction."""
        stats = {"samples_seen": self._samples_seen, "fires": sum(self._fire_counts.values())}
        for source in TriggerSource:
            stats[f"fires_{source.value}"] = self._fire_counts[source]
        return stats

    def __repr__(self) -> str:
        state = "active" if self._active else "inactive"
        return f"TriggerEngine({state}, clock={self._clock!r})"
