"""
lenstap
=======

Camera trigger detection: turns proximity, accelerometer, touch and key
events into debounced "take a picture" decisions.

This package provides:
- Five independent gesture detectors (proximity wave, shake, back-tap
  double tap, fingerprint swipe, volume key)
- A trigger engine that routes samples and applies detector priority
- Back-tap threshold calibration
- Preference stores, JSON-lines recordings and a simulated sensor source

Example usage:
    >>> from lenstap.sensing import InMemoryPreferenceStore, ReplayClock, TriggerEngine
    >>>
    >>> store = InMemoryPreferenceStore({"volume_key_enabled": True})
    >>> engine = TriggerEngine(store, clock=ReplayClock())
    >>> engine.start()
    >>> engine.key_down(24)
    True

For CLI usage:
    $ lenstap simulate --gesture back-tap
    $ lenstap calibrate taps.jsonl
    $ lenstap prefs show

License: MIT
"""

__version__ = "1.0.0"
__license__ = "MIT"

# Package metadata
__title__ = "lenstap"
__description__ = "Sensor-gesture camera trigger engine with back-tap calibration"

# Version info tuple
__version_info__ = tuple(int(x) for x in __version__.split('.'))

from lenstap.exceptions import LensTapError
from lenstap.sensing import (
    CalibrationSession,
    InMemoryPreferenceStore,
    JsonPreferenceStore,
    MonotonicClock,
    ReplayClock,
    TriggerEngine,
    TriggerEvent,
    TriggerSource,
)

__all__ = [
    '__version__',
    'LensTapError',
    'CalibrationSession',
    'InMemoryPreferenceStore',
    'JsonPreferenceStore',
    'MonotonicClock',
    'ReplayClock',
    'TriggerEngine',
    'TriggerEvent',
    'TriggerSource',
]
