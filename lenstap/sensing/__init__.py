"""
Camera Trigger Sensing Module
=============================

Turns raw sensor streams into debounced "take a picture" decisions.

Components:
    - clock: millisecond time sources (monotonic, replay)
    - events: typed sensor samples
    - preferences: flat key -> value settings contract and stores
    - detectors: proximity wave, shake, back-tap double tap, fingerprint
      swipe and volume key detectors
    - engine: routing, priority and fire callback
    - calibration: back-tap threshold calibration session
    - foreground: engine activation while a camera app is in front
    - dispatcher: fire -> tap gesture at the shutter location
    - recording: JSON-lines recordings and replay

Detectors are pure functions of their inputs and their own state; nothing
here performs I/O except the JSON preference store and recording loader.
"""

from lenstap.sensing.clock import (
    Clock,
    MonotonicClock,
    ReplayClock,
)
from lenstap.sensing.events import (
    AccelerometerSample,
    KeyCode,
    KeyPressSample,
    ProximitySample,
    SampleType,
    SensorSample,
    TouchMoveSample,
)
from lenstap.sensing.preferences import (
    InMemoryPreferenceStore,
    JsonPreferenceStore,
    PreferenceError,
    PreferenceStore,
    TriggerPreferences,
    read_preferences,
)
from lenstap.sensing.detectors import (
    BackTapDoubleTapDetector,
    FingerprintSwipeDetector,
    ProximityWaveDetector,
    ShakeTapDetector,
    VolumeKeyDetector,
)
from lenstap.sensing.engine import (
    TriggerEngine,
    TriggerEvent,
    TriggerSource,
)
from lenstap.sensing.calibration import (
    CalibrationIncompleteError,
    CalibrationSession,
    CalibrationState,
)
from lenstap.sensing.foreground import ForegroundGate
from lenstap.sensing.dispatcher import (
    GestureTapCallback,
    RecordingTapDispatcher,
    TapDispatcher,
    TapGesture,
)
from lenstap.sensing.recording import (
    RecordingFormatError,
    TimedSample,
    load_recording,
    replay,
)

__all__ = [
    "Clock",
    "MonotonicClock",
    "ReplayClock",
    "AccelerometerSample",
    "KeyCode",
    "KeyPressSample",
    "ProximitySample",
    "SampleType",
    "SensorSample",
    "TouchMoveSample",
    "InMemoryPreferenceStore",
    "JsonPreferenceStore",
    "PreferenceError",
    "PreferenceStore",
    "TriggerPreferences",
    "read_preferences",
    "BackTapDoubleTapDetector",
    "FingerprintSwipeDetector",
    "ProximityWaveDetector",
    "ShakeTapDetector",
    "VolumeKeyDetector",
    "TriggerEngine",
    "TriggerEvent",
    "TriggerSource",
    "CalibrationIncompleteError",
    "CalibrationSession",
    "CalibrationState",
    "ForegroundGate",
    "GestureTapCallback",
    "RecordingTapDispatcher",
    "TapDispatcher",
    "TapGesture",
    "RecordingFormatError",
    "TimedSample",
    "load_recording",
    "replay",
]
