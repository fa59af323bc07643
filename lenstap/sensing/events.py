"""
Typed sensor samples consumed by the trigger engine.

A sample carries no timestamp of its own: the engine stamps it with its
clock at dispatch time.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Union


class SampleType(Enum):
    """Tag of a sensor sample."""

    PROXIMITY = "proximity"
    ACCELEROMETER = "accelerometer"
    TOUCH_MOVE = "touch_move"
    KEY_DOWN = "key_down"


class KeyCode(IntEnum):
    """Key codes understood by the engine (Android numbering)."""

    VOLUME_UP = 24
    VOLUME_DOWN = 25
    POWER = 26
    CAMERA = 27


@dataclass(frozen=True)
class ProximitySample:
    """Proximity reading; ``distance < max_range`` means covered."""

    distance: float
    max_range: float

    type = SampleType.PROXIMITY


@dataclass(frozen=True)
class AccelerometerSample:
    """Tri-axis acceleration in m/s^2."""

    x: float
    y: float
    z: float

    type = SampleType.ACCELEROMETER


@dataclass(frozen=True)
class TouchMoveSample:
    """Finger movement on the invisible capture surface."""

    type = SampleType.TOUCH_MOVE


@dataclass(frozen=True)
class KeyPressSample:
    """Key-down event. ``key`` is a raw key code."""

    key: int

    type = SampleType.KEY_DOWN

    @property
    def is_volume_key(self) -> bool:
        return self.key in (KeyCode.VOLUME_UP, KeyCode.VOLUME_DOWN)


SensorSample = Union[ProximitySample, AccelerometerSample, TouchMoveSample, KeyPressSample]
