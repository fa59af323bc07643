"""
Testing utilities for lenstap.

This module contains deterministic generators of synthetic sensor streams.
They are ONLY intended for tests, the ``simulate`` CLI command and
development; they do not model any real device.
"""

from .simulated_source import SimulatedSensorSource, STANDARD_GRAVITY

__all__ = [
    "SimulatedSensorSource",
    "STANDARD_GRAVITY",
]
