"""
JSON-lines sensor recordings.

One event per line::

    {"t": 0,   "type": "proximity", "distance": 0.0, "max_range": 5.0}
    {"t": 100, "type": "accelerometer", "x": 0.1, "y": 9.8, "z": 12.0}
    {"t": 250, "type": "touch_move"}
    {"t": 400, "type": "key_down", "key": 24}

``t`` is milliseconds on any monotonic base. Blank lines and lines starting
with ``#`` are skipped.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Optional, TextIO, Union

from lenstap.exceptions import LensTapError
from lenstap.sensing.calibration import CalibrationSession
from lenstap.sensing.clock import ReplayClock
from lenstap.sensing.engine import TriggerEngine
from lenstap.sensing.events import (
    AccelerometerSample,
    KeyPressSample,
    ProximitySample,
    SampleType,
    SensorSample,
    TouchMoveSample,
)

logger = logging.getLogger(__name__)


class RecordingFormatError(LensTapError):
    """Exception raised for malformed recording lines."""

    def __init__(self, message: str, line_number: Optional[int] = None):
        if line_number is not None:
            message = f"line {line_number}: {message}"
        super().__init__(message)
        self.line_number = line_number


@dataclass(frozen=True)
class TimedSample:
    """A sensor sample with the time it was observed."""

    timestamp_ms: int
    sample: SensorSample


# ---------------------------------------------------------------------------
# Encoding
# ---------------------------------------------------------------------------

def sample_to_dict(timed: TimedSample) -> Dict[str, Any]:
    sample = timed.sample
    record: Dict[str, Any] = {"t": timed.timestamp_ms, "type": sample.type.value}
    if sample.type is SampleType.PROXIMITY:
        record.update(distance=sample.distance, max_range=sample.max_range)
    elif sample.type is SampleType.ACCELEROMETER:
        record.update(x=sample.x, y=sample.y, z=sample.z)
    elif sample.type is SampleType.KEY_DOWN:
        record.update(key=int(sample.key))
    return record


def _number(record: Dict[str, Any], field: str, line_number: int) -> float:
    value = record.get(field)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise RecordingFormatError(f"field {field!r} must be a number, got {value!r}", line_number)
    return float(value)


def sample_from_dict(record: Dict[str, Any], line_number: int = 0) -> TimedSample:
    """Decode one recording line that has already been parsed as JSON."""
    if not isinstance(record, dict):
        raise RecordingFormatError("each line must be a JSON object", line_number)

    t = record.get("t")
    if isinstance(t, bool) or not isinstance(t, int):
        raise RecordingFormatError(f"field 't' must be an integer, got {t!r}", line_number)

    try:
        sample_type = SampleType(record.get("type"))
    except ValueError:
        raise RecordingFormatError(f"unknown event type {record.get('type')!r}", line_number)

    sample: SensorSample
    if sample_type is SampleType.PROXIMITY:
        sample = ProximitySample(
            distance=_number(record, "distance", line_number),
            max_range=_number(record, "max_range", line_number),
        )
    elif sample_type is SampleType.ACCELEROMETER:
        sample = AccelerometerSample(
            x=_number(record, "x", line_number),
            y=_number(record, "y", line_number),
            z=_number(record, "z", line_number),
        )
    elif sample_type is SampleType.TOUCH_MOVE:
        sample = TouchMoveSample()
    else:
        key = record.get("key")
        if isinstance(key, bool) or not isinstance(key, int):
            raise RecordingFormatError(f"field 'key' must be an integer, got {key!r}", line_number)
        sample = KeyPressSample(key=key)

    return TimedSample(timestamp_ms=t, sample=sample)


def read_recording(stream: TextIO) -> Iterator[TimedSample]:
    """Decode a JSON-lines recording, enforcing non-decreasing timestamps."""
    previous = None
    for line_number, line in enumerate(stream, start=1):
        text = line.strip()
        if not text or text.startswith("#"):
            continue
        try:
            record = json.loads(text)
        except json.JSONDecodeError as e:
            raise RecordingFormatError(f"invalid JSON: {e.msg}", line_number) from e

        timed = sample_from_dict(record, line_number)
        if previous is not None and timed.timestamp_ms < previous:
            raise RecordingFormatError(
                f"timestamp {timed.timestamp_ms} precedes {previous}", line_number
            )
        previous = timed.timestamp_ms
        yield timed


def load_recording(path: Union[str, Path]) -> List[TimedSample]:
    """
    Read a whole recording file.

    Raises
    ------
    RecordingFormatError
        If the file cannot be read, is not UTF-8 text, or holds a malformed
        line.
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            samples = list(read_recording(f))
    except UnicodeDecodeError as e:
        raise RecordingFormatError(f"{path} is not UTF-8 text: {e.reason}") from e
    except OSError as e:
        raise RecordingFormatError(f"Cannot read recording {path}: {e}") from e
    logger.debug("Loaded %d samples from %s", len(samples), path)
    return samples


def write_recording(samples: Iterable[TimedSample], stream: TextIO) -> int:
    """Write samples as JSON lines; returns the number written."""
    count = 0
    for timed in samples:
        stream.write(json.dumps(sample_to_dict(timed)))
        stream.write("\n")
        count += 1
    return count


# ---------------------------------------------------------------------------
# Replay
# ---------------------------------------------------------------------------

def replay(engine: TriggerEngine, clock: ReplayClock, samples: Iterable[TimedSample]) -> List[int]:
    """
    Drive *engine* through *samples*, setting *clock* to each timestamp
    before dispatch.

    The engine must have been built with *clock*. Returns the timestamps at
    which the engine fired.
    """
    fired: List[int] = []
    for timed in samples:
        clock.set_time(timed.timestamp_ms)
        if engine.dispatch(timed.sample):
            fired.append(timed.timestamp_ms)
    return fired


def replay_calibration(
    session: CalibrationSession, clock: ReplayClock, samples: Iterable[TimedSample]
) -> bool:
    """
    Feed the accelerometer samples of a recording to a calibration session.

    The session must already be started. Stops at completion; returns
    ``session.is_complete()``.
    """
    for timed in samples:
        if timed.sample.type is not SampleType.ACCELEROMETER:
            continue
        clock.set_time(timed.timestamp_ms)
        if session.feed_accelerometer(timed.sample.x, timed.sample.y, timed.sample.z):
            break
    return session.is_complete()
