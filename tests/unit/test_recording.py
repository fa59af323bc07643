"""
Unit tests for JSON-lines recordings, replay and the simulated sensor source.

Tests cover:
    - Parsing every event type, comments and blank lines
    - Malformed lines reported with their line number
    - Replay driving the engine and a calibration session
    - SimulatedSensorSource determinism (same seed = same output)
    - Simulated gestures producing exactly one fire
"""

from __future__ import annotations

import io

import pytest

from lenstap.sensing.calibration import CalibrationSession
from lenstap.sensing.clock import ReplayClock
from lenstap.sensing.engine import TriggerEngine
from lenstap.sensing.events import (
    AccelerometerSample,
    KeyCode,
    KeyPressSample,
    ProximitySample,
    TouchMoveSample,
)
from lenstap.sensing.preferences import InMemoryPreferenceStore
from lenstap.sensing.recording import (
    RecordingFormatError,
    TimedSample,
    load_recording,
    read_recording,
    replay,
    replay_calibration,
    write_recording,
)
from lenstap.testing import STANDARD_GRAVITY, SimulatedSensorSource


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

RECORDING = """\
# back-tap test capture
{"t": 0, "type": "proximity", "distance": 0.0, "max_range": 5.0}
{"t": 100, "type": "accelerometer", "x": 0.1, "y": 9.8, "z": 12.0}

{"t": 250, "type": "touch_move"}
{"t": 400, "type": "key_down", "key": 24}
"""


def parse(text: str):
    return list(read_recording(io.StringIO(text)))


def run_engine(prefs, samples):
    clock = ReplayClock(samples[0].timestamp_ms)
    engine = TriggerEngine(InMemoryPreferenceStore(prefs), clock=clock)
    engine.start()
    return replay(engine, clock, samples)


# ===========================================================================
# Parsing
# ===========================================================================

class TestReadRecording:
    def test_parses_every_event_type(self):
        samples = parse(RECORDING)
        assert samples == [
            TimedSample(0, ProximitySample(distance=0.0, max_range=5.0)),
            TimedSample(100, AccelerometerSample(x=0.1, y=9.8, z=12.0)),
            TimedSample(250, TouchMoveSample()),
            TimedSample(400, KeyPressSample(key=24)),
        ]

    def test_integer_readings_become_floats(self):
        (timed,) = parse('{"t": 5, "type": "accelerometer", "x": 0, "y": 0, "z": 10}')
        assert isinstance(timed.sample.z, float)

    def test_invalid_json_reports_line(self):
        with pytest.raises(RecordingFormatError, match="line 2") as excinfo:
            parse('{"t": 0, "type": "touch_move"}\n{"t": 1, "type"\n')
        assert excinfo.value.line_number == 2

    def test_unknown_type(self):
        with pytest.raises(RecordingFormatError, match="unknown event type"):
            parse('{"t": 0, "type": "gyroscope"}')

    def test_missing_field(self):
        with pytest.raises(RecordingFormatError, match="'z'"):
            parse('{"t": 0, "type": "accelerometer", "x": 0.0, "y": 0.0}')

    def test_timestamp_must_be_integer(self):
        with pytest.raises(RecordingFormatError, match="'t'"):
            parse('{"t": 1.5, "type": "touch_move"}')

    def test_decreasing_timestamps_rejected(self):
        with pytest.raises(RecordingFormatError, match="precedes"):
            parse('{"t": 100, "type": "touch_move"}\n{"t": 50, "type": "touch_move"}\n')

    def test_equal_timestamps_allowed(self):
        assert len(parse('{"t": 100, "type": "touch_move"}\n{"t": 100, "type": "touch_move"}\n')) == 2

    def test_invalid_utf8_file(self, tmp_path):
        path = tmp_path / "capture.jsonl"
        path.write_bytes(b'{"t": 0, "type": "touch_move"}\n\xff\xfe\n')
        with pytest.raises(RecordingFormatError, match="not UTF-8"):
            load_recording(path)

    def test_unreadable_file(self, tmp_path):
        with pytest.raises(RecordingFormatError, match="Cannot read recording"):
            load_recording(tmp_path / "missing.jsonl")

    def test_write_then_load(self, tmp_path):
        samples = parse(RECORDING)
        path = tmp_path / "capture.jsonl"
        with open(path, "w", encoding="utf-8") as f:
            assert write_recording(samples, f) == 4
        assert load_recording(path) == samples


# ===========================================================================
# Replay
# ===========================================================================

class TestReplay:
    def test_replay_returns_fire_timestamps(self):
        samples = parse(
            '{"t": 0, "type": "key_down", "key": 24}\n'
            '{"t": 100, "type": "key_down", "key": 25}\n'
            '{"t": 700, "type": "key_down", "key": 24}\n'
        )
        assert run_engine({"volume_key_enabled": True}, samples) == [0, 700]

    def test_replay_calibration_stops_at_completion(self):
        samples = parse(
            '{"t": 1000, "type": "accelerometer", "x": 0, "y": 0, "z": 20}\n'
            '{"t": 1100, "type": "touch_move"}\n'
            '{"t": 1400, "type": "accelerometer", "x": 0, "y": 0, "z": -2}\n'
            '{"t": 1800, "type": "accelerometer", "x": 0, "y": 0, "z": 19}\n'
            '{"t": 2400, "type": "accelerometer", "x": 0, "y": 0, "z": 60}\n'
        )
        clock = ReplayClock(1000)
        session = CalibrationSession(clock=clock)
        session.start()

        assert replay_calibration(session, clock, samples) is True
        assert session.result() == pytest.approx(15.75)
        assert clock.uptime_millis() == 1800


# ===========================================================================
# Simulated source
# ===========================================================================

class TestSimulatedSensorSource:
    def test_same_seed_same_stream(self):
        a = SimulatedSensorSource(seed=7).accelerometer(1000)
        b = SimulatedSensorSource(seed=7).accelerometer(1000)
        assert a == b

    def test_different_seed_different_stream(self):
        a = SimulatedSensorSource(seed=7).accelerometer(1000)
        b = SimulatedSensorSource(seed=8).accelerometer(1000)
        assert a != b

    def test_resting_stream_shape(self):
        source = SimulatedSensorSource(sample_rate_hz=50)
        samples = source.accelerometer(1000, start_ms=5000)
        assert len(samples) == 50
        assert samples[0].timestamp_ms == 5000
        assert samples[1].timestamp_ms == 5020
        assert samples[10].sample.z == pytest.approx(STANDARD_GRAVITY, abs=0.5)

    def test_rejects_bad_parameters(self):
        with pytest.raises(ValueError):
            SimulatedSensorSource(sample_rate_hz=0)
        with pytest.raises(ValueError):
            SimulatedSensorSource(tap_decay=1.0)

    def test_simulated_double_tap_fires_once(self):
        samples = SimulatedSensorSource().accelerometer(3000, tap_times_ms=[1500, 1700])
        assert run_engine({"back_tap_enabled": True}, samples) == [1700]

    def test_single_tap_never_fires(self):
        samples = SimulatedSensorSource().accelerometer(3000, tap_times_ms=[1500])
        assert run_engine({"back_tap_enabled": True}, samples) == []

    def test_simulated_shake_fires_once(self):
        samples = SimulatedSensorSource().accelerometer(3000, shake_times_ms=[1500])
        assert run_engine({"vibration_enabled": True, "vibration_sensitivity": 50}, samples) == [1520]

    def test_resting_device_never_fires(self):
        samples = SimulatedSensorSource().accelerometer(3000)
        prefs = {"back_tap_enabled": True, "vibration_enabled": True, "vibration_sensitivity": 90}
        assert run_engine(prefs, samples) == []

    def test_simulated_taps_calibrate(self):
        samples = SimulatedSensorSource().accelerometer(2000, tap_times_ms=[200, 700, 1200])
        clock = ReplayClock()
        session = CalibrationSession(clock=clock)
        session.start()

        assert replay_calibration(session, clock, samples) is True
        assert session.result() == pytest.approx(30.0, abs=0.5)

    def test_wave_and_keys(self):
        source = SimulatedSensorSource()
        samples = source.merge(
            source.proximity_wave(100, 150),
            source.key_presses([200], key=KeyCode.VOLUME_DOWN),
            source.touch_moves([50]),
        )
        assert [s.timestamp_ms for s in samples] == [50, 100, 200, 250]
        prefs = {"proximity_enabled": True, "volume_key_enabled": True}
        assert run_engine(prefs, samples) == [200, 250]
