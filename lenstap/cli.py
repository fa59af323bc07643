"""
Command-line interface for lenstap
"""

import json
import sys
from typing import List, Optional

import click

from lenstap.config.settings import Settings, get_settings, load_settings_from_file, validate_settings
from lenstap.exceptions import LensTapError
from lenstap.logger import get_logger, setup_logging
from lenstap.sensing.calibration import CalibrationSession
from lenstap.sensing.clock import ReplayClock
from lenstap.sensing.dispatcher import (
    GestureTapCallback,
    RecordingTapDispatcher,
    capture_shutter_location,
)
from lenstap.sensing.engine import TriggerEngine, TriggerEvent
from lenstap.sensing.foreground import ForegroundGate
from lenstap.sensing.preferences import (
    DEFAULTS,
    KEY_BACK_TAP_ENABLED,
    KEY_FINGERPRINT_ENABLED,
    KEY_PROXIMITY_ENABLED,
    KEY_VIBRATION_ENABLED,
    KEY_VIBRATION_SENSITIVITY,
    KEY_VOLUME_KEY_ENABLED,
    InMemoryPreferenceStore,
    JsonPreferenceStore,
    PreferenceError,
    PreferenceStore,
    coerce_value,
)
from lenstap.sensing.recording import (
    TimedSample,
    load_recording,
    replay,
    replay_calibration,
    write_recording,
)
from lenstap.testing import SimulatedSensorSource

logger = get_logger(__name__)

GESTURE_FLAGS = {
    "back-tap": KEY_BACK_TAP_ENABLED,
    "shake": KEY_VIBRATION_ENABLED,
    "wave": KEY_PROXIMITY_ENABLED,
    "fingerprint": KEY_FINGERPRINT_ENABLED,
    "volume": KEY_VOLUME_KEY_ENABLED,
}


def get_settings_with_config(config_file: Optional[str] = None) -> Settings:
    """Get settings with optional config file."""
    if config_file:
        return load_settings_from_file(config_file)
    else:
        return get_settings()


def open_preference_store(ctx: click.Context) -> PreferenceStore:
    """Preference store selected by ``--prefs`` or the settings."""
    path = ctx.obj.get('prefs_path') or ctx.obj['settings'].preferences_path
    if path == ":memory:":
        return InMemoryPreferenceStore()
    return JsonPreferenceStore(path)


def _fail(message: str) -> None:
    logger.error(message)
    click.echo(f"Error: {message}", err=True)
    sys.exit(1)


def _run_engine(
    store: PreferenceStore,
    samples: List[TimedSample],
    settings: Settings,
    foreground: Optional[str] = None,
) -> List[TriggerEvent]:
    """
    Replay *samples* through a fresh engine and return its fires.

    With *foreground*, the engine is only activated if that package is one
    of the configured camera apps; otherwise it is started unconditionally.
    """
    clock = ReplayClock(samples[0].timestamp_ms if samples else 0)
    dispatcher = RecordingTapDispatcher()
    tap = GestureTapCallback(store, dispatcher)
    events: List[TriggerEvent] = []

    def on_fire(event: TriggerEvent) -> None:
        events.append(event)
        tap(event)

    engine = TriggerEngine(store, clock=clock, on_fire=on_fire, clamp_sensitivity=settings.clamp_sensitivity)
    if foreground is None:
        engine.start()
    elif not ForegroundGate.from_settings(engine, settings).on_window_changed(foreground):
        logger.warning(f"{foreground} is not a configured camera app, triggers stay suspended")
    replay(engine, clock, samples)
    engine.stop()
    logger.debug(f"Replay statistics: {engine.get_statistics()}")
    return events


def _echo_fires(events: List[TriggerEvent], as_json: bool) -> None:
    if as_json:
        click.echo(json.dumps(
            [{"t": e.timestamp_ms, "source": e.source.value} for e in events], indent=2
        ))
        return
    for event in events:
        click.echo(f"fire at {event.timestamp_ms} ms ({event.source.value})")
    click.echo(f"{len(events)} fire(s)")


@click.group()
@click.option(
    '--config',
    '-c',
    type=click.Path(exists=True),
    help='Path to configuration file'
)
@click.option(
    '--prefs',
    type=click.Path(dir_okay=False),
    help='Preference file (overrides LENSTAP_PREFERENCES_PATH)'
)
@click.option(
    '--verbose',
    '-v',
    is_flag=True,
    help='Enable verbose logging'
)
@click.option(
    '--debug',
    is_flag=True,
    help='Enable debug mode'
)
@click.pass_context
def cli(ctx, config: Optional[str], prefs: Optional[str], verbose: bool, debug: bool):
    """lenstap camera trigger command line interface."""

    ctx.ensure_object(dict)

    settings = get_settings_with_config(config)
    if debug:
        settings = settings.model_copy(update={"debug": True, "log_level": "DEBUG"})
    elif verbose:
        settings = settings.model_copy(update={"log_level": "INFO"})
    else:
        settings = settings.model_copy(update={"log_level": "WARNING"})

    setup_logging(settings)
    for issue in validate_settings(settings):
        logger.warning(issue)

    ctx.obj['config_file'] = config
    ctx.obj['prefs_path'] = prefs
    ctx.obj['settings'] = settings


# ---------------------------------------------------------------------------
# Preferences
# ---------------------------------------------------------------------------

@cli.group()
def prefs():
    """Inspect and change trigger preferences."""
    pass


@prefs.command('show')
@click.option('--json', 'as_json', is_flag=True, help='Output as JSON')
@click.pass_context
def prefs_show(ctx, as_json: bool):
    """Show every preference with its effective value."""

    try:
        store = open_preference_store(ctx)
        stored = store.as_dict()
    except PreferenceError as e:
        _fail(str(e))
        return

    effective = {key: stored.get(key, default) for key, default in DEFAULTS.items()}
    if as_json:
        click.echo(json.dumps(effective, indent=2, sort_keys=True))
        return
    for key in sorted(effective):
        marker = "" if key in stored else "  (default)"
        click.echo(f"{key} = {effective[key]}{marker}")


@prefs.command('set')
@click.argument('key')
@click.argument('value')
@click.pass_context
def prefs_set(ctx, key: str, value: str):
    """Set KEY to VALUE (typed after the key's default)."""

    try:
        parsed = coerce_value(key, value)
        if key == KEY_VIBRATION_SENSITIVITY and not 0 <= parsed <= 100:
            raise PreferenceError(f"{key} must be between 0 and 100, got {parsed}")
        store = open_preference_store(ctx)
        store.put(key, parsed)
    except PreferenceError as e:
        _fail(str(e))
        return

    logger.info(f"Preference {key} set to {parsed!r}")
    click.echo(f"{key} = {parsed}")


@cli.command('capture-shutter')
@click.argument('x', type=float)
@click.argument('y', type=float)
@click.pass_context
def capture_shutter(ctx, x: float, y: float):
    """Save the screen location taps are dispatched to."""

    try:
        capture_shutter_location(open_preference_store(ctx), x, y)
    except (PreferenceError, ValueError) as e:
        _fail(str(e))
        return
    click.echo(f"Shutter location saved at ({x}, {y})")


# ---------------------------------------------------------------------------
# Replay and calibration
# ---------------------------------------------------------------------------

@cli.command('replay')
@click.argument('recording', type=click.Path(exists=True, dir_okay=False))
@click.option('--json', 'as_json', is_flag=True, help='Output fires as JSON')
@click.option(
    '--foreground',
    metavar='PACKAGE',
    help='Foreground app during the recording; triggers run only for configured camera apps'
)
@click.pass_context
def replay_cmd(ctx, recording: str, as_json: bool, foreground: Optional[str]):
    """Run a JSON-lines RECORDING through the trigger engine."""

    try:
        store = open_preference_store(ctx)
        samples = load_recording(recording)
        events = _run_engine(store, samples, ctx.obj['settings'], foreground=foreground)
    except LensTapError as e:
        _fail(f"Replay failed: {e}")
        return

    _echo_fires(events, as_json)


@cli.command('calibrate')
@click.argument('recording', type=click.Path(exists=True, dir_okay=False))
@click.option('--dry-run', is_flag=True, help='Compute the threshold without saving it')
@click.pass_context
def calibrate(ctx, recording: str, dry_run: bool):
    """Calibrate the back-tap threshold from the taps in RECORDING."""

    try:
        store = open_preference_store(ctx)
        samples = load_recording(recording)
        clock = ReplayClock(samples[0].timestamp_ms if samples else 0)
        session = CalibrationSession(store=None if dry_run else store, clock=clock)
        session.start()
        complete = replay_calibration(session, clock, samples)
    except LensTapError as e:
        _fail(f"Calibration failed: {e}")
        return

    if not complete:
        recorded, required = session.progress
        _fail(f"Calibration failed: only {recorded} of {required} taps recorded. Please try again.")
        return

    threshold = session.result()
    suffix = " (not saved)" if dry_run else ""
    click.echo(f"Calibration complete! Sensitivity set to {threshold:.2f}{suffix}")


# ---------------------------------------------------------------------------
# Simulation
# ---------------------------------------------------------------------------

@cli.command('simulate')
@click.option(
    '--gesture',
    type=click.Choice(sorted(GESTURE_FLAGS)),
    required=True,
    help='Gesture to synthesise (its trigger is enabled for the run)'
)
@click.option('--duration-ms', default=3000, type=int, help='Length of the stream (default: 3000)')
@click.option('--seed', default=None, type=int, help='Random seed (default: from settings)')
@click.option('--sensitivity', default=50, type=click.IntRange(0, 100), help='Shake sensitivity (default: 50)')
@click.option('--output', '-o', type=click.Path(dir_okay=False, writable=True), help='Also write the stream as a recording')
@click.option('--json', 'as_json', is_flag=True, help='Output fires as JSON')
@click.pass_context
def simulate(ctx, gesture: str, duration_ms: int, seed: Optional[int], sensitivity: int,
             output: Optional[str], as_json: bool):
    """Synthesise a sensor stream containing GESTURE and replay it."""

    settings: Settings = ctx.obj['settings']
    source = SimulatedSensorSource(
        seed=settings.simulation_seed if seed is None else seed,
        sample_rate_hz=settings.simulation_sample_rate_hz,
    )

    midpoint = duration_ms // 2
    if gesture == "back-tap":
        samples = source.accelerometer(duration_ms, tap_times_ms=[midpoint, midpoint + 200])
    elif gesture == "shake":
        samples = source.accelerometer(duration_ms, shake_times_ms=[midpoint])
    elif gesture == "wave":
        samples = source.proximity_wave(midpoint, 150)
    elif gesture == "fingerprint":
        samples = source.touch_moves(range(midpoint, midpoint + 400, 40))
    else:
        samples = source.key_presses([midpoint])

    store = InMemoryPreferenceStore({
        GESTURE_FLAGS[gesture]: True,
        KEY_VIBRATION_SENSITIVITY: sensitivity,
    })

    if output:
        with open(output, "w", encoding="utf-8") as f:
            count = write_recording(samples, f)
        logger.info(f"Wrote {count} samples to {output}")

    events = _run_engine(store, samples, settings)
    _echo_fires(events, as_json)


def main():
    """Main entry point for the CLI."""
    cli()


if __name__ == '__main__':
    main()
