"""
Turning a fire into a simulated screen tap.

The engine only decides *that* a picture should be taken. A ``TapDispatcher``
decides how: on a phone that is a one-millisecond accessibility gesture at
the stored shutter location; here it is anything implementing ``dispatch``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Protocol, runtime_checkable

from lenstap.sensing.engine import TriggerEvent
from lenstap.sensing.preferences import DEFAULTS, KEY_SHUTTER_X, KEY_SHUTTER_Y, PreferenceStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TapGesture:
    """A single-point stroke on the screen."""

    x: float
    y: float
    duration_ms: int = 1


@runtime_checkable
class TapDispatcher(Protocol):
    """Protocol for whatever delivers the tap to the OS."""

    def dispatch(self, gesture: TapGesture) -> None: ...


class RecordingTapDispatcher:
    """Keeps every dispatched gesture in memory."""

    def __init__(self) -> None:
        self.gestures: List[TapGesture] = []

    def dispatch(self, gesture: TapGesture) -> None:
        self.gestures.append(gesture)

    def __len__(self) -> int:
        return len(self.gestures)


def shutter_location(store: PreferenceStore) -> TapGesture:
    """Gesture at the stored shutter location, or (1, 1) if none was captured."""
    return TapGesture(
        x=store.get_float(KEY_SHUTTER_X, DEFAULTS[KEY_SHUTTER_X]),
        y=store.get_float(KEY_SHUTTER_Y, DEFAULTS[KEY_SHUTTER_Y]),
    )


def capture_shutter_location(store: PreferenceStore, x: float, y: float) -> None:
    """Save the raw screen coordinates of the camera app's shutter button."""
    if x < 0 or y < 0:
        raise ValueError(f"Shutter location must be on screen, got ({x}, {y})")
    store.put_float(KEY_SHUTTER_X, x)
    store.put_float(KEY_SHUTTER_Y, y)
    logger.info("Shutter location saved at (%.1f, %.1f)", x, y)


class GestureTapCallback:
    """
    ``on_fire`` callback for ``TriggerEngine`` that dispatches a tap at the
    shutter location.

    The location is read at fire time so a newly captured location takes
    effect immediately.
    """

    def __init__(self, store: PreferenceStore, dispatcher: TapDispatcher) -> None:
        self._store = store
        self._dispatcher = dispatcher

    def __call__(self, event: TriggerEvent) -> None:
        gesture = shutter_location(self._store)
        logger.debug(
            "Dispatching tap at (%.1f, %.1f) for %s", gesture.x, gesture.y, event.source.value
        )
        self._dispatcher.dispatch(gesture)
