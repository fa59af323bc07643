"""
User preferences: the flat key -> value contract between the trigger engine
and whatever persists the user's choices.

Provides:
    - PreferenceStore: protocol for typed get/put access
    - InMemoryPreferenceStore: dict-backed store (tests, simulations)
    - JsonPreferenceStore: flat JSON object on disk, rewritten atomically
    - TriggerPreferences / read_preferences: the per-event settings snapshot

A missing key always resolves to its documented default. A key holding a
value of the wrong type is a ``PreferenceError``.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Protocol, Tuple, Union, runtime_checkable

from lenstap.exceptions import LensTapError

logger = logging.getLogger(__name__)


class PreferenceError(LensTapError):
    """Exception raised for unreadable or ill-typed preferences."""
    pass


# ---------------------------------------------------------------------------
# Keys and defaults
# ---------------------------------------------------------------------------

KEY_PROXIMITY_ENABLED = "proximity_enabled"
KEY_VIBRATION_ENABLED = "vibration_enabled"
KEY_VIBRATION_SENSITIVITY = "vibration_sensitivity"
KEY_BACK_TAP_ENABLED = "back_tap_enabled"
KEY_BACK_TAP_THRESHOLD = "back_tap_threshold"
KEY_FINGERPRINT_ENABLED = "fingerprint_enabled"
KEY_VOLUME_KEY_ENABLED = "volume_key_enabled"
KEY_SHUTTER_X = "shutter_x"
KEY_SHUTTER_Y = "shutter_y"

DEFAULT_BACK_TAP_THRESHOLD = 25.0

DEFAULTS: Dict[str, Union[bool, int, float]] = {
    KEY_PROXIMITY_ENABLED: False,
    KEY_VIBRATION_ENABLED: False,
    KEY_VIBRATION_SENSITIVITY: 50,
    KEY_BACK_TAP_ENABLED: False,
    KEY_BACK_TAP_THRESHOLD: DEFAULT_BACK_TAP_THRESHOLD,
    KEY_FINGERPRINT_ENABLED: False,
    KEY_VOLUME_KEY_ENABLED: False,
    KEY_SHUTTER_X: 1.0,
    KEY_SHUTTER_Y: 1.0,
}


def coerce_value(key: str, raw: str) -> Union[bool, int, float]:
    """
    Parse a user-entered string into the type of ``DEFAULTS[key]``.

    Raises
    ------
    PreferenceError
        If the key is unknown or the text does not parse.
    """
    if key not in DEFAULTS:
        raise PreferenceError(f"Unknown preference key: {key!r}. Known keys: {sorted(DEFAULTS)}")
    default = DEFAULTS[key]
    text = raw.strip().lower()
    if isinstance(default, bool):
        if text in ("1", "true", "yes", "on"):
            return True
        if text in ("0", "false", "no", "off"):
            return False
        raise PreferenceError(f"{key} expects a boolean, got {raw!r}")
    try:
        if isinstance(default, int):
            return int(text)
        return float(text)
    except ValueError as e:
        raise PreferenceError(f"{key} expects a {type(default).__name__}, got {raw!r}") from e


# ---------------------------------------------------------------------------
# Store protocol
# ---------------------------------------------------------------------------

@runtime_checkable
class PreferenceStore(Protocol):
    """Protocol that all preference stores must satisfy."""

    def get_bool(self, key: str, default: bool) -> bool: ...
    def get_int(self, key: str, default: int) -> int: ...
    def get_float(self, key: str, default: float) -> float: ...
    def put_bool(self, key: str, value: bool) -> None: ...
    def put_int(self, key: str, value: int) -> None: ...
    def put_float(self, key: str, value: float) -> None: ...
    def contains(self, key: str) -> bool: ...
    def as_dict(self) -> Dict[str, Any]: ...


class _TypedAccessMixin:
    """Typed getters and putters on top of ``_read(key)`` / ``_write(key, value)``."""

    def get_bool(self, key: str, default: bool) -> bool:
        value = self._read(key)
        if value is None:
            return default
        if not isinstance(value, bool):
            raise PreferenceError(f"Preference {key!r} is not a boolean: {value!r}")
        return value

    def get_int(self, key: str, default: int) -> int:
        value = self._read(key)
        if value is None:
            return default
        if isinstance(value, bool) or not isinstance(value, int):
            raise PreferenceError(f"Preference {key!r} is not an integer: {value!r}")
        return value

    def get_float(self, key: str, default: float) -> float:
        value = self._read(key)
        if value is None:
            return default
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise PreferenceError(f"Preference {key!r} is not a number: {value!r}")
        return float(value)

    def put_bool(self, key: str, value: bool) -> None:
        self._write(key, bool(value))

    def put_int(self, key: str, value: int) -> None:
        self._write(key, int(value))

    def put_float(self, key: str, value: float) -> None:
        self._write(key, float(value))

    def put(self, key: str, value: Union[bool, int, float]) -> None:
        """Store *value* with the putter matching its Python type."""
        if isinstance(value, bool):
            self.put_bool(key, value)
        elif isinstance(value, int):
            self.put_int(key, value)
        else:
            self.put_float(key, value)

    def contains(self, key: str) -> bool:
        return self._read(key) is not None


# ---------------------------------------------------------------------------
# In-memory store
# ---------------------------------------------------------------------------

class InMemoryPreferenceStore(_TypedAccessMixin):
    """Dict-backed preference store."""

    def __init__(self, initial: Optional[Mapping[str, Any]] = None) -> None:
        self._values: Dict[str, Any] = dict(initial or {})

    def _read(self, key: str) -> Any:
        return self._values.get(key)

    def _write(self, key: str, value: Any) -> None:
        self._values[key] = value

    def as_dict(self) -> Dict[str, Any]:
        return dict(self._values)

    def __repr__(self) -> str:
        return f"InMemoryPreferenceStore({self._values!r})"


# ---------------------------------------------------------------------------
# JSON file store
# ---------------------------------------------------------------------------

class JsonPreferenceStore(_TypedAccessMixin):
    """
    Preferences persisted as one flat JSON object.

    The file is read lazily on first access and rewritten in full on every
    put through a temporary file and ``os.replace`` so a crash never leaves
    a half-written file behind. A missing file is an empty store.

    Every access compares the file's inode, mtime and size with the ones
    last loaded, so a change written by another process (``lenstap prefs
    set``) is picked up on the next read.

    Parameters
    ----------
    path : str or Path
        Location of the JSON file.
    """

    def __init__(self, path: Union[str, Path]) -> None:
        self._path = Path(path)
        self._values: Optional[Dict[str, Any]] = None
        self._signature: Optional[Tuple[int, int, int]] = None
        self._lock = threading.Lock()

    @property
    def path(self) -> Path:
        return self._path

    def _file_signature(self) -> Optional[Tuple[int, int, int]]:
        try:
            st = self._path.stat()
        except FileNotFoundError:
            return None
        except OSError as e:
            raise PreferenceError(f"Cannot stat preference file {self._path}: {e}") from e
        return st.st_ino, st.st_mtime_ns, st.st_size

    def _load(self) -> Dict[str, Any]:
        signature = self._file_signature()
        if self._values is not None and signature == self._signature:
            return self._values
        self._signature = signature
        if signature is None:
            self._values = {}
            return self._values
        try:
            with open(self._path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise PreferenceError(f"Corrupt preference file {self._path}: {e}") from e
        except OSError as e:
            raise PreferenceError(f"Cannot read preference file {self._path}: {e}") from e
        if not isinstance(data, dict):
            raise PreferenceError(
                f"Preference file {self._path} must hold a JSON object, got {type(data).__name__}"
            )
        self._values = data
        logger.debug("Loaded %d preferences from %s", len(data), self._path)
        return self._values

    def _read(self, key: str) -> Any:
        with self._lock:
            return self._load().get(key)

    def _write(self, key: str, value: Any) -> None:
        with self._lock:
            values = self._load()
            values[key] = value
            self._flush(values)

    def _flush(self, values: Dict[str, Any]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{self._path.name}.", suffix=".tmp", dir=str(self._path.parent)
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(values, f, indent=2, sort_keys=True)
            os.replace(tmp_name, self._path)
            self._signature = self._file_signature()
        except OSError as e:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise PreferenceError(f"Cannot write preference file {self._path}: {e}") from e

    def as_dict(self) -> Dict[str, Any]:
        with self._lock:
            return dict(self._load())

    def __repr__(self) -> str:
        return f"JsonPreferenceStore(path={str(self._path)!r})"


# ---------------------------------------------------------------------------
# Snapshot
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class TriggerPreferences:
    """Immutable view of the trigger settings at the moment of one event."""

    proximity_enabled: bool = False
    vibration_enabled: bool = False
    vibration_sensitivity: int = 50
    back_tap_enabled: bool = False
    back_tap_threshold: float = DEFAULT_BACK_TAP_THRESHOLD
    fingerprint_enabled: bool = False
    volume_key_enabled: bool = False


def read_preferences(store: PreferenceStore, clamp: bool = True) -> TriggerPreferences:
    """
    Take a fresh snapshot of the trigger settings.

    Parameters
    ----------
    store : PreferenceStore
        Source of the values; missing keys fall back to ``DEFAULTS``.
    clamp : bool
        Clamp ``vibration_sensitivity`` into [0, 100]. Detectors assume the
        documented range, so callers reading untrusted stores should keep
        this on.
    """
    sensitivity = store.get_int(KEY_VIBRATION_SENSITIVITY, DEFAULTS[KEY_VIBRATION_SENSITIVITY])
    if clamp:
        sensitivity = min(100, max(0, sensitivity))

    return TriggerPreferences(
        proximity_enabled=store.get_bool(KEY_PROXIMITY_ENABLED, DEFAULTS[KEY_PROXIMITY_ENABLED]),
        vibration_enabled=store.get_bool(KEY_VIBRATION_ENABLED, DEFAULTS[KEY_VIBRATION_ENABLED]),
        vibration_sensitivity=sensitivity,
        back_tap_enabled=store.get_bool(KEY_BACK_TAP_ENABLED, DEFAULTS[KEY_BACK_TAP_ENABLED]),
        back_tap_threshold=store.get_float(KEY_BACK_TAP_THRESHOLD, DEFAULTS[KEY_BACK_TAP_THRESHOLD]),
        fingerprint_enabled=store.get_bool(KEY_FINGERPRINT_ENABLED, DEFAULTS[KEY_FINGERPRINT_ENABLED]),
        volume_key_enabled=store.get_bool(KEY_VOLUME_KEY_ENABLED, DEFAULTS[KEY_VOLUME_KEY_ENABLED]),
    )
