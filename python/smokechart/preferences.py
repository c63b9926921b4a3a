"""Chart visibility/style options and their persistence.

The engine only reads :class:`ChartOptions`.  Hosts load them from a
:class:`PreferenceStore` (a flat key-value store keyed by option name) and
write single keys back when the user flips a toggle.
"""

from __future__ import annotations

import enum
import json
import logging
from dataclasses import asdict, dataclass, fields, replace
from pathlib import Path
from typing import Any, Protocol

logger = logging.getLogger(__name__)


class SmokeBarStyle(enum.Enum):
    CLASSIC = "classic"
    GRADIENT = "gradient"
    PERCENTILE = "percentile"
    HISTOGRAM = "histogram"


@dataclass(frozen=True)
class ChartOptions:
    show_median_line: bool = False
    show_min_line: bool = False
    show_max_line: bool = False
    show_avg_line: bool = False
    show_smoke_bars: bool = True
    show_packet_loss: bool = True
    show_stats_panel: bool = False
    clip_to_p99: bool = False
    smoke_bar_style: SmokeBarStyle = SmokeBarStyle.CLASSIC

    def with_option(self, key: str, value: Any) -> ChartOptions:
        return replace(self, **{key: coerce_option(key, value)})

    def to_dict(self) -> dict[str, Any]:
        d = asdict(self)
        d["smoke_bar_style"] = self.smoke_bar_style.value
        return d


DEFAULTS = ChartOptions()
OPTION_KEYS = tuple(f.name for f in fields(ChartOptions))


def coerce_option(key: str, value: Any) -> Any:
    """Validate *value* for *key*; raises ``KeyError``/``ValueError``."""
    if key not in OPTION_KEYS:
        raise KeyError(f"unknown chart option: {key}")
    if key == "smoke_bar_style":
        if isinstance(value, SmokeBarStyle):
            return value
        return SmokeBarStyle(value)
    if not isinstance(value, bool):
        raise ValueError(f"{key} expects a bool, got {value!r}")
    return value


class PreferenceStore(Protocol):
    def get(self, key: str) -> Any: ...

    def set(self, key: str, value: Any) -> None: ...


class MemoryPreferenceStore:
    """Dict-backed store; handy for tests and embedding."""

    def __init__(self, initial: dict[str, Any] | None = None) -> None:
        self._data: dict[str, Any] = dict(initial or {})

    def get(self, key: str) -> Any:
        return self._data.get(key)

    def set(self, key: str, value: Any) -> None:
        self._data[key] = value


class JsonPreferenceStore:
    """Preferences persisted as one JSON object on disk.

    Unreadable or malformed files behave like an empty store; write failures
    are logged and otherwise ignored so a read-only home never breaks charts.
    """

    def __init__(self, path: str | Path | None = None) -> None:
        self._path = Path(path) if path is not None else default_path()
        self._data = self._read()

    @property
    def path(self) -> Path:
        return self._path

    def _read(self) -> dict[str, Any]:
        try:
            with open(self._path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            return {}
        except (OSError, ValueError) as e:
            logger.warning("could not read preferences %s: %s", self._path, e)
            return {}
        if not isinstance(data, dict):
            logger.warning("ignoring preferences %s: not a JSON object", self._path)
            return {}
        return data

    def get(self, key: str) -> Any:
        return self._data.get(key)

    def set(self, key: str, value: Any) -> None:
        self._data[key] = value
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with open(self._path, "w", encoding="utf-8") as f:
                json.dump(self._data, f, indent=2, sort_keys=True)
        except OSError as e:
            logger.warning("could not write preferences %s: %s", self._path, e)


def default_path() -> Path:
    return Path.home() / ".config" / "smokechart" / "preferences.json"


def load_options(store: PreferenceStore) -> ChartOptions:
    """Read every option, replacing invalid or missing keys with defaults."""
    values: dict[str, Any] = {}
    for key in OPTION_KEYS:
        raw = store.get(key)
        if raw is None:
            continue
        try:
            values[key] = coerce_option(key, raw)
        except (KeyError, ValueError):
            logger.warning("preference %s=%r invalid, using default", key, raw)
    return replace(DEFAULTS, **values)


def save_option(store: PreferenceStore, key: str, value: Any) -> None:
    coerced = coerce_option(key, value)
    store.set(key, coerced.value if isinstance(coerced, SmokeBarStyle) else coerced)
    logger.info("preference %s set to %r", key, value)
