"""Linear and time scales, nice rounding and tick generation."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import datetime, timezone, tzinfo
from typing import Callable, Sequence

import numpy as np

from .model import ChartPoint
from .prepare import calculate_p99

logger = logging.getLogger(__name__)

HEADROOM = 1.15
DEFAULT_UPPER = 100.0
SINGLE_POINT_PAD_MS = 60_000.0

_E10 = math.sqrt(50)
_E5 = math.sqrt(10)
_E2 = math.sqrt(2)


def tick_increment(start: float, stop: float, count: int) -> float:
    """Step between nice ticks; negative values mean ``1 / -step``."""
    step = (stop - start) / max(1, count)
    if step <= 0 or not math.isfinite(step):
        return 0.0
    power = math.floor(math.log10(step))
    error = step / 10 ** power
    if error >= _E10:
        factor = 10
    elif error >= _E5:
        factor = 5
    elif error >= _E2:
        factor = 2
    else:
        factor = 1
    if power >= 0:
        return factor * 10 ** power
    return -(10 ** -power) / factor


def nice_domain(start: float, stop: float, count: int = 10) -> tuple[float, float]:
    """Extend [start, stop] outward to round tick boundaries."""
    prestep = None
    for _ in range(10):
        step = tick_increment(start, stop, count)
        if step == prestep or step == 0:
            break
        if step > 0:
            start = math.floor(start / step) * step
            stop = math.ceil(stop / step) * step
        else:
            start = math.ceil(start * step) / step
            stop = math.floor(stop * step) / step
        prestep = step
    return start, stop


class LinearScale:
    """Continuous linear map from a domain onto a pixel range."""

    def __init__(self, domain: tuple[float, float], range_: tuple[float, float]) -> None:
        self.domain = (float(domain[0]), float(domain[1]))
        self.range = (float(range_[0]), float(range_[1]))

    def __call__(self, v: float) -> float:
        d0, d1 = self.domain
        r0, r1 = self.range
        if d1 == d0:
            return (r0 + r1) / 2
        # exact endpoints, no float drift at the domain bounds
        if v == d0:
            return r0
        if v == d1:
            return r1
        return r0 + (v - d0) / (d1 - d0) * (r1 - r0)

    def invert(self, px: float) -> float:
        d0, d1 = self.domain
        r0, r1 = self.range
        if r1 == r0:
            return (d0 + d1) / 2
        return d0 + (px - r0) / (r1 - r0) * (d1 - d0)

    def nice(self, count: int = 10) -> LinearScale:
        self.domain = nice_domain(self.domain[0], self.domain[1], count)
        return self

    def ticks(self, count: int = 10) -> list[float]:
        start, stop = self.domain
        if start > stop:
            start, stop = stop, start
        step = tick_increment(start, stop, count)
        if step == 0:
            return [start] if start == stop else []
        if step > 0:
            i0, i1 = math.ceil(start / step), math.floor(stop / step)
            return [i * step for i in range(i0, i1 + 1)]
        inv = -step
        i0, i1 = math.ceil(start * inv), math.floor(stop * inv)
        return [i / inv for i in range(i0, i1 + 1)]


_SECOND = 1_000
_MINUTE = 60 * _SECOND
_HOUR = 60 * _MINUTE
_DAY = 24 * _HOUR

_TIME_STEPS = [
    _SECOND, 5 * _SECOND, 15 * _SECOND, 30 * _SECOND,
    _MINUTE, 5 * _MINUTE, 15 * _MINUTE, 30 * _MINUTE,
    _HOUR, 3 * _HOUR, 6 * _HOUR, 12 * _HOUR,
    _DAY, 2 * _DAY, 7 * _DAY, 14 * _DAY, 30 * _DAY, 90 * _DAY, 365 * _DAY,
]


class TimeScale(LinearScale):
    """Linear scale over millisecond timestamps with calendar-ish ticks."""

    def ticks(self, count: int = 10) -> list[float]:
        start, stop = self.domain
        span = stop - start
        if span <= 0:
            return [start]
        target = span / max(1, count)
        step = _TIME_STEPS[-1]
        for s in _TIME_STEPS:
            if s >= target:
                step = s
                break
        # UTC-aligned; fine for sub-day steps in whole-hour offset zones
        first = math.ceil(start / step) * step
        return [float(t) for t in np.arange(first, stop + 1e-9, step)]


@dataclass
class ChartScales:
    x: TimeScale
    y: LinearScale
    time_extent: tuple[float, float]
    upper_bound: float


def build_scales(points: Sequence[ChartPoint], valid: Sequence[ChartPoint],
                 inner_width: float, chart_height: float,
                 clip_to_p99: bool = False) -> ChartScales:
    """Build the time and latency scales for one render pass."""
    if points:
        t0 = min(p.timestamp for p in points)
        t1 = max(p.timestamp for p in points)
    else:
        t0 = t1 = 0.0
    time_extent = (t0, t1)
    if t0 == t1:
        t0, t1 = t0 - SINGLE_POINT_PAD_MS, t1 + SINGLE_POINT_PAD_MS
    x = TimeScale((t0, t1), (0.0, inner_width))

    if valid:
        if clip_to_p99:
            peak = calculate_p99(valid)
        else:
            peak = max(p.max for p in valid)
        upper = peak * HEADROOM or DEFAULT_UPPER
    else:
        upper = DEFAULT_UPPER
    y = LinearScale((0.0, upper), (chart_height, 0.0)).nice()
    logger.debug("scales: x=[%.0f, %.0f] y=[0, %.3f] clip_p99=%s",
                 t0, t1, y.domain[1], clip_to_p99)
    return ChartScales(x=x, y=y, time_extent=time_extent, upper_bound=y.domain[1])


def time_format(start_ms: float, end_ms: float,
                tz: tzinfo | None = None) -> Callable[[float], str]:
    """Tick label formatter chosen by the span of the visible range."""
    span = end_ms - start_ms
    hours = int(span // _HOUR)
    days = int(span // _DAY)
    if hours <= 1:
        fmt = "%H:%M:%S"
    elif hours <= 24:
        fmt = "%H:%M"
    elif days <= 7:
        fmt = "%b %d %H:%M"
    else:
        fmt = "%b %d"

    def _format(ms: float) -> str:
        return to_datetime(ms, tz).strftime(fmt)
    return _format


def to_datetime(ms: float, tz: tzinfo | None = None) -> datetime:
    """Epoch milliseconds to an aware datetime (local zone when *tz* is None)."""
    dt = datetime.fromtimestamp(ms / 1000, tz=timezone.utc)
    return dt.astimezone(tz) if tz is not None else dt.astimezone()
