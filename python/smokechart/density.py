"""Smoke-bar density renderers.

Each strategy turns one bucket's min/avg/max spread (and percentiles, when the
backend supplies them) into draw commands.  All four share the same bar
geometry and skip buckets whose latency range is empty.

The fallback paths (no percentiles) model each bucket as a normal
distribution centred on ``avg`` with ``sigma = range / 4``.  That is a visual
approximation, not an estimator.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Callable, Sequence

import numpy as np

from . import colors
from .model import ChartPoint
from .preferences import SmokeBarStyle
from .prepare import bar_spans
from .scales import ChartScales, LinearScale
from .scene import GradientStop, LinearGradient, Primitive, Rect, RenderContext

logger = logging.getLogger(__name__)

SIGMA_DIVISOR = 4.0
HISTOGRAM_BINS = 8

# z-scores giving roughly 95 / 75 / 50 % coverage of a normal distribution
_BAND_Z = (1.96, 1.15, 0.67)
_BAND_OPACITY = (0.2, 0.35, 0.55)
_MIN_CORE_PX = 2.0


@dataclass
class SmokeBar:
    index: int
    point: ChartPoint
    x0: float
    x1: float

    @property
    def width(self) -> float:
        return max(1.0, self.x1 - self.x0)

    @property
    def value_range(self) -> float:
        return self.point.max - self.point.min


@dataclass
class DrawCommands:
    items: list[Primitive] = field(default_factory=list)
    defs: list[LinearGradient] = field(default_factory=list)


DensityRenderer = Callable[[SmokeBar, LinearScale], DrawCommands]


def _span(bar: SmokeBar, y: LinearScale, lo: float, hi: float) -> tuple[float, float]:
    """Pixel (top, height) for the latency interval [lo, hi]."""
    top = y(hi)
    return top, y(lo) - top


def _gaussian(v: float, mean: float, sigma: float) -> float:
    z = (v - mean) / sigma
    return math.exp(-0.5 * z * z)


# ---------------------------------------------------------------------------
# Strategies
# ---------------------------------------------------------------------------

def render_classic(bar: SmokeBar, y: LinearScale) -> DrawCommands:
    p = bar.point
    top, height = _span(bar, y, p.min, p.max)
    out = DrawCommands()
    out.items.append(Rect(bar.x0, top, bar.width, height,
                          fill=colors.SMOKE_RANGE, opacity=0.5,
                          css_class="smoke-range"))
    band = max(4.0, height * 0.3)
    out.items.append(Rect(bar.x0, y(p.avg) - band / 2, bar.width, band,
                          fill=colors.SMOKE_CORE, opacity=0.6,
                          css_class="smoke-core"))
    return out


def _gradient_stops(p: ChartPoint) -> list[GradientStop]:
    rng = p.max - p.min

    def offset(v: float) -> float:
        return min(1.0, max(0.0, (p.max - v) / rng))

    if p.percentiles is not None:
        pc = p.percentiles
        raw = [
            (0.0, 0.12),
            (offset(pc.p99), 0.2),
            (offset(pc.p95), 0.32),
            (offset(pc.p90), 0.45),
            (offset(pc.p75), 0.65),
            (offset(pc.p50), 0.85),
            (1.0, 0.3),
        ]
    else:
        raw = [(0.0, 0.15), (offset(p.avg), 0.8), (1.0, 0.15)]
    raw.sort(key=lambda s: s[0])
    return [GradientStop(o, colors.SMOKE_BASE, a) for o, a in raw]


def render_gradient(bar: SmokeBar, y: LinearScale) -> DrawCommands:
    p = bar.point
    top, height = _span(bar, y, p.min, p.max)
    grad = LinearGradient(id=f"smoke-grad-{bar.index}", stops=_gradient_stops(p))
    rect = Rect(bar.x0, top, bar.width, height, fill=f"url(#{grad.id})",
                css_class="smoke-gradient")
    return DrawCommands(items=[rect], defs=[grad])


def _band_intervals(p: ChartPoint) -> list[tuple[float, float]]:
    """Outer, mid and inner latency intervals, widest first."""
    if p.percentiles is not None:
        pc = p.percentiles
        # only upper percentiles are known; mirror them about the median
        outer = (pc.p50 - (pc.p95 - pc.p50), pc.p95)
        mid = (pc.p50 - (pc.p75 - pc.p50), pc.p75)
        half_core = (pc.p75 - pc.p50) / 2
        inner = (pc.p50 - half_core, pc.p50 + half_core)
        bands = [outer, mid, inner]
    else:
        sigma = (p.max - p.min) / SIGMA_DIVISOR
        bands = [(p.avg - z * sigma, p.avg + z * sigma) for z in _BAND_Z]
    return [(max(p.min, lo), min(p.max, hi)) for lo, hi in bands]


def render_percentile_bands(bar: SmokeBar, y: LinearScale) -> DrawCommands:
    p = bar.point
    bar_top, bar_height = _span(bar, y, p.min, p.max)
    out = DrawCommands()
    bands = _band_intervals(p)
    for i, ((lo, hi), opacity) in enumerate(zip(bands, _BAND_OPACITY)):
        top, height = _span(bar, y, lo, hi)
        if i == len(bands) - 1 and height < _MIN_CORE_PX:
            centre = top + height / 2
            height = min(_MIN_CORE_PX, bar_height)
            top = min(max(bar_top, centre - height / 2), bar_top + bar_height - height)
        if height <= 0:
            continue
        out.items.append(Rect(bar.x0, top, bar.width, height,
                              fill=colors.SMOKE_BASE, opacity=opacity,
                              css_class=f"smoke-band-{i}"))
    return out


def _histogram_opacities(p: ChartPoint) -> np.ndarray:
    rng = p.max - p.min
    edges = np.linspace(p.min, p.max, HISTOGRAM_BINS + 1)
    centres = (edges[:-1] + edges[1:]) / 2
    if p.percentiles is not None:
        values = np.array([v for _, v in p.percentiles.items()], dtype=np.float64)
        idx = np.clip(np.searchsorted(edges, values, side="right") - 1,
                      0, HISTOGRAM_BINS - 1)
        inside = (values >= p.min) & (values <= p.max)
        counts = np.bincount(idx[inside], minlength=HISTOGRAM_BINS)
        proximity = np.clip(1 - np.abs(centres - p.percentiles.p50) / rng, 0, 1)
        return np.minimum(0.85, 0.06 + 0.12 * counts + 0.4 * proximity)
    sigma = rng / SIGMA_DIVISOR
    density = np.array([_gaussian(c, p.avg, sigma) for c in centres])
    return 0.06 + 0.7 * density


def render_histogram(bar: SmokeBar, y: LinearScale) -> DrawCommands:
    p = bar.point
    edges = np.linspace(p.min, p.max, HISTOGRAM_BINS + 1)
    out = DrawCommands()
    for k, opacity in enumerate(_histogram_opacities(p)):
        top, height = _span(bar, y, float(edges[k]), float(edges[k + 1]))
        if height <= 0:
            continue
        out.items.append(Rect(bar.x0, top, bar.width, height,
                              fill=colors.SMOKE_BASE, opacity=float(opacity),
                              css_class="smoke-bin"))
    return out


RENDERERS: dict[SmokeBarStyle, DensityRenderer] = {
    SmokeBarStyle.CLASSIC: render_classic,
    SmokeBarStyle.GRADIENT: render_gradient,
    SmokeBarStyle.PERCENTILE: render_percentile_bands,
    SmokeBarStyle.HISTOGRAM: render_histogram,
}


# ---------------------------------------------------------------------------
# Layer
# ---------------------------------------------------------------------------

def build_bars(valid: Sequence[ChartPoint], scales: ChartScales,
               interval: float, bar_width: float) -> list[SmokeBar]:
    spans = bar_spans(valid, scales.x, interval, bar_width / 2)
    return [SmokeBar(i, p, x0, x1) for i, (p, (x0, x1)) in enumerate(zip(valid, spans))]


def render_smoke_bars(ctx: RenderContext, scales: ChartScales,
                      valid: Sequence[ChartPoint], interval: float,
                      bar_width: float, style: SmokeBarStyle,
                      clip: str | None = None) -> int:
    """Draw the smoke layer; returns the number of bars drawn."""
    renderer = RENDERERS[style]
    layer = ctx.layer("smoke", clip=clip)
    drawn = 0
    for bar in build_bars(valid, scales, interval, bar_width):
        # zero-range buckets carry no spread to draw
        if bar.value_range <= 0 or scales.y(bar.point.min) - scales.y(bar.point.max) <= 0:
            continue
        cmds = renderer(bar, scales.y)
        for d in cmds.defs:
            ctx.add_def(d)
        for item in cmds.items:
            layer.add(item)
        drawn += 1
    logger.debug("smoke layer: style=%s bars=%d/%d", style.value, drawn, len(valid))
    return drawn
