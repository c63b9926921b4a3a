"""Gap-aware latency lines (median/min/max/avg)."""

from __future__ import annotations

import math
from typing import Callable, Sequence

from . import colors
from .curves import monotone_x_path
from .model import ChartPoint
from .prepare import split_into_segments
from .scales import ChartScales
from .scene import Circle, Path, RenderContext

MAX_MARKERS = 100


def render_stat_line(ctx: RenderContext, scales: ChartScales,
                     points: Sequence[ChartPoint],
                     value: Callable[[ChartPoint], float | None],
                     color: str, name: str, interval: float,
                     stroke_width: float = 2.0) -> int:
    """One smoothed path per segment; returns the number of paths drawn."""
    if not points:
        return 0
    layer = ctx.layer(name)
    drawn = 0
    for segment in split_into_segments(points, interval):
        # a lone point cannot form a line
        if len(segment) < 2:
            continue
        xs = [scales.x(p.timestamp) for p in segment]
        ys = [scales.y(value(p)) for p in segment]
        layer.add(Path(monotone_x_path(xs, ys), stroke=color,
                       stroke_width=stroke_width, css_class=name))
        drawn += 1
    return drawn


def marker_indices(n: int, limit: int = MAX_MARKERS) -> list[int]:
    """Evenly thinned indices, always keeping the most recent point."""
    if n == 0:
        return []
    step = max(1, math.ceil(n / limit))
    return [i for i in range(n) if i % step == 0 or i == n - 1]


def render_median_line(ctx: RenderContext, scales: ChartScales,
                       valid: Sequence[ChartPoint], interval: float) -> int:
    # buckets carry no per-bucket median, so the avg series stands in for it
    if not valid:
        return 0
    drawn = render_stat_line(ctx, scales, valid, lambda p: p.avg, colors.MEDIAN,
                             "median-line", interval, stroke_width=2.5)
    layer = ctx.layer("median-points")
    for i in marker_indices(len(valid)):
        p = valid[i]
        layer.add(Circle(scales.x(p.timestamp), scales.y(p.avg), 3.0,
                         fill=colors.MEDIAN, stroke="#ffffff", stroke_width=1.0,
                         css_class="median-point"))
    return drawn
