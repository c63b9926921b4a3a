"""SmokeChart: the render-pass orchestrator.

A render pass disposes the previous :class:`RenderContext`, derives chart
points, builds scales once and invokes the layers in a fixed order.  Pointer
handling is wired through an :class:`EventHub` supplied by the host; resize
events arrive on the same hub and trigger a new pass.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import tzinfo
from typing import Callable, Sequence

from . import colors
from .decorations import (
    render_axes, render_grid, render_legend, render_placeholder, render_stats_panel,
)
from .density import render_smoke_bars
from .interaction import (
    RESIZE, BrushController, EventHub, Subscription, TooltipController, TooltipPanel,
)
from .model import ChartPoint, ChartStats, RawBucket
from .packet_loss import render_packet_loss
from .preferences import ChartOptions
from .prepare import (
    calculate_bucket_interval, calculate_chart_stats, filter_valid_latency,
    prepare_chart_data,
)
from .scales import ChartScales, build_scales, to_datetime
from .scene import ClipRect, RenderContext
from .stat_lines import render_median_line, render_stat_line

logger = logging.getLogger(__name__)

DEFAULT_WIDTH = 800
DEFAULT_HEIGHT = 500
PACKET_LOSS_RESERVE = 40  # px kept free below the chart area
COLLAPSED_RIGHT_MARGIN = 20
CLIP_ID = "chart-clip"


@dataclass(frozen=True)
class ChartMargin:
    top: float = 40
    right: float = 150
    bottom: float = 80
    left: float = 80


@dataclass(frozen=True)
class ChartDimensions:
    width: float
    height: float
    margin: ChartMargin

    @property
    def inner_width(self) -> float:
        return max(0.0, self.width - self.margin.left - self.margin.right)

    @property
    def inner_height(self) -> float:
        return max(0.0, self.height - self.margin.top - self.margin.bottom)

    @property
    def chart_height(self) -> float:
        return max(0.0, self.inner_height - PACKET_LOSS_RESERVE)


def bar_width(inner_width: float, n: int) -> float:
    """Fallback bar width used when the bucket interval is unknown."""
    if n == 0:
        return 2.0
    return max(2.0, min(max(4.0, inner_width / n * 0.8), 30.0))


def format_zoom_range(t0: float, t1: float, tz: tzinfo | None = None) -> str:
    """Human label for a zoomed time range, e.g. ``Mar 4, 10:15 - 11:40``."""
    a, b = to_datetime(t0, tz), to_datetime(t1, tz)
    start = f"{a:%b} {a.day}, {a:%H:%M}"
    if a.date() == b.date():
        return f"{start} - {b:%H:%M}"
    return f"{start} - {b:%b} {b.day}, {b:%H:%M}"


@dataclass
class RenderResult:
    """Derived data of the last pass, kept for hosts and tests."""

    context: RenderContext
    dimensions: ChartDimensions
    points: list[ChartPoint]
    valid: list[ChartPoint]
    interval: float
    scales: ChartScales | None
    stats: ChartStats | None


class SmokeChart:
    """One mounted chart instance.

    *width* of ``None`` means "use the observed container width" (fed in via
    :meth:`resize`); until one is observed :data:`DEFAULT_WIDTH` is used.
    """

    def __init__(self, options: ChartOptions | None = None,
                 width: float | None = None, height: float = DEFAULT_HEIGHT,
                 margin: ChartMargin | None = None,
                 events: EventHub | None = None,
                 on_zoom: Callable[[float, float], None] | None = None,
                 dark: bool = False, tz: tzinfo | None = None) -> None:
        self.options = options or ChartOptions()
        self._fixed_width = width
        self._observed_width: float | None = None
        self._height = height
        self._margin = margin or ChartMargin()
        self.events = events or EventHub()
        self._on_zoom = on_zoom
        self.theme = colors.theme_colors(dark)
        self._tz = tz
        self._buckets: list[RawBucket] = []
        self._context: RenderContext | None = None
        self._panel: TooltipPanel | None = None
        self._resize_sub: Subscription | None = None
        self.tooltip: TooltipController | None = None
        self.brush: BrushController | None = None
        self.last: RenderResult | None = None
        self.closed = False

    # ------------------------------------------------------------------
    # Host-facing API
    # ------------------------------------------------------------------

    def observe_resize(self) -> Subscription:
        """Subscribe to resize events; torn down by :meth:`close`."""
        if self._resize_sub is None:
            self._resize_sub = self.events.subscribe(RESIZE, self.resize)
        return self._resize_sub

    def resize(self, width: float, height: float | None = None) -> RenderResult | None:
        self._observed_width = width
        if height is not None:
            self._height = height
        if self.closed or self._context is None:
            return None
        return self.render()

    def set_data(self, buckets: Sequence[RawBucket]) -> RenderResult:
        self._buckets = list(buckets)
        return self.render()

    def set_options(self, options: ChartOptions) -> RenderResult:
        self.options = options
        return self.render()

    @property
    def panel(self) -> TooltipPanel | None:
        return self._panel

    @property
    def context(self) -> RenderContext | None:
        return self._context

    def dimensions(self) -> ChartDimensions:
        width = self._fixed_width or self._observed_width or DEFAULT_WIDTH
        margin = self._margin
        if not self.options.show_stats_panel:
            margin = replace(margin, right=COLLAPSED_RIGHT_MARGIN)
        return ChartDimensions(width=width, height=self._height, margin=margin)

    def close(self) -> None:
        """Unmount: dispose the scene, tooltip panel and resize subscription."""
        self._teardown()
        if self._resize_sub is not None:
            self._resize_sub.dispose()
            self._resize_sub = None
        self.closed = True

    # ------------------------------------------------------------------
    # Render pass
    # ------------------------------------------------------------------

    def _teardown(self) -> None:
        if self._context is not None:
            self._context.dispose()
            self._context = None
        self._panel = None
        self.tooltip = None
        self.brush = None

    def render(self) -> RenderResult:
        if self.closed:
            raise RuntimeError("chart is closed")
        self._teardown()
        dims = self.dimensions()
        opts = self.options
        m = dims.margin

        points = prepare_chart_data(self._buckets)
        if not points:
            ctx = RenderContext(dims.width, dims.height)
            render_placeholder(ctx, self.theme)
            self._context = ctx
            self.last = RenderResult(ctx, dims, [], [], 0.0, None, None)
            logger.debug("render: no data")
            return self.last

        valid = filter_valid_latency(points)
        interval = calculate_bucket_interval(points)
        inner_w, chart_h = dims.inner_width, dims.chart_height

        ctx = RenderContext(dims.width, dims.height, origin=(m.left, m.top))
        ctx.add_def(ClipRect(CLIP_ID, 0.0, 0.0, inner_w, chart_h))
        scales = build_scales(points, valid, inner_w, chart_h, opts.clip_to_p99)
        bw = bar_width(inner_w, len(points))

        # 1. data layers
        if opts.show_smoke_bars:
            render_smoke_bars(ctx, scales, valid, interval, bw,
                              opts.smoke_bar_style, clip=CLIP_ID)
        if opts.show_packet_loss:
            render_packet_loss(ctx, scales, points, interval, chart_h, bw,
                               clip=CLIP_ID)
        if opts.show_median_line and valid:
            render_median_line(ctx, scales, valid, interval)
        if opts.show_min_line and valid:
            render_stat_line(ctx, scales, valid, lambda p: p.min, colors.MIN,
                             "min-line", interval)
        if opts.show_max_line and valid:
            render_stat_line(ctx, scales, valid, lambda p: p.max, colors.MAX,
                             "max-line", interval)
        if opts.show_avg_line and valid:
            render_stat_line(ctx, scales, valid, lambda p: p.avg, colors.AVG,
                             "avg-line", interval)

        # 2. decorations
        render_grid(ctx, scales, inner_w, self.theme)
        render_axes(ctx, scales, chart_h, m.left, self.theme, self._tz)
        stats = calculate_chart_stats(points, valid)
        if opts.show_stats_panel:
            render_stats_panel(ctx, stats, inner_w, self.theme, self._tz)
        render_legend(ctx, chart_h, opts, self.theme)

        # 3. interaction
        self._panel = ctx.own(TooltipPanel(self.theme))
        self.tooltip = TooltipController(ctx, scales, points, chart_h,
                                         self._panel, tz=self._tz)
        for sub in self.tooltip.attach(self.events):
            ctx.own(sub)
        if self._on_zoom is not None:
            self.brush = BrushController(ctx, scales, inner_w, chart_h, self._on_zoom)
            for sub in self.brush.attach(self.events):
                ctx.own(sub)

        self._context = ctx
        self.last = RenderResult(ctx, dims, points, valid, interval, scales, stats)
        logger.debug("render: %d buckets (%d valid) interval=%.0fms size=%gx%g",
                     len(points), len(valid), interval, dims.width, dims.height)
        return self.last
