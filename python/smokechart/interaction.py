"""Pointer interaction: event subscriptions, hover tooltip, brush zoom."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from datetime import tzinfo
from typing import Any, Callable, Sequence

import numpy as np

from . import colors
from .colors import ThemeColors
from .model import ChartPoint
from .prepare import timestamps
from .scales import ChartScales, to_datetime
from .scene import Circle, Line, Rect, RenderContext

logger = logging.getLogger(__name__)

POINTER_MOVE = "pointermove"
POINTER_LEAVE = "pointerleave"
POINTER_DOWN = "pointerdown"
POINTER_UP = "pointerup"
RESIZE = "resize"

THROTTLE_INTERVAL = 0.016  # ~60 Hz
MIN_BRUSH_PX = 10.0
_PANEL_OFFSET = (15.0, -15.0)


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------

@dataclass
class PointerEvent:
    x: float  # chart-area coordinates
    y: float
    page_x: float | None = None  # host/window coordinates, for the panel
    page_y: float | None = None


class Subscription:
    """Handle returned by :meth:`EventHub.subscribe`; dispose to unsubscribe."""

    def __init__(self, hub: EventHub, event: str,
                 handler: Callable[..., Any]) -> None:
        self._hub = hub
        self.event = event
        self.handler = handler
        self.active = True

    def dispose(self) -> None:
        if self.active:
            self._hub._remove(self)
            self.active = False


class EventHub:
    """Named-event dispatcher the host feeds pointer and resize events into."""

    def __init__(self) -> None:
        self._subs: dict[str, list[Subscription]] = {}

    def subscribe(self, event: str, handler: Callable[..., Any]) -> Subscription:
        sub = Subscription(self, event, handler)
        self._subs.setdefault(event, []).append(sub)
        return sub

    def _remove(self, sub: Subscription) -> None:
        subs = self._subs.get(sub.event, [])
        if sub in subs:
            subs.remove(sub)

    def emit(self, event: str, *args: Any) -> int:
        called = 0
        for sub in list(self._subs.get(event, [])):
            # a handler may re-render and dispose later subscribers
            if not sub.active:
                continue
            sub.handler(*args)
            called += 1
        return called

    def listener_count(self, event: str | None = None) -> int:
        if event is not None:
            return len(self._subs.get(event, []))
        return sum(len(s) for s in self._subs.values())


class Throttle:
    """Leading-edge throttle: calls within *interval* of the last one are dropped."""

    def __init__(self, func: Callable[..., Any], interval: float = THROTTLE_INTERVAL,
                 clock: Callable[[], float] = time.monotonic) -> None:
        self._func = func
        self._interval = interval
        self._clock = clock
        self._last: float | None = None

    def __call__(self, *args: Any) -> bool:
        now = self._clock()
        if self._last is not None and (now - self._last) < self._interval:
            return False
        self._last = now
        self._func(*args)
        return True


# ---------------------------------------------------------------------------
# Tooltip
# ---------------------------------------------------------------------------

@dataclass
class TooltipLine:
    text: str
    color: str
    weight: str = "400"


@dataclass
class TooltipPanel:
    """Floating info panel; one live instance per mounted chart."""

    theme: ThemeColors
    visible: bool = False
    x: float = 0.0
    y: float = 0.0
    title: str = ""
    lines: list[TooltipLine] = field(default_factory=list)
    disposed: bool = False

    def show(self, x: float, y: float, title: str, lines: list[TooltipLine]) -> None:
        if self.disposed:
            return
        self.visible = True
        self.x, self.y = x, y
        self.title = title
        self.lines = lines

    def hide(self) -> None:
        self.visible = False

    def dispose(self) -> None:
        self.visible = False
        self.lines = []
        self.disposed = True


def nearest_index(ts: np.ndarray, t: float) -> int:
    """Index of the bucket closest to *t*; an exact midpoint picks the later one."""
    n = len(ts)
    if n == 0:
        return -1
    i = max(1, int(np.searchsorted(ts, t, side="left")))
    if i >= n:
        return n - 1
    if t - ts[i - 1] < ts[i] - t:
        return i - 1
    return i


def tooltip_content(p: ChartPoint, theme: ThemeColors,
                    tz: tzinfo | None = None) -> tuple[str, list[TooltipLine]]:
    title = to_datetime(p.timestamp, tz).strftime("%b %d, %Y %H:%M:%S")
    median = f"{p.avg:.2f} ms" if p.avg is not None else "N/A"
    lines = [TooltipLine(f"Median: {median}", colors.MEDIAN, "500")]
    for label, v, color in (("Avg", p.avg, colors.AVG), ("Min", p.min, colors.MIN),
                            ("Max", p.max, colors.MAX)):
        if v is not None:
            lines.append(TooltipLine(f"{label}: {v:.2f} ms", color))
    loss_color = (colors.packet_loss_color(p.packet_loss_percent)
                  if p.packet_loss_percent > 0 else colors.SUCCESS)
    lines.append(TooltipLine(f"Packet Loss: {p.packet_loss_percent:.2f}%",
                             loss_color, "500"))
    lines.append(TooltipLine(f"{p.failed_count} failed / {p.count} total",
                             theme.text_muted))
    return title, lines


class TooltipController:
    """Tracks the pointer, highlights the nearest bucket and fills the panel."""

    def __init__(self, ctx: RenderContext, scales: ChartScales,
                 points: Sequence[ChartPoint], chart_height: float,
                 panel: TooltipPanel, tz: tzinfo | None = None,
                 throttle_interval: float = THROTTLE_INTERVAL,
                 clock: Callable[[], float] = time.monotonic) -> None:
        self._scales = scales
        self._points = list(points)
        self._ts = timestamps(self._points)
        self._panel = panel
        self._tz = tz
        self.current: ChartPoint | None = None

        layer = ctx.layer("hover")
        self.hover_line = layer.add(Line(0, 0, 0, chart_height,
                                         stroke=panel.theme.text_muted,
                                         dash=(3, 3), opacity=0.0,
                                         css_class="hover-line"))
        self.hover_point = layer.add(Circle(0, 0, 6, fill=colors.MEDIAN,
                                            stroke=panel.theme.tooltip_bg,
                                            stroke_width=2, opacity=0.0,
                                            css_class="hover-point"))
        self._move = Throttle(self.on_pointer_move, throttle_interval, clock)

    def attach(self, hub: EventHub) -> list[Subscription]:
        return [
            hub.subscribe(POINTER_MOVE, self._move),
            hub.subscribe(POINTER_LEAVE, self.on_pointer_leave),
        ]

    def on_pointer_move(self, event: PointerEvent) -> None:
        idx = nearest_index(self._ts, self._scales.x.invert(event.x))
        if idx < 0:
            return
        p = self._points[idx]
        self.current = p
        xpos = self._scales.x(p.timestamp)
        self.hover_line.x1 = self.hover_line.x2 = xpos
        self.hover_line.opacity = 1.0
        if p.avg is not None:
            self.hover_point.cx = xpos
            self.hover_point.cy = self._scales.y(p.avg)
            self.hover_point.opacity = 1.0
        else:
            self.hover_point.opacity = 0.0
        title, lines = tooltip_content(p, self._panel.theme, self._tz)
        px = event.page_x if event.page_x is not None else event.x
        py = event.page_y if event.page_y is not None else event.y
        self._panel.show(px + _PANEL_OFFSET[0], py + _PANEL_OFFSET[1], title, lines)

    def on_pointer_leave(self, event: PointerEvent | None = None) -> None:
        self.current = None
        self.hover_line.opacity = 0.0
        self.hover_point.opacity = 0.0
        self._panel.hide()


# ---------------------------------------------------------------------------
# Brush
# ---------------------------------------------------------------------------

class BrushController:
    """Horizontal drag selection that emits a zoom time range on release.

    The controller only reads the time scale; applying the new range (and
    re-querying data for it) is the host's job.
    """

    def __init__(self, ctx: RenderContext, scales: ChartScales,
                 inner_width: float, chart_height: float,
                 on_brush_end: Callable[[float, float], None],
                 min_width: float = MIN_BRUSH_PX) -> None:
        self._scales = scales
        self._inner_width = inner_width
        self._chart_height = chart_height
        self._on_brush_end = on_brush_end
        self._min_width = min_width
        self._anchor: float | None = None
        self._layer = ctx.layer("brush")
        self.selection_rect: Rect | None = None

    @property
    def selection(self) -> tuple[float, float] | None:
        if self.selection_rect is None:
            return None
        r = self.selection_rect
        return (r.x, r.x + r.width)

    @property
    def dragging(self) -> bool:
        return self._anchor is not None

    def attach(self, hub: EventHub) -> list[Subscription]:
        return [
            hub.subscribe(POINTER_DOWN, lambda e: self.press(e.x)),
            hub.subscribe(POINTER_MOVE, lambda e: self.drag(e.x) if self.dragging else None),
            hub.subscribe(POINTER_UP, lambda e: self.release(e.x)),
        ]

    def _clamp(self, x: float) -> float:
        return min(max(x, 0.0), self._inner_width)

    def press(self, x: float) -> None:
        self._anchor = self._clamp(x)
        self._set_selection(self._anchor, self._anchor)

    def drag(self, x: float) -> None:
        if self._anchor is None:
            return
        x = self._clamp(x)
        self._set_selection(min(self._anchor, x), max(self._anchor, x))

    def release(self, x: float) -> tuple[float, float] | None:
        if self._anchor is None:
            return None
        self.drag(x)
        x0, x1 = self.selection or (0.0, 0.0)
        self._anchor = None
        self.clear()
        if x1 - x0 < self._min_width:
            # accidental click
            return None
        t0 = self._scales.x.invert(x0)
        t1 = self._scales.x.invert(x1)
        logger.info("brush zoom: %.0f -> %.0f", t0, t1)
        self._on_brush_end(t0, t1)
        return (t0, t1)

    def clear(self) -> None:
        if self.selection_rect is not None:
            self._layer.items.remove(self.selection_rect)
            self.selection_rect = None

    def _set_selection(self, x0: float, x1: float) -> None:
        if self.selection_rect is None:
            self.selection_rect = self._layer.add(Rect(
                x0, 0.0, x1 - x0, self._chart_height, fill=colors.BRUSH_ACCENT,
                opacity=0.15, stroke=colors.BRUSH_ACCENT, stroke_width=2, rx=4,
                css_class="brush-selection"))
        else:
            self.selection_rect.x = x0
            self.selection_rect.width = x1 - x0
