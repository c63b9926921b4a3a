"""Draws a :class:`RenderContext` into a DearPyGui drawlist."""

from __future__ import annotations

import logging

import dearpygui.dearpygui as dpg

from ..colors import hex_to_rgba
from ..curves import flatten
from ..scene import (
    Circle, ClipRect, Layer, Line, LinearGradient, Path, Rect, RenderContext, Text,
)

logger = logging.getLogger(__name__)

_CHAR_WIDTH = 0.55  # rough glyph advance as a fraction of font size
_CURVE_STEPS = 6


def _text_width(t: Text) -> float:
    return len(t.text) * t.size * _CHAR_WIDTH


def _clip(x0: float, y0: float, x1: float, y1: float,
          clip: ClipRect | None) -> tuple[float, float, float, float] | None:
    if clip is None:
        return x0, y0, x1, y1
    cx0, cy0 = max(x0, clip.x), max(y0, clip.y)
    cx1, cy1 = min(x1, clip.x + clip.width), min(y1, clip.y + clip.height)
    if cx1 <= cx0 or cy1 <= cy0:
        return None
    return cx0, cy0, cx1, cy1


def _lerp_color(a: tuple[int, ...], b: tuple[int, ...], t: float) -> tuple[int, ...]:
    return tuple(int(round(u + (v - u) * t)) for u, v in zip(a, b))


class ChartCanvas:
    """Immediate-mode drawlist mirroring the scene layers.

    Each scene layer gets its own DPG draw layer so the interactive ones
    (hover, brush) can be refreshed without redrawing the smoke bars.
    """

    def __init__(self, parent: int | str, width: int, height: int) -> None:
        self.drawlist = dpg.add_drawlist(width=width, height=height, parent=parent)
        self._layers: dict[str, int | str] = {}
        self._ctx: RenderContext | None = None

    def resize(self, width: int, height: int) -> None:
        dpg.configure_item(self.drawlist, width=width, height=height)

    def origin(self) -> tuple[float, float]:
        """Screen position of the chart-area origin."""
        x, y = dpg.get_item_rect_min(self.drawlist)
        if self._ctx is not None:
            ox, oy = self._ctx.origin
            return x + ox, y + oy
        return x, y

    def draw(self, ctx: RenderContext) -> None:
        dpg.delete_item(self.drawlist, children_only=True)
        self._layers.clear()
        self._ctx = ctx
        for layer in ctx.layers:
            tag = dpg.add_draw_layer(parent=self.drawlist)
            self._layers[layer.name] = tag
            self._draw_layer(layer, tag)
        logger.debug("canvas: drew %d layers", len(ctx.layers))

    def refresh(self, *names: str) -> None:
        if self._ctx is None or self._ctx.disposed:
            return
        for name in names:
            layer = self._ctx.get_layer(name)
            tag = self._layers.get(name)
            if layer is None or tag is None:
                continue
            dpg.delete_item(tag, children_only=True)
            self._draw_layer(layer, tag)

    # ------------------------------------------------------------------
    # Primitives
    # ------------------------------------------------------------------

    def _draw_layer(self, layer: Layer, parent: int | str) -> None:
        assert self._ctx is not None
        ox = self._ctx.origin[0] + layer.offset[0]
        oy = self._ctx.origin[1] + layer.offset[1]
        clip = self._ctx.defs.get(layer.clip) if layer.clip else None
        if clip is not None and not isinstance(clip, ClipRect):
            clip = None
        for item in layer.items:
            if isinstance(item, Rect):
                self._rect(item, ox, oy, clip, parent)
            elif isinstance(item, Line):
                if item.opacity <= 0:
                    continue
                color = hex_to_rgba(item.stroke, item.opacity)
                dpg.draw_line((ox + item.x1, oy + item.y1), (ox + item.x2, oy + item.y2),
                              color=color, thickness=item.stroke_width, parent=parent)
            elif isinstance(item, Path):
                pts = [(ox + x, oy + y) for x, y in flatten(item.commands, _CURVE_STEPS)]
                if len(pts) >= 2:
                    dpg.draw_polyline(pts, color=hex_to_rgba(item.stroke),
                                      thickness=item.stroke_width, parent=parent)
            elif isinstance(item, Circle):
                if item.opacity <= 0:
                    continue
                dpg.draw_circle((ox + item.cx, oy + item.cy), item.r,
                                color=hex_to_rgba(item.stroke or item.fill, item.opacity),
                                fill=hex_to_rgba(item.fill, item.opacity),
                                thickness=item.stroke_width, parent=parent)
            elif isinstance(item, Text):
                self._text(item, ox, oy, parent)

    def _rect(self, r: Rect, ox: float, oy: float, clip: ClipRect | None,
              parent: int | str) -> None:
        if r.opacity <= 0:
            return
        box = _clip(r.x, r.y, r.x + r.width, r.y + r.height, clip)
        if box is None:
            return
        x0, y0, x1, y1 = box
        if r.fill.startswith("url(#"):
            grad = self._ctx.defs.get(r.fill[5:-1]) if self._ctx else None
            if isinstance(grad, LinearGradient):
                self._gradient(grad, r, box, ox, oy, parent)
            return
        fill = hex_to_rgba(r.fill, r.opacity)
        stroke = hex_to_rgba(r.stroke) if r.stroke and r.stroke_width else fill
        dpg.draw_rectangle((ox + x0, oy + y0), (ox + x1, oy + y1), color=stroke,
                           fill=fill, rounding=r.rx,
                           thickness=r.stroke_width or 1.0, parent=parent)

    def _gradient(self, grad: LinearGradient, r: Rect,
                  box: tuple[float, float, float, float],
                  ox: float, oy: float, parent: int | str) -> None:
        # one vertical multicolor slice per stop interval
        x0, y0, x1, y1 = box
        stops = grad.stops
        for a, b in zip(stops, stops[1:]):
            top = max(y0, r.y + a.offset * r.height)
            bottom = min(y1, r.y + b.offset * r.height)
            if bottom <= top:
                continue
            ca = hex_to_rgba(a.color, a.opacity)
            cb = hex_to_rgba(b.color, b.opacity)
            # stops are relative to the unclipped rect
            span = max(1e-9, (b.offset - a.offset) * r.height)
            ct = _lerp_color(ca, cb, (top - (r.y + a.offset * r.height)) / span)
            cbot = _lerp_color(ca, cb, (bottom - (r.y + a.offset * r.height)) / span)
            dpg.draw_rectangle_multicolor((ox + x0, oy + top), (ox + x1, oy + bottom),
                                          color_upper_left=ct, color_upper_right=ct,
                                          color_bottom_right=cbot, color_bottom_left=cbot,
                                          parent=parent)

    def _text(self, t: Text, ox: float, oy: float, parent: int | str) -> None:
        # DPG text cannot rotate; rotated labels are laid out horizontally
        w = _text_width(t)
        x, y = ox + t.x, oy + t.y - t.size
        if t.rotate == -90:
            # vertical axis title moves above the axis
            x -= t.size / 2
            y = oy - 2 * t.size
        elif t.anchor == "middle":
            x -= w / 2
        elif t.anchor == "end":
            x -= w
        if t.rotate and t.rotate != -90:
            # rotated tick labels hang below their anchor
            y += t.size
        dpg.draw_text((x, y), t.text, color=hex_to_rgba(t.fill), size=t.size,
                      parent=parent)
