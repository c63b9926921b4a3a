"""Packet-loss background regions.

Buckets are coloured by loss severity and consecutive buckets of the same
colour with no time gap between them collapse into one rectangle.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Sequence

from . import colors
from .model import ChartPoint
from .prepare import bar_spans, is_gap
from .scales import ChartScales
from .scene import Rect, RenderContext

logger = logging.getLogger(__name__)

REGION_OPACITY = 0.15


@dataclass
class PacketLossRegion:
    start_x: float
    end_x: float
    color: str


def merge_regions(points: Sequence[ChartPoint], scales: ChartScales,
                  interval: float, bar_width: float) -> list[PacketLossRegion]:
    """Greedy single pass over *points*.

    Zero-sample buckets are "no data" and close the open region, as does a
    colour change or a time gap.
    """
    spans = bar_spans(points, scales.x, interval, bar_width / 2)
    regions: list[PacketLossRegion] = []
    current: PacketLossRegion | None = None
    for i, (p, (start, end)) in enumerate(zip(points, spans)):
        if p.count <= 0:
            if current is not None:
                regions.append(current)
                current = None
            continue
        color = colors.packet_loss_color(p.packet_loss_percent)
        gap_before = i == 0 or interval <= 0 or is_gap(
            p.timestamp - points[i - 1].timestamp, interval)
        if current is not None and current.color == color and not gap_before:
            current.end_x = end
            continue
        if current is not None:
            regions.append(current)
        current = PacketLossRegion(start, end, color)
    if current is not None:
        regions.append(current)
    return regions


def render_packet_loss(ctx: RenderContext, scales: ChartScales,
                       points: Sequence[ChartPoint], interval: float,
                       chart_height: float, bar_width: float,
                       clip: str | None = None) -> list[PacketLossRegion]:
    # sits underneath the smoke bars
    layer = ctx.layer("packet-loss", clip=clip, before="smoke")
    regions = merge_regions(points, scales, interval, bar_width)
    for r in regions:
        layer.add(Rect(r.start_x, 0.0, max(1.0, r.end_x - r.start_x), chart_height,
                       fill=r.color, opacity=REGION_OPACITY,
                       css_class="packet-loss-bg"))
    logger.debug("packet loss: %d regions from %d buckets", len(regions), len(points))
    return regions
