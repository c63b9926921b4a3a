"""Data preparation: normalization, bucket interval, gap segmentation, stats."""

from __future__ import annotations

import logging
import math
import time
from collections.abc import Sequence
from typing import TypeVar

import numpy as np

from .model import ChartPoint, ChartStats, RawBucket

logger = logging.getLogger(__name__)

_INTERVAL_SAMPLE = 20  # points inspected when estimating the bucket interval
GAP_FACTOR = 2.0

P = TypeVar("P", bound=ChartPoint)


def prepare_chart_data(buckets: Sequence[RawBucket]) -> list[ChartPoint]:
    """Convert raw buckets to chart points sorted by start time."""
    points = []
    for b in buckets:
        total = b.count
        loss = (b.failed_count / total) * 100 if total > 0 else 0.0
        points.append(ChartPoint(
            timestamp=b.timestamp * 1000,
            timestamp_end=b.timestamp_end * 1000,
            min=b.min,
            max=b.max,
            avg=b.avg,
            count=b.count,
            successful_count=b.successful_count,
            failed_count=b.failed_count,
            packet_loss_percent=min(100.0, max(0.0, loss)),
            percentiles=b.percentiles,
        ))
    points.sort(key=lambda p: p.timestamp)
    return points


def filter_valid_latency(points: Sequence[ChartPoint]) -> list[ChartPoint]:
    return [p for p in points if p.has_latency]


def timestamps(points: Sequence[ChartPoint]) -> np.ndarray:
    return np.fromiter((p.timestamp for p in points), dtype=np.float64,
                       count=len(points))


def calculate_bucket_interval(points: Sequence[ChartPoint]) -> float:
    """Median spacing of the first few buckets; 0 with fewer than two points.

    Only a prefix is inspected so cost stays bounded on long series, and the
    lower median keeps one large gap from skewing the estimate.
    """
    if len(points) < 2:
        return 0.0
    ts = timestamps(points[:min(len(points), _INTERVAL_SAMPLE)])
    deltas = np.sort(np.diff(ts))
    return float(deltas[len(deltas) // 2])


def is_gap(delta: float, interval: float) -> bool:
    return interval > 0 and delta > interval * GAP_FACTOR


def split_into_segments(points: Sequence[P], interval: float) -> list[list[P]]:
    """Split *points* at every gap; concatenating the result yields *points*."""
    segments: list[list[P]] = []
    current: list[P] = []
    for i, p in enumerate(points):
        if i > 0 and is_gap(p.timestamp - points[i - 1].timestamp, interval):
            segments.append(current)
            current = []
        current.append(p)
    if current:
        segments.append(current)
    return segments


def calculate_p99(valid: Sequence[ChartPoint]) -> float:
    values = np.sort(np.array([p.max for p in valid if p.max is not None],
                              dtype=np.float64))
    if len(values) == 0:
        return 0.0
    idx = math.ceil(len(values) * 0.99) - 1
    return float(values[max(0, idx)])


def bar_spans(points: Sequence[ChartPoint], x_of, interval: float,
              fallback_half: float) -> list[tuple[float, float]]:
    """Horizontal pixel extent of each bucket.

    Neighbouring buckets meet at the midpoint between their centres; at a gap
    or at either end of the series the edge sits half a bucket interval out
    (``fallback_half`` pixels when the interval is unknown).
    """
    if interval > 0:
        half = (x_of(interval) - x_of(0)) / 2
    else:
        half = fallback_half
    spans = []
    n = len(points)
    for i, p in enumerate(points):
        x = x_of(p.timestamp)
        gap_before = i == 0 or interval <= 0 or is_gap(
            p.timestamp - points[i - 1].timestamp, interval)
        gap_after = i == n - 1 or interval <= 0 or is_gap(
            points[i + 1].timestamp - p.timestamp, interval)
        start = x - half if gap_before else (x_of(points[i - 1].timestamp) + x) / 2
        end = x + half if gap_after else (x + x_of(points[i + 1].timestamp)) / 2
        spans.append((start, end))
    return spans


def calculate_chart_stats(points: Sequence[ChartPoint],
                          valid: Sequence[ChartPoint]) -> ChartStats:
    avgs = np.array([p.avg for p in valid], dtype=np.float64)
    loss = np.array([p.packet_loss_percent for p in points], dtype=np.float64)

    if len(avgs):
        median_rtt = float(np.median(avgs))
        avg_rtt = float(np.mean(avgs))
        std_dev = float(np.std(avgs))  # population, matches the dashboard
        min_rtt = float(min(p.min for p in valid))
        max_rtt = float(max(p.max for p in valid))
        current_rtt = float(valid[-1].avg)
    else:
        median_rtt = avg_rtt = std_dev = min_rtt = max_rtt = current_rtt = 0.0

    return ChartStats(
        median_rtt=median_rtt,
        avg_rtt=avg_rtt,
        min_rtt=min_rtt,
        max_rtt=max_rtt,
        current_rtt=current_rtt,
        std_dev=std_dev,
        avg_packet_loss=float(np.mean(loss)) if len(loss) else 0.0,
        max_packet_loss=float(np.max(loss)) if len(loss) else 0.0,
        min_packet_loss=float(np.min(loss)) if len(loss) else 0.0,
        current_packet_loss=points[-1].packet_loss_percent if points else 0.0,
        total_pings=sum(p.count for p in points),
        total_buckets=len(points),
        last_sample_time=points[-1].timestamp if points else time.time() * 1000,
    )
