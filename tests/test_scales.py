"""Test linear/time scales, nice rounding and the chart scale builder."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "python"))

from datetime import timezone

from smokechart.model import RawBucket
from smokechart.prepare import filter_valid_latency, prepare_chart_data
from smokechart.scales import (
    LinearScale, TimeScale, build_scales, nice_domain, tick_increment, time_format,
)

HOUR_MS = 3_600_000


def make_points(maxes, step=60):
    buckets = [
        RawBucket(timestamp=i * step, timestamp_end=(i + 1) * step, min=m * 0.5,
                  max=m, avg=m * 0.75,
                  count=10, successful_count=10, failed_count=0)
        if m is not None else
        RawBucket(timestamp=i * step, timestamp_end=(i + 1) * step, min=None,
                  max=None, avg=None, count=10, successful_count=0, failed_count=10)
        for i, m in enumerate(maxes)
    ]
    points = prepare_chart_data(buckets)
    return points, filter_valid_latency(points)


def test_linear_scale_map_and_invert():
    print("test_linear_scale_map_and_invert...", end="")

    s = LinearScale((0, 100), (400, 0))
    assert s(0) == 400.0
    assert s(100) == 0.0
    assert s(25) == 300.0
    assert s.invert(300) == 25.0
    assert s.invert(s(62.5)) == 62.5

    print(" OK")


def test_nice_domain():
    print("test_nice_domain...", end="")

    assert nice_domain(0, 23) == (0, 24)
    assert nice_domain(0, 0.87) == (0, 0.9)
    assert nice_domain(0, 115) == (0, 120)
    assert nice_domain(0, 100) == (0, 100)

    print(" OK")


def test_linear_ticks():
    print("test_linear_ticks...", end="")

    assert LinearScale((0, 100), (0, 1)).ticks(5) == [0, 20, 40, 60, 80, 100]
    ticks = LinearScale((0, 1), (0, 1)).ticks(5)
    assert len(ticks) == 6
    assert abs(ticks[-1] - 1.0) < 1e-12
    # a zero tick count behaves like one tick
    assert tick_increment(0, 10, 0) == tick_increment(0, 10, 1) == 10
    assert tick_increment(0, 0, 0) == 0.0

    print(" OK")


def test_time_scale_ticks_aligned():
    print("test_time_scale_ticks_aligned...", end="")

    s = TimeScale((0, HOUR_MS), (0, 600))
    ticks = s.ticks(10)
    assert ticks[0] == 0.0
    steps = {b - a for a, b in zip(ticks, ticks[1:])}
    assert steps == {15 * 60_000.0}
    assert ticks[-1] == HOUR_MS

    print(" OK")


def test_value_scale_endpoints_exact():
    """y(0) is the chart bottom and y(upper) the top, for any data."""
    print("test_value_scale_endpoints_exact...", end="")

    for maxes in ([12.3, 4.0], [0.7, 3.3, 9.1], [150.0, 999.0, 47.0], [1e-3, 2e-3]):
        points, valid = make_points(maxes)
        sc = build_scales(points, valid, 640, 337.5)
        assert sc.y(0) == 337.5
        assert sc.y(sc.upper_bound) == 0.0
        assert sc.upper_bound >= max(maxes)
        assert sc.x(points[0].timestamp) == 0.0
        assert sc.x(points[-1].timestamp) == 640.0

    print(" OK")


def test_upper_bound_headroom():
    print("test_upper_bound_headroom...", end="")

    points, valid = make_points([10.0, 20.0])
    sc = build_scales(points, valid, 500, 300)
    # 20 * 1.15 = 23 -> nice 24
    assert sc.upper_bound == 24

    print(" OK")


def test_upper_bound_default_without_latency():
    print("test_upper_bound_default_without_latency...", end="")

    points, valid = make_points([None, None])
    assert valid == []
    sc = build_scales(points, valid, 500, 300)
    assert sc.upper_bound == 100

    print(" OK")


def test_clip_to_p99():
    print("test_clip_to_p99...", end="")

    maxes = [10.0] * 199 + [1000.0]
    points, valid = make_points(maxes)
    full = build_scales(points, valid, 500, 300)
    clipped = build_scales(points, valid, 500, 300, clip_to_p99=True)
    assert full.upper_bound >= 1000.0
    assert clipped.upper_bound < 20.0

    print(" OK")


def test_single_point_domain_widened():
    print("test_single_point_domain_widened...", end="")

    points, valid = make_points([5.0])
    sc = build_scales(points, valid, 400, 300)
    t = points[0].timestamp
    assert sc.x.domain == (t - 60_000, t + 60_000)
    assert sc.x(t) == 200.0
    assert sc.time_extent == (t, t)

    print(" OK")


def test_time_format_resolution():
    print("test_time_format_resolution...", end="")

    utc = timezone.utc
    t = 1_700_000_000_000  # 2023-11-14 22:13:20 UTC
    assert time_format(t, t + HOUR_MS, utc)(t) == "22:13:20"
    assert time_format(t, t + 12 * HOUR_MS, utc)(t) == "22:13"
    assert time_format(t, t + 72 * HOUR_MS, utc)(t) == "Nov 14 22:13"
    assert time_format(t, t + 30 * 24 * HOUR_MS, utc)(t) == "Nov 14"

    print(" OK")


if __name__ == "__main__":
    print("smokechart scale tests")
    print("======================\n")

    test_linear_scale_map_and_invert()
    test_nice_domain()
    test_linear_ticks()
    test_time_scale_ticks_aligned()
    test_value_scale_endpoints_exact()
    test_upper_bound_headroom()
    test_upper_bound_default_without_latency()
    test_clip_to_p99()
    test_single_point_domain_widened()
    test_time_format_resolution()

    print("\nAll scale tests passed.")
