"""Test the drawing layers: smoke bars, packet loss, stat lines, decorations."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "python"))

from smokechart import colors
from smokechart.colors import LIGHT
from smokechart.decorations import (
    format_ms, format_percent, legend_items, render_axes, render_legend,
    render_placeholder, render_stats_panel,
)
from smokechart.density import RENDERERS, build_bars, render_smoke_bars
from smokechart.model import Percentiles, RawBucket
from smokechart.packet_loss import merge_regions, render_packet_loss
from smokechart.preferences import ChartOptions, SmokeBarStyle
from smokechart.prepare import (
    calculate_bucket_interval, calculate_chart_stats, filter_valid_latency,
    prepare_chart_data,
)
from smokechart.scales import build_scales
from smokechart.scene import Path, Rect, RenderContext, Text
from smokechart.stat_lines import marker_indices, render_median_line, render_stat_line

PCT = Percentiles(p50=14.0, p75=16.0, p90=18.0, p95=19.0, p99=19.8)


def make_bucket(t, mn=10.0, mx=20.0, avg=15.0, count=10, failed=0, pct=None):
    return RawBucket(timestamp=t, timestamp_end=t + 60, min=mn, max=mx, avg=avg,
                     count=count, successful_count=count - failed,
                     failed_count=failed, percentiles=pct)


def setup_chart(buckets, width=600.0, height=300.0):
    points = prepare_chart_data(buckets)
    valid = filter_valid_latency(points)
    scales = build_scales(points, valid, width, height)
    interval = calculate_bucket_interval(points)
    return points, valid, scales, interval


def rects(ctx, layer):
    return [item for lyr, item in ctx.primitives()
            if lyr.name == layer and isinstance(item, Rect)]


# ---------------------------------------------------------------------------
# Smoke bars
# ---------------------------------------------------------------------------

def test_zero_range_draws_nothing():
    """min == max == avg emits no primitive and no gradient for every style."""
    print("test_zero_range_draws_nothing...", end="")

    buckets = [make_bucket(t, 10.0, 10.0, 10.0) for t in (0, 60, 120)]
    for style in SmokeBarStyle:
        points, valid, scales, interval = setup_chart(buckets)
        ctx = RenderContext(800, 500)
        drawn = render_smoke_bars(ctx, scales, valid, interval, 10.0, style)
        assert drawn == 0, style
        assert ctx.count(layer="smoke") == 0, style
        assert ctx.defs == {}, style

    print(" OK")


def test_every_style_emits_positive_geometry():
    print("test_every_style_emits_positive_geometry...", end="")

    for pct in (None, PCT):
        buckets = [make_bucket(t, pct=pct) for t in (0, 60, 120)]
        for style in SmokeBarStyle:
            points, valid, scales, interval = setup_chart(buckets)
            ctx = RenderContext(800, 500)
            assert render_smoke_bars(ctx, scales, valid, interval, 10.0, style) == 3
            items = rects(ctx, "smoke")
            assert items, style
            for r in items:
                assert r.width > 0 and r.height > 0, (style, r)

    print(" OK")


def test_dispatch_covers_all_styles():
    print("test_dispatch_covers_all_styles...", end="")

    assert set(RENDERERS) == set(SmokeBarStyle)

    print(" OK")


def test_bars_tile_without_overlap():
    print("test_bars_tile_without_overlap...", end="")

    points, valid, scales, interval = setup_chart(
        [make_bucket(t) for t in (0, 60, 120, 180)])
    bars = build_bars(valid, scales, interval, 10.0)
    for a, b in zip(bars, bars[1:]):
        assert a.x1 == b.x0
    # boundary bars are half a bucket wide on their outer side
    assert bars[0].x0 == -bars[0].x1

    print(" OK")


def test_classic_bar():
    print("test_classic_bar...", end="")

    points, valid, scales, interval = setup_chart([make_bucket(t) for t in (0, 60)])
    ctx = RenderContext(800, 500)
    render_smoke_bars(ctx, scales, valid, interval, 10.0, SmokeBarStyle.CLASSIC)
    items = rects(ctx, "smoke")
    assert [r.css_class for r in items] == ["smoke-range", "smoke-core"] * 2
    rng, core = items[0], items[1]
    assert rng.y == scales.y(20.0)
    assert abs(rng.height - (scales.y(10.0) - scales.y(20.0))) < 1e-9
    assert abs(core.height - max(4.0, rng.height * 0.3)) < 1e-9
    # core band centred on avg
    assert abs(core.y + core.height / 2 - scales.y(15.0)) < 1e-9

    print(" OK")


def test_gradient_definitions():
    print("test_gradient_definitions...", end="")

    points, valid, scales, interval = setup_chart(
        [make_bucket(0, pct=PCT), make_bucket(60)])
    ctx = RenderContext(800, 500)
    render_smoke_bars(ctx, scales, valid, interval, 10.0, SmokeBarStyle.GRADIENT)

    with_pct = ctx.defs["smoke-grad-0"]
    fallback = ctx.defs["smoke-grad-1"]
    assert len(with_pct.stops) == 7
    assert len(fallback.stops) == 3
    for grad in (with_pct, fallback):
        offsets = [s.offset for s in grad.stops]
        assert offsets == sorted(offsets)
        assert offsets[0] == 0.0 and offsets[-1] == 1.0
    # peak density at p50 (0.6 of the way down from max=20 to min=10)
    peak = max(with_pct.stops, key=lambda s: s.opacity)
    assert abs(peak.offset - 0.6) < 1e-9
    # symmetric fallback peaks at avg
    assert max(fallback.stops, key=lambda s: s.opacity).offset == 0.5
    assert rects(ctx, "smoke")[0].fill == "url(#smoke-grad-0)"

    print(" OK")


def test_percentile_bands_nested():
    print("test_percentile_bands_nested...", end="")

    for pct in (None, PCT):
        points, valid, scales, interval = setup_chart(
            [make_bucket(0, pct=pct), make_bucket(60, pct=pct)])
        ctx = RenderContext(800, 500)
        render_smoke_bars(ctx, scales, valid, interval, 10.0, SmokeBarStyle.PERCENTILE)
        outer, mid, inner = rects(ctx, "smoke")[:3]
        assert outer.height > mid.height > inner.height > 0
        assert outer.opacity < mid.opacity < inner.opacity
        # bands stay inside the min..max span
        assert outer.y >= scales.y(20.0) - 1e-9
        assert outer.y + outer.height <= scales.y(10.0) + 1e-9

    print(" OK")


def test_histogram_bins():
    print("test_histogram_bins...", end="")

    points, valid, scales, interval = setup_chart([make_bucket(t) for t in (0, 60)])
    ctx = RenderContext(800, 500)
    render_smoke_bars(ctx, scales, valid, interval, 10.0, SmokeBarStyle.HISTOGRAM)
    bins = rects(ctx, "smoke")[:8]
    assert len(bins) == 8
    opacities = [r.opacity for r in bins]
    # gaussian fallback: densest around avg=15, i.e. the two middle bins
    assert abs(opacities[3] - opacities[4]) < 1e-9
    assert max(opacities) == opacities[3]
    assert opacities[0] < opacities[3]
    heights = [r.height for r in bins]
    assert max(heights) - min(heights) < 1e-9

    print(" OK")


# ---------------------------------------------------------------------------
# Packet loss
# ---------------------------------------------------------------------------

def test_packet_loss_uniform_single_region():
    print("test_packet_loss_uniform_single_region...", end="")

    n = 10
    points, valid, scales, interval = setup_chart(
        [make_bucket(i * 60, count=10, failed=1) for i in range(n)])
    regions = merge_regions(points, scales, interval, 10.0)
    assert len(regions) == 1
    assert regions[0].color == colors.LOSS_MEDIUM
    bars = build_bars(points, scales, interval, 10.0)
    assert regions[0].start_x == bars[0].x0
    assert regions[0].end_x == bars[-1].x1

    print(" OK")


def test_packet_loss_alternating_regions():
    print("test_packet_loss_alternating_regions...", end="")

    n = 12
    points, valid, scales, interval = setup_chart(
        [make_bucket(i * 60, count=10, failed=0 if i % 2 == 0 else 5) for i in range(n)])
    regions = merge_regions(points, scales, interval, 10.0)
    assert len(regions) == n
    assert [r.color for r in regions[:2]] == [colors.LOSS_NONE, colors.LOSS_HIGH]

    print(" OK")


def test_packet_loss_breaks():
    """Empty buckets and time gaps both split same-colour runs."""
    print("test_packet_loss_breaks...", end="")

    points, valid, scales, interval = setup_chart([
        make_bucket(0), make_bucket(60), make_bucket(120, count=0),
        make_bucket(180), make_bucket(240),
        make_bucket(900), make_bucket(960),
    ])
    regions = merge_regions(points, scales, interval, 10.0)
    assert len(regions) == 3
    assert all(r.color == colors.LOSS_NONE for r in regions)

    print(" OK")


def test_packet_loss_thresholds():
    print("test_packet_loss_thresholds...", end="")

    assert colors.packet_loss_color(0) == colors.LOSS_NONE
    assert colors.packet_loss_color(0.1) == colors.LOSS_LOW
    assert colors.packet_loss_color(5) == colors.LOSS_LOW
    assert colors.packet_loss_color(20) == colors.LOSS_MEDIUM
    assert colors.packet_loss_color(20.01) == colors.LOSS_HIGH

    print(" OK")


def test_packet_loss_layer_below_smoke():
    print("test_packet_loss_layer_below_smoke...", end="")

    points, valid, scales, interval = setup_chart([make_bucket(t) for t in (0, 60)])
    ctx = RenderContext(800, 500)
    render_smoke_bars(ctx, scales, valid, interval, 10.0, SmokeBarStyle.CLASSIC)
    render_packet_loss(ctx, scales, points, interval, 300.0, 10.0)
    names = [lyr.name for lyr in ctx.layers]
    assert names.index("packet-loss") < names.index("smoke")
    for r in rects(ctx, "packet-loss"):
        assert r.height == 300.0
        assert r.opacity == 0.15

    print(" OK")


# ---------------------------------------------------------------------------
# Stat lines
# ---------------------------------------------------------------------------

def test_stat_line_per_segment():
    print("test_stat_line_per_segment...", end="")

    points, valid, scales, interval = setup_chart(
        [make_bucket(t) for t in (0, 60, 120, 600, 660, 1500)])
    ctx = RenderContext(800, 500)
    drawn = render_stat_line(ctx, scales, valid, lambda p: p.max, colors.MAX,
                             "max-line", interval)
    # the lone bucket at 1500 cannot form a line
    assert drawn == 2
    paths = [item for _, item in ctx.primitives() if isinstance(item, Path)]
    assert len(paths) == 2
    assert all(p.commands[0][0] == "M" for p in paths)
    assert all(p.stroke == colors.MAX for p in paths)

    print(" OK")


def test_marker_indices():
    print("test_marker_indices...", end="")

    assert marker_indices(0) == []
    assert marker_indices(5) == [0, 1, 2, 3, 4]
    idx = marker_indices(1000)
    assert idx[0] == 0
    assert idx[-1] == 999
    assert len(idx) <= 101
    odd = marker_indices(1005)
    assert odd[-1] == 1004
    # just above the cap the series is still thinned
    assert len(marker_indices(150)) == 76
    assert marker_indices(150)[-1] == 149
    assert len(marker_indices(199)) == 100
    assert marker_indices(199)[-1] == 198
    assert max(len(marker_indices(n)) for n in range(1, 2000)) <= 101

    print(" OK")


def test_median_line_markers():
    print("test_median_line_markers...", end="")

    points, valid, scales, interval = setup_chart([make_bucket(i * 60) for i in range(5)])
    ctx = RenderContext(800, 500)
    assert render_median_line(ctx, scales, valid, interval) == 1
    assert ctx.count(layer="median-points") == 5
    assert ctx.get_layer("median-line").items[0].stroke == colors.MEDIAN

    print(" OK")


# ---------------------------------------------------------------------------
# Decorations
# ---------------------------------------------------------------------------

def texts(ctx, layer=None):
    return [item.text for lyr, item in ctx.primitives()
            if isinstance(item, Text) and (layer is None or lyr.name == layer)]


def test_formatting():
    print("test_formatting...", end="")

    assert format_ms(12.345) == "12.3 ms"
    assert format_percent(3.14159) == "3.14%"

    print(" OK")


def test_legend_items_follow_toggles():
    print("test_legend_items_follow_toggles...", end="")

    default = legend_items(ChartOptions())
    assert [label for label, _, _ in default] == ["0%", "≤5%", "5-20%", ">20%"]

    opts = ChartOptions(show_packet_loss=False, show_median_line=True,
                        show_max_line=True)
    assert legend_items(opts) == [("Median", colors.MEDIAN, "line"),
                                  ("Max", colors.MAX, "line")]

    ctx = RenderContext(800, 500)
    render_legend(ctx, 300.0, opts, LIGHT)
    assert texts(ctx, "legend") == ["Median", "Max"]

    print(" OK")


def test_axes_and_stats_panel():
    print("test_axes_and_stats_panel...", end="")

    points, valid, scales, interval = setup_chart(
        [make_bucket(t, failed=f) for t, f in ((0, 0), (60, 1), (120, 0))])
    ctx = RenderContext(800, 500)
    render_axes(ctx, scales, 300.0, 80.0, LIGHT)
    assert "RTT (ms)" in texts(ctx, "y-axis")
    assert ctx.get_layer("x-axis").offset == (0.0, 300.0)
    assert len(texts(ctx, "x-axis")) > 0

    stats = calculate_chart_stats(points, valid)
    render_stats_panel(ctx, stats, 630.0, LIGHT)
    panel = texts(ctx, "stats-panel")
    assert "Median RTT" in panel
    assert "Packet Loss" in panel
    assert "15.0 ms" in panel
    assert "30 pings · 3 buckets" in panel
    assert ctx.get_layer("stats-panel").offset == (645.0, 0.0)

    print(" OK")


def test_placeholder():
    print("test_placeholder...", end="")

    ctx = RenderContext(800, 500)
    render_placeholder(ctx, LIGHT)
    assert texts(ctx) == ["No data available"]

    print(" OK")


if __name__ == "__main__":
    print("smokechart layer tests")
    print("======================\n")

    test_zero_range_draws_nothing()
    test_every_style_emits_positive_geometry()
    test_dispatch_covers_all_styles()
    test_bars_tile_without_overlap()
    test_classic_bar()
    test_gradient_definitions()
    test_percentile_bands_nested()
    test_histogram_bins()
    test_packet_loss_uniform_single_region()
    test_packet_loss_alternating_regions()
    test_packet_loss_breaks()
    test_packet_loss_thresholds()
    test_packet_loss_layer_below_smoke()
    test_stat_line_per_segment()
    test_marker_indices()
    test_median_line_markers()
    test_formatting()
    test_legend_items_follow_toggles()
    test_axes_and_stats_panel()
    test_placeholder()

    print("\nAll layer tests passed.")
