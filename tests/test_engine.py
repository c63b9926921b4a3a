"""Test the render-pass orchestrator and SVG export."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "python"))

from datetime import timezone

import pytest

from smokechart.engine import SmokeChart, bar_width, format_zoom_range
from smokechart.interaction import (
    POINTER_DOWN, POINTER_MOVE, POINTER_UP, RESIZE, EventHub, PointerEvent,
)
from smokechart.model import Percentiles, RawBucket
from smokechart.preferences import ChartOptions, SmokeBarStyle
from smokechart.scene import Text
from smokechart.svg import to_svg

PCT = Percentiles(14.0, 16.0, 17.0, 18.0, 19.8)


def make_buckets(n=5, step=60, avg=15.0, failed=1):
    return [
        RawBucket(timestamp=i * step, timestamp_end=(i + 1) * step,
                  min=10.0 if avg is not None else None,
                  max=20.0 if avg is not None else None, avg=avg,
                  count=10, successful_count=10 - failed, failed_count=failed,
                  percentiles=PCT)
        for i in range(n)
    ]


def layer_names(chart):
    return [lyr.name for lyr in chart.context.layers]


def test_empty_data_placeholder():
    print("test_empty_data_placeholder...", end="")

    chart = SmokeChart()
    result = chart.set_data([])
    assert layer_names(chart) == ["placeholder"]
    assert result.scales is None
    assert result.stats is None
    assert chart.panel is None
    assert chart.tooltip is None
    texts = [item.text for _, item in chart.context.primitives()
             if isinstance(item, Text)]
    assert texts == ["No data available"]
    assert chart.context.origin == (0.0, 0.0)

    print(" OK")


def test_layer_order():
    print("test_layer_order...", end="")

    opts = ChartOptions(show_median_line=True, show_min_line=True,
                        show_max_line=True, show_avg_line=True,
                        show_stats_panel=True)
    chart = SmokeChart(options=opts, on_zoom=lambda t0, t1: None)
    chart.set_data(make_buckets())
    assert layer_names(chart) == [
        "packet-loss", "smoke", "median-line", "median-points", "min-line",
        "max-line", "avg-line", "grid", "x-axis", "y-axis", "stats-panel",
        "legend", "hover", "brush",
    ]
    assert chart.context.origin == (80, 40)
    assert "chart-clip" in chart.context.defs

    print(" OK")


def test_disabled_layers_absent():
    print("test_disabled_layers_absent...", end="")

    opts = ChartOptions(show_smoke_bars=False, show_packet_loss=False,
                        show_median_line=True)
    chart = SmokeChart(options=opts)
    chart.set_data(make_buckets(avg=None, failed=10))
    names = layer_names(chart)
    assert "smoke" not in names
    assert "packet-loss" not in names
    # no valid latency: no median line either
    assert "median-line" not in names
    assert "stats-panel" not in names
    assert "brush" not in names
    assert chart.brush is None

    print(" OK")


def test_stats_panel_margin():
    print("test_stats_panel_margin...", end="")

    chart = SmokeChart()
    r = chart.set_data(make_buckets())
    assert r.dimensions.inner_width == 700
    assert r.dimensions.chart_height == 340

    r = chart.set_options(ChartOptions(show_stats_panel=True))
    assert r.dimensions.inner_width == 570
    assert r.scales.x.range == (0.0, 570.0)
    assert r.stats.total_buckets == 5

    print(" OK")


def test_single_tooltip_panel():
    """Each pass disposes the previous panel and owns exactly one new one."""
    print("test_single_tooltip_panel...", end="")

    hub = EventHub()
    chart = SmokeChart(events=hub, on_zoom=lambda t0, t1: None)
    chart.set_data(make_buckets())
    first = chart.panel
    moves = hub.listener_count(POINTER_MOVE)
    assert moves == 2  # tooltip + brush

    chart.set_options(ChartOptions(smoke_bar_style=SmokeBarStyle.GRADIENT))
    assert first.disposed
    assert chart.panel is not first
    assert not chart.panel.disposed
    assert hub.listener_count(POINTER_MOVE) == moves

    print(" OK")


def test_hover_through_hub():
    print("test_hover_through_hub...", end="")

    hub = EventHub()
    chart = SmokeChart(events=hub, tz=timezone.utc)
    result = chart.set_data(make_buckets())
    hub.emit(POINTER_MOVE, PointerEvent(result.scales.x(result.points[2].timestamp), 10.0))
    assert chart.tooltip.current is result.points[2]
    assert chart.panel.visible

    print(" OK")


def test_brush_zoom_callback():
    print("test_brush_zoom_callback...", end="")

    hub = EventHub()
    zooms = []
    chart = SmokeChart(events=hub, on_zoom=lambda t0, t1: zooms.append((t0, t1)))
    chart.set_data(make_buckets())
    hub.emit(POINTER_DOWN, PointerEvent(100.0, 50.0))
    hub.emit(POINTER_UP, PointerEvent(350.0, 50.0))
    assert len(zooms) == 1
    t0, t1 = zooms[0]
    assert 0.0 < t0 < t1 < 240_000.0

    print(" OK")


def test_resize_and_close():
    print("test_resize_and_close...", end="")

    hub = EventHub()
    chart = SmokeChart(events=hub)
    chart.observe_resize()

    # nothing rendered yet: a resize only records the width
    assert hub.emit(RESIZE, 1000) == 1
    assert chart.context is None

    r = chart.set_data(make_buckets())
    assert r.dimensions.width == 1000
    old = chart.context
    hub.emit(RESIZE, 640, 400)
    assert old.disposed
    assert chart.last.dimensions.width == 640
    assert chart.last.dimensions.height == 400

    chart.close()
    assert chart.closed
    assert chart.context is None
    assert hub.listener_count() == 0
    assert chart.resize(900) is None

    # a closed chart never re-subscribes to the shared hub
    with pytest.raises(RuntimeError):
        chart.set_data(make_buckets())
    with pytest.raises(RuntimeError):
        chart.set_options(ChartOptions(show_stats_panel=True))
    assert hub.listener_count() == 0
    assert chart.context is None

    print(" OK")


def test_fixed_width_ignores_resize():
    print("test_fixed_width_ignores_resize...", end="")

    chart = SmokeChart(width=600)
    chart.set_data(make_buckets())
    r = chart.resize(1200)
    assert r.dimensions.width == 600

    print(" OK")


def test_bar_width_fallback():
    print("test_bar_width_fallback...", end="")

    assert bar_width(700, 0) == 2.0
    assert bar_width(700, 1000) == 4.0
    assert bar_width(700, 10) == 30.0
    assert abs(bar_width(700, 50) - 11.2) < 1e-9

    print(" OK")


def test_format_zoom_range():
    print("test_format_zoom_range...", end="")

    utc = timezone.utc
    t = 1_700_000_000_000  # 2023-11-14 22:13:20 UTC
    assert format_zoom_range(t, t + 30 * 60_000, utc) == "Nov 14, 22:13 - 22:43"
    assert (format_zoom_range(t, t + 2 * 3_600_000, utc)
            == "Nov 14, 22:13 - Nov 15, 00:13")

    print(" OK")


def test_svg_export():
    print("test_svg_export...", end="")

    opts = ChartOptions(smoke_bar_style=SmokeBarStyle.GRADIENT, show_median_line=True)
    chart = SmokeChart(options=opts)
    r = chart.set_data(make_buckets())
    svg = to_svg(r.context)
    assert svg.startswith('<svg xmlns="http://www.w3.org/2000/svg" width="800" height="500">')
    assert '<clipPath id="chart-clip">' in svg
    assert '<linearGradient id="smoke-grad-0"' in svg
    assert 'fill="url(#smoke-grad-0)"' in svg
    assert '<g class="smoke" clip-path="url(#chart-clip)">' in svg
    assert '<g transform="translate(80,40)">' in svg
    assert 'class="median-line"' in svg
    assert svg.rstrip().endswith("</svg>")

    chart.close()
    with pytest.raises(ValueError):
        to_svg(r.context)

    print(" OK")


def test_svg_escapes_text():
    print("test_svg_escapes_text...", end="")

    chart = SmokeChart()
    r = chart.set_data([])
    r.context.layers[0].add(Text(0, 0, "<a & b>", fill="#000000"))
    svg = to_svg(r.context)
    assert "&lt;a &amp; b&gt;" in svg
    assert "No data available" in svg

    print(" OK")


if __name__ == "__main__":
    print("smokechart engine tests")
    print("=======================\n")

    test_empty_data_placeholder()
    test_layer_order()
    test_disabled_layers_absent()
    test_stats_panel_margin()
    test_single_tooltip_panel()
    test_hover_through_hub()
    test_brush_zoom_callback()
    test_resize_and_close()
    test_fixed_width_ignores_resize()
    test_bar_width_fallback()
    test_format_zoom_range()
    test_svg_export()
    test_svg_escapes_text()

    print("\nAll engine tests passed.")
