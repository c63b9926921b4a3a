"""Static chart decorations: grid, axes, stats panel, legend, placeholder."""

from __future__ import annotations

from datetime import tzinfo

from . import colors
from .colors import ThemeColors
from .model import ChartStats
from .preferences import ChartOptions
from .scales import ChartScales, time_format, to_datetime
from .scene import Line, Rect, RenderContext, Text

Y_TICKS = 6
X_TICKS = 10
STATS_PANEL_WIDTH = 120
STATS_PANEL_GAP = 15
LEGEND_SPACING = 70


def format_ms(v: float) -> str:
    return f"{v:.1f} ms"


def format_percent(v: float) -> str:
    return f"{v:.2f}%"


def format_tick_value(v: float) -> str:
    return f"{v:g} ms"


def render_grid(ctx: RenderContext, scales: ChartScales, inner_width: float,
                theme: ThemeColors) -> None:
    layer = ctx.layer("grid")
    for t in scales.y.ticks(Y_TICKS):
        py = scales.y(t)
        layer.add(Line(0.0, py, inner_width, py, stroke=theme.grid_line,
                       dash=(2, 2), css_class="y-grid"))


def render_axes(ctx: RenderContext, scales: ChartScales, chart_height: float,
                margin_left: float, theme: ThemeColors,
                tz: tzinfo | None = None) -> None:
    fmt = time_format(scales.time_extent[0], scales.time_extent[1], tz)
    x0, x1 = scales.x.range

    xa = ctx.layer("x-axis", offset=(0.0, chart_height))
    xa.add(Line(x0, 0.0, x1, 0.0, stroke=theme.axis_domain, css_class="domain"))
    for t in scales.x.ticks(X_TICKS):
        px = scales.x(t)
        xa.add(Line(px, 0.0, px, 6.0, stroke=theme.axis_domain, css_class="tick"))
        xa.add(Text(px, 9.0, fmt(t), fill=theme.axis_text, size=11, anchor="end",
                    rotate=-45, css_class="tick-label"))

    ya = ctx.layer("y-axis")
    ya.add(Line(0.0, scales.y.range[0], 0.0, scales.y.range[1],
                stroke=theme.axis_domain, css_class="domain"))
    for v in scales.y.ticks(Y_TICKS):
        py = scales.y(v)
        ya.add(Line(-6.0, py, 0.0, py, stroke=theme.axis_domain, css_class="tick"))
        ya.add(Text(-9.0, py + 3.5, format_tick_value(v), fill=theme.axis_text,
                    size=11, anchor="end", css_class="tick-label"))
    ya.add(Text(-margin_left + 15, chart_height / 2, "RTT (ms)",
                fill=theme.axis_label, size=12, anchor="middle", weight="500",
                rotate=-90, css_class="axis-label"))


def render_stats_panel(ctx: RenderContext, stats: ChartStats, inner_width: float,
                       theme: ThemeColors, tz: tzinfo | None = None) -> None:
    layer = ctx.layer("stats-panel", offset=(inner_width + STATS_PANEL_GAP, 0.0))
    value_x = STATS_PANEL_WIDTH - 5
    line_height = 17

    layer.add(Rect(-5, -5, STATS_PANEL_WIDTH + 10, 255, fill=theme.panel_bg,
                   stroke=theme.panel_border, stroke_width=1, rx=6))
    layer.add(Text(5, 14, "Median RTT", fill=theme.text_primary, size=11, weight="600"))

    def rows(entries, y, highlight):
        for label, value, fill in entries:
            layer.add(Text(5, y, label, fill=theme.text_muted))
            layer.add(Text(value_x, y, value, fill=fill, anchor="end",
                           weight="600" if label == highlight else "400"))
            y += line_height
        return y

    y = rows([
        ("avg", format_ms(stats.avg_rtt), theme.text_secondary),
        ("max", format_ms(stats.max_rtt), theme.text_secondary),
        ("min", format_ms(stats.min_rtt), theme.text_secondary),
        ("now", format_ms(stats.current_rtt), colors.MEDIAN),
        ("sd", format_ms(stats.std_dev), theme.text_muted),
    ], 32, "now")

    y += 8
    layer.add(Text(5, y, "Packet Loss", fill=theme.text_primary, size=11, weight="600"))
    y += 18
    y = rows([
        ("avg", format_percent(stats.avg_packet_loss), theme.text_secondary),
        ("max", format_percent(stats.max_packet_loss), theme.text_secondary),
        ("min", format_percent(stats.min_packet_loss), theme.text_secondary),
        ("now", format_percent(stats.current_packet_loss),
         colors.packet_loss_color(stats.current_packet_loss)),
    ], y, "now")

    y += 6
    layer.add(Line(0, y - 3, STATS_PANEL_WIDTH, y - 3, stroke=theme.divider))
    y += 8
    layer.add(Text(5, y, f"{stats.total_pings} pings · {stats.total_buckets} buckets",
                   fill=theme.text_muted, size=9))
    y += 12
    last = to_datetime(stats.last_sample_time, tz).strftime("%H:%M:%S")
    layer.add(Text(5, y, f"Last: {last}", fill=theme.text_muted, size=9))


def legend_items(options: ChartOptions) -> list[tuple[str, str, str]]:
    """(label, color, kind) for every legend entry, kind is "rect" or "line"."""
    items: list[tuple[str, str, str]] = []
    if options.show_packet_loss:
        items += [
            ("0%", colors.LOSS_NONE, "rect"),
            ("≤5%", colors.LOSS_LOW, "rect"),
            ("5-20%", colors.LOSS_MEDIUM, "rect"),
            (">20%", colors.LOSS_HIGH, "rect"),
        ]
    for flag, label, color in (
        (options.show_median_line, "Median", colors.MEDIAN),
        (options.show_min_line, "Min", colors.MIN),
        (options.show_max_line, "Max", colors.MAX),
        (options.show_avg_line, "Avg", colors.AVG),
    ):
        if flag:
            items.append((label, color, "line"))
    return items


def render_legend(ctx: RenderContext, chart_height: float, options: ChartOptions,
                  theme: ThemeColors) -> None:
    layer = ctx.layer("legend", offset=(0.0, chart_height + 55))
    for i, (label, color, kind) in enumerate(legend_items(options)):
        x = i * LEGEND_SPACING
        if kind == "line":
            layer.add(Line(x, 0, x + 16, 0, stroke=color, stroke_width=2.5))
        else:
            layer.add(Rect(x, -6, 12, 12, fill=color, opacity=0.15, stroke=color,
                           stroke_width=1, rx=2))
        layer.add(Text(x + 18, 4, label, fill=theme.text_muted))


def render_placeholder(ctx: RenderContext, theme: ThemeColors) -> None:
    layer = ctx.layer("placeholder")
    layer.add(Rect(0, 0, ctx.width, ctx.height, fill=theme.panel_bg, rx=8))
    layer.add(Text(ctx.width / 2, ctx.height / 2, "No data available",
                   fill=theme.text_muted, size=14, anchor="middle"))
