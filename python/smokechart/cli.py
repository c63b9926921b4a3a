"""smokechart command-line tool."""

from __future__ import annotations

import argparse
import logging
import sys
from typing import Any

from .engine import SmokeChart, format_zoom_range
from .preferences import (
    OPTION_KEYS, ChartOptions, JsonPreferenceStore, SmokeBarStyle, load_options,
    save_option,
)
from .prepare import (
    calculate_bucket_interval, calculate_chart_stats, filter_valid_latency,
    prepare_chart_data,
)
from .provider import JsonFileProvider
from .svg import to_svg

logger = logging.getLogger(__name__)


def _format_interval(ms: float) -> str:
    """Format a millisecond interval as a human-readable string."""
    if ms <= 0:
        return "unknown"
    s = ms / 1000
    if s <= 60:
        return f"{s:g}s"
    if s < 3600:
        return f"{s / 60:g}m"
    return f"{s / 3600:g}h"


def _options(args: argparse.Namespace) -> ChartOptions:
    """Stored preferences with this invocation's flags applied on top."""
    if args.no_prefs:
        opts = ChartOptions()
    else:
        opts = load_options(JsonPreferenceStore(args.prefs))
    overrides = {
        "show_median_line": args.median,
        "show_min_line": args.min,
        "show_max_line": args.max,
        "show_avg_line": args.avg,
        "show_smoke_bars": args.smoke,
        "show_packet_loss": args.loss,
        "show_stats_panel": args.stats_panel,
        "clip_to_p99": args.clip_p99,
        "smoke_bar_style": args.style,
    }
    for key, value in overrides.items():
        if value is not None:
            opts = opts.with_option(key, value)
    return opts


def _load(args: argparse.Namespace):
    provider = JsonFileProvider(args.file)
    t0 = args.start * 1000 if args.start is not None else None
    t1 = args.end * 1000 if args.end is not None else None
    return provider.query(t0, t1)


def cmd_render(args: argparse.Namespace) -> None:
    """Render a bucket file to SVG."""
    buckets = _load(args)
    chart = SmokeChart(options=_options(args), width=args.width, height=args.height,
                       dark=args.dark)
    result = chart.set_data(buckets)
    svg = to_svg(result.context)
    chart.close()
    if args.output == "-":
        sys.stdout.write(svg)
        return
    with open(args.output, "w", encoding="utf-8") as f:
        f.write(svg)
    print(f"Wrote {args.output} ({len(result.points)} buckets, "
          f"style={chart.options.smoke_bar_style.value})")


def cmd_stats(args: argparse.Namespace) -> None:
    """Print aggregate statistics for a bucket file."""
    points = prepare_chart_data(_load(args))
    if not points:
        print("No data available")
        return
    s = calculate_chart_stats(points, filter_valid_latency(points))
    print(f"Median RTT: {s.median_rtt:.1f} ms")
    print(f"  avg {s.avg_rtt:.1f} ms  max {s.max_rtt:.1f} ms  min {s.min_rtt:.1f} ms  "
          f"now {s.current_rtt:.1f} ms  sd {s.std_dev:.1f} ms")
    print("Packet Loss:")
    print(f"  avg {s.avg_packet_loss:.2f}%  max {s.max_packet_loss:.2f}%  "
          f"min {s.min_packet_loss:.2f}%  now {s.current_packet_loss:.2f}%")
    print(f"{s.total_pings} pings, {s.total_buckets} buckets")


def cmd_info(args: argparse.Namespace) -> None:
    """Print summary info about a bucket file."""
    provider = JsonFileProvider(args.file)
    points = prepare_chart_data(provider.query())
    valid = filter_valid_latency(points)
    print(f"File:        {args.file}")
    print(f"Buckets:     {len(points):,}")
    print(f"With RTT:    {len(valid):,}")
    print(f"Percentiles: {sum(1 for p in points if p.percentiles is not None):,}")
    if points:
        print(f"Time range:  {format_zoom_range(points[0].timestamp, points[-1].timestamp)}")
        print(f"Interval:    {_format_interval(calculate_bucket_interval(points))}")
    else:
        print("Time range:  (empty)")


def _parse_value(raw: str) -> Any:
    low = raw.lower()
    if low in ("true", "on", "yes", "1"):
        return True
    if low in ("false", "off", "no", "0"):
        return False
    return raw


def cmd_prefs(args: argparse.Namespace) -> None:
    """Show stored preferences, or set one key."""
    store = JsonPreferenceStore(args.prefs)
    if args.key is not None:
        if args.value is None:
            raise ValueError("missing value for " + args.key)
        save_option(store, args.key, _parse_value(args.value))
    opts = load_options(store)
    print(f"# {store.path}")
    for key, value in opts.to_dict().items():
        print(f"{key:18s} {value}")


def _add_chart_flags(p: argparse.ArgumentParser) -> None:
    p.add_argument("--style", choices=[s.value for s in SmokeBarStyle],
                   help="Density encoding for the smoke bars")
    for name, help_ in (("median", "median line"), ("min", "min line"),
                        ("max", "max line"), ("avg", "avg line"),
                        ("smoke", "smoke bars"), ("loss", "packet loss overlay")):
        p.add_argument(f"--{name}", dest=name, action="store_true", default=None,
                       help=f"Show the {help_}")
        p.add_argument(f"--no-{name}", dest=name, action="store_false",
                       help=f"Hide the {help_}")
    p.add_argument("--stats-panel", action="store_true", default=None,
                   help="Show the stats panel")
    p.add_argument("--clip-p99", action="store_true", default=None,
                   help="Clip the latency axis to the 99th percentile of max")
    p.add_argument("--width", type=float, default=None, help="Width in px (default 800)")
    p.add_argument("--height", type=float, default=500, help="Height in px")
    p.add_argument("--dark", action="store_true", help="Dark theme")


def _add_range_flags(p: argparse.ArgumentParser) -> None:
    p.add_argument("--from", dest="start", type=float, default=None,
                   help="Start of the time range (unix seconds)")
    p.add_argument("--to", dest="end", type=float, default=None,
                   help="End of the time range (unix seconds)")


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(prog="smokechart",
                                     description="smokechart latency chart tool")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    parser.add_argument("--prefs", metavar="PATH", default=None,
                        help="Preferences file (default ~/.config/smokechart/preferences.json)")
    parser.add_argument("--no-prefs", action="store_true",
                        help="Ignore stored preferences")
    sub = parser.add_subparsers(dest="command")

    # render
    p_render = sub.add_parser("render", help="Render a bucket JSON file to SVG")
    p_render.add_argument("file", help="Path to bucket JSON file")
    p_render.add_argument("-o", "--output", default="-", help="Output SVG path ('-' = stdout)")
    _add_chart_flags(p_render)
    _add_range_flags(p_render)

    # stats
    p_stats = sub.add_parser("stats", help="Show aggregate statistics")
    p_stats.add_argument("file", help="Path to bucket JSON file")
    _add_range_flags(p_stats)

    # info
    p_info = sub.add_parser("info", help="Show summary info about a bucket file")
    p_info.add_argument("file", help="Path to bucket JSON file")

    # prefs
    p_prefs = sub.add_parser("prefs", help="Show or set stored chart preferences")
    p_prefs.add_argument("key", nargs="?", choices=OPTION_KEYS, help="Option to set")
    p_prefs.add_argument("value", nargs="?", help="New value")

    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING,
                        format="%(name)s: %(message)s")

    commands = {
        "render": cmd_render,
        "stats": cmd_stats,
        "info": cmd_info,
        "prefs": cmd_prefs,
    }
    if args.command not in commands:
        parser.print_help()
        return
    try:
        commands[args.command](args)
    except (OSError, ValueError, KeyError) as e:
        logger.debug("command failed", exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
