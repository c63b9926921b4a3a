"""smokechart viewer: DearPyGui-based interactive latency chart."""

from __future__ import annotations

import argparse
import sys


def launch() -> None:
    """Entry point for ``smokechart-viewer`` console script."""
    parser = argparse.ArgumentParser(
        prog="smokechart-viewer",
        description="smokechart interactive viewer",
    )
    parser.add_argument("file", nargs="?", default=None,
                        help="Path to a bucket JSON file to open")
    parser.add_argument("--dark", action="store_true", help="Dark theme")
    parser.add_argument("--prefs", metavar="PATH", default=None,
                        help="Preferences file (default ~/.config/smokechart/preferences.json)")
    args = parser.parse_args()

    try:
        import dearpygui.dearpygui  # noqa: F401
    except ImportError:
        print("Error: dearpygui is required for the viewer.\n"
              "Install with: pip install 'smokechart[viewer]'",
              file=sys.stderr)
        sys.exit(1)

    from ..preferences import JsonPreferenceStore
    from .app import ViewerApp

    app = ViewerApp(store=JsonPreferenceStore(args.prefs), dark=args.dark)
    app.setup()

    if args.file:
        app.open_file(args.file)

    app.run()
