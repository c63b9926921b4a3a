"""DearPyGui application shell: toolbar, chart canvas, tooltip, main loop."""

from __future__ import annotations

import logging

import dearpygui.dearpygui as dpg

from ..colors import hex_to_rgba
from ..engine import SmokeChart, format_zoom_range
from ..interaction import (
    POINTER_DOWN, POINTER_LEAVE, POINTER_MOVE, POINTER_UP, RESIZE, EventHub,
    PointerEvent,
)
from ..preferences import (
    JsonPreferenceStore, PreferenceStore, SmokeBarStyle, load_options, save_option,
)
from ..provider import BucketProvider, JsonFileProvider
from .canvas import ChartCanvas

logger = logging.getLogger(__name__)

_TOGGLES = [
    ("show_median_line", "Median"),
    ("show_min_line", "Min"),
    ("show_max_line", "Max"),
    ("show_avg_line", "Avg"),
    ("show_smoke_bars", "Smoke"),
    ("show_packet_loss", "Packet loss"),
    ("show_stats_panel", "Stats"),
    ("clip_to_p99", "Clip P99"),
]
_MAX_TOOLTIP_LINES = 8
_CHART_HEIGHT = 500
_SIDE_PADDING = 30


class ViewerApp:
    """Top-level viewer application."""

    def __init__(self, store: PreferenceStore | None = None, dark: bool = False) -> None:
        self._store = store if store is not None else JsonPreferenceStore()
        self._dark = dark
        self._events = EventHub()
        self._provider: BucketProvider | None = None
        self._chart: SmokeChart | None = None
        self._canvas: ChartCanvas | None = None
        self._zoom: tuple[float, float] | None = None
        self._pending_zoom: tuple[float, float] | None = None
        self._hovering = False
        self._dirty = False
        self._tooltip_window: int | str | None = None
        self._tooltip_title: int | str | None = None
        self._tooltip_lines: list[int | str] = []

    # ------------------------------------------------------------------
    # Setup
    # ------------------------------------------------------------------

    def setup(self) -> None:
        logging.basicConfig(level=logging.INFO,
                            format="%(name)s: %(message)s")

        dpg.create_context()
        dpg.create_viewport(title="smokechart viewer", width=1100, height=680)

        self._build_layout()
        self._build_file_dialog()
        self._build_tooltip()
        self._setup_handlers()
        dpg.set_viewport_resize_callback(self._on_viewport_resize)

        dpg.setup_dearpygui()
        dpg.show_viewport()
        dpg.set_primary_window("main_window", True)

    def _build_layout(self) -> None:
        with dpg.viewport_menu_bar():
            with dpg.menu(label="File"):
                dpg.add_menu_item(label="Open File...",
                                  callback=lambda: dpg.show_item("file_dialog"))
                dpg.add_menu_item(label="Close Source",
                                  callback=self._close_source)
                dpg.add_separator()
                dpg.add_menu_item(label="Quit",
                                  callback=lambda: dpg.stop_dearpygui())
            dpg.add_text("Status: No source loaded.", tag="status_bar")

        options = load_options(self._store)
        with dpg.window(tag="main_window"):
            dpg.add_spacer(height=18)
            with dpg.group(horizontal=True):
                for key, label in _TOGGLES:
                    dpg.add_checkbox(label=label, tag=f"opt_{key}",
                                     default_value=getattr(options, key),
                                     callback=self._on_toggle, user_data=key)
                dpg.add_combo([s.value for s in SmokeBarStyle], label="Style",
                              tag="opt_smoke_bar_style", width=110,
                              default_value=options.smoke_bar_style.value,
                              callback=self._on_toggle, user_data="smoke_bar_style")
            with dpg.group(horizontal=True):
                dpg.add_button(label="Reset Zoom", tag="reset_zoom",
                               callback=self._on_reset_zoom, show=False)
                dpg.add_text("", tag="zoom_label")

        width = dpg.get_viewport_client_width() - _SIDE_PADDING
        self._canvas = ChartCanvas("main_window", width, _CHART_HEIGHT)
        self._chart = SmokeChart(options=options, width=None, height=_CHART_HEIGHT,
                                 events=self._events, on_zoom=self._on_brush_end,
                                 dark=self._dark)
        self._chart.observe_resize()
        self._chart.resize(width)
        self._chart.set_data([])
        self._dirty = True

    def _build_file_dialog(self) -> None:
        with dpg.file_dialog(directory_selector=False, show=False,
                             callback=self._on_file_selected,
                             tag="file_dialog", width=600, height=400):
            dpg.add_file_extension(".json", color=(0, 255, 0, 255))
            dpg.add_file_extension(".*")

    def _build_tooltip(self) -> None:
        # single floating window reused for every hover
        self._tooltip_window = dpg.add_window(
            popup=False, no_title_bar=True, autosize=True,
            show=False, no_focus_on_appearing=True, no_move=True,
            no_resize=True, no_scrollbar=True, no_saved_settings=True,
        )
        self._tooltip_title = dpg.add_text("", parent=self._tooltip_window)
        self._tooltip_lines = [
            dpg.add_text("", parent=self._tooltip_window, show=False)
            for _ in range(_MAX_TOOLTIP_LINES)
        ]

    def _setup_handlers(self) -> None:
        with dpg.handler_registry() as hr:
            dpg.add_mouse_move_handler(callback=self._on_mouse_move)
            dpg.add_mouse_click_handler(button=dpg.mvMouseButton_Left,
                                        callback=self._on_mouse_down)
            dpg.add_mouse_release_handler(button=dpg.mvMouseButton_Left,
                                          callback=self._on_mouse_up)
        self._handler_registry = hr

    # ------------------------------------------------------------------
    # Sources
    # ------------------------------------------------------------------

    def _on_file_selected(self, sender: int, app_data: dict) -> None:
        path = app_data.get("file_path_name")
        if path:
            self.open_file(path)

    def open_file(self, path: str) -> None:
        """Open a bucket file immediately (also used from CLI args)."""
        try:
            provider = JsonFileProvider(path)
        except (OSError, ValueError) as e:
            self._set_status(f"Error opening file: {e}")
            return
        self._provider = provider
        self._zoom = None
        self._load()

    def _close_source(self) -> None:
        self._provider = None
        self._zoom = None
        if self._chart is not None:
            self._chart.set_data([])
        self._update_zoom_controls()
        self._set_status("No source loaded.")
        self._dirty = True

    def _load(self) -> None:
        assert self._chart is not None
        if self._provider is None:
            return
        t0, t1 = self._zoom if self._zoom else (None, None)
        buckets = self._provider.query(t0, t1)
        result = self._chart.set_data(buckets)
        self._update_zoom_controls()
        self._set_status(f"{self._provider.label}  |  {len(result.points)} buckets  |  "
                         f"{len(result.valid)} with RTT")
        self._dirty = True

    # ------------------------------------------------------------------
    # Zoom
    # ------------------------------------------------------------------

    def _on_brush_end(self, t0: float, t1: float) -> None:
        # applied next frame, outside pointer dispatch
        self._pending_zoom = (t0, t1)

    def _on_reset_zoom(self) -> None:
        self._zoom = None
        self._load()

    def _update_zoom_controls(self) -> None:
        zoomed = self._zoom is not None
        dpg.configure_item("reset_zoom", show=zoomed)
        dpg.set_value("zoom_label",
                      f"Zoomed: {format_zoom_range(*self._zoom)}" if zoomed else "")

    # ------------------------------------------------------------------
    # Preferences
    # ------------------------------------------------------------------

    def _on_toggle(self, sender: int, value, user_data: str) -> None:
        assert self._chart is not None
        save_option(self._store, user_data, value)
        self._chart.set_options(self._chart.options.with_option(user_data, value))
        self._dirty = True

    # ------------------------------------------------------------------
    # Pointer / resize
    # ------------------------------------------------------------------

    def _pointer(self) -> tuple[PointerEvent, bool] | None:
        chart = self._chart
        if chart is None or self._canvas is None or chart.last is None:
            return None
        if chart.last.scales is None:
            return None
        mx, my = dpg.get_mouse_pos(local=False)
        ox, oy = self._canvas.origin()
        x, y = mx - ox, my - oy
        dims = chart.last.dimensions
        inside = 0 <= x <= dims.inner_width and 0 <= y <= dims.chart_height
        return PointerEvent(x, y, page_x=mx, page_y=my), inside

    def _on_mouse_move(self, sender: int, app_data) -> None:
        hit = self._pointer()
        if hit is None:
            return
        event, inside = hit
        dragging = self._chart.brush is not None and self._chart.brush.dragging
        if inside or dragging:
            self._hovering = True
            self._events.emit(POINTER_MOVE, event)
        elif self._hovering:
            self._hovering = False
            self._events.emit(POINTER_LEAVE, event)
        self._canvas.refresh("hover", "brush")

    def _on_mouse_down(self, sender: int, app_data) -> None:
        hit = self._pointer()
        if hit is None or not hit[1]:
            return
        self._events.emit(POINTER_DOWN, hit[0])
        self._canvas.refresh("brush")

    def _on_mouse_up(self, sender: int, app_data) -> None:
        hit = self._pointer()
        if hit is None:
            return
        self._events.emit(POINTER_UP, hit[0])
        self._canvas.refresh("brush")

    def _on_viewport_resize(self, sender: int, app_data) -> None:
        width = dpg.get_viewport_client_width() - _SIDE_PADDING
        if self._canvas is not None:
            self._canvas.resize(width, _CHART_HEIGHT)
        self._events.emit(RESIZE, width)
        self._dirty = True

    # ------------------------------------------------------------------
    # Tooltip
    # ------------------------------------------------------------------

    def _sync_tooltip(self) -> None:
        panel = self._chart.panel if self._chart is not None else None
        if panel is None or not panel.visible:
            dpg.configure_item(self._tooltip_window, show=False)
            return
        dpg.set_value(self._tooltip_title, panel.title)
        for i, tag in enumerate(self._tooltip_lines):
            if i < len(panel.lines):
                line = panel.lines[i]
                dpg.set_value(tag, line.text)
                dpg.configure_item(tag, color=hex_to_rgba(line.color), show=True)
            else:
                dpg.configure_item(tag, show=False)
        dpg.configure_item(self._tooltip_window, show=True,
                           pos=[int(panel.x), int(panel.y)])

    # ------------------------------------------------------------------
    # Status bar
    # ------------------------------------------------------------------

    def _set_status(self, text: str) -> None:
        if dpg.does_item_exist("status_bar"):
            dpg.set_value("status_bar", f"Status: {text}")

    # ------------------------------------------------------------------
    # Main loop
    # ------------------------------------------------------------------

    def run(self) -> None:
        while dpg.is_dearpygui_running():
            # 1. Apply a finished brush selection
            if self._pending_zoom is not None:
                self._zoom, self._pending_zoom = self._pending_zoom, None
                logger.info("zoom to %s", format_zoom_range(*self._zoom))
                self._load()

            # 2. Redraw after data, option or size changes
            if self._dirty and self._chart is not None and self._chart.context is not None:
                self._canvas.draw(self._chart.context)
                self._dirty = False

            self._sync_tooltip()
            dpg.render_dearpygui_frame()

        self._cleanup()

    def _cleanup(self) -> None:
        if self._chart is not None:
            self._chart.close()
            self._chart = None
        self._provider = None
        dpg.destroy_context()
