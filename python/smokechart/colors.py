"""Shared color palette for the chart layers."""

from __future__ import annotations

from dataclasses import dataclass

MEDIAN = "#22c55e"  # green-500
AVG = "#f59e0b"  # amber-500
MIN = "#3b82f6"  # blue-500
MAX = "#ef4444"  # red-500
SUCCESS = "#22c55e"

SMOKE_RANGE = "#d1d5db"
SMOKE_CORE = "#9ca3af"
SMOKE_BASE = "#6b7280"

BRUSH_ACCENT = "#3b82f6"

# Packet loss severity
LOSS_NONE = "#22c55e"
LOSS_LOW = "#60a5fa"
LOSS_MEDIUM = "#8b5cf6"
LOSS_HIGH = "#ef4444"

LOSS_LOW_MAX = 5.0
LOSS_MEDIUM_MAX = 20.0


def packet_loss_color(percent: float) -> str:
    if percent == 0:
        return LOSS_NONE
    if percent <= LOSS_LOW_MAX:
        return LOSS_LOW
    if percent <= LOSS_MEDIUM_MAX:
        return LOSS_MEDIUM
    return LOSS_HIGH


@dataclass(frozen=True)
class ThemeColors:
    text_primary: str
    text_secondary: str
    text_muted: str
    panel_bg: str
    panel_border: str
    tooltip_bg: str
    tooltip_border: str
    grid_line: str
    axis_domain: str
    axis_text: str
    axis_label: str
    divider: str


LIGHT = ThemeColors(
    text_primary="#111827",
    text_secondary="#374151",
    text_muted="#6b7280",
    panel_bg="#f9fafb",
    panel_border="#e5e7eb",
    tooltip_bg="#ffffff",
    tooltip_border="#d1d5db",
    grid_line="#e5e7eb",
    axis_domain="#d1d5db",
    axis_text="#6b7280",
    axis_label="#374151",
    divider="#e5e7eb",
)

DARK = ThemeColors(
    text_primary="#f9fafb",
    text_secondary="#d1d5db",
    text_muted="#9ca3af",
    panel_bg="#1f2937",
    panel_border="#374151",
    tooltip_bg="#1f2937",
    tooltip_border="#4b5563",
    grid_line="#374151",
    axis_domain="#4b5563",
    axis_text="#9ca3af",
    axis_label="#d1d5db",
    divider="#374151",
)


def theme_colors(dark: bool) -> ThemeColors:
    return DARK if dark else LIGHT


def hex_to_rgba(color: str, opacity: float = 1.0) -> tuple[int, int, int, int]:
    """``#rrggbb`` to an RGBA tuple as DearPyGui expects."""
    c = color.lstrip("#")
    return (int(c[0:2], 16), int(c[2:4], 16), int(c[4:6], 16),
            int(round(max(0.0, min(1.0, opacity)) * 255)))
