"""smokechart - latency density ("smoke") chart engine and tooling."""

from .model import BucketFormatError, Percentiles, RawBucket, ChartPoint, ChartStats
from .preferences import (
    SmokeBarStyle, ChartOptions, MemoryPreferenceStore, JsonPreferenceStore,
    load_options, save_option,
)
from .scene import RenderContext
from .interaction import EventHub, PointerEvent
from .engine import SmokeChart, ChartMargin, ChartDimensions
from .provider import BucketProvider, MemoryProvider, JsonFileProvider
from .svg import to_svg

__all__ = [
    "BucketFormatError", "Percentiles", "RawBucket", "ChartPoint", "ChartStats",
    "SmokeBarStyle", "ChartOptions", "MemoryPreferenceStore", "JsonPreferenceStore",
    "load_options", "save_option",
    "RenderContext", "EventHub", "PointerEvent",
    "SmokeChart", "ChartMargin", "ChartDimensions",
    "BucketProvider", "MemoryProvider", "JsonFileProvider",
    "to_svg",
]
