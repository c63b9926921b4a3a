"""Scene graph for one render pass.

Layers produce backend-neutral draw primitives into a :class:`RenderContext`.
The context owns everything created during the pass (gradient and clip
definitions, layers, interaction subscriptions, the tooltip panel) and is
disposed as a whole before the next pass starts.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterator, Protocol, Union

logger = logging.getLogger(__name__)


@dataclass
class Rect:
    x: float
    y: float
    width: float
    height: float
    fill: str
    opacity: float = 1.0
    stroke: str | None = None
    stroke_width: float = 0.0
    rx: float = 0.0
    css_class: str = ""


@dataclass
class Line:
    x1: float
    y1: float
    x2: float
    y2: float
    stroke: str
    stroke_width: float = 1.0
    dash: tuple[float, float] | None = None
    opacity: float = 1.0
    css_class: str = ""


@dataclass
class Path:
    # ("M", x, y) / ("L", x, y) / ("C", x1, y1, x2, y2, x, y)
    commands: list[tuple]
    stroke: str
    stroke_width: float = 2.0
    fill: str | None = None
    css_class: str = ""


@dataclass
class Circle:
    cx: float
    cy: float
    r: float
    fill: str
    stroke: str | None = None
    stroke_width: float = 0.0
    opacity: float = 1.0
    css_class: str = ""


@dataclass
class Text:
    x: float
    y: float
    text: str
    fill: str
    size: float = 10.0
    anchor: str = "start"  # start / middle / end
    weight: str = "400"
    rotate: float = 0.0  # degrees around (x, y)
    css_class: str = ""


Primitive = Union[Rect, Line, Path, Circle, Text]


@dataclass
class GradientStop:
    offset: float  # 0 = top of the filled shape, 1 = bottom
    color: str
    opacity: float


@dataclass
class LinearGradient:
    id: str
    stops: list[GradientStop]


@dataclass
class ClipRect:
    id: str
    x: float
    y: float
    width: float
    height: float


Definition = Union[LinearGradient, ClipRect]


class Disposable(Protocol):
    def dispose(self) -> None: ...


@dataclass
class Layer:
    name: str
    clip: str | None = None
    offset: tuple[float, float] = (0.0, 0.0)
    items: list[Primitive] = field(default_factory=list)

    def add(self, item: Primitive) -> Primitive:
        self.items.append(item)
        return item


class RenderContext:
    """Everything one render pass creates; torn down with :meth:`dispose`."""

    def __init__(self, width: float, height: float,
                 origin: tuple[float, float] = (0.0, 0.0)) -> None:
        self.width = width
        self.height = height
        self.origin = origin
        self.layers: list[Layer] = []
        self.defs: dict[str, Definition] = {}
        self._owned: list[Disposable] = []
        self.disposed = False

    def layer(self, name: str, clip: str | None = None,
              offset: tuple[float, float] = (0.0, 0.0),
              before: str | None = None) -> Layer:
        """Create a layer, appended on top or inserted below *before*."""
        lyr = Layer(name=name, clip=clip, offset=offset)
        if before is not None:
            for i, existing in enumerate(self.layers):
                if existing.name == before:
                    self.layers.insert(i, lyr)
                    return lyr
        self.layers.append(lyr)
        return lyr

    def get_layer(self, name: str) -> Layer | None:
        for lyr in self.layers:
            if lyr.name == name:
                return lyr
        return None

    def add_def(self, definition: Definition) -> Definition:
        self.defs[definition.id] = definition
        return definition

    def own(self, resource: Disposable) -> Disposable:
        """Tie *resource* to this pass so it is released on dispose."""
        self._owned.append(resource)
        return resource

    def primitives(self) -> Iterator[tuple[Layer, Primitive]]:
        for lyr in self.layers:
            for item in lyr.items:
                yield lyr, item

    def count(self, kind: type | None = None, layer: str | None = None) -> int:
        return sum(
            1 for lyr, item in self.primitives()
            if (kind is None or isinstance(item, kind))
            and (layer is None or lyr.name == layer)
        )

    def dispose(self) -> None:
        if self.disposed:
            return
        for resource in reversed(self._owned):
            resource.dispose()
        self._owned.clear()
        self.layers.clear()
        self.defs.clear()
        self.disposed = True
        logger.debug("render context disposed")
