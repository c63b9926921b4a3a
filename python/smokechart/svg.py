"""Static SVG export of a render pass."""

from __future__ import annotations

from xml.sax.saxutils import escape, quoteattr

from .scene import (
    Circle, ClipRect, Layer, Line, LinearGradient, Path, Primitive, Rect,
    RenderContext, Text,
)

_ANCHORS = {"start": "start", "middle": "middle", "end": "end"}


def _num(v: float) -> str:
    return f"{v:.2f}".rstrip("0").rstrip(".") if v != int(v) else str(int(v))


def _attrs(**kw) -> str:
    parts = []
    for k, v in kw.items():
        if v is None:
            continue
        if isinstance(v, float):
            v = _num(v)
        parts.append(f"{k.rstrip('_').replace('_', '-')}={quoteattr(str(v))}")
    return " ".join(parts)


def path_data(commands: list[tuple]) -> str:
    out = []
    for cmd in commands:
        op, *args = cmd
        out.append(op + ",".join(_num(float(a)) for a in args))
    return "".join(out)


def _primitive(item: Primitive) -> str:
    cls = getattr(item, "css_class", "") or None
    if isinstance(item, Rect):
        return "<rect " + _attrs(
            class_=cls, x=float(item.x), y=float(item.y),
            width=float(item.width), height=float(item.height),
            rx=float(item.rx) if item.rx else None, fill=item.fill,
            opacity=float(item.opacity) if item.opacity != 1 else None,
            stroke=item.stroke,
            stroke_width=float(item.stroke_width) if item.stroke else None,
        ) + "/>"
    if isinstance(item, Line):
        return "<line " + _attrs(
            class_=cls, x1=float(item.x1), y1=float(item.y1),
            x2=float(item.x2), y2=float(item.y2), stroke=item.stroke,
            stroke_width=float(item.stroke_width),
            stroke_dasharray=(",".join(_num(d) for d in item.dash)
                              if item.dash else None),
            opacity=float(item.opacity) if item.opacity != 1 else None,
        ) + "/>"
    if isinstance(item, Path):
        return "<path " + _attrs(
            class_=cls, d=path_data(item.commands), fill=item.fill or "none",
            stroke=item.stroke, stroke_width=float(item.stroke_width),
        ) + "/>"
    if isinstance(item, Circle):
        return "<circle " + _attrs(
            class_=cls, cx=float(item.cx), cy=float(item.cy), r=float(item.r),
            fill=item.fill, stroke=item.stroke,
            stroke_width=float(item.stroke_width) if item.stroke else None,
            opacity=float(item.opacity) if item.opacity != 1 else None,
        ) + "/>"
    if isinstance(item, Text):
        transform = None
        if item.rotate:
            transform = (f"rotate({_num(float(item.rotate))},"
                         f"{_num(float(item.x))},{_num(float(item.y))})")
        return "<text " + _attrs(
            class_=cls, x=float(item.x), y=float(item.y), fill=item.fill,
            font_size=float(item.size), font_weight=item.weight,
            text_anchor=_ANCHORS.get(item.anchor, "start"), transform=transform,
        ) + ">" + escape(item.text) + "</text>"
    raise TypeError(f"unsupported primitive {type(item).__name__}")


def _definition(d) -> str:
    if isinstance(d, ClipRect):
        rect = "<rect " + _attrs(x=float(d.x), y=float(d.y), width=float(d.width),
                                 height=float(d.height)) + "/>"
        return f"<clipPath id={quoteattr(d.id)}>{rect}</clipPath>"
    if isinstance(d, LinearGradient):
        stops = "".join(
            "<stop " + _attrs(offset=f"{s.offset * 100:.1f}%", stop_color=s.color,
                              stop_opacity=float(s.opacity)) + "/>"
            for s in d.stops
        )
        return (f'<linearGradient id={quoteattr(d.id)} x1="0" y1="0" x2="0" y2="1">'
                f"{stops}</linearGradient>")
    raise TypeError(f"unsupported definition {type(d).__name__}")


def _layer(layer: Layer) -> str:
    ox, oy = layer.offset
    head = "<g " + _attrs(
        class_=layer.name,
        transform=(f"translate({_num(float(ox))},{_num(float(oy))})"
                   if (ox, oy) != (0.0, 0.0) else None),
        clip_path=f"url(#{layer.clip})" if layer.clip else None,
    ) + ">"
    return head + "".join(_primitive(i) for i in layer.items) + "</g>"


def to_svg(ctx: RenderContext) -> str:
    """Serialize every layer and definition of *ctx* into one SVG document."""
    if ctx.disposed:
        raise ValueError("render context already disposed")
    ox, oy = ctx.origin
    parts = [
        '<svg xmlns="http://www.w3.org/2000/svg" '
        + _attrs(width=float(ctx.width), height=float(ctx.height)) + ">",
    ]
    if ctx.defs:
        parts.append("<defs>" + "".join(_definition(d) for d in ctx.defs.values())
                     + "</defs>")
    parts.append(f'<g transform="translate({_num(float(ox))},{_num(float(oy))})">')
    parts.extend(_layer(lyr) for lyr in ctx.layers)
    parts.append("</g></svg>")
    return "\n".join(parts) + "\n"
