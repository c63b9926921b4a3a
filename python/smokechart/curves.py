"""Monotone-x cubic interpolation (no overshoot between samples)."""

from __future__ import annotations

import numpy as np


def _sign(v: float) -> float:
    return -1.0 if v < 0 else 1.0


def _slope3(h0: float, h1: float, s0: float, s1: float) -> float:
    p = (s0 * h1 + s1 * h0) / (h0 + h1) if (h0 + h1) else 0.0
    return (_sign(s0) + _sign(s1)) * min(abs(s0), abs(s1), 0.5 * abs(p))


def monotone_tangents(xs: np.ndarray, ys: np.ndarray) -> np.ndarray:
    n = len(xs)
    m = np.zeros(n, dtype=np.float64)
    if n < 3:
        return m
    h = np.diff(xs)
    dy = np.diff(ys)
    with np.errstate(divide="ignore", invalid="ignore"):
        s = np.where(h != 0, dy / np.where(h != 0, h, 1.0), 0.0)
    for i in range(1, n - 1):
        m[i] = _slope3(h[i - 1], h[i], s[i - 1], s[i])
    m[0] = (3 * s[0] - m[1]) / 2 if h[0] else m[1]
    m[-1] = (3 * s[-1] - m[-2]) / 2 if h[-1] else m[-2]
    return m


def monotone_x_path(xs, ys) -> list[tuple]:
    """Path commands through (xs, ys), x assumed ascending."""
    xs = np.asarray(xs, dtype=np.float64)
    ys = np.asarray(ys, dtype=np.float64)
    n = len(xs)
    if n == 0:
        return []
    cmds: list[tuple] = [("M", float(xs[0]), float(ys[0]))]
    if n == 2:
        cmds.append(("L", float(xs[1]), float(ys[1])))
    elif n > 2:
        m = monotone_tangents(xs, ys)
        for i in range(n - 1):
            dx = (xs[i + 1] - xs[i]) / 3
            cmds.append(("C",
                         float(xs[i] + dx), float(ys[i] + dx * m[i]),
                         float(xs[i + 1] - dx), float(ys[i + 1] - dx * m[i + 1]),
                         float(xs[i + 1]), float(ys[i + 1])))
    return cmds


def flatten(commands: list[tuple], steps: int = 8) -> list[tuple[float, float]]:
    """Approximate path commands with a polyline (for immediate-mode backends)."""
    pts: list[tuple[float, float]] = []
    cx = cy = 0.0
    for cmd in commands:
        op = cmd[0]
        if op in ("M", "L"):
            cx, cy = cmd[1], cmd[2]
            pts.append((cx, cy))
        elif op == "C":
            x1, y1, x2, y2, x3, y3 = cmd[1:]
            t = np.linspace(0.0, 1.0, steps + 1)[1:]
            u = 1 - t
            bx = u ** 3 * cx + 3 * u ** 2 * t * x1 + 3 * u * t ** 2 * x2 + t ** 3 * x3
            by = u ** 3 * cy + 3 * u ** 2 * t * y1 + 3 * u * t ** 2 * y2 + t ** 3 * y3
            pts.extend(zip(bx.tolist(), by.tolist()))
            cx, cy = x3, y3
    return pts
