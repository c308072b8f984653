"""Primitive shape constructors.

Rectangles are emitted as 4-vertex triangle strips, arcs and ellipses
as fans around a center vertex.
"""

from __future__ import annotations

import math

import numpy as np

from .shape import Shape, Point2D, strip_indices


def triangle(p1: Point2D, p2: Point2D, p3: Point2D) -> Shape:
    return Shape([p1, p2, p3])


def rect(x: float, y: float, width: float, height: float) -> Shape:
    """Axis-aligned rectangle with its lower-left corner at ``(x, y)``."""
    vertices = [(x, y), (x, y + height), (x + width, y), (x + width, y + height)]
    return Shape(vertices, strip_indices(4))


def rect_corners(x1: float, y1: float, x2: float, y2: float) -> Shape:
    """Rectangle spanning two opposite corners."""
    return rect(x1, y1, x2 - x1, y2 - y1)


def arc(cx: float, cy: float, radius_x: float, radius_y: float,
        offset: float, angle_range: float, tri_count: int) -> Shape:
    """
    Elliptical sector from ``offset`` sweeping ``angle_range`` radians.

    The fan has one center vertex and ``tri_count + 1`` rim vertices.
    """
    if tri_count < 1:
        raise ValueError("tri_count must be at least 1")
    angles = offset + angle_range * np.arange(tri_count + 1) / tri_count
    rim = np.column_stack([cx + radius_x * np.cos(angles),
                           cy + radius_y * np.sin(angles)])
    vertices = np.vstack([[cx, cy], rim])
    triangles = [(0, i, i + 1) for i in range(1, tri_count + 1)]
    return Shape(vertices, triangles)


def circle(cx: float, cy: float, radius: float, tri_count: int) -> Shape:
    return arc(cx, cy, radius, radius, 0.0, 2 * math.pi, tri_count)


def ellipse(cx: float, cy: float, radius_x: float, radius_y: float, tri_count: int) -> Shape:
    return arc(cx, cy, radius_x, radius_y, 0.0, 2 * math.pi, tri_count)


def void_rect(x: float, y: float, width: float, height: float, thickness: float) -> Shape:
    """Rectangular frame: four rectangles of the given thickness."""
    inner = height - 2 * thickness
    return Shape.combine([
        rect(x, y, width, thickness),
        rect(x, y + height - thickness, width, thickness),
        rect(x, y + thickness, thickness, inner),
        rect(x + width - thickness, y + thickness, thickness, inner),
    ])


def missing_shape(size: float) -> Shape:
    """Placeholder drawn for shape resources that failed to compile."""
    quarter = size / 4
    return Shape.combine([
        void_rect(0.0, 0.0, size, size, size / 8),
        rect(quarter * 1.5, quarter * 1.5, quarter, quarter),
    ])
