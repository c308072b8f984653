"""Triangle geometry produced by shape scripts.

A :class:`Shape` is an indexed triangle list in the plane: an ``(N, 2)``
float array of vertices and an ``(M, 3)`` integer array of triangle
indices.  Shapes are treated as immutable; every operation returns a
new shape.

An :class:`AdaptiveShape` bundles up to nine shapes as a 9-slice, one
per slot: four corners, four edges and the center.
"""

from __future__ import annotations

from typing import Dict, Iterable, Iterator, List, Optional, Sequence, Tuple

import numpy as np

from . import xform

# Shape builder modes
TRIANGLES = 0
TRIANGLE_STRIP = 1

Point2D = Tuple[float, float]


def strip_indices(count: int) -> np.ndarray:
    """Triangle indices for a strip of ``count`` vertices, winding preserved."""
    if count < 3:
        return np.zeros((0, 3), dtype=np.int64)
    rows = []
    for i in range(count - 2):
        if i % 2 == 0:
            rows.append((i, i + 1, i + 2))
        else:
            rows.append((i + 1, i, i + 2))
    return np.asarray(rows, dtype=np.int64)


class Shape:
    """Indexed triangles in the plane."""

    def __init__(self, vertices: Optional[Iterable[Sequence[float]]] = None,
                 triangles: Optional[Iterable[Sequence[int]]] = None):
        if vertices is None:
            vertices = []
        self.vertices = np.asarray(vertices, dtype=np.float64).reshape(-1, 2)
        if triangles is None:
            if len(self.vertices) % 3:
                raise ValueError("a triangle list needs a multiple of three vertices")
            triangles = np.arange(len(self.vertices)).reshape(-1, 3)
        self.triangles = np.asarray(triangles, dtype=np.int64).reshape(-1, 3)
        if len(self.triangles) and (self.triangles.min() < 0 or
                                    self.triangles.max() >= len(self.vertices)):
            raise ValueError("triangle index out of range")

    @classmethod
    def from_vertices(cls, points: Sequence[Sequence[float]], mode: int = TRIANGLES) -> "Shape":
        """Build a shape from builder vertices in the given mode."""
        if mode == TRIANGLES:
            return cls(points)
        if mode == TRIANGLE_STRIP:
            return cls(points, strip_indices(len(points)))
        raise ValueError(f"unknown shape mode {mode}")

    @classmethod
    def from_triangles(cls, triangles: Iterable[Sequence[Point2D]]) -> "Shape":
        """Build a shape from explicit ``[p0, p1, p2]`` triangles."""
        points = [p for tri in triangles for p in tri]
        return cls(points)

    @classmethod
    def combine(cls, shapes: Iterable["Shape"]) -> "Shape":
        """Concatenate shapes in order, offsetting their indices."""
        vertices = []
        triangles = []
        offset = 0
        for shape in shapes:
            vertices.append(shape.vertices)
            triangles.append(shape.triangles + offset)
            offset += len(shape.vertices)
        if not vertices:
            return cls()
        return cls(np.vstack(vertices), np.vstack(triangles))

    # Queries

    @property
    def vertex_count(self) -> int:
        return len(self.vertices)

    @property
    def triangle_count(self) -> int:
        return len(self.triangles)

    @property
    def is_empty(self) -> bool:
        return len(self.triangles) == 0

    def triangle_points(self) -> np.ndarray:
        """The triangles as an ``(M, 3, 2)`` array of corner points."""
        return self.vertices[self.triangles]

    def extent(self) -> Tuple[np.ndarray, np.ndarray]:
        """Bounding box as ``(min_xy, max_xy)``; zeros for an empty shape."""
        if len(self.vertices) == 0:
            return np.zeros(2), np.zeros(2)
        return self.vertices.min(axis=0), self.vertices.max(axis=0)

    @property
    def width(self) -> float:
        lo, hi = self.extent()
        return float(hi[0] - lo[0])

    @property
    def height(self) -> float:
        lo, hi = self.extent()
        return float(hi[1] - lo[1])

    def center(self) -> np.ndarray:
        lo, hi = self.extent()
        return (lo + hi) / 2.0

    def area(self) -> float:
        """Sum of the (unsigned) triangle areas."""
        if self.is_empty:
            return 0.0
        tri = self.triangle_points()
        e1 = tri[:, 1] - tri[:, 0]
        e2 = tri[:, 2] - tri[:, 0]
        cross = e1[:, 0] * e2[:, 1] - e1[:, 1] * e2[:, 0]
        return float(np.abs(cross).sum() / 2.0)

    # Transforms

    def transformed(self, matrix: np.ndarray) -> "Shape":
        return Shape(xform.apply(matrix, self.vertices), self.triangles.copy())

    def translated(self, dx: float, dy: float) -> "Shape":
        return self.transformed(xform.translation(dx, dy))

    def rotated(self, angle: float, origin: Optional[Sequence[float]] = None) -> "Shape":
        return self.transformed(xform.rotation(angle, origin))

    def scaled(self, sx: float, sy: float, origin: Optional[Sequence[float]] = None) -> "Shape":
        return self.transformed(xform.scaling(sx, sy, origin))

    def recentered(self) -> "Shape":
        """Move the shape so its bounding box is centered on the origin."""
        cx, cy = self.center()
        return self.translated(-cx, -cy)

    def combined(self, *others: "Shape") -> "Shape":
        return Shape.combine((self,) + others)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Shape):
            return NotImplemented
        return (np.array_equal(self.vertices, other.vertices) and
                np.array_equal(self.triangles, other.triangles))

    __hash__ = None

    def __repr__(self) -> str:
        return f"Shape(vertices={self.vertex_count}, triangles={self.triangle_count})"


# 9-slice slots, in export order
SLOTS = ("bl", "l", "tl", "t", "tr", "r", "br", "b", "c")

SLOT_ALIASES = {
    "bottom_left": "bl",
    "left": "l",
    "top_left": "tl",
    "top": "t",
    "top_right": "tr",
    "right": "r",
    "bottom_right": "br",
    "bottom": "b",
    "center": "c",
}


def resolve_slot(name: str) -> Optional[str]:
    """Canonical slot name for ``name`` or an alias of it, else None."""
    if name in SLOTS:
        return name
    return SLOT_ALIASES.get(name)


class AdaptiveShape:
    """Nine optional shapes making up a resolution-independent 9-slice."""

    def __init__(self, parts: Optional[Dict[str, Optional[Shape]]] = None):
        self.parts: Dict[str, Optional[Shape]] = {slot: None for slot in SLOTS}
        for name, shape in (parts or {}).items():
            self[name] = shape

    @classmethod
    def from_sequence(cls, shapes: Sequence[Optional[Shape]]) -> "AdaptiveShape":
        if len(shapes) != len(SLOTS):
            raise ValueError(f"an adaptive shape has {len(SLOTS)} slots, got {len(shapes)}")
        return cls(dict(zip(SLOTS, shapes)))

    def _slot(self, name: str) -> str:
        slot = resolve_slot(name)
        if slot is None:
            raise KeyError(name)
        return slot

    def __getitem__(self, name: str) -> Optional[Shape]:
        return self.parts[self._slot(name)]

    def __setitem__(self, name: str, shape: Optional[Shape]) -> None:
        self.parts[self._slot(name)] = shape

    def __iter__(self) -> Iterator[Tuple[str, Optional[Shape]]]:
        return iter(self.parts.items())

    def filled(self) -> List[str]:
        return [slot for slot in SLOTS if self.parts[slot] is not None]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, AdaptiveShape):
            return NotImplemented
        return self.parts == other.parts

    __hash__ = None

    def __repr__(self) -> str:
        return f"AdaptiveShape(filled={self.filled()})"
