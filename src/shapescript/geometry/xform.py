"""Affine transforms for 2D shape geometry.

Transforms are 3x3 numpy matrices acting on homogeneous column vectors
``(x, y, 1)``.  Compose them with ``@``: ``a @ b`` applies ``b`` first.
"""

from __future__ import annotations

import math
from typing import Optional, Sequence

import numpy as np


def identity() -> np.ndarray:
    return np.eye(3)


def translation(dx: float, dy: float) -> np.ndarray:
    m = np.eye(3)
    m[0, 2] = dx
    m[1, 2] = dy
    return m


def rotation(angle: float, origin: Optional[Sequence[float]] = None) -> np.ndarray:
    """Counter-clockwise rotation by ``angle`` radians about ``origin``."""
    c = math.cos(angle)
    s = math.sin(angle)
    m = np.array([[c, -s, 0.0],
                  [s, c, 0.0],
                  [0.0, 0.0, 1.0]])
    return about(m, origin)


def scaling(sx: float, sy: float, origin: Optional[Sequence[float]] = None) -> np.ndarray:
    m = np.diag([sx, sy, 1.0])
    return about(m, origin)


def about(matrix: np.ndarray, origin: Optional[Sequence[float]]) -> np.ndarray:
    """Conjugate ``matrix`` so that it acts around ``origin``."""
    if origin is None:
        return matrix
    ox, oy = float(origin[0]), float(origin[1])
    if ox == 0.0 and oy == 0.0:
        return matrix
    return translation(ox, oy) @ matrix @ translation(-ox, -oy)


def apply(matrix: np.ndarray, points: np.ndarray) -> np.ndarray:
    """Transform an ``(N, 2)`` point array, returning a new array."""
    points = np.asarray(points, dtype=np.float64).reshape(-1, 2)
    if len(points) == 0:
        return points.copy()
    homogeneous = np.hstack([points, np.ones((len(points), 1))])
    return (homogeneous @ np.asarray(matrix, dtype=np.float64).T)[:, :2]
