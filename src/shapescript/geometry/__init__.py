"""
2D triangle geometry for shape scripts.

Provides the Shape/AdaptiveShape values scripts export, the primitive
constructors, affine transforms and boolean modifiers the builtin
registry exposes.
"""

from .shape import (
    Shape,
    AdaptiveShape,
    TRIANGLES,
    TRIANGLE_STRIP,
    SLOTS,
    SLOT_ALIASES,
    resolve_slot,
    strip_indices,
)

from .primitives import (
    triangle,
    rect,
    rect_corners,
    arc,
    circle,
    ellipse,
    void_rect,
    missing_shape,
)

from .boolean import (
    union,
    intersect,
    difference,
)

from . import xform

__all__ = [
    'Shape',
    'AdaptiveShape',
    'TRIANGLES',
    'TRIANGLE_STRIP',
    'SLOTS',
    'SLOT_ALIASES',
    'resolve_slot',
    'strip_indices',
    'triangle',
    'rect',
    'rect_corners',
    'arc',
    'circle',
    'ellipse',
    'void_rect',
    'missing_shape',
    'union',
    'intersect',
    'difference',
    'xform',
]
