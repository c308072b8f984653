"""
DXF export for script results.

Every triangle becomes a closed LWPOLYLINE. A plain Shape goes on the
SHAPE layer; an AdaptiveShape gets one layer per filled slot
(SLOT_BL, SLOT_L, ...) so the 9-slice stays separable in a CAD viewer.
"""

from pathlib import Path
from typing import Union

import ezdxf
from ezdxf.document import Drawing

from .geometry import Shape, AdaptiveShape

SHAPE_LAYER = 'SHAPE'


def slot_layer(slot: str) -> str:
    return f"SLOT_{slot.upper()}"


def _add_triangles(msp, shape: Shape, layer: str) -> int:
    count = 0
    for tri in shape.triangle_points():
        msp.add_lwpolyline([tuple(p) for p in tri], close=True,
                           dxfattribs={'layer': layer})
        count += 1
    return count


def to_dxf(value: Union[Shape, AdaptiveShape]) -> Drawing:
    """Build an in-memory DXF document for a Shape or AdaptiveShape."""
    doc = ezdxf.new(dxfversion='R2010', setup=False)
    msp = doc.modelspace()

    if isinstance(value, Shape):
        doc.layers.new(SHAPE_LAYER, dxfattribs={'color': 7})  # white
        _add_triangles(msp, value, SHAPE_LAYER)
    elif isinstance(value, AdaptiveShape):
        for color, (slot, shape) in enumerate(value, start=1):
            if shape is None:
                continue
            doc.layers.new(slot_layer(slot), dxfattribs={'color': color})
            _add_triangles(msp, shape, slot_layer(slot))
    else:
        raise TypeError(f"cannot export {type(value).__name__} to DXF")
    return doc


def write_dxf(value: Union[Shape, AdaptiveShape], output_path: Union[str, Path]) -> Path:
    """
    Export a script result to a DXF file.

    A missing .dxf suffix is added. Returns the path written; I/O errors
    propagate to the caller.
    """
    path = Path(output_path)
    if path.suffix.lower() != '.dxf':
        path = path.with_suffix('.dxf')
    to_dxf(value).saveas(path)
    return path
