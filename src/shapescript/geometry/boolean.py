"""Boolean modifiers on triangle shapes.

Every triangle is a convex polygon, so the operations reduce to
clipping convex polygons against the edge half-planes of the other
shape's triangles.  Results are fan-triangulated and contain no shared
vertices; the output is correct for area but not minimal.
"""

from __future__ import annotations

from typing import List, Sequence, Tuple

from .shape import Shape, Point2D

EPSILON = 1e-9

# A half-plane n . p >= d, stored as (nx, ny, d)
Line = Tuple[float, float, float]
Polygon = List[Point2D]


def _signed_area(poly: Sequence[Point2D]) -> float:
    total = 0.0
    for i, (x0, y0) in enumerate(poly):
        x1, y1 = poly[(i + 1) % len(poly)]
        total += x0 * y1 - x1 * y0
    return total / 2.0


def _ccw(tri: Sequence[Point2D]) -> Polygon:
    poly = [(float(x), float(y)) for x, y in tri]
    if _signed_area(poly) < 0:
        poly.reverse()
    return poly


def _edge_lines(tri: Polygon) -> List[Line]:
    """Inward half-planes of a counter-clockwise triangle."""
    lines = []
    for i, (x0, y0) in enumerate(tri):
        x1, y1 = tri[(i + 1) % len(tri)]
        nx, ny = -(y1 - y0), x1 - x0
        lines.append((nx, ny, nx * x0 + ny * y0))
    return lines


def _line_eval(line: Line, p: Point2D) -> float:
    return line[0] * p[0] + line[1] * p[1] - line[2]


def _segment_line_intersection(p0: Point2D, p1: Point2D, line: Line) -> Point2D:
    e0 = _line_eval(line, p0)
    e1 = _line_eval(line, p1)
    denom = e0 - e1
    t = 0.0 if abs(denom) < EPSILON else e0 / denom
    t = max(0.0, min(1.0, t))
    return (p0[0] + (p1[0] - p0[0]) * t, p0[1] + (p1[1] - p0[1]) * t)


def _dedupe_polygon(poly: Polygon, tol: float) -> Polygon:
    if not poly:
        return []
    deduped = [poly[0]]
    for pt in poly[1:]:
        if abs(pt[0] - deduped[-1][0]) > tol or abs(pt[1] - deduped[-1][1]) > tol:
            deduped.append(pt)
    if len(deduped) > 2 and abs(deduped[0][0] - deduped[-1][0]) <= tol and \
            abs(deduped[0][1] - deduped[-1][1]) <= tol:
        deduped.pop()
    return deduped


def _clip_polygon_against_line(poly: Polygon, line: Line, tol: float,
                               keep_inside: bool = True) -> Polygon:
    """Sutherland-Hodgman step: keep the part on one side of ``line``."""
    if not poly:
        return []

    def _inside(value: float) -> bool:
        return value >= -tol if keep_inside else value <= tol

    clipped = []
    prev = poly[-1]
    prev_inside = _inside(_line_eval(line, prev))
    for curr in poly:
        curr_inside = _inside(_line_eval(line, curr))
        if curr_inside:
            if not prev_inside:
                clipped.append(_segment_line_intersection(prev, curr, line))
            clipped.append(curr)
        elif prev_inside:
            clipped.append(_segment_line_intersection(prev, curr, line))
        prev = curr
        prev_inside = curr_inside
    return _dedupe_polygon(clipped, tol)


def _split_polygon_by_line(poly: Polygon, line: Line, tol: float) -> Tuple[Polygon, List[Polygon]]:
    if not poly:
        return [], []

    evals = [_line_eval(line, p) for p in poly]
    if min(evals) >= -tol:
        return list(poly), []
    if max(evals) <= tol:
        return [], [list(poly)]

    inside = _clip_polygon_against_line(poly, line, tol, keep_inside=True)
    outside = _clip_polygon_against_line(poly, line, tol, keep_inside=False)
    return inside, [outside] if outside else []


def _split_polygon_by_lines(poly: Polygon, lines: Sequence[Line],
                            tol: float) -> Tuple[List[Polygon], List[Polygon]]:
    """Split a convex polygon into the part inside every line and the rest."""
    inside_polys = [poly]
    outside_polys: List[Polygon] = []
    for line in lines:
        next_inside = []
        for current in inside_polys:
            inside, outside = _split_polygon_by_line(current, line, tol)
            outside_polys.extend(outside)
            if inside:
                next_inside.append(inside)
        inside_polys = next_inside
        if not inside_polys:
            break
    return inside_polys, outside_polys


def _triangulate_polygon(poly: Polygon, tol: float) -> List[Polygon]:
    if len(poly) < 3 or abs(_signed_area(poly)) <= tol:
        return []
    anchor = poly[0]
    triangles = []
    for i in range(1, len(poly) - 1):
        tri = [anchor, poly[i], poly[i + 1]]
        if abs(_signed_area(tri)) > tol:
            triangles.append(tri)
    return triangles


def _triangles(shape: Shape) -> List[Polygon]:
    return [_ccw(tri) for tri in shape.triangle_points().tolist()]


def _to_shape(polygons: Sequence[Polygon], tol: float) -> Shape:
    triangles = []
    for poly in polygons:
        triangles.extend(_triangulate_polygon(poly, tol))
    return Shape.from_triangles(triangles)


def intersect(a: Shape, b: Shape, tol: float = EPSILON) -> Shape:
    """The region covered by both shapes."""
    pieces = []
    clip_lines = [_edge_lines(tb) for tb in _triangles(b)]
    for ta in _triangles(a):
        for lines in clip_lines:
            inside, _ = _split_polygon_by_lines(ta, lines, tol)
            pieces.extend(inside)
    return _to_shape(pieces, tol)


def difference(a: Shape, b: Shape, tol: float = EPSILON) -> Shape:
    """The region of ``a`` not covered by ``b``."""
    pieces = _triangles(a)
    for tb in _triangles(b):
        lines = _edge_lines(tb)
        remaining = []
        for piece in pieces:
            _, outside = _split_polygon_by_lines(piece, lines, tol)
            remaining.extend(outside)
        pieces = remaining
        if not pieces:
            break
    return _to_shape(pieces, tol)


def union(a: Shape, b: Shape, tol: float = EPSILON) -> Shape:
    """The region covered by either shape, without overlapping triangles."""
    return Shape.combine([a, difference(b, a, tol)])
