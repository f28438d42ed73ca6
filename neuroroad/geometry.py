"""Segment intersection and interpolation helpers. Pure math, no state."""

from typing import NamedTuple

# Denominators smaller than this are treated as parallel segments
EPSILON = 1e-12


class Point(NamedTuple):
    x: float
    y: float


class Segment(NamedTuple):
    start: Point
    end: Point


def lerp(a, b, t):
    return a + (b - a) * t


def lerp_point(a, b, t):
    return Point(lerp(a[0], b[0], t), lerp(a[1], b[1], t))


def intersect(p1, p2, p3, p4):
    """Intersection of segment p1->p2 with segment p3->p4.

    Returns ``(point, t)`` where ``t`` is the position along the first
    segment (0 at p1, 1 at p2), or ``None`` when the segments are parallel,
    degenerate or do not overlap. Touching endpoints count as a hit.
    """
    d1x, d1y = p2[0] - p1[0], p2[1] - p1[1]
    d2x, d2y = p4[0] - p3[0], p4[1] - p3[1]
    denom = d2y * d1x - d2x * d1y
    if abs(denom) < EPSILON:
        return None
    ox, oy = p1[0] - p3[0], p1[1] - p3[1]
    t = (d2x * oy - d2y * ox) / denom
    u = (d1x * oy - d1y * ox) / denom
    if 0.0 <= t <= 1.0 and 0.0 <= u <= 1.0:
        return lerp_point(p1, p2, t), t
    return None


def segment_intersect(a, b):
    """:func:`intersect` for two :class:`Segment` values."""
    return intersect(a[0], a[1], b[0], b[1])


def polygon_edges(points):
    """Closed edge list of a polygon."""
    n = len(points)
    return [Segment(points[i], points[(i + 1) % n]) for i in range(n)]


def polygons_intersect(a, b):
    """True if any edge of polygon ``a`` touches any edge of polygon ``b``."""
    edges_b = polygon_edges(b)
    for ea in polygon_edges(a):
        for eb in edges_b:
            if intersect(ea[0], ea[1], eb[0], eb[1]) is not None:
                return True
    return False
