"""2D primitives shared by the plan model, the risk views and the importers."""

from __future__ import annotations

import math
from typing import Iterable, Sequence

from pydantic import BaseModel
from shapely.geometry import LineString, Polygon
from shapely.geometry import Point as ShapelyPoint

from .contract import COORD_EPSILON, MIN_ZONE_VERTICES


class Point2D(BaseModel):
    """2D point in plan units."""
    x: float
    y: float

    def translated(self, dx: float, dy: float) -> "Point2D":
        return Point2D(x=self.x + dx, y=self.y + dy)

    def as_tuple(self) -> tuple[float, float]:
        return (self.x, self.y)


def segment_length(start: Point2D, end: Point2D) -> float:
    """Euclidean length of a segment."""
    return math.hypot(end.x - start.x, end.y - start.y)


def is_closed(points: Sequence[Point2D], tolerance: float = COORD_EPSILON) -> bool:
    """True when the first and last vertex coincide."""
    if len(points) < 2:
        return False
    first, last = points[0], points[-1]
    return abs(first.x - last.x) <= tolerance and abs(first.y - last.y) <= tolerance


def open_ring(points: Sequence[Point2D]) -> list[Point2D]:
    """Drop the duplicated closing vertex, if any."""
    ring = list(points)
    if len(ring) > MIN_ZONE_VERTICES and is_closed(ring):
        ring = ring[:-1]
    return ring


def to_shapely_polygon(points: Sequence[Point2D]) -> Polygon:
    """Build a shapely polygon; the ring is closed implicitly."""
    ring = open_ring(points)
    if len(ring) < MIN_ZONE_VERTICES:
        raise ValueError(f"Polygon needs at least {MIN_ZONE_VERTICES} vertices, got {len(ring)}")
    return Polygon([p.as_tuple() for p in ring])


def polygon_area(points: Sequence[Point2D]) -> float:
    """Unsigned area in square plan units."""
    return float(to_shapely_polygon(points).area)


def polygon_centroid(points: Sequence[Point2D]) -> Point2D:
    """Centroid of the polygon; falls back to the vertex mean for degenerate rings."""
    poly = to_shapely_polygon(points)
    if poly.area <= COORD_EPSILON:
        ring = open_ring(points)
        return Point2D(
            x=sum(p.x for p in ring) / len(ring),
            y=sum(p.y for p in ring) / len(ring),
        )
    c = poly.centroid
    return Point2D(x=float(c.x), y=float(c.y))


def contains_point(points: Sequence[Point2D], point: Point2D) -> bool:
    """True when ``point`` lies inside or on the boundary of the polygon."""
    return bool(to_shapely_polygon(points).intersects(ShapelyPoint(point.x, point.y)))


def segment_footprint(start: Point2D, end: Point2D, thickness: float) -> Polygon:
    """Rectangle covering a wall centerline with the given thickness.

    The centerline is buffered by half the thickness with flat caps, so the
    footprint length equals the segment length.
    """
    line = LineString([start.as_tuple(), end.as_tuple()])
    if line.length <= COORD_EPSILON:
        return Polygon()
    return line.buffer(thickness / 2.0, cap_style="flat", join_style="mitre")


def translate_points(points: Iterable[Point2D], dx: float, dy: float) -> list[Point2D]:
    return [p.translated(dx, dy) for p in points]


def bounding_box(points: Iterable[Point2D]) -> tuple[float, float, float, float] | None:
    """(min_x, min_y, max_x, max_y) or None for an empty input."""
    pts = list(points)
    if not pts:
        return None
    xs = [p.x for p in pts]
    ys = [p.y for p in pts]
    return (min(xs), min(ys), max(xs), max(ys))


__all__ = [
    "Point2D",
    "segment_length",
    "is_closed",
    "open_ring",
    "to_shapely_polygon",
    "polygon_area",
    "polygon_centroid",
    "contains_point",
    "segment_footprint",
    "translate_points",
    "bounding_box",
]
