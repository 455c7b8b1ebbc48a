"""Geometry primitives and shared geometric defaults."""

from .primitives import (
    Point2D,
    bounding_box,
    contains_point,
    polygon_area,
    polygon_centroid,
    segment_footprint,
    segment_length,
    to_shapely_polygon,
    translate_points,
)

__all__ = [
    "Point2D",
    "bounding_box",
    "contains_point",
    "polygon_area",
    "polygon_centroid",
    "segment_footprint",
    "segment_length",
    "to_shapely_polygon",
    "translate_points",
]
