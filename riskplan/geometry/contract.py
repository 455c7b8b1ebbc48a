from __future__ import annotations

"""
Geometry Contract

Single source of truth for geometric defaults and tolerances shared by the
model, the importers and the scene builders. Modules import from here instead
of hardcoding.
"""

# Lengths in meters unless noted; plan coordinates are scaled by
# Plan.scale_meters_per_unit before they become meters.

# Walls
DEFAULT_WALL_THICKNESS = 0.20  # m
DEFAULT_WALL_HEIGHT = 2.50  # m
MIN_WALL_LENGTH = 1e-3  # m, shorter centerlines are treated as degenerate

# Zones
MIN_ZONE_VERTICES = 3
DEFAULT_ZONE_PRISM_HEIGHT = 0.10  # m, thin slab used by 3D viewers

# Comparison tolerance for coordinates
COORD_EPSILON = 1e-9

# Viewport
DEFAULT_VIEWPORT_ZOOM = 1.0
MIN_VIEWPORT_ZOOM = 0.01


def to_meters(value_units: float, scale_meters_per_unit: float) -> float:
    """Convert plan units to meters."""
    return float(value_units * scale_meters_per_unit)


def to_units(value_m: float, scale_meters_per_unit: float) -> float:
    """Convert meters to plan units."""
    return float(value_m / scale_meters_per_unit)
