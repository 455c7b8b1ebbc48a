"""Scene descriptions for renderers.

Renderers never receive the live plan. They get a ``Scene2D`` (visible layers
in draw order, viewport, selection) or a ``Scene3D`` (extruded prisms in
meters) and report selections back through ``select_element``.
"""

from __future__ import annotations

from typing import Literal, Mapping, Optional

from pydantic import BaseModel, Field

from riskplan.exceptions import ElementNotFoundError
from riskplan.geometry.contract import (
    DEFAULT_VIEWPORT_ZOOM,
    DEFAULT_ZONE_PRISM_HEIGHT,
    MIN_VIEWPORT_ZOOM,
    to_meters,
)
from riskplan.geometry.primitives import Point2D, bounding_box, open_ring, segment_footprint
from riskplan.model.schema import Element, Layer, Plan, PointElement, RiskLevel, RiskSummary, Wall, Zone

LEVEL_COLORS: dict[str, str] = {
    "low": "#16a34a",
    "medium": "#eab308",
    "high": "#f97316",
    "critical": "#ef4444",
}
DEFAULT_ZONE_COLOR = "#3b82f6"
WALL_COLOR = "#111827"


class Viewport(BaseModel):
    center: Point2D = Field(default_factory=lambda: Point2D(x=0.0, y=0.0))
    zoom: float = Field(DEFAULT_VIEWPORT_ZOOM, ge=MIN_VIEWPORT_ZOOM)


class SceneLayer(BaseModel):
    layer: Layer
    elements: list[Element] = Field(default_factory=list)


class Scene2D(BaseModel):
    plan_id: str
    layers: list[SceneLayer] = Field(default_factory=list)
    viewport: Viewport = Field(default_factory=Viewport)
    selected_element_id: Optional[str] = None
    bounds: Optional[tuple[float, float, float, float]] = None

    def element_ids(self) -> set[str]:
        return {el.id for scene_layer in self.layers for el in scene_layer.elements}


def _element_points(element: Wall | Zone | PointElement) -> list[Point2D]:
    if isinstance(element, Wall):
        return [element.start, element.end]
    if isinstance(element, Zone):
        return list(element.polygon)
    return [element.position]


def _require_element(scene: Scene2D, element_id: Optional[str]) -> None:
    if element_id is not None and element_id not in scene.element_ids():
        raise ElementNotFoundError(
            f"Element {element_id} is not shown in plan {scene.plan_id}",
            {"plan_id": scene.plan_id, "element_id": element_id},
        )


def build_scene_2d(
    plan: Plan,
    viewport: Optional[Viewport] = None,
    selected_element_id: Optional[str] = None,
) -> Scene2D:
    """Visible layers in plan order with their elements."""
    layers: list[SceneLayer] = []
    for layer in plan.layers:
        if not layer.is_visible:
            continue
        layers.append(SceneLayer(layer=layer, elements=[el for el in plan.elements if el.layer_id == layer.id]))

    points = [p for scene_layer in layers for el in scene_layer.elements for p in _element_points(el)]
    scene = Scene2D(
        plan_id=plan.id,
        layers=layers,
        viewport=viewport or Viewport(),
        bounds=bounding_box(points),
    )
    _require_element(scene, selected_element_id)
    return scene.model_copy(update={"selected_element_id": selected_element_id})


def select_element(scene: Scene2D, element_id: Optional[str]) -> Scene2D:
    """Selection event from the renderer; ``None`` clears the selection."""
    _require_element(scene, element_id)
    return scene.model_copy(update={"selected_element_id": element_id})


def update_viewport(scene: Scene2D, *, center: Optional[Point2D] = None, zoom: Optional[float] = None) -> Scene2D:
    current = scene.viewport
    viewport = Viewport(
        center=center if center is not None else current.center,
        zoom=zoom if zoom is not None else current.zoom,
    )
    return scene.model_copy(update={"viewport": viewport})


class Prism3D(BaseModel):
    """Vertical extrusion of a 2D footprint, coordinates in meters."""
    element_id: str
    kind: Literal["wall", "zone"]
    footprint: list[Point2D]
    base_z: float = 0.0
    height: float
    color: str
    risk_level: Optional[RiskLevel] = None
    highlighted: bool = False


class Scene3D(BaseModel):
    plan_id: str
    prisms: list[Prism3D] = Field(default_factory=list)

    def get(self, element_id: str) -> Prism3D | None:
        return next((p for p in self.prisms if p.element_id == element_id), None)


def _scaled(point: Point2D, scale: float) -> Point2D:
    return Point2D(x=to_meters(point.x, scale), y=to_meters(point.y, scale))


def build_scene_3d(
    plan: Plan,
    summaries: Optional[Mapping[str, RiskSummary]] = None,
    highlight_id: Optional[str] = None,
    *,
    wall_height: Optional[float] = None,
    zone_height: float = DEFAULT_ZONE_PRISM_HEIGHT,
    include_hidden: bool = False,
) -> Scene3D:
    """Walls and zones of the plan as prisms.

    Zone colours come from ``summaries`` when given, else from the zone's
    cached risk summary. Degenerate walls produce no prism.
    """
    scale = plan.scale_meters_per_unit
    visible = {layer.id for layer in plan.layers if include_hidden or layer.is_visible}
    prisms: list[Prism3D] = []

    for element in plan.elements:
        if element.layer_id not in visible:
            continue
        if isinstance(element, Wall):
            footprint = segment_footprint(_scaled(element.start, scale), _scaled(element.end, scale), element.thickness)
            if footprint.is_empty:
                continue
            coords = list(footprint.exterior.coords)[:-1]
            prisms.append(Prism3D(
                element_id=element.id,
                kind="wall",
                footprint=[Point2D(x=float(x), y=float(y)) for x, y in coords],
                height=wall_height or element.height,
                color=WALL_COLOR,
                highlighted=element.id == highlight_id,
            ))
        elif isinstance(element, Zone):
            summary = (summaries or {}).get(element.id) or element.risk_summary
            prisms.append(Prism3D(
                element_id=element.id,
                kind="zone",
                footprint=[_scaled(p, scale) for p in open_ring(element.polygon)],
                height=zone_height,
                color=LEVEL_COLORS[summary.level] if summary else DEFAULT_ZONE_COLOR,
                risk_level=summary.level if summary else None,
                highlighted=element.id == highlight_id,
            ))

    return Scene3D(plan_id=plan.id, prisms=prisms)


__all__ = [
    "LEVEL_COLORS",
    "DEFAULT_ZONE_COLOR",
    "WALL_COLOR",
    "Viewport",
    "SceneLayer",
    "Scene2D",
    "Prism3D",
    "Scene3D",
    "build_scene_2d",
    "select_element",
    "update_viewport",
    "build_scene_3d",
]
