"""Editing operations on plan states.

Every function is pure: it returns a new ``PlanState`` and leaves its input
untouched, so the functions compose inside a ``commit`` mutation callback::

    commit(ws, plan_id, lambda s: add_zone(s, "z1", "lyr", polygon), message="Add zone")
"""

from __future__ import annotations

from typing import Any, Iterable, Optional, Sequence, assert_never
from uuid import uuid4

from riskplan.exceptions import ElementNotFoundError, LockedLayerError, PlanValidationError
from riskplan.geometry.contract import DEFAULT_WALL_HEIGHT, DEFAULT_WALL_THICKNESS
from riskplan.geometry.primitives import Point2D, translate_points

from .schema import (
    Finding,
    Layer,
    LayerType,
    PlanState,
    PointElement,
    PointType,
    Wall,
    Zone,
    ZoneUsage,
)

ElementT = Wall | Zone | PointElement


def new_id() -> str:
    return uuid4().hex


def _points(points: Iterable[Point2D | tuple[float, float]]) -> list[Point2D]:
    return [p if isinstance(p, Point2D) else Point2D(x=p[0], y=p[1]) for p in points]


def _layer(state: PlanState, layer_id: str) -> Layer:
    for layer in state.layers:
        if layer.id == layer_id:
            return layer
    raise ElementNotFoundError(f"Layer {layer_id} not found", {"layer_id": layer_id})


def _element(state: PlanState, element_id: str) -> ElementT:
    for element in state.elements:
        if element.id == element_id:
            return element
    raise ElementNotFoundError(f"Element {element_id} not found", {"element_id": element_id})


def _ensure_unlocked(state: PlanState, layer_id: str) -> None:
    if _layer(state, layer_id).is_locked:
        raise LockedLayerError(f"Layer {layer_id} is locked", {"layer_id": layer_id})


def _replace_layer(state: PlanState, layer: Layer) -> PlanState:
    return state.model_copy(update={"layers": [layer if l.id == layer.id else l for l in state.layers]})


# ------------------------------------------------------------------ #
#  Layers
# ------------------------------------------------------------------ #

def create_layer(layer_id: str, name: str, layer_type: LayerType = "architectural", **extra: Any) -> Layer:
    """New visible, unlocked layer."""
    return Layer(id=layer_id, name=name, type=layer_type, is_visible=True, is_locked=False, **extra)


def add_layer(state: PlanState, layer: Layer) -> PlanState:
    if any(l.id == layer.id for l in state.layers):
        raise PlanValidationError(f"Layer {layer.id} already exists", {"layer_id": layer.id})
    return state.model_copy(update={"layers": [*state.layers, layer]})


def toggle_layer_visibility(state: PlanState, layer_id: str) -> PlanState:
    layer = _layer(state, layer_id)
    return _replace_layer(state, layer.model_copy(update={"is_visible": not layer.is_visible}))


def toggle_layer_lock(state: PlanState, layer_id: str) -> PlanState:
    layer = _layer(state, layer_id)
    return _replace_layer(state, layer.model_copy(update={"is_locked": not layer.is_locked}))


def reorder_layer(state: PlanState, layer_id: str, new_index: int) -> PlanState:
    """Move a layer to ``new_index`` (clamped); controls draw order in 2D."""
    ids = [l.id for l in state.layers]
    if layer_id not in ids:
        return state
    current = ids.index(layer_id)
    target = max(0, min(new_index, len(ids) - 1))
    if current == target:
        return state
    layers = list(state.layers)
    layer = layers.pop(current)
    layers.insert(target, layer)
    return state.model_copy(update={"layers": layers})


def remove_layer(state: PlanState, layer_id: str, *, reparent_to: Optional[str] = None) -> PlanState:
    """Delete a layer.

    Without ``reparent_to`` the layer's elements are deleted with it and
    findings pointing at them lose their zone/element link (the findings
    themselves are kept). With ``reparent_to`` the elements move to that layer.
    A locked layer cannot be removed, and elements cannot move onto one.
    """
    _ensure_unlocked(state, layer_id)
    layers = [l for l in state.layers if l.id != layer_id]

    if reparent_to is not None:
        if reparent_to == layer_id or not any(l.id == reparent_to for l in layers):
            raise ElementNotFoundError(
                f"Reparent target layer {reparent_to} not found", {"layer_id": reparent_to}
            )
        _ensure_unlocked(state, reparent_to)
        elements = [
            el.model_copy(update={"layer_id": reparent_to}) if el.layer_id == layer_id else el
            for el in state.elements
        ]
        return state.model_copy(update={"layers": layers, "elements": elements})

    dropped = {el.id for el in state.elements if el.layer_id == layer_id}
    elements = [el for el in state.elements if el.id not in dropped]
    elements = [_unlink_zones(el, dropped) for el in elements]
    findings = [_unlink_finding(f, dropped) for f in state.findings]
    return state.model_copy(update={"layers": layers, "elements": elements, "findings": findings})


def _unlink_finding(finding: Finding, dropped: set[str]) -> Finding:
    update: dict[str, Any] = {}
    if finding.zone_id in dropped:
        update["zone_id"] = None
    if finding.element_id in dropped:
        update["element_id"] = None
    return finding.model_copy(update=update) if update else finding


def _unlink_zones(element: ElementT, dropped: set[str]) -> ElementT:
    if isinstance(element, Zone) and dropped.intersection(element.related_zone_ids):
        related = [zid for zid in element.related_zone_ids if zid not in dropped]
        return element.model_copy(update={"related_zone_ids": related})
    return element


# ------------------------------------------------------------------ #
#  Elements
# ------------------------------------------------------------------ #

def add_element(state: PlanState, element: ElementT) -> PlanState:
    _ensure_unlocked(state, element.layer_id)
    if any(el.id == element.id for el in state.elements):
        raise PlanValidationError(f"Element {element.id} already exists", {"element_id": element.id})
    return state.model_copy(update={"elements": [*state.elements, element]})


def add_wall(
    state: PlanState,
    wall_id: str,
    layer_id: str,
    start: Point2D | tuple[float, float],
    end: Point2D | tuple[float, float],
    *,
    thickness: float = DEFAULT_WALL_THICKNESS,
    height: float = DEFAULT_WALL_HEIGHT,
    material: Optional[str] = None,
) -> PlanState:
    start_pt, end_pt = _points([start, end])
    wall = Wall(
        id=wall_id, layer_id=layer_id, start=start_pt, end=end_pt,
        thickness=thickness, height=height, material=material,
    )
    return add_element(state, wall)


def add_zone(
    state: PlanState,
    zone_id: str,
    layer_id: str,
    polygon: Sequence[Point2D | tuple[float, float]],
    *,
    name: str = "",
    usage: ZoneUsage = "work",
    related_zone_ids: Sequence[str] = (),
    code: Optional[str] = None,
) -> PlanState:
    zone = Zone(
        id=zone_id, layer_id=layer_id, polygon=_points(polygon), name=name,
        usage=usage, related_zone_ids=list(related_zone_ids), code=code,
    )
    return add_element(state, zone)


def add_point(
    state: PlanState,
    point_id: str,
    layer_id: str,
    position: Point2D | tuple[float, float],
    *,
    name: str = "",
    point_type: PointType = "equipment",
    metadata: Optional[dict[str, Any]] = None,
    code: Optional[str] = None,
) -> PlanState:
    (pos,) = _points([position])
    point = PointElement(
        id=point_id, layer_id=layer_id, position=pos, name=name,
        point_type=point_type, metadata=metadata or {}, code=code,
    )
    return add_element(state, point)


def remove_element(state: PlanState, element_id: str) -> PlanState:
    """Delete an element. Findings linked to it must be moved or removed first."""
    element = _element(state, element_id)
    _ensure_unlocked(state, element.layer_id)
    elements = [_unlink_zones(el, {element_id}) for el in state.elements if el.id != element_id]
    return state.model_copy(update={"elements": elements})


def translated(element: ElementT, dx: float, dy: float) -> ElementT:
    """Copy of ``element`` moved by (dx, dy)."""
    if isinstance(element, Wall):
        return element.model_copy(update={
            "start": element.start.translated(dx, dy),
            "end": element.end.translated(dx, dy),
        })
    if isinstance(element, Zone):
        return element.model_copy(update={"polygon": translate_points(element.polygon, dx, dy)})
    if isinstance(element, PointElement):
        return element.model_copy(update={"position": element.position.translated(dx, dy)})
    assert_never(element)


def translate_element(state: PlanState, element_id: str, dx: float, dy: float) -> PlanState:
    element = _element(state, element_id)
    _ensure_unlocked(state, element.layer_id)
    moved = translated(element, dx, dy)
    return state.model_copy(update={
        "elements": [moved if el.id == element_id else el for el in state.elements],
    })


def link_zones(state: PlanState, zone_id: str, related_id: str, *, symmetric: bool = False) -> PlanState:
    """Make ``zone_id`` pull propagated risk from ``related_id``.

    Relations are directed; ``symmetric=True`` also adds the reverse link.
    """
    pairs = [(zone_id, related_id)] + ([(related_id, zone_id)] if symmetric else [])
    elements = list(state.elements)
    for source_id, target_id in pairs:
        source = _element(state, source_id)
        if not isinstance(source, Zone):
            raise PlanValidationError(f"Element {source_id} is not a zone", {"element_id": source_id})
        idx = next(i for i, el in enumerate(elements) if el.id == source_id)
        current = elements[idx]
        if target_id not in current.related_zone_ids:
            elements[idx] = current.model_copy(
                update={"related_zone_ids": [*current.related_zone_ids, target_id]}
            )
    return state.model_copy(update={"elements": elements})


# ------------------------------------------------------------------ #
#  Findings
# ------------------------------------------------------------------ #

def add_finding(state: PlanState, finding: Finding) -> PlanState:
    if any(f.id == finding.id for f in state.findings):
        raise PlanValidationError(f"Finding {finding.id} already exists", {"finding_id": finding.id})
    return state.model_copy(update={"findings": [*state.findings, finding]})


def update_finding(state: PlanState, finding_id: str, **changes: Any) -> PlanState:
    """Explicit update of a finding; the result is re-validated field by field."""
    for idx, finding in enumerate(state.findings):
        if finding.id == finding_id:
            merged = {**finding.model_dump(), **changes, "id": finding_id}
            findings = list(state.findings)
            findings[idx] = Finding.model_validate(merged)
            return state.model_copy(update={"findings": findings})
    raise ElementNotFoundError(f"Finding {finding_id} not found", {"finding_id": finding_id})


def remove_finding(state: PlanState, finding_id: str) -> PlanState:
    return state.model_copy(update={"findings": [f for f in state.findings if f.id != finding_id]})


__all__ = [
    "new_id",
    "create_layer",
    "add_layer",
    "toggle_layer_visibility",
    "toggle_layer_lock",
    "reorder_layer",
    "remove_layer",
    "add_element",
    "add_wall",
    "add_zone",
    "add_point",
    "remove_element",
    "translated",
    "translate_element",
    "link_zones",
    "add_finding",
    "update_finding",
    "remove_finding",
]
