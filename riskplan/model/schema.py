"""Canonical schema for plans, findings, risk summaries and commits.

Python attributes are snake_case; the flat JSON form uses camelCase aliases so
that serialized workspaces keep the field names used by the offline clients.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Annotated, Any, Iterator, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from riskplan.geometry.contract import DEFAULT_WALL_HEIGHT, DEFAULT_WALL_THICKNESS, MIN_ZONE_VERTICES
from riskplan.geometry.primitives import Point2D


LayerType = Literal["architectural", "safety", "evacuation", "electrical", "annotation", "other"]
ZoneUsage = Literal["circulation", "work", "storage", "office", "evacuation", "other"]
PointType = Literal["equipment", "finding", "reference", "sensor"]
FindingType = Literal[
    "obstruction",
    "signage_missing",
    "ppe_missing",
    "fall_risk",
    "electrical_risk",
    "fire_risk",
    "chemical_risk",
    "other",
]
RiskLevel = Literal["low", "medium", "high", "critical"]

FINDING_TYPES: tuple[str, ...] = FindingType.__args__  # type: ignore[attr-defined]
RISK_LEVELS: tuple[str, ...] = RiskLevel.__args__  # type: ignore[attr-defined]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class PlanModel(BaseModel):
    """Base for all persisted entities: camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_flat(self) -> dict[str, Any]:
        """JSON-ready dict with camelCase keys; unset optionals are omitted."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class Layer(PlanModel):
    """Logical drawing layer (structure, evacuation, equipment, ...)."""
    id: str
    name: str
    description: Optional[str] = None
    type: LayerType = "architectural"
    is_visible: bool = True
    is_locked: bool = False
    color: Optional[str] = None
    dxf_layer_name: Optional[str] = None


class RiskSummary(PlanModel):
    """Risk engine output for one zone. Derived, never edited by hand."""
    zone_id: str
    index: float = Field(..., ge=0.0)
    level: RiskLevel
    contributing_findings: list[str] = Field(default_factory=list)
    last_updated_at: datetime = Field(default_factory=utc_now)


class Wall(PlanModel):
    """Straight wall segment."""
    kind: Literal["wall"] = "wall"
    id: str
    layer_id: str
    start: Point2D
    end: Point2D
    thickness: float = Field(DEFAULT_WALL_THICKNESS, gt=0.0)
    height: float = Field(DEFAULT_WALL_HEIGHT, gt=0.0)
    material: Optional[str] = None


class Zone(PlanModel):
    """Polygonal area carrying a usage category and a cached risk summary."""
    kind: Literal["zone"] = "zone"
    id: str
    layer_id: str
    name: str = ""
    code: Optional[str] = None
    polygon: list[Point2D] = Field(..., min_length=MIN_ZONE_VERTICES, description="Vertices in order, closing optional")
    usage: ZoneUsage = "other"
    related_zone_ids: list[str] = Field(default_factory=list, description="Directed: this zone pulls risk from these")
    risk_summary: Optional[RiskSummary] = None


class PointElement(PlanModel):
    """Single located item: equipment, sensor, reference mark, finding pin."""
    kind: Literal["point"] = "point"
    id: str
    layer_id: str
    name: str = ""
    code: Optional[str] = None
    position: Point2D
    point_type: PointType = "equipment"
    metadata: dict[str, Any] = Field(default_factory=dict)


Element = Annotated[Union[Wall, Zone, PointElement], Field(discriminator="kind")]


class Finding(PlanModel):
    """Safety issue recorded in the field, optionally located in a zone/element."""
    id: str
    plan_id: str = Field(..., alias="planoId")
    zone_id: Optional[str] = None
    element_id: Optional[str] = None
    type: FindingType
    severity: int = Field(..., ge=1, le=5)
    frequency: int = Field(..., ge=1, le=5)
    description: str = ""
    photo_urls: list[str] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utc_now)
    created_by_user_id: Optional[str] = None


class Plan(PlanModel):
    """A floor or site drawing (e.g. "Building A - ground floor")."""
    id: str
    name: str
    project_id: Optional[str] = None
    scale_meters_per_unit: float = Field(1.0, gt=0.0)
    layers: list[Layer] = Field(default_factory=list)
    elements: list[Element] = Field(default_factory=list)
    commit_ids: list[str] = Field(default_factory=list, description="Commit ids, root first")
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    def zones(self) -> list[Zone]:
        return [el for el in self.elements if isinstance(el, Zone)]

    def walls(self) -> list[Wall]:
        return [el for el in self.elements if isinstance(el, Wall)]

    def get_layer(self, layer_id: str) -> Layer | None:
        return next((layer for layer in self.layers if layer.id == layer_id), None)

    def get_element(self, element_id: str) -> Wall | Zone | PointElement | None:
        return next((el for el in self.elements if el.id == element_id), None)


class PlanRiskAggregate(PlanModel):
    """Plan-wide risk figures for dashboards."""
    plan_id: str = Field(..., alias="planoId")
    average_index: float = 0.0
    max_index: float = 0.0
    zone_count: int = 0
    level_counts: dict[str, int] = Field(default_factory=dict)
    updated_at: datetime = Field(default_factory=utc_now)


class PlanState(PlanModel):
    """Versioned, materialized content of a plan."""
    layers: list[Layer] = Field(default_factory=list)
    elements: list[Element] = Field(default_factory=list)
    findings: list[Finding] = Field(default_factory=list)

    @classmethod
    def empty(cls) -> "PlanState":
        return cls()

    def zone_ids(self) -> set[str]:
        return {el.id for el in self.elements if isinstance(el, Zone)}


class PlanDiff(PlanModel):
    """Changes between two plan states, keyed by id.

    ``*_order`` lists are only set when applying the id-based changes alone
    would not reproduce the order of the target collection.
    """
    added_layers: list[Layer] = Field(default_factory=list)
    updated_layers: list[Layer] = Field(default_factory=list)
    removed_layer_ids: list[str] = Field(default_factory=list)

    added_elements: list[Element] = Field(default_factory=list)
    updated_elements: list[Element] = Field(default_factory=list)
    removed_element_ids: list[str] = Field(default_factory=list)

    added_findings: list[Finding] = Field(default_factory=list)
    updated_findings: list[Finding] = Field(default_factory=list)
    removed_finding_ids: list[str] = Field(default_factory=list)

    layer_order: Optional[list[str]] = None
    element_order: Optional[list[str]] = None
    finding_order: Optional[list[str]] = None

    def is_empty(self) -> bool:
        return not any(
            (
                self.added_layers, self.updated_layers, self.removed_layer_ids,
                self.added_elements, self.updated_elements, self.removed_element_ids,
                self.added_findings, self.updated_findings, self.removed_finding_ids,
                self.layer_order, self.element_order, self.finding_order,
            )
        )

    def stats(self) -> dict[str, int]:
        return {
            "layers_added": len(self.added_layers),
            "layers_updated": len(self.updated_layers),
            "layers_removed": len(self.removed_layer_ids),
            "elements_added": len(self.added_elements),
            "elements_updated": len(self.updated_elements),
            "elements_removed": len(self.removed_element_ids),
            "findings_added": len(self.added_findings),
            "findings_updated": len(self.updated_findings),
            "findings_removed": len(self.removed_finding_ids),
        }


class Commit(PlanModel):
    """Git-like versioning unit for offline plan editing."""
    id: str
    plan_id: str = Field(..., alias="planoId")
    parent_ids: list[str] = Field(default_factory=list)
    author_user_id: Optional[str] = None
    message: str = ""
    timestamp: datetime = Field(default_factory=utc_now)
    diff: PlanDiff = Field(default_factory=PlanDiff)
    snapshot: Optional[PlanState] = Field(None, description="Full resulting state, stored on checkpoint commits")

    @property
    def is_root(self) -> bool:
        return not self.parent_ids


class PlanSnapshot(PlanModel):
    """Read-only export of a plan for report and sync consumers."""
    plan: Plan
    findings: list[Finding] = Field(default_factory=list)
    risk_aggregates: list[PlanRiskAggregate] = Field(default_factory=list)


class HeadPointer(PlanModel):
    plan_id: str = Field(..., alias="planoId")
    commit_id: str


class SerializedWorkspace(PlanModel):
    """Flat, persistable form of a workspace."""
    plans: list[Plan] = Field(default_factory=list, alias="planos")
    findings: list[Finding] = Field(default_factory=list)
    commits: list[Commit] = Field(default_factory=list)
    heads: list[HeadPointer] = Field(default_factory=list)


def iter_zones(elements: list[Wall | Zone | PointElement]) -> Iterator[Zone]:
    for element in elements:
        if isinstance(element, Zone):
            yield element


__all__ = [
    "LayerType",
    "ZoneUsage",
    "PointType",
    "FindingType",
    "RiskLevel",
    "FINDING_TYPES",
    "RISK_LEVELS",
    "Point2D",
    "PlanModel",
    "Layer",
    "RiskSummary",
    "Wall",
    "Zone",
    "PointElement",
    "Element",
    "Finding",
    "Plan",
    "PlanRiskAggregate",
    "PlanState",
    "PlanDiff",
    "Commit",
    "PlanSnapshot",
    "HeadPointer",
    "SerializedWorkspace",
    "iter_zones",
    "utc_now",
]
