"""Plan data model: entities, invariants, editing operations and workspace."""

from .schema import (
    Commit,
    Element,
    Finding,
    Layer,
    Plan,
    PlanDiff,
    PlanRiskAggregate,
    PlanSnapshot,
    PlanState,
    Point2D,
    PointElement,
    RiskSummary,
    SerializedWorkspace,
    Wall,
    Zone,
)
from .validators import ValidationReport, ensure_valid_state, validate_plan_state
from .workspace import WorkspaceState, deserialize_workspace, serialize_workspace

__all__ = [
    "Commit",
    "Element",
    "Finding",
    "Layer",
    "Plan",
    "PlanDiff",
    "PlanRiskAggregate",
    "PlanSnapshot",
    "PlanState",
    "Point2D",
    "PointElement",
    "RiskSummary",
    "SerializedWorkspace",
    "Wall",
    "Zone",
    "ValidationReport",
    "ensure_valid_state",
    "validate_plan_state",
    "WorkspaceState",
    "deserialize_workspace",
    "serialize_workspace",
]
