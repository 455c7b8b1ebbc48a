"""Invariant checks for plan states."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Iterable

from riskplan.exceptions import DuplicateIdError, PlanValidationError
from riskplan.geometry.contract import MIN_WALL_LENGTH
from riskplan.geometry.primitives import open_ring, polygon_area, segment_length

from .schema import PlanState, Wall, Zone


@dataclass
class ValidationReport:
    """Plan validation report.

    ``duplicate_issues`` and ``reference_issues`` break model invariants;
    ``geometry_issues`` are quality warnings only.
    """
    duplicate_issues: list[str] = field(default_factory=list)
    reference_issues: list[str] = field(default_factory=list)
    geometry_issues: list[str] = field(default_factory=list)
    metrics: dict[str, Any] = field(default_factory=dict)

    @property
    def is_valid(self) -> bool:
        return not self.duplicate_issues and not self.reference_issues


def find_duplicate_ids(ids: Iterable[str]) -> list[str]:
    counts = Counter(ids)
    return sorted(item for item, count in counts.items() if count > 1)


def validate_plan_state(state: PlanState, plan_id: str | None = None) -> ValidationReport:
    """Check the referential invariants of a plan state.

    Args:
        state: Layers, elements and findings to check.
        plan_id: When given, every finding must belong to this plan.
    """
    report = ValidationReport()
    report.metrics = {
        "layer_count": len(state.layers),
        "element_count": len(state.elements),
        "zone_count": 0,
        "wall_count": 0,
        "finding_count": len(state.findings),
        "located_findings": 0,
    }

    for label, ids in (
        ("layer", [layer.id for layer in state.layers]),
        ("element", [el.id for el in state.elements]),
        ("finding", [f.id for f in state.findings]),
    ):
        for dup in find_duplicate_ids(ids):
            report.duplicate_issues.append(f"Duplicate {label} id {dup}")

    layer_ids = {layer.id for layer in state.layers}
    element_ids = {el.id for el in state.elements}
    zone_ids = state.zone_ids()

    for element in state.elements:
        if element.layer_id not in layer_ids:
            report.reference_issues.append(
                f"Element {element.id} references non-existent layer {element.layer_id}"
            )
        if isinstance(element, Wall):
            report.metrics["wall_count"] += 1
            if segment_length(element.start, element.end) < MIN_WALL_LENGTH:
                report.geometry_issues.append(f"Wall {element.id} has a degenerate centerline")
        elif isinstance(element, Zone):
            report.metrics["zone_count"] += 1
            if len(open_ring(element.polygon)) < 3:
                report.geometry_issues.append(f"Zone {element.id} has < 3 distinct vertices")
            elif polygon_area(element.polygon) <= 0.0:
                report.geometry_issues.append(f"Zone {element.id} has zero area")
            if element.id in element.related_zone_ids:
                report.geometry_issues.append(f"Zone {element.id} lists itself as related")

    for finding in state.findings:
        if plan_id is not None and finding.plan_id != plan_id:
            report.reference_issues.append(
                f"Finding {finding.id} belongs to plan {finding.plan_id}, not {plan_id}"
            )
        if finding.zone_id is not None:
            if finding.zone_id not in zone_ids:
                report.reference_issues.append(
                    f"Finding {finding.id} references non-existent zone {finding.zone_id}"
                )
            else:
                report.metrics["located_findings"] += 1
        if finding.element_id is not None and finding.element_id not in element_ids:
            report.reference_issues.append(
                f"Finding {finding.id} references non-existent element {finding.element_id}"
            )

    return report


def ensure_valid_state(state: PlanState, plan_id: str | None = None) -> ValidationReport:
    """Validate and raise on the first class of invariant violation found."""
    report = validate_plan_state(state, plan_id)
    if report.duplicate_issues:
        raise DuplicateIdError(
            report.duplicate_issues[0],
            {"plan_id": plan_id or "", "issues": report.duplicate_issues},
        )
    if report.reference_issues:
        raise PlanValidationError(
            report.reference_issues[0],
            {"plan_id": plan_id or "", "issues": report.reference_issues},
        )
    return report


def generate_qa_report(state: PlanState, validation: ValidationReport) -> dict[str, Any]:
    """Generate QA report JSON."""
    total_issues = (
        len(validation.duplicate_issues)
        + len(validation.reference_issues)
        + len(validation.geometry_issues)
    )
    return {
        "summary": {
            "valid": validation.is_valid,
            "total_issues": total_issues,
            "duplicate_issues": len(validation.duplicate_issues),
            "reference_issues": len(validation.reference_issues),
            "geometry_issues": len(validation.geometry_issues),
        },
        "metrics": validation.metrics,
        "issues": {
            "duplicates": validation.duplicate_issues,
            "references": validation.reference_issues,
            "geometry": validation.geometry_issues,
        },
        "plan_stats": {
            "layers": len(state.layers),
            "elements": len(state.elements),
            "findings": len(state.findings),
        },
    }


__all__ = [
    "ValidationReport",
    "find_duplicate_ids",
    "validate_plan_state",
    "ensure_valid_state",
    "generate_qa_report",
]
