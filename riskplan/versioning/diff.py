"""Structural diffs between plan states.

A diff is computed per collection (layers, elements, findings) by id:

* ``added``   - ids present only in the target state;
* ``updated`` - ids present in both whose content differs;
* ``removed`` - ids present only in the source state.

Application is idempotent: added/updated entries are upserts, removals of
absent ids are no-ops, and a recorded ``*_order`` is a target permutation.
Cached risk summaries on zones are derived data and never enter a diff.
"""

from __future__ import annotations

from typing import Callable, Optional, Sequence, TypeVar

from riskplan.exceptions import DiffConflictError
from riskplan.model.schema import Finding, Layer, PlanDiff, PlanState, PointElement, Wall, Zone
from riskplan.model.validators import find_duplicate_ids

T = TypeVar("T", Layer, Finding, Wall, Zone, PointElement)

ElementT = Wall | Zone | PointElement


def strip_derived(element: ElementT) -> ElementT:
    """Drop the cached risk summary from a zone."""
    if isinstance(element, Zone) and element.risk_summary is not None:
        return element.model_copy(update={"risk_summary": None})
    return element


def versioned_state(state: PlanState) -> PlanState:
    """State as it is stored in history: no cached risk summaries."""
    return state.model_copy(update={"elements": [strip_derived(el) for el in state.elements]})


def _diff_collection(
    before: Sequence[T],
    after: Sequence[T],
    normalize: Callable[[T], T],
) -> tuple[list[T], list[T], list[str], Optional[list[str]]]:
    before_map = {item.id: normalize(item) for item in before}
    after_items = [normalize(item) for item in after]
    after_ids = [item.id for item in after_items]
    after_set = set(after_ids)

    added = [item for item in after_items if item.id not in before_map]
    updated = [item for item in after_items if item.id in before_map and item != before_map[item.id]]
    removed = [item.id for item in before if item.id not in after_set]

    # Order produced by applying the id changes alone
    removed_set = set(removed)
    naive = [item.id for item in before if item.id not in removed_set] + [item.id for item in added]
    order = after_ids if naive != after_ids else None
    return added, updated, removed, order


def compute_diff(before: PlanState, after: PlanState) -> PlanDiff:
    """Diff that turns ``before`` into ``after``."""
    same: Callable[[T], T] = lambda item: item  # noqa: E731
    added_layers, updated_layers, removed_layers, layer_order = _diff_collection(before.layers, after.layers, same)
    added_elements, updated_elements, removed_elements, element_order = _diff_collection(
        before.elements, after.elements, strip_derived
    )
    added_findings, updated_findings, removed_findings, finding_order = _diff_collection(
        before.findings, after.findings, same
    )
    return PlanDiff(
        added_layers=added_layers,
        updated_layers=updated_layers,
        removed_layer_ids=removed_layers,
        added_elements=added_elements,
        updated_elements=updated_elements,
        removed_element_ids=removed_elements,
        added_findings=added_findings,
        updated_findings=updated_findings,
        removed_finding_ids=removed_findings,
        layer_order=layer_order,
        element_order=element_order,
        finding_order=finding_order,
    )


def _check_collection(label: str, upserts: Sequence[T], removed: Sequence[str]) -> None:
    upsert_ids = [item.id for item in upserts]
    duplicates = find_duplicate_ids(upsert_ids)
    if duplicates:
        raise DiffConflictError(
            f"Diff lists {label} id(s) {', '.join(duplicates)} more than once among added/updated",
            {"collection": label, "ids": duplicates},
        )
    both = sorted(set(upsert_ids) & set(removed))
    if both:
        raise DiffConflictError(
            f"Diff both adds/updates and removes {label} id(s) {', '.join(both)}",
            {"collection": label, "ids": both},
        )


def check_diff(diff: PlanDiff) -> None:
    """Reject diffs that touch the same id in contradictory ways."""
    _check_collection("layer", [*diff.added_layers, *diff.updated_layers], diff.removed_layer_ids)
    _check_collection("element", [*diff.added_elements, *diff.updated_elements], diff.removed_element_ids)
    _check_collection("finding", [*diff.added_findings, *diff.updated_findings], diff.removed_finding_ids)


def _apply_collection(
    items: Sequence[T],
    added: Sequence[T],
    updated: Sequence[T],
    removed: Sequence[str],
    order: Optional[Sequence[str]],
) -> list[T]:
    current: dict[str, T] = {item.id: item for item in items}
    for item_id in removed:
        current.pop(item_id, None)
    # Upsert: replaces in place when present, appends otherwise
    for item in [*added, *updated]:
        current[item.id] = item
    if not order:
        return list(current.values())
    ordered = [current[item_id] for item_id in order if item_id in current]
    placed = {item.id for item in ordered}
    return ordered + [item for item_id, item in current.items() if item_id not in placed]


def apply_diff(state: PlanState, diff: PlanDiff) -> PlanState:
    """New state with ``diff`` applied to ``state``.

    Raises:
        DiffConflictError: the diff adds/updates and removes the same id.
    """
    check_diff(diff)
    return PlanState(
        layers=_apply_collection(
            state.layers, diff.added_layers, diff.updated_layers, diff.removed_layer_ids, diff.layer_order
        ),
        elements=_apply_collection(
            state.elements, diff.added_elements, diff.updated_elements, diff.removed_element_ids, diff.element_order
        ),
        findings=_apply_collection(
            state.findings, diff.added_findings, diff.updated_findings, diff.removed_finding_ids, diff.finding_order
        ),
    )


def invert_diff(diff: PlanDiff, before: PlanState) -> PlanDiff:
    """Reverse diff: applied to ``apply_diff(before, diff)`` it gives back ``before``."""
    return compute_diff(apply_diff(before, diff), before)


__all__ = [
    "strip_derived",
    "versioned_state",
    "compute_diff",
    "check_diff",
    "apply_diff",
    "invert_diff",
]
