"""In-memory workspace and its flat serializable form."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, TypeVar

from loguru import logger
from pydantic import ValidationError as PydanticValidationError

from riskplan.exceptions import DuplicateIdError, WorkspaceIntegrityError

from .schema import Commit, Finding, HeadPointer, Plan, PlanState, SerializedWorkspace
from .validators import find_duplicate_ids, validate_plan_state

OwnedT = TypeVar("OwnedT", Finding, Commit)


@dataclass
class WorkspaceState:
    """Process-local editing session: plans, findings, commits and head pointers.

    Owned by a single writer. Callers pass it explicitly to every operation.

    Attributes:
        plans:    plan id -> Plan (current materialized content).
        findings: finding id -> Finding, across all plans.
        commits:  commit id -> Commit, across all plans.
        heads:    plan id -> head commit id.
    """

    plans: dict[str, Plan] = field(default_factory=dict)
    findings: dict[str, Finding] = field(default_factory=dict)
    commits: dict[str, Commit] = field(default_factory=dict)
    heads: dict[str, str] = field(default_factory=dict)

    def findings_for(self, plan_id: str) -> list[Finding]:
        return [f for f in self.findings.values() if f.plan_id == plan_id]

    def commits_for(self, plan_id: str) -> list[Commit]:
        return [c for c in self.commits.values() if c.plan_id == plan_id]

    def __str__(self) -> str:
        return (
            f"WorkspaceState(plans={len(self.plans)}, findings={len(self.findings)}, "
            f"commits={len(self.commits)}, heads={len(self.heads)})"
        )


def serialize_workspace(state: WorkspaceState) -> SerializedWorkspace:
    """Flatten the workspace into four ordered lists."""
    return SerializedWorkspace(
        plans=list(state.plans.values()),
        findings=list(state.findings.values()),
        commits=list(state.commits.values()),
        heads=[HeadPointer(plan_id=plan_id, commit_id=commit_id) for plan_id, commit_id in state.heads.items()],
    )


def _coerce(serialized: SerializedWorkspace | Mapping[str, Any]) -> SerializedWorkspace:
    if isinstance(serialized, SerializedWorkspace):
        return serialized
    try:
        return SerializedWorkspace.model_validate(serialized)
    except PydanticValidationError as exc:
        raise WorkspaceIntegrityError(
            f"Malformed workspace payload: {exc.error_count()} validation error(s)",
            {"errors": exc.errors(include_url=False)},
        ) from exc


def _check_unique(label: str, ids: list[str]) -> None:
    duplicates = find_duplicate_ids(ids)
    if duplicates:
        raise DuplicateIdError(
            f"Duplicate {label} id(s) in serialized workspace: {', '.join(duplicates)}",
            {"collection": label, "ids": duplicates},
        )


def deserialize_workspace(
    serialized: SerializedWorkspace | Mapping[str, Any],
    *,
    strict: bool = True,
) -> WorkspaceState:
    """Rebuild a workspace from its flat form.

    Duplicate ids always fail. When ``strict``, dangling references fail with
    ``WorkspaceIntegrityError``: findings or commits of an unknown plan, plan
    content that breaks its invariants (element on a missing layer, finding on
    a missing zone), a missing commit parent, or a head that points nowhere
    valid. When not strict, findings, commits and heads of unknown plans are
    dropped with a warning, inconsistent plans are loaded with a warning, and
    the rest is loaded.

    Raises:
        DuplicateIdError: an id repeats within one collection.
        WorkspaceIntegrityError: malformed payload, or dangling reference in strict mode.
    """
    payload = _coerce(serialized)

    _check_unique("plan", [p.id for p in payload.plans])
    _check_unique("finding", [f.id for f in payload.findings])
    _check_unique("commit", [c.id for c in payload.commits])
    _check_unique("head", [h.plan_id for h in payload.heads])

    plans = {p.id: p for p in payload.plans}
    findings = _owned_by_known_plan("finding", payload.findings, plans, strict)
    commits = _owned_by_known_plan("commit", payload.commits, plans, strict)
    heads: dict[str, str] = {}

    for plan in plans.values():
        state = PlanState(
            layers=plan.layers,
            elements=plan.elements,
            findings=[f for f in findings.values() if f.plan_id == plan.id],
        )
        report = validate_plan_state(state, plan.id)
        if report.is_valid:
            continue
        issues = report.duplicate_issues + report.reference_issues
        if strict:
            raise WorkspaceIntegrityError(
                f"Plan {plan.id} is inconsistent: {issues[0]}",
                {"plan_id": plan.id, "issues": issues},
            )
        logger.warning("Loading inconsistent plan {}: {}", plan.id, "; ".join(issues))

    if strict:
        for commit in payload.commits:
            missing = [pid for pid in commit.parent_ids if pid not in commits]
            if missing:
                raise WorkspaceIntegrityError(
                    f"Commit {commit.id} references missing parent(s) {', '.join(missing)}",
                    {"commit_id": commit.id, "missing_parents": missing},
                )

    for head in payload.heads:
        problem = _head_problem(head, plans, commits)
        if problem is None:
            heads[head.plan_id] = head.commit_id
            continue
        if strict:
            raise WorkspaceIntegrityError(problem, {"plan_id": head.plan_id, "commit_id": head.commit_id})
        logger.warning("Dropping head pointer while loading workspace: {}", problem)

    return WorkspaceState(plans=plans, findings=findings, commits=commits, heads=heads)


def _owned_by_known_plan(
    label: str,
    items: list[OwnedT],
    plans: dict[str, Plan],
    strict: bool,
) -> dict[str, OwnedT]:
    kept: dict[str, OwnedT] = {}
    for item in items:
        if item.plan_id in plans:
            kept[item.id] = item
            continue
        if strict:
            raise WorkspaceIntegrityError(
                f"{label.capitalize()} {item.id} belongs to unknown plan {item.plan_id}",
                {"collection": label, "id": item.id, "plan_id": item.plan_id},
            )
        logger.warning("Dropping {} {} of unknown plan {} while loading workspace", label, item.id, item.plan_id)
    return kept


def _head_problem(head: HeadPointer, plans: dict[str, Plan], commits: dict[str, Commit]) -> str | None:
    if head.plan_id not in plans:
        return f"Head for unknown plan {head.plan_id}"
    commit = commits.get(head.commit_id)
    if commit is None:
        return f"Head of plan {head.plan_id} references missing commit {head.commit_id}"
    if commit.plan_id != head.plan_id:
        return f"Head of plan {head.plan_id} references commit {head.commit_id} of plan {commit.plan_id}"
    return None


__all__ = ["WorkspaceState", "serialize_workspace", "deserialize_workspace"]
