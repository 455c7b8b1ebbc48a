"""Linear commit history per plan.

Every logical edit of a plan is one ``Commit`` whose diff is computed against
the current head state. The workspace's plan object always holds the state
of its head commit, and ``checkout`` rebuilds the state of any commit by
replaying diffs from the nearest checkpoint (a commit carrying a full
snapshot) or from the root.

History is strictly linear: commits with more than one parent are rejected
during traversal, there is no merge.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Callable, Iterable, Optional
from uuid import uuid4

from riskplan.exceptions import (
    CommitNotFoundError,
    DuplicateIdError,
    HeadConflictError,
    PlanNotFoundError,
    PlanValidationError,
    UnsupportedMergeError,
    WorkspaceIntegrityError,
)
from riskplan.logging_config import get_logger
from riskplan.model.schema import Commit, Finding, Layer, Plan, PlanDiff, PlanState, utc_now
from riskplan.model.validators import ensure_valid_state
from riskplan.model.workspace import WorkspaceState

from .diff import apply_diff, compute_diff, versioned_state

# Replay never walks more than this many diffs; 0 disables checkpoints
DEFAULT_SNAPSHOT_INTERVAL = 25


class _AnyHead:
    def __repr__(self) -> str:
        return "ANY_HEAD"


ANY_HEAD: Any = _AnyHead()

Mutation = Callable[[PlanState], Optional[PlanState]]


def get_plan(workspace: WorkspaceState, plan_id: str) -> Plan:
    plan = workspace.plans.get(plan_id)
    if plan is None:
        raise PlanNotFoundError(f"Plan {plan_id} not found", {"plan_id": plan_id})
    return plan


def head_of(workspace: WorkspaceState, plan_id: str) -> Optional[str]:
    get_plan(workspace, plan_id)
    return workspace.heads.get(plan_id)


def materialize(workspace: WorkspaceState, plan_id: str) -> PlanState:
    """Current versioned state of a plan (equal to ``checkout`` of its head).

    The result is detached: editing it never changes the workspace.
    """
    plan = get_plan(workspace, plan_id)
    state = PlanState(layers=plan.layers, elements=plan.elements, findings=workspace.findings_for(plan_id))
    return versioned_state(state).model_copy(deep=True)


# ------------------------------------------------------------------ #
#  Commit
# ------------------------------------------------------------------ #

def _validate_next_state(workspace: WorkspaceState, plan_id: str, state: PlanState) -> None:
    ensure_valid_state(state, plan_id)
    taken = [
        f.id for f in state.findings
        if f.id in workspace.findings and workspace.findings[f.id].plan_id != plan_id
    ]
    if taken:
        raise DuplicateIdError(
            f"Finding id(s) {', '.join(taken)} already belong to another plan",
            {"plan_id": plan_id, "ids": taken},
        )


def _replay_distance(workspace: WorkspaceState, head_id: Optional[str], limit: int) -> int:
    """Diffs a checkout of ``head_id`` replays, counted up to ``limit``."""
    distance = 0
    current = workspace.commits.get(head_id) if head_id else None
    while current is not None and current.snapshot is None and distance < limit:
        distance += 1
        parent_id = current.parent_ids[0] if current.parent_ids else None
        current = workspace.commits.get(parent_id) if parent_id else None
    return distance


def _record_commit(
    workspace: WorkspaceState,
    plan: Plan,
    next_state: PlanState,
    diff: PlanDiff,
    *,
    message: str,
    author_user_id: Optional[str],
    commit_id: Optional[str],
    timestamp: Optional[datetime],
    snapshot_interval: int,
) -> Commit:
    """Write commit, plan content, findings and head. Callers validate first."""
    head_id = workspace.heads.get(plan.id)
    stamp = timestamp or utc_now()
    # The workspace never shares objects with the caller's state
    stored = next_state.model_copy(deep=True)
    checkpoint = snapshot_interval > 0 and (
        _replay_distance(workspace, head_id, snapshot_interval) + 1 >= snapshot_interval
    )

    new_commit = Commit(
        id=commit_id or uuid4().hex,
        plan_id=plan.id,
        parent_ids=[head_id] if head_id else [],
        author_user_id=author_user_id,
        message=message,
        timestamp=stamp,
        diff=diff.model_copy(deep=True),
        snapshot=stored.model_copy(deep=True) if checkpoint else None,
    )
    updated_plan = plan.model_copy(update={
        "layers": stored.layers,
        "elements": stored.elements,
        "commit_ids": [*plan.commit_ids, new_commit.id],
        "updated_at": stamp,
    })

    workspace.commits[new_commit.id] = new_commit
    workspace.plans[plan.id] = updated_plan
    for finding_id in [f.id for f in workspace.findings.values() if f.plan_id == plan.id]:
        del workspace.findings[finding_id]
    workspace.findings.update({f.id: f for f in stored.findings})
    workspace.heads[plan.id] = new_commit.id

    get_logger(__name__, plan_id=plan.id, commit_id=new_commit.id).debug(
        "Committed {} on plan {} (parent={}, checkpoint={}, {})",
        new_commit.id, plan.id, head_id, checkpoint, diff.stats(),
    )
    return new_commit


def _check_commit_id(workspace: WorkspaceState, commit_id: Optional[str]) -> None:
    if commit_id is not None and commit_id in workspace.commits:
        raise DuplicateIdError(f"Commit {commit_id} already exists", {"commit_id": commit_id})


def commit(
    workspace: WorkspaceState,
    plan_id: str,
    mutation: Mutation,
    *,
    message: str,
    author_user_id: Optional[str] = None,
    expected_head: Any = ANY_HEAD,
    commit_id: Optional[str] = None,
    timestamp: Optional[datetime] = None,
    snapshot_interval: int = DEFAULT_SNAPSHOT_INTERVAL,
) -> Commit:
    """Apply ``mutation`` to a working copy of the plan and record the result.

    The mutation may edit the working copy in place or return a new
    ``PlanState``. Nothing in the workspace changes unless the next state is
    valid; on success the commit, the plan content and the head pointer are
    updated together.

    Args:
        expected_head: Head commit id the caller based its edit on (``None``
            for "no commit yet"). A mismatch raises ``HeadConflictError``.
            Omit to skip the check.

    Raises:
        PlanNotFoundError: unknown plan.
        HeadConflictError: ``expected_head`` differs from the actual head.
        PlanValidationError / DuplicateIdError: the next state breaks an invariant.
    """
    plan = get_plan(workspace, plan_id)
    head_id = workspace.heads.get(plan_id)
    if expected_head is not ANY_HEAD and expected_head != head_id:
        raise HeadConflictError(
            f"Plan {plan_id} head is {head_id}, expected {expected_head}",
            {"plan_id": plan_id, "head": head_id, "expected": expected_head},
        )
    _check_commit_id(workspace, commit_id)

    current = materialize(workspace, plan_id)
    working = current.model_copy(deep=True)
    result = mutation(working)
    candidate = working if result is None else result
    if not isinstance(candidate, PlanState):
        raise PlanValidationError(
            f"Mutation for plan {plan_id} returned {type(candidate).__name__}, expected PlanState",
            {"plan_id": plan_id},
        )
    next_state = versioned_state(candidate)
    _validate_next_state(workspace, plan_id, next_state)

    # Without a head the whole content is new relative to the empty state
    base = current if head_id is not None else PlanState.empty()
    diff = compute_diff(base, next_state)
    return _record_commit(
        workspace, plan, next_state, diff,
        message=message, author_user_id=author_user_id, commit_id=commit_id,
        timestamp=timestamp, snapshot_interval=snapshot_interval,
    )


# ------------------------------------------------------------------ #
#  Plan lifecycle
# ------------------------------------------------------------------ #

def add_plan(
    workspace: WorkspaceState,
    plan: Plan,
    findings: Iterable[Finding] = (),
    *,
    message: str = "Import plan",
    author_user_id: Optional[str] = None,
    commit_id: Optional[str] = None,
    timestamp: Optional[datetime] = None,
    snapshot_interval: int = DEFAULT_SNAPSHOT_INTERVAL,
) -> Plan:
    """Register an externally built plan and record its root commit."""
    if plan.id in workspace.plans:
        raise DuplicateIdError(f"Plan {plan.id} already exists", {"plan_id": plan.id})
    if plan.commit_ids:
        raise PlanValidationError(
            f"Plan {plan.id} already lists commits; load it through deserialize_workspace",
            {"plan_id": plan.id},
        )
    _check_commit_id(workspace, commit_id)

    initial = versioned_state(PlanState(layers=plan.layers, elements=plan.elements, findings=list(findings)))
    _validate_next_state(workspace, plan.id, initial)
    diff = compute_diff(PlanState.empty(), initial)

    workspace.plans[plan.id] = plan
    _record_commit(
        workspace, plan, initial, diff,
        message=message, author_user_id=author_user_id, commit_id=commit_id,
        timestamp=timestamp, snapshot_interval=snapshot_interval,
    )
    return workspace.plans[plan.id]


def create_plan(
    workspace: WorkspaceState,
    name: str,
    *,
    plan_id: Optional[str] = None,
    project_id: Optional[str] = None,
    scale_meters_per_unit: float = 1.0,
    layers: Iterable[Layer] = (),
    elements: Iterable[Any] = (),
    findings: Iterable[Finding] = (),
    message: str = "Create plan",
    author_user_id: Optional[str] = None,
    commit_id: Optional[str] = None,
    timestamp: Optional[datetime] = None,
    snapshot_interval: int = DEFAULT_SNAPSHOT_INTERVAL,
) -> Plan:
    """Create a plan and its root commit (the diff from the empty state)."""
    stamp = timestamp or utc_now()
    plan = Plan(
        id=plan_id or uuid4().hex,
        name=name,
        project_id=project_id,
        scale_meters_per_unit=scale_meters_per_unit,
        layers=list(layers),
        elements=list(elements),
        created_at=stamp,
        updated_at=stamp,
    )
    return add_plan(
        workspace, plan, findings,
        message=message, author_user_id=author_user_id, commit_id=commit_id,
        timestamp=stamp, snapshot_interval=snapshot_interval,
    )


def rename_plan(workspace: WorkspaceState, plan_id: str, name: str) -> Plan:
    """Unversioned metadata edit."""
    plan = get_plan(workspace, plan_id)
    workspace.plans[plan_id] = plan.model_copy(update={"name": name, "updated_at": utc_now()})
    return workspace.plans[plan_id]


def set_plan_scale(workspace: WorkspaceState, plan_id: str, scale_meters_per_unit: float) -> Plan:
    """Unversioned metadata edit."""
    plan = get_plan(workspace, plan_id)
    if scale_meters_per_unit <= 0:
        raise PlanValidationError(
            f"Scale must be positive, got {scale_meters_per_unit}",
            {"plan_id": plan_id},
        )
    workspace.plans[plan_id] = plan.model_copy(
        update={"scale_meters_per_unit": float(scale_meters_per_unit), "updated_at": utc_now()}
    )
    return workspace.plans[plan_id]


def delete_plan(workspace: WorkspaceState, plan_id: str) -> dict[str, int]:
    """Remove a plan with its commits, head pointer and findings."""
    get_plan(workspace, plan_id)
    commit_ids = [c.id for c in workspace.commits.values() if c.plan_id == plan_id]
    finding_ids = [f.id for f in workspace.findings.values() if f.plan_id == plan_id]
    for cid in commit_ids:
        del workspace.commits[cid]
    for fid in finding_ids:
        del workspace.findings[fid]
    workspace.heads.pop(plan_id, None)
    del workspace.plans[plan_id]
    get_logger(__name__, plan_id=plan_id).info(
        "Deleted plan {} ({} commits, {} findings)", plan_id, len(commit_ids), len(finding_ids)
    )
    return {"commits": len(commit_ids), "findings": len(finding_ids)}


# ------------------------------------------------------------------ #
#  Traversal
# ------------------------------------------------------------------ #

def _get_commit(workspace: WorkspaceState, plan_id: str, commit_id: str) -> Commit:
    found = workspace.commits.get(commit_id)
    if found is None or found.plan_id != plan_id:
        raise CommitNotFoundError(
            f"Commit {commit_id} not found for plan {plan_id}",
            {"plan_id": plan_id, "commit_id": commit_id},
        )
    return found


def _parent(workspace: WorkspaceState, current: Commit) -> Optional[Commit]:
    if not current.parent_ids:
        return None
    if len(current.parent_ids) > 1:
        raise UnsupportedMergeError(
            f"Commit {current.id} has {len(current.parent_ids)} parents; merge history is not supported",
            {"commit_id": current.id, "parent_ids": current.parent_ids},
        )
    parent = workspace.commits.get(current.parent_ids[0])
    if parent is None or parent.plan_id != current.plan_id:
        raise WorkspaceIntegrityError(
            f"Commit {current.id} references missing parent {current.parent_ids[0]}",
            {"commit_id": current.id, "parent_id": current.parent_ids[0]},
        )
    return parent


def _walk(workspace: WorkspaceState, start: Commit, *, stop_at_snapshot: bool) -> list[Commit]:
    """Commits from ``start`` back towards the root, newest first."""
    chain: list[Commit] = []
    seen: set[str] = set()
    current: Optional[Commit] = start
    while current is not None:
        if current.id in seen:
            raise WorkspaceIntegrityError(f"Commit history of {start.id} contains a cycle", {"commit_id": current.id})
        seen.add(current.id)
        chain.append(current)
        if stop_at_snapshot and current.snapshot is not None:
            break
        current = _parent(workspace, current)
    return chain


def checkout(workspace: WorkspaceState, plan_id: str, commit_id: str) -> PlanState:
    """Rebuild the plan state as of ``commit_id``.

    Raises:
        PlanNotFoundError: unknown plan.
        CommitNotFoundError: unknown commit, or a commit of another plan.
        UnsupportedMergeError: the history contains a merge commit.
    """
    get_plan(workspace, plan_id)
    target = _get_commit(workspace, plan_id, commit_id)
    chain = _walk(workspace, target, stop_at_snapshot=True)

    oldest = chain[-1]
    if oldest.snapshot is not None:
        state = oldest.snapshot
        replay = chain[:-1]
    else:
        state = PlanState.empty()
        replay = chain
    for step in reversed(replay):
        state = apply_diff(state, step.diff)

    get_logger(__name__, plan_id=plan_id, commit_id=commit_id).debug(
        "Checked out {} on plan {} ({} diffs replayed)", commit_id, plan_id, len(replay)
    )
    return state.model_copy(deep=True)


def log(workspace: WorkspaceState, plan_id: str, commit_id: Optional[str] = None) -> list[Commit]:
    """Commits from the root up to ``commit_id`` (default: head), oldest first."""
    get_plan(workspace, plan_id)
    target_id = commit_id or workspace.heads.get(plan_id)
    if target_id is None:
        return []
    target = _get_commit(workspace, plan_id, target_id)
    return list(reversed(_walk(workspace, target, stop_at_snapshot=False)))


def compare(workspace: WorkspaceState, plan_id: str, from_commit_id: str, to_commit_id: str) -> PlanDiff:
    """Diff between the states of two commits of the same plan."""
    return compute_diff(
        checkout(workspace, plan_id, from_commit_id),
        checkout(workspace, plan_id, to_commit_id),
    )


def rollback(
    workspace: WorkspaceState,
    plan_id: str,
    commit_id: str,
    *,
    message: Optional[str] = None,
    author_user_id: Optional[str] = None,
    expected_head: Any = ANY_HEAD,
    snapshot_interval: int = DEFAULT_SNAPSHOT_INTERVAL,
) -> Commit:
    """Record a new commit restoring the state of ``commit_id``.

    History is not rewritten: the restored state becomes the next commit on
    top of the current head.
    """
    restored = checkout(workspace, plan_id, commit_id)
    return commit(
        workspace,
        plan_id,
        lambda _state: restored,
        message=message or f"Rollback to {commit_id}",
        author_user_id=author_user_id,
        expected_head=expected_head,
        snapshot_interval=snapshot_interval,
    )


__all__ = [
    "ANY_HEAD",
    "DEFAULT_SNAPSHOT_INTERVAL",
    "Mutation",
    "get_plan",
    "head_of",
    "materialize",
    "commit",
    "add_plan",
    "create_plan",
    "rename_plan",
    "set_plan_scale",
    "delete_plan",
    "checkout",
    "log",
    "compare",
    "rollback",
]
