"""Commit/diff versioning over plan states."""

from .diff import apply_diff, check_diff, compute_diff, invert_diff, strip_derived, versioned_state
from .history import (
    ANY_HEAD,
    DEFAULT_SNAPSHOT_INTERVAL,
    add_plan,
    checkout,
    commit,
    compare,
    create_plan,
    delete_plan,
    get_plan,
    head_of,
    log,
    materialize,
    rename_plan,
    rollback,
    set_plan_scale,
)

__all__ = [
    "apply_diff",
    "check_diff",
    "compute_diff",
    "invert_diff",
    "strip_derived",
    "versioned_state",
    "ANY_HEAD",
    "DEFAULT_SNAPSHOT_INTERVAL",
    "add_plan",
    "checkout",
    "commit",
    "compare",
    "create_plan",
    "delete_plan",
    "get_plan",
    "head_of",
    "log",
    "materialize",
    "rename_plan",
    "rollback",
    "set_plan_scale",
]
