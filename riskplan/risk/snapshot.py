"""Read-only plan export for report and sync consumers."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from riskplan.exceptions import PlanNotFoundError
from riskplan.model.schema import PlanSnapshot, utc_now
from riskplan.model.workspace import WorkspaceState

from .engine import aggregate_plan_risk, attach_risk_summaries, calculate_risk_index
from .rules import RiskRulesConfig


def build_plan_snapshot(
    workspace: WorkspaceState,
    plan_id: str,
    rules: Optional[RiskRulesConfig] = None,
    *,
    now: Optional[datetime] = None,
) -> PlanSnapshot:
    """Score the plan and bundle it with its findings and aggregate.

    The returned plan is a copy with zone risk summaries attached; the
    workspace itself is not touched.
    """
    plan = workspace.plans.get(plan_id)
    if plan is None:
        raise PlanNotFoundError(f"Plan {plan_id} not found", {"plan_id": plan_id})
    stamp = now or utc_now()
    findings = workspace.findings_for(plan_id)
    summaries = calculate_risk_index(plan, findings, rules, now=stamp)
    return PlanSnapshot(
        plan=attach_risk_summaries(plan, summaries),
        findings=findings,
        risk_aggregates=[aggregate_plan_risk(plan_id, summaries, now=stamp)],
    )


__all__ = ["build_plan_snapshot"]
