"""Risk engine: per-zone risk index from findings, with neighbour propagation.

The engine is pure. Given the same plan, findings and rules it returns the
same indices; only ``last_updated_at`` carries the wall clock (or ``now``).

Two gaps degrade to zero instead of failing, so dashboards keep rendering on
partially configured data:

* a finding whose type has no rule and no ``any`` rule contributes nothing
  (a warning is logged);
* a related zone id that is not a zone of the plan contributes nothing.
"""

from __future__ import annotations

from collections import defaultdict
from datetime import datetime
from typing import Iterable, Optional

from loguru import logger

from riskplan.model.schema import (
    RISK_LEVELS,
    Finding,
    Plan,
    PlanRiskAggregate,
    RiskLevel,
    RiskSummary,
    Zone,
    iter_zones,
    utc_now,
)

from .rules import RiskRulesConfig, default_risk_rules

# Inclusive upper bounds; anything above the last bound is critical
LEVEL_THRESHOLDS: tuple[tuple[float, RiskLevel], ...] = (
    (10.0, "low"),
    (25.0, "medium"),
    (50.0, "high"),
)


def to_risk_level(index: float) -> RiskLevel:
    for upper, level in LEVEL_THRESHOLDS:
        if index <= upper:
            return level
    return "critical"


def _group_by_zone(findings: Iterable[Finding]) -> dict[str, list[Finding]]:
    grouped: dict[str, list[Finding]] = defaultdict(list)
    for finding in findings:
        if finding.zone_id:
            grouped[finding.zone_id].append(finding)
    return grouped


def compute_base_indices(
    zones: list[Zone],
    findings: Iterable[Finding],
    rules: RiskRulesConfig,
) -> tuple[dict[str, float], dict[str, list[str]]]:
    """Own-findings index per zone, before any propagation.

    Returns:
        (base index by zone id, contributing finding ids by zone id)
    """
    by_zone = _group_by_zone(findings)
    base: dict[str, float] = {}
    contributing: dict[str, list[str]] = {}

    for zone in zones:
        index = 0.0
        ids: list[str] = []
        for finding in by_zone.get(zone.id, []):
            rule = rules.rule_for(finding.type)
            if rule is None:
                logger.warning(
                    "No risk rule for finding type {!r} and no 'any' fallback; finding {} skipped",
                    finding.type,
                    finding.id,
                )
                continue
            index += rule.contribution(finding.severity, finding.frequency)
            ids.append(finding.id)
        base[zone.id] = index
        contributing[zone.id] = ids

    return base, contributing


def propagate(zones: list[Zone], base: dict[str, float], factor: float) -> dict[str, float]:
    """Add ``factor`` times each listed neighbour's base index.

    Only pre-propagation values are read, so the result does not depend on
    zone order and a neighbour's propagated share is never counted twice.
    """
    return {
        zone.id: base.get(zone.id, 0.0)
        + factor * sum(base.get(related_id, 0.0) for related_id in zone.related_zone_ids)
        for zone in zones
    }


def calculate_risk_index(
    plan: Plan,
    findings: Iterable[Finding],
    rules: Optional[RiskRulesConfig] = None,
    *,
    now: Optional[datetime] = None,
) -> dict[str, RiskSummary]:
    """Score every zone of ``plan``.

    Args:
        plan: Plan whose zone elements are scored.
        findings: All findings of the plan; the engine groups them by zone.
        rules: Rule set; the built-in defaults when omitted.
        now: Timestamp stamped on every summary.

    Returns:
        Mapping zone id -> RiskSummary, one entry per zone (no findings -> 0 / low).
    """
    rules = rules or default_risk_rules()
    zones = list(iter_zones(plan.elements))
    base, contributing = compute_base_indices(zones, findings, rules)
    indices = propagate(zones, base, rules.propagation.factor)
    stamp = now or utc_now()

    summaries: dict[str, RiskSummary] = {}
    for zone in zones:
        index = indices[zone.id]
        summaries[zone.id] = RiskSummary(
            zone_id=zone.id,
            index=index,
            level=to_risk_level(index),
            contributing_findings=contributing[zone.id],
            last_updated_at=stamp,
        )
    return summaries


def aggregate_plan_risk(
    plan_id: str,
    summaries: dict[str, RiskSummary],
    *,
    now: Optional[datetime] = None,
) -> PlanRiskAggregate:
    """Average/max index and level histogram over a plan's zones."""
    values = [s.index for s in summaries.values()]
    counts = {level: 0 for level in RISK_LEVELS}
    for summary in summaries.values():
        counts[summary.level] += 1
    return PlanRiskAggregate(
        plan_id=plan_id,
        average_index=sum(values) / len(values) if values else 0.0,
        max_index=max(values) if values else 0.0,
        zone_count=len(values),
        level_counts=counts,
        updated_at=now or utc_now(),
    )


def attach_risk_summaries(plan: Plan, summaries: dict[str, RiskSummary]) -> Plan:
    """Copy of ``plan`` with each zone's display cache set from ``summaries``."""
    elements = [
        el.model_copy(update={"risk_summary": summaries.get(el.id)}) if isinstance(el, Zone) else el
        for el in plan.elements
    ]
    return plan.model_copy(update={"elements": elements})


__all__ = [
    "LEVEL_THRESHOLDS",
    "to_risk_level",
    "compute_base_indices",
    "propagate",
    "calculate_risk_index",
    "aggregate_plan_risk",
    "attach_risk_summaries",
]
