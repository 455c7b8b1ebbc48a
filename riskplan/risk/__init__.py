"""Risk scoring: configurable rules and the per-zone engine."""

from .engine import (
    aggregate_plan_risk,
    attach_risk_summaries,
    calculate_risk_index,
    to_risk_level,
)
from .rules import RiskRule, RiskRulesConfig, default_risk_rules, load_rules, parse_rules
from .snapshot import build_plan_snapshot

__all__ = [
    "aggregate_plan_risk",
    "attach_risk_summaries",
    "calculate_risk_index",
    "to_risk_level",
    "RiskRule",
    "RiskRulesConfig",
    "default_risk_rules",
    "load_rules",
    "parse_rules",
    "build_plan_snapshot",
]
