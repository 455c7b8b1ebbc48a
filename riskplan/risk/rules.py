"""Configurable risk rules.

Rules are plain data so they can be swapped from JSON or YAML without code
changes. Multiplier tables are indexed by level 1-5.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Literal, Union

import yaml
from pydantic import BaseModel, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from riskplan.exceptions import RulesConfigError
from riskplan.model.schema import FindingType

ANY_TYPE = "any"
LEVELS = (1, 2, 3, 4, 5)


def _normalize_table(value: Any) -> dict[int, float]:
    """Accept ``[m1..m5]``, ``[unused, m1..m5]`` or ``{level: m}``."""
    if value is None:
        return {}
    if isinstance(value, dict):
        table: dict[int, float] = {}
        for key, multiplier in value.items():
            level = int(key)
            if level not in LEVELS:
                raise ValueError(f"multiplier level must be within 1-5, got {key!r}")
            table[level] = float(multiplier)
        return table
    if isinstance(value, (list, tuple)):
        items = [float(v) for v in value]
        if len(items) == len(LEVELS) + 1:
            items = items[1:]
        if len(items) != len(LEVELS):
            raise ValueError(f"multiplier list must have 5 entries (or 6 with index 0 unused), got {len(value)}")
        return dict(zip(LEVELS, items))
    raise ValueError("multiplier table must be a list or a mapping")


class RiskRule(BaseModel):
    type: Union[FindingType, Literal["any"]]
    base: float = Field(..., ge=0.0)
    severity_multiplier: dict[int, float] = Field(default_factory=dict, alias="severityMultiplier")
    frequency_multiplier: dict[int, float] = Field(default_factory=dict, alias="frequencyMultiplier")

    model_config = {"populate_by_name": True}

    @field_validator("severity_multiplier", "frequency_multiplier", mode="before")
    @classmethod
    def _table(cls, value: Any) -> dict[int, float]:
        return _normalize_table(value)

    def severity_factor(self, severity: int) -> float:
        # Missing entries multiply by 1
        return self.severity_multiplier.get(severity, 1.0)

    def frequency_factor(self, frequency: int) -> float:
        return self.frequency_multiplier.get(frequency, 1.0)

    def contribution(self, severity: int, frequency: int) -> float:
        return self.base * self.severity_factor(severity) * self.frequency_factor(frequency)


class PropagationRule(BaseModel):
    factor: float = Field(0.0, ge=0.0)


class RiskRulesConfig(BaseModel):
    rules: list[RiskRule] = Field(default_factory=list)
    propagation: PropagationRule = Field(default_factory=PropagationRule)

    def rule_for(self, finding_type: str) -> RiskRule | None:
        """Exact type match first, then the ``any`` wildcard, else None."""
        wildcard: RiskRule | None = None
        for rule in self.rules:
            if rule.type == finding_type:
                return rule
            if wildcard is None and rule.type == ANY_TYPE:
                wildcard = rule
        return wildcard

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


_DEFAULT_RULES_PAYLOAD: dict[str, Any] = {
    "rules": [
        {
            "type": "fall_risk",
            "base": 8,
            "severityMultiplier": [0, 1, 1.4, 1.8, 2.3, 2.8],
            "frequencyMultiplier": [0, 1, 1.2, 1.5, 1.9, 2.5],
        },
        {
            "type": "fire_risk",
            "base": 7,
            "severityMultiplier": [0, 1, 1.3, 1.7, 2.2, 2.7],
            "frequencyMultiplier": [0, 1, 1.1, 1.4, 1.8, 2.3],
        },
        {
            "type": "electrical_risk",
            "base": 6,
            "severityMultiplier": [0, 1, 1.2, 1.6, 2.1, 2.6],
            "frequencyMultiplier": [0, 1, 1.1, 1.3, 1.7, 2.2],
        },
        {
            "type": "any",
            "base": 4,
            "severityMultiplier": [0, 1, 1.2, 1.4, 1.7, 2.0],
            "frequencyMultiplier": [0, 1, 1.1, 1.3, 1.5, 1.8],
        },
    ],
    "propagation": {"factor": 0.35},
}


def default_risk_rules() -> RiskRulesConfig:
    """Fresh copy of the built-in rule set."""
    return RiskRulesConfig.model_validate(_DEFAULT_RULES_PAYLOAD)


def parse_rules(payload: Any, *, source: str = "<payload>") -> RiskRulesConfig:
    if not isinstance(payload, dict):
        raise RulesConfigError(f"Risk rules in {source} must be a mapping", {"source": source})
    try:
        return RiskRulesConfig.model_validate(payload)
    except PydanticValidationError as exc:
        raise RulesConfigError(
            f"Invalid risk rules in {source}: {exc.error_count()} error(s)",
            {"source": source, "errors": exc.errors(include_url=False)},
        ) from exc


def load_rules(path: Path | str) -> RiskRulesConfig:
    """Load rules from a ``.json``, ``.yaml`` or ``.yml`` file.

    Raises:
        RulesConfigError: file missing, unreadable or not a valid rule set.
    """
    rules_path = Path(path)
    if not rules_path.exists():
        raise RulesConfigError(f"Risk rules file not found: {rules_path}", {"path": str(rules_path)})
    text = rules_path.read_text(encoding="utf-8")
    try:
        if rules_path.suffix.lower() == ".json":
            payload = json.loads(text)
        else:
            payload = yaml.safe_load(text)
    except (json.JSONDecodeError, yaml.YAMLError) as exc:
        raise RulesConfigError(f"Cannot parse risk rules file {rules_path}: {exc}", {"path": str(rules_path)}) from exc
    return parse_rules(payload, source=str(rules_path))


__all__ = [
    "ANY_TYPE",
    "RiskRule",
    "PropagationRule",
    "RiskRulesConfig",
    "default_risk_rules",
    "parse_rules",
    "load_rules",
]
