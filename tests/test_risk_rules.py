import json

import pytest

from riskplan.exceptions import RulesConfigError
from riskplan.risk.rules import RiskRule, default_risk_rules, load_rules, parse_rules


def test_defaults():
    rules = default_risk_rules()
    fall = rules.rule_for("fall_risk")
    assert fall.base == 8
    assert fall.severity_factor(3) == pytest.approx(1.8)
    assert fall.frequency_factor(2) == pytest.approx(1.2)
    assert rules.rule_for("obstruction").type == "any"
    assert rules.propagation.factor == pytest.approx(0.35)


@pytest.mark.parametrize(
    "table",
    [
        [1, 1.4, 1.8, 2.3, 2.8],
        [0, 1, 1.4, 1.8, 2.3, 2.8],
        {"1": 1, "2": 1.4, "3": 1.8, "4": 2.3, "5": 2.8},
    ],
)
def test_multiplier_table_shapes(table):
    rule = RiskRule(type="fall_risk", base=8, severity_multiplier=table)
    assert rule.severity_factor(5) == pytest.approx(2.8)
    assert rule.severity_factor(1) == pytest.approx(1.0)


def test_missing_multiplier_entry_is_neutral():
    rule = RiskRule.model_validate({"type": "fire_risk", "base": 7, "severityMultiplier": {3: 2.0}})
    assert rule.contribution(3, 4) == pytest.approx(14.0)
    assert rule.contribution(1, 1) == pytest.approx(7.0)


@pytest.mark.parametrize("table", [[1, 2, 3], {"7": 1.0}, "high"])
def test_bad_tables_rejected(table):
    with pytest.raises(RulesConfigError):
        parse_rules({"rules": [{"type": "fall_risk", "base": 1, "severityMultiplier": table}]})


def test_exact_match_wins_over_any():
    rules = parse_rules({
        "rules": [
            {"type": "any", "base": 1},
            {"type": "fire_risk", "base": 9},
        ]
    })
    assert rules.rule_for("fire_risk").base == 9
    assert rules.rule_for("ppe_missing").base == 1


def test_no_rule_and_no_wildcard():
    rules = parse_rules({"rules": [{"type": "fire_risk", "base": 9}]})
    assert rules.rule_for("fall_risk") is None


def test_load_yaml_and_json(tmp_path):
    yaml_path = tmp_path / "rules.yaml"
    yaml_path.write_text(
        "rules:\n"
        "  - type: fall_risk\n"
        "    base: 10\n"
        "    severityMultiplier: [1, 2, 3, 4, 5]\n"
        "propagation:\n"
        "  factor: 0.5\n",
        encoding="utf-8",
    )
    rules = load_rules(yaml_path)
    assert rules.rule_for("fall_risk").contribution(4, 1) == pytest.approx(40.0)
    assert rules.propagation.factor == 0.5

    json_path = tmp_path / "rules.json"
    json_path.write_text(json.dumps(rules.to_payload()), encoding="utf-8")
    assert load_rules(json_path) == rules


def test_load_missing_file(tmp_path):
    with pytest.raises(RulesConfigError):
        load_rules(tmp_path / "absent.yaml")


def test_load_unparseable_file(tmp_path):
    path = tmp_path / "broken.json"
    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(RulesConfigError):
        load_rules(path)


def test_repository_rules_file_matches_defaults():
    from pathlib import Path

    path = Path(__file__).resolve().parent.parent / "config" / "risk_rules.yaml"
    assert load_rules(path) == default_risk_rules()
