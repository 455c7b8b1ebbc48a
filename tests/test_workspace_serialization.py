import json

import pytest

from riskplan.exceptions import DuplicateIdError, WorkspaceIntegrityError
from riskplan.model import editing
from riskplan.model.workspace import WorkspaceState, deserialize_workspace, serialize_workspace
from riskplan.risk import build_plan_snapshot
from riskplan.versioning import checkout, commit, create_plan

from factories import FIXED_NOW, make_finding


@pytest.fixture
def populated(workspace, base_state) -> WorkspaceState:
    create_plan(workspace, "Ground floor", plan_id="plan-1", layers=base_state.layers,
                elements=base_state.elements, commit_id="c0", timestamp=FIXED_NOW)
    commit(workspace, "plan-1", lambda s: editing.add_finding(s, make_finding("f1", "zone-a")),
           message="f1", commit_id="c1", timestamp=FIXED_NOW)
    create_plan(workspace, "Empty", plan_id="plan-2", commit_id="c-empty", timestamp=FIXED_NOW)
    return workspace


def _flat(workspace: WorkspaceState) -> dict:
    return json.loads(serialize_workspace(workspace).model_dump_json(by_alias=True, exclude_none=True))


def test_flat_form_keys(populated):
    flat = _flat(populated)
    assert set(flat) == {"planos", "findings", "commits", "heads"}
    assert flat["heads"] == [{"planoId": "plan-1", "commitId": "c1"}, {"planoId": "plan-2", "commitId": "c-empty"}]
    assert flat["planos"][0]["scaleMetersPerUnit"] == 1.0
    assert flat["findings"][0]["planoId"] == "plan-1"


def test_round_trip_preserves_everything(populated):
    restored = deserialize_workspace(_flat(populated))
    assert restored.plans == populated.plans
    assert restored.findings == populated.findings
    assert restored.commits == populated.commits
    assert restored.heads == populated.heads
    assert checkout(restored, "plan-1", "c1") == checkout(populated, "plan-1", "c1")


def test_duplicate_ids_rejected(populated):
    flat = _flat(populated)
    flat["commits"].append(flat["commits"][0])
    with pytest.raises(DuplicateIdError):
        deserialize_workspace(flat)


def test_two_heads_for_one_plan_rejected(populated):
    flat = _flat(populated)
    flat["heads"].append({"planoId": "plan-1", "commitId": "c0"})
    with pytest.raises(DuplicateIdError):
        deserialize_workspace(flat)


@pytest.mark.parametrize(
    "head",
    [
        {"planoId": "plan-1", "commitId": "missing"},
        {"planoId": "plan-1", "commitId": "c-empty"},
        {"planoId": "ghost-plan", "commitId": "c0"},
    ],
)
def test_dangling_head_strict_and_lenient(populated, head, log_records):
    flat = _flat(populated)
    flat["heads"] = [h for h in flat["heads"] if h["planoId"] != head["planoId"]] + [head]
    with pytest.raises(WorkspaceIntegrityError):
        deserialize_workspace(flat)

    lenient = deserialize_workspace(flat, strict=False)
    assert head["planoId"] not in lenient.heads
    assert lenient.heads["plan-2"] == "c-empty"
    assert any(r["level"].name == "WARNING" for r in log_records)


def test_missing_parent_rejected(populated):
    flat = _flat(populated)
    flat["commits"] = [c for c in flat["commits"] if c["id"] != "c0"]
    with pytest.raises(WorkspaceIntegrityError):
        deserialize_workspace(flat)


def test_element_on_missing_layer_rejected(populated, log_records):
    flat = _flat(populated)
    flat["planos"][0]["elements"][0]["layerId"] = "missing-layer"
    with pytest.raises(WorkspaceIntegrityError) as exc_info:
        deserialize_workspace(flat)
    assert exc_info.value.details["plan_id"] == "plan-1"

    lenient = deserialize_workspace(flat, strict=False)
    assert lenient.plans["plan-1"].elements[0].layer_id == "missing-layer"
    assert any(r["level"].name == "WARNING" for r in log_records)


def test_finding_on_missing_zone_rejected(populated):
    flat = _flat(populated)
    flat["findings"][0]["zoneId"] = "ghost-zone"
    with pytest.raises(WorkspaceIntegrityError):
        deserialize_workspace(flat)


@pytest.mark.parametrize("collection", ["findings", "commits"])
def test_records_of_unknown_plan(populated, collection, log_records):
    flat = _flat(populated)
    orphan = dict(flat[collection][0], id="orphan", planoId="ghost-plan")
    flat[collection].append(orphan)
    with pytest.raises(WorkspaceIntegrityError) as exc_info:
        deserialize_workspace(flat)
    assert exc_info.value.details["plan_id"] == "ghost-plan"

    lenient = deserialize_workspace(flat, strict=False)
    assert "orphan" not in getattr(lenient, collection)
    assert lenient.heads == populated.heads
    assert any("ghost-plan" in r["message"] for r in log_records)


def test_malformed_payload(populated):
    flat = _flat(populated)
    flat["findings"][0]["severity"] = 11
    with pytest.raises(WorkspaceIntegrityError) as exc_info:
        deserialize_workspace(flat)
    assert exc_info.value.details["errors"]


def test_plan_snapshot_for_reports(populated):
    snapshot = build_plan_snapshot(populated, "plan-1", now=FIXED_NOW)
    assert [f.id for f in snapshot.findings] == ["f1"]
    assert snapshot.plan.get_element("zone-a").risk_summary.index == pytest.approx(17.28)
    assert snapshot.risk_aggregates[0].max_index == pytest.approx(17.28)
    # the workspace copy keeps no derived data
    assert populated.plans["plan-1"].get_element("zone-a").risk_summary is None
