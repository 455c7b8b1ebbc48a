import json

import ezdxf
import pytest

from riskplan.cli import main
from riskplan.model import editing
from riskplan.storage import LocalWorkspaceStore, load_workspace, save_workspace
from riskplan.versioning import commit, create_plan

from factories import make_finding


@pytest.fixture
def config_path(tmp_path):
    path = tmp_path / "riskplan.yaml"
    path.write_text(
        "storage:\n"
        f"  root: {tmp_path / 'data'}\n"
        "logging:\n"
        "  level: WARNING\n",
        encoding="utf-8",
    )
    return path


@pytest.fixture
def seeded_store(tmp_path, config_path, workspace, base_state):
    create_plan(workspace, "Ground floor", plan_id="plan-1", layers=base_state.layers,
                elements=base_state.elements, commit_id="c0")
    commit(workspace, "plan-1", lambda s: editing.add_finding(s, make_finding("f1", "zone-a")),
           message="Record fall risk", commit_id="c1", author_user_id="inspector-7")
    store = LocalWorkspaceStore(tmp_path / "data")
    save_workspace(store, workspace)
    return store


def test_score(seeded_store, config_path, capsys):
    assert main(["--config", str(config_path), "score", "plan-1"]) == 0
    payload = json.loads(capsys.readouterr().out)
    zones = {z["zoneId"]: z for z in payload["zones"]}
    assert zones["zone-a"]["index"] == pytest.approx(17.28)
    assert zones["zone-a"]["level"] == "medium"
    assert payload["aggregate"]["zoneCount"] == 2


def test_score_with_rules_file(seeded_store, config_path, tmp_path, capsys):
    rules = tmp_path / "flat.yaml"
    rules.write_text("rules:\n  - type: any\n    base: 1\n", encoding="utf-8")
    assert main(["--config", str(config_path), "score", "plan-1", "--rules", str(rules)]) == 0
    zones = {z["zoneId"]: z for z in json.loads(capsys.readouterr().out)["zones"]}
    assert zones["zone-a"]["index"] == pytest.approx(1.0)


def test_log(seeded_store, config_path, capsys):
    assert main(["--config", str(config_path), "log", "plan-1"]) == 0
    lines = capsys.readouterr().out.splitlines()
    assert len(lines) == 2
    assert lines[0].startswith("  c0")
    assert lines[1].startswith("* c1")
    assert "inspector-7" in lines[1]


def test_checkout_to_file(seeded_store, config_path, tmp_path):
    output = tmp_path / "out" / "c0.json"
    assert main(["--config", str(config_path), "checkout", "plan-1", "c0", "--output", str(output)]) == 0
    state = json.loads(output.read_text(encoding="utf-8"))
    assert state["findings"] == []
    assert len(state["elements"]) == 3


def test_validate(seeded_store, config_path, capsys):
    assert main(["--config", str(config_path), "validate"]) == 0
    reports = json.loads(capsys.readouterr().out)
    assert reports["plan-1"]["summary"]["valid"] is True


def test_unknown_plan_exits_with_error(seeded_store, config_path):
    assert main(["--config", str(config_path), "log", "ghost"]) == 1
    assert main(["--config", str(config_path), "checkout", "plan-1", "nope"]) == 1


def test_missing_config_exits_with_error(tmp_path):
    assert main(["--config", str(tmp_path / "absent.yaml"), "validate"]) == 1


def test_import_dxf(config_path, tmp_path, capsys):
    doc = ezdxf.new()
    doc.layers.add("MUROS", color=1)
    msp = doc.modelspace()
    msp.add_line((0, 0), (10, 0), dxfattribs={"layer": "MUROS"})
    msp.add_lwpolyline([(0, 0), (10, 0), (10, 6), (0, 6)], close=True, dxfattribs={"layer": "MUROS"})
    drawing = tmp_path / "warehouse.dxf"
    doc.saveas(drawing)

    args = ["--config", str(config_path), "import-dxf", str(drawing), "--plan-id", "wh", "--author", "cad-bot"]
    assert main(args) == 0
    assert capsys.readouterr().out.strip() == "wh"

    workspace = load_workspace(LocalWorkspaceStore(tmp_path / "data"))
    plan = workspace.plans["wh"]
    assert plan.name == "warehouse"
    assert len(plan.elements) == 2
    root = workspace.commits[workspace.heads["wh"]]
    assert root.author_user_id == "cad-bot"
    assert root.message == "Import warehouse.dxf"
