import ezdxf
import pytest

from riskplan.exceptions import PlanImportError
from riskplan.importers import DxfDocument, convert_dxf_to_plan, deterministic_id, read_dxf
from riskplan.model.schema import PointElement, Wall, Zone
from riskplan.versioning import add_plan, checkout


def _document() -> DxfDocument:
    return DxfDocument.model_validate({
        "layers": [{"name": "MUROS", "color_number": 1}, {"name": "ZONAS", "color_number": 9}],
        "entities": [
            {"type": "LINE", "layer": "MUROS", "start": {"x": 0, "y": 0}, "end": {"x": 10, "y": 0}},
            {
                "type": "LWPOLYLINE",
                "layer": "ZONAS",
                "is_closed": True,
                "vertices": [{"x": 1, "y": 1}, {"x": 5, "y": 1}, {"x": 5, "y": 4}, {"x": 1, "y": 4}],
            },
            {"type": "LWPOLYLINE", "layer": "ZONAS", "is_closed": False,
             "vertices": [{"x": 0, "y": 0}, {"x": 1, "y": 0}, {"x": 1, "y": 1}]},
            {"type": "INSERT", "layer": "EQUIPAMIENTO", "block_name": "EXTINTOR", "position": {"x": 2, "y": 2}},
            {"type": "CIRCLE", "layer": "MUROS"},
            {"type": "LINE", "start": {"x": 0, "y": 5}, "end": {"x": 3, "y": 5}},
        ],
    })


def test_entity_mapping():
    plan = convert_dxf_to_plan(_document(), plan_id="plan-dxf", name="Warehouse")
    kinds = [type(el) for el in plan.elements]
    assert kinds == [Wall, Zone, PointElement, Wall]

    wall, zone, point, _ = plan.elements
    assert wall.thickness == pytest.approx(0.2)
    assert wall.height == pytest.approx(2.5)
    assert zone.usage == "work"
    assert zone.name == "ZONAS"
    assert point.point_type == "equipment"
    assert point.name == point.code == "EXTINTOR"


def test_layers_and_colours():
    plan = convert_dxf_to_plan(_document(), plan_id="plan-dxf", name="Warehouse")
    by_name = {layer.name: layer for layer in plan.layers}
    assert list(by_name) == ["MUROS", "ZONAS", "EQUIPAMIENTO", "DEFAULT"]
    assert by_name["MUROS"].color == "#ef4444"
    assert by_name["ZONAS"].color is None
    assert by_name["MUROS"].dxf_layer_name == "MUROS"
    assert plan.elements[-1].layer_id == by_name["DEFAULT"].id


def test_ids_are_deterministic():
    first = convert_dxf_to_plan(_document(), plan_id="plan-dxf", name="Warehouse")
    second = convert_dxf_to_plan(_document(), plan_id="plan-dxf", name="Warehouse")
    assert [el.id for el in first.elements] == [el.id for el in second.elements]
    assert first.layers[0].id == deterministic_id("plan-dxf", "layer", "MUROS")

    other = convert_dxf_to_plan(_document(), plan_id="plan-other", name="Warehouse")
    assert other.layers[0].id != first.layers[0].id


def test_imported_plan_is_committable(workspace):
    plan = convert_dxf_to_plan(_document(), plan_id="plan-dxf", name="Warehouse")
    stored = add_plan(workspace, plan)
    state = checkout(workspace, "plan-dxf", stored.commit_ids[0])
    assert [el.id for el in state.elements] == [el.id for el in plan.elements]


def test_read_missing_file(tmp_path):
    with pytest.raises(PlanImportError):
        read_dxf(tmp_path / "absent.dxf")


def test_read_invalid_file(tmp_path):
    path = tmp_path / "broken.dxf"
    path.write_text("this is not a drawing", encoding="utf-8")
    with pytest.raises(PlanImportError):
        read_dxf(path)


def test_read_dxf_file(tmp_path):
    doc = ezdxf.new()
    doc.layers.add("MUROS", color=1)
    doc.layers.add("ZONAS", color=3)
    block = doc.blocks.new(name="EXTINTOR")
    block.add_circle((0, 0), radius=0.2)
    msp = doc.modelspace()
    msp.add_line((0, 0), (10, 0), dxfattribs={"layer": "MUROS"})
    msp.add_lwpolyline([(1, 1), (5, 1), (5, 4), (1, 4)], close=True, dxfattribs={"layer": "ZONAS"})
    msp.add_blockref("EXTINTOR", (2, 2), dxfattribs={"layer": "ZONAS"})
    msp.add_circle((3, 3), radius=1, dxfattribs={"layer": "MUROS"})
    path = tmp_path / "plan.dxf"
    doc.saveas(path)

    document = read_dxf(path)
    assert [e.type for e in document.entities] == ["LINE", "LWPOLYLINE", "INSERT"]
    colours = {layer.name: layer.color_number for layer in document.layers}
    assert colours["MUROS"] == 1

    plan = convert_dxf_to_plan(document, plan_id="plan-file", name="From file")
    zone = next(el for el in plan.elements if isinstance(el, Zone))
    assert len(zone.polygon) == 4
    assert {layer.name for layer in plan.layers} >= {"MUROS", "ZONAS"}
    assert next(l for l in plan.layers if l.name == "ZONAS").color == "#3b82f6"
