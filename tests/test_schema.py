import pytest
from pydantic import TypeAdapter, ValidationError

from riskplan.model.schema import Element, Finding, Layer, Plan, PointElement, Wall, Zone

from factories import make_finding, square


def test_element_union_dispatches_on_kind():
    adapter = TypeAdapter(Element)
    wall = adapter.validate_python({
        "kind": "wall", "id": "w", "layerId": "l",
        "start": {"x": 0, "y": 0}, "end": {"x": 1, "y": 0},
    })
    zone = adapter.validate_python({
        "kind": "zone", "id": "z", "layerId": "l",
        "polygon": [{"x": 0, "y": 0}, {"x": 1, "y": 0}, {"x": 1, "y": 1}],
    })
    point = adapter.validate_python({
        "kind": "point", "id": "p", "layerId": "l", "position": {"x": 2, "y": 2},
    })
    assert isinstance(wall, Wall)
    assert wall.thickness == pytest.approx(0.2)
    assert wall.height == pytest.approx(2.5)
    assert isinstance(zone, Zone)
    assert zone.usage == "other"
    assert isinstance(point, PointElement)
    assert point.point_type == "equipment"


def test_unknown_kind_rejected():
    with pytest.raises(ValidationError):
        TypeAdapter(Element).validate_python({"kind": "door", "id": "d", "layerId": "l"})


def test_zone_needs_three_vertices():
    with pytest.raises(ValidationError):
        Zone(id="z", layer_id="l", polygon=square()[:2])


@pytest.mark.parametrize("field", ["severity", "frequency"])
@pytest.mark.parametrize("value", [0, 6])
def test_finding_levels_bounded(field, value):
    payload = {"id": "f", "planoId": "p", "type": "fall_risk", "severity": 3, "frequency": 3, field: value}
    with pytest.raises(ValidationError):
        Finding.model_validate(payload)


def test_finding_type_must_be_known():
    with pytest.raises(ValidationError):
        Finding.model_validate({"id": "f", "planoId": "p", "type": "flood", "severity": 1, "frequency": 1})


def test_plan_scale_must_be_positive():
    with pytest.raises(ValidationError):
        Plan(id="p", name="Ground floor", scale_meters_per_unit=0)


def test_flat_form_uses_camel_case_aliases():
    finding = make_finding("f1", "zone-a")
    flat = finding.to_flat()
    assert flat["planoId"] == "plan-1"
    assert flat["zoneId"] == "zone-a"
    assert "elementId" not in flat
    assert Finding.model_validate(flat) == finding


def test_snake_case_accepted_on_input():
    layer = Layer.model_validate({"id": "l", "name": "Walls", "is_locked": True, "dxf_layer_name": "MUROS"})
    assert layer.is_locked
    assert layer.to_flat()["dxfLayerName"] == "MUROS"


def test_plan_lookups(base_state):
    plan = Plan(id="p", name="Ground floor", layers=base_state.layers, elements=base_state.elements)
    assert [z.id for z in plan.zones()] == ["zone-a", "zone-b"]
    assert [w.id for w in plan.walls()] == ["wall-1"]
    assert plan.get_layer("lyr-arch").name == "Walls"
    assert plan.get_element("missing") is None
