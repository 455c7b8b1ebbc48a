"""DXF drawing -> Plan.

Entity mapping:

* ``LINE``                          -> Wall (default thickness/height)
* closed ``POLYLINE``/``LWPOLYLINE`` -> Zone (usage ``work``), at least 3 vertices
* ``INSERT``                        -> PointElement (``equipment``), named after the block

Everything else is skipped. Ids are derived from the plan id, so importing
the same drawing twice yields the same ids.
"""

from __future__ import annotations

import uuid
from pathlib import Path
from typing import Literal, Optional

import ezdxf
from loguru import logger
from pydantic import BaseModel, Field

from riskplan.exceptions import PlanImportError
from riskplan.geometry.contract import DEFAULT_WALL_HEIGHT, DEFAULT_WALL_THICKNESS, MIN_ZONE_VERTICES
from riskplan.model.schema import Layer, Plan, Point2D, PointElement, Wall, Zone, utc_now

DEFAULT_LAYER_NAME = "DEFAULT"

# ACI colour number -> display colour
DXF_COLORS: dict[int, str] = {
    1: "#ef4444",
    2: "#22c55e",
    3: "#3b82f6",
    4: "#f97316",
}

EntityType = Literal["LINE", "POLYLINE", "LWPOLYLINE", "INSERT"]


class DxfLayer(BaseModel):
    name: str
    color_number: Optional[int] = None


class DxfEntity(BaseModel):
    """Flattened DXF entity; only the fields of its ``type`` are set."""
    type: str
    layer: Optional[str] = None
    start: Optional[Point2D] = None
    end: Optional[Point2D] = None
    vertices: list[Point2D] = Field(default_factory=list)
    is_closed: bool = False
    block_name: Optional[str] = None
    position: Optional[Point2D] = None


class DxfDocument(BaseModel):
    layers: list[DxfLayer] = Field(default_factory=list)
    entities: list[DxfEntity] = Field(default_factory=list)


def deterministic_id(plan_id: str, kind: str, key: str | int) -> str:
    return str(uuid.uuid5(uuid.NAMESPACE_URL, f"{plan_id}:{kind}:{key}"))


def _to_color(color_number: Optional[int]) -> Optional[str]:
    if color_number is None:
        return None
    return DXF_COLORS.get(color_number)


def convert_dxf_to_plan(
    document: DxfDocument,
    *,
    plan_id: str,
    name: str,
    scale_meters_per_unit: float = 1.0,
) -> Plan:
    """Map a parsed DXF document onto a new plan (no commits yet)."""
    layers: dict[str, Layer] = {}

    def ensure_layer(dxf_name: Optional[str], color_number: Optional[int] = None) -> Layer:
        layer_name = dxf_name or DEFAULT_LAYER_NAME
        existing = layers.get(layer_name)
        if existing is not None:
            return existing
        layer = Layer(
            id=deterministic_id(plan_id, "layer", layer_name),
            name=layer_name,
            type="architectural",
            color=_to_color(color_number),
            dxf_layer_name=layer_name,
        )
        layers[layer_name] = layer
        return layer

    for dxf_layer in document.layers:
        ensure_layer(dxf_layer.name, dxf_layer.color_number)

    elements: list[Wall | Zone | PointElement] = []
    skipped: dict[str, int] = {}

    for entity in document.entities:
        layer = ensure_layer(entity.layer)
        index = len(elements)

        if entity.type == "LINE" and entity.start is not None and entity.end is not None:
            elements.append(Wall(
                id=deterministic_id(plan_id, "wall", index),
                layer_id=layer.id,
                start=entity.start,
                end=entity.end,
                thickness=DEFAULT_WALL_THICKNESS,
                height=DEFAULT_WALL_HEIGHT,
            ))
        elif entity.type in ("POLYLINE", "LWPOLYLINE") and entity.is_closed and len(entity.vertices) >= MIN_ZONE_VERTICES:
            elements.append(Zone(
                id=deterministic_id(plan_id, "zone", index),
                layer_id=layer.id,
                name=layer.name,
                polygon=list(entity.vertices),
                usage="work",
            ))
        elif entity.type == "INSERT" and entity.position is not None:
            block = entity.block_name or ""
            elements.append(PointElement(
                id=deterministic_id(plan_id, "point", index),
                layer_id=layer.id,
                name=block,
                code=block or None,
                position=entity.position,
                point_type="equipment",
            ))
        else:
            skipped[entity.type] = skipped.get(entity.type, 0) + 1

    if skipped:
        logger.debug("DXF import for plan {} skipped entities: {}", plan_id, skipped)

    now = utc_now()
    return Plan(
        id=plan_id,
        name=name,
        scale_meters_per_unit=scale_meters_per_unit,
        layers=list(layers.values()),
        elements=elements,
        created_at=now,
        updated_at=now,
    )


def _xy(vec) -> Point2D:
    return Point2D(x=float(vec[0]), y=float(vec[1]))


def _entity_from_ezdxf(entity) -> Optional[DxfEntity]:
    dxf_type = entity.dxftype()
    layer = entity.dxf.layer

    if dxf_type == "LINE":
        return DxfEntity(type=dxf_type, layer=layer, start=_xy(entity.dxf.start), end=_xy(entity.dxf.end))
    if dxf_type == "LWPOLYLINE":
        vertices = [_xy(p) for p in entity.get_points(format="xy")]
        return DxfEntity(type=dxf_type, layer=layer, vertices=vertices, is_closed=bool(entity.closed))
    if dxf_type == "POLYLINE":
        vertices = [_xy(v.dxf.location) for v in entity.vertices]
        return DxfEntity(type=dxf_type, layer=layer, vertices=vertices, is_closed=bool(entity.is_closed))
    if dxf_type == "INSERT":
        return DxfEntity(type=dxf_type, layer=layer, block_name=entity.dxf.name, position=_xy(entity.dxf.insert))
    return None


def read_dxf(path: Path | str) -> DxfDocument:
    """Parse a DXF file's layer table and modelspace with ezdxf.

    Raises:
        PlanImportError: file missing, unreadable or not a valid DXF.
    """
    dxf_path = Path(path)
    if not dxf_path.exists():
        raise PlanImportError(f"DXF file not found: {dxf_path}", {"path": str(dxf_path)})
    try:
        doc = ezdxf.readfile(str(dxf_path))
    except (IOError, ValueError, ezdxf.DXFError) as exc:
        raise PlanImportError(f"Cannot read DXF file {dxf_path}: {exc}", {"path": str(dxf_path)}) from exc

    layers = [
        # Layer.color is the absolute ACI number (negative marks a layer switched off)
        DxfLayer(name=layer.dxf.name, color_number=layer.color)
        for layer in doc.layers
    ]
    entities = [parsed for parsed in (_entity_from_ezdxf(e) for e in doc.modelspace()) if parsed is not None]
    logger.info("Read DXF {}: {} layers, {} supported entities", dxf_path, len(layers), len(entities))
    return DxfDocument(layers=layers, entities=entities)


__all__ = [
    "DXF_COLORS",
    "DxfLayer",
    "DxfEntity",
    "DxfDocument",
    "deterministic_id",
    "convert_dxf_to_plan",
    "read_dxf",
]
