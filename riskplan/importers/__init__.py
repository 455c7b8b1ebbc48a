"""Importers turning external drawings into plans."""

from .dxf import (
    DxfDocument,
    DxfEntity,
    DxfLayer,
    convert_dxf_to_plan,
    deterministic_id,
    read_dxf,
)

__all__ = [
    "DxfDocument",
    "DxfEntity",
    "DxfLayer",
    "convert_dxf_to_plan",
    "deterministic_id",
    "read_dxf",
]
