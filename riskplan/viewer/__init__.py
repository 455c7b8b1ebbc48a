"""Read-only scene views handed to 2D/3D renderers."""

from .scene import (
    LEVEL_COLORS,
    Prism3D,
    Scene2D,
    Scene3D,
    SceneLayer,
    Viewport,
    build_scene_2d,
    build_scene_3d,
    select_element,
    update_viewport,
)

__all__ = [
    "LEVEL_COLORS",
    "Prism3D",
    "Scene2D",
    "Scene3D",
    "SceneLayer",
    "Viewport",
    "build_scene_2d",
    "build_scene_3d",
    "select_element",
    "update_viewport",
]
