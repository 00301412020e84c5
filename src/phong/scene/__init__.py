"""Scene module: shapes, lights and the ray queries over them.

Components:
    scene: Immutable Scene container
    light: Point light sources
    intersection: Scene tables in Taichi fields, nearest-hit and occlusion

Scene data is organized for efficient GPU access:
    - Structure-of-Arrays layout for transforms, materials and patterns
    - Shapes stored in insertion order, which decides ties between hits
"""

from .intersection import (
    MAX_LIGHTS,
    MAX_SHAPES,
    bind_scene,
    get_light_count,
    get_shape_count,
    is_occluded,
    nearest_intersection,
    unbind_scene,
)
from .light import PointLight
from .scene import Scene

__all__ = [
    "Scene",
    "PointLight",
    "MAX_SHAPES",
    "MAX_LIGHTS",
    "bind_scene",
    "unbind_scene",
    "get_shape_count",
    "get_light_count",
    "nearest_intersection",
    "is_occluded",
]
