"""Geometry module for shape primitives.

Components:
    sphere: Unit sphere intersection, normal and UV mapping in object space
    plane: The y = 0 plane in object space
    shape: Shape descriptions (Sphere, Plane) and the type-tag dispatch

Primitive routines are Taichi functions working in object space. World-space
placement comes from each shape's transform.
"""

from .plane import hit_plane_local, plane_normal_local
from .shape import Plane, Shape, ShapeType, Sphere, intersect_local, normal_local
from .sphere import hit_sphere_local, sphere_normal_local, sphere_uv

__all__ = [
    "Shape",
    "Sphere",
    "Plane",
    "ShapeType",
    "intersect_local",
    "normal_local",
    "hit_sphere_local",
    "sphere_normal_local",
    "sphere_uv",
    "hit_plane_local",
    "plane_normal_local",
]
