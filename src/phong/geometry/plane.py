"""Infinite plane primitive in object space.

The plane is ``y = 0`` with normal (0, 1, 0) in object space. Rays whose
direction is (nearly) parallel to the plane never hit it, including rays
lying inside the plane.
"""

import taichi as ti
import taichi.math as tm

vec3 = tm.vec3


@ti.func
def hit_plane_local(origin: vec3, direction: vec3, epsilon: ti.f32):
    """Intersect an object-space ray with the plane y = 0.

    Args:
        origin: Object-space ray origin.
        direction: Object-space ray direction.
        epsilon: Rays with ``|direction.y| <= epsilon`` count as parallel.

    Returns:
        A tuple (hit, t). ``t`` may be negative; the caller filters roots.
    """
    hit = 0
    t = 0.0
    if ti.abs(direction.y) > epsilon:
        hit = 1
        t = -origin.y / direction.y
    return hit, t


@ti.func
def plane_normal_local(point: vec3) -> vec3:
    """Object-space normal; constant everywhere on the plane."""
    return vec3(0.0, 1.0, 0.0)
