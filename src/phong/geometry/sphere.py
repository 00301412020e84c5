"""Unit sphere primitive in object space.

The sphere is always the unit sphere centered on the object-space origin;
position, size and orientation come from the owning shape's transform. All
functions here work on object-space rays and points and are Taichi functions
for use inside kernels.

The ray-sphere intersection solves ``|O + tD|^2 = 1``, which expands to

    a*t^2 + b*t + c = 0
    a = dot(D, D),  b = 2 * dot(O, D),  c = dot(O, O) - 1

The two roots ``(-b -+ sqrt(b^2 - 4ac)) / 2a`` are symmetric about ``-b/2a``
and coincide for a tangent ray.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.phong.geometry.sphere import hit_sphere_local
    >>> # Use hit_sphere_local within a Taichi kernel
"""

import taichi as ti
import taichi.math as tm

# Type alias for 3D vectors using Taichi's math module
vec3 = tm.vec3


@ti.func
def hit_sphere_local(origin: vec3, direction: vec3):
    """Solve the ray-unit-sphere quadratic in object space.

    No root filtering happens here; rejecting roots behind the origin is the
    caller's policy.

    Args:
        origin: Object-space ray origin.
        direction: Object-space ray direction (need not be normalized).

    Returns:
        A tuple (hit, t0, t1) where hit is 1 when the discriminant is
        non-negative and t0 <= t1 are the two roots. Roots are 0 on a miss.
    """
    a = tm.dot(direction, direction)
    b = 2.0 * tm.dot(direction, origin)
    c = tm.dot(origin, origin) - 1.0
    discriminant = b * b - 4.0 * a * c

    hit = 0
    t0 = 0.0
    t1 = 0.0
    if discriminant >= 0.0 and a > 0.0:
        sqrt_d = ti.sqrt(discriminant)
        hit = 1
        t0 = (-b - sqrt_d) / (2.0 * a)
        t1 = (-b + sqrt_d) / (2.0 * a)

    return hit, t0, t1


@ti.func
def sphere_normal_local(point: vec3) -> vec3:
    """Outward normal at an object-space point (not normalized)."""
    return point - vec3(0.0, 0.0, 0.0)


@ti.func
def sphere_uv(point: vec3) -> vec3:
    """Map an object-space point on the sphere to (u, v, 0).

    Uses longitude ``theta = atan2(-z, x)`` and latitude ``phi = acos(-y)``:
        u = (theta + pi) / (2 * pi)
        v = phi / pi

    Both u and v fall in [0, 1].
    """
    theta = tm.atan2(-point.z, point.x)
    u = (theta + tm.pi) / (2.0 * tm.pi)
    phi = ti.acos(tm.clamp(-point.y, -1.0, 1.0))
    v = phi / tm.pi
    return vec3(u, v, 0.0)
