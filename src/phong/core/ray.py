"""Ray data structure and vector utilities for the Phong ray tracer.

This module provides the host-side Ray value and the vector utility functions
shared by every Taichi kernel in the renderer. Kernel code passes rays around
as separate ``origin`` / ``direction`` vectors; host code uses the ``Ray``
named tuple backed by float64 NumPy arrays.

Points and vectors share the vec3 representation. The distinction matters only
when a 4x4 affine matrix is applied: ``transform_point`` uses the homogeneous
coordinate w=1 (translation applies) while ``transform_vector`` uses w=0
(translation is ignored).

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.phong.core.ray import Ray
    >>> ray = Ray.from_xyz((0.0, 0.0, -5.0), (0.0, 0.0, 1.0))
    >>> ray.point_at(5.0)
    array([0., 0., 0.])
"""

from typing import NamedTuple, Sequence

import numpy as np
import numpy.typing as npt
import taichi as ti
import taichi.math as tm

# Type aliases for Taichi's math module
vec3 = tm.vec3
vec4 = tm.vec4
mat4 = tm.mat4

# Squared lengths below this are treated as zero-length vectors
ZERO_LENGTH_SQUARED = 1e-12


def as_vec3(values: Sequence[float] | npt.NDArray[np.floating]) -> npt.NDArray[np.float64]:
    """Convert a 3-sequence into a float64 NumPy vector.

    Raises:
        ValueError: If the input does not hold exactly three components.
    """
    arr = np.asarray(values, dtype=np.float64).reshape(-1)
    if arr.shape != (3,):
        raise ValueError(f"Expected 3 components, got shape {arr.shape}")
    return arr


class Ray(NamedTuple):
    """A host-side ray with an origin point and direction vector.

    Attributes:
        origin: The starting point of the ray.
        direction: The direction of the ray. Not required to be unit length,
            although camera rays and shadow rays are always normalized.
    """

    origin: npt.NDArray[np.float64]
    direction: npt.NDArray[np.float64]

    @classmethod
    def from_xyz(cls, origin: Sequence[float], direction: Sequence[float]) -> "Ray":
        """Build a ray from plain coordinate sequences."""
        return cls(as_vec3(origin), as_vec3(direction))

    def point_at(self, t: float) -> npt.NDArray[np.float64]:
        """Return the point origin + t * direction."""
        return self.origin + t * self.direction


# =============================================================================
# Vector Utility Functions
# =============================================================================


@ti.func
def ray_at(origin: vec3, direction: vec3, t: ti.f32) -> vec3:
    """Compute the point along a ray at parameter t.

    Args:
        origin: The starting point of the ray.
        direction: The direction vector of the ray.
        t: The parameter value. Positive values are in front of the origin.

    Returns:
        The point origin + t * direction.
    """
    return origin + t * direction


@ti.func
def normalize(v: vec3) -> vec3:
    """Normalize a vector to unit length.

    The caller must guarantee a non-zero vector; use ``safe_normalize`` when
    the input can degenerate.
    """
    return tm.normalize(v)


@ti.func
def safe_normalize(v: vec3) -> vec3:
    """Normalize a vector, returning the zero vector for zero-length input."""
    result = vec3(0.0, 0.0, 0.0)
    len_sq = tm.dot(v, v)
    if len_sq > ZERO_LENGTH_SQUARED:
        result = v / ti.sqrt(len_sq)
    return result


@ti.func
def hadamard(a: vec3, b: vec3) -> vec3:
    """Component-wise product of two colors."""
    return vec3(a.x * b.x, a.y * b.y, a.z * b.z)


@ti.func
def reflect(incident: vec3, normal: vec3) -> vec3:
    """Reflect an incident vector about a normal.

    Computes ``incident - normal * 2 * dot(incident, normal)``. The normal
    should be unit length for correct results.

    Args:
        incident: The incoming direction vector (pointing toward the surface).
        normal: The surface normal (should be normalized).

    Returns:
        The reflected direction vector.
    """
    return incident - 2.0 * tm.dot(incident, normal) * normal


@ti.func
def direction_and_distance(delta: vec3):
    """Split an offset vector into its length and unit direction.

    A zero-length offset has no direction. In that case ``valid`` is 0 and
    the returned direction is the zero vector instead of NaN.

    Args:
        delta: The offset, e.g. ``light_position - point``.

    Returns:
        A tuple (valid, distance, direction).
    """
    valid = 0
    distance = ti.sqrt(tm.dot(delta, delta))
    direction = vec3(0.0, 0.0, 0.0)
    if distance * distance > ZERO_LENGTH_SQUARED:
        valid = 1
        direction = delta / distance
    return valid, distance, direction


# =============================================================================
# Homogeneous Transforms
# =============================================================================


@ti.func
def transform_point(m: mat4, p: vec3) -> vec3:
    """Apply a 4x4 affine matrix to a point (w = 1)."""
    r = m @ vec4(p.x, p.y, p.z, 1.0)
    return vec3(r.x, r.y, r.z)


@ti.func
def transform_vector(m: mat4, v: vec3) -> vec3:
    """Apply a 4x4 affine matrix to a free vector (w = 0)."""
    r = m @ vec4(v.x, v.y, v.z, 0.0)
    return vec3(r.x, r.y, r.z)
