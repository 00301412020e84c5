"""Core rendering module.

Components:
    ray: Host-side Ray and the vector utilities shared by all kernels
    transform: Immutable affine transforms and the view transform
    config: Intersection and shadow tolerances
    shader: Phong shading, per-pixel and whole-image rendering

All per-ray math runs in Taichi functions; matrices are built and inverted
on the host with NumPy.
"""

from .config import BIAS, DEFAULT_CONFIG, EPSILON, ShadingConfig
from .ray import (
    Ray,
    as_vec3,
    direction_and_distance,
    hadamard,
    normalize,
    ray_at,
    reflect,
    safe_normalize,
    transform_point,
    transform_vector,
    vec3,
)
from .transform import NonInvertibleTransformError, Transform, view_transform

# Note: shader is NOT imported here to avoid circular imports.
# Import it directly from src.phong.core.shader.

__all__ = [
    "Ray",
    "as_vec3",
    "vec3",
    "ray_at",
    "normalize",
    "safe_normalize",
    "hadamard",
    "reflect",
    "direction_and_distance",
    "transform_point",
    "transform_vector",
    "Transform",
    "NonInvertibleTransformError",
    "view_transform",
    "ShadingConfig",
    "DEFAULT_CONFIG",
    "EPSILON",
    "BIAS",
]
