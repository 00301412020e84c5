"""Numeric tolerances for intersection and shading.

The tolerances are plain values threaded through every kernel call rather
than globals read from inside Taichi functions, so tests can render the same
scene with alternate tolerances.

The defaults are sized for the ``f32`` fields the scene is stored in.
"""

from dataclasses import dataclass

# Roots closer than this to the ray origin are rejected, and plane
# intersections whose |direction.y| falls at or below it count as parallel.
EPSILON = 1e-4

# Distance the shadow ray origin is pushed along the corrected normal
BIAS = 1e-4


@dataclass(frozen=True)
class ShadingConfig:
    """Tolerances used by the intersection and shading kernels.

    Attributes:
        epsilon: Root-rejection and parallel-ray threshold.
        bias: Shadow ray offset along the surface normal ("shadow acne" guard).
    """

    epsilon: float = EPSILON
    bias: float = BIAS

    def __post_init__(self) -> None:
        if self.epsilon < 0.0:
            raise ValueError(f"epsilon must be non-negative, got {self.epsilon}")
        if self.bias < 0.0:
            raise ValueError(f"bias must be non-negative, got {self.bias}")


DEFAULT_CONFIG = ShadingConfig()
