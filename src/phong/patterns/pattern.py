"""Surface patterns mapping a pattern-space point to a color.

Five pattern types are supported, dispatched by ``PatternType`` tag inside
Taichi functions:

    SOLID:    constant color, ignores the point
    STRIPE:   a if floor(x) is even, else b
    GRADIENT: a + (b - a) * frac(x)
    RING:     a if floor(sqrt(x^2 + z^2)) is even, else b
    CHECKERS: a if floor(x) + floor(y) + floor(z) is even, else b (3D parity)

Each pattern owns an object-to-pattern ``Transform``: object-space points are
multiplied by its matrix to reach pattern space. The transform is checked for
invertibility at construction so a singular one fails before rendering. When
``uv_mapping`` is set, spherical shapes first map their object-space point to
(u, v, 0) before the pattern transform is applied.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.phong.patterns.pattern import StripePattern
    >>> stripes = StripePattern(a=(1.0, 1.0, 1.0), b=(0.0, 0.0, 0.0))
    >>> stripes.color_at((1.5, 0.0, 0.0))
    array([0., 0., 0.])
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import IntEnum
from typing import ClassVar, Sequence

import numpy as np
import numpy.typing as npt
import taichi as ti
import taichi.math as tm

from src.phong.core.transform import Matrix4, Transform

vec3 = tm.vec3

Color = tuple[float, float, float]

WHITE: Color = (1.0, 1.0, 1.0)
BLACK: Color = (0.0, 0.0, 0.0)


class PatternType(IntEnum):
    """Enumeration of supported pattern types.

    Used for pattern dispatch in the shading kernels.
    """

    SOLID = 0
    STRIPE = 1
    GRADIENT = 2
    RING = 3
    CHECKERS = 4


def _as_color(values: Sequence[float]) -> Color:
    """Validate and convert an RGB triple. Channels are unconstrained."""
    if len(values) != 3:
        raise ValueError(f"Color must have 3 channels, got {len(values)}")
    return (float(values[0]), float(values[1]), float(values[2]))


# =============================================================================
# Taichi Pattern Evaluation
# =============================================================================


@ti.func
def _floor_is_even(x: ti.f32) -> ti.i32:
    """Return 1 when floor(x) is an even integer."""
    n = ti.cast(ti.floor(x), ti.i32)
    even = 0
    if n % 2 == 0:
        even = 1
    return even


@ti.func
def pattern_color(kind: ti.i32, a: vec3, b: vec3, point: vec3) -> vec3:
    """Evaluate a pattern at a pattern-space point.

    Args:
        kind: The pattern type (see PatternType).
        a: First color.
        b: Second color (unused for SOLID).
        point: The point in pattern space.

    Returns:
        The pattern color at the point.
    """
    result = a

    if kind == int(PatternType.STRIPE):
        if _floor_is_even(point.x) == 0:
            result = b

    elif kind == int(PatternType.GRADIENT):
        fraction = point.x - ti.floor(point.x)
        result = a + (b - a) * fraction

    elif kind == int(PatternType.RING):
        radius = ti.sqrt(point.x * point.x + point.z * point.z)
        if _floor_is_even(radius) == 0:
            result = b

    elif kind == int(PatternType.CHECKERS):
        total = ti.floor(point.x) + ti.floor(point.y) + ti.floor(point.z)
        if _floor_is_even(total) == 0:
            result = b

    return result


@ti.kernel
def _pattern_color_kernel(
    kind: ti.i32,
    ar: ti.f32,
    ag: ti.f32,
    ab: ti.f32,
    br: ti.f32,
    bg: ti.f32,
    bb: ti.f32,
    x: ti.f32,
    y: ti.f32,
    z: ti.f32,
) -> vec3:
    """Evaluate one pattern lookup for host-side callers."""
    return pattern_color(kind, vec3(ar, ag, ab), vec3(br, bg, bb), vec3(x, y, z))


# =============================================================================
# Pattern Descriptions (Python-side)
# =============================================================================


@dataclass(frozen=True)
class Pattern(ABC):
    """Abstract base class for all patterns.

    Subclasses set ``kind`` and expose their two colors through ``colors()``.
    The base class is never instantiated directly.

    Attributes:
        transform: Object-to-pattern space transform.
        uv_mapping: Map spherical surfaces to (u, v, 0) before lookup.
    """

    kind: ClassVar[PatternType]

    transform: Transform = field(default_factory=Transform, kw_only=True)
    uv_mapping: bool = field(default=False, kw_only=True)
    _matrix: Matrix4 = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        # Raises NonInvertibleTransformError for a singular pattern transform
        self.transform.inverse()
        object.__setattr__(self, "_matrix", self.transform.matrix())

    @abstractmethod
    def colors(self) -> tuple[Color, Color]:
        """Return the (a, b) color pair uploaded to the pattern tables."""

    def object_to_pattern(self) -> Matrix4:
        """Matrix mapping object-space points into pattern space."""
        return self._matrix

    def color_at(self, point: Sequence[float]) -> npt.NDArray[np.float64]:
        """Evaluate the pattern at a pattern-space point.

        Args:
            point: The point, already in pattern space.

        Returns:
            The RGB color as a float64 NumPy array.
        """
        a, b = self.colors()
        color = _pattern_color_kernel(
            int(self.kind), *a, *b, float(point[0]), float(point[1]), float(point[2])
        )
        return np.array([color[0], color[1], color[2]], dtype=np.float64)


@dataclass(frozen=True)
class SolidPattern(Pattern):
    """A single constant color."""

    kind: ClassVar[PatternType] = PatternType.SOLID

    color: Color = WHITE

    def __post_init__(self) -> None:
        object.__setattr__(self, "color", _as_color(self.color))
        super().__post_init__()

    def colors(self) -> tuple[Color, Color]:
        return self.color, self.color


@dataclass(frozen=True)
class _TwoColorPattern(Pattern):
    """Shared storage for patterns alternating or blending two colors."""

    a: Color = WHITE
    b: Color = BLACK

    def __post_init__(self) -> None:
        object.__setattr__(self, "a", _as_color(self.a))
        object.__setattr__(self, "b", _as_color(self.b))
        super().__post_init__()

    def colors(self) -> tuple[Color, Color]:
        return self.a, self.b


@dataclass(frozen=True)
class StripePattern(_TwoColorPattern):
    """Stripes alternating every unit along x."""

    kind: ClassVar[PatternType] = PatternType.STRIPE


@dataclass(frozen=True)
class GradientPattern(_TwoColorPattern):
    """Linear blend from a to b over each unit along x."""

    kind: ClassVar[PatternType] = PatternType.GRADIENT


@dataclass(frozen=True)
class RingPattern(_TwoColorPattern):
    """Concentric rings around the y axis."""

    kind: ClassVar[PatternType] = PatternType.RING


@dataclass(frozen=True)
class CheckersPattern(_TwoColorPattern):
    """Three-dimensional checkerboard of unit cubes."""

    kind: ClassVar[PatternType] = PatternType.CHECKERS
