"""Shape descriptions and the Taichi dispatch over primitive types.

A shape is a primitive (``Sphere`` or ``Plane``) placed in the world by an
object-to-world ``Transform`` and colored by a ``Material``. Host code works
with the frozen dataclasses below; kernels see only the ``ShapeType`` tag and
the matrices uploaded to the scene tables.

All world-space queries share one policy:
    1. Map the ray (or point) into object space with the inverse transform.
    2. Solve in object space with the primitive-specific function.
    3. Reject roots with t < epsilon and keep the smallest remaining one.

Normals are carried back to world space by the inverse-transpose of the
object transform, which keeps them perpendicular under non-uniform scaling.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.phong.core.ray import Ray
    >>> from src.phong.core.transform import Transform
    >>> from src.phong.geometry.shape import Sphere
    >>> sphere = Sphere(transform=Transform.identity().translate(0.0, 0.0, 5.0))
    >>> sphere.intersection(Ray.from_xyz((0, 0, 0), (0, 0, 1)))
    4.0
"""

import math
from dataclasses import dataclass, field
from enum import IntEnum
from typing import ClassVar, Sequence

import numpy as np
import numpy.typing as npt
import taichi as ti
import taichi.math as tm

from src.phong.core.config import EPSILON
from src.phong.core.ray import Ray
from src.phong.core.transform import Matrix4, Transform
from src.phong.geometry.plane import hit_plane_local, plane_normal_local
from src.phong.geometry.sphere import hit_sphere_local, sphere_normal_local
from src.phong.patterns.material import Material

vec3 = tm.vec3


class ShapeType(IntEnum):
    """Enumeration of supported primitive types."""

    SPHERE = 0
    PLANE = 1


# =============================================================================
# Taichi Dispatch (object space)
# =============================================================================


@ti.func
def intersect_local(kind: ti.i32, origin: vec3, direction: vec3, epsilon: ti.f32):
    """Nearest valid root of an object-space ray against a primitive.

    Roots below ``epsilon`` lie behind (or at) the ray origin and are
    discarded; among the remaining roots the smallest wins.

    Args:
        kind: The primitive type (see ShapeType).
        origin: Object-space ray origin.
        direction: Object-space ray direction.
        epsilon: Root-rejection and parallel-ray threshold.

    Returns:
        A tuple (hit, t).
    """
    hit = 0
    t = 0.0

    if kind == int(ShapeType.SPHERE):
        found, t0, t1 = hit_sphere_local(origin, direction)
        if found == 1:
            if t0 >= epsilon:
                hit = 1
                t = t0
            elif t1 >= epsilon:
                hit = 1
                t = t1

    elif kind == int(ShapeType.PLANE):
        found, t_plane = hit_plane_local(origin, direction, epsilon)
        if found == 1 and t_plane >= epsilon:
            hit = 1
            t = t_plane

    return hit, t


@ti.func
def normal_local(kind: ti.i32, point: vec3) -> vec3:
    """Unnormalized object-space normal of a primitive at a point."""
    result = plane_normal_local(point)
    if kind == int(ShapeType.SPHERE):
        result = sphere_normal_local(point)
    return result


# =============================================================================
# Shape Descriptions (Python-side)
# =============================================================================


@dataclass(frozen=True)
class Shape:
    """Base class for all shapes.

    The object-to-world matrix, its inverse and the normal matrix are
    computed at construction, so a singular transform raises
    ``NonInvertibleTransformError`` here rather than during rendering.

    Attributes:
        transform: Object-to-world transform.
        material: Surface material.
    """

    kind: ClassVar[ShapeType]

    transform: Transform = field(default_factory=Transform)
    material: Material = field(default_factory=Material)
    object_to_world: Matrix4 = field(init=False, repr=False, compare=False)
    world_to_object: Matrix4 = field(init=False, repr=False, compare=False)
    normal_matrix: Matrix4 = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        inverse = self.transform.inverse()
        object.__setattr__(self, "object_to_world", self.transform.matrix())
        object.__setattr__(self, "world_to_object", inverse)
        object.__setattr__(self, "normal_matrix", inverse.T)

    def intersection(self, ray: Ray, epsilon: float = EPSILON) -> float | None:
        """Nearest intersection of a world-space ray with this shape.

        Args:
            ray: World-space ray.
            epsilon: Roots below this value are rejected.

        Returns:
            The ray parameter t of the nearest valid hit, or None.
        """
        from src.phong.scene.intersection import PROBE_SLOT, probe_shape, query_intersection

        probe_shape(self)
        return query_intersection(PROBE_SLOT, ray, epsilon)

    def normal_at(self, point: Sequence[float]) -> npt.NDArray[np.float64]:
        """Unit world-space normal at a world-space point on the surface."""
        from src.phong.scene.intersection import PROBE_SLOT, probe_shape, query_normal

        probe_shape(self)
        return query_normal(PROBE_SLOT, point)

    def color_at(self, point: Sequence[float]) -> npt.NDArray[np.float64]:
        """Pattern color at a world-space point on the surface."""
        from src.phong.scene.intersection import PROBE_SLOT, probe_shape, query_color

        probe_shape(self)
        return query_color(PROBE_SLOT, point)


@dataclass(frozen=True)
class Sphere(Shape):
    """Unit sphere centered on the object-space origin."""

    kind: ClassVar[ShapeType] = ShapeType.SPHERE


@dataclass(frozen=True)
class Plane(Shape):
    """Infinite plane y = 0 with normal (0, 1, 0) in object space."""

    kind: ClassVar[ShapeType] = ShapeType.PLANE

    @classmethod
    def floor(cls, y: float, material: Material | None = None) -> "Plane":
        """Horizontal plane at height ``y`` facing up."""
        return cls(Transform.identity().translate(0.0, y, 0.0), material or Material())

    @classmethod
    def ceiling(cls, y: float, material: Material | None = None) -> "Plane":
        """Horizontal plane at height ``y`` facing down."""
        transform = Transform.identity().rotate_x(math.pi).translate(0.0, y, 0.0)
        return cls(transform, material or Material())

    @classmethod
    def left_wall(cls, x: float, material: Material | None = None) -> "Plane":
        """Vertical plane at ``x`` facing +x."""
        transform = Transform.identity().rotate_z(-math.pi / 2.0).translate(x, 0.0, 0.0)
        return cls(transform, material or Material())

    @classmethod
    def right_wall(cls, x: float, material: Material | None = None) -> "Plane":
        """Vertical plane at ``x`` facing -x."""
        transform = Transform.identity().rotate_z(math.pi / 2.0).translate(x, 0.0, 0.0)
        return cls(transform, material or Material())

    @classmethod
    def back_wall(cls, z: float, material: Material | None = None) -> "Plane":
        """Vertical plane at ``z`` facing -z (toward a camera on the -z side)."""
        transform = Transform.identity().rotate_x(-math.pi / 2.0).translate(0.0, 0.0, z)
        return cls(transform, material or Material())
