"""Scene storage in Taichi fields and the ray queries that walk it.

Shapes, their materials and their patterns are flattened into Structure of
Arrays fields so kernels can dispatch on the ``ShapeType``/``PatternType``
tags without Python objects. Slots ``0 .. num_shapes - 1`` hold the bound
scene in insertion order. One extra slot, ``PROBE_SLOT``, sits past the end
and holds a single shape for host-side per-shape queries; the scene loops
never reach it.

The bound scene is tracked by identity: ``bind_scene`` re-uploads only when
a different ``Scene`` object is passed in.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.phong.core.ray import Ray
    >>> from src.phong.scene.intersection import bind_scene, query_nearest
    >>> from src.phong.scene.scene import Scene
    >>> bind_scene(Scene.default())
    >>> query_nearest(Ray.from_xyz((0, 0, -5), (0, 0, 1)), 1e-4)
    (0, 4.0)
"""

import logging
from typing import TYPE_CHECKING, Sequence

import numpy as np
import numpy.typing as npt
import taichi as ti
import taichi.math as tm

from src.phong.core.ray import Ray, as_vec3, safe_normalize, transform_point, transform_vector
from src.phong.geometry.shape import Shape, ShapeType, intersect_local, normal_local
from src.phong.geometry.sphere import sphere_uv
from src.phong.patterns.pattern import pattern_color

if TYPE_CHECKING:
    from src.phong.scene.scene import Scene

logger = logging.getLogger(__name__)

# Type alias for 3D vectors using Taichi's math module
vec3 = tm.vec3

# Maximum number of shapes and lights supported in a scene
MAX_SHAPES = 1024
MAX_LIGHTS = 64

# Reserved slot for single-shape queries from the host
PROBE_SLOT = MAX_SHAPES
_TABLE_SIZE = MAX_SHAPES + 1

# Shape storage: Structure of Arrays layout for GPU efficiency
shape_kinds = ti.field(dtype=ti.i32, shape=_TABLE_SIZE)
shape_world_to_object = ti.Matrix.field(4, 4, dtype=ti.f32, shape=_TABLE_SIZE)
shape_normal_matrices = ti.Matrix.field(4, 4, dtype=ti.f32, shape=_TABLE_SIZE)
num_shapes = ti.field(dtype=ti.i32, shape=())

# Material coefficients, indexed by shape slot
material_ambient = ti.field(dtype=ti.f32, shape=_TABLE_SIZE)
material_diffuse = ti.field(dtype=ti.f32, shape=_TABLE_SIZE)
material_specular = ti.field(dtype=ti.f32, shape=_TABLE_SIZE)
material_shininess = ti.field(dtype=ti.f32, shape=_TABLE_SIZE)

# Pattern storage, indexed by shape slot
pattern_kinds = ti.field(dtype=ti.i32, shape=_TABLE_SIZE)
pattern_color_a = ti.Vector.field(3, dtype=ti.f32, shape=_TABLE_SIZE)
pattern_color_b = ti.Vector.field(3, dtype=ti.f32, shape=_TABLE_SIZE)
pattern_object_to_pattern = ti.Matrix.field(4, 4, dtype=ti.f32, shape=_TABLE_SIZE)
pattern_uv_mapping = ti.field(dtype=ti.i32, shape=_TABLE_SIZE)

# Light storage
light_positions = ti.Vector.field(3, dtype=ti.f32, shape=MAX_LIGHTS)
light_colors = ti.Vector.field(3, dtype=ti.f32, shape=MAX_LIGHTS)
num_lights = ti.field(dtype=ti.i32, shape=())

# Scratch outputs written by the query kernels
_query_hit = ti.field(dtype=ti.i32, shape=())
_query_t = ti.field(dtype=ti.f32, shape=())
_query_index = ti.field(dtype=ti.i32, shape=())
_query_vector = ti.Vector.field(3, dtype=ti.f32, shape=())

_bound_scene: "Scene | None" = None


# =============================================================================
# Upload
# =============================================================================


def write_shape(slot: int, shape: Shape) -> None:
    """Copy one shape (with its material and pattern) into a table slot.

    Args:
        slot: Destination index, ``0 <= slot <= PROBE_SLOT``.
        shape: The shape to upload.

    Raises:
        IndexError: If the slot is outside the tables.
    """
    if not 0 <= slot < _TABLE_SIZE:
        raise IndexError(f"Shape slot {slot} out of range [0, {_TABLE_SIZE})")

    material = shape.material
    pattern = material.pattern
    color_a, color_b = pattern.colors()

    shape_kinds[slot] = int(shape.kind)
    shape_world_to_object[slot] = ti.Matrix(shape.world_to_object.tolist())
    shape_normal_matrices[slot] = ti.Matrix(shape.normal_matrix.tolist())

    material_ambient[slot] = material.ambient
    material_diffuse[slot] = material.diffuse
    material_specular[slot] = material.specular
    material_shininess[slot] = material.shininess

    pattern_kinds[slot] = int(pattern.kind)
    pattern_color_a[slot] = color_a
    pattern_color_b[slot] = color_b
    pattern_object_to_pattern[slot] = ti.Matrix(pattern.object_to_pattern().tolist())
    pattern_uv_mapping[slot] = 1 if pattern.uv_mapping else 0


def probe_shape(shape: Shape) -> None:
    """Upload a single shape into the probe slot."""
    write_shape(PROBE_SLOT, shape)


def bind_scene(scene: "Scene") -> None:
    """Make ``scene`` the one the scene queries and the renderer see.

    Uploading is skipped when the same scene object is already bound.

    Raises:
        RuntimeError: If the scene exceeds MAX_SHAPES or MAX_LIGHTS.
    """
    global _bound_scene
    if _bound_scene is scene:
        return

    if len(scene.shapes) > MAX_SHAPES:
        raise RuntimeError(f"Maximum number of shapes ({MAX_SHAPES}) exceeded")
    if len(scene.lights) > MAX_LIGHTS:
        raise RuntimeError(f"Maximum number of lights ({MAX_LIGHTS}) exceeded")

    # Tables are about to hold a partial upload; nothing counts as bound until done
    unbind_scene()

    for slot, shape in enumerate(scene.shapes):
        write_shape(slot, shape)
    num_shapes[None] = len(scene.shapes)

    for slot, light in enumerate(scene.lights):
        light_positions[slot] = light.position.tolist()
        light_colors[slot] = light.color.tolist()
    num_lights[None] = len(scene.lights)

    _bound_scene = scene
    logger.debug("Bound scene with %d shapes and %d lights", len(scene.shapes), len(scene.lights))


def unbind_scene() -> None:
    """Forget the bound scene and empty the tables.

    The field data is not cleared but will be overwritten on the next bind.
    """
    global _bound_scene
    _bound_scene = None
    num_shapes[None] = 0
    num_lights[None] = 0


def get_shape_count() -> int:
    """Get the number of shapes in the bound scene."""
    return int(num_shapes[None])


def get_light_count() -> int:
    """Get the number of lights in the bound scene."""
    return int(num_lights[None])


# =============================================================================
# Per-shape Taichi Functions
# =============================================================================


@ti.func
def intersect_shape(index: ti.i32, origin: vec3, direction: vec3, epsilon: ti.f32):
    """Intersect a world-space ray with the shape in ``index``.

    The ray is carried into object space with the stored inverse transform.
    Since the direction is transformed linearly, object-space t equals
    world-space t.

    Returns:
        A tuple (hit, t) with t >= epsilon on a hit.
    """
    world_to_object = shape_world_to_object[index]
    local_origin = transform_point(world_to_object, origin)
    local_direction = transform_vector(world_to_object, direction)
    return intersect_local(shape_kinds[index], local_origin, local_direction, epsilon)


@ti.func
def shape_normal(index: ti.i32, world_point: vec3) -> vec3:
    """Unit world-space normal of the shape in ``index`` at a surface point.

    The object-space normal is carried back with the inverse-transpose and
    its homogeneous component dropped before normalizing.
    """
    local_point = transform_point(shape_world_to_object[index], world_point)
    local_normal = normal_local(shape_kinds[index], local_point)
    world_normal = transform_vector(shape_normal_matrices[index], local_normal)
    return safe_normalize(world_normal)


@ti.func
def shape_color(index: ti.i32, world_point: vec3) -> vec3:
    """Pattern color of the shape in ``index`` at a world-space point."""
    object_point = transform_point(shape_world_to_object[index], world_point)

    lookup = object_point
    if pattern_uv_mapping[index] == 1 and shape_kinds[index] == int(ShapeType.SPHERE):
        lookup = sphere_uv(object_point)

    pattern_point = transform_point(pattern_object_to_pattern[index], lookup)
    return pattern_color(
        pattern_kinds[index], pattern_color_a[index], pattern_color_b[index], pattern_point
    )


# =============================================================================
# Scene Taichi Functions
# =============================================================================


@ti.func
def nearest_intersection(origin: vec3, direction: vec3, epsilon: ti.f32):
    """Closest intersection of a ray with the bound scene.

    Shapes are tested in insertion order and a later shape only replaces
    the current best when strictly closer, so exact ties go to the shape
    added first.

    Args:
        origin: World-space ray origin.
        direction: World-space ray direction.
        epsilon: Root-rejection threshold.

    Returns:
        A tuple (hit, t, index). ``index`` is -1 on a miss.
    """
    found = 0
    closest_t = 0.0
    closest_index = -1

    for i in range(num_shapes[None]):
        hit, t = intersect_shape(i, origin, direction, epsilon)
        if hit == 1:
            if found == 0 or t < closest_t:
                found = 1
                closest_t = t
                closest_index = i

    return found, closest_t, closest_index


@ti.func
def is_occluded(origin: vec3, direction: vec3, max_distance: ti.f32, epsilon: ti.f32) -> ti.i32:
    """Test whether any shape blocks a ray before ``max_distance``.

    Returns:
        1 if some shape is hit with epsilon <= t < max_distance, 0 otherwise.
    """
    occluded = 0

    for i in range(num_shapes[None]):
        if occluded == 0:
            hit, t = intersect_shape(i, origin, direction, epsilon)
            if hit == 1 and t < max_distance:
                occluded = 1

    return occluded


# =============================================================================
# Query Kernels
# =============================================================================
#
# Each kernel body sits in a one-iteration loop so that the scene loops in
# the functions above run serially instead of as parallel top-level loops.


@ti.kernel
def _nearest_kernel(
    ox: ti.f32,
    oy: ti.f32,
    oz: ti.f32,
    dx: ti.f32,
    dy: ti.f32,
    dz: ti.f32,
    epsilon: ti.f32,
):
    for _ in range(1):
        hit, t, index = nearest_intersection(vec3(ox, oy, oz), vec3(dx, dy, dz), epsilon)
        _query_hit[None] = hit
        _query_t[None] = t
        _query_index[None] = index


@ti.kernel
def _occluded_kernel(
    ox: ti.f32,
    oy: ti.f32,
    oz: ti.f32,
    dx: ti.f32,
    dy: ti.f32,
    dz: ti.f32,
    max_distance: ti.f32,
    epsilon: ti.f32,
):
    for _ in range(1):
        _query_hit[None] = is_occluded(vec3(ox, oy, oz), vec3(dx, dy, dz), max_distance, epsilon)


@ti.kernel
def _shape_intersection_kernel(
    index: ti.i32,
    ox: ti.f32,
    oy: ti.f32,
    oz: ti.f32,
    dx: ti.f32,
    dy: ti.f32,
    dz: ti.f32,
    epsilon: ti.f32,
):
    for _ in range(1):
        hit, t = intersect_shape(index, vec3(ox, oy, oz), vec3(dx, dy, dz), epsilon)
        _query_hit[None] = hit
        _query_t[None] = t


@ti.kernel
def _shape_normal_kernel(index: ti.i32, x: ti.f32, y: ti.f32, z: ti.f32):
    for _ in range(1):
        _query_vector[None] = shape_normal(index, vec3(x, y, z))


@ti.kernel
def _shape_color_kernel(index: ti.i32, x: ti.f32, y: ti.f32, z: ti.f32):
    for _ in range(1):
        _query_vector[None] = shape_color(index, vec3(x, y, z))


def _ray_args(ray: Ray) -> tuple[float, ...]:
    origin = as_vec3(ray.origin)
    direction = as_vec3(ray.direction)
    return (*origin.tolist(), *direction.tolist())


def _read_vector() -> npt.NDArray[np.float64]:
    v = _query_vector[None]
    return np.array([v[0], v[1], v[2]], dtype=np.float64)


def query_nearest(ray: Ray, epsilon: float) -> tuple[int, float] | None:
    """Nearest hit in the bound scene as (shape index, t), or None."""
    _nearest_kernel(*_ray_args(ray), epsilon)
    if _query_hit[None] == 0:
        return None
    return int(_query_index[None]), float(_query_t[None])


def query_occluded(ray: Ray, max_distance: float, epsilon: float) -> bool:
    """Whether the bound scene blocks ``ray`` before ``max_distance``."""
    _occluded_kernel(*_ray_args(ray), max_distance, epsilon)
    return _query_hit[None] == 1


def query_intersection(slot: int, ray: Ray, epsilon: float) -> float | None:
    """Nearest valid t of ``ray`` against the shape in ``slot``, or None."""
    _shape_intersection_kernel(slot, *_ray_args(ray), epsilon)
    if _query_hit[None] == 0:
        return None
    return float(_query_t[None])


def query_normal(slot: int, point: Sequence[float]) -> npt.NDArray[np.float64]:
    """Unit world-space normal of the shape in ``slot`` at ``point``."""
    _shape_normal_kernel(slot, *as_vec3(point).tolist())
    return _read_vector()


def query_color(slot: int, point: Sequence[float]) -> npt.NDArray[np.float64]:
    """Pattern color of the shape in ``slot`` at a world-space ``point``."""
    _shape_color_kernel(slot, *as_vec3(point).tolist())
    return _read_vector()
