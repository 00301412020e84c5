"""Phong shading with hard shadows from point lights.

This module implements the rendering kernels: for each pixel a primary ray is
generated by the camera, the nearest shape is found, and the color at the hit
is the ambient term plus, for every light that is not occluded, a diffuse and
a specular term:

    ambient  = surface * ambient_k
    diffuse  = (surface * light) * diffuse_k * dot(L, N)          if dot(L, N) >= 0
    specular = light * specular_k * dot(R, E) ^ shininess          if dot(R, E) > 0

where L is the unit direction to the light, N the surface normal (flipped to
face the viewer when the ray starts inside the surface), R the reflection of
-L about N, and E the direction back toward the eye. Colors accumulate
unclamped and are clamped to [0, 1] only as the final pixel value.

Shadow rays start at ``point + normal * bias`` to avoid self-shadowing, and
only blockers strictly between the surface and the light count. A light that
coincides with the shaded point has no direction and contributes nothing.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> import math
    >>> from src.phong.camera.camera import Camera
    >>> from src.phong.core.shader import image_to_uint8, render_image
    >>> from src.phong.core.transform import view_transform
    >>> from src.phong.scene.scene import Scene
    >>> camera = Camera(64, 48, math.pi / 3.0, view_transform((0, 0, -5), (0, 0, 0), (0, 1, 0)))
    >>> pixels = image_to_uint8(render_image(camera, Scene.default()))
    >>> pixels.shape
    (48, 64, 3)
"""

import logging
import time
from typing import Sequence

import numpy as np
import numpy.typing as npt
import taichi as ti
import taichi.math as tm

from src.phong.camera.camera import Camera, get_ray, setup_camera
from src.phong.core.config import DEFAULT_CONFIG, ShadingConfig
from src.phong.core.ray import (
    Ray,
    as_vec3,
    direction_and_distance,
    hadamard,
    ray_at,
    reflect,
)
from src.phong.scene.intersection import (
    is_occluded,
    light_colors,
    light_positions,
    material_ambient,
    material_diffuse,
    material_shininess,
    material_specular,
    nearest_intersection,
    num_lights,
    shape_color,
    shape_normal,
)
from src.phong.scene.scene import Scene

logger = logging.getLogger(__name__)

# Type alias for 3D vectors
vec3 = tm.vec3

# Color returned for rays that hit nothing
BACKGROUND_COLOR = vec3(0.0, 0.0, 0.0)

# =============================================================================
# Render Target (Image Buffer)
# =============================================================================

# Maximum supported image dimensions (preallocated to avoid kernel recompilation)
MAX_IMAGE_WIDTH = 2048
MAX_IMAGE_HEIGHT = 2048

# Image dimensions (actual active size)
_image_width = ti.field(dtype=ti.i32, shape=())
_image_height = ti.field(dtype=ti.i32, shape=())

# Clamped color buffer, indexed [x, y] (preallocated to max size)
_color_buffer = ti.Vector.field(3, dtype=ti.f32, shape=(MAX_IMAGE_WIDTH, MAX_IMAGE_HEIGHT))

# Flag to track if render target is initialized
_render_target_initialized = ti.field(dtype=ti.i32, shape=())

# Single-pixel and single-point results
_single_color = ti.Vector.field(3, dtype=ti.f32, shape=())


def setup_render_target(width: int, height: int) -> None:
    """Initialize the render target buffer.

    Sets the active image dimensions and clears the buffer. The buffer is
    preallocated to MAX_IMAGE_WIDTH x MAX_IMAGE_HEIGHT to avoid Taichi
    kernel recompilation.

    Args:
        width: Image width in pixels (max MAX_IMAGE_WIDTH).
        height: Image height in pixels (max MAX_IMAGE_HEIGHT).

    Raises:
        ValueError: If dimensions are non-positive or exceed the maximum.
    """
    if width <= 0 or height <= 0:
        raise ValueError(f"Image dimensions must be positive, got {width}x{height}")
    if width > MAX_IMAGE_WIDTH or height > MAX_IMAGE_HEIGHT:
        raise ValueError(
            f"Image dimensions ({width}x{height}) exceed maximum supported "
            f"({MAX_IMAGE_WIDTH}x{MAX_IMAGE_HEIGHT})"
        )

    _image_width[None] = width
    _image_height[None] = height
    _render_target_initialized[None] = 1
    _color_buffer.fill(0.0)


def get_image_dimensions() -> tuple[int, int]:
    """Get the current render target dimensions.

    Returns:
        Tuple of (width, height).
    """
    return int(_image_width[None]), int(_image_height[None])


def get_image() -> npt.NDArray[np.float32]:
    """Copy the active region of the color buffer.

    Returns:
        An array of shape (height, width, 3), row 0 at the top.

    Raises:
        RuntimeError: If the render target has not been set up.
    """
    if _render_target_initialized[None] == 0:
        raise RuntimeError("Render target not set up. Call setup_render_target() first.")
    width, height = get_image_dimensions()
    buffer = _color_buffer.to_numpy()[:width, :height]
    return np.ascontiguousarray(np.transpose(buffer, (1, 0, 2)))


# =============================================================================
# Shading Core
# =============================================================================


@ti.func
def shade_hit(
    index: ti.i32,
    point: vec3,
    normal: vec3,
    ray_direction: vec3,
    epsilon: ti.f32,
    bias: ti.f32,
) -> vec3:
    """Phong color of a surface point, summed over all lights.

    Args:
        index: Table slot of the shape that was hit.
        point: World-space hit point.
        normal: Unit normal, already flipped to face the incoming ray.
        ray_direction: Direction of the ray that hit the point.
        epsilon: Root-rejection threshold for shadow rays.
        bias: Shadow ray offset along the normal.

    Returns:
        The unclamped color.
    """
    surface = shape_color(index, point)
    result = surface * material_ambient[index]

    eye_direction = -ray_direction
    shadow_origin = point + normal * bias

    for light in range(num_lights[None]):
        light_color = light_colors[light]
        valid, distance, light_direction = direction_and_distance(light_positions[light] - point)

        if valid == 1:
            if is_occluded(shadow_origin, light_direction, distance, epsilon) == 0:
                facing_ratio = tm.dot(light_direction, normal)

                # Light behind the surface: no diffuse, no specular
                if facing_ratio >= 0.0:
                    effective_color = hadamard(surface, light_color)
                    diffuse = effective_color * material_diffuse[index] * facing_ratio

                    specular = vec3(0.0, 0.0, 0.0)
                    reflection = reflect(-light_direction, normal)
                    reflect_ratio = tm.dot(reflection, eye_direction)
                    if reflect_ratio > 0.0:
                        factor = ti.pow(reflect_ratio, material_shininess[index])
                        specular = light_color * material_specular[index] * factor

                    result += diffuse + specular

    return result


@ti.func
def trace(origin: vec3, direction: vec3, epsilon: ti.f32, bias: ti.f32) -> vec3:
    """Trace one ray into the bound scene and return its clamped color.

    Args:
        origin: World-space ray origin.
        direction: World-space ray direction.
        epsilon: Root-rejection threshold.
        bias: Shadow ray offset along the normal.

    Returns:
        The color with each channel clamped to [0, 1].
    """
    color = BACKGROUND_COLOR
    hit, t, index = nearest_intersection(origin, direction, epsilon)

    if hit == 1:
        point = ray_at(origin, direction, t)
        normal = shape_normal(index, point)

        # Ray started inside the surface
        if tm.dot(direction, normal) > 0.0:
            normal = -normal

        color = shade_hit(index, point, normal, direction, epsilon, bias)

    return tm.clamp(color, 0.0, 1.0)


# =============================================================================
# Kernels
# =============================================================================


@ti.kernel
def _render_image_kernel(width: ti.i32, height: ti.i32, epsilon: ti.f32, bias: ti.f32):
    """Render every pixel of the active region in parallel."""
    for i, j in ti.ndrange(width, height):
        origin, direction = get_ray(ti.cast(i, ti.f32), ti.cast(j, ti.f32))
        _color_buffer[i, j] = trace(origin, direction, epsilon, bias)


@ti.kernel
def _render_pixel_kernel(px: ti.f32, py: ti.f32, epsilon: ti.f32, bias: ti.f32):
    for _ in range(1):
        origin, direction = get_ray(px, py)
        _single_color[None] = trace(origin, direction, epsilon, bias)


@ti.kernel
def _shade_kernel(
    index: ti.i32,
    px: ti.f32,
    py: ti.f32,
    pz: ti.f32,
    nx: ti.f32,
    ny: ti.f32,
    nz: ti.f32,
    dx: ti.f32,
    dy: ti.f32,
    dz: ti.f32,
    epsilon: ti.f32,
    bias: ti.f32,
):
    for _ in range(1):
        _single_color[None] = shade_hit(
            index, vec3(px, py, pz), vec3(nx, ny, nz), vec3(dx, dy, dz), epsilon, bias
        )


def _read_single_color() -> tuple[float, float, float]:
    c = _single_color[None]
    return float(c[0]), float(c[1]), float(c[2])


# =============================================================================
# High-Level Rendering API
# =============================================================================


def render(
    camera: Camera,
    scene: Scene,
    px: int,
    py: int,
    config: ShadingConfig = DEFAULT_CONFIG,
) -> tuple[float, float, float]:
    """Render a single pixel.

    The host entry points share the module-level scene tables, camera fields
    and result buffers, so they are not thread-safe. Pixels are evaluated in
    parallel by ``render_image``, which shades the whole canvas in one kernel.

    Args:
        camera: The camera to render through.
        scene: The scene to render.
        px: Pixel column, 0 at the left edge.
        py: Pixel row, 0 at the top edge.
        config: Intersection and shadow tolerances.

    Returns:
        The clamped (r, g, b) color of the pixel.
    """
    scene.bind()
    setup_camera(camera)
    _render_pixel_kernel(float(px), float(py), config.epsilon, config.bias)
    return _read_single_color()


def render_image(
    camera: Camera,
    scene: Scene,
    config: ShadingConfig = DEFAULT_CONFIG,
) -> npt.NDArray[np.float32]:
    """Render every pixel of the camera's canvas.

    Pixels are independent, so the whole image is evaluated by one parallel
    kernel.

    Args:
        camera: The camera to render through.
        scene: The scene to render.
        config: Intersection and shadow tolerances.

    Returns:
        An array of shape (canvas_height, canvas_width, 3) with channels in
        [0, 1]; ``image[y, x]`` is pixel (x, y).

    Raises:
        ValueError: If the canvas exceeds MAX_IMAGE_WIDTH x MAX_IMAGE_HEIGHT.
    """
    width, height = camera.canvas_width, camera.canvas_height
    setup_render_target(width, height)
    scene.bind()
    setup_camera(camera)

    start = time.perf_counter()
    _render_image_kernel(width, height, config.epsilon, config.bias)
    ti.sync()
    logger.debug("Rendered %dx%d image in %.3fs", width, height, time.perf_counter() - start)

    return get_image()


def shade(
    scene: Scene,
    shape_index: int,
    point: Sequence[float],
    normal: Sequence[float],
    ray: Ray,
    config: ShadingConfig = DEFAULT_CONFIG,
) -> tuple[float, float, float]:
    """Phong color at an explicit surface point, before clamping.

    Args:
        scene: The scene providing the lights and shadow casters.
        shape_index: Index into ``scene.shapes`` of the shaded shape.
        point: World-space surface point.
        normal: Unit normal, already facing the viewer.
        ray: The ray that reached the point; only its direction is used.
        config: Intersection and shadow tolerances.

    Returns:
        The unclamped (r, g, b) color.

    Raises:
        IndexError: If ``shape_index`` is not a shape of the scene.
    """
    if not 0 <= shape_index < len(scene.shapes):
        raise IndexError(f"Shape index {shape_index} out of range for {len(scene.shapes)} shapes")

    scene.bind()
    _shade_kernel(
        shape_index,
        *as_vec3(point).tolist(),
        *as_vec3(normal).tolist(),
        *as_vec3(ray.direction).tolist(),
        config.epsilon,
        config.bias,
    )
    return _read_single_color()


def image_to_uint8(image: npt.NDArray[np.floating]) -> npt.NDArray[np.uint8]:
    """Quantize a float image to 8 bits per channel.

    Each channel becomes ``round(channel * 255)`` clamped to [0, 255], with
    halves rounded up.

    Raises:
        ValueError: If the last axis does not hold 3 channels.
    """
    arr = np.asarray(image, dtype=np.float64)
    if arr.ndim == 0 or arr.shape[-1] != 3:
        raise ValueError(f"Expected an RGB image with a trailing axis of 3, got shape {arr.shape}")
    return np.clip(np.floor(arr * 255.0 + 0.5), 0.0, 255.0).astype(np.uint8)
