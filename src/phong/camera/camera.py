"""Perspective camera mapping pixel coordinates to primary rays.

The canvas sits one unit in front of the eye at z = -1 in camera space. The
field of view spans the longer canvas side, and pixels are square:

    half_view = tan(fov / 2),  aspect = width / height
    aspect >= 1:  half_width = half_view,           half_height = half_view / aspect
    aspect <  1:  half_width = half_view * aspect,  half_height = half_view
    pixel_size = 2 * half_width / width

Pixel (0, 0) is the top-left corner; x grows to the right and y grows
downward. Rays pass through pixel centers.

The camera's ``transform`` is world-to-camera (see ``view_transform``); it is
inverted once at construction and the camera-to-world matrix is used for ray
generation.

Example:
    >>> import math
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.phong.camera.camera import Camera, setup_camera, get_ray
    >>> from src.phong.core.transform import view_transform
    >>> camera = Camera(
    ...     canvas_width=160,
    ...     canvas_height=120,
    ...     field_of_view=math.pi / 3.0,
    ...     transform=view_transform((0, 1.5, -5), (0, 1, 0), (0, 1, 0)),
    ... )
    >>> setup_camera(camera)
    >>> @ti.kernel
    ... def render():
    ...     origin, direction = get_ray(80.0, 60.0)
"""

import logging
import math
from dataclasses import dataclass, field

import numpy as np
import taichi as ti

from src.phong.core.ray import Ray, normalize, transform_point, vec3
from src.phong.core.transform import Matrix4, Transform, as_matrix, invert_matrix

logger = logging.getLogger(__name__)


# =============================================================================
# Camera Data Structures
# =============================================================================


@dataclass(frozen=True)
class Camera:
    """Configuration for a perspective camera.

    Attributes:
        canvas_width: Image width in pixels.
        canvas_height: Image height in pixels.
        field_of_view: Angle spanned by the longer canvas side, in radians.
        transform: World-to-camera transform, as a ``Transform`` or a 4x4
            matrix such as the one returned by ``view_transform``.
    """

    canvas_width: int
    canvas_height: int
    field_of_view: float
    transform: Transform | Matrix4 = field(default_factory=Transform)
    camera_to_world: Matrix4 = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        if self.canvas_width <= 0 or self.canvas_height <= 0:
            raise ValueError(
                f"Canvas dimensions must be positive, got {self.canvas_width}x{self.canvas_height}"
            )
        if not 0.0 < self.field_of_view < math.pi:
            raise ValueError(f"field_of_view must lie in (0, pi), got {self.field_of_view}")
        # Raises NonInvertibleTransformError for a singular view transform
        if isinstance(self.transform, Transform):
            inverse = self.transform.inverse()
        else:
            inverse = invert_matrix(as_matrix(self.transform))
        object.__setattr__(self, "camera_to_world", inverse)

    def compute_pixel_size(self) -> tuple[float, float, float]:
        """Compute the canvas half extents and the size of one pixel.

        Returns:
            A tuple (half_width, half_height, pixel_size) in canvas units.
        """
        half_view = math.tan(self.field_of_view / 2.0)
        aspect = self.canvas_width / self.canvas_height
        if aspect >= 1.0:
            half_width = half_view
            half_height = half_view / aspect
        else:
            half_width = half_view * aspect
            half_height = half_view
        pixel_size = 2.0 * half_width / self.canvas_width
        return half_width, half_height, pixel_size

    @property
    def pixel_size(self) -> float:
        return self.compute_pixel_size()[2]

    def ray_for_pixel(self, px: float, py: float) -> Ray:
        """Primary ray through the center of pixel (px, py), in world space.

        Args:
            px: Column, 0 at the left edge.
            py: Row, 0 at the top edge.

        Returns:
            A Ray with a unit direction.
        """
        half_width, half_height, pixel_size = self.compute_pixel_size()
        world_x = half_width - (px + 0.5) * pixel_size
        world_y = half_height - (py + 0.5) * pixel_size

        m = self.camera_to_world
        pixel = (m @ np.array([world_x, world_y, -1.0, 1.0]))[:3]
        origin = (m @ np.array([0.0, 0.0, 0.0, 1.0]))[:3]
        direction = pixel - origin
        return Ray(origin, direction / np.linalg.norm(direction))


# =============================================================================
# Taichi Fields for Camera State (GPU-accessible)
# =============================================================================

_camera_to_world = ti.Matrix.field(4, 4, dtype=ti.f32, shape=())
_half_width = ti.field(dtype=ti.f32, shape=())
_half_height = ti.field(dtype=ti.f32, shape=())
_pixel_size = ti.field(dtype=ti.f32, shape=())


# =============================================================================
# Camera Setup (Python-side, called once per camera configuration)
# =============================================================================


def setup_camera(camera: Camera) -> None:
    """Upload camera state for use by ``get_ray`` inside kernels.

    Args:
        camera: The camera to render through.

    Note:
        This function writes to Taichi fields and should be called from
        Python (not from within a Taichi kernel).
    """
    half_width, half_height, pixel_size = camera.compute_pixel_size()
    _camera_to_world[None] = ti.Matrix(camera.camera_to_world.tolist())
    _half_width[None] = half_width
    _half_height[None] = half_height
    _pixel_size[None] = pixel_size
    logger.debug(
        "Camera %dx%d, half extents (%.4f, %.4f), pixel size %.6f",
        camera.canvas_width,
        camera.canvas_height,
        half_width,
        half_height,
        pixel_size,
    )


# =============================================================================
# Ray Generation (Taichi-compatible, GPU-callable)
# =============================================================================


@ti.func
def get_ray(px: ti.f32, py: ti.f32):
    """Generate the primary ray through the center of pixel (px, py).

    Args:
        px: Column, 0 at the left edge.
        py: Row, 0 at the top edge.

    Returns:
        A tuple (origin, direction) in world space; direction is unit length.
    """
    pixel_size = _pixel_size[None]
    world_x = _half_width[None] - (px + 0.5) * pixel_size
    world_y = _half_height[None] - (py + 0.5) * pixel_size

    m = _camera_to_world[None]
    pixel = transform_point(m, vec3(world_x, world_y, -1.0))
    origin = transform_point(m, vec3(0.0, 0.0, 0.0))
    direction = normalize(pixel - origin)
    return origin, direction


def get_camera_info() -> dict[str, float | tuple[float, float, float]]:
    """Get current camera state for debugging.

    Returns:
        Dictionary with origin, half_width, half_height and pixel_size.
    """
    m = _camera_to_world[None]
    return {
        "origin": (float(m[0, 3]), float(m[1, 3]), float(m[2, 3])),
        "half_width": float(_half_width[None]),
        "half_height": float(_half_height[None]),
        "pixel_size": float(_pixel_size[None]),
    }
