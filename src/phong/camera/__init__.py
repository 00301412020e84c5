"""Camera module for primary ray generation."""

from .camera import Camera, get_camera_info, get_ray, setup_camera

__all__ = [
    "Camera",
    "setup_camera",
    "get_ray",
    "get_camera_info",
]
