"""Scene: an ordered collection of shapes lit by point lights.

The ``Scene`` value is immutable. Kernels never see it directly; it is
uploaded to the tables in ``src.phong.scene.intersection`` the first time it
is queried or rendered, and stays bound until another scene is used.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.phong.core.ray import Ray
    >>> from src.phong.scene.scene import Scene
    >>> scene = Scene.default()
    >>> t, shape = scene.nearest_intersection(Ray.from_xyz((0, 0, -5), (0, 0, 1)))
    >>> t
    4.0
"""

from dataclasses import dataclass, field
from typing import Iterable

from src.phong.core.config import EPSILON
from src.phong.core.ray import Ray
from src.phong.geometry.shape import Shape, Sphere
from src.phong.patterns.material import Material
from src.phong.scene.intersection import bind_scene, query_nearest, query_occluded
from src.phong.scene.light import PointLight


@dataclass(frozen=True, eq=False)
class Scene:
    """Shapes in insertion order plus the lights illuminating them.

    Attributes:
        shapes: The shapes; the order decides ties between equal hits.
        lights: The point lights.
    """

    shapes: tuple[Shape, ...] = field(default_factory=tuple)
    lights: tuple[PointLight, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        object.__setattr__(self, "shapes", tuple(self.shapes))
        object.__setattr__(self, "lights", tuple(self.lights))

    @classmethod
    def default(cls) -> "Scene":
        """A magenta unit sphere at the origin lit from (-10, 10, -10)."""
        sphere = Sphere(material=Material.solid(1.0, 0.2, 1.0))
        light = PointLight.white((-10.0, 10.0, -10.0))
        return cls((sphere,), (light,))

    def with_shapes(self, shapes: Iterable[Shape]) -> "Scene":
        """Return a copy with ``shapes`` appended."""
        return Scene(self.shapes + tuple(shapes), self.lights)

    def with_lights(self, lights: Iterable[PointLight]) -> "Scene":
        """Return a copy with ``lights`` appended."""
        return Scene(self.shapes, self.lights + tuple(lights))

    def bind(self) -> None:
        """Upload this scene to the Taichi tables if it is not already bound."""
        bind_scene(self)

    def nearest_intersection(self, ray: Ray, epsilon: float = EPSILON) -> tuple[float, Shape] | None:
        """Closest hit of a ray against the scene.

        Exact ties go to the shape that appears first in ``shapes``.

        Args:
            ray: World-space ray.
            epsilon: Roots below this value are rejected.

        Returns:
            ``(t, shape)`` for the nearest hit, or None on a miss.
        """
        self.bind()
        result = query_nearest(ray, epsilon)
        if result is None:
            return None
        index, t = result
        return t, self.shapes[index]

    def is_occluded(self, ray: Ray, max_distance: float, epsilon: float = EPSILON) -> bool:
        """Whether any shape blocks ``ray`` before ``max_distance``.

        Blockers behind the ray origin or beyond ``max_distance`` are ignored.
        """
        self.bind()
        return query_occluded(ray, max_distance, epsilon)
