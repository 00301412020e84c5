"""Point light sources.

A point light sits at a position and emits a constant RGB color in every
direction. There is no distance falloff.
"""

from dataclasses import dataclass
from typing import Sequence

import numpy as np
import numpy.typing as npt

from src.phong.core.ray import ZERO_LENGTH_SQUARED, as_vec3


@dataclass(frozen=True, eq=False)
class PointLight:
    """An infinitesimal light source.

    Attributes:
        position: World-space position.
        color: RGB intensity. Channels may exceed 1.
    """

    position: npt.NDArray[np.float64]
    color: npt.NDArray[np.float64]

    def __post_init__(self) -> None:
        object.__setattr__(self, "position", as_vec3(self.position))
        object.__setattr__(self, "color", as_vec3(self.color))

    @classmethod
    def white(cls, position: Sequence[float]) -> "PointLight":
        """Create a light of color (1, 1, 1)."""
        return cls(as_vec3(position), np.ones(3))

    def direction_from(self, point: Sequence[float]) -> tuple[float, npt.NDArray[np.float64]] | None:
        """Distance and unit direction from ``point`` to the light.

        Returns:
            ``(distance, direction)``, or None when the point coincides with
            the light and no direction exists.
        """
        delta = self.position - as_vec3(point)
        distance_sq = float(np.dot(delta, delta))
        if distance_sq <= ZERO_LENGTH_SQUARED:
            return None
        distance = float(np.sqrt(distance_sq))
        return distance, delta / distance
