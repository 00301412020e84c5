"""Phong surface material.

A material pairs a pattern (the surface color) with the reflectance
coefficients of the Phong illumination model. Coefficients are expected to
lie in [0, 1] but are not clamped, so over-bright materials are possible.
"""

from dataclasses import dataclass, field

from src.phong.patterns.pattern import Pattern, SolidPattern


@dataclass(frozen=True)
class Material:
    """Surface reflectance properties.

    Attributes:
        pattern: The surface color pattern.
        ambient: Fraction of the surface color always visible.
        diffuse: Weight of the Lambertian (facing ratio) term.
        specular: Weight of the specular highlight.
        shininess: Specular exponent. Larger values give tighter highlights.
    """

    pattern: Pattern = field(default_factory=SolidPattern)
    ambient: float = 0.1
    diffuse: float = 0.9
    specular: float = 0.9
    shininess: float = 200.0

    def __post_init__(self) -> None:
        if self.shininess <= 0.0:
            raise ValueError(f"shininess must be positive, got {self.shininess}")

    @classmethod
    def solid(cls, r: float, g: float, b: float, **coefficients: float) -> "Material":
        """Create a material with a single solid color.

        Args:
            r: Red channel.
            g: Green channel.
            b: Blue channel.
            **coefficients: Optional ambient/diffuse/specular/shininess overrides.

        Returns:
            A new Material.
        """
        return cls(pattern=SolidPattern((r, g, b)), **coefficients)
