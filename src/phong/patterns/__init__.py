"""Surface patterns and Phong materials."""

from .material import Material
from .pattern import (
    BLACK,
    WHITE,
    CheckersPattern,
    Color,
    GradientPattern,
    Pattern,
    PatternType,
    RingPattern,
    SolidPattern,
    StripePattern,
    pattern_color,
)

__all__ = [
    "Material",
    "Pattern",
    "PatternType",
    "SolidPattern",
    "StripePattern",
    "GradientPattern",
    "RingPattern",
    "CheckersPattern",
    "Color",
    "WHITE",
    "BLACK",
    "pattern_color",
]
