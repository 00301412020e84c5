"""Taichi-based Phong ray tracer.

This package renders scenes of transformed spheres and planes lit by point
lights, using the Phong illumination model with hard shadows.

Subpackages:
    core: Ray and vector utilities, transforms, tolerances and the shader
    geometry: Sphere and plane primitives and the shape descriptions
    patterns: Surface color patterns and Phong materials
    scene: Scene container, point lights and the Taichi scene tables
    camera: Perspective camera with per-pixel ray generation
"""

__version__ = "0.1.0"
