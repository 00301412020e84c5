"""Unit tests for plane intersection and normals.

Tests cover:
- Parallel and coplanar rays
- Rays from above and below
- Constant normal
- Floor/ceiling/wall constructors
"""

import numpy as np
import pytest


class TestPlaneIntersection:
    """Tests for Shape.intersection on planes."""

    def test_parallel_ray(self):
        """Test that a ray parallel to the plane misses."""
        from src.phong.core.ray import Ray
        from src.phong.geometry.shape import Plane

        assert Plane().intersection(Ray.from_xyz((0.0, 10.0, 0.0), (0.0, 0.0, 1.0))) is None

    def test_coplanar_ray(self):
        """Test that a ray lying in the plane misses."""
        from src.phong.core.ray import Ray
        from src.phong.geometry.shape import Plane

        assert Plane().intersection(Ray.from_xyz((0.0, 0.0, 0.0), (0.0, 0.0, 1.0))) is None

    def test_ray_from_above(self):
        """Test a ray hitting the plane from above."""
        from src.phong.core.ray import Ray
        from src.phong.geometry.shape import Plane

        t = Plane().intersection(Ray.from_xyz((0.0, 1.0, 0.0), (0.0, -1.0, 0.0)))
        assert t is not None
        assert abs(t - 1.0) < 1e-5

    def test_ray_from_below(self):
        """Test a ray hitting the plane from below."""
        from src.phong.core.ray import Ray
        from src.phong.geometry.shape import Plane

        t = Plane().intersection(Ray.from_xyz((0.0, -1.0, 0.0), (0.0, 1.0, 0.0)))
        assert t is not None
        assert abs(t - 1.0) < 1e-5

    def test_plane_behind_ray(self):
        """Test that a plane behind the ray origin is not hit."""
        from src.phong.core.ray import Ray
        from src.phong.geometry.shape import Plane

        assert Plane().intersection(Ray.from_xyz((0.0, 1.0, 0.0), (0.0, 1.0, 0.0))) is None

    def test_oblique_ray(self):
        """Test an oblique ray."""
        from src.phong.core.ray import Ray
        from src.phong.geometry.shape import Plane

        t = Plane().intersection(Ray.from_xyz((0.0, 2.0, 0.0), (1.0, -1.0, 0.0)))
        assert t is not None
        assert abs(t - 2.0) < 1e-5

    def test_normal_is_constant(self):
        """Test that the normal is (0, 1, 0) everywhere."""
        from src.phong.geometry.shape import Plane

        for point in [(0.0, 0.0, 0.0), (10.0, 0.0, -10.0), (-5.0, 0.0, 150.0)]:
            assert np.allclose(Plane().normal_at(point), (0.0, 1.0, 0.0), atol=1e-6)


class TestPlaneConstructors:
    """Tests for the floor, ceiling and wall constructors."""

    @pytest.mark.parametrize(
        "factory, offset, point, normal",
        [
            ("floor", -1.0, (3.0, -1.0, 2.0), (0.0, 1.0, 0.0)),
            ("ceiling", 3.0, (3.0, 3.0, 2.0), (0.0, -1.0, 0.0)),
            ("left_wall", -5.0, (-5.0, 2.0, 1.0), (1.0, 0.0, 0.0)),
            ("right_wall", 5.0, (5.0, 2.0, 1.0), (-1.0, 0.0, 0.0)),
            ("back_wall", 10.0, (1.0, 2.0, 10.0), (0.0, 0.0, -1.0)),
        ],
    )
    def test_orientation(self, factory, offset, point, normal):
        """Test the normal of each constructed plane."""
        from src.phong.geometry.shape import Plane

        plane = getattr(Plane, factory)(offset)
        assert np.allclose(plane.normal_at(point), normal, atol=1e-5)

    def test_back_wall_distance(self):
        """Test hitting the back wall straight on."""
        from src.phong.core.ray import Ray
        from src.phong.geometry.shape import Plane

        t = Plane.back_wall(10.0).intersection(Ray.from_xyz((0.0, 1.0, 0.0), (0.0, 0.0, 1.0)))
        assert t is not None
        assert abs(t - 10.0) < 1e-4

    def test_constructor_keeps_material(self):
        """Test that a material passed to a constructor is used."""
        from src.phong.geometry.shape import Plane
        from src.phong.patterns.material import Material

        material = Material.solid(0.5, 0.5, 0.5)
        assert Plane.floor(0.0, material).material is material
