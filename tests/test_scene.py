"""Unit tests for scene storage and scene-level ray queries.

Tests cover:
- Default scene contents
- Nearest intersection, including the insertion-order tie-break
- Shadow occlusion with a distance limit
- Scene binding and capacity limits
- Point lights
"""

import math

import numpy as np
import pytest


class TestDefaultScene:
    """Tests for Scene.default."""

    def test_contents(self):
        """Test the default sphere and light."""
        from src.phong.geometry.shape import Sphere
        from src.phong.scene.scene import Scene

        scene = Scene.default()
        assert len(scene.shapes) == 1
        assert isinstance(scene.shapes[0], Sphere)
        assert scene.shapes[0].material.pattern.color == (1.0, 0.2, 1.0)
        assert len(scene.lights) == 1
        assert np.allclose(scene.lights[0].position, (-10.0, 10.0, -10.0))
        assert np.allclose(scene.lights[0].color, (1.0, 1.0, 1.0))

    def test_scene_stores_tuples(self):
        """Test that shape and light lists are frozen into tuples."""
        from src.phong.geometry.shape import Sphere
        from src.phong.scene.light import PointLight
        from src.phong.scene.scene import Scene

        scene = Scene([Sphere()], [PointLight.white((0.0, 0.0, 0.0))])
        assert isinstance(scene.shapes, tuple)
        assert isinstance(scene.lights, tuple)

    def test_with_shapes_and_lights(self):
        """Test that appending returns a new scene."""
        from src.phong.geometry.shape import Plane
        from src.phong.scene.light import PointLight
        from src.phong.scene.scene import Scene

        base = Scene.default()
        extended = base.with_shapes([Plane.floor(-1.0)]).with_lights(
            [PointLight.white((5.0, 5.0, 5.0))]
        )
        assert len(base.shapes) == 1 and len(base.lights) == 1
        assert len(extended.shapes) == 2 and len(extended.lights) == 2
        assert extended.shapes[0] is base.shapes[0]


class TestNearestIntersection:
    """Tests for Scene.nearest_intersection."""

    def test_hit_default_sphere(self):
        """Test the nearest hit against the default scene."""
        from src.phong.core.ray import Ray
        from src.phong.scene.scene import Scene

        scene = Scene.default()
        result = scene.nearest_intersection(Ray.from_xyz((0.0, 0.0, -5.0), (0.0, 0.0, 1.0)))
        assert result is not None
        t, shape = result
        assert abs(t - 4.0) < 1e-4
        assert shape is scene.shapes[0]

    def test_miss(self):
        """Test that a miss returns None."""
        from src.phong.core.ray import Ray
        from src.phong.scene.scene import Scene

        ray = Ray.from_xyz((0.0, 5.0, -5.0), (0.0, 0.0, 1.0))
        assert Scene.default().nearest_intersection(ray) is None

    def test_empty_scene(self):
        """Test that an empty scene never hits."""
        from src.phong.core.ray import Ray
        from src.phong.scene.scene import Scene

        ray = Ray.from_xyz((0.0, 0.0, -5.0), (0.0, 0.0, 1.0))
        assert Scene().nearest_intersection(ray) is None

    @pytest.mark.parametrize("inner_first", [True, False])
    def test_closest_shape_wins(self, inner_first):
        """Test that the closest shape wins regardless of order."""
        from src.phong.core.ray import Ray
        from src.phong.core.transform import Transform
        from src.phong.geometry.shape import Sphere
        from src.phong.scene.scene import Scene

        outer = Sphere()
        inner = Sphere(Transform.identity().scale(0.5, 0.5, 0.5))
        shapes = (inner, outer) if inner_first else (outer, inner)
        scene = Scene(shapes)

        result = scene.nearest_intersection(Ray.from_xyz((0.0, 0.0, -5.0), (0.0, 0.0, 1.0)))
        assert result is not None
        t, shape = result
        assert abs(t - 4.0) < 1e-4
        assert shape is outer

    def test_tie_goes_to_first_inserted(self):
        """Test that equal t values resolve to the earlier shape."""
        from src.phong.core.ray import Ray
        from src.phong.geometry.shape import Sphere
        from src.phong.patterns.material import Material
        from src.phong.scene.scene import Scene

        first = Sphere(material=Material.solid(1.0, 0.0, 0.0))
        second = Sphere(material=Material.solid(0.0, 1.0, 0.0))
        ray = Ray.from_xyz((0.0, 0.0, -5.0), (0.0, 0.0, 1.0))

        _, shape = Scene((first, second)).nearest_intersection(ray)
        assert shape is first
        _, shape = Scene((second, first)).nearest_intersection(ray)
        assert shape is second

    def test_sphere_and_plane(self):
        """Test a ray that passes a sphere and hits a floor."""
        from src.phong.core.ray import Ray
        from src.phong.geometry.shape import Plane
        from src.phong.scene.scene import Scene

        floor = Plane.floor(-1.0)
        scene = Scene.default().with_shapes([floor])
        result = scene.nearest_intersection(Ray.from_xyz((0.0, 5.0, 0.0), (0.0, -1.0, 0.0)))
        assert result is not None
        t, shape = result
        # The sphere's top at y = 1 is nearer than the floor
        assert abs(t - 4.0) < 1e-4
        assert shape is scene.shapes[0]

        result = scene.nearest_intersection(Ray.from_xyz((3.0, 5.0, 0.0), (0.0, -1.0, 0.0)))
        assert result is not None
        t, shape = result
        assert abs(t - 6.0) < 1e-4
        assert shape is floor


class TestOcclusion:
    """Tests for Scene.is_occluded."""

    @pytest.mark.parametrize(
        "point, expected",
        [
            ((0.0, 10.0, 0.0), False),
            ((10.0, -10.0, 10.0), True),
            ((-20.0, 20.0, -20.0), False),
            ((-2.0, 2.0, -2.0), False),
        ],
    )
    def test_shadow_toward_default_light(self, point, expected):
        """Test shadow rays from points toward the default light."""
        from src.phong.core.ray import Ray
        from src.phong.scene.scene import Scene

        scene = Scene.default()
        distance, direction = scene.lights[0].direction_from(point)
        assert scene.is_occluded(Ray.from_xyz(point, direction), distance) is expected

    def test_blocker_beyond_max_distance(self):
        """Test that blockers beyond the light do not count."""
        from src.phong.core.ray import Ray
        from src.phong.scene.scene import Scene

        scene = Scene.default()
        ray = Ray.from_xyz((0.0, 0.0, -5.0), (0.0, 0.0, 1.0))
        assert scene.is_occluded(ray, 3.0) is False
        assert scene.is_occluded(ray, 5.0) is True

    def test_blocker_behind_origin(self):
        """Test that blockers behind the ray origin do not count."""
        from src.phong.core.ray import Ray
        from src.phong.scene.scene import Scene

        ray = Ray.from_xyz((0.0, 0.0, 5.0), (0.0, 0.0, 1.0))
        assert Scene.default().is_occluded(ray, 100.0) is False


class TestSceneBinding:
    """Tests for uploading scenes to the Taichi tables."""

    def test_bind_counts(self):
        """Test that binding uploads every shape and light."""
        from src.phong.geometry.shape import Plane, Sphere
        from src.phong.scene.intersection import get_light_count, get_shape_count
        from src.phong.scene.light import PointLight
        from src.phong.scene.scene import Scene

        scene = Scene(
            (Sphere(), Plane.floor(-1.0), Plane.back_wall(5.0)),
            (PointLight.white((0.0, 5.0, 0.0)), PointLight.white((5.0, 5.0, 0.0))),
        )
        scene.bind()
        assert get_shape_count() == 3
        assert get_light_count() == 2

    def test_rebinding_switches_scenes(self):
        """Test that querying a second scene replaces the first."""
        from src.phong.core.ray import Ray
        from src.phong.core.transform import Transform
        from src.phong.geometry.shape import Sphere
        from src.phong.scene.scene import Scene

        ray = Ray.from_xyz((0.0, 0.0, -5.0), (0.0, 0.0, 1.0))
        near = Scene((Sphere(),))
        far = Scene((Sphere(Transform.identity().translate(0.0, 0.0, 3.0)),))

        t_near, _ = near.nearest_intersection(ray)
        t_far, _ = far.nearest_intersection(ray)
        t_again, _ = near.nearest_intersection(ray)
        assert abs(t_near - 4.0) < 1e-4
        assert abs(t_far - 7.0) < 1e-4
        assert abs(t_again - 4.0) < 1e-4

    def test_unbind_empties_tables(self):
        """Test that unbinding resets the counts."""
        from src.phong.scene.intersection import get_shape_count, unbind_scene
        from src.phong.scene.scene import Scene

        Scene.default().bind()
        assert get_shape_count() == 1
        unbind_scene()
        assert get_shape_count() == 0

    def test_failed_upload_leaves_nothing_bound(self, monkeypatch):
        """Test that a scene is re-uploaded after another scene's upload fails."""
        from src.phong.core.ray import Ray
        from src.phong.core.transform import Transform
        from src.phong.geometry.shape import Sphere
        from src.phong.scene import intersection
        from src.phong.scene.scene import Scene

        ray = Ray.from_xyz((0.0, 0.0, -5.0), (0.0, 0.0, 1.0))
        original = Scene((Sphere(),))
        broken = Scene(
            (Sphere(Transform.identity().translate(0.0, 0.0, 3.0)), Sphere()),
        )
        original.bind()

        real_write_shape = intersection.write_shape

        def failing_write_shape(slot, shape):
            if slot == 1:
                raise IndexError("upload failed")
            real_write_shape(slot, shape)

        monkeypatch.setattr(intersection, "write_shape", failing_write_shape)
        with pytest.raises(IndexError):
            broken.bind()
        monkeypatch.undo()

        assert intersection.get_shape_count() == 0
        t, shape = original.nearest_intersection(ray)
        assert abs(t - 4.0) < 1e-4
        assert shape is original.shapes[0]

    def test_too_many_shapes(self):
        """Test that exceeding MAX_SHAPES raises."""
        from src.phong.geometry.shape import Sphere
        from src.phong.scene.intersection import MAX_SHAPES
        from src.phong.scene.scene import Scene

        sphere = Sphere()
        scene = Scene((sphere,) * (MAX_SHAPES + 1))
        with pytest.raises(RuntimeError):
            scene.bind()

    def test_too_many_lights(self):
        """Test that exceeding MAX_LIGHTS raises."""
        from src.phong.scene.intersection import MAX_LIGHTS
        from src.phong.scene.light import PointLight
        from src.phong.scene.scene import Scene

        light = PointLight.white((0.0, 0.0, 0.0))
        with pytest.raises(RuntimeError):
            Scene(lights=(light,) * (MAX_LIGHTS + 1)).bind()


class TestPointLight:
    """Tests for PointLight."""

    def test_direction_from(self):
        """Test direction and distance toward the light."""
        from src.phong.scene.light import PointLight

        light = PointLight.white((0.0, 0.0, -10.0))
        distance, direction = light.direction_from((0.0, 0.0, 0.0))
        assert np.allclose(direction, (0.0, 0.0, -1.0))
        assert distance == pytest.approx(10.0)

    def test_direction_from_light_position(self):
        """Test that a point at the light has no direction."""
        from src.phong.scene.light import PointLight

        light = PointLight((1.0, 2.0, 3.0), (0.5, 0.5, 0.5))
        assert light.direction_from((1.0, 2.0, 3.0)) is None

    def test_intensity_may_exceed_one(self):
        """Test that light colors are unconstrained."""
        from src.phong.scene.light import PointLight

        light = PointLight((0.0, 0.0, 0.0), (2.0, 1.5, math.pi))
        assert np.allclose(light.color, (2.0, 1.5, math.pi))
