"""Affine transforms built on the host with NumPy.

A ``Transform`` is an immutable builder: every operation returns a new value,
so a partially built transform can be shared between shapes and patterns
without aliasing. The composed matrix always applies, to local coordinates,
non-uniform scale first, then rotation about z, y and x, then translation:

    M = T @ Rx @ Ry @ Rz @ S

Matrices are built in float64 and only converted to ``f32`` when uploaded to
Taichi fields. Inversion happens on the host, once, at construction time of
whatever owns the transform, so a singular matrix is reported before any
kernel is launched.

Example:
    >>> from src.phong.core.transform import Transform
    >>> t = Transform.identity().scale(2.0, 1.0, 1.0).translate(0.0, 3.0, 0.0)
    >>> t.apply_point((1.0, 0.0, 0.0))
    array([2., 3., 0.])
"""

import math
from dataclasses import dataclass, replace
from typing import Sequence

import numpy as np
import numpy.typing as npt

from src.phong.core.ray import as_vec3

Matrix4 = npt.NDArray[np.float64]

# Determinants at or below this magnitude are treated as singular
SINGULAR_DETERMINANT = 1e-12


class NonInvertibleTransformError(ValueError):
    """Raised when a transform cannot be inverted (e.g. a zero scale factor)."""


def translation_matrix(x: float, y: float, z: float) -> Matrix4:
    """Build a 4x4 translation matrix."""
    m = np.identity(4)
    m[:3, 3] = (x, y, z)
    return m


def scaling_matrix(x: float, y: float, z: float) -> Matrix4:
    """Build a 4x4 non-uniform scaling matrix."""
    return np.diag((x, y, z, 1.0))


def rotation_x_matrix(angle: float) -> Matrix4:
    """Right-handed rotation about the x axis by ``angle`` radians."""
    c, s = math.cos(angle), math.sin(angle)
    m = np.identity(4)
    m[1, 1], m[1, 2] = c, -s
    m[2, 1], m[2, 2] = s, c
    return m


def rotation_y_matrix(angle: float) -> Matrix4:
    """Right-handed rotation about the y axis by ``angle`` radians."""
    c, s = math.cos(angle), math.sin(angle)
    m = np.identity(4)
    m[0, 0], m[0, 2] = c, s
    m[2, 0], m[2, 2] = -s, c
    return m


def rotation_z_matrix(angle: float) -> Matrix4:
    """Right-handed rotation about the z axis by ``angle`` radians."""
    c, s = math.cos(angle), math.sin(angle)
    m = np.identity(4)
    m[0, 0], m[0, 1] = c, -s
    m[1, 0], m[1, 1] = s, c
    return m


def invert_matrix(m: Matrix4) -> Matrix4:
    """Invert a 4x4 matrix, refusing singular input.

    Raises:
        NonInvertibleTransformError: If the determinant is (near) zero.
    """
    det = float(np.linalg.det(m))
    if not math.isfinite(det) or abs(det) <= SINGULAR_DETERMINANT:
        raise NonInvertibleTransformError(f"Matrix is not invertible (det={det!r})")
    return np.linalg.inv(m)


@dataclass(frozen=True)
class Transform:
    """Immutable description of an object-to-parent affine transform.

    Attributes:
        translation: Offset applied last, as (x, y, z).
        rotation: Rotation angles in radians about the x, y and z axes.
        scaling: Per-axis scale factors, applied first.
    """

    translation: tuple[float, float, float] = (0.0, 0.0, 0.0)
    rotation: tuple[float, float, float] = (0.0, 0.0, 0.0)
    scaling: tuple[float, float, float] = (1.0, 1.0, 1.0)

    @classmethod
    def identity(cls) -> "Transform":
        """Return the identity transform."""
        return cls()

    def scale(self, x: float, y: float, z: float) -> "Transform":
        """Return a copy with the scale factors set to (x, y, z)."""
        return replace(self, scaling=(float(x), float(y), float(z)))

    def rotate_x(self, angle: float) -> "Transform":
        """Return a copy with the x rotation set to ``angle`` radians."""
        _, ry, rz = self.rotation
        return replace(self, rotation=(float(angle), ry, rz))

    def rotate_y(self, angle: float) -> "Transform":
        """Return a copy with the y rotation set to ``angle`` radians."""
        rx, _, rz = self.rotation
        return replace(self, rotation=(rx, float(angle), rz))

    def rotate_z(self, angle: float) -> "Transform":
        """Return a copy with the z rotation set to ``angle`` radians."""
        rx, ry, _ = self.rotation
        return replace(self, rotation=(rx, ry, float(angle)))

    def translate(self, x: float, y: float, z: float) -> "Transform":
        """Return a copy with the translation set to (x, y, z)."""
        return replace(self, translation=(float(x), float(y), float(z)))

    def matrix(self) -> Matrix4:
        """Compose the 4x4 object-to-parent matrix (scale innermost)."""
        rx, ry, rz = self.rotation
        return (
            translation_matrix(*self.translation)
            @ rotation_x_matrix(rx)
            @ rotation_y_matrix(ry)
            @ rotation_z_matrix(rz)
            @ scaling_matrix(*self.scaling)
        )

    def inverse(self) -> Matrix4:
        """Return the inverse of ``matrix()``.

        Raises:
            NonInvertibleTransformError: If any scale factor is zero or the
                composed matrix is otherwise singular.
        """
        if any(s == 0.0 for s in self.scaling):
            raise NonInvertibleTransformError(f"Zero scale factor in {self.scaling}")
        return invert_matrix(self.matrix())

    def normal_matrix(self) -> Matrix4:
        """Return the inverse-transpose used to carry normals to the parent frame."""
        return self.inverse().T

    def apply_point(self, point: Sequence[float]) -> npt.NDArray[np.float64]:
        """Transform a point (w = 1)."""
        return apply_point(self.matrix(), point)

    def apply_vector(self, vector: Sequence[float]) -> npt.NDArray[np.float64]:
        """Transform a free vector (w = 0)."""
        return apply_vector(self.matrix(), vector)


def apply_point(m: Matrix4, point: Sequence[float]) -> npt.NDArray[np.float64]:
    """Apply a 4x4 matrix to a point in homogeneous coordinates (w = 1)."""
    p = as_vec3(point)
    return (m @ np.append(p, 1.0))[:3]


def apply_vector(m: Matrix4, vector: Sequence[float]) -> npt.NDArray[np.float64]:
    """Apply a 4x4 matrix to a vector in homogeneous coordinates (w = 0)."""
    v = as_vec3(vector)
    return (m @ np.append(v, 0.0))[:3]


def as_matrix(transform: "Transform | Matrix4") -> Matrix4:
    """Return the 4x4 matrix for a ``Transform`` or an explicit matrix.

    Raises:
        ValueError: If an explicit matrix is not 4x4.
    """
    if isinstance(transform, Transform):
        return transform.matrix()
    m = np.asarray(transform, dtype=np.float64)
    if m.shape != (4, 4):
        raise ValueError(f"Expected a 4x4 matrix, got shape {m.shape}")
    return m


def view_transform(
    eye: Sequence[float],
    target: Sequence[float],
    up: Sequence[float],
) -> Matrix4:
    """Build the world-to-camera matrix for an eye looking at a target.

    The camera looks down its own -z axis. ``up`` need not be orthogonal to
    the view direction; it is re-orthogonalized against it.

    Args:
        eye: Camera position in world space.
        target: Point the camera looks at.
        up: Approximate up direction.

    Returns:
        The 4x4 matrix ``orientation @ translation(-eye)``.

    Raises:
        ValueError: If eye and target coincide or up is parallel to the view
            direction.
    """
    eye_v = as_vec3(eye)
    forward = as_vec3(target) - eye_v
    forward_len = np.linalg.norm(forward)
    if forward_len == 0.0:
        raise ValueError("Eye and target must be distinct points")
    forward = forward / forward_len

    up_v = as_vec3(up)
    up_len = np.linalg.norm(up_v)
    if up_len == 0.0:
        raise ValueError("Up vector must be non-zero")

    left = np.cross(forward, up_v / up_len)
    left_len = np.linalg.norm(left)
    if left_len < 1e-12:
        raise ValueError("Up vector must not be parallel to the view direction")
    left = left / left_len
    true_up = np.cross(left, forward)

    orientation = np.identity(4)
    orientation[0, :3] = left
    orientation[1, :3] = true_up
    orientation[2, :3] = -forward
    return orientation @ translation_matrix(*(-eye_v))
