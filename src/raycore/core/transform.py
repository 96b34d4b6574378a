"""Affine transforms stored as four homogeneous columns.

A Matrix holds the x, y and z axes and the translation as four Vector4
columns. Axis columns carry w=0 and the translation column carries w=1, so
transform_vector() ignores translation while transform_point() applies it.
All constructors and factories below keep that convention; code that writes
columns directly through m[i] must keep it too.

Composition follows the usual convention: (A * B) applies B first, then A,
so that (A * B).transform_point(p) == A.transform_point(B.transform_point(p)).

Transforms are built in Python scope during scene setup (placing meshes and
cameras) and are not used inside Taichi kernels.

Example:
    >>> from raycore.core.transform import Matrix
    >>> m = Matrix.create_translation(0, 0, 5) * Matrix.create_scale(2, 2, 2)
    >>> m.transform_point((1.0, 0.0, 0.0))
    array([2., 0., 5.])
"""

from __future__ import annotations

import math
from collections.abc import Sequence

import numpy as np
import numpy.typing as npt

UNIT_X = (1.0, 0.0, 0.0)
UNIT_Y = (0.0, 1.0, 0.0)
UNIT_Z = (0.0, 0.0, 1.0)
ZERO = (0.0, 0.0, 0.0)


def _as_column(values: Sequence[float], w: float) -> np.ndarray:
    """Extend a 3-component value to homogeneous form, or copy a 4-component one."""
    arr = np.asarray(values, dtype=np.float64).reshape(-1)
    if arr.shape == (3,):
        return np.append(arr, w)
    if arr.shape == (4,):
        return arr.copy()
    raise ValueError(f"Matrix columns must have 3 or 4 components, got {arr.shape[0]}")


def _as_vector3(x, y=None, z=None) -> tuple[float, float, float]:
    if y is None and z is None:
        v = np.asarray(x, dtype=np.float64).reshape(-1)
        if v.shape != (3,):
            raise ValueError(f"Expected a 3-component vector, got {v.shape[0]} components")
        return float(v[0]), float(v[1]), float(v[2])
    return float(x), float(y), float(z)


class Matrix:
    """A 4x4 affine transform composed of rotation, scale and translation.

    Attributes:
        data: A (4, 4) float64 array; data[i] is column i (x axis, y axis,
            z axis, translation) as a homogeneous Vector4.
    """

    __slots__ = ("data",)

    def __init__(
        self,
        x_axis: Sequence[float],
        y_axis: Sequence[float],
        z_axis: Sequence[float],
        translation: Sequence[float],
    ) -> None:
        """Build a matrix from its four columns.

        Three-component columns are extended to homogeneous form (w=0 for the
        axes, w=1 for the translation). Four-component columns are used
        as given.

        Raises:
            ValueError: If a column does not have 3 or 4 components.
        """
        self.data = np.empty((4, 4), dtype=np.float64)
        self.data[0] = _as_column(x_axis, 0.0)
        self.data[1] = _as_column(y_axis, 0.0)
        self.data[2] = _as_column(z_axis, 0.0)
        self.data[3] = _as_column(translation, 1.0)

    @classmethod
    def identity(cls) -> Matrix:
        """Create the identity transform."""
        return cls(UNIT_X, UNIT_Y, UNIT_Z, ZERO)

    @classmethod
    def from_numpy(cls, array: npt.ArrayLike) -> Matrix:
        """Create a matrix from a conventional (row, column) 4x4 array."""
        arr = np.asarray(array, dtype=np.float64)
        if arr.shape != (4, 4):
            raise ValueError(f"Expected a 4x4 array, got shape {arr.shape}")
        return cls(arr[:, 0], arr[:, 1], arr[:, 2], arr[:, 3])

    def copy(self) -> Matrix:
        """Return an independent copy of this matrix."""
        return Matrix(self.data[0], self.data[1], self.data[2], self.data[3])

    def to_numpy(self) -> np.ndarray:
        """Return the transform as a conventional (row, column) 4x4 array."""
        return self.data.T.copy()

    # =========================================================================
    # Transforming vectors and points
    # =========================================================================

    def transform_vector(self, v: Sequence[float]) -> np.ndarray:
        """Apply rotation and scale only.

        Correct for direction-like quantities. Normals are only transformed
        correctly by orthogonal matrices; no inverse-transpose is provided.

        Args:
            v: A 3-component vector.

        Returns:
            The transformed vector as a (3,) array.
        """
        x, y, z = _as_vector3(v)
        d = self.data
        return d[0, :3] * x + d[1, :3] * y + d[2, :3] * z

    def transform_point(self, p: Sequence[float]) -> np.ndarray:
        """Apply rotation, scale and translation.

        Args:
            p: A 3-component point.

        Returns:
            The transformed point as a (3,) array.
        """
        x, y, z = _as_vector3(p)
        d = self.data
        return d[0, :3] * x + d[1, :3] * y + d[2, :3] * z + d[3, :3]

    def transform_vectors(self, vectors: npt.ArrayLike) -> np.ndarray:
        """Batch form of transform_vector() for an (N, 3) array."""
        arr = np.asarray(vectors, dtype=np.float64).reshape(-1, 3)
        return arr @ self.data[:3, :3]

    def transform_points(self, points: npt.ArrayLike) -> np.ndarray:
        """Batch form of transform_point() for an (N, 3) array."""
        arr = np.asarray(points, dtype=np.float64).reshape(-1, 3)
        return arr @ self.data[:3, :3] + self.data[3, :3]

    # =========================================================================
    # Transpose
    # =========================================================================

    def transpose(self) -> Matrix:
        """Transpose this matrix in place.

        Returns:
            This matrix, for chaining.
        """
        self.data[:] = self.data.T.copy()
        return self

    def transposed(self) -> Matrix:
        """Return a transposed copy, leaving this matrix untouched.

        Can be called as m.transposed() or Matrix.transposed(m).
        """
        return self.copy().transpose()

    # =========================================================================
    # Accessors
    # =========================================================================

    @property
    def axis_x(self) -> np.ndarray:
        return self.data[0, :3].copy()

    @property
    def axis_y(self) -> np.ndarray:
        return self.data[1, :3].copy()

    @property
    def axis_z(self) -> np.ndarray:
        return self.data[2, :3].copy()

    @property
    def translation(self) -> np.ndarray:
        return self.data[3, :3].copy()

    # =========================================================================
    # Factories
    # =========================================================================

    @classmethod
    def create_translation(cls, x, y=None, z=None) -> Matrix:
        """Create a translation from a vector or three scalars."""
        return cls(UNIT_X, UNIT_Y, UNIT_Z, _as_vector3(x, y, z))

    @classmethod
    def create_rotation_x(cls, pitch: float) -> Matrix:
        """Create a right-handed rotation of pitch radians about the x axis."""
        c = math.cos(pitch)
        s = math.sin(pitch)
        return cls(UNIT_X, (0.0, c, s), (0.0, -s, c), ZERO)

    @classmethod
    def create_rotation_y(cls, yaw: float) -> Matrix:
        """Create a right-handed rotation of yaw radians about the y axis."""
        c = math.cos(yaw)
        s = math.sin(yaw)
        return cls((c, 0.0, -s), UNIT_Y, (s, 0.0, c), ZERO)

    @classmethod
    def create_rotation_z(cls, roll: float) -> Matrix:
        """Create a right-handed rotation of roll radians about the z axis."""
        c = math.cos(roll)
        s = math.sin(roll)
        return cls((c, s, 0.0), (-s, c, 0.0), UNIT_Z, ZERO)

    @classmethod
    def create_rotation(cls, pitch, yaw=None, roll=None) -> Matrix:
        """Create a rotation from Euler angles in radians.

        Accepts either one (pitch, yaw, roll) vector or three scalars. The
        result is Rz * Ry * Rx: a transformed vector is rotated about x
        first, then y, then z.
        """
        rx, ry, rz = _as_vector3(pitch, yaw, roll)
        return cls.create_rotation_z(rz) * cls.create_rotation_y(ry) * cls.create_rotation_x(rx)

    @classmethod
    def create_rotation_about_axis(cls, angle: float, axis: Sequence[float]) -> Matrix:
        """Create a rotation of angle radians about an arbitrary axis.

        Uses Rodrigues' rotation formula. The axis must be unit length.
        """
        x, y, z = _as_vector3(axis)
        c = math.cos(angle)
        s = math.sin(angle)
        t = 1.0 - c
        return cls(
            (x * x * t + c, x * y * t + z * s, x * z * t - y * s),
            (x * y * t - z * s, y * y * t + c, y * z * t + x * s),
            (x * z * t + y * s, y * z * t - x * s, z * z * t + c),
            ZERO,
        )

    @classmethod
    def create_scale(cls, sx, sy=None, sz=None) -> Matrix:
        """Create a scale from a vector or three scalars."""
        x, y, z = _as_vector3(sx, sy, sz)
        return cls((x, 0.0, 0.0), (0.0, y, 0.0), (0.0, 0.0, z), ZERO)

    # =========================================================================
    # Operators
    # =========================================================================

    @staticmethod
    def _check_index(index) -> int:
        # Negative indices would silently wrap; reject them with the rest.
        if isinstance(index, bool) or not isinstance(index, (int, np.integer)):
            raise IndexError(f"Matrix index must be an int in [0, 3], got {index!r}")
        if index < 0 or index > 3:
            raise IndexError(f"Matrix index out of range [0, 3]: {index}")
        return int(index)

    def __getitem__(self, index: int) -> np.ndarray:
        """Return column `index` as a writable Vector4 view."""
        return self.data[self._check_index(index)]

    def __setitem__(self, index: int, column: Sequence[float]) -> None:
        values = np.asarray(column, dtype=np.float64).reshape(-1)
        if values.shape != (4,):
            raise ValueError("Matrix columns must be assigned 4 components")
        self.data[self._check_index(index)] = values

    def __mul__(self, other: Matrix) -> Matrix:
        if not isinstance(other, Matrix):
            return NotImplemented
        # Rows of self are the columns of its transpose; element [c][r] of the
        # result is row r of self dotted with column c of other.
        rows = self.data.T
        result = np.empty((4, 4), dtype=np.float64)
        for c in range(4):
            for r in range(4):
                result[c, r] = np.dot(rows[r], other.data[c])
        out = Matrix.identity()
        out.data = result
        return out

    def __imul__(self, other: Matrix) -> Matrix:
        if not isinstance(other, Matrix):
            return NotImplemented
        self.data[:] = (self * other).data
        return self

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Matrix):
            return NotImplemented
        return bool(np.array_equal(self.data, other.data))

    __hash__ = None

    def __repr__(self) -> str:
        cols = ", ".join(np.array2string(col, separator=", ") for col in self.data)
        return f"Matrix({cols})"
