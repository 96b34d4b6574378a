"""Unit tests for the affine Matrix.

Tests cover:
- Construction from 3- and 4-component columns
- Vector vs point transforms
- Transpose in place and as a copy
- Factory builders (translation, rotations, Rodrigues, scale)
- Composition order and exact equality
- Bounds-checked column indexing
"""

import math

import numpy as np
import pytest

from raycore.core.transform import Matrix


def _random_affine(rng: np.random.Generator) -> Matrix:
    angles = rng.uniform(-math.pi, math.pi, size=3)
    scale = rng.uniform(0.5, 2.0, size=3)
    offset = rng.uniform(-10.0, 10.0, size=3)
    return (
        Matrix.create_translation(offset)
        * Matrix.create_rotation(angles)
        * Matrix.create_scale(scale)
    )


class TestConstruction:
    """Tests for building matrices."""

    def test_three_component_columns_are_extended(self):
        m = Matrix((1, 2, 3), (4, 5, 6), (7, 8, 9), (10, 11, 12))
        np.testing.assert_array_equal(m[0], [1, 2, 3, 0])
        np.testing.assert_array_equal(m[1], [4, 5, 6, 0])
        np.testing.assert_array_equal(m[2], [7, 8, 9, 0])
        np.testing.assert_array_equal(m[3], [10, 11, 12, 1])

    def test_four_component_columns_used_as_given(self):
        m = Matrix((1, 0, 0, 2), (0, 1, 0, 3), (0, 0, 1, 4), (0, 0, 0, 5))
        np.testing.assert_array_equal(m[0], [1, 0, 0, 2])
        np.testing.assert_array_equal(m[3], [0, 0, 0, 5])

    def test_wrong_column_size_raises(self):
        with pytest.raises(ValueError):
            Matrix((1, 0), (0, 1, 0), (0, 0, 1), (0, 0, 0))

    def test_accessors(self):
        m = Matrix((1, 2, 3), (4, 5, 6), (7, 8, 9), (10, 11, 12))
        np.testing.assert_array_equal(m.axis_x, [1, 2, 3])
        np.testing.assert_array_equal(m.axis_y, [4, 5, 6])
        np.testing.assert_array_equal(m.axis_z, [7, 8, 9])
        np.testing.assert_array_equal(m.translation, [10, 11, 12])

    def test_numpy_layout_round_trip(self):
        m = Matrix.create_translation(1, 2, 3)
        arr = m.to_numpy()
        # Conventional layout puts the translation in the last column
        np.testing.assert_array_equal(arr[:3, 3], [1, 2, 3])
        np.testing.assert_array_equal(arr[3], [0, 0, 0, 1])
        assert Matrix.from_numpy(arr) == m


class TestTransforms:
    """Tests for transforming vectors and points."""

    def test_vector_ignores_translation(self):
        m = Matrix.create_translation(5, 6, 7)
        np.testing.assert_allclose(m.transform_vector((1, 2, 3)), [1, 2, 3])

    def test_point_applies_translation(self):
        m = Matrix.create_translation(5, 6, 7)
        np.testing.assert_allclose(m.transform_point((1, 2, 3)), [6, 8, 10])

    def test_scale(self):
        m = Matrix.create_scale(2, 3, 4)
        np.testing.assert_allclose(m.transform_point((1, 1, 1)), [2, 3, 4])
        np.testing.assert_allclose(m.transform_vector((1, 1, 1)), [2, 3, 4])

    def test_batch_matches_single(self):
        rng = np.random.default_rng(7)
        m = _random_affine(rng)
        points = rng.uniform(-5.0, 5.0, size=(10, 3))
        batch_points = m.transform_points(points)
        batch_vectors = m.transform_vectors(points)
        for i, p in enumerate(points):
            np.testing.assert_allclose(batch_points[i], m.transform_point(p), atol=1e-12)
            np.testing.assert_allclose(batch_vectors[i], m.transform_vector(p), atol=1e-12)


class TestRotations:
    """Tests for rotation factories."""

    def test_rotation_x(self):
        m = Matrix.create_rotation_x(math.pi / 2)
        np.testing.assert_allclose(m.transform_vector((0, 1, 0)), [0, 0, 1], atol=1e-12)

    def test_rotation_y(self):
        m = Matrix.create_rotation_y(math.pi / 2)
        np.testing.assert_allclose(m.transform_vector((0, 0, 1)), [1, 0, 0], atol=1e-12)

    def test_rotation_z(self):
        m = Matrix.create_rotation_z(math.pi / 2)
        np.testing.assert_allclose(m.transform_vector((1, 0, 0)), [0, 1, 0], atol=1e-12)

    def test_euler_rotation_applies_x_then_y_then_z(self):
        rx, ry, rz = 0.3, -0.7, 1.1
        m = Matrix.create_rotation(rx, ry, rz)
        v = (0.2, -1.3, 0.8)
        expected = Matrix.create_rotation_z(rz).transform_vector(
            Matrix.create_rotation_y(ry).transform_vector(
                Matrix.create_rotation_x(rx).transform_vector(v)
            )
        )
        np.testing.assert_allclose(m.transform_vector(v), expected, atol=1e-12)

    def test_euler_rotation_accepts_vector(self):
        assert Matrix.create_rotation((0.1, 0.2, 0.3)) == Matrix.create_rotation(0.1, 0.2, 0.3)

    @pytest.mark.parametrize(
        "axis, factory",
        [
            ((1.0, 0.0, 0.0), Matrix.create_rotation_x),
            ((0.0, 1.0, 0.0), Matrix.create_rotation_y),
            ((0.0, 0.0, 1.0), Matrix.create_rotation_z),
        ],
    )
    def test_axis_angle_matches_single_axis(self, axis, factory):
        angle = 0.9
        np.testing.assert_allclose(
            Matrix.create_rotation_about_axis(angle, axis).to_numpy(),
            factory(angle).to_numpy(),
            atol=1e-12,
        )

    def test_axis_angle_keeps_axis_fixed(self):
        axis = np.array([1.0, 2.0, 2.0]) / 3.0
        m = Matrix.create_rotation_about_axis(1.3, axis)
        np.testing.assert_allclose(m.transform_vector(axis), axis, atol=1e-12)

    def test_rotation_is_orthonormal(self):
        m = Matrix.create_rotation(0.4, 1.2, -2.0).to_numpy()[:3, :3]
        np.testing.assert_allclose(m @ m.T, np.eye(3), atol=1e-12)


class TestComposition:
    """Tests for matrix multiplication."""

    def test_composition_applies_right_operand_first(self):
        rng = np.random.default_rng(42)
        for _ in range(20):
            a = _random_affine(rng)
            b = _random_affine(rng)
            p = rng.uniform(-10.0, 10.0, size=3)
            np.testing.assert_allclose(
                (a * b).transform_point(p),
                a.transform_point(b.transform_point(p)),
                rtol=1e-10,
                atol=1e-9,
            )

    def test_translate_then_scale_order(self):
        m = Matrix.create_translation(0, 0, 5) * Matrix.create_scale(2, 2, 2)
        np.testing.assert_allclose(m.transform_point((1, 0, 0)), [2, 0, 5])

    def test_matches_conventional_product(self):
        rng = np.random.default_rng(3)
        a = _random_affine(rng)
        b = _random_affine(rng)
        np.testing.assert_allclose((a * b).to_numpy(), a.to_numpy() @ b.to_numpy(), atol=1e-12)

    def test_identity_is_neutral(self):
        m = Matrix.create_rotation(0.1, 0.2, 0.3) * Matrix.create_translation(1, 2, 3)
        np.testing.assert_allclose((m * Matrix.identity()).data, m.data, atol=0)
        np.testing.assert_allclose((Matrix.identity() * m).data, m.data, atol=0)

    def test_in_place_multiply(self):
        a = Matrix.create_translation(1, 0, 0)
        b = Matrix.create_scale(3, 3, 3)
        expected = a * b
        a *= b
        assert a == expected

    def test_in_place_multiply_updates_live_columns(self):
        a = Matrix.identity()
        column = a[0]
        a *= Matrix.create_scale(3, 3, 3)
        np.testing.assert_array_equal(column, [3.0, 0.0, 0.0, 0.0])

    def test_multiply_by_non_matrix(self):
        with pytest.raises(TypeError):
            Matrix.identity() * 2.0


class TestTranspose:
    """Tests for transpose."""

    def test_transpose_round_trip(self):
        rng = np.random.default_rng(11)
        m = Matrix(*rng.uniform(-1.0, 1.0, size=(4, 4)))
        assert m.transposed().transposed() == m
        assert Matrix.transposed(Matrix.transposed(m)) == m

    def test_transposed_leaves_original(self):
        m = Matrix.create_translation(1, 2, 3)
        original = m.copy()
        t = m.transposed()
        assert m == original
        np.testing.assert_array_equal(t.data, original.data.T)

    def test_transpose_in_place(self):
        m = Matrix.create_translation(1, 2, 3)
        expected = m.data.T.copy()
        result = m.transpose()
        assert result is m
        np.testing.assert_array_equal(m.data, expected)

    def test_transpose_updates_live_columns(self):
        """A column taken before transpose() sees the transposed values."""
        m = Matrix.create_translation(1, 2, 3)
        column = m[0]
        storage = m.data
        m.transpose()
        assert m.data is storage
        np.testing.assert_array_equal(column, [1.0, 0.0, 0.0, 1.0])


class TestEqualityAndIndexing:
    """Tests for exact equality and column indexing."""

    def test_equality_is_exact(self):
        a = Matrix.create_translation(1.0, 2.0, 3.0)
        b = Matrix.create_translation(1.0, 2.0, 3.0 + 1e-12)
        assert a == Matrix.create_translation(1.0, 2.0, 3.0)
        assert a != b

    def test_matrix_is_unhashable(self):
        with pytest.raises(TypeError):
            hash(Matrix.identity())

    def test_getitem_returns_live_column(self):
        m = Matrix.identity()
        m[3][0] = 4.0
        np.testing.assert_array_equal(m.translation, [4, 0, 0])

    def test_setitem(self):
        m = Matrix.identity()
        m[3] = (1.0, 2.0, 3.0, 1.0)
        np.testing.assert_allclose(m.transform_point((0, 0, 0)), [1, 2, 3])

    def test_setitem_requires_four_components(self):
        m = Matrix.identity()
        with pytest.raises(ValueError):
            m[3] = (1.0, 2.0, 3.0)

    @pytest.mark.parametrize("index", [4, -1, 10, 1.0, "0", True])
    def test_invalid_index_raises(self, index):
        m = Matrix.identity()
        with pytest.raises(IndexError):
            m[index]
        with pytest.raises(IndexError):
            m[index] = (0.0, 0.0, 0.0, 0.0)
