import io

import numpy as np
import pytest

from simplenet.core.errors import IndexOutOfRangeError, SerializationError, ShapeError
from simplenet.core.linalg import Matrix, Vector, add_vectors, distance, subtract_vectors


def test_vector_construction_and_bounds():
    v = Vector([1.0, 2.0, 3.0])
    assert v.size == 3
    assert v.get(2) == 3.0
    v.set(0, -1.0)
    assert v.tolist() == [-1.0, 2.0, 3.0]
    assert Vector.zeros(4).tolist() == [0.0] * 4
    with pytest.raises(IndexOutOfRangeError):
        v.get(3)
    with pytest.raises(IndexOutOfRangeError):
        v.set(-1, 0.0)


def test_vector_copies_its_input():
    data = np.array([1.0, 2.0])
    v = Vector(data)
    data[0] = 99.0
    assert v.get(0) == 1.0


def test_vector_algebra_laws():
    a = Vector([1.0, -2.0, 0.5])
    b = Vector([3.0, 4.0, -1.0])
    assert a.hadamard(b) == b.hadamard(a)
    assert a.hadamard(b).tolist() == [3.0, -8.0, -0.5]
    assert np.isclose(a.dot(a), a.norm() ** 2)
    assert add_vectors(a, b).tolist() == [4.0, 2.0, -0.5]
    assert subtract_vectors(a, b).tolist() == [-2.0, -6.0, 1.5]
    assert np.isclose(distance(a, b), np.sqrt(4.0 + 36.0 + 2.25))


@pytest.mark.parametrize("op", ["dot", "hadamard", "add", "subtract"])
def test_vector_size_mismatch_fails(op):
    with pytest.raises(ShapeError):
        getattr(Vector([1.0, 2.0]), op)(Vector([1.0, 2.0, 3.0]))


def test_vector_in_place_operations():
    v = Vector([0.0, 1.0, 2.0])
    assert v.scale(2.0) is v
    assert v.tolist() == [0.0, 2.0, 4.0]
    v.apply(lambda x: x + 1.0)
    assert v.tolist() == [1.0, 3.0, 5.0]


def test_matrix_construction():
    m = Matrix(2, 3, [1, 2, 3, 4, 5, 6])
    assert m.shape == (2, 3)
    assert m.get(1, 0) == 4.0
    assert Matrix.zeros(2, 2) == Matrix(2, 2, [0, 0, 0, 0])
    with pytest.raises(ShapeError):
        Matrix(2, 3, [1, 2, 3])
    with pytest.raises(IndexOutOfRangeError):
        m.get(2, 0)
    with pytest.raises(IndexOutOfRangeError):
        m.set(0, 3, 1.0)


def test_matrix_products():
    a = Matrix(2, 3, [1, 2, 3, 4, 5, 6])
    assert a.ax(Vector([1.0, 0.0, -1.0])).tolist() == [-2.0, -2.0]
    b = Matrix(3, 2, [7, 8, 9, 10, 11, 12])
    assert a.am(b) == Matrix(2, 2, [58, 64, 139, 154])
    with pytest.raises(ShapeError):
        a.ax(Vector([1.0, 2.0]))
    with pytest.raises(ShapeError):
        a.am(a)


def test_matrix_transpose_laws():
    rng = np.random.default_rng(0)
    a = Matrix(3, 4, rng.standard_normal(12))
    b = Matrix(4, 2, rng.standard_normal(8))
    assert a.transpose().transpose() == a
    assert a.transpose().shape == (4, 3)
    assert a.transpose().get(1, 2) == a.get(2, 1)
    lhs = a.am(b).transpose().to_numpy()
    rhs = b.transpose().am(a.transpose()).to_numpy()
    assert np.allclose(lhs, rhs)


def test_matrix_in_place_arithmetic():
    m = Matrix(2, 2, [1, 2, 3, 4])
    m.add(Matrix(2, 2, [1, 1, 1, 1])).scale(2.0)
    assert m == Matrix(2, 2, [4, 6, 8, 10])
    m.subtract(Matrix(2, 2, [4, 6, 8, 10]))
    assert m == Matrix.zeros(2, 2)
    with pytest.raises(ShapeError):
        m.add(Matrix(2, 3))
    with pytest.raises(ShapeError):
        m.subtract(Matrix(3, 2))


def test_matrix_serialization_round_trip():
    rng = np.random.default_rng(3)
    for rows, cols in [(0, 0), (1, 5), (4, 3)]:
        m = Matrix(rows, cols, rng.standard_normal(rows * cols))
        restored = Matrix.from_bytes(m.to_bytes())
        assert restored.shape == (rows, cols)
        assert restored == m

    stream = io.BytesIO()
    m.write(stream)
    stream.seek(0)
    assert Matrix.read(stream) == m


def test_matrix_serialization_rejects_malformed_payloads():
    payload = Matrix(2, 2, [1, 2, 3, 4]).to_bytes()
    with pytest.raises(SerializationError):
        Matrix.from_bytes(payload[:4])
    with pytest.raises(SerializationError):
        Matrix.from_bytes(payload[:-1])
    with pytest.raises(SerializationError):
        Matrix.from_bytes(payload + b"\x00")
    with pytest.raises(SerializationError):
        Matrix.read(io.BytesIO(payload[:10]))


def test_non_integer_indices_and_sizes_are_rejected():
    v = Vector([1.0, 2.0, 3.0])
    with pytest.raises(IndexOutOfRangeError):
        v.get(1.7)
    with pytest.raises(IndexOutOfRangeError):
        v.set(0.0, 5.0)
    assert v.get(np.int64(1)) == 2.0

    m = Matrix(2, 2, [1.0, 2.0, 3.0, 4.0])
    with pytest.raises(IndexOutOfRangeError):
        m.get(0.5, 0)
    with pytest.raises(IndexOutOfRangeError):
        m.set(0, 1.0, 9.0)
    assert m.get(np.int32(1), 0) == 3.0

    with pytest.raises(ShapeError):
        Vector.zeros(2.5)
    with pytest.raises(ShapeError):
        Matrix(2.0, 3)
    assert Vector.zeros(np.int64(2)).tolist() == [0.0, 0.0]
