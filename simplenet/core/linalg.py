"""Dense vector and matrix primitives backed by ``float64`` numpy buffers."""

from __future__ import annotations

import math
import operator
import struct
from typing import BinaryIO, Callable, Iterable, Iterator, Sequence

import numpy as np

from .errors import IndexOutOfRangeError, SerializationError, ShapeError
from .types import Array

_HEADER = struct.Struct("<qq")
_ELEMENT = np.dtype("<f8")


def _as_int(value: object, what: str) -> int:
    try:
        return operator.index(value)  # type: ignore[arg-type]
    except TypeError as exc:
        raise IndexOutOfRangeError(f"{what} must be an integer, got {value!r}") from exc


def _as_size(value: object, what: str) -> int:
    try:
        size = operator.index(value)  # type: ignore[arg-type]
    except TypeError as exc:
        raise ShapeError(f"{what} must be an integer, got {value!r}") from exc
    if size < 0:
        raise ShapeError(f"{what} must be non-negative, got {size}")
    return size


def _check_index(index: int, size: int, what: str) -> int:
    index = _as_int(index, f"{what} index")
    if index < 0 or index >= size:
        raise IndexOutOfRangeError(f"{what} index {index} must be in [0, {size})")
    return index


class Vector:
    """Fixed-length real vector."""

    __slots__ = ("_data",)

    def __init__(self, data: Iterable[float]) -> None:
        if not isinstance(data, np.ndarray):
            data = list(data)
        arr = np.array(data, dtype=np.float64)
        if arr.ndim != 1:
            raise ShapeError(f"Vector data must be one-dimensional, got shape {arr.shape}")
        self._data = arr

    @classmethod
    def zeros(cls, size: int) -> "Vector":
        return cls.wrap(np.zeros(_as_size(size, "Vector size"), dtype=np.float64))

    @classmethod
    def wrap(cls, array: Array) -> "Vector":
        """View ``array`` as a vector without copying it."""

        if array.ndim != 1 or array.dtype != np.float64:
            raise ShapeError(
                f"Vector.wrap expects a 1-D float64 array, got {array.ndim}-D {array.dtype}"
            )
        vec = cls.__new__(cls)
        vec._data = array
        return vec

    @property
    def size(self) -> int:
        return int(self._data.shape[0])

    def __len__(self) -> int:
        return self.size

    def __iter__(self) -> Iterator[float]:
        return (float(x) for x in self._data)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Vector):
            return NotImplemented
        return self.size == other.size and bool(np.array_equal(self._data, other._data))

    def __repr__(self) -> str:
        return f"Vector({self._data.tolist()!r})"

    def get(self, index: int) -> float:
        return float(self._data[_check_index(index, self.size, "Vector")])

    def set(self, index: int, value: float) -> None:
        self._data[_check_index(index, self.size, "Vector")] = value

    def _require_same_size(self, other: "Vector", op: str) -> None:
        if self.size != other.size:
            raise ShapeError(f"Vector.{op}: sizes {self.size} and {other.size} must be the same")

    def dot(self, other: "Vector") -> float:
        self._require_same_size(other, "dot")
        return float(np.dot(self._data, other._data))

    def scale(self, scalar: float) -> "Vector":
        self._data *= scalar
        return self

    def apply(self, f: Callable[[float], float]) -> "Vector":
        """Replace every element ``x`` with ``f(x)``."""

        self._data[:] = np.fromiter(map(f, self._data), dtype=np.float64, count=self.size)
        return self

    def hadamard(self, other: "Vector") -> "Vector":
        self._require_same_size(other, "hadamard")
        return Vector.wrap(self._data * other._data)

    def add(self, other: "Vector") -> "Vector":
        self._require_same_size(other, "add")
        return Vector.wrap(self._data + other._data)

    def subtract(self, other: "Vector") -> "Vector":
        self._require_same_size(other, "subtract")
        return Vector.wrap(self._data - other._data)

    def assign(self, other: "Vector") -> "Vector":
        """Overwrite this vector's elements with those of ``other``."""

        self._require_same_size(other, "assign")
        self._data[:] = other._data
        return self

    def norm(self) -> float:
        return math.sqrt(float(np.sum(np.square(self._data))))

    def copy(self) -> "Vector":
        return Vector.wrap(self._data.copy())

    def to_numpy(self) -> Array:
        return self._data.copy()

    def tolist(self) -> list[float]:
        return self._data.tolist()


def add_vectors(v1: Vector, v2: Vector) -> Vector:
    return v1.add(v2)


def subtract_vectors(v1: Vector, v2: Vector) -> Vector:
    return v1.subtract(v2)


def distance(v1: Vector, v2: Vector) -> float:
    """Euclidean distance ``sqrt(sum((v1 - v2) ** 2))``."""

    return v1.subtract(v2).norm()


class Matrix:
    """Row-major real matrix with fixed shape."""

    __slots__ = ("rows", "cols", "_data")

    def __init__(self, rows: int, cols: int, data: Sequence[float] | Array | None = None) -> None:
        rows = _as_size(rows, "Matrix row count")
        cols = _as_size(cols, "Matrix column count")
        size = rows * cols
        if data is None:
            flat = np.zeros(size, dtype=np.float64)
        else:
            flat = np.array(data, dtype=np.float64).reshape(-1)
            if flat.shape[0] != size:
                raise ShapeError(f"Matrix data has size {flat.shape[0]}, but {size} expected")
        self.rows = rows
        self.cols = cols
        self._data = flat.reshape(rows, cols)

    @classmethod
    def zeros(cls, rows: int, cols: int) -> "Matrix":
        return cls(rows, cols)

    @classmethod
    def wrap(cls, array: Array) -> "Matrix":
        """View a 2-D float64 ``array`` as a matrix without copying it."""

        if array.ndim != 2 or array.dtype != np.float64:
            raise ShapeError(
                f"Matrix.wrap expects a 2-D float64 array, got {array.ndim}-D {array.dtype}"
            )
        mat = cls.__new__(cls)
        mat.rows, mat.cols = (int(n) for n in array.shape)
        mat._data = array
        return mat

    @property
    def shape(self) -> tuple[int, int]:
        return self.rows, self.cols

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Matrix):
            return NotImplemented
        return self.shape == other.shape and bool(np.array_equal(self._data, other._data))

    def __repr__(self) -> str:
        return f"Matrix({self.rows}, {self.cols}, {self._data.reshape(-1).tolist()!r})"

    def get(self, row: int, col: int) -> float:
        return float(
            self._data[_check_index(row, self.rows, "Matrix row"), _check_index(col, self.cols, "Matrix column")]
        )

    def set(self, row: int, col: int, value: float) -> None:
        self._data[
            _check_index(row, self.rows, "Matrix row"), _check_index(col, self.cols, "Matrix column")
        ] = value

    def transpose(self) -> "Matrix":
        return Matrix.wrap(np.ascontiguousarray(self._data.T))

    def ax(self, vector: Vector) -> Vector:
        if self.cols != vector.size:
            raise ShapeError(
                f"Matrix.ax: number of columns {self.cols} must equal vector size {vector.size}"
            )
        return Vector.wrap(self._data @ vector._data)

    def am(self, other: "Matrix") -> "Matrix":
        if self.cols != other.rows:
            raise ShapeError(
                f"Matrix.am: matrices {self.shape} and {other.shape} are not compatible"
            )
        return Matrix.wrap(self._data @ other._data)

    def scale(self, scalar: float) -> "Matrix":
        self._data *= scalar
        return self

    def _require_same_shape(self, other: "Matrix", op: str) -> None:
        if self.rows != other.rows:
            raise ShapeError(f"Matrix.{op}: number of rows {self.rows} and {other.rows} must equal")
        if self.cols != other.cols:
            raise ShapeError(f"Matrix.{op}: number of columns {self.cols} and {other.cols} must equal")

    def add(self, other: "Matrix") -> "Matrix":
        self._require_same_shape(other, "add")
        self._data += other._data
        return self

    def subtract(self, other: "Matrix") -> "Matrix":
        self._require_same_shape(other, "subtract")
        self._data -= other._data
        return self

    def to_numpy(self) -> Array:
        return self._data.copy()

    # ------------------------------------------------------------------
    # Binary persistence: int64 rows, int64 cols, then row-major float64.

    def to_bytes(self) -> bytes:
        return _HEADER.pack(self.rows, self.cols) + self._data.astype(_ELEMENT).tobytes()

    @classmethod
    def from_bytes(cls, buf: bytes) -> "Matrix":
        if len(buf) < _HEADER.size:
            raise SerializationError(
                f"Matrix payload of {len(buf)} bytes is shorter than the {_HEADER.size} byte header"
            )
        rows, cols = _HEADER.unpack_from(buf)
        if rows < 0 or cols < 0:
            raise SerializationError(f"Matrix header has negative shape ({rows}, {cols})")
        expected = _HEADER.size + rows * cols * _ELEMENT.itemsize
        if len(buf) != expected:
            raise SerializationError(
                f"Matrix payload has {len(buf)} bytes, but {expected} expected for shape ({rows}, {cols})"
            )
        count = rows * cols
        if count == 0:
            data = np.zeros(0, dtype=np.float64)
        else:
            data = np.frombuffer(buf, dtype=_ELEMENT, count=count, offset=_HEADER.size).astype(np.float64)
        return cls.wrap(data.reshape(rows, cols))

    def write(self, stream: BinaryIO) -> int:
        return stream.write(self.to_bytes())

    @classmethod
    def read(cls, stream: BinaryIO) -> "Matrix":
        header = stream.read(_HEADER.size)
        if len(header) != _HEADER.size:
            raise SerializationError("Matrix stream ended inside the header")
        rows, cols = _HEADER.unpack(header)
        if rows < 0 or cols < 0:
            raise SerializationError(f"Matrix header has negative shape ({rows}, {cols})")
        body = stream.read(rows * cols * _ELEMENT.itemsize)
        return cls.from_bytes(header + body)


__all__ = ["Vector", "Matrix", "add_vectors", "subtract_vectors", "distance"]
