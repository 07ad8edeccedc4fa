"""Exception taxonomy for SimpleNet.

Caller misuse (bad shapes, bad indices, malformed payloads) derives from
:class:`ContractViolation`; problems with the numbers themselves derive from
:class:`DataError`, so an optimizer can abort on the former and decide its own
policy for the latter.
"""

from __future__ import annotations


class SimpleNetError(Exception):
    """Base class for every error raised by SimpleNet."""


class ContractViolation(SimpleNetError):
    """The caller broke a precondition of the operation."""


class ShapeError(ContractViolation, ValueError):
    """Sizes or shapes of operands do not agree."""


class IndexOutOfRangeError(ContractViolation, IndexError):
    """A layer, neuron or element index is outside its valid range."""


class SerializationError(ContractViolation, ValueError):
    """A serialized payload is truncated or inconsistent."""


class EmptySampleSetError(ContractViolation, ValueError):
    """An average over samples was requested for an empty sample set."""


class DataError(SimpleNetError):
    """The numeric data is unusable."""


class NonFiniteError(DataError, ArithmeticError):
    """A NaN or infinite value showed up in inputs or results."""


__all__ = [
    "SimpleNetError",
    "ContractViolation",
    "ShapeError",
    "IndexOutOfRangeError",
    "SerializationError",
    "EmptySampleSetError",
    "DataError",
    "NonFiniteError",
]
