"""Core numerical primitives for SimpleNet."""

from . import activations, errors, linalg, network, types

__all__ = ["activations", "errors", "linalg", "network", "types"]
