"""Activation utilities for SimpleNet."""

from __future__ import annotations

import numpy as np

from .types import Array


def sigmoid(z: float | Array) -> float | Array:
    """Return the logistic sigmoid ``1 / (1 + exp(-z))``.

    Evaluated piecewise so that ``exp`` only ever sees non-positive arguments.
    """

    z_arr = np.asarray(z, dtype=np.float64)
    e = np.exp(-np.abs(z_arr))
    out = np.where(z_arr >= 0, 1.0 / (1.0 + e), e / (1.0 + e))
    if out.ndim == 0:
        return float(out)
    return out


def sigmoid_prime(z: float | Array) -> float | Array:
    """Return the derivative ``sigmoid(z) * (1 - sigmoid(z))``."""

    s = sigmoid(z)
    return s * (1.0 - s)
