"""Core typing contracts for SimpleNet."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Dict

import numpy as np

if TYPE_CHECKING:  # pragma: no cover
    from .linalg import Vector

Array = np.ndarray


@dataclass(frozen=True)
class TrainingSample:
    """A single input vector together with its expected class."""

    inputs: "Vector"
    expected_class: int


Gradients = Dict[str, Array]
"""Per-layer gradients keyed ``W{l}`` (shape ``(n_l, n_{l-1})``) and ``b{l}``."""


def weight_key(layer: int) -> str:
    return f"W{layer}"


def bias_key(layer: int) -> str:
    return f"b{layer}"
