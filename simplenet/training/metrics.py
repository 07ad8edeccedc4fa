"""Evaluation helpers shared by cost functions and callers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Dict, Iterable, List, Mapping, Sequence

import numpy as np

from ..core.errors import EmptySampleSetError, IndexOutOfRangeError
from ..core.linalg import Vector, distance
from ..core.network import Network
from ..core.types import TrainingSample

if TYPE_CHECKING:  # pragma: no cover
    from .costs import CostFunction


@dataclass(frozen=True)
class MetricResult:
    name: str
    value: float


def get_error(output: Vector, target: Vector) -> float:
    """Euclidean distance between the output activations and the target."""

    return distance(output, target)


def get_class(activations: Vector) -> int:
    """Index of the largest activation (first one on ties)."""

    if activations.size == 0:
        raise IndexOutOfRangeError("Cannot pick a class from an empty vector")
    return int(np.argmax(activations.to_numpy()))


def one_hot(expected_class: int, size: int) -> Vector:
    if expected_class < 0 or expected_class >= size:
        raise IndexOutOfRangeError(f"Class {expected_class} must be in [0, {size})")
    target = Vector.zeros(size)
    target.set(expected_class, 1.0)
    return target


def random_indices(size: int, rng: np.random.Generator | None = None) -> List[int]:
    """Random permutation of ``range(size)``."""

    rng = rng or np.random.default_rng()
    return [int(i) for i in rng.permutation(size)]


def predict(network: Network, inputs: Vector) -> int:
    batch = network.new_minibatch()
    network.set_input_activations(inputs, batch)
    network.feedforward(batch)
    return get_class(network.activation_vector(network.output_layer_index(), batch))


def accuracy(network: Network, samples: Sequence[TrainingSample]) -> float:
    samples = list(samples)
    if not samples:
        raise EmptySampleSetError("At least one training sample is required")
    hits = sum(predict(network, s.inputs) == s.expected_class for s in samples)
    return hits / len(samples)


def compute_metric(
    name: str,
    network: Network,
    samples: Sequence[TrainingSample],
    *,
    cost: "CostFunction | None" = None,
) -> MetricResult:
    key = name.lower()
    if key == "loss":
        if cost is None:
            raise ValueError("loss metric requires a cost function")
        value = cost.evaluate(network, samples)
    elif key == "accuracy":
        value = accuracy(network, samples)
    else:
        raise KeyError(f"Unknown metric: {name}")
    return MetricResult(name=key, value=float(value))


def compute_metrics(
    names: Iterable[str],
    network: Network,
    samples: Sequence[TrainingSample],
    *,
    cost: "CostFunction | None" = None,
) -> Mapping[str, float]:
    results: Dict[str, float] = {}
    for name in names:
        metric = compute_metric(name, network, samples, cost=cost)
        results[metric.name] = metric.value
    return results


__all__ = [
    "MetricResult",
    "accuracy",
    "compute_metric",
    "compute_metrics",
    "get_class",
    "get_error",
    "one_hot",
    "predict",
    "random_indices",
]
