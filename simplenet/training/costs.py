"""Cost functions and the backpropagation recurrence.

Every cost shares the same backward machinery: the output layer error is
``dC/da * sigmoid'(z)`` and hidden layers follow

    delta^l = (W^{l+1})^T delta^{l+1} * sigmoid'(z^l)

computed in one sweep from the output layer downwards and cached in the
sample's :class:`~simplenet.core.network.Minibatch`.  Realisations only
differ in the scalar cost and in ``dC/da``.
"""

from __future__ import annotations

import logging
import math
from typing import Callable, Dict, Iterable, Protocol, Sequence

import numpy as np

from ..core.activations import sigmoid_prime
from ..core.errors import EmptySampleSetError, IndexOutOfRangeError, NonFiniteError
from ..core.linalg import Vector
from ..core.network import Minibatch, Network
from ..core.types import TrainingSample
from .metrics import get_error, one_hot

logger = logging.getLogger(__name__)


class CostFunction(Protocol):
    """Protocol implemented by every cost function."""

    name: str

    def evaluate(self, network: Network, samples: Sequence[TrainingSample]) -> float:
        """Mean cost over ``samples``."""

    def output_error(
        self, i: int, expected_class: int, network: Network, batch: Minibatch | None = None
    ) -> float:
        """Delta of output neuron ``i``."""

    def backward_error(
        self,
        j: int,
        layer: int,
        network: Network,
        sample: TrainingSample,
        batch: Minibatch | None = None,
    ) -> float:
        """Delta of neuron ``j`` in ``layer`` for an already fed-forward sample."""

    def backpropagate(
        self,
        network: Network,
        expected_class: int,
        batch: Minibatch | None = None,
        down_to: int = 1,
    ) -> None:
        """Fill the deltas of layers ``L`` down to ``down_to``."""

    def grad_bias(
        self, j: int, layer: int, network: Network, samples: Sequence[TrainingSample]
    ) -> float:
        """Mean ``dC/db`` of neuron ``j`` in ``layer``."""

    def grad_weight(
        self, j: int, k: int, layer: int, network: Network, samples: Sequence[TrainingSample]
    ) -> float:
        """Mean ``dC/dw`` of the weight from ``k`` in ``layer - 1`` to ``j`` in ``layer``."""


def _require_samples(samples: Iterable[TrainingSample]) -> list[TrainingSample]:
    samples = list(samples)
    if not samples:
        raise EmptySampleSetError("At least one training sample is required")
    return samples


def _require_trainable_layer(network: Network, layer: int) -> None:
    if layer <= 0:
        raise IndexOutOfRangeError(f"Layer must be > 0, got {layer}: the input layer has no parameters")
    if layer > network.output_layer_index():
        raise IndexOutOfRangeError(
            f"Layer index {layer} must be at most {network.output_layer_index()}"
        )


class BackpropCost:
    """Shared evaluation and backward pass; subclasses supply the formulas."""

    name = "backprop"

    def sample_cost(self, outputs: Vector, target: Vector) -> float:
        raise NotImplementedError

    def output_gradient(self, outputs: Vector, target: Vector) -> Vector:
        """Return ``dC/da`` for the output activations."""

        raise NotImplementedError

    # ------------------------------------------------------------------

    @staticmethod
    def _target(network: Network, expected_class: int) -> Vector:
        size = network.layer_size(network.output_layer_index())
        if expected_class < 0 or expected_class >= size:
            raise IndexOutOfRangeError(
                f"Expected class {expected_class} must be in [0, {size})"
            )
        return one_hot(expected_class, size)

    @staticmethod
    def prepare(network: Network, sample: TrainingSample, batch: Minibatch | None = None) -> None:
        """Load ``sample`` into ``batch`` and run the forward pass."""

        network.set_input_activations(sample.inputs, batch)
        network.feedforward(batch)

    def evaluate(self, network: Network, samples: Sequence[TrainingSample]) -> float:
        samples = _require_samples(samples)
        batch = network.new_minibatch()
        cost = 0.0
        for sample in samples:
            target = self._target(network, sample.expected_class)
            self.prepare(network, sample, batch)
            cost += self.sample_cost(network.output_activations(batch), target)
        cost /= len(samples)
        if not math.isfinite(cost):
            raise NonFiniteError(f"{self.name} cost evaluated to {cost}")
        logger.debug("Evaluated %s cost %.6g over %d samples", self.name, cost, len(samples))
        return cost

    def _output_errors(self, network: Network, expected_class: int, batch: Minibatch | None) -> Vector:
        out_layer = network.output_layer_index()
        target = self._target(network, expected_class)
        outputs = network.activation_vector(out_layer, batch)
        slope = network.pre_activation_vector(out_layer, batch).copy().apply(sigmoid_prime)
        return self.output_gradient(outputs, target).hadamard(slope)

    def output_error(
        self, i: int, expected_class: int, network: Network, batch: Minibatch | None = None
    ) -> float:
        return self._output_errors(network, expected_class, batch).get(i)

    def backpropagate(
        self,
        network: Network,
        expected_class: int,
        batch: Minibatch | None = None,
        down_to: int = 1,
    ) -> None:
        _require_trainable_layer(network, down_to)
        out_layer = network.output_layer_index()
        network.delta_vector(out_layer, batch).assign(
            self._output_errors(network, expected_class, batch)
        )
        for layer in range(out_layer - 1, down_to - 1, -1):
            upstream = network.weight_matrix(layer + 1).transpose().ax(
                network.delta_vector(layer + 1, batch)
            )
            slope = network.pre_activation_vector(layer, batch).copy().apply(sigmoid_prime)
            network.delta_vector(layer, batch).assign(upstream.hadamard(slope))

    def backward_error(
        self,
        j: int,
        layer: int,
        network: Network,
        sample: TrainingSample,
        batch: Minibatch | None = None,
    ) -> float:
        self.backpropagate(network, sample.expected_class, batch, down_to=layer)
        return network.delta(j, layer, batch)

    def grad_bias(
        self, j: int, layer: int, network: Network, samples: Sequence[TrainingSample]
    ) -> float:
        _require_trainable_layer(network, layer)
        network.bias_index(j, layer)
        samples = _require_samples(samples)
        batch = network.new_minibatch()
        total = 0.0
        for sample in samples:
            self.prepare(network, sample, batch)
            total += self.backward_error(j, layer, network, sample, batch)
        return total / len(samples)

    def grad_weight(
        self, j: int, k: int, layer: int, network: Network, samples: Sequence[TrainingSample]
    ) -> float:
        _require_trainable_layer(network, layer)
        network.weight_index(j, k, layer)
        samples = _require_samples(samples)
        batch = network.new_minibatch()
        total = 0.0
        for sample in samples:
            self.prepare(network, sample, batch)
            a_k = network.activation(k, layer - 1, batch)
            total += a_k * self.backward_error(j, layer, network, sample, batch)
        return total / len(samples)


class CrossEntropyCost(BackpropCost):
    """Binary cross-entropy over sigmoid outputs, in bits.

    ``evaluate`` returns ``mean(sum_j log2(a_y) | log2(1 - a_j))`` without
    negation, so larger values mean a better fit.  Arguments of ``log2`` are
    clamped to ``[epsilon, 1]``; with ``epsilon=0`` a saturated output yields
    ``-inf`` and ``evaluate`` raises :class:`NonFiniteError`.
    """

    name = "cross_entropy"

    def __init__(self, epsilon: float = 1e-12) -> None:
        if epsilon < 0.0 or epsilon >= 1.0:
            raise ValueError(f"epsilon must be in [0, 1), got {epsilon}")
        self.epsilon = float(epsilon)

    def __repr__(self) -> str:
        return f"CrossEntropyCost(epsilon={self.epsilon!r})"

    def sample_cost(self, outputs: Vector, target: Vector) -> float:
        a = outputs.to_numpy()
        t = target.to_numpy()
        p = np.where(t == 1.0, a, 1.0 - a)
        if self.epsilon > 0.0:
            p = np.clip(p, self.epsilon, 1.0)
        with np.errstate(divide="ignore"):
            return float(np.sum(np.log2(p)))

    def output_gradient(self, outputs: Vector, target: Vector) -> Vector:
        return outputs.subtract(target)


class QuadraticCost(BackpropCost):
    """Squared error ``0.5 * ||a - y||^2`` against the one-hot target."""

    name = "quadratic"

    def __repr__(self) -> str:
        return "QuadraticCost()"

    def sample_cost(self, outputs: Vector, target: Vector) -> float:
        return 0.5 * get_error(outputs, target) ** 2

    def output_gradient(self, outputs: Vector, target: Vector) -> Vector:
        return outputs.subtract(target)


CostFactory = Callable[..., BackpropCost]


class CostRegistry:
    """Central registry for cost functions."""

    def __init__(self) -> None:
        self._registry: Dict[str, CostFactory] = {}

    def register(self, name: str, factory: CostFactory) -> None:
        self._registry[name] = factory

    def get(self, name: str, **options: float) -> BackpropCost:
        if name not in self._registry:
            available = ", ".join(sorted(self._registry))
            raise KeyError(f"Unknown cost {name!r}. Available costs: {available}")
        return self._registry[name](**options)

    def names(self) -> Iterable[str]:
        return sorted(self._registry)


REGISTRY = CostRegistry()
REGISTRY.register("cross_entropy", CrossEntropyCost)
REGISTRY.register("quadratic", QuadraticCost)
# Short aliases
REGISTRY.register("ce", CrossEntropyCost)
REGISTRY.register("mse", QuadraticCost)

__all__ = [
    "BackpropCost",
    "CostFunction",
    "CostRegistry",
    "CrossEntropyCost",
    "QuadraticCost",
    "REGISTRY",
]
