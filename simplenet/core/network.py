"""Flat-array feed-forward network with sigmoid neurons.

All activations, biases and weights are stored in three flat ``float64``
arrays.  Offsets are derived from the layer sizes:

* activation ``(i, l)`` lives at ``sum(layers[:l]) + i``;
* bias ``(i, l)`` lives at ``sum(layers[1:l]) + i`` (``l >= 1``);
* weight ``(i, j, l)``, the connection from neuron ``j`` of layer ``l - 1``
  to neuron ``i`` of layer ``l``, lives at
  ``sum(layers[k] * layers[k - 1] for k in 1..l-1) + i * layers[l - 1] + j``.

The network only owns biases and weights.  Everything that changes per sample
(activations, pre-activations and deltas) lives in a :class:`Minibatch`, so
several threads can push samples through the same parameters at once.
"""

from __future__ import annotations

import logging
import operator
from dataclasses import dataclass, field
from typing import Iterable, List, Mapping, Sequence, Tuple

import numpy as np

from .activations import sigmoid
from .errors import IndexOutOfRangeError, NonFiniteError, ShapeError
from .linalg import Matrix, Vector
from .types import Array, bias_key, weight_key

logger = logging.getLogger(__name__)


def _require_integer(value: object, what: str) -> None:
    try:
        operator.index(value)  # type: ignore[arg-type]
    except TypeError as exc:
        raise IndexOutOfRangeError(f"{what} must be an integer, got {value!r}") from exc


@dataclass(eq=False)
class Minibatch:
    """Scratch storage for one forward and backward pass.

    All three arrays use the activation layout of the owning network.  The
    layer-0 entries of ``zs`` and ``deltas`` are never written.
    """

    activations: Array
    zs: Array
    deltas: Array = field(repr=False)

    @classmethod
    def create(cls, n_nodes: int) -> "Minibatch":
        return cls(
            activations=np.zeros(n_nodes, dtype=np.float64),
            zs=np.zeros(n_nodes, dtype=np.float64),
            deltas=np.zeros(n_nodes, dtype=np.float64),
        )

    @property
    def n_nodes(self) -> int:
        return int(self.activations.shape[0])


def _offsets(sizes: Iterable[int]) -> List[int]:
    out = [0]
    for size in sizes:
        out.append(out[-1] + size)
    return out


class Network:
    """Parameter holder and forward pass for a dense sigmoid network."""

    def __init__(self, layers: Sequence[int]) -> None:
        try:
            layers = tuple(operator.index(n) for n in layers)
        except TypeError as exc:
            raise ShapeError(f"Layer sizes must be integers, got {list(layers)}") from exc
        if len(layers) < 2:
            raise ShapeError(
                f"A network needs at least an input and an output layer, got {len(layers)} layer(s)"
            )
        if any(n <= 0 for n in layers):
            raise ShapeError(f"Layer sizes must be positive, got {list(layers)}")
        self._layers = layers
        self._activation_offsets = _offsets(layers)
        # Bias and weight offsets are indexed by ``layer - 1``.
        self._bias_offsets = _offsets(layers[1:])
        self._weight_offsets = _offsets(
            layers[l] * layers[l - 1] for l in range(1, len(layers))
        )
        self.biases = np.zeros(self.n_biases, dtype=np.float64)
        self.weights = np.zeros(self.n_weights, dtype=np.float64)
        self._scratch = self.new_minibatch()
        logger.debug(
            "Created network layers=%s nodes=%d biases=%d weights=%d",
            list(layers),
            self.n_nodes,
            self.n_biases,
            self.n_weights,
        )

    def __repr__(self) -> str:
        return f"Network(layers={list(self._layers)})"

    # ------------------------------------------------------------------
    # Topology

    @property
    def layers(self) -> Tuple[int, ...]:
        return self._layers

    @property
    def n_nodes(self) -> int:
        return self._activation_offsets[-1]

    @property
    def n_biases(self) -> int:
        return self._bias_offsets[-1]

    @property
    def n_weights(self) -> int:
        return self._weight_offsets[-1]

    def output_layer_index(self) -> int:
        return len(self._layers) - 1

    def layer_size(self, layer: int) -> int:
        self._check_layer(layer, first=0)
        return self._layers[layer]

    def new_minibatch(self) -> Minibatch:
        return Minibatch.create(self.n_nodes)

    def _batch(self, batch: Minibatch | None) -> Minibatch:
        if batch is None:
            return self._scratch
        if batch.n_nodes != self.n_nodes:
            raise ShapeError(
                f"Minibatch holds {batch.n_nodes} nodes, network has {self.n_nodes}"
            )
        return batch

    # ------------------------------------------------------------------
    # Index arithmetic

    def _check_layer(self, layer: int, *, first: int) -> None:
        _require_integer(layer, "Layer index")
        last = self.output_layer_index()
        if layer < first or layer > last:
            raise IndexOutOfRangeError(f"Layer index {layer} must be in [{first}, {last}]")

    def _check_neuron(self, index: int, layer: int, name: str) -> None:
        _require_integer(index, name)
        size = self._layers[layer]
        if index < 0 or index >= size:
            raise IndexOutOfRangeError(
                f"{name}={index} must be in [0, {size}) for layer {layer}"
            )

    def activation_index(self, index: int, layer: int) -> int:
        self._check_layer(layer, first=0)
        self._check_neuron(index, layer, "Activation index")
        return self._activation_offsets[layer] + index

    def bias_index(self, index: int, layer: int) -> int:
        self._check_layer(layer, first=1)
        self._check_neuron(index, layer, "Bias index")
        return self._bias_offsets[layer - 1] + index

    def weight_index(self, i: int, j: int, layer: int) -> int:
        self._check_layer(layer, first=1)
        self._check_neuron(i, layer, "Weight index i")
        self._check_neuron(j, layer - 1, "Weight index j")
        return self._weight_offsets[layer - 1] + i * self._layers[layer - 1] + j

    # ------------------------------------------------------------------
    # Accessors

    def activation(self, index: int, layer: int, batch: Minibatch | None = None) -> float:
        return float(self._batch(batch).activations[self.activation_index(index, layer)])

    def pre_activation(self, index: int, layer: int, batch: Minibatch | None = None) -> float:
        """Return ``z + b`` recorded for the neuron by the last feedforward."""

        self._check_layer(layer, first=1)
        return float(self._batch(batch).zs[self.activation_index(index, layer)])

    def delta(self, index: int, layer: int, batch: Minibatch | None = None) -> float:
        return float(self._batch(batch).deltas[self.activation_index(index, layer)])

    def set_delta(self, value: float, index: int, layer: int, batch: Minibatch | None = None) -> None:
        self._batch(batch).deltas[self.activation_index(index, layer)] = value

    def bias(self, index: int, layer: int) -> float:
        return float(self.biases[self.bias_index(index, layer)])

    def set_bias(self, value: float, index: int, layer: int) -> None:
        self.biases[self.bias_index(index, layer)] = value

    def weight(self, i: int, j: int, layer: int) -> float:
        return float(self.weights[self.weight_index(i, j, layer)])

    def set_weight(self, value: float, i: int, j: int, layer: int) -> None:
        self.weights[self.weight_index(i, j, layer)] = value

    # ------------------------------------------------------------------
    # Layer views (no copies; writes go straight into the flat arrays)

    def layer_weights(self, layer: int) -> Array:
        self._check_layer(layer, first=1)
        start = self._weight_offsets[layer - 1]
        stop = self._weight_offsets[layer]
        return self.weights[start:stop].reshape(self._layers[layer], self._layers[layer - 1])

    def layer_biases(self, layer: int) -> Array:
        self._check_layer(layer, first=1)
        return self.biases[self._bias_offsets[layer - 1] : self._bias_offsets[layer]]

    def weight_matrix(self, layer: int) -> Matrix:
        return Matrix.wrap(self.layer_weights(layer))

    def _slice(self, values: Array, layer: int) -> Array:
        return values[self._activation_offsets[layer] : self._activation_offsets[layer + 1]]

    def activation_vector(self, layer: int, batch: Minibatch | None = None) -> Vector:
        """View of one layer's activations in ``batch``."""

        self._check_layer(layer, first=0)
        return Vector.wrap(self._slice(self._batch(batch).activations, layer))

    def pre_activation_vector(self, layer: int, batch: Minibatch | None = None) -> Vector:
        self._check_layer(layer, first=1)
        return Vector.wrap(self._slice(self._batch(batch).zs, layer))

    def delta_vector(self, layer: int, batch: Minibatch | None = None) -> Vector:
        self._check_layer(layer, first=1)
        return Vector.wrap(self._slice(self._batch(batch).deltas, layer))

    def output_activations(self, batch: Minibatch | None = None) -> Vector:
        return self.activation_vector(self.output_layer_index(), batch).copy()

    # ------------------------------------------------------------------
    # Forward pass

    def set_input_activations(
        self, values: Vector | Sequence[float] | Array, batch: Minibatch | None = None
    ) -> None:
        data = values.to_numpy() if isinstance(values, Vector) else np.asarray(values, dtype=np.float64)
        if data.ndim != 1 or data.shape[0] != self._layers[0]:
            raise ShapeError(
                f"Input has shape {data.shape}, expected ({self._layers[0]},)"
            )
        if not np.all(np.isfinite(data)):
            raise NonFiniteError("Input activations contain NaN or infinite values")
        self._slice(self._batch(batch).activations, 0)[:] = data

    def weighted_sum(self, i: int, layer: int, batch: Minibatch | None = None) -> float:
        """Return ``sum_j weight(i, j, layer) * activation(j, layer - 1)``."""

        self._check_layer(layer, first=1)
        self._check_neuron(i, layer, "Weighted sum index")
        prev = self._slice(self._batch(batch).activations, layer - 1)
        return float(np.dot(self.layer_weights(layer)[i], prev))

    def feedforward_activation(self, i: int, layer: int, batch: Minibatch | None = None) -> None:
        if layer == 0:
            return
        mb = self._batch(batch)
        z = self.weighted_sum(i, layer, mb) + self.bias(i, layer)
        idx = self.activation_index(i, layer)
        mb.zs[idx] = z
        mb.activations[idx] = sigmoid(z)

    def feedforward_layer(self, layer: int, batch: Minibatch | None = None) -> None:
        if layer == 0:
            return
        mb = self._batch(batch)
        prev = self.activation_vector(layer - 1, mb)
        z = self.weight_matrix(layer).ax(prev).add(Vector.wrap(self.layer_biases(layer)))
        self._slice(mb.zs, layer)[:] = z.to_numpy()
        self._slice(mb.activations, layer)[:] = sigmoid(z.to_numpy())

    def feedforward(self, batch: Minibatch | None = None) -> None:
        mb = self._batch(batch)
        for layer in range(1, len(self._layers)):
            self.feedforward_layer(layer, mb)

    # ------------------------------------------------------------------
    # Parameters

    def initialize(self, seed: int | None = None, scale: float | None = None) -> None:
        """Draw Gaussian weights and biases.

        Weights of layer ``l`` use standard deviation ``scale`` or, when it is
        not given, ``1 / sqrt(layers[l - 1])``.  Biases use unit variance.
        """

        rng = np.random.default_rng(seed)
        for layer in range(1, len(self._layers)):
            std = scale if scale is not None else 1.0 / np.sqrt(self._layers[layer - 1])
            view = self.layer_weights(layer)
            view[:] = rng.standard_normal(view.shape) * std
            self.layer_biases(layer)[:] = rng.standard_normal(self._layers[layer])

    def state_dict(self) -> Mapping[str, Array]:
        state: dict[str, Array] = {}
        for layer in range(1, len(self._layers)):
            state[weight_key(layer)] = self.layer_weights(layer).copy()
            state[bias_key(layer)] = self.layer_biases(layer).copy()
        return state

    def load_state_dict(self, state: Mapping[str, Array]) -> None:
        """Replace all parameters; nothing is written unless every entry checks out."""

        staged: list[tuple[Array, Array]] = []
        for layer in range(1, len(self._layers)):
            for key, view in (
                (weight_key(layer), self.layer_weights(layer)),
                (bias_key(layer), self.layer_biases(layer)),
            ):
                if key not in state:
                    raise KeyError(f"Missing parameter {key} in state dict")
                value = np.asarray(state[key], dtype=np.float64)
                if value.shape != view.shape:
                    raise ShapeError(
                        f"Parameter {key} has shape {value.shape}, expected {view.shape}"
                    )
                staged.append((view, value))
        for view, value in staged:
            view[:] = value


__all__ = ["Minibatch", "Network"]
