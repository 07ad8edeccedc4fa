"""Gradients over a whole sample set, plus a finite-difference check."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from functools import partial
from typing import Dict, Iterable, Iterator, Sequence

import numpy as np

from ..core.errors import EmptySampleSetError, NonFiniteError
from ..core.network import Network
from ..core.types import Array, Gradients, TrainingSample, bias_key, weight_key
from .costs import BackpropCost

logger = logging.getLogger(__name__)


def _parameter_views(network: Network) -> Iterator[tuple[str, Array]]:
    for layer in range(1, network.output_layer_index() + 1):
        yield weight_key(layer), network.layer_weights(layer)
        yield bias_key(layer), network.layer_biases(layer)


def sample_gradients(cost: BackpropCost, network: Network, sample: TrainingSample) -> Gradients:
    """Forward and backward pass for one sample on a private minibatch."""

    batch = network.new_minibatch()
    cost.prepare(network, sample, batch)
    cost.backpropagate(network, sample.expected_class, batch)
    grads: Gradients = {}
    for layer in range(1, network.output_layer_index() + 1):
        delta = network.delta_vector(layer, batch).to_numpy()
        prev = network.activation_vector(layer - 1, batch).to_numpy()
        grads[weight_key(layer)] = np.outer(delta, prev)
        grads[bias_key(layer)] = delta
    return grads


def compute_gradients(
    cost: BackpropCost,
    network: Network,
    samples: Iterable[TrainingSample],
    max_workers: int | None = None,
) -> Gradients:
    """Mean bias and weight gradients over ``samples``.

    Samples are independent, so with ``max_workers > 1`` they are spread over
    a thread pool.  Results are summed in sample order either way, which keeps
    the output identical to the sequential run.
    """

    samples = list(samples)
    if not samples:
        raise EmptySampleSetError("At least one training sample is required")

    totals: Gradients = {key: np.zeros_like(view) for key, view in _parameter_views(network)}
    work = partial(sample_gradients, cost, network)

    def _accumulate(results: Iterable[Gradients]) -> None:
        for grads in results:
            for key, value in grads.items():
                totals[key] += value

    if max_workers is not None and max_workers > 1 and len(samples) > 1:
        workers = min(max_workers, len(samples))
        logger.debug("Computing gradients for %d samples on %d threads", len(samples), workers)
        with ThreadPoolExecutor(max_workers=workers) as executor:
            _accumulate(executor.map(work, samples))
    else:
        _accumulate(map(work, samples))

    n = float(len(samples))
    for key, value in totals.items():
        value /= n
        if not np.all(np.isfinite(value)):
            raise NonFiniteError(f"Gradient {key} contains NaN or infinite values")
    return totals


def numerical_gradients(
    cost: BackpropCost,
    network: Network,
    samples: Sequence[TrainingSample],
    epsilon: float = 1e-5,
) -> Gradients:
    """Central-difference estimate of ``d cost.evaluate / d parameter``.

    Each parameter is restored to its original value after both evaluations.
    """

    if epsilon <= 0.0:
        raise ValueError(f"epsilon must be positive, got {epsilon}")
    samples = list(samples)
    grads: Gradients = {}
    for key, view in _parameter_views(network):
        estimate = np.zeros_like(view)
        for idx in np.ndindex(view.shape):
            original = view[idx]
            try:
                view[idx] = original + epsilon
                plus = cost.evaluate(network, samples)
                view[idx] = original - epsilon
                minus = cost.evaluate(network, samples)
            finally:
                view[idx] = original
            estimate[idx] = (plus - minus) / (2.0 * epsilon)
        grads[key] = estimate
    return grads


def check_gradients(
    cost: BackpropCost,
    network: Network,
    samples: Sequence[TrainingSample],
    epsilon: float = 1e-5,
    max_workers: int | None = None,
) -> Dict[str, float]:
    """Largest absolute gap between analytic and numerical gradients per key."""

    analytic = compute_gradients(cost, network, samples, max_workers=max_workers)
    numeric = numerical_gradients(cost, network, samples, epsilon=epsilon)
    report = {key: float(np.max(np.abs(analytic[key] - numeric[key]))) for key in analytic}
    logger.info("Gradient check (%s): max abs error %.3g", cost.name, max(report.values()))
    return report


__all__ = ["check_gradients", "compute_gradients", "numerical_gradients", "sample_gradients"]
