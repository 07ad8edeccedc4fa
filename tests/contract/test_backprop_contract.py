import math

import numpy as np
import pytest

from simplenet.core.errors import NonFiniteError
from simplenet.core.linalg import Vector
from simplenet.core.network import Network
from simplenet.core.types import TrainingSample
from simplenet.training.costs import CrossEntropyCost, QuadraticCost
from simplenet.training.gradients import (
    check_gradients,
    compute_gradients,
    numerical_gradients,
)


def _sigmoid(z):
    return 1.0 / (1.0 + math.exp(-z))


def _hand_network():
    net = Network([2, 2, 1])
    net.set_weight(0.1, 0, 0, 1)
    net.set_weight(0.2, 0, 1, 1)
    net.set_weight(0.3, 1, 0, 1)
    net.set_weight(0.4, 1, 1, 1)
    net.set_bias(0.1, 0, 1)
    net.set_bias(-0.1, 1, 1)
    net.set_weight(0.5, 0, 0, 2)
    net.set_weight(-0.5, 0, 1, 2)
    net.set_bias(0.2, 0, 2)
    return net


def test_end_to_end_hand_computed_scenario():
    net = _hand_network()
    sample = TrainingSample(Vector([1.0, 0.0]), 0)

    net.set_input_activations(sample.inputs)
    net.feedforward()
    # Both hidden neurons see z = 0.2, so the output also sees z = 0.2.
    s = _sigmoid(0.2)
    assert net.activation(0, 1) == pytest.approx(s)
    assert net.activation(1, 1) == pytest.approx(s)
    assert net.activation(0, 2) == pytest.approx(0.549833997312478, abs=1e-12)

    ds = s * (1.0 - s)
    delta_out = (s - 1.0) * ds
    delta_hidden = [0.5 * delta_out * ds, -0.5 * delta_out * ds]

    cost = CrossEntropyCost()
    assert cost.evaluate(net, [sample]) == pytest.approx(math.log2(s))
    assert cost.grad_bias(0, 2, net, [sample]) == pytest.approx(delta_out)
    assert cost.grad_weight(0, 1, 2, net, [sample]) == pytest.approx(s * delta_out)
    for j in range(2):
        assert cost.grad_bias(j, 1, net, [sample]) == pytest.approx(delta_hidden[j])
        assert cost.grad_weight(j, 0, 1, net, [sample]) == pytest.approx(delta_hidden[j])
        assert cost.grad_weight(j, 1, 1, net, [sample]) == 0.0


def test_gradients_do_not_touch_parameters():
    net = _hand_network()
    weights, biases = net.weights.copy(), net.biases.copy()
    samples = [TrainingSample(Vector([1.0, 0.0]), 0)]
    compute_gradients(CrossEntropyCost(), net, samples)
    CrossEntropyCost().grad_weight(0, 0, 1, net, samples)
    assert np.array_equal(net.weights, weights)
    assert np.array_equal(net.biases, biases)


def _random_samples(layers, count, seed):
    rng = np.random.default_rng(seed)
    return [
        TrainingSample(Vector(rng.random(layers[0])), int(rng.integers(layers[-1])))
        for _ in range(count)
    ]


@pytest.mark.parametrize("layers", [[2, 3, 1], [3, 4, 3], [4, 5, 4, 2]])
def test_finite_difference_agreement(layers):
    net = Network(layers)
    net.initialize(seed=17)
    samples = _random_samples(layers, 5, seed=3)
    cost = QuadraticCost()

    eps = 1e-5
    i, j, layer = 0, 1, 1
    original = net.weight(i, j, layer)
    net.set_weight(original + eps, i, j, layer)
    plus = cost.evaluate(net, samples)
    net.set_weight(original - eps, i, j, layer)
    minus = cost.evaluate(net, samples)
    net.set_weight(original, i, j, layer)
    numeric = (plus - minus) / (2 * eps)
    assert cost.grad_weight(i, j, layer, net, samples) == pytest.approx(numeric, abs=1e-7)

    report = check_gradients(cost, net, samples, epsilon=eps)
    assert max(report.values()) < 1e-7


def test_numerical_gradients_restore_parameters():
    net = Network([2, 3, 2])
    net.initialize(seed=1)
    weights = net.weights.copy()
    numerical_gradients(QuadraticCost(), net, _random_samples([2, 3, 2], 2, seed=0))
    assert np.array_equal(net.weights, weights)


def test_batched_gradients_match_per_parameter_queries():
    layers = [3, 4, 2]
    net = Network(layers)
    net.initialize(seed=5)
    samples = _random_samples(layers, 4, seed=9)
    cost = CrossEntropyCost()
    grads = compute_gradients(cost, net, samples)
    for layer in (1, 2):
        for j in range(layers[layer]):
            assert grads[f"b{layer}"][j] == pytest.approx(cost.grad_bias(j, layer, net, samples))
            for k in range(layers[layer - 1]):
                assert grads[f"W{layer}"][j, k] == pytest.approx(
                    cost.grad_weight(j, k, layer, net, samples)
                )


def test_threaded_gradients_are_identical_to_sequential():
    layers = [6, 8, 4]
    net = Network(layers)
    net.initialize(seed=12)
    samples = _random_samples(layers, 16, seed=4)
    cost = QuadraticCost()
    sequential = compute_gradients(cost, net, samples)
    threaded = compute_gradients(cost, net, samples, max_workers=4)
    assert set(sequential) == set(threaded)
    for key in sequential:
        assert np.array_equal(sequential[key], threaded[key])


def test_non_finite_parameters_are_reported():
    net = Network([2, 2])
    net.set_weight(float("nan"), 0, 0, 1)
    with pytest.raises(NonFiniteError):
        compute_gradients(QuadraticCost(), net, [TrainingSample(Vector([1.0, 0.0]), 0)])
