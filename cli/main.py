"""Gradient check and evaluation for SimpleNet networks."""

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
from typing import Iterable, List

import numpy as np

from simplenet.config import (
    NetworkConfig,
    build_cost,
    build_network,
    load_config,
    load_preset,
    presets,
)
from simplenet.core.linalg import Vector
from simplenet.core.types import TrainingSample
from simplenet.log import configure_logging
from simplenet.training.costs import REGISTRY as COST_REGISTRY
from simplenet.training.costs import BackpropCost, QuadraticCost
from simplenet.training.gradients import check_gradients
from simplenet.training.metrics import compute_metrics

logger = logging.getLogger("simplenet.cli")


def parse_args(argv: Iterable[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--preset",
        choices=sorted(presets().keys()),
        default="tiny",
        help="Preset network configuration",
    )
    parser.add_argument("--config", type=Path, help="JSON/YAML config file (overrides --preset)")
    parser.add_argument(
        "--cost",
        choices=sorted(COST_REGISTRY.names()),
        help="Override the cost function",
    )
    parser.add_argument("--seed", type=int, help="Seed for parameters and random samples")
    parser.add_argument(
        "--samples", type=int, default=4, help="Number of random samples to check against"
    )
    parser.add_argument(
        "--epsilon", type=float, default=1e-5, help="Finite-difference step size"
    )
    parser.add_argument("--workers", type=int, help="Threads used for analytic gradients")
    parser.add_argument(
        "--list-presets", action="store_true", help="List available presets and exit"
    )
    parser.add_argument(
        "--dump-config", type=Path, help="Dump the resolved config to a JSON file"
    )
    parser.add_argument("--log-level", default="WARNING", help="Logging level")
    return parser.parse_args(argv)


def _resolve_config(args: argparse.Namespace) -> NetworkConfig:
    config = load_config(args.config) if args.config else load_preset(args.preset)
    overrides = config.to_dict()
    if args.cost is not None:
        overrides["cost"] = args.cost
    if args.seed is not None:
        overrides["seed"] = args.seed
    if args.workers is not None:
        overrides["max_workers"] = args.workers
    return NetworkConfig.from_mapping(overrides)


def random_samples(layers: List[int], count: int, seed: int | None) -> List[TrainingSample]:
    """Uniform inputs in ``[0, 1)`` with uniformly drawn classes."""

    rng = np.random.default_rng(None if seed is None else seed + 1)
    return [
        TrainingSample(
            inputs=Vector(rng.random(layers[0])),
            expected_class=int(rng.integers(layers[-1])),
        )
        for _ in range(count)
    ]


def gradcheck_cost(cost: BackpropCost) -> BackpropCost:
    """Cost whose ``evaluate`` matches the shared output delta ``(a - t) * sigmoid'(z)``.

    Every built-in cost backpropagates the quadratic-cost delta, so finite
    differences are only meaningful against ``QuadraticCost``.
    """

    if isinstance(cost, QuadraticCost):
        return cost
    return QuadraticCost()


def main(argv: Iterable[str] | None = None) -> None:
    args = parse_args(argv)
    configure_logging(args.log_level)

    if args.list_presets:
        for name in sorted(presets().keys()):
            print(name)
        raise SystemExit(0)

    if args.samples < 1:
        raise SystemExit("--samples must be at least 1")

    config = _resolve_config(args)

    if args.dump_config:
        args.dump_config.parent.mkdir(parents=True, exist_ok=True)
        args.dump_config.write_text(json.dumps(config.to_dict(), indent=2))

    network = build_network(config)
    cost = build_cost(config)
    samples = random_samples(list(config.layers), args.samples, config.seed)
    logger.info("Checking %s gradients of %s on %d samples", cost.name, network, len(samples))

    checked = gradcheck_cost(cost)
    report = check_gradients(
        checked, network, samples, epsilon=args.epsilon, max_workers=config.max_workers
    )
    payload = {
        "layers": list(config.layers),
        "cost": cost.name,
        "gradcheck_cost": checked.name,
        "max_abs_error": max(report.values()),
    }
    payload.update(compute_metrics(["loss", "accuracy"], network, samples, cost=cost))
    print(json.dumps(payload, sort_keys=True))


if __name__ == "__main__":
    main()
