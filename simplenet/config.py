"""Network configuration, presets and builders."""

from __future__ import annotations

import json
import logging
from copy import deepcopy
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Dict, Mapping, Tuple

import yaml

from .core.network import Network
from .training.costs import REGISTRY as COST_REGISTRY
from .training.costs import BackpropCost

logger = logging.getLogger(__name__)

_PRESETS: Dict[str, Mapping[str, object]] = {
    "tiny": {"layers": [2, 2, 1], "cost": "quadratic", "seed": 0},
    "xor": {"layers": [2, 3, 2], "cost": "cross_entropy", "seed": 7},
    "mnist": {
        "layers": [784, 30, 10],
        "cost": "cross_entropy",
        "seed": 1,
        "max_workers": 4,
    },
}


@dataclass(frozen=True)
class NetworkConfig:
    """Everything needed to build a network and its cost function."""

    layers: Tuple[int, ...]
    cost: str = "cross_entropy"
    seed: int | None = None
    init_scale: float | None = None
    epsilon: float = 1e-12
    max_workers: int | None = None

    def __post_init__(self) -> None:
        if len(self.layers) < 2:
            raise ValueError(f"layers needs at least two entries, got {list(self.layers)}")
        if any(int(n) <= 0 for n in self.layers):
            raise ValueError(f"layer sizes must be positive, got {list(self.layers)}")
        if self.cost not in set(COST_REGISTRY.names()):
            available = ", ".join(COST_REGISTRY.names())
            raise ValueError(f"Unknown cost {self.cost!r}. Available costs: {available}")
        if self.init_scale is not None and self.init_scale <= 0:
            raise ValueError(f"init_scale must be positive, got {self.init_scale}")
        if self.max_workers is not None and self.max_workers < 1:
            raise ValueError(f"max_workers must be >= 1, got {self.max_workers}")

    @classmethod
    def from_mapping(cls, data: Mapping[str, object]) -> "NetworkConfig":
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise KeyError(f"Unknown config keys: {', '.join(sorted(unknown))}")
        if "layers" not in data:
            raise KeyError("Config is missing required key: layers")
        values = dict(data)
        values["layers"] = tuple(int(n) for n in values["layers"])  # type: ignore[union-attr]
        return cls(**values)  # type: ignore[arg-type]

    def to_dict(self) -> Dict[str, object]:
        out = asdict(self)
        out["layers"] = list(self.layers)
        return out


def presets() -> Mapping[str, Mapping[str, object]]:
    return {name: deepcopy(cfg) for name, cfg in _PRESETS.items()}


def load_preset(name: str) -> NetworkConfig:
    if name not in _PRESETS:
        raise KeyError(f"Unknown preset: {name}")
    return NetworkConfig.from_mapping(deepcopy(_PRESETS[name]))


def _read_config_file(path: Path) -> Mapping[str, object]:
    text = path.read_text()
    suffix = path.suffix.lower()
    if suffix in {".yaml", ".yml"}:
        data = yaml.safe_load(text) or {}
    elif suffix == ".json":
        data = json.loads(text or "{}")
    else:
        raise ValueError(f"Unsupported config file type: {path.suffix}")
    if not isinstance(data, Mapping):
        raise TypeError(f"Config {path.name} must decode to a mapping")
    return data


def load_config(path: str | Path) -> NetworkConfig:
    path = Path(path)
    config = NetworkConfig.from_mapping(_read_config_file(path))
    logger.debug("Loaded config %s from %s", config, path)
    return config


def build_network(config: NetworkConfig) -> Network:
    """Create a network for ``config`` with freshly initialised parameters."""

    network = Network(config.layers)
    network.initialize(seed=config.seed, scale=config.init_scale)
    return network


def build_cost(config: NetworkConfig) -> BackpropCost:
    if config.cost in {"cross_entropy", "ce"}:
        return COST_REGISTRY.get(config.cost, epsilon=config.epsilon)
    return COST_REGISTRY.get(config.cost)


__all__ = [
    "NetworkConfig",
    "build_cost",
    "build_network",
    "load_config",
    "load_preset",
    "presets",
]
