"""Network checkpoints stored as compressed ``.npz`` archives."""

from __future__ import annotations

import logging
from pathlib import Path

import numpy as np

from .core.errors import SerializationError, ShapeError
from .core.network import Network

logger = logging.getLogger(__name__)


def save_network(path: str | Path, network: Network) -> str:
    """Write ``layers`` plus every ``W{l}``/``b{l}`` array to ``path``."""

    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    payload = dict(network.state_dict())
    payload["layers"] = np.asarray(network.layers, dtype=np.int64)
    with path.open("wb") as handle:
        np.savez_compressed(handle, **payload)
    logger.info("Saved network %s to %s", list(network.layers), path)
    return str(path)


def load_network(path: str | Path) -> Network:
    path = Path(path)
    with np.load(path, allow_pickle=False) as archive:
        if "layers" not in archive.files:
            raise SerializationError(f"Checkpoint {path} has no layer description")
        layers = [int(n) for n in archive["layers"]]
        try:
            network = Network(layers)
            network.load_state_dict({name: archive[name] for name in archive.files if name != "layers"})
        except (KeyError, ShapeError) as exc:
            raise SerializationError(f"Checkpoint {path} is inconsistent: {exc}") from exc
    logger.info("Loaded network %s from %s", layers, path)
    return network


__all__ = ["load_network", "save_network"]
