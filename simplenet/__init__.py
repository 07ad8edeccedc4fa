"""SimpleNet public API."""

from .checkpoint import load_network, save_network
from .config import NetworkConfig, build_cost, build_network, load_config, load_preset, presets
from .core import activations  # noqa: F401
from .core.errors import (
    ContractViolation,
    DataError,
    EmptySampleSetError,
    IndexOutOfRangeError,
    NonFiniteError,
    SerializationError,
    ShapeError,
    SimpleNetError,
)
from .core.linalg import Matrix, Vector
from .core.network import Minibatch, Network
from .core.types import Gradients, TrainingSample
from .training.costs import CrossEntropyCost, QuadraticCost
from .training.gradients import check_gradients, compute_gradients

__version__ = "0.1.0"

__all__ = [
    "ContractViolation",
    "CrossEntropyCost",
    "DataError",
    "EmptySampleSetError",
    "Gradients",
    "IndexOutOfRangeError",
    "Matrix",
    "Minibatch",
    "Network",
    "NetworkConfig",
    "NonFiniteError",
    "QuadraticCost",
    "SerializationError",
    "ShapeError",
    "SimpleNetError",
    "TrainingSample",
    "Vector",
    "activations",
    "build_cost",
    "build_network",
    "check_gradients",
    "compute_gradients",
    "load_config",
    "load_network",
    "load_preset",
    "presets",
    "save_network",
]
