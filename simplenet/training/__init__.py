"""Cost functions, gradients and evaluation helpers."""

from .costs import REGISTRY, BackpropCost, CostFunction, CostRegistry, CrossEntropyCost, QuadraticCost
from .gradients import check_gradients, compute_gradients, numerical_gradients
from .metrics import accuracy, get_class, get_error, one_hot, random_indices

__all__ = [
    "REGISTRY",
    "BackpropCost",
    "CostFunction",
    "CostRegistry",
    "CrossEntropyCost",
    "QuadraticCost",
    "accuracy",
    "check_gradients",
    "compute_gradients",
    "get_class",
    "get_error",
    "numerical_gradients",
    "one_hot",
    "random_indices",
]
