from ._convergence import (
    DEFAULT_ACCURACY,
    DEFAULT_MAX_ITERATIONS,
    check_convergence,
    default_bounds,
    within_bounds,
)
from ._differentiation import compute_derivative, evaluate_with_derivative
from ._exceptions import DerivativeError, NonConvergenceError, RootFindingError
from ._newton import find_root, find_root_near_guess, try_find_root

__all__ = [
    "DEFAULT_ACCURACY",
    "DEFAULT_MAX_ITERATIONS",
    "check_convergence",
    "compute_derivative",
    "evaluate_with_derivative",
    "default_bounds",
    "find_root",
    "find_root_near_guess",
    "try_find_root",
    "within_bounds",
    "DerivativeError",
    "NonConvergenceError",
    "RootFindingError",
]
