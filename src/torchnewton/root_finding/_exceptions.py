"""Exception classes for root finding module."""

ROOT_FINDING_FAILED = (
    "The algorithm has failed, exceeded the number of iterations allowed "
    "or there is no root within the provided bounds."
)


class RootFindingError(Exception):
    """Base exception for root finding errors."""

    pass


class NonConvergenceError(RootFindingError):
    """Raised when an iteration ends without meeting its convergence criteria.

    The estimate either left the permitted interval or the iteration budget
    was exhausted first.
    """

    def __init__(self, message: str = ROOT_FINDING_FAILED):
        super().__init__(message)


class DerivativeError(RootFindingError):
    """Raised when derivative computation fails (e.g., f is not differentiable)."""

    pass
