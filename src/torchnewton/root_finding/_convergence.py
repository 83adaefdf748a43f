"""Convergence utilities for root finding."""

import torch
from torch import Tensor

DEFAULT_ACCURACY = 1e-8
DEFAULT_MAX_ITERATIONS = 100


def default_bounds(dtype: torch.dtype) -> tuple[float, float]:
    """Return the widest search interval representable in ``dtype``.

    Parameters
    ----------
    dtype : torch.dtype
        The floating-point dtype of the estimate.

    Returns
    -------
    tuple[float, float]
        ``(lower, upper)``: the most negative and most positive finite
        values of ``dtype``.
    """
    info = torch.finfo(dtype)
    return info.min, info.max


def within_bounds(x: Tensor, lower: Tensor, upper: Tensor) -> Tensor:
    """Check ``lower <= x <= upper`` for each element.

    NaN estimates compare false against both bounds, so they are reported
    as out of bounds.

    Parameters
    ----------
    x : Tensor
        Current estimates.
    lower : Tensor
        Lower bounds, broadcastable to ``x``.
    upper : Tensor
        Upper bounds, broadcastable to ``x``.

    Returns
    -------
    Tensor
        Boolean mask where True indicates the estimate may be iterated.
    """
    return (x >= lower) & (x <= upper)


def check_convergence(step: Tensor, fx: Tensor, accuracy: float) -> Tensor:
    """Check the dual step/residual criterion for each element.

    Convergence requires BOTH:
    - |step| < accuracy (the Newton update is small)
    - |f(x)| < accuracy (the residual before the update is small)

    Parameters
    ----------
    step : Tensor
        Newton step ``f(x) / f'(x)`` just applied.
    fx : Tensor
        Function values the step was computed from.
    accuracy : float
        Tolerance shared by both criteria.

    Returns
    -------
    Tensor
        Boolean mask where True indicates convergence.
    """
    return (torch.abs(step) < accuracy) & (torch.abs(fx) < accuracy)
