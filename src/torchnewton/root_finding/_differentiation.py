"""Differentiation utilities for root finding."""

from typing import Callable

import torch
from torch import Tensor

from ._exceptions import DerivativeError


def _evaluate(fn: Callable[[Tensor], Tensor | float], x: Tensor) -> Tensor:
    """Call ``fn`` at ``x`` and coerce the result to the dtype/device of ``x``."""
    return torch.as_tensor(fn(x), dtype=x.dtype, device=x.device)


def compute_derivative(
    f: Callable[[Tensor], Tensor],
    x: Tensor,
    *,
    df: Callable[[Tensor], Tensor] | None = None,
    method: str = "autodiff",
    h: float | None = None,
) -> Tensor:
    """Compute the derivative of an element-wise scalar function.

    Parameters
    ----------
    f : Callable[[Tensor], Tensor]
        Element-wise function. May close over batched parameters, e.g.
        ``lambda x: x**2 - c`` with ``c`` of shape ``(B,)``.
    x : Tensor
        Points at which to evaluate the derivative.
    df : Callable[[Tensor], Tensor] or None
        Optional explicit derivative function. If provided, use it directly.
    method : str
        Differentiation method: "autodiff" or "finite_difference".
    h : float or None
        Step size for finite difference. Defaults to ``1e-7``.

    Returns
    -------
    Tensor
        Derivative values at x.

    Raises
    ------
    DerivativeError
        If ``method="autodiff"`` and ``f`` does not produce an autograd graph
        (for example it returns a Python number or a detached tensor).
    ValueError
        If ``method`` is unknown.
    """
    if df is not None:
        return _evaluate(df, x)

    if method == "autodiff":
        # Gradient of sum(f(x)) is [df/dx_1, df/dx_2, ...] for element-wise f
        x_grad = x.detach().requires_grad_(True)
        with torch.enable_grad():
            fx = _evaluate(f, x_grad)
            if not fx.requires_grad:
                raise DerivativeError(
                    "f is not differentiable with autograd; pass an explicit df."
                )
            (grad,) = torch.autograd.grad(
                fx.sum(),
                x_grad,
                allow_unused=True,
            )
        if grad is None:
            # f does not depend on x
            return torch.zeros_like(x)
        return grad

    elif method == "finite_difference":
        # Central difference: (f(x+h) - f(x-h)) / (2h)
        if h is None:
            h = 1e-7
        return (_evaluate(f, x + h) - _evaluate(f, x - h)) / (2 * h)

    else:
        raise ValueError(
            f"Unknown method: {method}. Use 'autodiff' or 'finite_difference'."
        )


def evaluate_with_derivative(
    f: Callable[[Tensor], Tensor],
    x: Tensor,
    *,
    df: Callable[[Tensor], Tensor] | None = None,
    method: str = "autodiff",
    h: float | None = None,
) -> tuple[Tensor, Tensor]:
    """Evaluate f and its derivative at x.

    With ``method="autodiff"`` and no explicit ``df``, both values come from
    a single forward pass of ``f``.

    Parameters
    ----------
    f : Callable[[Tensor], Tensor]
        Element-wise function.
    x : Tensor
        Evaluation points.
    df : Callable[[Tensor], Tensor] or None
        Optional explicit derivative function.
    method : str
        Differentiation method used when ``df`` is None: "autodiff" or
        "finite_difference".
    h : float or None
        Step size for finite difference.

    Returns
    -------
    tuple[Tensor, Tensor]
        ``(f(x), f'(x))``, both detached from any autograd graph.
    """
    if df is not None or method != "autodiff":
        fx = _evaluate(f, x)
        return fx, compute_derivative(f, x, df=df, method=method, h=h)

    x_grad = x.detach().requires_grad_(True)
    with torch.enable_grad():
        fx = _evaluate(f, x_grad)
        if not fx.requires_grad:
            raise DerivativeError(
                "f is not differentiable with autograd; pass an explicit df."
            )
        (grad,) = torch.autograd.grad(
            fx.sum(),
            x_grad,
            allow_unused=True,
        )
    if grad is None:
        grad = torch.zeros_like(x)
    return fx.detach(), grad
