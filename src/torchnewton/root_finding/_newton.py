"""Newton-Raphson root finding method."""

import warnings
from typing import Callable

import torch
from torch import Tensor

from ._convergence import (
    DEFAULT_ACCURACY,
    DEFAULT_MAX_ITERATIONS,
    check_convergence,
    default_bounds,
    within_bounds,
)
from ._differentiation import (
    _evaluate,
    compute_derivative,
    evaluate_with_derivative,
)
from ._exceptions import NonConvergenceError


class _NewtonImplicitGrad(torch.autograd.Function):
    """Custom autograd for implicit differentiation through Newton root-finding."""

    @staticmethod
    def forward(
        ctx,
        root: Tensor,
        converged: Tensor,
        points: Tensor,
        f_callable,
        df_callable,
        method,
        h,
    ) -> Tensor:
        ctx.f_callable = f_callable
        ctx.df_callable = df_callable
        ctx.method = method
        ctx.h = h
        ctx.save_for_backward(converged, points)
        return root.clone()

    @staticmethod
    def backward(ctx, grad_output: Tensor):
        converged, points = ctx.saved_tensors
        x = points.detach()

        dfx = compute_derivative(
            ctx.f_callable,
            x,
            df=ctx.df_callable,
            method=ctx.method,
            h=ctx.h,
        ).detach()
        with torch.enable_grad():
            fx = _evaluate(ctx.f_callable, x)

        if fx.requires_grad:
            # dL/dtheta = -dL/dx* * [df/dx]^{-1} * df/dtheta
            # Roots that did not converge get no gradient.
            usable = converged & (dfx != 0)
            safe_dfx = torch.where(usable, dfx, torch.ones_like(dfx))
            modified_grad = torch.where(
                usable,
                -grad_output / safe_dfx,
                torch.zeros_like(grad_output),
            )
            torch.autograd.backward(fx, modified_grad)

        return None, None, None, None, None, None, None


def _attach_implicit_grad(
    root: Tensor,
    converged: Tensor,
    last_inside: Tensor,
    f: Callable[[Tensor], Tensor],
    df: Callable[[Tensor], Tensor] | None,
    method: str,
    h: float | None,
) -> Tensor:
    """Attach implicit differentiation gradient if any parameter of f needs it.

    Parameters
    ----------
    root : Tensor
        Final estimates.
    converged : Tensor
        Boolean mask of converged estimates.
    last_inside : Tensor
        Last in-bounds estimate of each element. ``f`` is checked here, and
        the backward pass evaluates failed elements here too, so no
        evaluation happens at an estimate that left its bounds.
    f, df, method, h
        As passed to :func:`try_find_root`.

    Returns
    -------
    Tensor
        ``root``, carrying the implicit gradient when ``f`` depends on
        tensors that require grad.
    """
    if not torch.is_grad_enabled() or not torch.any(converged):
        return root

    with torch.enable_grad():
        needs_grad = _evaluate(f, last_inside).requires_grad

    if not needs_grad:
        return root

    points = torch.where(converged, root, last_inside)
    return _NewtonImplicitGrad.apply(
        root.detach().requires_grad_(True),
        converged,
        points,
        f,
        df,
        method,
        h,
    )


def _promote(value: Tensor | float) -> Tensor | float:
    """Promote non-floating tensors to float64; leave everything else as is."""
    if isinstance(value, Tensor) and not value.is_floating_point():
        return value.to(torch.float64)
    return value


def _as_estimate(initial_guess: Tensor | float) -> Tensor:
    """Return a detached working copy of the initial guess.

    Python numbers become 0-d float64 tensors. Tensors keep their floating
    dtype, and integer or boolean tensors are promoted to float64.
    """
    if isinstance(initial_guess, Tensor):
        return _promote(initial_guess.detach()).clone()
    return torch.tensor(initial_guess, dtype=torch.float64)


def _resolve_bounds(
    x: Tensor,
    lower_bound: Tensor | float | None,
    upper_bound: Tensor | float | None,
) -> tuple[Tensor, Tensor]:
    lower_default, upper_default = default_bounds(x.dtype)
    if lower_bound is None:
        lower_bound = lower_default
    if upper_bound is None:
        upper_bound = upper_default
    lower = torch.as_tensor(lower_bound, dtype=x.dtype, device=x.device)
    upper = torch.as_tensor(upper_bound, dtype=x.dtype, device=x.device)
    return lower, upper


def try_find_root(
    f: Callable[[Tensor], Tensor],
    df: Callable[[Tensor], Tensor] | None,
    initial_guess: Tensor | float,
    lower_bound: Tensor | float | None,
    upper_bound: Tensor | float | None,
    accuracy: float = DEFAULT_ACCURACY,
    max_iterations: int = DEFAULT_MAX_ITERATIONS,
    *,
    method: str = "autodiff",
    h: float | None = None,
) -> tuple[Tensor | float, Tensor | bool]:
    """
    Attempt to find a root of f(x) = 0 with bounded Newton-Raphson iteration.

    Starting from ``initial_guess``, the estimate is updated with
    x_{n+1} = x_n - f(x_n) / f'(x_n) for as long as it lies within
    ``[lower_bound, upper_bound]`` and the iteration budget lasts. The
    attempt succeeds as soon as both the step and the residual it was
    computed from are smaller than ``accuracy``.

    This function never raises for non-convergence; failure is reported
    through the ``converged`` flag.

    Parameters
    ----------
    f : Callable[[Tensor], Tensor]
        Element-wise function whose root is sought. Called with a tensor of
        the estimate's shape and dtype; may return a tensor or a number.
    df : Callable[[Tensor], Tensor] or None
        Derivative of ``f``. If None, the derivative is computed with
        ``method``.
    initial_guess : Tensor or float
        Starting estimate. Python numbers are solved in float64 and give
        Python results; tensors are solved element-wise.
    lower_bound : Tensor or float or None
        Smallest estimate that is still iterated. None means the most
        negative value representable in the working dtype.
    upper_bound : Tensor or float or None
        Largest estimate that is still iterated. None means the most
        positive value representable in the working dtype.
    accuracy : float, default=1e-8
        Tolerance for both ``|step|`` and ``|f(x)|``.
    max_iterations : int, default=100
        Maximum number of Newton steps.
    method : str, default="autodiff"
        How the derivative is computed when ``df`` is None: "autodiff" or
        "finite_difference". Use finite differences for ``f`` that autograd
        cannot trace (e.g. functions from :mod:`math`).
    h : float, optional
        Step size for ``method="finite_difference"``. Default: ``1e-7``.

    Returns
    -------
    tuple
        - **root** -- The last computed estimate. On success this is the
          update that met the criteria, even if it lies outside the bounds.
        - **converged** -- Whether the criteria were met. ``bool`` for a
          Python-number guess, otherwise a boolean tensor.

    Examples
    --------
    >>> from torchnewton.root_finding import try_find_root
    >>> root, converged = try_find_root(
    ...     lambda x: x**2 - 2, lambda x: 2 * x, 1.0, 0.0, 2.0, 1e-10, 100
    ... )
    >>> converged
    True
    >>> f"{root:.10f}"
    '1.4142135624'

    An estimate that starts outside the bounds is returned untouched:

    >>> try_find_root(lambda x: x - 1, lambda x: 1.0, 5.0, 0.0, 2.0)
    (5.0, False)

    Notes
    -----
    **Bounds**: The bounds are checked before each evaluation, never after
    an update. A guess exactly on a bound is evaluated.

    **Non-finite values**: A zero derivative produces an infinite or NaN
    step. No guard is applied: a NaN estimate compares false against both
    bounds and an infinite one exceeds the finite bounds, so the iteration
    stops and the attempt fails.

    **Batching**: All elements share the iteration count. An element stops
    changing once it converges or leaves its bounds, and the loop ends when
    no element is active. ``f`` always receives the full batch, but a
    stopped element is passed its last in-bounds estimate (or the interval
    midpoint if it never was inside), and the values computed for it are
    discarded. ``f`` is therefore never called outside the bounds.

    **Autograd Support**: For tensor results, gradients with respect to
    parameters in ``f`` flow through converged roots by implicit
    differentiation. The iteration itself is not recorded.
    """
    if not accuracy > 0:
        warnings.warn(
            f"accuracy={accuracy} is not positive; the iteration cannot converge.",
            RuntimeWarning,
            stacklevel=2,
        )

    scalar_input = not isinstance(initial_guess, Tensor)

    x = _as_estimate(initial_guess)
    lower, upper = _resolve_bounds(x, lower_bound, upper_bound)
    shape = torch.broadcast_shapes(x.shape, lower.shape, upper.shape)
    if x.shape != shape:
        x = x.expand(shape).clone()

    converged = torch.zeros(x.shape, dtype=torch.bool, device=x.device)
    # Last in-bounds estimate; stopped elements are evaluated here
    midpoint = 0.5 * lower + 0.5 * upper
    last_inside = torch.where(within_bounds(x, lower, upper), x, midpoint)

    with torch.no_grad():
        for _ in range(max_iterations):
            active = ~converged & within_bounds(x, lower, upper)
            if not torch.any(active):
                break
            last_inside = torch.where(active, x, last_inside)

            # Evaluation
            fx, dfx = evaluate_with_derivative(
                f, last_inside, df=df, method=method, h=h
            )
            shape = torch.broadcast_shapes(x.shape, fx.shape)
            if shape != x.shape:
                # f closes over batched parameters
                x = x.expand(shape).clone()
                last_inside = last_inside.expand(shape).clone()
                converged = converged.expand(shape).clone()
                active = active.expand(shape)
                fx, dfx = evaluate_with_derivative(
                    f, last_inside, df=df, method=method, h=h
                )

            # Newton-Raphson step
            step = fx / dfx
            x = torch.where(active, x - step, x)

            converged = converged | (active & check_convergence(step, fx, accuracy))

    if scalar_input and x.dim() == 0:
        return x.item(), bool(converged)

    root = _attach_implicit_grad(x, converged, last_inside, f, df, method, h)
    return root, converged


def _raise_unless_converged(
    root: Tensor | float,
    converged: Tensor | bool,
) -> Tensor | float:
    """Return ``root``, or raise if any element failed to converge.

    Raises
    ------
    NonConvergenceError
        If ``converged`` is False, or a tensor with any False element.
    """
    if isinstance(converged, Tensor):
        converged = bool(torch.all(converged))
    if not converged:
        raise NonConvergenceError()
    return root


def find_root_near_guess(
    f: Callable[[Tensor], Tensor],
    df: Callable[[Tensor], Tensor] | None,
    initial_guess: Tensor | float,
    lower_bound: Tensor | float | None = None,
    upper_bound: Tensor | float | None = None,
    accuracy: float = DEFAULT_ACCURACY,
    max_iterations: int = DEFAULT_MAX_ITERATIONS,
    *,
    method: str = "autodiff",
    h: float | None = None,
) -> Tensor | float:
    """
    Find a root of f(x) = 0 with Newton-Raphson iteration from a guess.

    Parameters
    ----------
    f : Callable[[Tensor], Tensor]
        Element-wise function whose root is sought.
    df : Callable[[Tensor], Tensor] or None
        Derivative of ``f``. If None, the derivative is computed with
        ``method``.
    initial_guess : Tensor or float
        Starting estimate.
    lower_bound : Tensor or float, optional
        Default: the most negative representable value (unbounded below).
    upper_bound : Tensor or float, optional
        Default: the most positive representable value (unbounded above).
    accuracy : float, default=1e-8
        Tolerance for both ``|step|`` and ``|f(x)|``.
    max_iterations : int, default=100
        Maximum number of Newton steps.
    method : str, default="autodiff"
        "autodiff" or "finite_difference"; used when ``df`` is None.
    h : float, optional
        Step size for finite differences.

    Returns
    -------
    Tensor or float
        The root, with the type of ``initial_guess``.

    Raises
    ------
    NonConvergenceError
        If the attempt fails (for tensors: if any element fails).

    Examples
    --------
    >>> import math
    >>> from torchnewton.root_finding import find_root_near_guess
    >>> root = find_root_near_guess(lambda x: x**3 - 8, lambda x: 3 * x**2, 3.0)
    >>> math.isclose(root, 2.0)
    True

    See Also
    --------
    try_find_root : Non-raising form returning ``(root, converged)``.
    """
    root, converged = try_find_root(
        f,
        df,
        initial_guess,
        lower_bound,
        upper_bound,
        accuracy,
        max_iterations,
        method=method,
        h=h,
    )
    return _raise_unless_converged(root, converged)


def find_root(
    f: Callable[[Tensor], Tensor],
    df: Callable[[Tensor], Tensor] | None,
    lower_bound: Tensor | float,
    upper_bound: Tensor | float,
    accuracy: float = DEFAULT_ACCURACY,
    max_iterations: int = DEFAULT_MAX_ITERATIONS,
    *,
    method: str = "autodiff",
    h: float | None = None,
) -> Tensor | float:
    """
    Find a root of f(x) = 0 within an interval with Newton-Raphson iteration.

    The iteration starts at the midpoint ``0.5 * (lower_bound + upper_bound)``
    and is abandoned as soon as the estimate leaves the interval.

    Parameters
    ----------
    f : Callable[[Tensor], Tensor]
        Element-wise function whose root is sought.
    df : Callable[[Tensor], Tensor] or None
        Derivative of ``f``. If None, the derivative is computed with
        ``method``.
    lower_bound : Tensor or float
        Lower end of the search interval. Integer tensors are promoted to
        float64.
    upper_bound : Tensor or float
        Upper end of the search interval. Integer tensors are promoted to
        float64.
    accuracy : float, default=1e-8
        Tolerance for both ``|step|`` and ``|f(x)|``.
    max_iterations : int, default=100
        Maximum number of Newton steps.
    method : str, default="autodiff"
        "autodiff" or "finite_difference"; used when ``df`` is None.
    h : float, optional
        Step size for finite differences.

    Returns
    -------
    Tensor or float
        The root. A float when both bounds are Python numbers.

    Raises
    ------
    NonConvergenceError
        If the attempt fails (for tensors: if any element fails).

    Examples
    --------
    >>> import torch
    >>> from torchnewton.root_finding import find_root
    >>> c = torch.tensor([2.0, 3.0, 4.0], dtype=torch.float64)
    >>> lower = torch.full((3,), 1.0, dtype=torch.float64)
    >>> upper = torch.full((3,), 3.0, dtype=torch.float64)
    >>> roots = find_root(lambda x: x**2 - c, None, lower, upper)
    >>> [f"{v:.4f}" for v in roots.tolist()]
    ['1.4142', '1.7321', '2.0000']

    See Also
    --------
    find_root_near_guess : Start from an explicit guess.
    """
    lower_bound = _promote(lower_bound)
    upper_bound = _promote(upper_bound)
    initial_guess = 0.5 * (lower_bound + upper_bound)
    root, converged = try_find_root(
        f,
        df,
        initial_guess,
        lower_bound,
        upper_bound,
        accuracy,
        max_iterations,
        method=method,
        h=h,
    )
    return _raise_unless_converged(root, converged)
