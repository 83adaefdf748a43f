# tests/torchnewton/root_finding/test__convergence.py
import sys

import torch

from torchnewton.root_finding._convergence import (
    DEFAULT_ACCURACY,
    DEFAULT_MAX_ITERATIONS,
    check_convergence,
    default_bounds,
    within_bounds,
)


class TestDefaults:
    """Tests for default parameters."""

    def test_default_accuracy(self):
        assert DEFAULT_ACCURACY == 1e-8

    def test_default_max_iterations(self):
        assert DEFAULT_MAX_ITERATIONS == 100

    def test_float64_bounds(self):
        """float64 bounds are the extreme finite doubles."""
        lower, upper = default_bounds(torch.float64)
        assert lower == -sys.float_info.max
        assert upper == sys.float_info.max

    def test_float32_bounds(self):
        """float32 bounds follow torch.finfo."""
        lower, upper = default_bounds(torch.float32)
        assert lower == torch.finfo(torch.float32).min
        assert upper == torch.finfo(torch.float32).max


class TestWithinBounds:
    """Tests for the bounds predicate."""

    def test_inside_and_outside(self):
        x = torch.tensor([-1.0, 0.0, 0.5, 1.0, 2.0])
        mask = within_bounds(x, torch.tensor(0.0), torch.tensor(1.0))
        assert mask.tolist() == [False, True, True, True, False]

    def test_nan_is_out_of_bounds(self):
        """NaN compares false against both bounds."""
        lower, upper = default_bounds(torch.float64)
        x = torch.tensor([float("nan")], dtype=torch.float64)
        mask = within_bounds(
            x,
            torch.tensor(lower, dtype=torch.float64),
            torch.tensor(upper, dtype=torch.float64),
        )
        assert mask.tolist() == [False]

    def test_infinity_is_out_of_default_bounds(self):
        lower, upper = default_bounds(torch.float64)
        x = torch.tensor([float("inf"), float("-inf")], dtype=torch.float64)
        mask = within_bounds(
            x,
            torch.tensor(lower, dtype=torch.float64),
            torch.tensor(upper, dtype=torch.float64),
        )
        assert mask.tolist() == [False, False]


class TestCheckConvergence:
    """Tests for convergence checking."""

    def test_converged_when_both_small(self):
        step = torch.tensor([1e-10])
        fx = torch.tensor([1e-10])
        assert check_convergence(step, fx, 1e-8).tolist() == [True]

    def test_small_step_large_residual(self):
        """A small step alone is not convergence."""
        step = torch.tensor([1e-10])
        fx = torch.tensor([1.0])
        assert check_convergence(step, fx, 1e-8).tolist() == [False]

    def test_small_residual_large_step(self):
        """A small residual alone is not convergence."""
        step = torch.tensor([1.0])
        fx = torch.tensor([1e-10])
        assert check_convergence(step, fx, 1e-8).tolist() == [False]

    def test_strict_inequality(self):
        step = torch.tensor([0.5], dtype=torch.float64)
        fx = torch.tensor([0.0], dtype=torch.float64)
        assert check_convergence(step, fx, 0.5).tolist() == [False]

    def test_non_finite_never_converges(self):
        step = torch.tensor([float("inf"), float("nan")])
        fx = torch.tensor([0.0, 0.0])
        assert check_convergence(step, fx, 1e-8).tolist() == [False, False]

    def test_mixed_convergence(self):
        step = torch.tensor([1e-10, 1.0, 1e-10])
        fx = torch.tensor([1e-10, 1e-10, 1.0])
        assert check_convergence(step, fx, 1e-8).tolist() == [
            True,
            False,
            False,
        ]
