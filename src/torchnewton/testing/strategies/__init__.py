"""Hypothesis strategies for root finding tests."""

from ._integers_as_floats import integers_as_floats
from ._intervals import intervals
from ._real_numbers import real_numbers

__all__ = [
    "integers_as_floats",
    "intervals",
    "real_numbers",
]
