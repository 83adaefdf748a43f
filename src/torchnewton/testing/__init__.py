"""Testing helpers for root finding.

Hypothesis strategies for generating root-finding problems:

    import hypothesis
    from torchnewton.testing import integers_as_floats, intervals

    @hypothesis.given(root=integers_as_floats(), interval=intervals())
    def test_something(root, interval):
        ...
"""

from .strategies import (
    integers_as_floats,
    intervals,
    real_numbers,
)

__all__ = [
    "integers_as_floats",
    "intervals",
    "real_numbers",
]
