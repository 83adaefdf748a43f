# tests/torchnewton/testing/test__strategies.py
import math

import hypothesis

from torchnewton.testing import integers_as_floats, intervals, real_numbers


class TestStrategies:
    """Tests for root-finding hypothesis strategies."""

    @hypothesis.given(value=integers_as_floats())
    def test_integers_as_floats(self, value):
        assert isinstance(value, float)
        assert value == int(value)
        assert -1000 <= value <= 1000

    @hypothesis.given(value=real_numbers())
    def test_real_numbers_are_finite(self, value):
        assert math.isfinite(value)

    @hypothesis.given(interval=intervals())
    def test_intervals_are_ordered(self, interval):
        lower, upper = interval
        assert lower <= upper
        assert -1e3 <= lower and upper <= 1e3
