import hypothesis.strategies

from ._real_numbers import real_numbers


@hypothesis.strategies.composite
def intervals(
    draw,
    min_value: float = -1e3,
    max_value: float = 1e3,
) -> tuple[float, float]:
    """Strategy for search intervals ``(lower, upper)`` with ``lower <= upper``."""
    a = draw(real_numbers(min_value=min_value, max_value=max_value))
    b = draw(real_numbers(min_value=min_value, max_value=max_value))
    return min(a, b), max(a, b)
