"""
Utility functions for the Network What-If Dashboard.
"""

import math
from typing import Iterable


def safe_divide(numerator: float, denominator: float, default: float = 0.0) -> float:
    """Safely divide two numbers, returning default if denominator is zero."""
    return numerator / denominator if denominator != 0 else default


def finite_or_zero(value: float) -> float:
    """Coerce NaN and infinities to 0."""
    if value is None or math.isnan(value) or math.isinf(value):
        return 0.0
    return value


def mean(values: Iterable[float], default: float = 0.0) -> float:
    """
    Arithmetic mean of values.

    Args:
        values: Numbers to average
        default: Returned when there are no values

    Returns:
        The mean, or default for an empty input
    """
    values = list(values)
    if not values:
        return default
    return finite_or_zero(sum(values) / len(values))


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero for positives."""
    value = finite_or_zero(value)
    return int(math.floor(value + 0.5))
