"""Numeric helpers"""
import math


def round_half_up(value: float) -> int:
    """
    Round to the nearest integer, halves away from negative infinity.

    Python's round() uses banker's rounding (round(72.5) == 72); scores and
    averages here round .5 upwards so 72.5 -> 73 and -10.5 -> -10.
    """
    return int(math.floor(value + 0.5))


def clamp(value: float, lower: float, upper: float) -> float:
    """Clamp value into [lower, upper]"""
    return max(lower, min(upper, value))
