import decimal


def round_half_up(value: float, places: int = 2) -> float:
    """Round the exact binary value of `value` to `places`, ties away from zero.

    This matches how grades are rounded for display in the gradebook: 0.125
    becomes 0.13 (where `round()` would give 0.12), while 1.005, which is
    really 1.00499999..., becomes 1.0.
    """
    quantum = decimal.Decimal(1).scaleb(-places)
    return float(decimal.Decimal(value).quantize(quantum, rounding=decimal.ROUND_HALF_UP))


def difference(a: float, b: float) -> decimal.Decimal:
    """Absolute difference of two reported values, computed on their shortest decimal representations."""
    return abs(decimal.Decimal(repr(a)) - decimal.Decimal(repr(b)))


def exceeds_tolerance(actual: float, expected: float, tolerance: float) -> bool:
    # strictly greater: a difference equal to the tolerance is still a match
    return difference(actual, expected) > decimal.Decimal(repr(tolerance))
