"""Small numeric helpers."""

import math


def round_half_up(value: float) -> int:
    """Round to the nearest integer, with halves rounded up.

    ``round()`` uses banker's rounding (``round(72.5) == 72``); scores and
    percentages here round 72.5 to 73.
    """
    return math.floor(value + 0.5)
