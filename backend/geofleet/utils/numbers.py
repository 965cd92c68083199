from __future__ import annotations

import math


def round_half_up(value: float, ndigits: int = 0) -> float:
    """Round with halves going up (2.5 -> 3, -2.5 -> -2), unlike banker's ``round``."""
    scale = 10 ** ndigits
    return math.floor(value * scale + 0.5) / scale


def round_half_up_int(value: float) -> int:
    return int(math.floor(value + 0.5))
