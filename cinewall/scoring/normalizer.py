"""
Score normalizer.

Maps a rating of unknown type and scale onto a 0-100 integer.
"""

import logging
import math
from typing import Any, Optional

logger = logging.getLogger(__name__)


SCORE_MIN = 0
SCORE_MAX = 100


def round_half_up(value: float) -> int:
    """Round .5 away from zero for positive values (Python's round() is banker's)."""
    return int(math.floor(value + 0.5))


def clamp(value: float, low: float, high: float) -> float:
    """Bound `value` to [low, high]."""
    return max(low, min(high, value))


def normalize_score(value: Any) -> Optional[int]:
    """
    Normalize a raw rating to an integer in [0, 100].

    The scale is guessed from magnitude, first matching range wins:
        v <= 0        -> 0
        0 < v <= 1    -> fraction, x100
        1 < v <= 5    -> 5-point, x20
        5 < v <= 10   -> 10-point, x10
        10 < v <= 100 -> already a percentage
        v > 100       -> 0 (unknown scale)

    A value of exactly 1 therefore reads as 100%, and exactly 5 as 5/5.
    That is a known limitation of guessing scale from magnitude.

    Args:
        value: int, float or numeric string (a trailing % is allowed)

    Returns:
        Integer score, or None if `value` is absent or not a number
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        text = value.strip().rstrip("%").strip()
        if not text:
            return None
        try:
            number = float(text)
        except ValueError:
            return None
    else:
        return None

    if math.isnan(number) or math.isinf(number):
        return None

    if number <= 0:
        return 0
    if number <= 1:
        return round_half_up(number * 100)
    if number <= 5:
        return round_half_up(number * 20)
    if number <= 10:
        return round_half_up(number * 10)
    if number <= 100:
        return round_half_up(number)

    logger.debug(f"Rating {number} is above any known scale, normalizing to 0")
    return 0
