"""
Numeric answer evaluation.

Handles free-text numeric answers including:
- Thousands separators and stray whitespace ("1,000", "1 000")
- Magnitude suffixes (k, m, b, t)

Supports exact, order-of-magnitude and relative tolerance policies.
"""

from __future__ import annotations

import math
import re

# Relative error accepted when a question does not specify a tolerance
DEFAULT_TOLERANCE = 0.5

SUFFIX_MULTIPLIERS = {
    "k": 1e3,
    "m": 1e6,
    "b": 1e9,
    "t": 1e12,
}

# Leading float literal, mirroring a lenient "parse the prefix" reading
_NUMBER_PREFIX = re.compile(r"^[+-]?(?:\d+\.?\d*|\.\d+)(?:e[+-]?\d+)?")


def _parse_float_prefix(text: str) -> float:
    match = _NUMBER_PREFIX.match(text)
    if not match:
        return math.nan
    return float(match.group(0))


def parse_numeric_input(raw: str) -> float:
    """
    Parse free-text numeric input.

    Args:
        raw: User input such as "5K", "1,200", "2.5m"

    Returns:
        Parsed value, or NaN when the text holds no number
    """
    cleaned = re.sub(r"[,\s]", "", raw).lower()

    for suffix, multiplier in SUFFIX_MULTIPLIERS.items():
        if cleaned.endswith(suffix):
            return _parse_float_prefix(cleaned[:-1]) * multiplier

    return _parse_float_prefix(cleaned)


def check_numeric_answer(
    user_value: float,
    correct_value: float,
    tolerance: str | float | None = None,
) -> bool:
    """
    Check a parsed value against the target under a tolerance policy.

    Args:
        user_value: Parsed user answer (NaN is always wrong)
        correct_value: Target value
        tolerance: "exact", "order-of-magnitude", a relative fraction,
            or None for the 50% default

    Returns:
        True if the answer is accepted
    """
    if math.isnan(user_value):
        return False
    # Zero target: relative error is undefined
    if correct_value == 0:
        return user_value == 0

    if tolerance == "order-of-magnitude":
        ratio = user_value / correct_value
        return 0.1 <= ratio <= 10
    if tolerance == "exact":
        return user_value == correct_value

    if isinstance(tolerance, (int, float)) and not isinstance(tolerance, bool):
        allowed = tolerance
    else:
        allowed = DEFAULT_TOLERANCE
    diff = abs(user_value - correct_value) / abs(correct_value)
    return diff <= allowed


def format_number(num: float) -> str:
    """
    Format a number for feedback display.

    5000 -> "5K", 2_500_000 -> "2.5M", 42 -> "42"
    """
    if num < 0:
        return "-" + format_number(-num)

    def _fmt(value: float, suffix: str) -> str:
        fixed = f"{value:.1f}"
        if fixed.endswith(".0"):
            fixed = fixed[:-2]
        return fixed + suffix

    if num >= 1e12:
        return _fmt(num / 1e12, "T")
    if num >= 1e9:
        return _fmt(num / 1e9, "B")
    if num >= 1e6:
        return _fmt(num / 1e6, "M")
    if num >= 1e3:
        return _fmt(num / 1e3, "K")
    if float(num).is_integer():
        return str(int(num))
    return str(num)
