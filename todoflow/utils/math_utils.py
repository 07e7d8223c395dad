# File: utils/math_utils.py
"""Math and calculation utilities for ToDoFlow.

Functions:
    - round_ratio: Consistent rounding to configured precision
    - safe_ratio: completed/total ratio that is 0.0 for empty buckets
    - calculate_percentage: Completion percentage calculations
"""

from __future__ import annotations

# ==============================================================================
# Constants (local copies to avoid circular imports)
# ==============================================================================

# Default float precision for ratios and percentages
DATA_FLOAT_PRECISION = 2


def round_ratio(value: float, precision: int = DATA_FLOAT_PRECISION) -> float:
    """Round a ratio or percentage to the configured precision.

    Examples:
        round_ratio(0.3333) → 0.33
        round_ratio(66.666) → 66.67
    """
    return round(value, precision)


def safe_ratio(completed: int, total: int) -> float:
    """Return completed/total, or 0.0 when nothing was scheduled.

    Unrounded; an empty bucket is rendered as zero, never NaN.

    Examples:
        safe_ratio(1, 4) → 0.25
        safe_ratio(0, 0) → 0.0
    """
    if total <= 0:
        return 0.0
    return completed / total


def calculate_percentage(
    current: float,
    target: float,
    precision: int = DATA_FLOAT_PRECISION,
) -> float:
    """Calculate a completion percentage with proper rounding.

    Args:
        current: Completed count
        target: Total count
        precision: Number of decimal places for rounding

    Returns:
        Percentage (0-100) with proper rounding, or 0.0 if target is 0

    Examples:
        calculate_percentage(1, 3) → 33.33
        calculate_percentage(5, 0) → 0.0  # Division by zero protection
    """
    if target <= 0:
        return 0.0
    return round_ratio((current / target) * 100, precision)
