# parts_replenishment/utils/math_utils.py
from typing import List, Sequence, Tuple

import numpy as np

from parts_replenishment.exceptions import CalculationError


def mean(values: Sequence[float]) -> float:
    """Arithmetic mean, 0.0 for an empty sequence."""
    if len(values) == 0:
        return 0.0
    return float(np.mean(values))


def std_dev(values: Sequence[float]) -> float:
    """Population standard deviation.

    Args:
        values: List of values

    Returns:
        Standard deviation (0.0 for fewer than one value)
    """
    if len(values) == 0:
        return 0.0
    return float(np.std(values))


def coefficient_of_variation(values: Sequence[float]) -> float:
    """Calculate coefficient of variation (stddev / mean).

    Args:
        values: List of values

    Returns:
        Coefficient of variation, 0.0 when the mean is zero
    """
    avg = mean(values)
    if avg == 0:
        return 0.0
    return std_dev(values) / avg


def linear_regression(
    x: Sequence[float],
    y: Sequence[float]
) -> Tuple[float, float, float]:
    """Calculate ordinary least-squares regression coefficients.

    Args:
        x: List of x values (typically time periods)
        y: List of y values (typically demand)

    Returns:
        Tuple with slope, intercept and R-squared. R-squared is 1.0 when y
        has no variance.
    """
    if len(x) != len(y) or len(x) < 2:
        raise CalculationError("Invalid input for linear regression")

    x_arr = np.asarray(x, dtype=float)
    y_arr = np.asarray(y, dtype=float)

    mean_x = x_arr.mean()
    mean_y = y_arr.mean()

    denominator = float(np.sum((x_arr - mean_x) ** 2))
    if denominator == 0:
        slope = 0.0
    else:
        slope = float(np.sum((x_arr - mean_x) * (y_arr - mean_y))) / denominator

    intercept = float(mean_y - slope * mean_x)

    predicted = slope * x_arr + intercept
    ss_res = float(np.sum((y_arr - predicted) ** 2))
    ss_tot = float(np.sum((y_arr - mean_y) ** 2))
    r2 = 1.0 if ss_tot == 0 else 1.0 - (ss_res / ss_tot)

    return (slope, intercept, r2)


def split_halves(values: Sequence[float]) -> Tuple[List[float], List[float]]:
    """Split a series into first and second half (second half gets the odd element)."""
    middle = len(values) // 2
    return list(values[:middle]), list(values[middle:])


def percent_change(before: float, after: float) -> float:
    """Percentage change from before to after, 0.0 when before is zero."""
    if before == 0:
        return 0.0
    return (after - before) / before * 100.0


def clip(value: float, lower: float, upper: float) -> float:
    return max(lower, min(upper, value))
