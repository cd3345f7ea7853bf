"""Small statistics helpers shared by the estimators."""

import statistics
from typing import Optional, Sequence


def coefficient_of_variation(values: Sequence[float]) -> float:
    """
    Population standard deviation divided by the mean.

    Returns 0 for fewer than two values or a zero mean.
    """
    if len(values) < 2:
        return 0.0
    mean = statistics.fmean(values)
    if mean == 0:
        return 0.0
    return statistics.pstdev(values, mu=mean) / mean


def percentile_value(values: Sequence[float], fraction: float) -> Optional[float]:
    """Nearest-rank value at ``fraction`` of the ascending sorted values."""
    if not values:
        return None
    ordered = sorted(values)
    index = min(int(len(ordered) * fraction), len(ordered) - 1)
    return ordered[index]


def least_squares_slope(xs: Sequence[float], ys: Sequence[float]) -> Optional[float]:
    """Slope of the ordinary least-squares line through (xs, ys), None if degenerate."""
    if len(xs) != len(ys) or len(xs) < 2:
        return None
    mean_x = statistics.fmean(xs)
    mean_y = statistics.fmean(ys)
    sxx = sum((x - mean_x) ** 2 for x in xs)
    if sxx == 0:
        return None
    sxy = sum((x - mean_x) * (y - mean_y) for x, y in zip(xs, ys))
    return sxy / sxx


def weighted_mean(values: Sequence[float], weights: Sequence[float]) -> Optional[float]:
    """Weighted arithmetic mean, None when the weights sum to zero."""
    total = sum(weights)
    if not values or total <= 0:
        return None
    return sum(v * w for v, w in zip(values, weights)) / total
