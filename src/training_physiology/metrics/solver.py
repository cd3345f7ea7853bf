"""Bounded fixed-point iteration.

The solver knows nothing about running physiology: it repeatedly applies a
step function until successive estimates agree within a tolerance or an
iteration cap is reached. Hitting the cap is not an error; the caller gets
the best iterate together with ``converged=False``.
"""

import logging
import math
from dataclasses import dataclass
from typing import Callable

logger = logging.getLogger(__name__)


@dataclass
class SolverResult:
    """Outcome of a fixed-point solve."""

    value: float
    iterations: int
    converged: bool
    residual: float  # |last change|

    def to_dict(self) -> dict:
        return {
            "value": self.value,
            "iterations": self.iterations,
            "converged": self.converged,
            "residual": self.residual,
        }


def solve(
    step: Callable[[float], float],
    initial: float,
    tolerance: float,
    max_iterations: int,
) -> SolverResult:
    """
    Iterate ``x <- step(x)`` until ``|step(x) - x| <= tolerance``.

    Args:
        step: Target function whose fixed point is sought
        initial: Starting estimate
        tolerance: Absolute convergence tolerance
        max_iterations: Upper bound on step evaluations

    Returns:
        SolverResult with the last finite iterate
    """
    current = initial
    residual = math.inf

    for iteration in range(1, max_iterations + 1):
        candidate = step(current)
        if not math.isfinite(candidate):
            logger.warning(f"Solver produced a non-finite iterate after {iteration} steps")
            return SolverResult(current, iteration, False, residual)

        residual = abs(candidate - current)
        current = candidate
        if residual <= tolerance:
            return SolverResult(current, iteration, True, residual)

    logger.warning(
        f"Solver did not converge in {max_iterations} iterations (residual {residual:.4g})"
    )
    return SolverResult(current, max_iterations, False, residual)
