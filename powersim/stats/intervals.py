"""
Binomial proportion intervals for power estimates.
"""

import math
from typing import Tuple

from scipy.stats import norm


def _z_two_sided(confidence: float) -> float:
    """Two-sided normal quantile for the given confidence level."""
    return float(norm.ppf(0.5 + confidence / 2.0))


def standard_error(p_hat: float, n: int) -> float:
    """Standard error ``sqrt(p(1-p)/n)`` of a proportion."""
    return math.sqrt(p_hat * (1.0 - p_hat) / n)


def wald_interval(successes: int, n: int, confidence: float = 0.95) -> Tuple[float, float]:
    """Wald interval ``p ± z·se``, clipped to [0, 1]."""
    p_hat = successes / n
    half = _z_two_sided(confidence) * standard_error(p_hat, n)
    return max(0.0, p_hat - half), min(1.0, p_hat + half)


def wilson_interval(successes: int, n: int, confidence: float = 0.95) -> Tuple[float, float]:
    """Wilson score interval for ``successes / n``.

    Unlike the Wald interval it stays informative at ``p = 0`` or ``p = 1``,
    which is common for power near the extremes.
    """
    z = _z_two_sided(confidence)
    p_hat = successes / n
    z2 = z * z
    denom = 1.0 + z2 / n
    center = (p_hat + z2 / (2.0 * n)) / denom
    half = (z / denom) * math.sqrt(max(0.0, p_hat * (1.0 - p_hat) / n + z2 / (4.0 * n * n)))
    return max(0.0, center - half), min(1.0, center + half)
