"""
Correlation and significance routines.

Pearson and Spearman share one code path (Spearman is Pearson on average
ranks), so every caller gets the same zero-variance behaviour: r = 0 rather
than a division by zero. Fisher-transform intervals and the z-difference test
are built on the same transform.

Usage Example:
    from ihs_validity.core.stats import correlate, fisher_ci

    r = correlate(ihs_scores, benchmark, method="spearman")
    ci = fisher_ci(r, len(ihs_scores))
"""

import math
from typing import List, Optional, Sequence, Tuple

from .distributions import normal_cdf

# Two-sided 95% critical value of the standard normal
Z_CRIT_95 = 1.96


def _check_lengths(x: Sequence[float], y: Sequence[float]) -> int:
    if len(x) != len(y):
        raise ValueError(
            f"Correlation inputs must have equal length, got {len(x)} and {len(y)}"
        )
    return len(x)


def pearson(x: Sequence[float], y: Sequence[float]) -> Optional[float]:
    """
    Pearson product-moment correlation.

    Args:
        x: First variable
        y: Second variable (same length as x)

    Returns:
        Correlation clamped to [-1, 1]; 0.0 when either variable has zero
        variance; None when fewer than two pairs are available.
    """
    n = _check_lengths(x, y)
    if n < 2:
        return None

    mean_x = sum(x) / n
    mean_y = sum(y) / n
    num = 0.0
    ss_x = 0.0
    ss_y = 0.0
    for xi, yi in zip(x, y):
        dx = xi - mean_x
        dy = yi - mean_y
        num += dx * dy
        ss_x += dx * dx
        ss_y += dy * dy

    denom = math.sqrt(ss_x * ss_y)
    if denom <= 0:
        return 0.0
    return max(-1.0, min(1.0, num / denom))


def average_ranks(values: Sequence[float]) -> List[float]:
    """1-based ranks where tied values share the mean of their positions."""
    order = sorted(range(len(values)), key=lambda i: values[i])
    ranks = [0.0] * len(values)
    k = 0
    while k < len(order):
        j = k
        while j < len(order) and values[order[j]] == values[order[k]]:
            j += 1
        avg = (k + j - 1) / 2.0 + 1.0
        for t in range(k, j):
            ranks[order[t]] = avg
        k = j
    return ranks


def spearman(x: Sequence[float], y: Sequence[float]) -> Optional[float]:
    """Spearman rank correlation (Pearson on average ranks)."""
    n = _check_lengths(x, y)
    if n < 2:
        return None
    return pearson(average_ranks(x), average_ranks(y))


def correlate(
    x: Sequence[float], y: Sequence[float], method: str = "pearson"
) -> Optional[float]:
    """Dispatch to pearson() or spearman() by method name."""
    if method == "spearman":
        return spearman(x, y)
    if method == "pearson":
        return pearson(x, y)
    raise ValueError(f"Unknown correlation method: {method}")


def fisher_ci(
    r: Optional[float], n: int, z_crit: float = Z_CRIT_95
) -> Optional[Tuple[float, float]]:
    """
    Confidence interval for a correlation via the Fisher z-transform.

    z = atanh(r), SE = 1 / sqrt(n - 3), bounds are tanh(z -/+ z_crit * SE).

    Returns:
        (lower, upper), or None for n < 4, a missing r, or |r| = 1 where
        the transform is unbounded.
    """
    if r is None or n < 4 or not math.isfinite(r) or abs(r) >= 1.0:
        return None
    z = math.atanh(r)
    se = 1.0 / math.sqrt(n - 3)
    return (math.tanh(z - z_crit * se), math.tanh(z + z_crit * se))


def fisher_z_difference(
    r1: Optional[float], n1: int, r2: Optional[float], n2: int
) -> Optional[Tuple[float, float]]:
    """
    Test the difference of two correlations with Fisher's z.

    z = (atanh(r1) - atanh(r2)) / sqrt(1/(n1-3) + 1/(n2-3)); the p-value is
    two-sided from the standard normal CDF.

    Returns:
        (z, p), or None when either sample is below 4 or either |r| = 1.
    """
    if r1 is None or r2 is None or n1 < 4 or n2 < 4:
        return None
    if abs(r1) >= 1.0 or abs(r2) >= 1.0:
        return None
    se = math.sqrt(1.0 / (n1 - 3) + 1.0 / (n2 - 3))
    z = (math.atanh(r1) - math.atanh(r2)) / se
    p = 2.0 * (1.0 - normal_cdf(abs(z)))
    return (z, max(0.0, min(1.0, p)))


def partial_correlation(
    x: Sequence[float],
    y: Sequence[float],
    control: Sequence[float],
    method: str = "pearson",
) -> Optional[float]:
    """
    First-order partial correlation of x and y controlling for ``control``.

    Under the spearman method all three variables are rank-transformed first.
    Returns None for fewer than three cases or when the control variable
    explains either variable perfectly.
    """
    n = _check_lengths(x, y)
    _check_lengths(x, control)
    if n < 3:
        return None
    if method == "spearman":
        x, y, control = average_ranks(x), average_ranks(y), average_ranks(control)

    r_xy = pearson(x, y)
    r_xz = pearson(x, control)
    r_yz = pearson(y, control)
    if r_xy is None or r_xz is None or r_yz is None:
        return None
    denom = math.sqrt(max(0.0, 1 - r_xz * r_xz)) * math.sqrt(max(0.0, 1 - r_yz * r_yz))
    if denom <= 0:
        return None
    return max(-1.0, min(1.0, (r_xy - r_xz * r_yz) / denom))


def spearman_brown(r_half: float) -> float:
    """
    Spearman-Brown prophecy for a test of double length.

    r_full = 2 r / (1 + r), clamped to [-1, 1]; r_half <= -1 maps to -1.
    """
    if r_half <= -1.0:
        return -1.0
    r_full = (2 * r_half) / (1 + r_half)
    return max(-1.0, min(1.0, r_full))
