"""
Descriptive statistics over plain numeric sequences.

Values that are None, NaN or infinite are the caller's responsibility to
remove; use finite_values() for that. Functions return None when a statistic
is undefined for the given sample size rather than NaN.
"""

import math
from typing import Iterable, List, Optional, Sequence


def finite_values(values: Iterable[Optional[float]]) -> List[float]:
    """Return the finite numeric entries of ``values`` as floats."""
    out: List[float] = []
    for v in values:
        if v is None or isinstance(v, bool):
            continue
        try:
            f = float(v)
        except (TypeError, ValueError):
            continue
        if math.isfinite(f):
            out.append(f)
    return out


def mean(values: Sequence[float]) -> Optional[float]:
    if not values:
        return None
    return sum(values) / len(values)


def sample_variance(values: Sequence[float]) -> Optional[float]:
    """Unbiased (n - 1) variance. None for fewer than two values."""
    n = len(values)
    if n < 2:
        return None
    m = sum(values) / n
    return sum((v - m) ** 2 for v in values) / (n - 1)


def sample_sd(values: Sequence[float]) -> Optional[float]:
    var = sample_variance(values)
    if var is None:
        return None
    return math.sqrt(var)


def quantile(values: Sequence[float], q: float) -> Optional[float]:
    """
    Quantile with linear interpolation between order statistics.

    Position is (n - 1) * q over the sorted values, matching the "type 7"
    definition used by most spreadsheet and statistics packages.

    Args:
        values: Sample values (need not be sorted)
        q: Quantile in [0, 1]; values outside are clamped

    Returns:
        Interpolated quantile, or None for an empty sample
    """
    if not values:
        return None
    q = max(0.0, min(1.0, q))
    ordered = sorted(values)
    pos = (len(ordered) - 1) * q
    base = int(math.floor(pos))
    rest = pos - base
    if base + 1 < len(ordered):
        return ordered[base] + rest * (ordered[base + 1] - ordered[base])
    return ordered[base]


def skewness(values: Sequence[float]) -> Optional[float]:
    """Population moment skewness (g1). Zero for a constant sample."""
    n = len(values)
    if n < 3:
        return None
    m = sum(values) / n
    m2 = sum((v - m) ** 2 for v in values) / n
    m3 = sum((v - m) ** 3 for v in values) / n
    if m2 <= 0:
        return 0.0
    return m3 / (m2**1.5)


def excess_kurtosis(values: Sequence[float]) -> Optional[float]:
    """Population excess kurtosis (g2). Zero for a constant sample."""
    n = len(values)
    if n < 4:
        return None
    m = sum(values) / n
    m2 = sum((v - m) ** 2 for v in values) / n
    m4 = sum((v - m) ** 4 for v in values) / n
    if m2 <= 0:
        return 0.0
    return m4 / (m2 * m2) - 3.0


def standardize(
    value: Optional[float], center: Optional[float], scale: Optional[float]
) -> Optional[float]:
    """
    Z-score a single value against precomputed location and scale.

    Returns None when the value is missing or the scale is degenerate
    (missing or not strictly positive), so a constant column never produces
    a fabricated zero.
    """
    if value is None or center is None or scale is None:
        return None
    if not math.isfinite(value) or scale <= 0:
        return None
    return (value - center) / scale
