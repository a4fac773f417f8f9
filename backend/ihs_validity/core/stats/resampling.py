"""
Resampling utilities: bootstrap and k-fold partitioning.

Callers pass in their own ``random.Random``. Nothing in this module touches
the global RNG, so concurrent requests never share generator state.
"""

import math
import random
from typing import Callable, List, Optional, Sequence, Tuple, TypeVar

from .descriptive import quantile

T = TypeVar("T")


def bootstrap(
    items: Sequence[T],
    statistic: Callable[[List[T]], Optional[float]],
    replicates: int,
    rng: random.Random,
) -> List[float]:
    """
    Nonparametric bootstrap of ``statistic`` over ``items``.

    Each replicate draws len(items) items with replacement. Replicates where
    the statistic is undefined (None or non-finite) are dropped.

    Returns:
        The defined replicate values, in draw order.
    """
    n = len(items)
    if n == 0 or replicates <= 0:
        return []
    out: List[float] = []
    for _ in range(replicates):
        sample = [items[rng.randrange(n)] for _ in range(n)]
        value = statistic(sample)
        if value is not None and math.isfinite(value):
            out.append(value)
    return out


def percentile_interval(
    values: Sequence[float], level: float = 0.95, min_replicates: int = 10
) -> Optional[Tuple[float, float]]:
    """Percentile confidence interval from bootstrap replicates."""
    if len(values) < min_replicates:
        return None
    tail = (1.0 - level) / 2.0
    low = quantile(values, tail)
    high = quantile(values, 1.0 - tail)
    if low is None or high is None:
        return None
    return (low, high)


def kfold_partition(n: int, k: int, rng: random.Random) -> List[List[int]]:
    """
    Shuffle indices 0..n-1 and deal them round-robin into k folds.

    With a seeded generator the partition is fully deterministic.

    Returns:
        k lists of indices, each sorted ascending.
    """
    if k < 2 or n < k:
        raise ValueError(f"Cannot split {n} items into {k} folds")
    indices = list(range(n))
    rng.shuffle(indices)
    folds: List[List[int]] = [[] for _ in range(k)]
    for position, index in enumerate(indices):
        folds[position % k].append(index)
    return [sorted(fold) for fold in folds]
