"""
Discrimination analysis: can the score pick out high-wellbeing respondents?

A session is labelled positive when its Benchmark is at or above the 75th
percentile of the analysed population. AUC is computed from the Mann-Whitney
U statistic on average ranks of the predictor:

    U   = (rank sum of positives) - n1 (n1 + 1) / 2
    AUC = U / (n0 * n1)

AUC is None (not 0) when either class is empty. Each raw questionnaire total is
scored against the same label for comparison, and the ROC curve is exposed as
(FPR, TPR) pairs swept from the highest threshold down.
"""

import logging
from typing import Dict, List, Optional, Sequence, Tuple

from ihs_validity.core.stats import (
    average_ranks,
    bootstrap,
    percentile_interval,
    quantile,
)

from ._constants import (
    HIGH_BENCHMARK_QUANTILE,
    MIN_BOOTSTRAP_REPLICATES,
    MIN_SAMPLE_ROC,
    QUESTIONNAIRES,
    ROC_MAX_POINTS,
)
from ._types import JoinedRecord
from .context import ComputationContext

logger = logging.getLogger(__name__)


def high_benchmark_labels(benchmarks: Sequence[float]) -> Tuple[List[int], Optional[float]]:
    """Top-quartile labels and the cut point used."""
    threshold = quantile(benchmarks, HIGH_BENCHMARK_QUANTILE)
    if threshold is None:
        return [], None
    return [1 if b >= threshold else 0 for b in benchmarks], threshold


def auc(scores: Sequence[float], labels: Sequence[int]) -> Optional[float]:
    """
    Rank-based AUC (Mann-Whitney U / n0 n1) with tied scores sharing ranks.

    Returns:
        AUC in [0, 1], or None when either class is empty.
    """
    n_pos = sum(1 for y in labels if y == 1)
    n_neg = len(labels) - n_pos
    if n_pos == 0 or n_neg == 0:
        return None
    ranks = average_ranks(scores)
    rank_sum = sum(rank for rank, y in zip(ranks, labels) if y == 1)
    u = rank_sum - n_pos * (n_pos + 1) / 2.0
    return u / (n_pos * n_neg)


def _downsample(points: List[Dict], max_points: int) -> List[Dict]:
    if len(points) <= max_points:
        return points
    last = len(points) - 1
    keep = sorted({round(i * last / (max_points - 1)) for i in range(max_points)})
    return [points[i] for i in keep]


def roc_curve(
    scores: Sequence[float], labels: Sequence[int], max_points: int = ROC_MAX_POINTS
) -> List[Dict]:
    """
    ROC points over the unique score thresholds, most extreme first.

    The curve starts at (0, 0) (threshold above every score) and ends at
    (1, 1). A session counts as predicted-positive when its score is at or
    above the threshold.
    """
    n_pos = sum(1 for y in labels if y == 1)
    n_neg = len(labels) - n_pos
    if n_pos == 0 or n_neg == 0:
        return []

    ordered = sorted(zip(scores, labels), key=lambda p: p[0], reverse=True)
    points: List[Dict] = [{"threshold": None, "fpr": 0.0, "tpr": 0.0}]
    tp = fp = 0
    i = 0
    while i < len(ordered):
        threshold = ordered[i][0]
        while i < len(ordered) and ordered[i][0] == threshold:
            if ordered[i][1] == 1:
                tp += 1
            else:
                fp += 1
            i += 1
        points.append({"threshold": threshold, "fpr": fp / n_neg, "tpr": tp / n_pos})
    return _downsample(points, max_points)


def _auc_of_pairs(pairs: Sequence[Tuple[float, int]]) -> Optional[float]:
    return auc([p[0] for p in pairs], [p[1] for p in pairs])


def discrimination_analysis(
    records: Sequence[JoinedRecord],
    scores: Dict[str, Optional[float]],
    ctx: ComputationContext,
) -> Dict:
    """
    AUC of the score for the top-quartile Benchmark label.

    Returns:
        Dictionary with ``auc``, ``ci95``, ``n``, ``n_positive``,
        ``threshold``, ``points``, ``questionnaires`` (AUC per raw total),
        ``best``, ``best_name``, ``insufficient_data`` and ``error``.
    """
    rows = [
        r
        for r in records
        if ctx.benchmark(r) is not None and scores.get(r.session_id) is not None
    ]
    result: Dict = {
        "auc": None,
        "ci95": None,
        "n": len(rows),
        "n_positive": 0,
        "threshold": None,
        "points": [],
        "questionnaires": {name: None for name in QUESTIONNAIRES},
        "best": None,
        "best_name": None,
        "insufficient_data": False,
        "error": None,
    }
    if len(rows) < MIN_SAMPLE_ROC:
        result["insufficient_data"] = True
        result["error"] = f"ROC needs at least {MIN_SAMPLE_ROC} sessions, got {len(rows)}"
        return result

    benchmarks = [ctx.benchmark(r) for r in rows]
    labels, threshold = high_benchmark_labels(benchmarks)  # type: ignore[arg-type]
    predictor = [scores[r.session_id] for r in rows]
    result["threshold"] = threshold
    result["n_positive"] = sum(labels)

    result["auc"] = auc(predictor, labels)  # type: ignore[arg-type]
    if result["auc"] is None:
        result["error"] = "Only one class present after labelling"
        return result

    pairs = list(zip(predictor, labels))
    replicates = bootstrap(pairs, _auc_of_pairs, ctx.bootstrap_replicates, ctx.rng)
    result["ci95"] = percentile_interval(replicates, min_replicates=MIN_BOOTSTRAP_REPLICATES)
    result["points"] = roc_curve(predictor, labels)  # type: ignore[arg-type]

    for name in QUESTIONNAIRES:
        q_scores: List[float] = []
        q_labels: List[int] = []
        for r, y in zip(rows, labels):
            value = r.questionnaire_total(name)
            if value is not None:
                q_scores.append(value)
                q_labels.append(y)
        result["questionnaires"][name] = auc(q_scores, q_labels) if q_scores else None

    ranked = [(v, k) for k, v in result["questionnaires"].items() if v is not None]
    if ranked:
        best_value, best_name = max(ranked)
        result["best"] = best_value
        result["best_name"] = best_name
    return result
