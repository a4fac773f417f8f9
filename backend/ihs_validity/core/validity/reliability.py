"""
Reliability of both measures and the attenuation correction.

Split-half reliability of the behavioural score:
    Each session with at least 10 trials is split by trial index into even and
    odd halves, each half scored with the per-trial affirmation rule. The two
    half-score vectors are correlated across sessions and stepped up with the
    Spearman-Brown formula r_full = 2r / (1 + r).

Omega reliability of the Benchmark:
    The three questionnaire z-scores are treated as indicators of a single
    factor. The dominant eigenpair of their 3x3 covariance matrix is found by
    power iteration; loadings are eigenvector * sqrt(eigenvalue) and

        omega = sum(loading^2) / (sum(loading^2) + sum(1 - loading^2))

Both estimates carry a percentile bootstrap 95% CI over sessions. Bootstrap
draws come from the request's unseeded generator, so intervals vary slightly
from run to run.

Attenuation:
    r_true = r_observed / sqrt(rel_ihs * rel_benchmark), only when both
    reliabilities are positive and finite, clamped to [-1, 1].
"""

import logging
import math
from typing import Dict, List, Optional, Sequence, Tuple

from ihs_validity.core.stats import (
    bootstrap,
    percentile_interval,
    power_iteration,
    spearman_brown,
)

from ._constants import (
    MIN_BOOTSTRAP_REPLICATES,
    MIN_SAMPLE_OMEGA,
    MIN_SESSIONS_SPLIT_HALF,
    MIN_TRIALS_SPLIT_HALF,
    POWER_ITERATIONS,
    QUESTIONNAIRES,
)
from ._types import JoinedRecord
from .context import ComputationContext
from .trials import split_half_scores

logger = logging.getLogger(__name__)


# =============================================================================
# SPLIT-HALF
# =============================================================================


def _split_half_sb(
    pairs: Sequence[Tuple[float, float]], ctx: ComputationContext
) -> Optional[float]:
    r_half = ctx.correlate([p[0] for p in pairs], [p[1] for p in pairs])
    if r_half is None:
        return None
    return spearman_brown(r_half)


def split_half_reliability(
    records: Sequence[JoinedRecord], ctx: ComputationContext
) -> Dict:
    """
    Spearman-Brown corrected odd-even reliability of the behavioural score.

    Returns:
        Dictionary with keys ``r_half``, ``sb``, ``ci95``, ``n``,
        ``insufficient_data`` and ``error``.
    """
    pairs = [
        split_half_scores(r.trials)
        for r in records
        if len(r.trials) >= MIN_TRIALS_SPLIT_HALF
    ]
    result: Dict = {
        "r_half": None,
        "sb": None,
        "ci95": None,
        "n": len(pairs),
        "insufficient_data": False,
        "error": None,
    }
    if len(pairs) < MIN_SESSIONS_SPLIT_HALF:
        result["insufficient_data"] = True
        result["error"] = (
            f"Split-half needs at least {MIN_SESSIONS_SPLIT_HALF} sessions with "
            f"{MIN_TRIALS_SPLIT_HALF}+ trials, got {len(pairs)}"
        )
        return result

    r_half = ctx.correlate([p[0] for p in pairs], [p[1] for p in pairs])
    result["r_half"] = r_half
    if r_half is None:
        return result
    result["sb"] = spearman_brown(r_half)

    replicates = bootstrap(
        pairs, lambda sample: _split_half_sb(sample, ctx), ctx.bootstrap_replicates, ctx.rng
    )
    result["ci95"] = percentile_interval(replicates, min_replicates=MIN_BOOTSTRAP_REPLICATES)
    logger.debug(f"Split-half: n={len(pairs)}, r_half={r_half:.4f}, sb={result['sb']:.4f}")
    return result


# =============================================================================
# OMEGA
# =============================================================================


def _covariance_matrix(rows: Sequence[Sequence[float]]) -> List[List[float]]:
    n = len(rows)
    p = len(rows[0])
    means = [sum(row[j] for row in rows) / n for j in range(p)]
    cov = [[0.0] * p for _ in range(p)]
    for row in rows:
        centered = [row[j] - means[j] for j in range(p)]
        for a in range(p):
            for b in range(p):
                cov[a][b] += centered[a] * centered[b]
    return [[v / (n - 1) for v in line] for line in cov]


def omega_from_rows(rows: Sequence[Sequence[float]]) -> Optional[float]:
    """Single-factor omega from standardized indicator rows."""
    if len(rows) < 2:
        return None
    eig = power_iteration(_covariance_matrix(rows), POWER_ITERATIONS)
    if eig is None:
        return None
    vector, value = eig
    if value <= 0:
        return None
    loadings = [c * math.sqrt(value) for c in vector]

    common = sum(l * l for l in loadings)
    unique = sum(max(0.0, 1.0 - l * l) for l in loadings)
    if common + unique <= 0:
        return None
    return common / (common + unique)


def benchmark_omega(records: Sequence[JoinedRecord], ctx: ComputationContext) -> Dict:
    """
    Omega reliability of the Benchmark composite.

    Uses records where all three questionnaire z-scores exist.
    """
    rows: List[List[float]] = []
    for r in records:
        zs = ctx.questionnaire_zs(r)
        if all(zs[name] is not None for name in QUESTIONNAIRES):
            rows.append([zs[name] for name in QUESTIONNAIRES])  # type: ignore[misc]

    result: Dict = {
        "omega": None,
        "ci95": None,
        "n": len(rows),
        "insufficient_data": False,
        "error": None,
    }
    if len(rows) < MIN_SAMPLE_OMEGA:
        result["insufficient_data"] = True
        result["error"] = (
            f"Omega needs at least {MIN_SAMPLE_OMEGA} complete questionnaire sets, "
            f"got {len(rows)}"
        )
        return result

    result["omega"] = omega_from_rows(rows)
    if result["omega"] is None:
        result["error"] = "Indicator covariance matrix is degenerate"
        return result

    replicates = bootstrap(rows, omega_from_rows, ctx.bootstrap_replicates, ctx.rng)
    result["ci95"] = percentile_interval(replicates, min_replicates=MIN_BOOTSTRAP_REPLICATES)
    return result


# =============================================================================
# ATTENUATION
# =============================================================================


def disattenuate(
    r: Optional[float],
    reliability_ihs: Optional[float],
    reliability_benchmark: Optional[float],
) -> Optional[float]:
    """Correct an observed correlation for unreliability in both measures."""
    if r is None or reliability_ihs is None or reliability_benchmark is None:
        return None
    if not (math.isfinite(reliability_ihs) and math.isfinite(reliability_benchmark)):
        return None
    if reliability_ihs <= 0 or reliability_benchmark <= 0:
        return None
    corrected = r / math.sqrt(reliability_ihs * reliability_benchmark)
    return max(-1.0, min(1.0, corrected))
