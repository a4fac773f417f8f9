"""
Incremental-validity regression with a nested-model F-test.

Two ordinary least squares models predict the Benchmark from standardized
predictors:

    base = {WHO-5 z, SWLS z, Cantril z}
    full = base + score z

    delta_r2 = r2_full - r2_base
    F = (delta_r2 / df1) / ((1 - r2_full) / df2)
    df1 = predictor-count difference, df2 = n - p_full - 1

The p-value is the upper tail of the F distribution. Because the Benchmark is
itself the mean of the base predictors, the base model fits (almost) perfectly
whenever all three questionnaires are present; read this as an internal
consistency check. The leave-one-out comparison in non_inferiority.py is the
independent test.
"""

import logging
from typing import Dict, List, Optional, Sequence

from ihs_validity.core.stats import f_survival, finite_values, mean, ols_fit, sample_sd, standardize

from ._constants import MIN_SAMPLE_REGRESSION, QUESTIONNAIRES
from ._types import JoinedRecord, RegressionResult
from .context import ComputationContext

logger = logging.getLogger(__name__)

# 1 - r2_full at or below this is a perfect fit; F is undefined
PERFECT_FIT_EPSILON = 1e-12

INTERNAL_CONSISTENCY_NOTE = (
    "Benchmark is the mean of the base predictors; delta R^2 here is an "
    "internal-consistency check, see non_inferiority for the independent test"
)


def nested_regression(
    y: Sequence[float],
    base_X: Sequence[Sequence[float]],
    full_X: Sequence[Sequence[float]],
) -> RegressionResult:
    """
    Compare two nested OLS models with an F-test on the R^2 increment.

    Args:
        y: Outcome
        base_X: Base design rows (no intercept column)
        full_X: Full design rows; must contain the base predictors

    Returns:
        RegressionResult. R^2 values are None for a singular design or a
        constant outcome; F and p are None when df2 <= 0 or the full model
        fits perfectly.
    """
    n = len(y)
    p_base = len(base_X[0]) if base_X else 0
    p_full = len(full_X[0]) if full_X else 0
    df1 = p_full - p_base
    df2 = n - p_full - 1
    result: RegressionResult = {
        "n": n,
        "r2_base": None,
        "r2_full": None,
        "delta_r2": None,
        "f": None,
        "df1": df1,
        "df2": df2,
        "p": None,
    }
    if n == 0 or df1 <= 0:
        return result

    base_fit = ols_fit(base_X, y)
    full_fit = ols_fit(full_X, y)
    if base_fit is None or full_fit is None:
        logger.info(f"Nested regression skipped: singular design (n={n})")
        return result
    r2_base, r2_full = base_fit[1], full_fit[1]
    result["r2_base"] = r2_base
    result["r2_full"] = r2_full
    if r2_base is None or r2_full is None:
        return result

    delta = max(0.0, r2_full - r2_base)
    result["delta_r2"] = delta
    if df2 <= 0 or (1.0 - r2_full) <= PERFECT_FIT_EPSILON:
        return result

    f_stat = (delta / df1) / ((1.0 - r2_full) / df2)
    result["f"] = f_stat
    result["p"] = f_survival(f_stat, df1, df2)
    return result


def incremental_validity(
    records: Sequence[JoinedRecord],
    scores: Dict[str, Optional[float]],
    ctx: ComputationContext,
) -> Dict:
    """Does the score explain Benchmark variance beyond the questionnaires?"""
    score_values = finite_values(scores.get(r.session_id) for r in records)
    score_mean, score_sd = mean(score_values), sample_sd(score_values)

    y: List[float] = []
    base_X: List[List[float]] = []
    full_X: List[List[float]] = []
    for r in records:
        b = ctx.benchmark(r)
        zs = ctx.questionnaire_zs(r)
        s = standardize(scores.get(r.session_id), score_mean, score_sd)
        if b is None or s is None or any(zs[name] is None for name in QUESTIONNAIRES):
            continue
        base_row = [zs[name] for name in QUESTIONNAIRES]
        y.append(b)
        base_X.append(base_row)  # type: ignore[arg-type]
        full_X.append([*base_row, s])  # type: ignore[list-item]

    if len(y) < MIN_SAMPLE_REGRESSION:
        return {
            "n": len(y),
            "r2_base": None,
            "r2_full": None,
            "delta_r2": None,
            "f": None,
            "df1": 1,
            "df2": len(y) - len(QUESTIONNAIRES) - 2,
            "p": None,
            "note": INTERNAL_CONSISTENCY_NOTE,
            "insufficient_data": True,
            "error": (
                f"Regression needs at least {MIN_SAMPLE_REGRESSION} complete rows, "
                f"got {len(y)}"
            ),
        }

    result: Dict = dict(nested_regression(y, base_X, full_X))
    result["note"] = INTERNAL_CONSISTENCY_NOTE
    result["insufficient_data"] = False
    result["error"] = None
    return result
