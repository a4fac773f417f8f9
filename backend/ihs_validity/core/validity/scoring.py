"""
Alternate scoring modes, including the cross-validated scorer.

Every mode yields one predicted value per session that replaces raw IHS in
all downstream modules:

- raw:      IHS as produced upstream
- tuned:    0.5 z(N1) + 0.3 z(N2) + 0.2 z(N3)
- n12:      0.5 z(N1) + 0.5 z(N2)
- n1:       N1 on its 0-100 scale (RT-denoised when requested)
- cv:       k-fold ridge regression of the Benchmark on standardized N1/N2/N3
- cv_domain: the same over per-domain affirmation sums
- cv_card:  the same over per-card affirmation values

The CV modes only ever emit held-out predictions: each session's score comes
from a model that never saw it. Standardization constants are refitted on each
training split, and cv_card selects its card features inside each training
split too. With ``rt_learn`` each fold also searches the response-time decay
exponent grid, keeping the exponent with the best in-fold correlation.

Fold assignment uses a seeded generator, so identical inputs always produce
the same partition.
"""

import logging
import math
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from ihs_validity.core.stats import (
    finite_values,
    kfold_partition,
    mean,
    predict,
    ridge_fit,
    sample_sd,
)

from ._constants import (
    CARD_FEATURE_CAP,
    CARD_SUPPORT_FRACTION,
    COMPONENTS,
    CV_MAX_FOLDS,
    CV_MIN_FOLDS,
    CV_SCORE_MODES,
    DEFAULT_RT_EXPONENT,
    DOMAINS,
    MIN_SAMPLE_CV,
    N12_WEIGHTS,
    RT_EXPONENT_GRID,
    TUNED_WEIGHTS,
)
from ._types import JoinedRecord
from .context import ComputationContext
from .trials import (
    card_affirmations,
    denoised_times,
    domain_affirmations,
    n1_denoised_scaled,
    trial_affirmation,
)

logger = logging.getLogger(__name__)

Features = Dict[str, float]
FeatureFn = Callable[[JoinedRecord, float], Optional[Features]]


def fold_count(n: int) -> int:
    """k = clamp(floor(sqrt(n / 10)), 3, 5)."""
    return max(CV_MIN_FOLDS, min(CV_MAX_FOLDS, int(math.sqrt(n / 10.0))))


def fold_partition(n: int, ctx: ComputationContext) -> List[List[int]]:
    """Deterministic fold assignment for ``n`` rows under the context's seed."""
    return kfold_partition(n, fold_count(n), ctx.fold_rng())


# =============================================================================
# FIXED-WEIGHT MODES
# =============================================================================


def _blend(
    record: JoinedRecord, ctx: ComputationContext, weights: Dict[str, float]
) -> Optional[float]:
    zs = {name: ctx.component_z(record, name) for name in weights}
    if all(z is None for z in zs.values()):
        return None
    # A missing component contributes nothing to the blend
    return sum(w * (zs[name] or 0.0) for name, w in weights.items())


def fixed_scores(
    records: Sequence[JoinedRecord], ctx: ComputationContext
) -> Dict[str, Optional[float]]:
    mode = ctx.analysis.score_mode
    if mode == "raw":
        return {r.session_id: r.ihs for r in records}
    if mode == "tuned":
        return {r.session_id: _blend(r, ctx, TUNED_WEIGHTS) for r in records}
    if mode == "n12":
        return {r.session_id: _blend(r, ctx, N12_WEIGHTS) for r in records}
    if mode == "n1":
        return {r.session_id: ctx.component_value(r, "n1") for r in records}
    raise ValueError(f"Unknown fixed score mode: {mode}")


# =============================================================================
# FEATURE EXTRACTION
# =============================================================================


def _affirmation_values(
    record: JoinedRecord, exponent: float, denoise: bool
) -> List[Tuple[int, float]]:
    """(trial index, affirmation) for every trial, using denoised times if asked."""
    times = denoised_times(record.trials) if denoise else None
    out = []
    for i, trial in enumerate(record.trials):
        rt = times[i] if times is not None else None
        if times is not None and rt is None:
            out.append((i, 0.0))
            continue
        out.append((i, trial_affirmation(trial, exponent, rt)))
    return out


def component_features(ctx: ComputationContext) -> FeatureFn:
    learn = ctx.analysis.rt_learn

    def extract(record: JoinedRecord, exponent: float) -> Optional[Features]:
        if learn:
            n1 = n1_denoised_scaled(record.trials, exponent)
            if n1 is None:
                n1 = ctx.component_value(record, "n1")
        else:
            n1 = ctx.component_value(record, "n1")
        values = {"n1": n1, "n2": record.n2, "n3": record.n3}
        if any(v is None or not math.isfinite(v) for v in values.values()):
            return None
        return values  # type: ignore[return-value]

    return extract


def domain_features(ctx: ComputationContext) -> FeatureFn:
    denoise = ctx.analysis.rt_denoise or ctx.analysis.rt_learn

    def extract(record: JoinedRecord, exponent: float) -> Optional[Features]:
        if not record.trials:
            return None
        if not denoise:
            return domain_affirmations(record.trials, DOMAINS, exponent)
        sums = {d: 0.0 for d in DOMAINS}
        for i, value in _affirmation_values(record, exponent, True):
            domain = record.trials[i].domain
            if domain in sums:
                sums[domain] += value
        return sums

    return extract


def card_features(ctx: ComputationContext) -> FeatureFn:
    denoise = ctx.analysis.rt_denoise or ctx.analysis.rt_learn

    def extract(record: JoinedRecord, exponent: float) -> Optional[Features]:
        if not record.trials:
            return None
        if not denoise:
            cards = card_affirmations(record.trials, exponent)
        else:
            cards = {}
            for i, value in _affirmation_values(record, exponent, True):
                card_id = record.trials[i].card_id
                if card_id is not None:
                    cards[card_id] = cards.get(card_id, 0.0) + value
        return {f"card_{cid}": value for cid, value in cards.items()}

    return extract


def select_card_features(rows: Sequence[Features]) -> List[str]:
    """
    Card features with enough support among ``rows``.

    Support is the number of sessions in which the card was presented. Cards
    presented in at least 25% of sessions are kept, capped at the 24 with the
    highest support; if none reach the threshold, the top 24 are used.
    """
    support: Dict[str, int] = {}
    for row in rows:
        for name in row:
            support[name] = support.get(name, 0) + 1
    ranked = sorted(support, key=lambda name: (-support[name], name))
    minimum = CARD_SUPPORT_FRACTION * len(rows)
    eligible = [name for name in ranked if support[name] >= minimum]
    return (eligible or ranked)[:CARD_FEATURE_CAP]


# =============================================================================
# CROSS-VALIDATION
# =============================================================================


def _standardizer(
    rows: Sequence[Features], names: Sequence[str]
) -> Dict[str, Tuple[float, Optional[float]]]:
    params = {}
    for name in names:
        column = finite_values(row.get(name, 0.0) for row in rows)
        params[name] = (mean(column) or 0.0, sample_sd(column))
    return params


def _design(
    rows: Sequence[Features],
    names: Sequence[str],
    params: Dict[str, Tuple[float, Optional[float]]],
) -> List[List[float]]:
    matrix = []
    for row in rows:
        z_row = []
        for name in names:
            center, scale = params[name]
            if scale is None or scale <= 0:
                # Constant in the training split: carries no information
                z_row.append(0.0)
            else:
                z_row.append((row.get(name, 0.0) - center) / scale)
        matrix.append(z_row)
    return matrix


def _fit_fold(
    train_rows: Sequence[Features],
    train_labels: Sequence[float],
    select: Optional[Callable[[Sequence[Features]], List[str]]],
    fixed_names: Sequence[str],
    lam: float,
    ctx: ComputationContext,
):
    names = select(train_rows) if select else list(fixed_names)
    if not names:
        return None
    params = _standardizer(train_rows, names)
    X = _design(train_rows, names, params)
    beta = ridge_fit(X, train_labels, lam)
    if beta is None:
        return None
    fitted = [predict(beta, row) for row in X]
    r = ctx.correlate(fitted, train_labels)
    return names, params, beta, r


def cross_validated_scores(
    records: Sequence[JoinedRecord], ctx: ComputationContext
) -> Tuple[Dict[str, Optional[float]], Dict]:
    """
    Held-out ridge predictions of the Benchmark for each usable session.

    Returns:
        (scores by session id, cv report). When fewer than MIN_SAMPLE_CV rows
        have features and a Benchmark, the scores fall back to raw IHS and the
        report carries ``insufficient_data``.
    """
    mode = ctx.analysis.score_mode
    lam = ctx.analysis.ridge_lambda
    exponents: Sequence[float] = (
        RT_EXPONENT_GRID if ctx.analysis.rt_learn else (DEFAULT_RT_EXPONENT,)
    )

    if mode == "cv":
        extract, select, fixed_names = component_features(ctx), None, list(COMPONENTS)
    elif mode == "cv_domain":
        extract, select, fixed_names = domain_features(ctx), None, list(DOMAINS)
    elif mode == "cv_card":
        extract, select, fixed_names = card_features(ctx), select_card_features, []
    else:
        raise ValueError(f"Not a cross-validated score mode: {mode}")

    # Features per exponent, restricted to sessions usable at every exponent
    candidates = [r for r in records if ctx.benchmark(r) is not None]
    features_by_exponent: Dict[float, List[Optional[Features]]] = {
        exp: [extract(r, exp) for r in candidates] for exp in exponents
    }
    usable = [
        i
        for i in range(len(candidates))
        if all(features_by_exponent[exp][i] is not None for exp in exponents)
    ]
    rows = [candidates[i] for i in usable]
    labels = [ctx.benchmark(r) for r in rows]

    report: Dict = {
        "mode": mode,
        "n": len(rows),
        "k": None,
        "lambda": lam,
        "seed": ctx.fold_seed,
        "r_heldout": None,
        "weights": None,
        "intercept": None,
        "alpha": None,
        "alphas": [],
        "features": None,
        "feature_selection": "per_fold" if select else "fixed",
        "insufficient_data": False,
        "error": None,
    }
    raw_scores = {r.session_id: r.ihs for r in records}

    if len(rows) < MIN_SAMPLE_CV:
        report["insufficient_data"] = True
        report["error"] = (
            f"Cross-validation needs at least {MIN_SAMPLE_CV} sessions with "
            f"features and a Benchmark, got {len(rows)}"
        )
        report["fallback"] = "raw"
        logger.info(f"{mode} scoring fell back to raw IHS: {len(rows)} usable rows")
        return raw_scores, report

    folds = fold_partition(len(rows), ctx)
    report["k"] = len(folds)

    predictions: Dict[str, Optional[float]] = {r.session_id: None for r in records}
    weight_sums: Dict[str, List[float]] = {}
    intercepts: List[float] = []
    feature_counts: List[int] = []

    for fold in folds:
        held_out = set(fold)
        train_pos = [p for p in range(len(rows)) if p not in held_out]
        train_labels = [labels[p] for p in train_pos]

        best = None
        best_exp = exponents[0]
        for exp in exponents:
            feats = features_by_exponent[exp]
            train_rows = [feats[usable[p]] for p in train_pos]
            fit = _fit_fold(train_rows, train_labels, select, fixed_names, lam, ctx)
            if fit is None:
                continue
            r = fit[3] if fit[3] is not None else -math.inf
            if best is None or r > best[0]:
                best = (r, fit)
                best_exp = exp
        if best is None:
            logger.warning(f"{mode} fold with {len(fold)} rows could not be fitted")
            continue

        names, params, beta, _ = best[1]
        feats = features_by_exponent[best_exp]
        test_rows = [feats[usable[p]] for p in fold]
        for p, z_row in zip(fold, _design(test_rows, names, params)):
            predictions[rows[p].session_id] = predict(beta, z_row)

        report["alphas"].append(best_exp)
        intercepts.append(beta[0])
        feature_counts.append(len(names))
        for name, coef in zip(names, beta[1:]):
            weight_sums.setdefault(name, []).append(coef)

    scored = [(predictions[r.session_id], labels[i]) for i, r in enumerate(rows)]
    xs = [p for p, _ in scored if p is not None]
    ys = [y for p, y in scored if p is not None]
    if len(xs) < MIN_SAMPLE_CV:
        report["error"] = "Too few folds could be fitted"
        report["fallback"] = "raw"
        return raw_scores, report

    report["r_heldout"] = ctx.correlate(xs, ys)
    report["weights"] = {name: sum(v) / len(v) for name, v in weight_sums.items()}
    report["intercept"] = sum(intercepts) / len(intercepts)
    report["alpha"] = sum(report["alphas"]) / len(report["alphas"])
    report["features"] = max(feature_counts)
    logger.info(
        f"{mode} scoring: n={len(rows)}, k={len(folds)}, "
        f"held-out r={report['r_heldout']}"
    )
    return predictions, report


def compute_scores(
    records: Sequence[JoinedRecord], ctx: ComputationContext
) -> Tuple[Dict[str, Optional[float]], Optional[Dict]]:
    """
    Score every record under the context's score mode.

    Returns:
        (scores by session id, cv report or None for non-CV modes)
    """
    if ctx.analysis.score_mode in CV_SCORE_MODES:
        return cross_validated_scores(records, ctx)
    return fixed_scores(records, ctx), None

