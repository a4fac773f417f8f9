"""
Supplementary analyses reported next to the core validity statistics.

- H1: the score correlates positively with SWLS (Fisher CI lower bound > 0)
- H2: each domain's affirmation sum correlates positively with SWLS
- H3: the five domain scores together predict SWLS better than the first
  domain alone (nested regression, delta R^2 > 0 with p < 0.05)
- yes-rate: share of "yes" answers vs the Benchmark, with AUC and the partial
  correlation controlling for N1
- ceiling: distribution shape (mean, SD, skewness, excess kurtosis) of IHS
  and the questionnaire totals
- robustness: raw IHS vs Benchmark before and after percentile trimming
"""

import logging
from typing import Dict, List, Optional, Sequence

from ihs_validity.core.stats import (
    correlate,
    excess_kurtosis,
    finite_values,
    fisher_ci,
    mean,
    partial_correlation,
    sample_sd,
    skewness,
    standardize,
)

from ._constants import (
    DOMAINS,
    H3_DF1,
    MIN_ROWS_H3,
    MIN_SAMPLE_CORRELATION,
    MIN_SAMPLE_PARTIAL,
    MIN_SAMPLE_YESRATE_AUC,
    SIGNIFICANCE_ALPHA,
)
from ._types import CorrelationSummary, JoinedRecord
from .benchmark import build_benchmarks, questionnaire_stats
from .context import ComputationContext, paired
from .discrimination import auc, high_benchmark_labels
from .regression import nested_regression
from .trials import domain_affirmations, yes_rate

logger = logging.getLogger(__name__)


def _positive_summary(ctx: ComputationContext, xs: List[float], ys: List[float]) -> Dict:
    summary: Dict = dict(ctx.summarize(xs, ys))
    ci = summary["ci95"]
    summary["pass"] = bool(ci is not None and ci[0] > 0)
    return summary


def evaluate_hypotheses(
    rows: Sequence[JoinedRecord],
    scores: Dict[str, Optional[float]],
    ctx: ComputationContext,
) -> Dict:
    """Run H1-H3 over the analysed rows."""
    h1_x, h1_y = paired([(scores.get(r.session_id), r.swls_total) for r in rows])
    h1 = _positive_summary(ctx, h1_x, h1_y) if len(h1_x) >= MIN_SAMPLE_CORRELATION else None

    # Domain affirmation sums for sessions with SWLS and trial data
    domain_rows = [r for r in rows if r.swls_total is not None and r.trials]
    sums = [domain_affirmations(r.trials, DOMAINS) for r in domain_rows]
    swls = [r.swls_total for r in domain_rows]

    domains: Dict[str, Dict] = {}
    all_pass = True
    for d in DOMAINS:
        xs = [s[d] for s in sums]
        if len(xs) < MIN_SAMPLE_CORRELATION:
            domains[d] = {"r": None, "n": len(xs), "ci95": None, "pass": False}
        else:
            domains[d] = _positive_summary(ctx, xs, swls)  # type: ignore[arg-type]
        all_pass = all_pass and domains[d]["pass"]

    return {
        "h1": h1,
        "h2": {"domains": domains, "all_pass": all_pass},
        "h3": _combined_domains_test(sums, swls),  # type: ignore[arg-type]
    }


def _combined_domains_test(
    sums: Sequence[Dict[str, float]], swls: Sequence[float]
) -> Optional[Dict]:
    """H3: all five domain z-scores vs the first domain alone."""
    params = {}
    for d in DOMAINS:
        column = [s[d] for s in sums]
        params[d] = (mean(column), sample_sd(column))

    y: List[float] = []
    base_X: List[List[float]] = []
    full_X: List[List[float]] = []
    for s, target in zip(sums, swls):
        z_row = [standardize(s[d], *params[d]) for d in DOMAINS]
        if any(z is None for z in z_row):
            continue
        y.append(target)
        base_X.append([z_row[0]])  # type: ignore[list-item]
        full_X.append(z_row)  # type: ignore[arg-type]

    if len(y) < MIN_ROWS_H3:
        return None
    result: Dict = dict(nested_regression(y, base_X, full_X))
    result["df1"] = H3_DF1
    delta, p = result["delta_r2"], result["p"]
    result["pass"] = bool(delta is not None and delta > 0 and p is not None and p < SIGNIFICANCE_ALPHA)
    return result


def yes_rate_analysis(rows: Sequence[JoinedRecord], ctx: ComputationContext) -> Optional[Dict]:
    """Yes-rate vs Benchmark: correlation, AUC and partial r given N1."""
    rates: List[float] = []
    bench: List[float] = []
    n1s: List[Optional[float]] = []
    for r in rows:
        rate = yes_rate(r.trials)
        b = ctx.benchmark(r)
        if rate is None or b is None:
            continue
        rates.append(rate)
        bench.append(b)
        n1s.append(ctx.component_value(r, "n1"))

    if len(rates) < MIN_SAMPLE_CORRELATION:
        return None
    result: Dict = dict(ctx.summarize(rates, bench))

    result["auc"] = None
    if len(rates) >= MIN_SAMPLE_YESRATE_AUC:
        labels, _ = high_benchmark_labels(bench)
        result["auc"] = auc(rates, labels)

    complete = [(x, y, z) for x, y, z in zip(rates, bench, n1s) if z is not None]
    partial = None
    if len(complete) >= MIN_SAMPLE_PARTIAL:
        xs, ys, zs = (list(col) for col in zip(*complete))
        partial = {
            "r": partial_correlation(xs, ys, zs, ctx.method),
            "n": len(complete),
        }
    result["partial_given_n1"] = partial
    return result


def _shape(values: Sequence[Optional[float]]) -> Dict:
    finite = finite_values(values)
    return {
        "n": len(finite),
        "mean": mean(finite),
        "sd": sample_sd(finite),
        "skew": skewness(finite),
        "kurtosis": excess_kurtosis(finite),
    }


def ceiling_analysis(records: Sequence[JoinedRecord]) -> Dict:
    return {
        "ihs": _shape([r.ihs for r in records]),
        "who5": _shape([r.who5_total for r in records]),
        "swls": _shape([r.swls_total for r in records]),
        "cantril": _shape([r.cantril for r in records]),
    }


def robustness_summary(records: Sequence[JoinedRecord], method: str) -> CorrelationSummary:
    """
    Raw IHS vs Benchmark, standardizing within ``records`` themselves.

    Used for the base (pre-trim) and filtered populations so the effect of
    trimming can be read off directly.
    """
    benchmarks = build_benchmarks(records, questionnaire_stats(records))
    xs, ys = paired([(r.ihs, benchmarks.get(r.session_id)) for r in records])
    r = correlate(xs, ys, method) if len(xs) >= MIN_SAMPLE_CORRELATION else None
    return {"r": r, "n": len(xs), "ci95": fisher_ci(r, len(xs))}
