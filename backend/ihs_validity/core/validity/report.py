"""
Validity report orchestration.

Runs the whole pipeline for one request:

    join & filter -> computation context -> scoring -> correlation
    -> reliability / attenuation -> ROC -> regression -> non-inferiority
    -> supplementary analyses -> evidence grade

The core statistics propagate errors. Supplementary sections (hypotheses,
yes-rate, ceiling, grade) are wrapped in graceful_failure so that a failure
there is logged and reported as null while the rest of the report stands.

Usage Example:
    report = build_validity_report(
        questionnaires, scans, FilterConfig(), AnalysisConfig(method="spearman"),
        bootstrap_replicates=200, fold_seed=1234, non_inferiority_margin=0.05,
    )
    print(report["correlation"], report["grader"]["label"])
"""

import logging
import random
from dataclasses import asdict
from typing import Any, Dict, Optional, Sequence

from ihs_validity.core.graceful_failure import graceful_failure

from ._types import (
    AnalysisConfig,
    FilterConfig,
    JoinedRecord,
    QuestionnaireRecord,
    ScanSessionRecord,
)
from .benchmark import components_vs_benchmark
from .context import ComputationContext, paired
from .discrimination import discrimination_analysis
from .grader import grade_evidence
from .hypotheses import (
    ceiling_analysis,
    evaluate_hypotheses,
    robustness_summary,
    yes_rate_analysis,
)
from .item_correlations import item_correlations
from .join_filter import join_and_filter
from .non_inferiority import non_inferiority_test
from .regression import incremental_validity
from .reliability import benchmark_omega, disattenuate, split_half_reliability
from .scoring import compute_scores

logger = logging.getLogger(__name__)


def filters_echo(filters: FilterConfig, analysis: AnalysisConfig) -> Dict[str, Any]:
    echo = asdict(filters)
    echo["method"] = analysis.method
    echo["score"] = analysis.score_mode
    echo["rt_denoise"] = analysis.rt_denoise
    echo["rt_learn"] = analysis.rt_learn
    echo["limit"] = analysis.limit
    return echo


def empty_report(filters: FilterConfig, analysis: AnalysisConfig, used_sessions: int = 0) -> Dict:
    """The sentinel returned when no session survives the join and filters."""
    report: Dict[str, Any] = {
        "n_used": 0,
        "method": analysis.method,
        "score_mode": analysis.score_mode,
        "correlation": {"r": None, "n": 0, "ci95": None},
        "benchmark": {"method": "z_mean", "components": None},
        "components_vs_benchmark": None,
        "reliability": None,
        "attenuation": None,
        "roc": None,
        "regression": None,
        "non_inferiority": None,
        "robustness": None,
        "hypotheses": None,
        "yesrate": None,
        "ceiling": None,
        "cv": None,
        "filters_echo": filters_echo(filters, analysis),
        "used_sessions": used_sessions,
    }
    report["grader"] = grade_evidence(report)
    if analysis.include_per_session:
        report["per_session"] = []
    return report


def _per_session(
    records: Sequence[JoinedRecord], scores: Dict[str, Optional[float]], ctx: ComputationContext
):
    return [
        {
            "session_id": r.session_id,
            "ihs": r.ihs,
            "score": scores.get(r.session_id),
            "who5": r.who5_total,
            "swls": r.swls_total,
            "cantril": r.cantril,
            "z_benchmark": ctx.benchmark(r),
        }
        for r in records
        if ctx.benchmark(r) is not None
    ]


def build_validity_report(
    questionnaires: Sequence[QuestionnaireRecord],
    scans: Sequence[ScanSessionRecord],
    filters: FilterConfig,
    analysis: AnalysisConfig,
    *,
    bootstrap_replicates: int,
    fold_seed: int,
    non_inferiority_margin: float,
    rng: Optional[random.Random] = None,
) -> Dict[str, Any]:
    """
    Compute the full validity report for one filter/scoring configuration.

    Args:
        questionnaires: Questionnaire entries, newest first
        scans: Scan sessions for (at least) the questionnaire session ids
        filters: Population filters
        analysis: Method, score mode and related options
        bootstrap_replicates: Bootstrap draws per confidence interval
        fold_seed: Seed for cross-validation fold assignment
        non_inferiority_margin: Allowed shortfall of the score vs the
            reference questionnaire
        rng: Bootstrap generator; a fresh unseeded one when omitted

    Returns:
        Report dictionary. Statistics that cannot be computed are None.
    """
    joined = join_and_filter(questionnaires, scans, filters)
    records = joined.records
    if not records:
        logger.info("Validity report: no sessions after join and filters")
        return empty_report(filters, analysis)

    ctx = ComputationContext.build(
        records,
        analysis,
        bootstrap_replicates=bootstrap_replicates,
        fold_seed=fold_seed,
        non_inferiority_margin=non_inferiority_margin,
        rng=rng,
    )
    scores, cv = compute_scores(records, ctx)

    rows = [
        r
        for r in records
        if ctx.benchmark(r) is not None and scores.get(r.session_id) is not None
    ]
    xs, ys = paired([(scores[r.session_id], ctx.benchmark(r)) for r in rows])
    correlation = ctx.summarize(xs, ys)
    logger.info(
        f"Validity report: n_used={len(rows)} of {len(records)} sessions, "
        f"method={ctx.method}, score={analysis.score_mode}, r={correlation['r']}"
    )

    split_half = split_half_reliability(records, ctx)
    omega = benchmark_omega(records, ctx)
    reliability = {
        "ihs_sb": split_half["sb"],
        "ihs_sb_ci95": split_half["ci95"],
        "ihs_sb_n": split_half["n"],
        "benchmark_omega": omega["omega"],
        "benchmark_omega_ci95": omega["ci95"],
        "benchmark_omega_n": omega["n"],
    }

    report: Dict[str, Any] = {
        "n_used": len(rows),
        "method": ctx.method,
        "score_mode": analysis.score_mode,
        "correlation": correlation,
        "benchmark": {"method": "z_mean", "components": ctx.questionnaire_stats},
        "components_vs_benchmark": components_vs_benchmark(records, ctx.benchmarks, ctx.method),
        "reliability": reliability,
        "attenuation": disattenuate(correlation["r"], split_half["sb"], omega["omega"]),
        "roc": discrimination_analysis(records, scores, ctx),
        "regression": incremental_validity(records, scores, ctx),
        "non_inferiority": non_inferiority_test(records, scores, ctx),
        "robustness": {
            "base": robustness_summary(joined.base, ctx.method),
            "filtered": robustness_summary(records, ctx.method),
        },
        "hypotheses": None,
        "yesrate": None,
        "ceiling": None,
        "cv": cv,
        "filters_echo": filters_echo(filters, analysis),
        "used_sessions": len(records),
    }

    with graceful_failure("evaluate hypotheses", logger, exc_info=True):
        report["hypotheses"] = evaluate_hypotheses(rows, scores, ctx)
    with graceful_failure("compute yes-rate analytics", logger, exc_info=True):
        report["yesrate"] = yes_rate_analysis(rows, ctx)
    with graceful_failure("compute ceiling statistics", logger, exc_info=True):
        report["ceiling"] = ceiling_analysis(records)

    report["grader"] = None
    with graceful_failure("grade evidence", logger, exc_info=True):
        report["grader"] = grade_evidence(report)

    if analysis.include_per_session:
        report["per_session"] = _per_session(records, scores, ctx)
    return report


def build_correlations_report(
    questionnaires: Sequence[QuestionnaireRecord],
    scans: Sequence[ScanSessionRecord],
    filters: FilterConfig,
    method: str,
) -> Dict[str, Any]:
    """Item-level correlations over the filtered population."""
    joined = join_and_filter(questionnaires, scans, filters)
    return item_correlations(joined.records, method)
