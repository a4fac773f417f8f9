"""
Evidence grader.

Reduces the full report to one label from a fixed taxonomy plus itemized
reasons and warnings. The grader is pure: it only reads values already
computed by the other modules, and every threshold it uses is a named constant
in _constants.py.

Decision rules, in order:

1. Inconclusive when n < GRADER_MIN_SAMPLE, the correlation is missing, or
   the non-inferiority test could not be run.
2. Without a significantly positive correlation: Inconclusive below
   GRADER_ADEQUATE_SAMPLE, otherwise Not yet competitive.
3. Non-inferior with an adequate sample and IHS reliability:
   Clearly better when the score beats the reference questionnaire by more
   than the margin and also discriminates better; otherwise At least as good.
4. Non-inferior or at least moderately correlated, but short of rule 3:
   Promising but needs more data.
5. Otherwise Not yet competitive.
"""

from typing import Any, Dict, List, Optional

from ._constants import (
    GRADE_AT_LEAST_AS_GOOD,
    GRADE_CLEARLY_BETTER,
    GRADE_INCONCLUSIVE,
    GRADE_NOT_COMPETITIVE,
    GRADE_PROMISING,
    GRADER_ADEQUATE_SAMPLE,
    GRADER_AUC_TOLERANCE,
    GRADER_MAX_CI_WIDTH,
    GRADER_MIN_RELIABILITY,
    GRADER_MIN_SAMPLE,
    GRADER_MODERATE_R,
    GRADER_STRONG_R,
    SIGNIFICANCE_ALPHA,
)


def _get(section: Optional[Dict[str, Any]], key: str) -> Any:
    return section.get(key) if section else None


def _fmt(value: Optional[float], digits: int = 3) -> str:
    return "n/a" if value is None else f"{value:.{digits}f}"


def grade_evidence(report: Dict[str, Any]) -> Dict[str, Any]:
    """
    Grade the evidence in an assembled validity report.

    Args:
        report: Mapping with the keys produced by the report builder
            (``n_used``, ``correlation``, ``reliability``, ``roc``,
            ``regression``, ``non_inferiority``, ``hypotheses``, ``cv``).

    Returns:
        Dictionary with ``label``, ``reasons`` (list of check/passed/detail)
        and ``warnings`` (list of strings).
    """
    reasons: List[Dict[str, Any]] = []
    warnings: List[str] = []

    def check(name: str, passed: bool, detail: str) -> bool:
        reasons.append({"check": name, "passed": passed, "detail": detail})
        return passed

    n = report.get("n_used") or 0
    correlation = report.get("correlation") or {}
    r = correlation.get("r")
    ci = correlation.get("ci95")
    reliability = report.get("reliability") or {}
    rel_ihs = reliability.get("ihs_sb")
    omega = reliability.get("benchmark_omega")
    roc = report.get("roc")
    regression = report.get("regression")
    ni = report.get("non_inferiority")
    hypotheses = report.get("hypotheses")
    cv = report.get("cv")

    # --- Warnings -----------------------------------------------------------
    adequate = n >= GRADER_ADEQUATE_SAMPLE
    if not adequate:
        warnings.append(f"Sample size {n} is below {GRADER_ADEQUATE_SAMPLE}")
    if rel_ihs is None:
        warnings.append("IHS split-half reliability unavailable")
    elif rel_ihs < GRADER_MIN_RELIABILITY:
        warnings.append(f"IHS reliability {_fmt(rel_ihs)} is below {GRADER_MIN_RELIABILITY}")
    if omega is not None and omega < GRADER_MIN_RELIABILITY:
        warnings.append(f"Benchmark omega {_fmt(omega)} is below {GRADER_MIN_RELIABILITY}")
    if ci is not None and ci[1] - ci[0] > GRADER_MAX_CI_WIDTH:
        warnings.append(f"Correlation CI width {_fmt(ci[1] - ci[0])} exceeds {GRADER_MAX_CI_WIDTH}")
    if _get(regression, "r2_full") is not None and _get(regression, "f") is None:
        warnings.append("Incremental F-test undefined (perfect fit or too few rows)")
    if cv and cv.get("insufficient_data"):
        warnings.append("Cross-validated scoring fell back to raw IHS")

    # --- Checks -------------------------------------------------------------
    significant = check(
        "correlation_significant",
        ci is not None and ci[0] > 0,
        f"r={_fmt(r)}, 95% CI={'n/a' if ci is None else f'[{ci[0]:.3f}, {ci[1]:.3f}]'}",
    )
    if r is not None:
        if r >= GRADER_STRONG_R:
            check("correlation_strength", True, "Strong correlation")
        elif r >= GRADER_MODERATE_R:
            check("correlation_strength", True, "Moderate correlation")
        else:
            check("correlation_strength", False, "Weak correlation")

    ni_pass = _get(ni, "pass")
    if ni_pass is not None:
        check(
            "non_inferiority",
            bool(ni_pass),
            f"gap={_fmt(_get(ni, 'gap'))} vs {_get(ni, 'reference')} "
            f"(margin {_fmt(_get(ni, 'margin'), 2)})",
        )

    auc_value, best_auc = _get(roc, "auc"), _get(roc, "best")
    auc_better = False
    if auc_value is not None and best_auc is not None:
        check(
            "discrimination",
            auc_value >= best_auc - GRADER_AUC_TOLERANCE,
            f"AUC={_fmt(auc_value)} vs best questionnaire "
            f"{_get(roc, 'best_name')}={_fmt(best_auc)}",
        )
        auc_better = auc_value > best_auc + GRADER_AUC_TOLERANCE

    p_inc = _get(regression, "p")
    if p_inc is not None:
        check(
            "incremental_validity",
            p_inc < SIGNIFICANCE_ALPHA and (_get(regression, "delta_r2") or 0) > 0,
            f"delta R^2={_fmt(_get(regression, 'delta_r2'))}, p={p_inc:.2e}",
        )

    if hypotheses:
        h1 = hypotheses.get("h1")
        if h1:
            check("h1_swls", bool(h1.get("pass")), f"H1 (score vs SWLS): r={_fmt(h1.get('r'))}")
        h2 = hypotheses.get("h2")
        if h2 and h2.get("domains"):
            fails = [d for d, v in h2["domains"].items() if not v.get("pass")]
            check(
                "h2_domains",
                not fails,
                "H2 (domains vs SWLS): " + (f"FAIL {', '.join(fails)}" if fails else "PASS all"),
            )
        h3 = hypotheses.get("h3")
        if h3:
            check(
                "h3_combined_domains",
                bool(h3.get("pass")),
                f"H3 (combined > best single): delta R^2={_fmt(h3.get('delta_r2'))}",
            )

    if cv and cv.get("r_heldout") is not None:
        check(
            "cv_heldout",
            cv["r_heldout"] >= GRADER_MODERATE_R,
            f"held-out r={_fmt(cv['r_heldout'])} over {cv.get('k')} folds",
        )

    # --- Label --------------------------------------------------------------
    reliable = rel_ihs is not None and rel_ihs >= GRADER_MIN_RELIABILITY
    gap = _get(ni, "gap")
    margin = _get(ni, "margin") or 0.0

    if n < GRADER_MIN_SAMPLE or r is None or ni_pass is None:
        label = GRADE_INCONCLUSIVE
    elif not significant:
        label = GRADE_NOT_COMPETITIVE if adequate else GRADE_INCONCLUSIVE
    elif ni_pass and adequate and reliable:
        if gap is not None and gap < -margin and auc_better:
            label = GRADE_CLEARLY_BETTER
        else:
            label = GRADE_AT_LEAST_AS_GOOD
    elif ni_pass or r >= GRADER_MODERATE_R:
        label = GRADE_PROMISING
    else:
        label = GRADE_NOT_COMPETITIVE

    return {"label": label, "reasons": reasons, "warnings": warnings}
