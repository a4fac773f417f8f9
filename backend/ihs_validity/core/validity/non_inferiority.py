"""
Leave-one-out non-inferiority test.

For each questionnaire Q a leave-one-out (LOO) Benchmark is built from the
mean z-score of the *other two* questionnaires, so Q is never compared against
a composite that partly contains itself. On the sessions where the score, Q
and both other questionnaires are present:

    r_score = r(score, LOO_Q)
    r_q     = r(Q, LOO_Q)

The questionnaire with the largest |r_q| is the reference. The score is
non-inferior when r_ref - r_score <= margin (default 0.05). The two
correlations are also compared with a Fisher z-difference test, which is
reported as None when either correlation is exactly +/-1.
"""

from typing import Dict, List, Optional, Sequence

from ihs_validity.core.stats import fisher_z_difference

from ._constants import MIN_SAMPLE_CORRELATION, QUESTIONNAIRES
from ._types import JoinedRecord
from .context import ComputationContext


def _loo_comparison(
    name: str,
    records: Sequence[JoinedRecord],
    scores: Dict[str, Optional[float]],
    ctx: ComputationContext,
) -> Dict:
    others = [q for q in QUESTIONNAIRES if q != name]
    score_values: List[float] = []
    q_values: List[float] = []
    loo_values: List[float] = []
    for r in records:
        zs = ctx.questionnaire_zs(r)
        score = scores.get(r.session_id)
        if score is None or zs[name] is None or any(zs[o] is None for o in others):
            continue
        score_values.append(score)
        q_values.append(zs[name])  # type: ignore[arg-type]
        loo_values.append(sum(zs[o] for o in others) / len(others))  # type: ignore[misc]

    n = len(loo_values)
    if n < MIN_SAMPLE_CORRELATION:
        return {"n": n, "r_ihs": None, "r_questionnaire": None, "loo_of": others}
    return {
        "n": n,
        "r_ihs": ctx.correlate(score_values, loo_values),
        "r_questionnaire": ctx.correlate(q_values, loo_values),
        "loo_of": others,
    }


def non_inferiority_test(
    records: Sequence[JoinedRecord],
    scores: Dict[str, Optional[float]],
    ctx: ComputationContext,
    margin: Optional[float] = None,
) -> Dict:
    """
    Compare the score with the strongest questionnaire on LOO benchmarks.

    Returns:
        Dictionary with ``per_questionnaire``, ``reference``, ``r_reference``,
        ``r_ihs``, ``gap``, ``margin``, ``z``, ``p``, ``n`` and ``pass``.
        ``pass`` is None when no comparison could be made.
    """
    margin = ctx.non_inferiority_margin if margin is None else margin
    per_q = {name: _loo_comparison(name, records, scores, ctx) for name in QUESTIONNAIRES}

    result: Dict = {
        "per_questionnaire": per_q,
        "reference": None,
        "r_reference": None,
        "r_ihs": None,
        "gap": None,
        "margin": margin,
        "z": None,
        "p": None,
        "n": 0,
        "pass": None,
    }
    candidates = [
        (abs(v["r_questionnaire"]), name)
        for name, v in per_q.items()
        if v["r_questionnaire"] is not None and v["r_ihs"] is not None
    ]
    if not candidates:
        return result

    _, reference = max(candidates)
    chosen = per_q[reference]
    r_ref, r_ihs, n = chosen["r_questionnaire"], chosen["r_ihs"], chosen["n"]
    gap = r_ref - r_ihs
    result.update(reference=reference, r_reference=r_ref, r_ihs=r_ihs, gap=gap, n=n)
    # Tolerance keeps an exact tie from failing on rounding
    result["pass"] = gap <= margin + 1e-12
    test = fisher_z_difference(r_ref, n, r_ihs, n)
    if test is not None:
        result["z"], result["p"] = test
    return result
