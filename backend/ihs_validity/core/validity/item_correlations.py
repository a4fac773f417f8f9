"""
Item-level correlations: overall, per domain and per card.

Backs the correlations endpoint. For every domain, each session contributes
its affirmation sum and its yes-rate within that domain; for every card, each
presentation contributes a yes/no indicator and an affirmation value. Both are
correlated with the raw questionnaire totals. Stored upstream affirmation
scores are used when present, otherwise the standard time-decay rule.
"""

from typing import Dict, List, Optional, Sequence, Tuple

from ihs_validity.core.stats import correlate

from ._constants import DOMAINS, MIN_SAMPLE_CORRELATION, QUESTIONNAIRES
from ._types import JoinedRecord
from .context import paired
from .trials import stored_or_computed_affirmation


def _corr(
    pairs: Sequence[Tuple[Optional[float], Optional[float]]], method: str
) -> Tuple[Optional[float], int]:
    xs, ys = paired(pairs)
    if len(xs) < MIN_SAMPLE_CORRELATION:
        return None, len(xs)
    return correlate(xs, ys, method), len(xs)


def _domain_row(records: Sequence[JoinedRecord], domain: str, method: str) -> Dict:
    affirm: List[Tuple[float, JoinedRecord]] = []
    rates: List[Tuple[float, JoinedRecord]] = []
    for rec in records:
        trials = [t for t in rec.trials if t.domain == domain]
        if not trials:
            continue
        affirm.append((sum(stored_or_computed_affirmation(t) for t in trials), rec))
        answered = [t for t in trials if t.response is not None]
        if answered:
            yes = sum(1 for t in answered if t.response is True)
            rates.append((yes / len(answered), rec))

    row: Dict = {"domain": domain, "method": method}
    for name in QUESTIONNAIRES:
        r, n = _corr([(x, rec.questionnaire_total(name)) for x, rec in affirm], method)
        row[f"r_affirm_{name}"], row[f"n_affirm_{name}"] = r, n
        r, n = _corr([(x, rec.questionnaire_total(name)) for x, rec in rates], method)
        row[f"r_yesrate_{name}"], row[f"n_yesrate_{name}"] = r, n
    return row


def _card_rows(records: Sequence[JoinedRecord], method: str) -> List[Dict]:
    buckets: Dict[int, Dict] = {}
    for rec in records:
        for t in rec.trials:
            if t.card_id is None:
                continue
            bucket = buckets.setdefault(
                t.card_id, {"label": t.label, "domain": t.domain, "yes": [], "affirm": []}
            )
            if t.response is not None:
                bucket["yes"].append((1.0 if t.response else 0.0, rec))
            bucket["affirm"].append((stored_or_computed_affirmation(t), rec))

    rows = []
    for card_id in sorted(buckets):
        bucket = buckets[card_id]
        row: Dict = {
            "card_id": card_id,
            "label": bucket["label"],
            "domain": bucket["domain"],
            "method": method,
        }
        for name in ("who5", "swls"):
            r, n = _corr([(x, rec.questionnaire_total(name)) for x, rec in bucket["yes"]], method)
            row[f"r_yes_{name}"], row[f"n_yes_{name}"] = r, n
            r, n = _corr(
                [(x, rec.questionnaire_total(name)) for x, rec in bucket["affirm"]], method
            )
            row[f"r_affirm_{name}"], row[f"n_affirm_{name}"] = r, n
        rows.append(row)
    return rows


def item_correlations(records: Sequence[JoinedRecord], method: str) -> Dict:
    """Overall, per-domain and per-card correlations for the filtered population."""
    overall = []
    for name in QUESTIONNAIRES:
        r, n = _corr([(rec.ihs, rec.questionnaire_total(name)) for rec in records], method)
        overall.append({"metric": f"ihs_vs_{name}", "r": r, "n": n})
    return {
        "overall": overall,
        "domains": [_domain_row(records, d, method) for d in DOMAINS],
        "cards": _card_rows(records, method),
        "used_sessions": len(records),
        "method": method,
    }
