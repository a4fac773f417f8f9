"""
Session join and inclusion/exclusion filtering.

Questionnaire entries and scan sessions are inner-joined on session id, then
narrowed by a sequence of pure predicates:

1. demographics (sex, country allow/deny lists, age range)
2. device class from the user agent
3. session-level quality gates (modality, timeouts, IAT window, ceiling
   respondents)
4. percentile trims on IHS and questionnaire totals

Trim bounds are computed on the population that survives steps 1-3, before
any row is removed, and that population is also returned as the "base" for
robustness comparisons.

Usage Example:
    from ihs_validity.core.validity.join_filter import join_and_filter

    result = join_and_filter(questionnaires, scans, FilterConfig(device="mobile"))
    print(len(result.base), len(result.records))
"""

import logging
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from ihs_validity.core.stats import finite_values, quantile

from ._constants import (
    CANTRIL_MAX,
    DEFAULT_TRIM_FRACTION,
    IAT_MAX_INVALID_FRACTION,
    MAX_TRIM_FRACTION,
    MIN_VALUES_FOR_TRIM,
    TRIALS_PER_SESSION,
    WHO5_MAX_TOTAL,
)
from ._types import (
    FilterConfig,
    JoinedRecord,
    JoinResult,
    QuestionnaireRecord,
    ScanSessionRecord,
)
from .trials import iat_invalid_fraction, modality_counts, n1_scaled, timeout_count

logger = logging.getLogger(__name__)

Predicate = Callable[[JoinedRecord], bool]


def resolve_trim_fraction(value: Optional[object]) -> Optional[float]:
    """
    Normalize a trim option to a fraction in [0, 0.5].

    True means the default 10%; False, None and non-positive values disable
    trimming.
    """
    if value is None or value is False:
        return None
    if value is True:
        return DEFAULT_TRIM_FRACTION
    fraction = float(value)  # type: ignore[arg-type]
    if fraction <= 0:
        return None
    return min(MAX_TRIM_FRACTION, fraction)


# =============================================================================
# JOIN
# =============================================================================


def join_records(
    questionnaires: Sequence[QuestionnaireRecord],
    scans: Sequence[ScanSessionRecord],
) -> List[JoinedRecord]:
    """
    Inner-join questionnaire entries with scan sessions by session id.

    The first questionnaire entry per session wins (the loader returns them
    newest first). Scan rows without an IHS score are skipped. Output order
    follows the questionnaire order.
    """
    scans_by_id: Dict[str, ScanSessionRecord] = {}
    for scan in scans:
        scans_by_id.setdefault(scan.session_id, scan)

    joined: List[JoinedRecord] = []
    seen = set()
    for entry in questionnaires:
        if entry.session_id in seen:
            continue
        seen.add(entry.session_id)
        scan = scans_by_id.get(entry.session_id)
        if scan is None or scan.ihs is None:
            continue

        n1 = scan.n1_scaled if scan.n1_scaled is not None else n1_scaled(scan.trials)
        joined.append(
            JoinedRecord(
                session_id=entry.session_id,
                ihs=float(scan.ihs),
                n1=n1,
                n2=scan.n2,
                n3=scan.n3,
                trials=scan.trials,
                user_agent=scan.user_agent,
                who5_total=entry.who5_total,
                swls_total=entry.swls_total,
                cantril=float(entry.cantril) if entry.cantril is not None else None,
                swls_item_count=len(entry.swls),
                sex=entry.sex,
                age=entry.age,
                country=entry.country,
            )
        )
    return joined


# =============================================================================
# PREDICATES
# =============================================================================


def _lower(value: Optional[str]) -> Optional[str]:
    return value.strip().lower() if value else None


def demographic_predicate(config: FilterConfig) -> Optional[Predicate]:
    """Combined demographic predicate, or None when no demographic filter is set."""
    sex = _lower(config.sex)
    country = _lower(config.country)
    allow = {c.strip().lower() for c in config.countries if c.strip()}
    deny = {c.strip().lower() for c in config.exclude_countries if c.strip()}
    if not (sex or country or allow or deny) and config.age_min is None and config.age_max is None:
        return None

    def keep(record: JoinedRecord) -> bool:
        record_country = _lower(record.country)
        if sex and _lower(record.sex) != sex:
            return False
        if country and record_country != country:
            return False
        if allow and record_country not in allow:
            return False
        # A missing country cannot be shown to be outside the deny list
        if deny and (record_country is None or record_country in deny):
            return False
        if config.age_min is not None and (record.age is None or record.age < config.age_min):
            return False
        if config.age_max is not None and (record.age is None or record.age > config.age_max):
            return False
        return True

    return keep


def device_predicate(device: Optional[str]) -> Optional[Predicate]:
    if device == "mobile":
        return lambda r: r.device == "mobile"
    if device == "desktop":
        return lambda r: r.device == "desktop"
    return None


def _at_ceiling(record: JoinedRecord) -> bool:
    """True when every questionnaire the respondent answered is at its maximum."""
    answered = 0
    if record.who5_total is not None:
        answered += 1
        if record.who5_total < WHO5_MAX_TOTAL:
            return False
    if record.swls_total is not None:
        answered += 1
        swls_max = record.swls_max_total
        if swls_max is None or record.swls_total < swls_max:
            return False
    if record.cantril is not None:
        answered += 1
        if record.cantril < CANTRIL_MAX:
            return False
    return answered > 0


def session_predicate(config: FilterConfig) -> Optional[Predicate]:
    """
    Trial-level quality gates.

    A single ``modality`` takes precedence over ``modalities``; the
    ``threshold`` purity check only applies together with a single modality.
    """
    if not config.has_session_filters:
        return None

    modality = _lower(config.modality)
    modalities = [m.strip().lower() for m in config.modalities if m.strip()]

    def keep(record: JoinedRecord) -> bool:
        trials = record.trials
        counts = modality_counts(trials)

        if config.exclude_swipe and counts["swipe"] > 0:
            return False
        if config.exclude_timeouts and timeout_count(trials) > 0:
            return False
        if config.timeouts_max is not None or config.timeouts_frac_max is not None:
            timeouts = timeout_count(trials)
            if config.timeouts_max is not None and timeouts > config.timeouts_max:
                return False
            if (
                config.timeouts_frac_max is not None
                and counts["total"] > 0
                and timeouts / counts["total"] > config.timeouts_frac_max
            ):
                return False
        if config.iat:
            if len(trials) < TRIALS_PER_SESSION:
                return False
            if iat_invalid_fraction(trials) > IAT_MAX_INVALID_FRACTION:
                return False
        if config.sensitivity_all_max and _at_ceiling(record):
            return False

        if modality:
            if counts.get(modality, 0) == 0:
                return False
        elif modalities:
            if not any(counts.get(m, 0) > 0 for m in modalities):
                return False

        if config.exclusive:
            present = sum(1 for fam in ("click", "swipe", "arrow") if counts[fam] > 0)
            if present != 1:
                return False

        if config.threshold is not None and modality and counts["total"] > 0:
            share = counts.get(modality, 0) / counts["total"]
            if share * 100 < config.threshold:
                return False
        return True

    return keep


# =============================================================================
# TRIMMING
# =============================================================================


def _trim_bounds(values: List[float], fraction: float) -> Optional[Tuple[float, float]]:
    if len(values) < MIN_VALUES_FOR_TRIM:
        return None
    lo = quantile(values, fraction)
    hi = quantile(values, 1.0 - fraction)
    if lo is None or hi is None:
        return None
    return lo, hi


def trim_bounds(
    records: Sequence[JoinedRecord], config: FilterConfig
) -> Dict[str, Tuple[float, float]]:
    """
    Quantile bounds for every column that will be trimmed.

    Computed once over ``records`` (the pre-trim population).
    """
    bounds: Dict[str, Tuple[float, float]] = {}
    ihs_fraction = resolve_trim_fraction(config.trim_ihs)
    scales_fraction = resolve_trim_fraction(config.trim_scales)

    if ihs_fraction:
        b = _trim_bounds(finite_values(r.ihs for r in records), ihs_fraction)
        if b:
            bounds["ihs"] = b
    if scales_fraction:
        for name in ("who5", "swls", "cantril"):
            values = finite_values(r.questionnaire_total(name) for r in records)
            b = _trim_bounds(values, scales_fraction)
            if b:
                bounds[name] = b
    return bounds


def _column(record: JoinedRecord, name: str) -> Optional[float]:
    return record.ihs if name == "ihs" else record.questionnaire_total(name)


def apply_trims(
    records: Sequence[JoinedRecord], bounds: Dict[str, Tuple[float, float]]
) -> List[JoinedRecord]:
    """Drop records whose present values fall outside any column's bounds."""
    if not bounds:
        return list(records)
    kept = []
    for record in records:
        inside = True
        for name, (lo, hi) in bounds.items():
            value = _column(record, name)
            if value is not None and not (lo <= value <= hi):
                inside = False
                break
        if inside:
            kept.append(record)
    return kept


# =============================================================================
# PIPELINE
# =============================================================================


def join_and_filter(
    questionnaires: Sequence[QuestionnaireRecord],
    scans: Sequence[ScanSessionRecord],
    config: FilterConfig,
) -> JoinResult:
    """
    Join both stores and apply every configured filter in sequence.

    Returns:
        JoinResult with the pre-trim ``base`` population and final ``records``.
        When there are no questionnaire entries at all the result is empty and
        ``is_empty_source`` is set, so callers can short-circuit.
    """
    result = JoinResult(questionnaire_count=len(questionnaires), scan_count=len(scans))
    if not questionnaires:
        logger.info("No questionnaire entries available; skipping join")
        return result

    records = join_records(questionnaires, scans)
    joined_count = len(records)

    for predicate in (
        demographic_predicate(config),
        device_predicate(config.device),
        session_predicate(config),
    ):
        if predicate is not None:
            records = [r for r in records if predicate(r)]

    result.base = list(records)
    result.records = apply_trims(records, trim_bounds(records, config))

    logger.info(
        f"Joined {joined_count} sessions from {len(questionnaires)} questionnaire "
        f"entries and {len(scans)} scans; {len(result.base)} after filters, "
        f"{len(result.records)} after trimming"
    )
    return result
