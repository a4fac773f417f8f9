"""
Per-trial scoring rules shared by reliability, scoring and item analyses.

A "yes" answer contributes an affirmation value that decays with response
time:

    multiplier(t) = ((4000 - clamp(t, 0, 4000)) / 4000) ** exponent
    affirmation   = 4 * multiplier(t)

"No" answers and timeouts contribute 0. With the default exponent of 0.5 this
is the square-root decay used by the upstream scorer.
"""

import math
from typing import Dict, List, Optional, Sequence, Tuple

from ihs_validity.core.stats import quantile

from ._constants import (
    AFFIRMATION_MAX,
    DEFAULT_RT_EXPONENT,
    IAT_WINDOW_MS,
    MODALITY_MATCHERS,
    RT_CEILING_MS,
    RT_DENOISE_MIN_TRIALS,
    RT_WINSOR_QUANTILES,
)
from ._types import Trial


def time_multiplier(ms: Optional[float], exponent: float = DEFAULT_RT_EXPONENT) -> float:
    t = max(0.0, min(RT_CEILING_MS, ms or 0.0))
    linear = (RT_CEILING_MS - t) / RT_CEILING_MS
    return max(0.0, linear) ** exponent


def trial_affirmation(
    trial: Trial,
    exponent: float = DEFAULT_RT_EXPONENT,
    response_time_ms: Optional[float] = None,
) -> float:
    """
    Affirmation value of one trial.

    Args:
        trial: The trial to score
        exponent: Decay exponent for the time multiplier
        response_time_ms: Optional replacement time (e.g. after denoising)

    Returns:
        4 * multiplier for a "yes" with a finite time, else 0.0
    """
    if trial.response is not True:
        return 0.0
    t = response_time_ms if response_time_ms is not None else trial.response_time_ms
    if t is None or not math.isfinite(t):
        return 0.0
    return AFFIRMATION_MAX * time_multiplier(t, exponent)


def stored_or_computed_affirmation(trial: Trial) -> float:
    """Prefer the upstream-stored affirmation score when one was recorded."""
    if trial.affirmation_score is not None:
        return trial.affirmation_score
    return trial_affirmation(trial)


def _scale_n1(total: float, trial_count: int) -> float:
    denom = AFFIRMATION_MAX * max(1, trial_count)
    return max(0.0, min(100.0, 100.0 * total / denom))


def n1_scaled(
    trials: Sequence[Trial], exponent: float = DEFAULT_RT_EXPONENT
) -> Optional[float]:
    """N1 on a 0-100 scale: affirmation sum over the maximum attainable."""
    if not trials:
        return None
    total = sum(trial_affirmation(t, exponent) for t in trials)
    return _scale_n1(total, len(trials))


def denoised_times(trials: Sequence[Trial]) -> Optional[List[Optional[float]]]:
    """
    Winsorize a person's response times, then clamp to the IAT window.

    Winsorizing uses that person's own 10th/90th percentiles. Trials without a
    finite time keep None.

    Returns:
        One entry per trial, or None when fewer than five finite times exist.
    """
    finite = [
        t.response_time_ms
        for t in trials
        if t.response_time_ms is not None and math.isfinite(t.response_time_ms)
    ]
    if len(trials) < RT_DENOISE_MIN_TRIALS or len(finite) < RT_DENOISE_MIN_TRIALS:
        return None
    lo_cut = quantile(finite, RT_WINSOR_QUANTILES[0])
    hi_cut = quantile(finite, RT_WINSOR_QUANTILES[1])
    lo_window, hi_window = IAT_WINDOW_MS

    out: List[Optional[float]] = []
    for t in trials:
        rt = t.response_time_ms
        if rt is None or not math.isfinite(rt):
            out.append(None)
            continue
        rt = max(lo_cut, min(hi_cut, rt))
        out.append(max(lo_window, min(hi_window, rt)))
    return out


def n1_denoised_scaled(
    trials: Sequence[Trial], exponent: float = DEFAULT_RT_EXPONENT
) -> Optional[float]:
    """N1 (0-100) computed from denoised response times."""
    times = denoised_times(trials)
    if times is None:
        return None
    total = sum(
        trial_affirmation(trial, exponent, rt)
        for trial, rt in zip(trials, times)
        if rt is not None
    )
    return _scale_n1(total, len(trials))


def yes_rate(trials: Sequence[Trial]) -> Optional[float]:
    """Share of "yes" among answered (non-timeout) trials."""
    yes = sum(1 for t in trials if t.response is True)
    answered = sum(1 for t in trials if t.response is not None)
    if answered == 0:
        return None
    return yes / answered


def domain_affirmations(
    trials: Sequence[Trial],
    domains: Sequence[str],
    exponent: float = DEFAULT_RT_EXPONENT,
) -> Dict[str, float]:
    """Affirmation sum per domain; domains without a "yes" score 0."""
    sums = {d: 0.0 for d in domains}
    for t in trials:
        if t.domain in sums:
            sums[t.domain] += trial_affirmation(t, exponent)
    return sums


def card_affirmations(
    trials: Sequence[Trial], exponent: float = DEFAULT_RT_EXPONENT
) -> Dict[int, float]:
    """Affirmation value per presented card id."""
    out: Dict[int, float] = {}
    for t in trials:
        if t.card_id is None:
            continue
        out[t.card_id] = out.get(t.card_id, 0.0) + trial_affirmation(t, exponent)
    return out


def modality_family(raw: Optional[str]) -> str:
    value = (raw or "").lower()
    for family, matches in MODALITY_MATCHERS.items():
        if value in matches:
            return family
    return "other"


def modality_counts(trials: Sequence[Trial]) -> Dict[str, int]:
    counts = {"click": 0, "swipe": 0, "arrow": 0, "other": 0, "total": 0}
    for t in trials:
        counts[modality_family(t.input_modality)] += 1
        counts["total"] += 1
    return counts


def timeout_count(trials: Sequence[Trial]) -> int:
    return sum(1 for t in trials if t.is_timeout)


def iat_invalid_fraction(trials: Sequence[Trial]) -> float:
    """
    Share of trials outside the plausible response window.

    A trial is invalid when it timed out, has no finite time, or its time is
    not strictly inside (300, 2000) ms. An empty session is fully invalid.
    """
    if not trials:
        return 1.0
    lo, hi = IAT_WINDOW_MS
    invalid = 0
    for t in trials:
        rt = t.response_time_ms
        if t.is_timeout or rt is None or not math.isfinite(rt) or not (lo < rt < hi):
            invalid += 1
    return invalid / len(trials)


def split_half_scores(trials: Sequence[Trial]) -> Tuple[float, float]:
    """Affirmation sums over even- and odd-indexed trials."""
    even = sum(trial_affirmation(t) for t in trials[0::2])
    odd = sum(trial_affirmation(t) for t in trials[1::2])
    return even, odd
