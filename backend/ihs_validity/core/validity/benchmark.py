"""
Benchmark composite builder.

Each questionnaire total is standardized against the filtered population
(mean and sample SD over non-null values). A record's Benchmark is the mean of
its available z-scores, and only exists when at least two of the three
questionnaires are present. A questionnaire whose SD is not positive (n < 2 or
a constant column) contributes no z-score at all rather than a zero.

Usage Example:
    stats = questionnaire_stats(records)
    benchmarks = build_benchmarks(records, stats)
    print(benchmarks["session-1"])
"""

from typing import Dict, List, Optional, Sequence

from ihs_validity.core.stats import (
    correlate,
    finite_values,
    fisher_ci,
    mean,
    sample_sd,
    standardize,
)

from ._constants import MIN_BENCHMARK_COMPONENTS, QUESTIONNAIRES
from ._types import ComponentStats, CorrelationSummary, JoinedRecord


def column_stats(values: Sequence[Optional[float]]) -> ComponentStats:
    finite = finite_values(values)
    return {"mean": mean(finite), "sd": sample_sd(finite), "n": len(finite)}


def questionnaire_stats(records: Sequence[JoinedRecord]) -> Dict[str, ComponentStats]:
    """Mean/SD/n of each questionnaire total over the given population."""
    return {
        name: column_stats([r.questionnaire_total(name) for r in records])
        for name in QUESTIONNAIRES
    }


def questionnaire_z_scores(
    record: JoinedRecord, stats: Dict[str, ComponentStats]
) -> Dict[str, Optional[float]]:
    return {
        name: standardize(
            record.questionnaire_total(name), stats[name]["mean"], stats[name]["sd"]
        )
        for name in QUESTIONNAIRES
    }


def composite(z_scores: Sequence[Optional[float]]) -> Optional[float]:
    """Mean of the present z-scores, or None when fewer than two are present."""
    present = [z for z in z_scores if z is not None]
    if len(present) < MIN_BENCHMARK_COMPONENTS:
        return None
    return sum(present) / len(present)


def build_benchmarks(
    records: Sequence[JoinedRecord], stats: Dict[str, ComponentStats]
) -> Dict[str, Optional[float]]:
    """Benchmark value per session id (None where fewer than two z-scores exist)."""
    return {
        r.session_id: composite(list(questionnaire_z_scores(r, stats).values()))
        for r in records
    }


def components_vs_benchmark(
    records: Sequence[JoinedRecord],
    benchmarks: Dict[str, Optional[float]],
    method: str,
) -> Dict[str, CorrelationSummary]:
    """Correlation of each raw questionnaire total with the Benchmark."""
    out: Dict[str, CorrelationSummary] = {}
    for name in QUESTIONNAIRES:
        xs: List[float] = []
        ys: List[float] = []
        for r in records:
            value = r.questionnaire_total(name)
            b = benchmarks.get(r.session_id)
            if value is None or b is None:
                continue
            xs.append(value)
            ys.append(b)
        r_value = correlate(xs, ys, method) if len(xs) >= 2 else None
        out[name] = {"r": r_value, "n": len(xs), "ci95": fisher_ci(r_value, len(xs))}
    return out
