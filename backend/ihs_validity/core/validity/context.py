"""
Per-request computation context.

The context is built once from the final filtered population and then handed
to every analysis module. It owns:

- the correlation method, so all modules agree on Pearson vs Spearman
- standardization constants for questionnaires and N1/N2/N3, so the
  regression, non-inferiority and scoring modules share the same z-scores
- the Benchmark value of every record
- the request's random generators: an unseeded one for bootstrap draws and
  a seed for fold assignment

Nothing here is shared between requests.
"""

import random
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

from ihs_validity.core.stats import correlate, fisher_ci, standardize

from ._constants import QUESTIONNAIRES
from ._types import AnalysisConfig, ComponentStats, CorrelationSummary, JoinedRecord
from .benchmark import build_benchmarks, column_stats, questionnaire_stats
from .trials import n1_denoised_scaled


@dataclass
class ComputationContext:
    method: str
    analysis: AnalysisConfig
    questionnaire_stats: Dict[str, ComponentStats]
    component_stats: Dict[str, ComponentStats]
    benchmarks: Dict[str, Optional[float]]
    n1_values: Dict[str, Optional[float]]
    bootstrap_replicates: int
    fold_seed: int
    non_inferiority_margin: float
    rng: random.Random = field(default_factory=random.Random)

    @classmethod
    def build(
        cls,
        records: Sequence[JoinedRecord],
        analysis: AnalysisConfig,
        *,
        bootstrap_replicates: int,
        fold_seed: int,
        non_inferiority_margin: float,
        rng: Optional[random.Random] = None,
    ) -> "ComputationContext":
        """
        Populate the context from the final population.

        With ``rt_denoise`` enabled, N1 is recomputed from winsorized response
        times wherever a session has enough finite times, and the N1
        standardization constants are fitted on those values.
        """
        n1_values: Dict[str, Optional[float]] = {}
        for r in records:
            value = r.n1
            if analysis.rt_denoise:
                denoised = n1_denoised_scaled(r.trials)
                if denoised is not None:
                    value = denoised
            n1_values[r.session_id] = value

        q_stats = questionnaire_stats(records)
        c_stats = {
            "n1": column_stats(list(n1_values.values())),
            "n2": column_stats([r.n2 for r in records]),
            "n3": column_stats([r.n3 for r in records]),
        }
        return cls(
            method=analysis.method,
            analysis=analysis,
            questionnaire_stats=q_stats,
            component_stats=c_stats,
            benchmarks=build_benchmarks(records, q_stats),
            n1_values=n1_values,
            bootstrap_replicates=bootstrap_replicates,
            fold_seed=fold_seed,
            non_inferiority_margin=non_inferiority_margin,
            rng=rng if rng is not None else random.Random(),
        )

    # -------------------------------------------------------------------------
    # Standardization
    # -------------------------------------------------------------------------

    def questionnaire_z(self, record: JoinedRecord, name: str) -> Optional[float]:
        stats = self.questionnaire_stats[name]
        return standardize(record.questionnaire_total(name), stats["mean"], stats["sd"])

    def questionnaire_zs(self, record: JoinedRecord) -> Dict[str, Optional[float]]:
        return {name: self.questionnaire_z(record, name) for name in QUESTIONNAIRES}

    def component_value(self, record: JoinedRecord, name: str) -> Optional[float]:
        if name == "n1":
            return self.n1_values.get(record.session_id, record.n1)
        if name == "n2":
            return record.n2
        if name == "n3":
            return record.n3
        raise KeyError(name)

    def component_z(self, record: JoinedRecord, name: str) -> Optional[float]:
        stats = self.component_stats[name]
        return standardize(self.component_value(record, name), stats["mean"], stats["sd"])

    def benchmark(self, record: JoinedRecord) -> Optional[float]:
        return self.benchmarks.get(record.session_id)

    # -------------------------------------------------------------------------
    # Correlation helpers bound to the request's method
    # -------------------------------------------------------------------------

    def correlate(self, x: Sequence[float], y: Sequence[float]) -> Optional[float]:
        if len(x) < 2:
            return None
        return correlate(x, y, self.method)

    def summarize(self, x: Sequence[float], y: Sequence[float]) -> CorrelationSummary:
        r = self.correlate(x, y)
        return {"r": r, "n": len(x), "ci95": fisher_ci(r, len(x))}

    def fold_rng(self) -> random.Random:
        """Fresh seeded generator for fold assignment."""
        return random.Random(self.fold_seed)


def paired(
    pairs: Sequence[Tuple[Optional[float], Optional[float]]],
) -> Tuple[List[float], List[float]]:
    """Split (x, y) pairs into two lists, dropping pairs with a missing side."""
    xs: List[float] = []
    ys: List[float] = []
    for x, y in pairs:
        if x is None or y is None:
            continue
        xs.append(x)
        ys.append(y)
    return xs, ys

