r"""
Criterion validity analytics for the Inner Happiness Scan (IHS).

Measures how well the behavioural IHS score tracks self-reported wellbeing
(WHO-5, SWLS, Cantril ladder) over a filtered population of sessions:

- Benchmark composite (mean of questionnaire z-scores)
- Correlation with Fisher confidence interval
- Split-half reliability of the IHS and omega of the Benchmark
- ROC/AUC against a high-Benchmark label
- Incremental validity over the questionnaires
- Non-inferiority against the best single questionnaire (leave-one-out)
- Cross-validated ridge scoring on components, domains or cards
- An evidence grade summarising all of the above

Usage Example
-------------
    from ihs_validity.core.validity import (
        AnalysisConfig,
        FilterConfig,
        ValidityDataLoader,
        build_validity_report,
    )

    loader = ValidityDataLoader(scan_db, research_db)
    questionnaires, scans = await loader.load(FilterConfig(device="mobile"), limit=500)

    report = build_validity_report(
        questionnaires,
        scans,
        FilterConfig(device="mobile"),
        AnalysisConfig(method="spearman", score_mode="cv"),
        bootstrap_replicates=200,
        fold_seed=1234,
        non_inferiority_margin=0.05,
    )
    print(f"r = {report['correlation']['r']} (n={report['n_used']})")
    print(f"Grade: {report['grader']['label']}")
"""

from ._constants import CorrelationMethod, DeviceClass, Modality, ScoreMode
from ._data_loader import UpstreamUnavailableError, ValidityDataLoader, parse_trials
from ._types import (
    AnalysisConfig,
    FilterConfig,
    JoinedRecord,
    QuestionnaireRecord,
    ScanSessionRecord,
    Trial,
)
from .report import build_correlations_report, build_validity_report, empty_report

__all__ = [
    "AnalysisConfig",
    "CorrelationMethod",
    "DeviceClass",
    "FilterConfig",
    "JoinedRecord",
    "Modality",
    "QuestionnaireRecord",
    "ScanSessionRecord",
    "ScoreMode",
    "Trial",
    "UpstreamUnavailableError",
    "ValidityDataLoader",
    "build_correlations_report",
    "build_validity_report",
    "empty_report",
    "parse_trials",
]
