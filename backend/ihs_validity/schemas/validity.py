"""
Pydantic schemas for the validity analytics endpoints.

Every statistic is Optional: a value that cannot be computed (too few
sessions, zero variance, singular system) is serialised as null rather than
a placeholder number.
"""
from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict, List, Optional, Tuple


Interval = Tuple[float, float]


class CorrelationSummary(BaseModel):
    """Correlation coefficient with its sample size and 95% interval."""

    r: Optional[float] = Field(None, ge=-1.0, le=1.0)
    n: int = Field(0, ge=0)
    ci95: Optional[Interval] = None


class ComponentStats(BaseModel):
    """Population mean and sample SD of one questionnaire total."""

    mean: Optional[float] = None
    sd: Optional[float] = None
    n: int = 0


class BenchmarkInfo(BaseModel):
    method: str = "z_mean"
    components: Optional[Dict[str, ComponentStats]] = None


class ReliabilitySummary(BaseModel):
    """Split-half reliability of the IHS and omega of the Benchmark."""

    ihs_sb: Optional[float] = None
    ihs_sb_ci95: Optional[Interval] = None
    ihs_sb_n: int = 0
    benchmark_omega: Optional[float] = None
    benchmark_omega_ci95: Optional[Interval] = None
    benchmark_omega_n: int = 0


class RocPoint(BaseModel):
    threshold: Optional[float] = None
    fpr: float = Field(..., ge=0.0, le=1.0)
    tpr: float = Field(..., ge=0.0, le=1.0)


class RocSummary(BaseModel):
    """AUC of the score for the top-quartile Benchmark label."""

    auc: Optional[float] = None
    ci95: Optional[Interval] = None
    n: int = 0
    n_positive: int = 0
    threshold: Optional[float] = None
    points: List[RocPoint] = Field(default_factory=list)
    questionnaires: Dict[str, Optional[float]] = Field(default_factory=dict)
    best: Optional[float] = None
    best_name: Optional[str] = None
    insufficient_data: bool = False
    error: Optional[str] = None


class RegressionSummary(BaseModel):
    """Nested regression of the Benchmark on questionnaires, then the score."""

    n: int = 0
    r2_base: Optional[float] = None
    r2_full: Optional[float] = None
    delta_r2: Optional[float] = None
    f: Optional[float] = None
    df1: Optional[int] = None
    df2: Optional[int] = None
    p: Optional[float] = None
    note: Optional[str] = None
    insufficient_data: bool = False
    error: Optional[str] = None


class LeaveOneOutComparison(BaseModel):
    n: int = 0
    r_ihs: Optional[float] = None
    r_questionnaire: Optional[float] = None
    loo_of: List[str] = Field(default_factory=list)


class NonInferiorityResult(BaseModel):
    """Score vs the strongest questionnaire on leave-one-out benchmarks."""

    model_config = ConfigDict(populate_by_name=True)

    per_questionnaire: Dict[str, LeaveOneOutComparison] = Field(default_factory=dict)
    reference: Optional[str] = None
    r_reference: Optional[float] = None
    r_ihs: Optional[float] = None
    gap: Optional[float] = None
    margin: float
    z: Optional[float] = None
    p: Optional[float] = None
    n: int = 0
    passed: Optional[bool] = Field(None, alias="pass")


class RobustnessSummary(BaseModel):
    base: CorrelationSummary
    filtered: CorrelationSummary


class GradeReason(BaseModel):
    check: str
    passed: bool
    detail: str


class EvidenceGrade(BaseModel):
    label: str
    reasons: List[GradeReason] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)


class CacheInfo(BaseModel):
    hit: bool = False


class PerSessionRow(BaseModel):
    session_id: str
    ihs: float
    score: Optional[float] = None
    who5: Optional[float] = None
    swls: Optional[float] = None
    cantril: Optional[float] = None
    z_benchmark: Optional[float] = None


class ValidityReportResponse(BaseModel):
    """Response for GET /v1/analytics/validity."""

    n_used: int = Field(..., ge=0, description="Sessions with both a score and a Benchmark")
    method: str
    score_mode: str
    correlation: CorrelationSummary
    benchmark: BenchmarkInfo
    components_vs_benchmark: Optional[Dict[str, CorrelationSummary]] = None
    reliability: Optional[ReliabilitySummary] = None
    attenuation: Optional[float] = None
    roc: Optional[RocSummary] = None
    regression: Optional[RegressionSummary] = None
    non_inferiority: Optional[NonInferiorityResult] = None
    robustness: Optional[RobustnessSummary] = None
    hypotheses: Optional[Dict[str, Any]] = None
    yesrate: Optional[Dict[str, Any]] = None
    ceiling: Optional[Dict[str, Any]] = None
    cv: Optional[Dict[str, Any]] = None
    grader: Optional[EvidenceGrade] = None
    filters_echo: Dict[str, Any] = Field(default_factory=dict)
    per_session: Optional[List[PerSessionRow]] = None
    used_sessions: int = Field(0, ge=0, description="Sessions left after join and filters")
    cache: CacheInfo = Field(default_factory=CacheInfo)


class OverallCorrelation(BaseModel):
    metric: str
    r: Optional[float] = None
    n: int = 0


class ItemCorrelationsResponse(BaseModel):
    """Response for GET /v1/analytics/correlations."""

    overall: List[OverallCorrelation]
    domains: List[Dict[str, Any]]
    cards: List[Dict[str, Any]]
    used_sessions: int = 0
    method: str
    cache: CacheInfo = Field(default_factory=CacheInfo)
