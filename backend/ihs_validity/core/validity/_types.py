"""
Record and configuration types for the validity engine.

Input records are plain dataclasses built by the data loader (or by tests).
Result payloads are TypedDicts so callers get key checking without a class
hierarchy.
"""

import math
import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple, TypedDict

from ._constants import MOBILE_UA_PATTERN, SWLS_ITEM_MAX

_MOBILE_UA_RE = re.compile(MOBILE_UA_PATTERN, re.IGNORECASE)


def _as_float(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        f = float(value)
    except (TypeError, ValueError):
        return None
    return f if math.isfinite(f) else None


def _as_int(value: Any) -> Optional[int]:
    f = _as_float(value)
    if f is None:
        return None
    return int(f)


def is_mobile_user_agent(user_agent: Optional[str]) -> bool:
    if not user_agent:
        return False
    return bool(_MOBILE_UA_RE.search(user_agent))


# =============================================================================
# INPUT RECORDS
# =============================================================================


@dataclass(frozen=True)
class Trial:
    """One card presentation within a scan session."""

    card_id: Optional[int] = None
    domain: Optional[str] = None
    response: Optional[bool] = None  # None = timeout
    response_time_ms: Optional[float] = None
    input_modality: Optional[str] = None
    label: Optional[str] = None
    affirmation_score: Optional[float] = None  # as stored upstream, if any

    @classmethod
    def from_json(cls, data: Optional[Dict[str, Any]]) -> "Trial":
        """Build a trial from the ``allResponses`` JSON shape."""
        if not data:
            return cls()
        response = data.get("response")
        if not isinstance(response, bool):
            response = None
        rt = data.get("responseTime", data.get("responseTimeMs"))
        domain = data.get("domain")
        modality = data.get("inputModality")
        label = data.get("label")
        return cls(
            card_id=_as_int(data.get("cardId")),
            domain=str(domain) if domain is not None else None,
            response=response,
            response_time_ms=_as_float(rt),
            input_modality=str(modality).lower() if modality is not None else None,
            label=str(label) if label is not None else None,
            affirmation_score=_as_float(data.get("affirmationScore")),
        )

    @property
    def is_timeout(self) -> bool:
        return self.response is None


@dataclass(frozen=True)
class ScanSessionRecord:
    """A behavioural scan result as produced by the upstream scorer."""

    session_id: str
    ihs: Optional[float]
    n1: Optional[float] = None
    n2: Optional[float] = None
    n3: Optional[float] = None
    n1_scaled: Optional[float] = None
    trials: Tuple[Trial, ...] = ()
    user_agent: Optional[str] = None
    completion_time_ms: Optional[float] = None


@dataclass(frozen=True)
class QuestionnaireRecord:
    """One respondent's self-report, with demographics from the lookup join."""

    session_id: str
    who5: Tuple[int, ...] = ()
    swls: Tuple[int, ...] = ()
    cantril: Optional[int] = None
    sex: Optional[str] = None
    age: Optional[int] = None
    country: Optional[str] = None
    created_at: Optional[datetime] = None

    @property
    def who5_total(self) -> Optional[float]:
        return float(sum(self.who5)) if self.who5 else None

    @property
    def swls_total(self) -> Optional[float]:
        return float(sum(self.swls)) if self.swls else None


@dataclass
class JoinedRecord:
    """A session present in both stores. Lives for one request only."""

    session_id: str
    ihs: float
    n1: Optional[float]
    n2: Optional[float]
    n3: Optional[float]
    trials: Tuple[Trial, ...]
    user_agent: Optional[str]
    who5_total: Optional[float]
    swls_total: Optional[float]
    cantril: Optional[float]
    swls_item_count: int = 0
    sex: Optional[str] = None
    age: Optional[int] = None
    country: Optional[str] = None

    @property
    def device(self) -> str:
        return "mobile" if is_mobile_user_agent(self.user_agent) else "desktop"

    @property
    def swls_max_total(self) -> Optional[float]:
        if not self.swls_item_count:
            return None
        return float(SWLS_ITEM_MAX * self.swls_item_count)

    def questionnaire_total(self, name: str) -> Optional[float]:
        if name == "who5":
            return self.who5_total
        if name == "swls":
            return self.swls_total
        if name == "cantril":
            return self.cantril
        raise KeyError(name)


# =============================================================================
# CONFIGURATION
# =============================================================================


@dataclass(frozen=True)
class FilterConfig:
    """Inclusion/exclusion options for the join & filter stage."""

    device: str = "any"
    modality: Optional[str] = None
    modalities: Tuple[str, ...] = ()
    exclusive: bool = False
    threshold: Optional[float] = None  # minimum modality share, percent
    exclude_timeouts: bool = False
    timeouts_max: Optional[int] = None
    timeouts_frac_max: Optional[float] = None
    exclude_swipe: bool = False
    iat: bool = False
    sensitivity_all_max: bool = False
    trim_ihs: Optional[float] = None
    trim_scales: Optional[float] = None
    sex: Optional[str] = None
    country: Optional[str] = None
    countries: Tuple[str, ...] = ()
    exclude_countries: Tuple[str, ...] = ()
    age_min: Optional[int] = None
    age_max: Optional[int] = None

    @property
    def has_session_filters(self) -> bool:
        return bool(
            self.modality
            or self.modalities
            or self.exclusive
            or self.threshold is not None
            or self.exclude_timeouts
            or self.timeouts_max is not None
            or self.timeouts_frac_max is not None
            or self.exclude_swipe
            or self.iat
            or self.sensitivity_all_max
        )


@dataclass(frozen=True)
class AnalysisConfig:
    """Options that shape the statistics rather than the population."""

    method: str = "pearson"
    score_mode: str = "raw"
    rt_denoise: bool = False
    rt_learn: bool = False
    ridge_lambda: float = 1.0
    include_per_session: bool = False
    limit: int = 500


@dataclass
class JoinResult:
    """Output of the join & filter stage."""

    base: List[JoinedRecord] = field(default_factory=list)  # before trimming
    records: List[JoinedRecord] = field(default_factory=list)  # final population
    questionnaire_count: int = 0
    scan_count: int = 0

    @property
    def is_empty_source(self) -> bool:
        return self.questionnaire_count == 0


# =============================================================================
# RESULT PAYLOADS
# =============================================================================


class CorrelationSummary(TypedDict):
    r: Optional[float]
    n: int
    ci95: Optional[Tuple[float, float]]


class ComponentStats(TypedDict):
    mean: Optional[float]
    sd: Optional[float]
    n: int


class RegressionResult(TypedDict):
    n: int
    r2_base: Optional[float]
    r2_full: Optional[float]
    delta_r2: Optional[float]
    f: Optional[float]
    df1: int
    df2: int
    p: Optional[float]
