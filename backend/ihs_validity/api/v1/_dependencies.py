"""
Shared dependencies for the analytics endpoints.

Population filters are parsed once here so the validity and correlations
endpoints accept exactly the same filter parameters.
"""
import logging
import math
from typing import List, Optional

from fastapi import Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from ihs_validity.core.cache import SimpleCache
from ihs_validity.core.error_responses import ErrorMessages, raise_bad_request
from ihs_validity.core.validity import (
    DeviceClass,
    FilterConfig,
    Modality,
    ValidityDataLoader,
)
from ihs_validity.core.validity._constants import DEFAULT_TRIM_FRACTION
from ihs_validity.models import get_db, get_research_db

logger = logging.getLogger(__name__)

_MODALITY_FAMILIES = ("click", "swipe", "arrow")
_TRUE_STRINGS = {"true", "yes", "on"}
_FALSE_STRINGS = {"false", "no", "off", ""}


def get_validity_loader(
    scan_db: AsyncSession = Depends(get_db),
    research_db: AsyncSession = Depends(get_research_db),
) -> ValidityDataLoader:
    return ValidityDataLoader(scan_db, research_db)


def get_result_cache(request: Request) -> SimpleCache:
    """The application-wide result cache created at startup."""
    return request.app.state.validity_cache


def split_list(raw: Optional[str]) -> List[str]:
    """Split a comma-separated query value, dropping blanks."""
    if not raw:
        return []
    return [item.strip() for item in raw.split(",") if item.strip()]


def parse_trim(name: str, raw: Optional[str]) -> Optional[float]:
    """
    Parse a trim parameter: a fraction, or a boolean meaning the default 10%.

    Raises:
        HTTPException: 400 for values that are neither
    """
    if raw is None:
        return None
    text = raw.strip().lower()
    if text in _TRUE_STRINGS:
        return DEFAULT_TRIM_FRACTION
    if text in _FALSE_STRINGS:
        return None
    try:
        value = float(text)
    except ValueError:
        raise_bad_request(ErrorMessages.invalid_parameter(name, "expected a fraction or boolean"))
    if not math.isfinite(value) or value < 0:
        raise_bad_request(ErrorMessages.INVALID_TRIM_VALUE)
    return value


def get_filter_config(
    device: DeviceClass = Query(default="any", description="Restrict to mobile or desktop sessions"),
    modality: Optional[Modality] = Query(
        default=None, description="Keep sessions that used this input modality"
    ),
    modalities: Optional[str] = Query(
        default=None,
        description="Comma-separated modalities; ignored when modality is set",
    ),
    exclusive: bool = Query(default=False, description="Keep single-modality sessions only"),
    threshold: Optional[float] = Query(
        default=None, ge=0.0, le=100.0, description="Minimum share (%) of the chosen modality"
    ),
    exclude_timeouts: bool = Query(default=False, alias="excludeTimeouts"),
    exclude_swipe: bool = Query(default=False, alias="excludeSwipe"),
    timeouts_max: Optional[int] = Query(default=None, ge=0, alias="timeoutsMax"),
    timeouts_frac_max: Optional[float] = Query(
        default=None, ge=0.0, le=1.0, alias="timeoutsFracMax"
    ),
    iat: bool = Query(default=False, description="Apply the response-time quality gate"),
    sensitivity_all_max: bool = Query(
        default=False,
        alias="sensitivityAllMax",
        description="Drop respondents at the ceiling of every questionnaire",
    ),
    trim_ihs: Optional[str] = Query(default=None, alias="trimIhs"),
    trim_scales: Optional[str] = Query(default=None, alias="trimScales"),
    sex: Optional[str] = Query(default=None),
    country: Optional[str] = Query(default=None),
    countries: Optional[str] = Query(default=None, description="Comma-separated allow list"),
    exclude_countries: Optional[str] = Query(
        default=None, alias="excludeCountries", description="Comma-separated deny list"
    ),
    age_min: Optional[int] = Query(default=None, ge=0, le=130, alias="ageMin"),
    age_max: Optional[int] = Query(default=None, ge=0, le=130, alias="ageMax"),
) -> FilterConfig:
    requested = [m.lower() for m in split_list(modalities)]
    unknown = [m for m in requested if m not in _MODALITY_FAMILIES]
    if unknown:
        raise_bad_request(
            ErrorMessages.invalid_parameter(
                "modalities", f"unknown modality {', '.join(unknown)}"
            )
        )
    if age_min is not None and age_max is not None and age_min > age_max:
        raise_bad_request(ErrorMessages.invalid_parameter("ageMin", "must not exceed ageMax"))

    return FilterConfig(
        device=device,
        modality=modality,
        modalities=tuple(requested),
        exclusive=exclusive,
        threshold=threshold,
        exclude_timeouts=exclude_timeouts,
        timeouts_max=timeouts_max,
        timeouts_frac_max=timeouts_frac_max,
        exclude_swipe=exclude_swipe,
        iat=iat,
        sensitivity_all_max=sensitivity_all_max,
        trim_ihs=parse_trim("trimIhs", trim_ihs),
        trim_scales=parse_trim("trimScales", trim_scales),
        sex=sex,
        country=country,
        countries=tuple(split_list(countries)),
        exclude_countries=tuple(split_list(exclude_countries)),
        age_min=age_min,
        age_max=age_max,
    )
