"""
Validity analytics endpoints.

GET /v1/analytics/validity      criterion validity report for the IHS score
GET /v1/analytics/correlations  item-level correlations with the questionnaires

Both endpoints fetch from the scan and research stores, then run the
synchronous statistics in the threadpool so the event loop stays free.
Results are cached for a few seconds keyed on every parameter.
"""
from dataclasses import asdict
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query
from starlette.concurrency import run_in_threadpool

from ihs_validity.core.cache import SimpleCache, cache_key
from ihs_validity.core.config import settings
from ihs_validity.core.error_responses import (
    ErrorMessages,
    raise_server_error,
    raise_service_unavailable,
)
from ihs_validity.core.validity import (
    AnalysisConfig,
    CorrelationMethod,
    FilterConfig,
    ScoreMode,
    UpstreamUnavailableError,
    ValidityDataLoader,
    build_correlations_report,
    build_validity_report,
)
from ihs_validity.schemas.validity import (
    ItemCorrelationsResponse,
    ValidityReportResponse,
)

from ._dependencies import (
    get_filter_config,
    get_result_cache,
    get_validity_loader,
    logger,
)

router = APIRouter()

VALIDITY_CACHE_PREFIX = "validity"
CORRELATIONS_CACHE_PREFIX = "correlations"


def _with_cache_flag(payload: Dict[str, Any], hit: bool) -> Dict[str, Any]:
    return {**payload, "cache": {"hit": hit}}


@router.get(
    "/validity",
    response_model=ValidityReportResponse,
    responses={
        400: {"description": "Invalid parameter combination"},
        503: {"description": "Scan or research store unavailable"},
    },
)
async def get_validity_report(
    filters: FilterConfig = Depends(get_filter_config),
    limit: Optional[int] = Query(
        default=None,
        ge=1,
        le=settings.VALIDITY_ROW_LIMIT_MAX,
        description="Newest questionnaire entries to analyse",
    ),
    method: CorrelationMethod = Query(default="pearson"),
    score: ScoreMode = Query(default="raw", description="How the behavioural score is built"),
    rt_denoise: bool = Query(
        default=False, alias="rtDenoise", description="Winsorize response times for N1"
    ),
    rt_learn: bool = Query(
        default=False, alias="rtLearn", description="Use denoised times in learned features"
    ),
    ridge_lambda: Optional[float] = Query(
        default=None, ge=0.0, alias="lambda", description="Ridge penalty for cv score modes"
    ),
    include_per_session: bool = Query(default=False, alias="includePerSession"),
    loader: ValidityDataLoader = Depends(get_validity_loader),
    cache: SimpleCache = Depends(get_result_cache),
) -> Dict[str, Any]:
    """
    Criterion validity of the IHS against the questionnaire Benchmark.

    Joins the newest ``limit`` questionnaire entries with their scan sessions,
    applies the population filters and reports:

    - **correlation**: score vs Benchmark with a Fisher 95% CI
    - **reliability / attenuation**: split-half (IHS), omega (Benchmark) and
      the disattenuated correlation
    - **roc**: AUC for the top-quartile Benchmark label
    - **regression**: incremental R² of the score over the questionnaires
    - **non_inferiority**: score vs the strongest questionnaire
    - **cv**: held-out fit report for the cross-validated score modes
    - **grader**: overall evidence label with reasons and warnings

    Statistics without enough data are null. A failing store yields 503.
    """
    analysis = AnalysisConfig(
        method=method,
        score_mode=score,
        rt_denoise=rt_denoise,
        rt_learn=rt_learn,
        ridge_lambda=settings.RIDGE_LAMBDA if ridge_lambda is None else ridge_lambda,
        include_per_session=include_per_session,
        limit=limit or settings.VALIDITY_DEFAULT_LIMIT,
    )
    key = f"{VALIDITY_CACHE_PREFIX}:{cache_key(filters=asdict(filters), analysis=asdict(analysis))}"
    cached = cache.get(key)
    if cached is not None:
        logger.info("Validity report served from cache", extra={"cache_hit": True})
        return _with_cache_flag(cached, hit=True)

    try:
        questionnaires, scans = await loader.load(filters, analysis.limit)
    except UpstreamUnavailableError as e:
        logger.error(f"Validity report aborted: {e}")
        raise_service_unavailable(ErrorMessages.UPSTREAM_UNAVAILABLE)

    try:
        report = await run_in_threadpool(
            build_validity_report,
            questionnaires,
            scans,
            filters,
            analysis,
            bootstrap_replicates=settings.BOOTSTRAP_REPLICATES,
            fold_seed=settings.CV_SEED,
            non_inferiority_margin=settings.NON_INFERIORITY_MARGIN,
        )
    except Exception as e:
        logger.error(f"Failed to compute validity report: {str(e)}", exc_info=True)
        raise_server_error(ErrorMessages.VALIDITY_FAILED)

    logger.info(
        f"Validity report computed (n_used={report['n_used']}, score={score})",
        extra={"n_used": report["n_used"], "cache_hit": False},
    )
    cache.set(key, report, ttl=settings.VALIDITY_CACHE_TTL_SECONDS)
    return _with_cache_flag(report, hit=False)


@router.get(
    "/correlations",
    response_model=ItemCorrelationsResponse,
    responses={503: {"description": "Scan or research store unavailable"}},
)
async def get_item_correlations(
    filters: FilterConfig = Depends(get_filter_config),
    limit: Optional[int] = Query(
        default=None, ge=1, le=settings.VALIDITY_ROW_LIMIT_MAX
    ),
    method: CorrelationMethod = Query(default="pearson"),
    loader: ValidityDataLoader = Depends(get_validity_loader),
    cache: SimpleCache = Depends(get_result_cache),
) -> Dict[str, Any]:
    """
    Raw IHS and per-domain / per-card responses vs each questionnaire.

    Domain rows correlate each session's affirmation sum and yes-rate within
    the domain; card rows correlate the yes/no answer and the affirmation
    value of each presentation.
    """
    row_limit = limit or settings.VALIDITY_DEFAULT_LIMIT
    key = (
        f"{CORRELATIONS_CACHE_PREFIX}:"
        f"{cache_key(filters=asdict(filters), method=method, limit=row_limit)}"
    )
    cached = cache.get(key)
    if cached is not None:
        return _with_cache_flag(cached, hit=True)

    try:
        questionnaires, scans = await loader.load(filters, row_limit)
    except UpstreamUnavailableError as e:
        logger.error(f"Item correlations aborted: {e}")
        raise_service_unavailable(ErrorMessages.UPSTREAM_UNAVAILABLE)

    try:
        result = await run_in_threadpool(
            build_correlations_report, questionnaires, scans, filters, method
        )
    except Exception as e:
        logger.error(f"Failed to compute item correlations: {str(e)}", exc_info=True)
        raise_server_error(ErrorMessages.CORRELATIONS_FAILED)

    cache.set(key, result, ttl=settings.VALIDITY_CACHE_TTL_SECONDS)
    return _with_cache_flag(result, hit=False)
