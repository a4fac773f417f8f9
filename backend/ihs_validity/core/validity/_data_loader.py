"""
Data loader for the validity analytics endpoints.

Reads questionnaire entries (with panel demographics) from the research store
and the matching scan sessions from the scan store, converting ORM rows into
the plain records the engine works on.

Demographic filters are pushed into the research query so the row limit
applies to the eligible population; the engine re-applies them as
predicates, which keeps it correct for callers that skip the loader.

Any database failure is surfaced as ``UpstreamUnavailableError`` so the
endpoint can answer with a single 503 instead of partial statistics.
"""

import logging
from typing import Any, Iterable, List, Optional, Sequence, Tuple

from sqlalchemy import and_, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ihs_validity.models.models import (
    ParticipantDemographics,
    QuestionnaireEntry,
    ScanSession,
)

from ._types import (
    FilterConfig,
    QuestionnaireRecord,
    ScanSessionRecord,
    Trial,
    _as_float,
    _as_int,
)

logger = logging.getLogger(__name__)


class UpstreamUnavailableError(Exception):
    """A backing store could not be queried."""

    def __init__(self, store: str, original_error: Optional[Exception] = None):
        self.store = store
        self.original_error = original_error
        super().__init__(f"{store} store unavailable: {original_error}")


def parse_trials(card_selections: Any) -> Tuple[Trial, ...]:
    """Parse the stored trial payload (``{"allResponses": [...]}`` or a bare list)."""
    if isinstance(card_selections, dict):
        items = card_selections.get("allResponses") or []
    elif isinstance(card_selections, list):
        items = card_selections
    else:
        return ()
    return tuple(Trial.from_json(item) for item in items if isinstance(item, dict))


def _int_items(values: Any) -> Tuple[int, ...]:
    if not isinstance(values, (list, tuple)):
        return ()
    items = (_as_int(v) for v in values)
    return tuple(v for v in items if v is not None)


def _lowered(values: Iterable[str]) -> List[str]:
    return [v.strip().lower() for v in values if v and v.strip()]


class ValidityDataLoader:
    """
    Loads the two inputs of the validity engine.

    Usage:
        loader = ValidityDataLoader(scan_db, research_db)
        questionnaires, scans = await loader.load(filters, limit=500)
    """

    def __init__(self, scan_db: AsyncSession, research_db: AsyncSession):
        """
        Args:
            scan_db: Session bound to the scan store
            research_db: Session bound to the research store
        """
        self._scan_db = scan_db
        self._research_db = research_db

    async def load(
        self, filters: FilterConfig, limit: int
    ) -> Tuple[List[QuestionnaireRecord], List[ScanSessionRecord]]:
        """
        Fetch the newest ``limit`` questionnaire entries and their scans.

        Raises:
            UpstreamUnavailableError: Either query failed
        """
        questionnaires = await self.fetch_questionnaires(filters, limit)
        if not questionnaires:
            return [], []
        session_ids = sorted({q.session_id for q in questionnaires})
        scans = await self.fetch_scans(session_ids)
        logger.info(
            f"Loaded {len(questionnaires)} questionnaire entries and "
            f"{len(scans)} scan sessions (limit={limit})"
        )
        return questionnaires, scans

    async def fetch_questionnaires(
        self, filters: FilterConfig, limit: int
    ) -> List[QuestionnaireRecord]:
        stmt = (
            select(
                QuestionnaireEntry.session_id,
                QuestionnaireEntry.who5,
                QuestionnaireEntry.swls,
                QuestionnaireEntry.cantril,
                QuestionnaireEntry.created_at,
                ParticipantDemographics.sex,
                ParticipantDemographics.age,
                ParticipantDemographics.country_of_residence,
            )
            .outerjoin(
                ParticipantDemographics,
                ParticipantDemographics.prolific_pid == QuestionnaireEntry.prolific_pid,
            )
            .where(*self._demographic_clauses(filters))
            .order_by(QuestionnaireEntry.created_at.desc(), QuestionnaireEntry.id.desc())
            .limit(limit)
        )
        try:
            result = await self._research_db.execute(stmt)
            rows = result.all()
        except SQLAlchemyError as e:
            logger.error(f"Research store query failed: {e}", exc_info=True)
            raise UpstreamUnavailableError("research", e) from e

        return [
            QuestionnaireRecord(
                session_id=str(row.session_id),
                who5=_int_items(row.who5),
                swls=_int_items(row.swls),
                cantril=_as_int(row.cantril),
                sex=row.sex,
                age=_as_int(row.age),
                country=row.country_of_residence,
                created_at=row.created_at,
            )
            for row in rows
            if row.session_id
        ]

    async def fetch_scans(self, session_ids: Sequence[str]) -> List[ScanSessionRecord]:
        if not session_ids:
            return []
        stmt = (
            select(ScanSession)
            .where(ScanSession.session_id.in_(list(session_ids)))
            .order_by(ScanSession.created_at.desc(), ScanSession.id.desc())
        )
        try:
            result = await self._scan_db.execute(stmt)
            rows = result.scalars().all()
        except SQLAlchemyError as e:
            logger.error(f"Scan store query failed: {e}", exc_info=True)
            raise UpstreamUnavailableError("scan", e) from e

        return [
            ScanSessionRecord(
                session_id=str(row.session_id),
                ihs=_as_float(row.ihs_score),
                n1=_as_float(row.n1_score),
                n2=_as_float(row.n2_score),
                n3=_as_float(row.n3_score),
                n1_scaled=_as_float(row.n1_scaled_100),
                trials=parse_trials(row.card_selections),
                user_agent=row.user_agent,
                completion_time_ms=_as_float(row.completion_time_ms),
            )
            for row in rows
        ]

    @staticmethod
    def _demographic_clauses(filters: FilterConfig) -> List[Any]:
        clauses: List[Any] = []
        country_col = func.lower(ParticipantDemographics.country_of_residence)
        if filters.sex and filters.sex.strip():
            clauses.append(
                func.lower(ParticipantDemographics.sex) == filters.sex.strip().lower()
            )
        if filters.country and filters.country.strip():
            clauses.append(country_col == filters.country.strip().lower())
        allow = _lowered(filters.countries)
        if allow:
            clauses.append(country_col.in_(allow))
        deny = _lowered(filters.exclude_countries)
        if deny:
            clauses.append(
                and_(
                    ParticipantDemographics.country_of_residence.is_not(None),
                    country_col.not_in(deny),
                )
            )
        if filters.age_min is not None:
            clauses.append(ParticipantDemographics.age >= filters.age_min)
        if filters.age_max is not None:
            clauses.append(ParticipantDemographics.age <= filters.age_max)
        return clauses
