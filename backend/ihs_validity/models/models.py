"""
Read models for the scan and research stores.

The analytics service only reads these tables; they are written by the scan
frontend and the research intake flow.
"""
from datetime import datetime, timezone

from sqlalchemy import JSON, Column, DateTime, Float, Index, Integer, String, Text

from .base import Base


class ScanSession(Base):
    """One completed IHS scan with its component scores and raw trials."""

    __tablename__ = "scan_responses"

    id = Column(Integer, primary_key=True)
    session_id = Column(String(64), nullable=False, index=True)
    ihs_score = Column(Float, nullable=True)
    n1_score = Column(Float, nullable=True)  # raw affirmation total
    n2_score = Column(Float, nullable=True)
    n3_score = Column(Float, nullable=True)
    n1_scaled_100 = Column(Float, nullable=True)  # N1 on the 0-100 scale
    n1_trials_total = Column(Integer, nullable=True)
    # {"allResponses": [trial, ...]} or a bare list of trials
    card_selections = Column(JSON, nullable=True)
    user_agent = Column(Text, nullable=True)
    completion_time_ms = Column(Float, nullable=True)
    created_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )


class QuestionnaireEntry(Base):
    """Research questionnaire answers submitted after a scan."""

    __tablename__ = "research_entries"

    id = Column(Integer, primary_key=True)
    session_id = Column(String(64), nullable=False, index=True)
    who5 = Column(JSON, nullable=True)  # five items, 0..5 each
    swls = Column(JSON, nullable=True)  # items on a 1..7 scale
    cantril = Column(Integer, nullable=True)  # 0..10
    user_agent = Column(Text, nullable=True)
    prolific_pid = Column(String(64), nullable=True, index=True)
    created_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    __table_args__ = (Index("ix_research_entries_created_at", "created_at"),)


class ParticipantDemographics(Base):
    """Panel participant attributes keyed by panel id."""

    __tablename__ = "prolific_participants"

    prolific_pid = Column(String(64), primary_key=True)
    sex = Column(String(32), nullable=True)
    age = Column(Integer, nullable=True)
    country_of_residence = Column(String(64), nullable=True)
