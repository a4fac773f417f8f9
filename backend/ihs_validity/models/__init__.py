from .base import Base, get_db, get_research_db
from .models import ParticipantDemographics, QuestionnaireEntry, ScanSession

__all__ = [
    "Base",
    "get_db",
    "get_research_db",
    "ParticipantDemographics",
    "QuestionnaireEntry",
    "ScanSession",
]
