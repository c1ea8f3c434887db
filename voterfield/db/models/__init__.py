"""SQLAlchemy ORM models."""

from voterfield.db.models.audit import AuditLogEntry, PlatformEvent
from voterfield.db.models.auth import Organization, User
from voterfield.db.models.interactions import Interaction, InteractionSurveyResponse
from voterfield.db.models.jobs import Job
from voterfield.db.models.voters import Voter
from voterfield.db.models.walk_lists import Assignment, WalkList, WalkListVoter

__all__ = [
    "Assignment",
    "AuditLogEntry",
    "Interaction",
    "InteractionSurveyResponse",
    "Job",
    "Organization",
    "PlatformEvent",
    "User",
    "Voter",
    "WalkList",
    "WalkListVoter",
]
