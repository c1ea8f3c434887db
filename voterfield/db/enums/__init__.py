"""Enum definitions for application constants."""

from voterfield.db.enums.assignments import ASSIGNMENT_TRANSITIONS, AssignmentStatus
from voterfield.db.enums.audit import AuditAction, EventType
from voterfield.db.enums.auth import Role
from voterfield.db.enums.interactions import InteractionChannel, ResultCode
from voterfield.db.enums.jobs import TERMINAL_JOB_STATUSES, JobStatus, JobType
from voterfield.db.enums.orgs import OrgLimit, OrgStatus

__all__ = [
    "ASSIGNMENT_TRANSITIONS",
    "AssignmentStatus",
    "AuditAction",
    "EventType",
    "InteractionChannel",
    "JobStatus",
    "JobType",
    "OrgLimit",
    "OrgStatus",
    "ResultCode",
    "Role",
    "TERMINAL_JOB_STATUSES",
]
