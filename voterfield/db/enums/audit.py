"""Audit and platform event enums."""

from enum import Enum


class AuditAction(str, Enum):
    """Action tags written to the audit log."""

    # Voters
    VOTER_CREATE = "voter.create"
    VOTER_UPDATE = "voter.update"

    # Lists & assignments
    LIST_CREATE = "list.create"
    ASSIGNMENT_CREATE = "assignment.create"
    ASSIGNMENT_STATUS_CHANGE = "assignment.status_change"

    # Interactions
    INTERACTION_CREATE = "interaction.create"

    # Jobs
    IMPORT_CREATE = "import.create"
    IMPORT_SUCCESS = "import.success"
    EXPORT_CREATE = "export.create"

    # Users
    USER_INVITE = "user.invite"
    USER_ROLE_CHANGE = "user.role_change"
    USER_PROFILE_UPDATE = "user.profile_update"

    # Organization
    ORG_CREATE = "org.create"
    ORG_STATUS_CHANGE = "org.status_change"
    ORG_LIMIT_CHANGE = "org.limit_change"


class EventType(str, Enum):
    """Domain events appended to the platform event stream."""

    LIST_CREATED = "list.created"
    ASSIGNMENT_CREATED = "assignment.created"
    ASSIGNMENT_REASSIGNED = "assignment.reassigned"
    ASSIGNMENT_STATUS_CHANGED = "assignment.status_changed"
    INTERACTION_CREATED = "interactions.created"
    IMPORT_STARTED = "import.started"
    IMPORT_COMPLETED = "import.completed"
    IMPORT_FAILED = "import.failed"
    EXPORT_STARTED = "export.started"
    EXPORT_COMPLETED = "export.completed"
    EXPORT_FAILED = "export.failed"
    USER_LOGIN = "user.login"
