"""Organization lifecycle enums."""

from enum import Enum


class OrgStatus(str, Enum):
    ACTIVE = "active"
    SUSPENDED = "suspended"
    PENDING_DELETE = "pending_delete"


class OrgLimit(str, Enum):
    """Keys understood in Organization.limits."""

    MAX_VOTERS = "max_voters"
    MAX_USERS = "max_users"
