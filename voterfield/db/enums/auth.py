"""Auth-related enums."""

from enum import Enum


class Role(str, Enum):
    """
    User roles within an organization.

    - ADMIN: manages voters, lists, assignments, imports, users
    - CANVASSER: works assigned lists and logs interactions
    """

    ADMIN = "admin"
    CANVASSER = "canvasser"

    @classmethod
    def has_value(cls, value: str) -> bool:
        """Check if value is a valid role."""
        return value in cls._value2member_map_
