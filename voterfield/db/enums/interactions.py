"""Interaction ledger enums."""

from enum import Enum


class ResultCode(str, Enum):
    """Outcome of a single door knock."""

    CONTACTED = "contacted"
    NOT_HOME = "not_home"
    REFUSED = "refused"
    MOVED = "moved"
    INACCESSIBLE = "inaccessible"
    DECEASED = "deceased"


class InteractionChannel(str, Enum):
    CANVASS = "canvass"
