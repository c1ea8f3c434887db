"""Assignment status enums and allowed transitions."""

from enum import Enum


class AssignmentStatus(str, Enum):
    ASSIGNED = "assigned"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


# Explicit state machine; admin overrides go through the same table
ASSIGNMENT_TRANSITIONS: dict[AssignmentStatus, frozenset[AssignmentStatus]] = {
    AssignmentStatus.ASSIGNED: frozenset(
        {AssignmentStatus.IN_PROGRESS, AssignmentStatus.COMPLETED}
    ),
    AssignmentStatus.IN_PROGRESS: frozenset(
        {AssignmentStatus.ASSIGNED, AssignmentStatus.COMPLETED}
    ),
    AssignmentStatus.COMPLETED: frozenset({AssignmentStatus.IN_PROGRESS}),
}
