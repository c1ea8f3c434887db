"""Job-related enums."""

from enum import Enum


class JobType(str, Enum):
    """Types of background jobs."""

    IMPORT_VOTERS = "import_voters"
    EXPORT_DATA = "export_data"


class JobStatus(str, Enum):
    """Status of background jobs. completed and failed are terminal."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


TERMINAL_JOB_STATUSES = frozenset({JobStatus.COMPLETED, JobStatus.FAILED})
