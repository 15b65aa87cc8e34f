"""Enums shared across the scouting pipeline."""

from enum import Enum


class ConfidenceTag(str, Enum):
    """Source-assigned confidence of a raw record."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class JobStatus(str, Enum):
    """Lifecycle state of a scrape job."""

    QUEUED = "queued"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.COMPLETED, JobStatus.FAILED, JobStatus.CANCELLED)


class JobPriority(str, Enum):
    """Dispatch priority of a scrape job."""

    HIGH = "high"
    NORMAL = "normal"
    LOW = "low"

    @property
    def rank(self) -> int:
        """Lower rank dispatches first."""
        return {"high": 0, "normal": 1, "low": 2}[self.value]


class JobType(str, Enum):
    """Kind of scrape request."""

    SINGLE = "single"
    BATCH = "batch"


class ExportFormat(str, Enum):
    """Supported profile export formats."""

    JSON = "json"
    CSV = "csv"
