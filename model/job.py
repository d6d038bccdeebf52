from datetime import datetime, timezone
from enum import Enum
from typing import Any
from pydantic import BaseModel, ConfigDict, Field


class JobStatus(str, Enum):
    queued = "queued"
    processing = "processing"
    completed = "completed"
    failed = "failed"
    unknown = "unknown"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.completed, JobStatus.failed)


class Job(BaseModel):
    """
    Immutable status snapshot. The registry swaps in a new snapshot on every
    update, so a poller never observes a half-written job.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    status: JobStatus
    progress: int = Field(default=0, ge=0, le=100)
    message: str = ""
    data: dict[str, Any] | None = None
    updatedAt: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
