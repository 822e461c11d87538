from typing import Optional, Dict, Any
from datetime import datetime, timezone
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


QUEUED = "queued"
PROCESSING = "processing"
COMPLETED = "completed"
FAILED = "failed"

TERMINAL_STATUSES = frozenset({COMPLETED, FAILED})


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class _CamelModel(BaseModel):
    # Records are replaced whole, never edited in place
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


class JobInput(_CamelModel):
    repo_url: str
    project_name: str
    description: str = ""
    mode: str = "v2"


class JobError(_CamelModel):
    stage: str
    cause: str
    kind: str = "stage_failure"  # stage_failure, acquisition_timeout


class JobRecord(_CamelModel):
    id: str
    status: str = QUEUED  # queued, processing, completed, failed
    stage: Optional[str] = None
    stage_index: int = 0
    total_stages: int = 0
    percentage: int = 0
    message: str = "Waiting to start"
    input: JobInput
    result: Optional[Dict[str, Any]] = None
    error: Optional[JobError] = None
    created_at: datetime = Field(default_factory=utcnow)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def evolve(self, **changes) -> "JobRecord":
        """Return a new record with the given fields replaced"""
        return self.model_copy(update=changes)


class JobSummary(_CamelModel):
    id: str
    project_name: str
    repo_url: str
    status: str
    mode: str
    created_at: datetime


class ProgressSnapshot(_CamelModel):
    status: str
    stage: Optional[str] = None
    stage_index: int = 0
    total_stages: int = 0
    percentage: int = 0
    message: str = ""
    estimated_time_remaining: Optional[float] = Field(
        None, description="Advisory seconds remaining, extrapolated from elapsed time"
    )
