from datetime import datetime
from typing import Callable, Dict, List, Optional

from ..models.job import JobRecord, JobSummary, ProgressSnapshot, PROCESSING, utcnow
from .job_store import JobStore


def estimate_time_remaining(record: JobRecord, now: datetime) -> Optional[float]:
    """Seconds left, extrapolated from elapsed time per percentage point. Advisory only."""
    if record.status != PROCESSING or record.started_at is None or record.percentage <= 0:
        return None
    elapsed = (now - record.started_at).total_seconds()
    if elapsed <= 0:
        return None
    per_point = elapsed / record.percentage
    return round(per_point * (100 - record.percentage), 1)


class JobStatusService:
    """Read-only view over the job store for status queries"""

    def __init__(self, store: JobStore, clock: Callable[[], datetime] = utcnow):
        self.store = store
        self._clock = clock

    def get_full(self, job_id: str) -> JobRecord:
        return self.store.get(job_id)

    def get_progress(self, job_id: str) -> ProgressSnapshot:
        record = self.store.get(job_id)
        return ProgressSnapshot(
            status=record.status,
            stage=record.stage,
            stage_index=record.stage_index,
            total_stages=record.total_stages,
            percentage=record.percentage,
            message=record.message,
            estimated_time_remaining=estimate_time_remaining(record, self._clock()),
        )

    def list_projects(self) -> List[JobSummary]:
        return list(self.store.list())

    def counts_by_status(self) -> Dict[str, int]:
        counts = {}
        for summary in self.store.list():
            counts[summary.status] = counts.get(summary.status, 0) + 1
        return counts
