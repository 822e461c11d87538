from typing import Dict, Iterator
import logging

from ..models.job import JobRecord, JobSummary
from .errors import JobNotFoundError

logger = logging.getLogger(__name__)


class JobStore:
    """In-memory registry of job records, addressed by id.

    Records are immutable; ``put`` swaps the whole record so readers never
    observe a half-applied update.
    """

    def __init__(self):
        self._records: Dict[str, JobRecord] = {}

    def put(self, record: JobRecord) -> None:
        self._records[record.id] = record

    def get(self, job_id: str) -> JobRecord:
        try:
            return self._records[job_id]
        except KeyError:
            raise JobNotFoundError(job_id) from None

    def list(self) -> Iterator[JobSummary]:
        for record in list(self._records.values()):
            yield JobSummary(
                id=record.id,
                project_name=record.input.project_name,
                repo_url=record.input.repo_url,
                status=record.status,
                mode=record.input.mode,
                created_at=record.created_at,
            )

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, job_id: str) -> bool:
        return job_id in self._records
