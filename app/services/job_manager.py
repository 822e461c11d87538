import asyncio
import uuid
import logging
from typing import Any, Dict, Optional, Sequence

from ..models.job import JobError, JobInput, JobRecord, FAILED, utcnow
from .collaborators.doc_generator import normalize_mode
from .errors import JobValidationError
from .job_store import JobStore
from .pipeline import StagePipeline

logger = logging.getLogger(__name__)


def derive_project_name(repo_url: str) -> str:
    """Last path segment of a repository URL, minus any ``.git`` suffix"""
    tail = repo_url.strip().rstrip('/')
    for separator in ('/', ':'):
        tail = tail.rsplit(separator, 1)[-1]
    if tail.endswith('.git'):
        tail = tail[:-len('.git')]
    return tail.strip()


def _text(value: Any, field: str) -> str:
    if value is None:
        return ''
    if not isinstance(value, str):
        raise JobValidationError(f"{field} must be a string")
    return value


class DocJobManager:
    """Accept documentation jobs and run each one's pipeline in the background."""

    def __init__(
        self,
        store: JobStore,
        pipeline: StagePipeline,
        accepted_schemes: Sequence[str] = ("https://", "git@"),
        default_mode: str = "v2",
        max_concurrent_jobs: int = 0
    ):
        self.store = store
        self.pipeline = pipeline
        self.accepted_schemes = tuple(accepted_schemes)
        self.default_mode = default_mode
        self._slots = asyncio.Semaphore(max_concurrent_jobs) if max_concurrent_jobs > 0 else None
        self._tasks: Dict[str, asyncio.Task] = {}

    def validate(
        self,
        repo_url: Optional[Any],
        project_name: Optional[Any] = None,
        description: Optional[Any] = None,
        mode: Optional[Any] = None
    ) -> JobInput:
        repo_url = _text(repo_url, "repoUrl")
        project_name = _text(project_name, "projectName")
        description = _text(description, "description")
        if isinstance(mode, int) and not isinstance(mode, bool):
            mode = str(mode)
        mode = _text(mode, "mode")

        repo_url = repo_url.strip()
        if not repo_url:
            raise JobValidationError("Repository URL is required")
        if not repo_url.startswith(self.accepted_schemes):
            raise JobValidationError(
                f"Invalid repository URL format. Use one of: {', '.join(self.accepted_schemes)}"
            )

        name = (project_name or '').strip() or derive_project_name(repo_url)
        if not name:
            raise JobValidationError(f"Could not derive a project name from {repo_url}")

        try:
            normalized_mode = normalize_mode(mode, self.default_mode)
        except ValueError as e:
            raise JobValidationError(str(e)) from e

        return JobInput(
            repo_url=repo_url,
            project_name=name,
            description=(description or '').strip(),
            mode=normalized_mode,
        )

    async def submit(
        self,
        repo_url: Optional[str],
        project_name: Optional[str] = None,
        description: Optional[str] = None,
        mode: Optional[str] = None
    ) -> str:
        """Validate, record as queued, schedule the pipeline and return the job id without waiting."""
        job_input = self.validate(repo_url, project_name, description, mode)
        job_id = str(uuid.uuid4())
        self.store.put(JobRecord(
            id=job_id,
            input=job_input,
            total_stages=len(self.pipeline.stages),
        ))
        logger.info(f"Queued job {job_id} for {job_input.repo_url} ({job_input.mode})")

        task = asyncio.create_task(self._runner(job_id), name=f"docjob-{job_id}")
        self._tasks[job_id] = task
        task.add_done_callback(lambda _: self._tasks.pop(job_id, None))
        return job_id

    async def _runner(self, job_id: str) -> None:
        try:
            if self._slots is None:
                await self.pipeline.run(job_id)
            else:
                async with self._slots:
                    await self.pipeline.run(job_id)
        except Exception as e:
            # Only reached on a bug outside any stage body
            logger.exception(f"Job {job_id} crashed: {e}")
            self._mark_crashed(job_id, e)

    def _mark_crashed(self, job_id: str, error: Exception) -> None:
        record = self.store.get(job_id)
        if record.is_terminal:
            return
        self.store.put(record.evolve(
            status=FAILED,
            message="Documentation generation failed",
            error=JobError(
                stage=record.stage or self.pipeline.stage_names[0],
                cause=str(error) or error.__class__.__name__,
            ),
            completed_at=utcnow(),
        ))

    def is_running(self, job_id: str) -> bool:
        task = self._tasks.get(job_id)
        return task is not None and not task.done()

    async def join(self, job_id: str) -> JobRecord:
        """Wait for one job's pipeline to settle and return its final record"""
        task = self._tasks.get(job_id)
        if task is not None:
            await asyncio.shield(task)
        return self.store.get(job_id)

    async def drain(self) -> None:
        tasks = list(self._tasks.values())
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
