from typing import Optional


class JobValidationError(ValueError):
    """Submission rejected before any job record was created"""


class JobNotFoundError(KeyError):
    """No job record exists for the requested id"""

    def __init__(self, job_id: str):
        super().__init__(job_id)
        self.job_id = job_id

    def __str__(self) -> str:
        return f"Project not found: {self.job_id}"


class StageFailure(Exception):
    """A pipeline stage's collaborator call raised"""

    kind = "stage_failure"

    def __init__(self, stage: str, cause: str):
        super().__init__(f"Stage '{stage}' failed: {cause}")
        self.stage = stage
        self.cause = cause


class AcquisitionTimeout(StageFailure):
    """Working tree acquisition exceeded its ceiling"""

    kind = "acquisition_timeout"

    def __init__(self, stage: str, timeout: float):
        super().__init__(stage, f"Repository acquisition timed out after {timeout:g} seconds")
        self.timeout = timeout


class PollTimeout(Exception):
    """
    Client-side only: the poller gave up before seeing a terminal state.

    This says nothing about the job itself, which may still be running.
    """

    def __init__(self, job_id: str, attempts: int, elapsed: float, last_progress: Optional[dict] = None):
        super().__init__(
            f"Gave up waiting for project {job_id} after {attempts} polls ({elapsed:.1f}s); "
            f"the job may still be running"
        )
        self.job_id = job_id
        self.attempts = attempts
        self.elapsed = elapsed
        self.last_progress = last_progress
