from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional
import asyncio
import logging
import time

import httpx

from ..models.job import TERMINAL_STATUSES, COMPLETED
from ..services.errors import JobNotFoundError, JobValidationError, PollTimeout

logger = logging.getLogger(__name__)


@dataclass
class PollResult:
    """Terminal progress observed by the poller"""
    job_id: str
    status: str
    progress: Dict[str, Any]
    attempts: int
    elapsed: float

    @property
    def succeeded(self) -> bool:
        return self.status == COMPLETED


class ProjectPoller:
    """
    Watch a documentation job until it finishes, without holding a request open

    Polls ``GET /projects/{id}/progress`` every ``interval`` seconds and stops on
    a terminal status. Gives up with :class:`PollTimeout` once ``max_attempts``
    polls were made or ``failsafe`` seconds passed since submission, whichever
    comes first. Giving up never cancels the job on the server.

    ``clock`` and ``sleep`` are injectable so tests can drive time by hand.
    """

    def __init__(
        self,
        base_url: str = "http://localhost:8000",
        interval: float = 2.0,
        max_attempts: int = 150,
        request_timeout: float = 10.0,
        failsafe: float = 300.0,
        client: Optional[httpx.AsyncClient] = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.interval = interval
        self.max_attempts = max_attempts
        self.request_timeout = request_timeout
        self.failsafe = failsafe
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(base_url=base_url, timeout=request_timeout)
        self._clock = clock
        self._sleep = sleep

    @classmethod
    def from_settings(cls, settings, **kwargs) -> "ProjectPoller":
        params = dict(
            interval=settings.poll_interval,
            max_attempts=settings.poll_max_attempts,
            request_timeout=settings.poll_request_timeout,
            failsafe=settings.poll_failsafe,
        )
        params.update(kwargs)
        return cls(**params)

    async def __aenter__(self) -> "ProjectPoller":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def close(self) -> None:
        if self._owns_client:
            await self.client.aclose()

    async def submit(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        response = await self.client.post("/projects", json=payload, timeout=self.request_timeout)
        if response.status_code == 400:
            raise JobValidationError(response.json().get("detail", "Invalid submission"))
        response.raise_for_status()
        return response.json()

    async def fetch_progress(self, job_id: str) -> Dict[str, Any]:
        response = await self.client.get(f"/projects/{job_id}/progress", timeout=self.request_timeout)
        if response.status_code == 404:
            raise JobNotFoundError(job_id)
        response.raise_for_status()
        progress = response.json()
        if not isinstance(progress, dict):
            raise ValueError(f"Unexpected progress payload for project {job_id}: {progress!r:.100}")
        return progress

    async def wait_for(self, job_id: str, submitted_at: Optional[float] = None) -> PollResult:
        """
        Poll until the job is terminal

        Args:
            job_id: Job to watch
            submitted_at: ``clock()`` reading taken at submission; defaults to now

        Raises:
            PollTimeout: attempt budget or failsafe exhausted
            JobNotFoundError: the server does not know ``job_id``
        """
        started = self._clock() if submitted_at is None else submitted_at
        attempts = 0
        last_progress: Optional[Dict[str, Any]] = None

        while attempts < self.max_attempts:
            await self._sleep(self.interval)
            if self._clock() - started >= self.failsafe:
                logger.warning(f"Failsafe of {self.failsafe:g}s reached while waiting for project {job_id}")
                break

            attempts += 1
            try:
                progress = await self.fetch_progress(job_id)
            except (httpx.HTTPError, ValueError) as e:
                # Network failures and non-JSON bodies count as an attempt
                logger.warning(f"Poll {attempts}/{self.max_attempts} for project {job_id} failed: {e}")
                continue

            last_progress = progress
            logger.debug(f"Project {job_id}: {progress.get('status')} {progress.get('percentage')}%")
            if progress.get("status") in TERMINAL_STATUSES:
                return PollResult(
                    job_id=job_id,
                    status=progress["status"],
                    progress=progress,
                    attempts=attempts,
                    elapsed=self._clock() - started,
                )

        raise PollTimeout(job_id, attempts, self._clock() - started, last_progress)

    async def submit_and_wait(self, payload: Dict[str, Any]) -> PollResult:
        """Submit a repository and wait for its job; the failsafe starts at submission."""
        submitted_at = self._clock()
        created = await self.submit(payload)
        logger.info(f"Submitted project {created['id']}, polling every {self.interval:g}s")
        return await self.wait_for(created["id"], submitted_at=submitted_at)
