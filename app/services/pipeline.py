from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional
import asyncio
import logging
import shutil
import tempfile
from pathlib import Path

from ..models.job import JobError, JobInput, JobRecord, PROCESSING, COMPLETED, FAILED, utcnow
from .collaborators.base import VersionControlClient, RepositoryAnalyzer, DocumentationGenerator
from .doc_cache import DocumentationCache
from .errors import AcquisitionTimeout, StageFailure
from .job_store import JobStore

logger = logging.getLogger(__name__)


@dataclass
class PipelineContext:
    """Scratch state handed from stage to stage within one job"""
    job_id: str
    job_input: JobInput
    work_dir: Optional[str] = None
    cached: Optional[Dict[str, Any]] = None
    inventory: Optional[Dict[str, Any]] = None
    documentation: Optional[Dict[str, Any]] = None


@dataclass
class Stage:
    name: str
    start: int  # percentage on entry
    end: int  # percentage on success
    start_message: str
    done_message: str
    work: Callable[[PipelineContext], Awaitable[Any]]
    timeout: Optional[float] = None


class StagePipeline:
    """
    Run the fixed documentation stages for one job at a time, writing
    progress into the job store.

    Percentages come from fixed per-stage bands and never decrease.
    """

    def __init__(
        self,
        store: JobStore,
        vcs: VersionControlClient,
        analyzer: RepositoryAnalyzer,
        generator: DocumentationGenerator,
        cache: Optional[DocumentationCache] = None,
        acquisition_timeout: float = 60.0,
        work_root: Optional[str] = None
    ):
        self.store = store
        self.vcs = vcs
        self.analyzer = analyzer
        self.generator = generator
        self.cache = cache
        self.acquisition_timeout = acquisition_timeout
        self.work_root = work_root
        self.stages: List[Stage] = self._build_stages()

    def _build_stages(self) -> List[Stage]:
        return [
            Stage("initialize", 0, 5, "Initializing...", "Workspace ready", self._initialize),
            Stage("acquire", 5, 35, "Cloning repository...", "Repository cloned", self._acquire,
                  timeout=self.acquisition_timeout),
            Stage("analyze", 35, 65, "Analyzing repository structure...", "Repository analyzed", self._analyze),
            Stage("generate", 65, 95, "Generating documentation...", "Documentation generated", self._generate),
            Stage("finalize", 95, 100, "Finalizing...", "Documentation generated successfully", self._finalize),
        ]

    @property
    def stage_names(self) -> List[str]:
        return [stage.name for stage in self.stages]

    async def run(self, job_id: str) -> JobRecord:
        """
        Execute every stage in order and leave the record terminal

        Stage failures are recorded on the job, never raised.
        """
        record = self.store.get(job_id)
        ctx = PipelineContext(job_id=job_id, job_input=record.input)
        total = len(self.stages)
        output: Any = None

        try:
            for index, stage in enumerate(self.stages, start=1):
                changes = dict(
                    stage=stage.name,
                    stage_index=index,
                    total_stages=total,
                    percentage=stage.start,
                    message=stage.start_message,
                )
                if index == 1:
                    changes.update(status=PROCESSING, started_at=utcnow())
                self._update(job_id, **changes)
                logger.info(f"Job {job_id}: stage {index}/{total} '{stage.name}' started")

                try:
                    output = await self._execute(stage, ctx)
                except StageFailure as e:
                    return self._fail(job_id, e)
                except Exception as e:
                    return self._fail(job_id, StageFailure(stage.name, str(e) or e.__class__.__name__))

                if index < total:
                    self._update(job_id, percentage=stage.end, message=stage.done_message)

            final = self.stages[-1]
            logger.info(f"✅ Job {job_id} completed")
            return self._update(
                job_id,
                status=COMPLETED,
                percentage=100,
                message=final.done_message,
                result=output,
                completed_at=utcnow(),
            )
        finally:
            self._release(ctx)

    async def _execute(self, stage: Stage, ctx: PipelineContext) -> Any:
        if stage.timeout is None:
            return await stage.work(ctx)
        try:
            return await asyncio.wait_for(stage.work(ctx), timeout=stage.timeout)
        except asyncio.TimeoutError:
            raise AcquisitionTimeout(stage.name, stage.timeout) from None

    def _update(self, job_id: str, **changes) -> JobRecord:
        current = self.store.get(job_id)
        if current.is_terminal:
            raise RuntimeError(f"Job {job_id} is {current.status} and can no longer change")
        updated = current.evolve(**changes)
        self.store.put(updated)
        return updated

    def _fail(self, job_id: str, failure: StageFailure) -> JobRecord:
        logger.error(f"Job {job_id} failed in stage '{failure.stage}': {failure.cause}")
        return self._update(
            job_id,
            status=FAILED,
            message=f"Documentation generation failed during {failure.stage}",
            error=JobError(stage=failure.stage, cause=failure.cause, kind=failure.kind),
            completed_at=utcnow(),
        )

    def _release(self, ctx: PipelineContext) -> None:
        if ctx.work_dir and Path(ctx.work_dir).exists():
            shutil.rmtree(ctx.work_dir, ignore_errors=True)
            logger.debug(f"Removed working tree {ctx.work_dir}")
        ctx.work_dir = None

    # Stage bodies

    async def _initialize(self, ctx: PipelineContext) -> None:
        if self.cache is not None:
            ctx.cached = self.cache.get(ctx.job_input.repo_url, ctx.job_input.mode)
        if ctx.cached is None:
            ctx.work_dir = tempfile.mkdtemp(prefix=f"docgen-{ctx.job_id[:8]}-", dir=self.work_root)

    async def _acquire(self, ctx: PipelineContext) -> None:
        if ctx.cached is not None:
            return
        await self.vcs.clone(ctx.job_input.repo_url, ctx.work_dir)

    async def _analyze(self, ctx: PipelineContext) -> None:
        if ctx.cached is not None:
            return
        ctx.inventory = await self.analyzer.analyze(ctx.work_dir)

    async def _generate(self, ctx: PipelineContext) -> None:
        if ctx.cached is not None:
            return
        markdown = await self.generator.generate(ctx.inventory, ctx.job_input)
        inventory = ctx.inventory or {}
        ctx.documentation = {
            'summary': inventory.get('summary', {}),
            'files': inventory.get('files', []),
            'structure': inventory.get('structure', {}),
            'readme': inventory.get('readme'),
            'generatedReadme': {'markdown': markdown},
        }

    async def _finalize(self, ctx: PipelineContext) -> Dict[str, Any]:
        self._release(ctx)
        if ctx.cached is not None:
            return {**ctx.cached, 'cacheHit': True}
        if self.cache is not None:
            self.cache.set(ctx.job_input.repo_url, ctx.job_input.mode, ctx.documentation)
        return {**ctx.documentation, 'cacheHit': False}
