from fastapi import APIRouter, HTTPException
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from typing import Any, List, Optional
import logging

from ..models.job import JobRecord, JobSummary, ProgressSnapshot, COMPLETED
from ..services.errors import JobNotFoundError, JobValidationError

router = APIRouter(prefix="/projects", tags=["projects"])
logger = logging.getLogger(__name__)

job_manager = None
job_status = None


def set_job_manager(manager):
    """Set the job manager used for submissions"""
    global job_manager
    job_manager = manager


def set_job_status(status_service):
    """Set the read-only status service"""
    global job_status
    job_status = status_service


class ProjectCreateRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    # Loosely typed so missing or mistyped fields are reported as 400 by the manager, not 422
    repo_url: Optional[Any] = Field(None, description="Repository URL (https:// or git@)")
    project_name: Optional[Any] = Field(None, description="Display name; derived from the URL if omitted")
    description: Optional[Any] = Field(None, description="Free-text project description")
    mode: Optional[Any] = Field(None, description='README mode: "v1" comprehensive, "v2" beginner-friendly')


class ProjectCreateResponse(BaseModel):
    id: str
    status: str
    mode: str
    message: str


def _not_found(job_id: str) -> HTTPException:
    return HTTPException(status_code=404, detail=f"Project not found: {job_id}")


@router.post("", response_model=ProjectCreateResponse)
async def create_project(request: ProjectCreateRequest):
    """
    Submit a repository for documentation generation

    Returns immediately; poll ``/projects/{id}/progress`` for the outcome.
    """
    try:
        job_id = await job_manager.submit(
            repo_url=request.repo_url,
            project_name=request.project_name,
            description=request.description,
            mode=request.mode,
        )
    except JobValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))

    record = job_status.get_full(job_id)
    return ProjectCreateResponse(
        id=job_id,
        status="processing",
        mode=record.input.mode,
        message="Project added to processing queue",
    )


@router.get("", response_model=List[JobSummary])
async def list_projects():
    """List submitted projects without their documentation payloads"""
    return job_status.list_projects()


@router.get("/{job_id}", response_model=JobRecord)
async def get_project(job_id: str):
    try:
        return job_status.get_full(job_id)
    except JobNotFoundError:
        raise _not_found(job_id)


@router.get("/{job_id}/progress", response_model=ProgressSnapshot)
async def get_project_progress(job_id: str):
    """Lightweight progress snapshot, safe to poll frequently"""
    try:
        return job_status.get_progress(job_id)
    except JobNotFoundError:
        raise _not_found(job_id)


@router.get("/{job_id}/readme", response_class=PlainTextResponse)
async def get_project_readme(job_id: str):
    try:
        record = job_status.get_full(job_id)
    except JobNotFoundError:
        raise _not_found(job_id)

    if record.status != COMPLETED or not record.result:
        raise HTTPException(status_code=400, detail="Project documentation not ready yet")

    generated = record.result.get('generatedReadme') or {}
    markdown = generated.get('markdown') or f"# {record.input.project_name}\n\nNo README available.\n"
    return PlainTextResponse(markdown, media_type="text/markdown")
