from fastapi import FastAPI
import logging

from app.config import Settings
from app.routers import projects
from app.services.collaborators.analyzer import FileSystemAnalyzer
from app.services.collaborators.doc_generator import ReadmeGenerator, README_MODES
from app.services.collaborators.git_client import GitClient
from app.services.doc_cache import DocumentationCache
from app.services.job_manager import DocJobManager
from app.services.job_status import JobStatusService
from app.services.job_store import JobStore
from app.services.pipeline import StagePipeline

settings = Settings.from_env()

logging.basicConfig(level=getattr(logging, settings.log_level.upper(), logging.INFO))
logger = logging.getLogger(__name__)

app = FastAPI(
    title="GitGen Documentation API",
    description="Clone a repository, analyze it, and generate README documentation in the background",
    version="1.0.0"
)

# Initialize job store and pipeline
job_store = JobStore()
doc_generator = ReadmeGenerator(
    openai_api_key=settings.openai_api_key,
    openai_model=settings.openai_model
)
pipeline = StagePipeline(
    store=job_store,
    vcs=GitClient(kill_after_timeout=settings.acquisition_timeout),
    analyzer=FileSystemAnalyzer(),
    generator=doc_generator,
    cache=DocumentationCache(ttl=settings.cache_ttl, max_size=settings.cache_max_size),
    acquisition_timeout=settings.acquisition_timeout,
    work_root=settings.work_dir
)
job_manager = DocJobManager(
    store=job_store,
    pipeline=pipeline,
    accepted_schemes=settings.accepted_url_schemes,
    default_mode=settings.default_mode,
    max_concurrent_jobs=settings.max_concurrent_jobs
)
job_status = JobStatusService(job_store)

# Set services in routers
projects.set_job_manager(job_manager)
projects.set_job_status(job_status)

# Include routers
app.include_router(projects.router)


@app.get("/")
async def root():
    return {
        "status": "online",
        "service": settings.service_name,
        "version": "1.0.0",
        "endpoints": {
            "projects": "/projects",
            "progress": "/projects/{id}/progress",
            "readme_modes": "/readme-modes",
            "docs": "/docs"
        }
    }


@app.get("/health")
async def health_check():
    return {
        "status": "healthy",
        "ai": {
            "model": doc_generator.openai_model_name,
            "ready": doc_generator.client is not None
        },
        "jobs": projects.job_status.counts_by_status(),
        "acquisition_timeout": settings.acquisition_timeout
    }


@app.get("/readme-modes")
async def readme_modes():
    return {
        "modes": [{"id": mode_id, **details} for mode_id, details in README_MODES.items()],
        "defaultMode": settings.default_mode
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
