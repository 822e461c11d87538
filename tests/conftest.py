import pytest
import asyncio
import sys
from pathlib import Path
from unittest.mock import patch
from fastapi.testclient import TestClient

# Add project root to Python path to allow importing 'app'
sys.path.append(str(Path(__file__).parent.parent))

from app.services.collaborators.analyzer import FileSystemAnalyzer
from app.services.collaborators.base import VersionControlClient, DocumentationGenerator
from app.services.collaborators.doc_generator import ReadmeGenerator
from app.services.job_manager import DocJobManager
from app.services.job_status import JobStatusService
from app.services.job_store import JobStore
from app.services.pipeline import StagePipeline


SAMPLE_FILES = {
    "README.md": "# Sample\n\nA sample repository.\n",
    "src/app.py": "class Service:\n    def run(self):\n        pass\n\n\ndef main():\n    Service().run()\n",
    "web/index.js": "class Widget {}\nfunction render() {}\nconst mount = (el) => el;\n",
}


class FakeVersionControl(VersionControlClient):
    """Writes a small fixed tree instead of cloning"""

    def __init__(self, files=None, delay: float = 0.0, hang: bool = False, error: Exception = None):
        super().__init__("FakeVersionControl")
        self.files = SAMPLE_FILES if files is None else files
        self.delay = delay
        self.hang = hang
        self.error = error
        self.calls = []
        self.destinations = []

    async def clone(self, repo_url: str, destination: str) -> None:
        self.calls.append(repo_url)
        self.destinations.append(destination)
        if self.hang:
            await asyncio.Event().wait()
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        for rel_path, content in self.files.items():
            target = Path(destination) / rel_path
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(content)


class BlockingGenerator(DocumentationGenerator):
    """Waits on an event before returning, to hold a job in 'generate'"""

    def __init__(self, markdown: str = "# Generated\n"):
        super().__init__("BlockingGenerator")
        self.release = asyncio.Event()
        self.markdown = markdown

    async def generate(self, inventory, job_input) -> str:
        await self.release.wait()
        return self.markdown


@pytest.fixture
def job_store():
    return JobStore()


@pytest.fixture
def fake_vcs():
    return FakeVersionControl()


@pytest.fixture
def template_generator():
    return ReadmeGenerator(openai_api_key=None)


@pytest.fixture
def make_pipeline(job_store, fake_vcs, template_generator):
    """Factory for pipelines over the shared store; override any collaborator"""
    def _make(**overrides):
        params = dict(
            store=job_store,
            vcs=fake_vcs,
            analyzer=FileSystemAnalyzer(),
            generator=template_generator,
            acquisition_timeout=5.0,
        )
        params.update(overrides)
        return StagePipeline(**params)
    return _make


@pytest.fixture
def make_manager(job_store, make_pipeline):
    def _make(pipeline=None, **kwargs):
        return DocJobManager(store=job_store, pipeline=pipeline or make_pipeline(), **kwargs)
    return _make


@pytest.fixture
def job_manager(make_manager):
    return make_manager()


@pytest.fixture
def status_service(job_store):
    return JobStatusService(job_store)


@pytest.fixture
def api_services(job_manager, status_service):
    """Point the projects router at isolated services for the test's duration"""
    with patch("app.routers.projects.job_manager", job_manager), \
            patch("app.routers.projects.job_status", status_service):
        yield job_manager, status_service


@pytest.fixture
def test_client(api_services):
    """Create FastAPI test client"""
    from app.main import app
    return TestClient(app)
