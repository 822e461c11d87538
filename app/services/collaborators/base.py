from abc import ABC, abstractmethod
from typing import Callable, Dict, Any
import asyncio
import logging
import shutil
import threading

logger = logging.getLogger(__name__)


class BaseCollaborator(ABC):
    """Common base for the external services the pipeline calls"""

    def __init__(self, collaborator_name: str):
        self.collaborator_name = collaborator_name
        logger.info(f"Initialized {collaborator_name} collaborator")


class VersionControlClient(BaseCollaborator):
    """Materializes a working tree from a repository URL"""

    @abstractmethod
    async def clone(self, repo_url: str, destination: str) -> None:
        """
        Clone ``repo_url`` into ``destination``

        Raises:
            ValueError: repository could not be cloned
        """
        pass

    async def run_clone(self, clone_sync: Callable[[str, str], None], repo_url: str, destination: str) -> None:
        """
        Run a blocking clone in a worker thread

        Cancelling the await does not stop the thread. If the caller stops
        waiting, the thread removes ``destination`` itself once the clone
        returns, so nothing it wrote after the caller's cleanup survives.
        """
        abandoned = threading.Event()

        def _target():
            try:
                clone_sync(repo_url, destination)
            finally:
                if abandoned.is_set():
                    shutil.rmtree(destination, ignore_errors=True)
                    logger.info(f"Removed abandoned clone of {repo_url} at {destination}")

        try:
            await asyncio.to_thread(_target)
        except asyncio.CancelledError:
            abandoned.set()
            logger.warning(f"Stopped waiting for clone of {repo_url}; cleanup deferred to the worker thread")
            raise


class RepositoryAnalyzer(BaseCollaborator):
    """Turns a working tree into a file inventory"""

    @abstractmethod
    async def analyze(self, path: str) -> Dict[str, Any]:
        """
        Scan a working tree

        Returns:
            {'files': [...], 'structure': {...}, 'summary': {...}, 'readme': {...} | None}
        """
        pass


class DocumentationGenerator(BaseCollaborator):
    """Produces markdown documentation from an inventory"""

    @abstractmethod
    async def generate(self, inventory: Dict[str, Any], job_input) -> str:
        """Return the generated README markdown"""
        pass

    def validate_output(self, markdown: str) -> str:
        if not isinstance(markdown, str) or not markdown.strip():
            raise ValueError(f"{self.collaborator_name} returned empty documentation")
        return markdown
