from typing import Optional
import logging
import os

from git import Repo, GitCommandError

from .base import VersionControlClient

logger = logging.getLogger(__name__)


class GitClient(VersionControlClient):
    """Shallow-clone public Git repositories with GitPython"""

    def __init__(self, kill_after_timeout: Optional[float] = 180, depth: int = 1):
        super().__init__("GitClient")
        self.kill_after_timeout = kill_after_timeout
        self.depth = depth

    async def clone(self, repo_url: str, destination: str) -> None:
        """
        Clone a repository into an existing, empty directory

        Args:
            repo_url: Git repository URL (HTTPS or SSH)
            destination: Target directory
        """
        await self.run_clone(self._clone_sync, repo_url, destination)

    def _clone_sync(self, repo_url: str, destination: str) -> None:
        logger.info(f"Cloning repository {repo_url} to {destination}")

        # Keep git from hanging on a credentials prompt
        clone_env = os.environ.copy()
        clone_env['GIT_TERMINAL_PROMPT'] = '0'

        clone_params = {
            "url": repo_url,
            "to_path": destination,
            "depth": self.depth,
            "env": clone_env
        }
        # kill_after_timeout is not supported on Windows
        if self.kill_after_timeout and os.name != 'nt':
            clone_params["kill_after_timeout"] = self.kill_after_timeout

        try:
            Repo.clone_from(**clone_params)
        except GitCommandError as e:
            raise ValueError(self._describe_error(repo_url, e)) from e

        logger.info(f"Successfully cloned repository {repo_url}")

    @staticmethod
    def _describe_error(repo_url: str, error: GitCommandError) -> str:
        error_msg = str(error).lower()
        if 'timeout' in error_msg or 'timed out' in error_msg:
            return f"Repository clone timed out. The repository may be too large: {repo_url}"
        if 'authentication' in error_msg or 'permission' in error_msg or '403' in error_msg:
            return f"Authentication required for repository: {repo_url}. Only public repositories are supported."
        if 'not found' in error_msg or '404' in error_msg or 'repository' in error_msg:
            return f"Repository not found or inaccessible: {repo_url}. Check if the URL is correct and the repo is public."
        logger.error(f"Git clone error: {error}")
        return f"Failed to clone repository: {str(error)[:200]}"
