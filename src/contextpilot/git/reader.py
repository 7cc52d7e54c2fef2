"""GitPython-based implementation of VersionControl."""

import asyncio
from pathlib import Path

import git
import structlog

from .base import GitReaderError, GitStatus, RepositoryNotFoundError, VersionControl

logger = structlog.get_logger()


class GitPythonReader(VersionControl):
    """GitPython-based implementation of VersionControl.

    All GitPython calls are wrapped with run_in_executor since GitPython is
    a synchronous library.
    """

    def __init__(self, repo_path: str) -> None:
        """Initialize reader with repository path.

        Args:
            repo_path: Path inside the repository working tree

        Raises:
            RepositoryNotFoundError: If path is not inside a git repository
        """
        try:
            self.repo = git.Repo(repo_path, search_parent_directories=True)
        except (git.InvalidGitRepositoryError, git.NoSuchPathError) as e:
            raise RepositoryNotFoundError(
                f"Not a valid git repository: {repo_path}"
            ) from e
        if self.repo.working_tree_dir is None:
            raise RepositoryNotFoundError(f"Bare repositories are not supported: {repo_path}")
        self.repo_path = Path(self.repo.working_tree_dir).resolve()

    @classmethod
    def open(cls, repo_path: str) -> "GitPythonReader | None":
        """Return a reader, or None when the path is not under version control."""
        try:
            return cls(repo_path)
        except RepositoryNotFoundError:
            return None

    def is_repo(self) -> bool:
        return True

    def get_repo_root(self) -> str:
        return str(self.repo_path)

    async def get_status(self) -> GitStatus:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self._get_status_sync)

    def _get_status_sync(self) -> GitStatus:
        try:
            modified = [d.a_path for d in self.repo.index.diff(None) if d.a_path]
            untracked = list(self.repo.untracked_files)
            if self.repo.head.is_valid():
                staged = [d.a_path for d in self.repo.index.diff("HEAD") if d.a_path]
            else:
                # No commits yet: everything in the index is staged
                staged = [str(path) for path, _stage in self.repo.index.entries]
        except git.GitCommandError as e:
            raise GitReaderError(f"Git status failed: {e}") from e

        modified = sorted(set(modified) | set(untracked))
        staged = sorted(set(staged))
        return GitStatus(
            clean=not modified and not staged,
            modified=modified,
            staged=staged,
        )

    async def get_head_sha(self) -> str:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self._get_head_sha_sync)

    def _get_head_sha_sync(self) -> str:
        try:
            return self.repo.head.commit.hexsha
        except ValueError as e:
            # Raised by GitPython when HEAD points at an unborn branch
            raise GitReaderError(f"Cannot resolve HEAD: {e}") from e

    async def diff_files(self, old_sha: str, new_sha: str) -> list[str]:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self._diff_files_sync, old_sha, new_sha)

    def _diff_files_sync(self, old_sha: str, new_sha: str) -> list[str]:
        try:
            old = self.repo.commit(old_sha)
            new = self.repo.commit(new_sha)
            diff = old.diff(new)
        except (git.BadName, ValueError, git.GitCommandError) as e:
            raise GitReaderError(f"Git diff {old_sha}..{new_sha} failed: {e}") from e

        files: set[str] = set()
        for diff_item in diff:
            if diff_item.a_path:
                files.add(diff_item.a_path)
            if diff_item.b_path:
                files.add(diff_item.b_path)
        logger.debug("git.diff_files", old=old_sha[:8], new=new_sha[:8], count=len(files))
        return sorted(files)
