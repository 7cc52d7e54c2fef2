"""Version-control collaborator interface and types."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field

from contextpilot.errors import ContextPilotError


class GitReaderError(ContextPilotError):
    """Base exception for version-control errors."""

    pass


class RepositoryNotFoundError(GitReaderError):
    """Repository path is not a valid git repository."""

    pass


@dataclass
class GitStatus:
    """Working-tree status."""

    clean: bool
    modified: list[str] = field(default_factory=list)  # Relative to repo root
    staged: list[str] = field(default_factory=list)  # Relative to repo root

    @property
    def changed(self) -> list[str]:
        """Modified and staged paths, deduplicated, in first-seen order."""
        return list(dict.fromkeys([*self.modified, *self.staged]))


class VersionControl(ABC):
    """What the autopilot needs from a repository for commit polling."""

    @abstractmethod
    def is_repo(self) -> bool:
        """Whether the workspace is under version control."""
        pass

    @abstractmethod
    def get_repo_root(self) -> str:
        """Absolute repository root path."""
        pass

    @abstractmethod
    async def get_status(self) -> GitStatus:
        """Current working-tree status.

        Raises:
            GitReaderError: If status cannot be read
        """
        pass

    @abstractmethod
    async def get_head_sha(self) -> str:
        """Get the current HEAD commit SHA.

        Raises:
            GitReaderError: If HEAD cannot be resolved (e.g., empty repo)
        """
        pass

    @abstractmethod
    async def diff_files(self, old_sha: str, new_sha: str) -> list[str]:
        """Paths (relative to repo root) changed between two revisions.

        Raises:
            GitReaderError: If either revision cannot be resolved
        """
        pass
