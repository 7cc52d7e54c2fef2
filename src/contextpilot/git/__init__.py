"""Version-control integration used for commit polling."""

from .base import GitReaderError, GitStatus, RepositoryNotFoundError, VersionControl
from .reader import GitPythonReader

__all__ = [
    "GitPythonReader",
    "GitReaderError",
    "GitStatus",
    "RepositoryNotFoundError",
    "VersionControl",
]
