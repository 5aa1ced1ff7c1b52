"""Remote archive backends for published backups."""

from .base import ArchiveFile, BaseArchive
from .github import GitHubArchive

__all__ = ["ArchiveFile", "BaseArchive", "GitHubArchive"]
