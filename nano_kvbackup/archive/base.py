"""Capability interface for the remote backup archive."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional, Tuple


@dataclass(frozen=True)
class ArchiveFile:
    """One entry of an archive directory listing."""
    name: str
    path: str
    sha: str


class BaseArchive(ABC):
    """Versioned file store addressed by repository-relative paths.

    ``sha`` is the content-version handle required to update or delete an
    existing file. Missing paths raise ``ArchiveNotFoundError``.
    """

    @abstractmethod
    async def get_file_content(self, path: str) -> Tuple[str, str]:
        """Return ``(content, sha)`` for ``path``."""

    @abstractmethod
    async def create_or_update_file(
        self,
        path: str,
        content: str,
        message: str,
        sha: Optional[str] = None,
    ) -> None:
        ...

    @abstractmethod
    async def delete_file(self, path: str, message: str, sha: str) -> None:
        ...

    @abstractmethod
    async def list_directory(self, path: str) -> List[ArchiveFile]:
        ...

    async def close(self) -> None:
        pass

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()
