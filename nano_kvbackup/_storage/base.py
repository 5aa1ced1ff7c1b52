"""Capability interface for key-value stores consumed by backup and restore."""

from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Sequence, Tuple


class BaseKVStore(ABC):
    """Minimal set of store commands the backup toolkit needs.

    Implementations translate backend failures into ``StoreError``. Scan
    cursors are always strings; ``"0"`` is both the start and end sentinel.
    """

    @abstractmethod
    async def list_all_keys(self) -> List[str]:
        """Return every key in one call (``KEYS *``)."""

    @abstractmethod
    async def scan(self, cursor: str, count: int = 100) -> Tuple[str, List[str]]:
        """Return the next cursor and one page of keys."""

    @abstractmethod
    async def type_of(self, key: str) -> str:
        """Return the store type name of ``key`` (``none`` when absent)."""

    @abstractmethod
    async def get_string(self, key: str) -> Optional[str]:
        ...

    @abstractmethod
    async def get_all_hash_fields(self, key: str) -> Dict[str, str]:
        ...

    @abstractmethod
    async def get_all_set_members(self, key: str) -> List[str]:
        ...

    @abstractmethod
    async def get_sorted_set_range_with_scores(self, key: str) -> List[Tuple[str, float]]:
        """Return ``(member, score)`` pairs ordered by ascending score."""

    @abstractmethod
    async def get_full_list(self, key: str) -> List[str]:
        ...

    @abstractmethod
    async def set_string(self, key: str, value: str) -> None:
        ...

    @abstractmethod
    async def delete_key(self, key: str) -> None:
        ...

    @abstractmethod
    async def set_hash_fields(self, key: str, fields: Dict[str, str]) -> None:
        ...

    @abstractmethod
    async def add_set_members(self, key: str, members: Sequence[str]) -> None:
        ...

    @abstractmethod
    async def add_sorted_set_members(self, key: str, pairs: Sequence[Tuple[str, float]]) -> None:
        """Add ``(member, score)`` pairs."""

    @abstractmethod
    async def append_list_items(self, key: str, items: Sequence[str]) -> None:
        """Append items to the tail of the list, preserving order."""

    @abstractmethod
    async def set_if_absent(self, key: str, value: str, ttl_seconds: int) -> bool:
        """``SET key value NX EX ttl``; True when the key was written."""

    async def close(self) -> None:
        """Release connections held by the store client."""
        pass

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()
