"""Test utilities: in-memory store and archive fakes."""

import hashlib
from typing import Dict, List, Optional, Sequence, Set, Tuple

from nano_kvbackup._storage.base import BaseKVStore
from nano_kvbackup.archive.base import ArchiveFile, BaseArchive
from nano_kvbackup.exceptions import ArchiveError, ArchiveNotFoundError, StoreError


class InMemoryKVStore(BaseKVStore):
    """Dict-backed store with Redis type semantics for the commands we use."""

    def __init__(self, keys_enabled: bool = True):
        self.strings: Dict[str, str] = {}
        self.hashes: Dict[str, Dict[str, str]] = {}
        self.sets: Dict[str, Set[str]] = {}
        self.zsets: Dict[str, Dict[str, float]] = {}
        self.lists: Dict[str, List[str]] = {}
        self.keys_enabled = keys_enabled
        self.extra_types: Dict[str, str] = {}
        self.fail_reads: Set[str] = set()
        self.fail_writes: Set[str] = set()
        self.writes: List[Tuple[str, str]] = []
        self.closed = False

    def _spaces(self):
        return (self.strings, self.hashes, self.sets, self.zsets, self.lists)

    def _all_keys(self) -> List[str]:
        keys = set(self.extra_types)
        for space in self._spaces():
            keys.update(space)
        return sorted(keys)

    def _drop(self, key: str) -> None:
        for space in self._spaces():
            space.pop(key, None)

    def _check_read(self, key: str) -> None:
        if key in self.fail_reads:
            raise StoreError(f"read of {key} failed")

    def _write(self, command: str, key: str) -> None:
        if key in self.fail_writes:
            raise StoreError(f"{command} {key} failed")
        self.writes.append((command, key))

    def _check_type(self, key: str, space: Dict) -> None:
        for other in self._spaces():
            if other is not space and key in other:
                raise StoreError("WRONGTYPE Operation against a key holding the wrong kind of value")

    # Reads

    async def list_all_keys(self) -> List[str]:
        if not self.keys_enabled:
            raise StoreError("ERR unknown command 'KEYS'")
        return self._all_keys()

    async def scan(self, cursor: str, count: int = 100) -> Tuple[str, List[str]]:
        keys = self._all_keys()
        start = int(cursor)
        end = start + count
        next_cursor = "0" if end >= len(keys) else str(end)
        return next_cursor, keys[start:end]

    async def type_of(self, key: str) -> str:
        if key in self.extra_types:
            return self.extra_types[key]
        for name, space in zip(("string", "hash", "set", "zset", "list"), self._spaces()):
            if key in space:
                return name
        return "none"

    async def get_string(self, key: str) -> Optional[str]:
        self._check_read(key)
        return self.strings.get(key)

    async def get_all_hash_fields(self, key: str) -> Dict[str, str]:
        self._check_read(key)
        return dict(self.hashes.get(key, {}))

    async def get_all_set_members(self, key: str) -> List[str]:
        self._check_read(key)
        return sorted(self.sets.get(key, set()))

    async def get_sorted_set_range_with_scores(self, key: str) -> List[Tuple[str, float]]:
        self._check_read(key)
        pairs = self.zsets.get(key, {}).items()
        return sorted(pairs, key=lambda pair: (pair[1], pair[0]))

    async def get_full_list(self, key: str) -> List[str]:
        self._check_read(key)
        return list(self.lists.get(key, []))

    # Writes

    async def set_string(self, key: str, value: str) -> None:
        self._write("SET", key)
        self._drop(key)
        self.strings[key] = value

    async def delete_key(self, key: str) -> None:
        self._write("DEL", key)
        self._drop(key)

    async def set_hash_fields(self, key: str, fields: Dict[str, str]) -> None:
        self._write("HSET", key)
        self._check_type(key, self.hashes)
        self.hashes.setdefault(key, {}).update(fields)

    async def add_set_members(self, key: str, members: Sequence[str]) -> None:
        self._write("SADD", key)
        self._check_type(key, self.sets)
        self.sets.setdefault(key, set()).update(members)

    async def add_sorted_set_members(self, key: str, pairs: Sequence[Tuple[str, float]]) -> None:
        self._write("ZADD", key)
        self._check_type(key, self.zsets)
        self.zsets.setdefault(key, {}).update(dict(pairs))

    async def append_list_items(self, key: str, items: Sequence[str]) -> None:
        self._write("RPUSH", key)
        self._check_type(key, self.lists)
        self.lists.setdefault(key, []).extend(items)

    async def set_if_absent(self, key: str, value: str, ttl_seconds: int) -> bool:
        if key in self._all_keys():
            return False
        self.strings[key] = value
        return True

    async def close(self) -> None:
        self.closed = True

    def snapshot(self) -> Dict[str, Tuple[str, object]]:
        """Comparable view of the whole store."""
        state = {}
        for key, value in self.strings.items():
            state[key] = ("string", value)
        for key, value in self.hashes.items():
            state[key] = ("hash", dict(value))
        for key, value in self.sets.items():
            state[key] = ("set", frozenset(value))
        for key, value in self.zsets.items():
            state[key] = ("zset", sorted(value.items(), key=lambda pair: (pair[1], pair[0])))
        for key, value in self.lists.items():
            state[key] = ("list", list(value))
        return state


def seed_mixed_store(store: InMemoryKVStore) -> InMemoryKVStore:
    """One key of each type."""
    store.strings["greeting"] = "hi"
    store.hashes["user:1"] = {"name": "Ann", "age": "30"}
    store.sets["tags"] = {"a", "b"}
    store.zsets["scores"] = {"x": 1.0, "y": 2.0}
    store.lists["log"] = ["e1", "e2"]
    return store


def _sha(content: str) -> str:
    return hashlib.sha1(content.encode("utf-8")).hexdigest()


class InMemoryArchive(BaseArchive):
    """Archive fake with GitHub-like SHA checks."""

    def __init__(self):
        self.files: Dict[str, Tuple[str, str]] = {}
        self.messages: List[str] = []
        self.fail_deletes: Set[str] = set()
        self.list_error: Optional[Exception] = None
        self.write_error: Optional[Exception] = None

    def add(self, path: str, content: str = "{}") -> None:
        self.files[path] = (content, _sha(content))

    async def get_file_content(self, path: str) -> Tuple[str, str]:
        if path not in self.files:
            raise ArchiveNotFoundError(path)
        return self.files[path]

    async def create_or_update_file(self, path, content, message, sha=None) -> None:
        if self.write_error is not None:
            raise self.write_error
        if path in self.files and self.files[path][1] != sha:
            raise ArchiveError(f"{path} does not match {sha}", status_code=409)
        self.files[path] = (content, _sha(content))
        self.messages.append(message)

    async def delete_file(self, path, message, sha) -> None:
        if path in self.fail_deletes:
            raise ArchiveError(f"DELETE {path} failed", status_code=500)
        if path not in self.files:
            raise ArchiveNotFoundError(path)
        if self.files[path][1] != sha:
            raise ArchiveError(f"{path} does not match {sha}", status_code=409)
        del self.files[path]
        self.messages.append(message)

    async def list_directory(self, path: str) -> List[ArchiveFile]:
        if self.list_error is not None:
            raise self.list_error
        prefix = path.rstrip("/") + "/"
        entries = [
            ArchiveFile(name=p[len(prefix):], path=p, sha=sha)
            for p, (_, sha) in sorted(self.files.items())
            if p.startswith(prefix) and "/" not in p[len(prefix):]
        ]
        if not entries:
            raise ArchiveNotFoundError(path)
        return entries
