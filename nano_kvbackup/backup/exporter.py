"""Key enumeration and export of the whole store into a backup document."""

import asyncio
from typing import Any, Iterable, List, Optional, Tuple

from .codec import encode, place, read_value
from .models import BackupDocument, TypeTag
from .._storage.base import BaseKVStore
from ..exceptions import CodecError, StoreError
from .._utils import batched, logger

SCAN_START = "0"


class KeyEnumerator:
    """List every key in the store.

    ``KEYS *`` is tried first. Stores that disable it fall back to cursor
    scanning, which stops when the cursor returns to ``"0"`` or after
    ``max_iterations`` pages, whichever comes first.
    """

    def __init__(
        self,
        store: BaseKVStore,
        scan_count: int = 100,
        max_iterations: int = 1000,
        exclude: Iterable[str] = (),
    ):
        self.store = store
        self.scan_count = scan_count
        self.max_iterations = max_iterations
        self.exclude = set(exclude)

    async def list_keys(self) -> List[str]:
        try:
            keys = await self.store.list_all_keys()
        except StoreError as e:
            logger.warning(f"KEYS command failed ({e}), trying SCAN...")
            keys = await self._scan_keys()

        return [key for key in dict.fromkeys(keys) if key not in self.exclude]

    async def _scan_keys(self) -> List[str]:
        seen = {}
        cursor = SCAN_START
        iterations = 0

        while True:
            cursor, page = await self.store.scan(cursor, self.scan_count)
            seen.update(dict.fromkeys(page))
            iterations += 1

            if cursor == SCAN_START:
                break
            if iterations >= self.max_iterations:
                logger.warning(
                    f"SCAN reached max iterations ({self.max_iterations}), "
                    f"stopping with {len(seen)} keys"
                )
                break

        return list(seen)


class BackupExporter:
    """Read keys in bounded concurrent batches and build a backup document."""

    def __init__(
        self,
        store: BaseKVStore,
        batch_size: int = 10,
        source: str = "nano-kvbackup",
        enumerator: Optional[KeyEnumerator] = None,
    ):
        self.store = store
        self.batch_size = batch_size
        self.source = source
        self.enumerator = enumerator or KeyEnumerator(store)
        self.failed_keys: List[str] = []
        self.skipped_keys: List[str] = []

    async def export(self, keys: Optional[List[str]] = None) -> BackupDocument:
        """Export ``keys`` (or every key in the store) into a new document."""
        if keys is None:
            keys = await self.enumerator.list_keys()

        document = BackupDocument.new(source=self.source)

        for batch in batched(keys, self.batch_size):
            results = await asyncio.gather(*(self._export_key(key) for key in batch))
            for result in results:
                if result is not None:
                    key, tag, portable = result
                    place(document, key, tag, portable)

        counts = document.type_counts()
        for tag in TypeTag:
            logger.info(f"Exported: {counts[tag.value]} {tag.value} keys")
        if self.failed_keys:
            logger.warning(f"Failed to export {len(self.failed_keys)} key(s)")

        return document

    async def _export_key(self, key: str) -> Optional[Tuple[str, TypeTag, Any]]:
        try:
            type_name = await self.store.type_of(key)
            tag = TypeTag.parse(type_name)
            if tag is None:
                if type_name == "none":
                    logger.warning(f"Key disappeared before export: {key}")
                else:
                    logger.warning(f'Unknown type "{type_name}" for key: {key}')
                self.skipped_keys.append(key)
                return None

            raw = await read_value(self.store, key, tag)
            if raw is None:
                logger.warning(f"Key disappeared before export: {key}")
                self.skipped_keys.append(key)
                return None

            logger.debug(f"[{tag.value}] {key}")
            return key, tag, encode(key, tag, raw)

        except (StoreError, CodecError) as e:
            logger.warning(f'Failed to export key "{key}": {e}')
            self.failed_keys.append(key)
            return None
