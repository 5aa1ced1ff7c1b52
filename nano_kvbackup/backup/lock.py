"""Advisory lock guarding backup and restore runs against one store."""

import os
import socket
import uuid

from .._storage.base import BaseKVStore
from ..exceptions import LockError, StoreError
from .._utils import logger


class AdvisoryLock:
    """Well-known store key set with ``NX`` and a TTL.

    The token identifies the holder; release only deletes the key while it
    still holds our token. A crashed run leaves the lock to expire on its own.
    """

    def __init__(self, store: BaseKVStore, key: str, ttl_seconds: int = 600):
        self.store = store
        self.key = key
        self.ttl_seconds = ttl_seconds
        self.token = f"{socket.gethostname()}:{os.getpid()}:{uuid.uuid4().hex}"
        self._held = False

    async def acquire(self) -> None:
        if not await self.store.set_if_absent(self.key, self.token, self.ttl_seconds):
            holder = await self.store.get_string(self.key)
            raise LockError(
                f"Another backup or restore run holds {self.key} ({holder}); "
                f"retry later or wait for it to expire"
            )
        self._held = True
        logger.debug(f"Acquired lock {self.key} for {self.ttl_seconds}s")

    async def release(self) -> None:
        if not self._held:
            return
        self._held = False

        current = await self.store.get_string(self.key)
        if current != self.token:
            logger.warning(f"Lock {self.key} expired or was taken over before release")
            return
        await self.store.delete_key(self.key)
        logger.debug(f"Released lock {self.key}")

    async def __aenter__(self):
        await self.acquire()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        try:
            await self.release()
        except StoreError as e:
            logger.warning(f"Could not release lock {self.key}, it expires in {self.ttl_seconds}s: {e}")
