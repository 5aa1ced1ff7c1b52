"""Upstash REST key-value store backend."""

from typing import Any, Dict, List, Optional, Sequence, Tuple

import httpx
from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type,
)

from .base import BaseKVStore
from ..exceptions import StoreError
from .._utils import logger


class UpstashRestStore(BaseKVStore):
    """Key-value store speaking the Upstash REST protocol.

    Every command is POSTed to the endpoint root as a JSON array
    (``["SET", "key", "value"]``) and answered with ``{"result": ...}`` or
    ``{"error": "..."}``.
    """

    def __init__(
        self,
        url: str,
        token: str,
        timeout: float = 30.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.url = url.rstrip("/")
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._headers = {"Authorization": f"Bearer {token}"}

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        retry=retry_if_exception_type(httpx.TransportError),
        reraise=True,
    )
    async def _post(self, command: List[Any]) -> httpx.Response:
        return await self._client.post(self.url, json=command, headers=self._headers)

    async def execute(self, *command: Any) -> Any:
        """Run a single command and return its ``result``."""
        name = str(command[0]).upper()
        try:
            response = await self._post([str(part) for part in command])
        except httpx.HTTPError as e:
            raise StoreError(f"{name} failed: {e}") from e

        try:
            payload = response.json()
        except ValueError:
            payload = {}

        if response.status_code >= 400 or "error" in payload:
            message = payload.get("error") or response.text
            raise StoreError(f"{name} failed ({response.status_code}): {message}")

        logger.debug(f"Upstash {name} ok")
        return payload.get("result")

    async def list_all_keys(self) -> List[str]:
        return list(await self.execute("KEYS", "*") or [])

    async def scan(self, cursor: str, count: int = 100) -> Tuple[str, List[str]]:
        result = await self.execute("SCAN", cursor, "COUNT", count)
        next_cursor, keys = result
        return str(next_cursor), list(keys or [])

    async def type_of(self, key: str) -> str:
        return str(await self.execute("TYPE", key))

    async def get_string(self, key: str) -> Optional[str]:
        return await self.execute("GET", key)

    async def get_all_hash_fields(self, key: str) -> Dict[str, str]:
        flat = await self.execute("HGETALL", key) or []
        return dict(zip(flat[0::2], flat[1::2]))

    async def get_all_set_members(self, key: str) -> List[str]:
        return list(await self.execute("SMEMBERS", key) or [])

    async def get_sorted_set_range_with_scores(self, key: str) -> List[Tuple[str, float]]:
        flat = await self.execute("ZRANGE", key, 0, -1, "WITHSCORES") or []
        return [(member, float(score)) for member, score in zip(flat[0::2], flat[1::2])]

    async def get_full_list(self, key: str) -> List[str]:
        return list(await self.execute("LRANGE", key, 0, -1) or [])

    async def set_string(self, key: str, value: str) -> None:
        await self.execute("SET", key, value)

    async def delete_key(self, key: str) -> None:
        await self.execute("DEL", key)

    async def set_hash_fields(self, key: str, fields: Dict[str, str]) -> None:
        args: List[Any] = []
        for field_name, value in fields.items():
            args.extend([field_name, value])
        await self.execute("HSET", key, *args)

    async def add_set_members(self, key: str, members: Sequence[str]) -> None:
        await self.execute("SADD", key, *members)

    async def add_sorted_set_members(self, key: str, pairs: Sequence[Tuple[str, float]]) -> None:
        args: List[Any] = []
        for member, score in pairs:
            args.extend([repr(float(score)), member])
        await self.execute("ZADD", key, *args)

    async def append_list_items(self, key: str, items: Sequence[str]) -> None:
        await self.execute("RPUSH", key, *items)

    async def set_if_absent(self, key: str, value: str, ttl_seconds: int) -> bool:
        return await self.execute("SET", key, value, "NX", "EX", ttl_seconds) == "OK"

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()
