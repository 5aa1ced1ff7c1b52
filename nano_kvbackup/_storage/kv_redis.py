"""Redis protocol key-value store backend."""

from typing import Any, Dict, List, Optional, Sequence, Tuple

import redis.asyncio as aioredis
from redis.backoff import ExponentialBackoff
from redis.retry import Retry
from redis.exceptions import RedisError, ConnectionError as RedisConnectionError

from .base import BaseKVStore
from ..exceptions import StoreError
from .._utils import logger


class RedisKVStore(BaseKVStore):
    """Key-value store backed by a redis-py asyncio client."""

    def __init__(
        self,
        url: str,
        password: Optional[str] = None,
        max_connections: int = 10,
        socket_timeout: float = 5.0,
        client: Optional[Any] = None,
    ):
        self.url = url
        self._connection_pool = None

        if client is not None:
            self._redis_client = client
            return

        # Configure retry policy
        retry = Retry(
            ExponentialBackoff(cap=10, base=1),
            retries=3,
            supported_errors=(RedisConnectionError, TimeoutError, ConnectionError)
        )

        self._connection_pool = aioredis.ConnectionPool.from_url(
            url,
            password=password,
            max_connections=max_connections,
            socket_timeout=socket_timeout,
            socket_connect_timeout=socket_timeout,
            decode_responses=True,
            retry=retry,
        )
        self._redis_client = aioredis.Redis(connection_pool=self._connection_pool)

    async def _call(self, method: str, *args, **kwargs) -> Any:
        try:
            return await getattr(self._redis_client, method)(*args, **kwargs)
        except RedisError as e:
            raise StoreError(f"{method.upper()} failed: {e}") from e

    async def list_all_keys(self) -> List[str]:
        return list(await self._call("keys", "*"))

    async def scan(self, cursor: str, count: int = 100) -> Tuple[str, List[str]]:
        next_cursor, keys = await self._call("scan", int(cursor), count=count)
        return str(next_cursor), list(keys)

    async def type_of(self, key: str) -> str:
        return await self._call("type", key)

    async def get_string(self, key: str) -> Optional[str]:
        return await self._call("get", key)

    async def get_all_hash_fields(self, key: str) -> Dict[str, str]:
        return dict(await self._call("hgetall", key))

    async def get_all_set_members(self, key: str) -> List[str]:
        return sorted(await self._call("smembers", key))

    async def get_sorted_set_range_with_scores(self, key: str) -> List[Tuple[str, float]]:
        pairs = await self._call("zrange", key, 0, -1, withscores=True)
        return [(member, float(score)) for member, score in pairs]

    async def get_full_list(self, key: str) -> List[str]:
        return list(await self._call("lrange", key, 0, -1))

    async def set_string(self, key: str, value: str) -> None:
        await self._call("set", key, value)

    async def delete_key(self, key: str) -> None:
        await self._call("delete", key)

    async def set_hash_fields(self, key: str, fields: Dict[str, str]) -> None:
        await self._call("hset", key, mapping=dict(fields))

    async def add_set_members(self, key: str, members: Sequence[str]) -> None:
        await self._call("sadd", key, *members)

    async def add_sorted_set_members(self, key: str, pairs: Sequence[Tuple[str, float]]) -> None:
        await self._call("zadd", key, {member: score for member, score in pairs})

    async def append_list_items(self, key: str, items: Sequence[str]) -> None:
        await self._call("rpush", key, *items)

    async def set_if_absent(self, key: str, value: str, ttl_seconds: int) -> bool:
        return bool(await self._call("set", key, value, nx=True, ex=ttl_seconds))

    async def close(self) -> None:
        """Async cleanup of Redis connections."""
        if self._redis_client is not None:
            await self._redis_client.aclose()
        if self._connection_pool is not None:
            await self._connection_pool.disconnect()
        logger.debug(f"Closed Redis connections to {self.url.split('@')[-1]}")
