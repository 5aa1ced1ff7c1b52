"""Store construction from configuration."""

from ..config import StoreConfig
from .base import BaseKVStore


def create_store(config: StoreConfig) -> BaseKVStore:
    """Build the store backend matching the configured URL scheme."""
    if config.is_rest:
        from .kv_upstash import UpstashRestStore
        return UpstashRestStore(config.url, config.token, timeout=config.request_timeout)

    from .kv_redis import RedisKVStore
    return RedisKVStore(
        config.url,
        password=config.token,
        max_connections=config.max_connections,
        socket_timeout=config.socket_timeout,
    )
