"""Storage backends with lazy loading support."""

from typing import TYPE_CHECKING

from .base import BaseKVStore
from .factory import create_store

if TYPE_CHECKING:
    from .kv_redis import RedisKVStore
    from .kv_upstash import UpstashRestStore


def __getattr__(name):
    """Lazy import backends so only the configured client library loads."""
    if name == "RedisKVStore":
        from .kv_redis import RedisKVStore
        return RedisKVStore
    elif name == "UpstashRestStore":
        from .kv_upstash import UpstashRestStore
        return UpstashRestStore
    else:
        raise AttributeError(f"module '{__name__}' has no attribute '{name}'")


__all__ = [
    "BaseKVStore",
    "create_store",
    "RedisKVStore",
    "UpstashRestStore",
]
