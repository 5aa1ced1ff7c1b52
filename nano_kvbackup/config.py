"""Configuration management for nano-kvbackup."""

import os
from dataclasses import dataclass
from typing import List, Optional

from .exceptions import ConfigurationError


def _require_env(names: List[str]) -> None:
    missing = [name for name in names if not os.getenv(name)]
    if missing:
        raise ConfigurationError(
            f"Missing required environment variables: {', '.join(missing)}"
        )


def _env_number(name: str, default: str, cast):
    raw = os.getenv(name, default)
    try:
        return cast(raw)
    except ValueError as e:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}") from e


@dataclass(frozen=True)
class StoreConfig:
    """Key-value store connection configuration.

    ``url`` is either an Upstash REST endpoint (``https://...``) or a Redis
    protocol URL (``redis://`` / ``rediss://``). ``token`` is the REST bearer
    token or, for Redis URLs, the password.
    """
    url: str
    token: str
    request_timeout: float = 30.0
    max_connections: int = 10
    socket_timeout: float = 5.0

    @classmethod
    def from_env(cls) -> 'StoreConfig':
        """Create config from environment variables."""
        _require_env(["UPSTASH_REDIS_REST_URL", "UPSTASH_REDIS_REST_TOKEN"])
        return cls(
            url=os.environ["UPSTASH_REDIS_REST_URL"],
            token=os.environ["UPSTASH_REDIS_REST_TOKEN"],
            request_timeout=_env_number("KV_REQUEST_TIMEOUT", "30.0", float),
            max_connections=_env_number("KV_MAX_CONNECTIONS", "10", int),
            socket_timeout=_env_number("KV_SOCKET_TIMEOUT", "5.0", float),
        )

    def __post_init__(self):
        """Validate configuration."""
        if not self.url:
            raise ConfigurationError("store url must not be empty")
        if not self.token:
            raise ConfigurationError("store token must not be empty")
        if self.request_timeout <= 0:
            raise ConfigurationError(f"request_timeout must be positive, got {self.request_timeout}")
        if self.max_connections <= 0:
            raise ConfigurationError(f"max_connections must be positive, got {self.max_connections}")
        if self.socket_timeout <= 0:
            raise ConfigurationError(f"socket_timeout must be positive, got {self.socket_timeout}")

    @property
    def is_rest(self) -> bool:
        return self.url.startswith(("http://", "https://"))


@dataclass(frozen=True)
class ArchiveConfig:
    """GitHub archive repository configuration."""
    repo: str
    token: str
    directory: str = "backups"
    branch: Optional[str] = None
    api_url: str = "https://api.github.com"
    request_timeout: float = 30.0

    @classmethod
    def from_env(cls) -> 'ArchiveConfig':
        """Create config from environment variables."""
        _require_env(["BACKUP_REPO_TOKEN", "BACKUP_REPO"])
        return cls(
            repo=os.environ["BACKUP_REPO"],
            token=os.environ["BACKUP_REPO_TOKEN"],
            branch=os.getenv("BACKUP_BRANCH") or None,
            api_url=os.getenv("GITHUB_API_URL", "https://api.github.com"),
        )

    def __post_init__(self):
        """Validate configuration."""
        owner, _, name = self.repo.partition("/")
        if not owner or not name or "/" in name:
            raise ConfigurationError(f'BACKUP_REPO must be in format "owner/repo", got {self.repo!r}')
        if not self.token:
            raise ConfigurationError("archive token must not be empty")
        if not self.directory or self.directory.startswith("/"):
            raise ConfigurationError(f"directory must be a relative path, got {self.directory!r}")

    @property
    def owner(self) -> str:
        return self.repo.split("/", 1)[0]

    @property
    def name(self) -> str:
        return self.repo.split("/", 1)[1]


@dataclass(frozen=True)
class BackupConfig:
    """Export, retention and locking parameters."""
    retention_days: int = 7
    batch_size: int = 10
    scan_count: int = 100
    max_scan_iterations: int = 1000
    source: str = "nano-kvbackup"
    lock_enabled: bool = True
    lock_key: str = "nano-kvbackup:lock"
    lock_ttl: int = 600

    def __post_init__(self):
        """Validate configuration."""
        if self.retention_days <= 0:
            raise ConfigurationError(f"retention_days must be positive, got {self.retention_days}")
        if self.batch_size <= 0:
            raise ConfigurationError(f"batch_size must be positive, got {self.batch_size}")
        if self.scan_count <= 0:
            raise ConfigurationError(f"scan_count must be positive, got {self.scan_count}")
        if self.max_scan_iterations <= 0:
            raise ConfigurationError(f"max_scan_iterations must be positive, got {self.max_scan_iterations}")
        if self.lock_ttl <= 0:
            raise ConfigurationError(f"lock_ttl must be positive, got {self.lock_ttl}")
