"""Exception hierarchy for backup and restore runs."""

from typing import Optional


class KVBackupError(Exception):
    """Base exception for nano-kvbackup errors."""
    pass


class ConfigurationError(KVBackupError, ValueError):
    """Required configuration is missing or invalid."""
    pass


class StoreError(KVBackupError):
    """The key-value store rejected a command or could not be reached."""
    pass


class CodecError(KVBackupError):
    """A value does not have the shape its type tag requires."""
    pass


class ArchiveError(KVBackupError):
    """The remote archive rejected a request or could not be reached."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class ArchiveNotFoundError(ArchiveError):
    """The requested archive path does not exist."""

    def __init__(self, path: str, message: Optional[str] = None):
        super().__init__(message or f"Archive path not found: {path}", status_code=404)
        self.path = path


class BackupValidationError(KVBackupError):
    """A backup document (or a backup date) failed validation."""
    pass


class LockError(KVBackupError):
    """Another backup or restore run holds the advisory lock."""
    pass
