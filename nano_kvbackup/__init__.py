from .backup import (
    BackupDocument,
    BackupExporter,
    BackupManager,
    ArchivePublisher,
    RestoreLoader,
)
from .config import StoreConfig, ArchiveConfig, BackupConfig

__version__ = "0.1.0"
__author__ = "nano-kvbackup contributors"
__url__ = "https://github.com/nano-kvbackup/nano-kvbackup"

__all__ = [
    "BackupDocument",
    "BackupExporter",
    "BackupManager",
    "ArchivePublisher",
    "RestoreLoader",
    "StoreConfig",
    "ArchiveConfig",
    "BackupConfig",
]
