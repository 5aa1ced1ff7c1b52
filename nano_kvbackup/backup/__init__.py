"""Backup and restore of key-value stores."""

from .models import (
    BackupDocument,
    BackupResult,
    BackupSummary,
    ManifestEntry,
    RestoreStats,
    TypeTag,
)
from .codec import check_manifest, decode, encode
from .exporter import BackupExporter, KeyEnumerator
from .publisher import ArchivePublisher
from .restore import (
    AutoConfirm,
    ConfirmationStrategy,
    InteractiveConfirm,
    RestoreLoader,
    fetch_from_archive,
)
from .manager import BackupManager

__all__ = [
    "BackupDocument",
    "BackupResult",
    "BackupSummary",
    "ManifestEntry",
    "RestoreStats",
    "TypeTag",
    "check_manifest",
    "decode",
    "encode",
    "BackupExporter",
    "KeyEnumerator",
    "ArchivePublisher",
    "AutoConfirm",
    "ConfirmationStrategy",
    "InteractiveConfirm",
    "RestoreLoader",
    "fetch_from_archive",
    "BackupManager",
]
