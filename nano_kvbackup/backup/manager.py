"""Backup and restore orchestration for one key-value store."""

from contextlib import asynccontextmanager
from datetime import date
from pathlib import Path
from typing import Optional, Union

from .exporter import BackupExporter, KeyEnumerator
from .lock import AdvisoryLock
from .models import BackupDocument, BackupResult, RestoreStats
from .publisher import ArchivePublisher
from .restore import ConfirmationStrategy, RestoreLoader
from .utils import save_document
from .._storage.base import BaseKVStore
from ..archive.base import BaseArchive
from ..config import BackupConfig
from .._utils import logger


class BackupManager:
    """Run complete backup and restore operations against a store."""

    def __init__(
        self,
        store: BaseKVStore,
        archive: Optional[BaseArchive] = None,
        config: Optional[BackupConfig] = None,
        archive_directory: str = "backups",
    ):
        """Initialize backup manager.

        Args:
            store: Key-value store to back up or restore into
            archive: Remote archive for publishing; None keeps backups local
            config: Export, retention and locking parameters
            archive_directory: Directory in the archive holding backup files
        """
        self.store = store
        self.archive = archive
        self.config = config or BackupConfig()
        self.archive_directory = archive_directory

    @asynccontextmanager
    async def _lock(self):
        if not self.config.lock_enabled:
            yield
            return
        async with AdvisoryLock(self.store, self.config.lock_key, self.config.lock_ttl):
            yield

    async def create_backup(
        self,
        output_path: Optional[Union[str, Path]] = None,
        today: Optional[date] = None,
    ) -> BackupResult:
        """Export every key, optionally save locally, publish and prune.

        An empty store is not an error: the empty document is returned and
        nothing is saved or published.

        Raises:
            ArchiveError: if publishing fails.
        """
        async with self._lock():
            logger.info("Fetching all keys...")
            enumerator = KeyEnumerator(
                self.store,
                scan_count=self.config.scan_count,
                max_iterations=self.config.max_scan_iterations,
                exclude=[self.config.lock_key],
            )
            keys = await enumerator.list_keys()
            logger.info(f"Found {len(keys)} keys")

            if not keys:
                logger.warning("No keys found in the store. Nothing to backup.")
                return BackupResult(document=BackupDocument.new(source=self.config.source))

            logger.info("Exporting data...")
            exporter = BackupExporter(
                self.store,
                batch_size=self.config.batch_size,
                source=self.config.source,
                enumerator=enumerator,
            )
            document = await exporter.export(keys)
            result = BackupResult(document=document, failed_keys=exporter.failed_keys)

            if output_path is not None:
                save_document(document, output_path)

            if self.archive is not None:
                publisher = ArchivePublisher(
                    self.archive,
                    directory=self.archive_directory,
                    retention_days=self.config.retention_days,
                )
                logger.info("Pushing backup to archive...")
                result.archive_path = await publisher.publish(document, today=today)
                logger.info("Cleaning up old backups...")
                result.pruned = await publisher.prune(today=today)

        logger.info("Backup completed successfully!")
        return result

    async def restore_backup(
        self,
        document: BackupDocument,
        confirmation: Optional[ConfirmationStrategy] = None,
    ) -> Optional[RestoreStats]:
        """Confirm, then replay ``document`` under the advisory lock.

        Returns:
            RestoreStats, or None if the restore was declined.
        """
        loader = RestoreLoader(self.store, confirmation)
        if not await loader.confirm(document):
            return None

        async with self._lock():
            stats = await loader.replay(document)

        if stats.failed:
            logger.warning(f"Restore finished with {stats.failed} failed key(s)")
        else:
            logger.info("Restore completed successfully!")
        return stats
