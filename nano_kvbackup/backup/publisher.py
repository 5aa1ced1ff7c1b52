"""Publishing backup documents to the remote archive and pruning old ones."""

from datetime import date, timedelta
from typing import List, Optional

from .models import BackupDocument
from .utils import backup_path, parse_backup_date
from ..archive.base import BaseArchive
from ..exceptions import ArchiveError, ArchiveNotFoundError
from .._utils import logger, utc_today


class ArchivePublisher:
    """Upsert one dated backup file per day and enforce the retention window."""

    def __init__(self, archive: BaseArchive, directory: str = "backups", retention_days: int = 7):
        self.archive = archive
        self.directory = directory
        self.retention_days = retention_days

    async def publish(self, document: BackupDocument, today: Optional[date] = None) -> str:
        """Create or replace today's archive entry.

        Returns:
            Archive path of the published file.

        Raises:
            ArchiveError: if the archive cannot be reached or rejects the write.
        """
        today = today or utc_today()
        path = backup_path(self.directory, today)

        sha = None
        try:
            _, sha = await self.archive.get_file_content(path)
            logger.info(f"Updating existing backup {path}")
        except ArchiveNotFoundError:
            logger.debug(f"No backup at {path} yet, creating it")

        await self.archive.create_or_update_file(
            path,
            document.to_json(),
            f"chore: Redis backup {today.isoformat()}",
            sha,
        )
        logger.info(f"Backup saved as {path}")
        return path

    async def prune(self, today: Optional[date] = None) -> List[str]:
        """Delete archive entries dated before ``today - retention_days``.

        Returns:
            Names of the deleted files.
        """
        today = today or utc_today()
        cutoff = today - timedelta(days=self.retention_days)

        try:
            files = await self.archive.list_directory(self.directory)
        except ArchiveNotFoundError:
            logger.info(f"No {self.directory}/ directory yet, nothing to prune")
            return []
        except ArchiveError as e:
            logger.warning(f"Failed to list backups: {e}")
            return []

        deleted = []
        for file in sorted(files, key=lambda f: f.name):
            file_date = parse_backup_date(file.name)
            if file_date is None or file_date >= cutoff:
                continue

            try:
                await self.archive.delete_file(
                    file.path, f"chore: Delete old backup {file.name}", file.sha
                )
            except ArchiveError as e:
                logger.warning(f"Failed to delete {file.name}: {e}")
                continue

            logger.info(f"Deleted {file.name}")
            deleted.append(file.name)

        logger.info(f"Deleted {len(deleted)} old backup(s)")
        return deleted
