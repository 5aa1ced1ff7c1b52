"""Restoring a store from a backup document."""

import asyncio
from abc import ABC, abstractmethod
from typing import Callable, Optional

from .codec import decode, extract
from .models import BackupDocument, BackupSummary, ManifestEntry, RestoreStats, TypeTag
from .utils import backup_path, parse_backup_date, parse_date_arg, parse_document
from .._storage.base import BaseKVStore
from ..archive.base import BaseArchive
from ..exceptions import ArchiveNotFoundError, CodecError, StoreError
from .._utils import logger


class ConfirmationStrategy(ABC):
    """Decides whether a destructive restore may proceed."""

    @abstractmethod
    async def confirm(self, summary: BackupSummary) -> bool:
        ...


class AutoConfirm(ConfirmationStrategy):
    """Always proceed. For scripted and CI use."""

    async def confirm(self, summary: BackupSummary) -> bool:
        logger.info(f"Auto-confirmed restore of {summary.total} keys")
        return True


class InteractiveConfirm(ConfirmationStrategy):
    """Ask the operator on the terminal; only ``y``/``yes`` proceeds."""

    def __init__(
        self,
        input_func: Optional[Callable[[str], str]] = None,
        question: str = "This will OVERWRITE existing data in the store. Continue?",
    ):
        self.input_func = input_func or input
        self.question = question

    async def confirm(self, summary: BackupSummary) -> bool:
        try:
            answer = await asyncio.to_thread(self.input_func, f"{self.question} (y/N): ")
        except EOFError:
            logger.warning("No answer on stdin, treating as 'no'")
            return False
        return answer.strip().lower() in ("y", "yes")


async def fetch_from_archive(
    archive: BaseArchive,
    which: str = "latest",
    directory: str = "backups",
) -> BackupDocument:
    """Download a published backup by date (``YYYY-MM-DD``) or ``latest``.

    Raises:
        ArchiveNotFoundError: if no matching backup exists.
        BackupValidationError: if the date is malformed or the file is invalid.
    """
    logger.info("Fetching backup from archive...")

    if which == "latest":
        try:
            files = await archive.list_directory(directory)
        except ArchiveNotFoundError as e:
            raise ArchiveNotFoundError(directory, "No backups found in repository") from e

        dates = [d for d in (parse_backup_date(f.name) for f in files) if d is not None]
        if not dates:
            raise ArchiveNotFoundError(directory, "No valid backup files found")

        day = max(dates)
        logger.info(f"Found latest backup: {day.isoformat()}")
    else:
        day = parse_date_arg(which)

    path = backup_path(directory, day)
    try:
        content, _ = await archive.get_file_content(path)
    except ArchiveNotFoundError as e:
        raise ArchiveNotFoundError(path, f"Backup not found: {path}") from e

    logger.info(f"Downloaded {path}")
    return parse_document(content)


class RestoreLoader:
    """Replay a backup document into the store in manifest order.

    Each key is restored independently; a failing key is logged and counted
    and the loop moves on. Successful writes are never rolled back.
    """

    def __init__(self, store: BaseKVStore, confirmation: Optional[ConfirmationStrategy] = None):
        self.store = store
        self.confirmation = confirmation or InteractiveConfirm()

    async def confirm(self, document: BackupDocument) -> bool:
        """Show what will be written and ask the confirmation strategy."""
        summary = BackupSummary.from_document(document)

        logger.info("Backup Information:")
        logger.info(f"   Version: {summary.version}")
        logger.info(f"   Created: {summary.created_at}")
        logger.info(f"   Source: {summary.source}")
        for type_name, count in summary.counts.items():
            logger.info(f"   {type_name} keys: {count}")
        logger.info(f"   Total keys: {summary.total}")

        confirmed = await self.confirmation.confirm(summary)
        if not confirmed:
            logger.info("Restore cancelled")
        return confirmed

    async def run(self, document: BackupDocument) -> Optional[RestoreStats]:
        """Confirm, then replay. Returns None if the operator declined."""
        if not await self.confirm(document):
            return None
        return await self.replay(document)

    async def replay(self, document: BackupDocument) -> RestoreStats:
        logger.info("Starting restore...")
        stats = RestoreStats()

        for entry in document.key_manifest:
            await self._restore_entry(document, entry, stats)

        for tag in TypeTag:
            logger.info(f"Restored: {stats.restored[tag.value]} {tag.value} keys")
        if stats.skipped:
            logger.info(f"Skipped: {stats.skipped} empty keys")
        if stats.failed:
            logger.error(f"Failed: {stats.failed} keys ({', '.join(stats.failed_keys)})")
        else:
            logger.info("Failed: 0 keys")

        return stats

    async def _restore_entry(
        self,
        document: BackupDocument,
        entry: ManifestEntry,
        stats: RestoreStats,
    ) -> None:
        tag = TypeTag.parse(entry.type)
        if tag is None:
            logger.warning(f'Unknown type "{entry.type}" for key: {entry.key}')
            stats.record_failure(entry.key)
            return

        try:
            portable = extract(document, entry.key, tag)
            written = await decode(entry.key, tag, portable, self.store)
        except (CodecError, StoreError) as e:
            logger.error(f'Failed to restore "{entry.key}": {e}')
            stats.record_failure(entry.key)
            return

        if written:
            stats.record_restored(tag)
            logger.info(f"[{tag.value}] {entry.key}")
        else:
            stats.skipped += 1
            logger.debug(f"[{tag.value}] {entry.key} skipped (empty)")
