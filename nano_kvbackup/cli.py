"""Command-line entry points: ``kv-backup`` and ``kv-restore``."""

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

from ._storage import create_store
from .archive import GitHubArchive
from .backup import AutoConfirm, BackupManager, InteractiveConfirm, fetch_from_archive
from .backup.utils import load_document
from .config import ArchiveConfig, BackupConfig, StoreConfig
from .exceptions import ConfigurationError, KVBackupError
from ._utils import logger

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_PARTIAL = 2

RESTORE_EPILOG = """\
Examples:
  kv-restore ./backups/backup-2026-02-06.json
  kv-restore --from-github latest
  kv-restore --from-github 2026-02-06

Environment Variables Required:
  UPSTASH_REDIS_REST_URL    Store REST URL (or redis:// URL)
  UPSTASH_REDIS_REST_TOKEN  Store REST token (or Redis password)

For --from-github:
  BACKUP_REPO_TOKEN         GitHub token with repo scope
  BACKUP_REPO               GitHub repo (owner/repo)
"""


def configure_logging(verbose: bool = False) -> None:
    """Attach a stdout handler to the package logger."""
    level = logging.DEBUG if verbose else logging.INFO
    kv_logger = logging.getLogger("nano-kvbackup")
    kv_logger.setLevel(level)
    kv_logger.propagate = False
    kv_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter(
        '%(asctime)s - [%(name)s] - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    ))
    kv_logger.addHandler(console_handler)


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--env-file",
        help="Load environment variables from this file first (e.g. .env.local)",
        default=None
    )
    parser.add_argument(
        "--no-lock",
        action="store_true",
        help="Do not take the advisory lock key in the store"
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Log per-key detail"
    )


def build_backup_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="kv-backup",
        description="Export all store keys and publish the backup to GitHub. "
                    "Backups older than 7 days are deleted."
    )
    parser.add_argument(
        "--output",
        help="Also write the backup document to this local file",
        default=None
    )
    _add_common_arguments(parser)
    return parser


def build_restore_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="kv-restore",
        description="Restore store data from a backup JSON file.",
        epilog=RESTORE_EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    source = parser.add_mutually_exclusive_group()
    source.add_argument(
        "backup_file",
        nargs="?",
        help="Local backup file to restore"
    )
    source.add_argument(
        "--from-github",
        nargs="?",
        const="latest",
        metavar="DATE",
        help="Fetch backup-<DATE>.json from the archive repo (YYYY-MM-DD or 'latest', the default)"
    )
    parser.add_argument(
        "-y", "--yes",
        action="store_true",
        help="Skip the confirmation prompt"
    )
    _add_common_arguments(parser)
    return parser


async def _run_backup(
    store_config: StoreConfig,
    archive_config: ArchiveConfig,
    backup_config: BackupConfig,
    output: Optional[str],
) -> int:
    async with create_store(store_config) as store, GitHubArchive(archive_config) as archive:
        manager = BackupManager(
            store,
            archive=archive,
            config=backup_config,
            archive_directory=archive_config.directory,
        )
        await manager.create_backup(output_path=output)
    return EXIT_OK


async def _run_restore(
    args: argparse.Namespace,
    store_config: StoreConfig,
    archive_config: Optional[ArchiveConfig],
    backup_config: BackupConfig,
) -> int:
    if archive_config is not None:
        async with GitHubArchive(archive_config) as archive:
            document = await fetch_from_archive(archive, args.from_github, archive_config.directory)
    else:
        document = load_document(Path(args.backup_file))

    confirmation = AutoConfirm() if args.yes else InteractiveConfirm()
    async with create_store(store_config) as store:
        manager = BackupManager(store, config=backup_config)
        stats = await manager.restore_backup(document, confirmation)

    if stats is None:
        return EXIT_OK
    return EXIT_PARTIAL if stats.failed else EXIT_OK


def backup_main(argv: Optional[List[str]] = None) -> int:
    """Entry point for ``kv-backup``."""
    args = build_backup_parser().parse_args(argv)
    configure_logging(args.verbose)
    if args.env_file:
        load_dotenv(args.env_file, override=True)

    logger.info("Starting backup...")
    try:
        store_config = StoreConfig.from_env()
        archive_config = ArchiveConfig.from_env()
    except ConfigurationError as e:
        logger.error(str(e))
        return EXIT_FAILURE

    try:
        return asyncio.run(_run_backup(
            store_config,
            archive_config,
            BackupConfig(lock_enabled=not args.no_lock),
            args.output,
        ))
    except (KVBackupError, OSError) as e:
        logger.error(f"Backup failed: {e}")
        return EXIT_FAILURE


def restore_main(argv: Optional[List[str]] = None) -> int:
    """Entry point for ``kv-restore``.

    Exit codes: 0 on success or when the operator declines, 1 on structural
    failure (configuration, missing or invalid backup, archive errors), 2 when
    some keys failed to restore.
    """
    parser = build_restore_parser()
    args = parser.parse_args(argv)
    configure_logging(args.verbose)

    if args.backup_file is None and args.from_github is None:
        parser.print_help()
        return EXIT_FAILURE

    if args.env_file:
        load_dotenv(args.env_file, override=True)

    try:
        store_config = StoreConfig.from_env()
        archive_config = ArchiveConfig.from_env() if args.from_github is not None else None
    except ConfigurationError as e:
        logger.error(str(e))
        return EXIT_FAILURE

    try:
        return asyncio.run(_run_restore(
            args,
            store_config,
            archive_config,
            BackupConfig(lock_enabled=not args.no_lock),
        ))
    except (KVBackupError, OSError) as e:
        logger.error(f"Restore failed: {e}")
        return EXIT_FAILURE
