"""Utility functions for backup files and archive naming."""

import json
import re
from datetime import date, datetime
from pathlib import Path
from typing import Optional, Union

from pydantic import ValidationError

from .models import BackupDocument
from ..exceptions import BackupValidationError
from .._utils import logger

BACKUP_FILENAME_RE = re.compile(r"^backup-(\d{4}-\d{2}-\d{2})\.json$")


def backup_filename(day: date) -> str:
    """Archive filename for ``day``: ``backup-YYYY-MM-DD.json``."""
    return f"backup-{day.isoformat()}.json"


def backup_path(directory: str, day: date) -> str:
    return f"{directory.rstrip('/')}/{backup_filename(day)}"


def parse_backup_date(filename: str) -> Optional[date]:
    """Extract the date embedded in an archive filename.

    Returns None for names that do not follow the convention or carry an
    impossible date (``backup-2026-13-40.json``).
    """
    match = BACKUP_FILENAME_RE.match(filename)
    if not match:
        return None
    try:
        return datetime.strptime(match.group(1), "%Y-%m-%d").date()
    except ValueError:
        return None


def parse_date_arg(value: str) -> date:
    """Parse a ``YYYY-MM-DD`` command-line date."""
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError as e:
        raise BackupValidationError(
            f"Invalid backup date {value!r}, expected YYYY-MM-DD or 'latest'"
        ) from e


def parse_document(content: str) -> BackupDocument:
    """Parse and validate backup JSON.

    Raises:
        BackupValidationError: if the text is not JSON, or lacks a supported
            ``version`` or a ``keyManifest`` array.
    """
    try:
        data = json.loads(content)
    except json.JSONDecodeError as e:
        raise BackupValidationError(f"Backup is not valid JSON: {e}") from e

    if not isinstance(data, dict):
        raise BackupValidationError("Invalid backup file format: top level must be an object")

    try:
        return BackupDocument.model_validate(data)
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or '<root>'}: {err['msg']}" for err in e.errors()
        )
        raise BackupValidationError(f"Invalid backup file format: {problems}") from e


def save_document(document: BackupDocument, output_path: Union[str, Path]) -> Path:
    """Write a backup document to a local JSON file."""
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(document.to_json(), encoding="utf-8")

    logger.info(f"Backup written to {output_path}")
    return output_path


def load_document(path: Union[str, Path]) -> BackupDocument:
    """Load and validate a backup document from a local file."""
    path = Path(path).resolve()
    if not path.exists():
        raise FileNotFoundError(f"Backup file not found: {path}")

    logger.info(f"Loading backup from: {path}")
    try:
        content = path.read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        raise BackupValidationError(f"Backup is not valid UTF-8: {path}") from e
    return parse_document(content)
