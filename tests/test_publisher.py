"""Tests for publishing backups and retention pruning."""

import json
from datetime import date, timedelta

import pytest

from nano_kvbackup.backup.models import BackupDocument
from nano_kvbackup.backup.publisher import ArchivePublisher
from nano_kvbackup.exceptions import ArchiveError

TODAY = date(2026, 2, 10)


def _name(day: date) -> str:
    return f"backup-{day.isoformat()}.json"


@pytest.mark.asyncio
async def test_publish_creates_dated_file(archive):
    document = BackupDocument.new()

    path = await ArchivePublisher(archive).publish(document, today=TODAY)

    assert path == "backups/backup-2026-02-10.json"
    content, _ = archive.files[path]
    assert json.loads(content)["keyManifest"] == []
    assert archive.messages == ["chore: Redis backup 2026-02-10"]


@pytest.mark.asyncio
async def test_publish_same_day_updates_in_place(archive):
    publisher = ArchivePublisher(archive)
    archive.add("backups/backup-2026-02-10.json", '{"old": true}')

    document = BackupDocument.new(source="second-run")
    await publisher.publish(document, today=TODAY)

    content, _ = archive.files["backups/backup-2026-02-10.json"]
    assert json.loads(content)["source"] == "second-run"
    assert len([p for p in archive.files if p.endswith("2026-02-10.json")]) == 1


@pytest.mark.asyncio
async def test_publish_failure_propagates(archive):
    archive.write_error = ArchiveError("Bad credentials", status_code=401)

    with pytest.raises(ArchiveError):
        await ArchivePublisher(archive).publish(BackupDocument.new(), today=TODAY)


@pytest.mark.asyncio
async def test_prune_retention_boundary(archive):
    for days_ago in (0, 6, 7, 8):
        archive.add(f"backups/{_name(TODAY - timedelta(days=days_ago))}")

    deleted = await ArchivePublisher(archive, retention_days=7).prune(today=TODAY)

    assert deleted == [_name(TODAY - timedelta(days=8))]
    remaining = sorted(p.split("/")[-1] for p in archive.files)
    assert remaining == sorted(_name(TODAY - timedelta(days=d)) for d in (0, 6, 7))


@pytest.mark.asyncio
async def test_prune_ignores_unrelated_and_unparseable_files(archive):
    archive.add("backups/README.md")
    archive.add("backups/backup-2020-13-45.json")
    archive.add("backups/backup-2020-01-01.json.bak")

    deleted = await ArchivePublisher(archive).prune(today=TODAY)

    assert deleted == []
    assert len(archive.files) == 3


@pytest.mark.asyncio
async def test_prune_missing_directory_is_not_an_error(archive):
    assert await ArchivePublisher(archive).prune(today=TODAY) == []


@pytest.mark.asyncio
async def test_prune_list_failure_is_not_fatal(archive):
    archive.list_error = ArchiveError("Server Error", status_code=500)
    assert await ArchivePublisher(archive).prune(today=TODAY) == []


@pytest.mark.asyncio
async def test_prune_continues_after_delete_failure(archive):
    for days_ago in (10, 11, 12):
        archive.add(f"backups/{_name(TODAY - timedelta(days=days_ago))}")
    archive.fail_deletes.add(f"backups/{_name(TODAY - timedelta(days=11))}")

    deleted = await ArchivePublisher(archive).prune(today=TODAY)

    assert deleted == [_name(TODAY - timedelta(days=12)), _name(TODAY - timedelta(days=10))]
    assert list(archive.files) == [f"backups/{_name(TODAY - timedelta(days=11))}"]
