"""Tests for key enumeration and export."""

import asyncio

import pytest

from nano_kvbackup.backup.codec import check_manifest
from nano_kvbackup.backup.exporter import BackupExporter, KeyEnumerator
from nano_kvbackup.exceptions import StoreError
from tests.utils import InMemoryKVStore


@pytest.mark.asyncio
async def test_list_keys_uses_keys_command(mixed_store):
    keys = await KeyEnumerator(mixed_store).list_keys()
    assert sorted(keys) == ["greeting", "log", "scores", "tags", "user:1"]


@pytest.mark.asyncio
async def test_list_keys_falls_back_to_scan():
    store = InMemoryKVStore(keys_enabled=False)
    for i in range(25):
        store.strings[f"k{i:02d}"] = str(i)

    keys = await KeyEnumerator(store, scan_count=10).list_keys()

    assert keys == [f"k{i:02d}" for i in range(25)]


@pytest.mark.asyncio
async def test_scan_deduplicates_pages():
    class RepeatingStore(InMemoryKVStore):
        async def scan(self, cursor, count=100):
            pages = {"0": ("7", ["a", "b"]), "7": ("9", ["b", "c"]), "9": ("0", ["a"])}
            return pages[cursor]

    keys = await KeyEnumerator(RepeatingStore(keys_enabled=False)).list_keys()

    assert keys == ["a", "b", "c"]


@pytest.mark.asyncio
async def test_scan_stops_at_max_iterations():
    class RunawayStore(InMemoryKVStore):
        def __init__(self):
            super().__init__(keys_enabled=False)
            self.calls = 0

        async def scan(self, cursor, count=100):
            self.calls += 1
            return str(self.calls), [f"key{self.calls}"]

    store = RunawayStore()
    keys = await KeyEnumerator(store, max_iterations=5).list_keys()

    assert store.calls == 5
    assert keys == ["key1", "key2", "key3", "key4", "key5"]


@pytest.mark.asyncio
async def test_scan_failure_propagates():
    class BrokenStore(InMemoryKVStore):
        async def scan(self, cursor, count=100):
            raise StoreError("connection refused")

    with pytest.raises(StoreError):
        await KeyEnumerator(BrokenStore(keys_enabled=False)).list_keys()


@pytest.mark.asyncio
async def test_list_keys_excludes_lock_key(store):
    store.strings["nano-kvbackup:lock"] = "token"
    store.strings["a"] = "1"

    keys = await KeyEnumerator(store, exclude=["nano-kvbackup:lock"]).list_keys()

    assert keys == ["a"]


@pytest.mark.asyncio
async def test_export_mixed_store(mixed_store):
    document = await BackupExporter(mixed_store).export()

    assert len(document.key_manifest) == 5
    assert check_manifest(document) == []
    assert document.simple_keys["greeting"] == "hi"
    assert document.simple_keys["log"] == {"_type": "list", "items": ["e1", "e2"]}
    assert document.hash_keys["user:1"] == {"name": "Ann", "age": "30"}
    assert sorted(document.set_keys["tags"]) == ["a", "b"]
    assert document.sorted_set_keys["scores"] == ["x", 1.0, "y", 2.0]
    assert document.version == "1.0"
    assert document.created_at.endswith("Z")


@pytest.mark.asyncio
async def test_export_empty_store(store):
    document = await BackupExporter(store).export()

    assert document.key_manifest == []
    assert document.simple_keys == {}
    assert document.hash_keys == {}
    assert document.set_keys == {}
    assert document.sorted_set_keys == {}


@pytest.mark.asyncio
async def test_export_omits_unknown_types(mixed_store):
    mixed_store.extra_types["events"] = "stream"

    exporter = BackupExporter(mixed_store)
    document = await exporter.export()

    assert "events" not in [entry.key for entry in document.key_manifest]
    assert exporter.skipped_keys == ["events"]
    assert check_manifest(document) == []


@pytest.mark.asyncio
async def test_export_isolates_read_failures(mixed_store):
    mixed_store.fail_reads.add("user:1")

    exporter = BackupExporter(mixed_store, batch_size=2)
    document = await exporter.export()

    assert exporter.failed_keys == ["user:1"]
    assert len(document.key_manifest) == 4
    assert "user:1" not in document.hash_keys


@pytest.mark.asyncio
async def test_export_skips_keys_that_vanished(mixed_store):
    exporter = BackupExporter(mixed_store)
    document = await exporter.export(["greeting", "gone"])

    assert [entry.key for entry in document.key_manifest] == ["greeting"]
    assert exporter.skipped_keys == ["gone"]


@pytest.mark.asyncio
async def test_export_runs_batches_one_at_a_time():
    """At most batch_size reads are in flight, and batches never overlap."""

    class TrackingStore(InMemoryKVStore):
        def __init__(self):
            super().__init__()
            self.in_flight = 0
            self.peak = 0

        async def type_of(self, key):
            self.in_flight += 1
            self.peak = max(self.peak, self.in_flight)
            await asyncio.sleep(0)
            self.in_flight -= 1
            return await super().type_of(key)

    store = TrackingStore()
    for i in range(23):
        store.strings[f"k{i:02d}"] = str(i)

    document = await BackupExporter(store, batch_size=5).export()

    assert store.peak == 5
    assert [entry.key for entry in document.key_manifest] == [f"k{i:02d}" for i in range(23)]
