"""Data models for backup documents and run results."""

import json
from collections import Counter
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .._utils import isoformat_utc, utc_now

CURRENT_VERSION = "1.0"
SUPPORTED_VERSIONS = (CURRENT_VERSION,)


class TypeTag(str, Enum):
    """The five value shapes a backup document can carry."""

    STRING = "string"
    HASH = "hash"
    SET = "set"
    ZSET = "zset"
    LIST = "list"

    @classmethod
    def parse(cls, raw: Any) -> Optional["TypeTag"]:
        """Return the tag for ``raw`` or None for unknown store types."""
        try:
            return cls(raw)
        except ValueError:
            return None


class ManifestEntry(BaseModel):
    """One ``{key, type}`` record of the key manifest."""

    key: str
    # Kept as plain text so an unknown tag fails one entry, not the document
    type: str


class BackupDocument(BaseModel):
    """Portable snapshot of the whole store, partitioned by value type."""

    model_config = ConfigDict(populate_by_name=True)

    version: str = Field(..., description="Backup format version")
    created_at: Optional[str] = Field(None, alias="createdAt", description="ISO-8601 export time")
    source: str = Field("", description="Provenance tag")
    simple_keys: Dict[str, Any] = Field(default_factory=dict, alias="simpleKeys")
    hash_keys: Dict[str, Any] = Field(default_factory=dict, alias="hashKeys")
    set_keys: Dict[str, Any] = Field(default_factory=dict, alias="setKeys")
    sorted_set_keys: Dict[str, Any] = Field(default_factory=dict, alias="sortedSetKeys")
    key_manifest: List[ManifestEntry] = Field(..., alias="keyManifest")

    @field_validator("version")
    @classmethod
    def check_version(cls, v: str) -> str:
        if v not in SUPPORTED_VERSIONS:
            raise ValueError(
                f"unsupported backup version {v!r} (supported: {', '.join(SUPPORTED_VERSIONS)})"
            )
        return v

    @classmethod
    def new(cls, source: str = "nano-kvbackup") -> "BackupDocument":
        """Create an empty document stamped with the current time."""
        return cls(
            version=CURRENT_VERSION,
            created_at=isoformat_utc(utc_now()),
            source=source,
            key_manifest=[],
        )

    def to_json(self) -> str:
        return json.dumps(self.model_dump(by_alias=True), indent=2, ensure_ascii=False)

    def type_counts(self) -> Dict[str, int]:
        """Count manifest entries per type tag."""
        counts = {tag.value: 0 for tag in TypeTag}
        counts.update(Counter(entry.type for entry in self.key_manifest))
        return counts


class BackupSummary(BaseModel):
    """What a restore is about to write, shown before confirmation."""

    version: str
    created_at: Optional[str]
    source: str
    counts: Dict[str, int]
    total: int

    @classmethod
    def from_document(cls, document: BackupDocument) -> "BackupSummary":
        return cls(
            version=document.version,
            created_at=document.created_at,
            source=document.source,
            counts=document.type_counts(),
            total=len(document.key_manifest),
        )


class RestoreStats(BaseModel):
    """Outcome of replaying a manifest."""

    restored: Dict[str, int] = Field(
        default_factory=lambda: {tag.value: 0 for tag in TypeTag}
    )
    skipped: int = 0
    failed: int = 0
    failed_keys: List[str] = Field(default_factory=list)

    @property
    def restored_total(self) -> int:
        return sum(self.restored.values())

    def record_restored(self, tag: TypeTag) -> None:
        self.restored[tag.value] += 1

    def record_failure(self, key: str) -> None:
        self.failed += 1
        self.failed_keys.append(key)


class BackupResult(BaseModel):
    """Outcome of an export run."""

    document: BackupDocument
    archive_path: Optional[str] = None
    pruned: List[str] = Field(default_factory=list)
    failed_keys: List[str] = Field(default_factory=list)
