"""Type-dispatch codec shared by export and restore.

Each of the five type tags maps to one store read, one portable encoding and
one write sequence. The portable forms are the container values of a
``BackupDocument``:

- ``string``: the scalar itself (``simpleKeys``)
- ``hash``: ``{field: value}`` (``hashKeys``)
- ``set``: ``[member, ...]`` (``setKeys``)
- ``zset``: ``[member, score, member, score, ...]`` ascending (``sortedSetKeys``)
- ``list``: ``{"_type": "list", "items": [...]}`` (``simpleKeys``)
"""

import json
import math
from typing import Any, Dict, List, Tuple

from .models import BackupDocument, ManifestEntry, TypeTag
from .._storage.base import BaseKVStore
from ..exceptions import CodecError

LIST_MARKER = "list"

_READERS = {
    TypeTag.STRING: lambda store, key: store.get_string(key),
    TypeTag.HASH: lambda store, key: store.get_all_hash_fields(key),
    TypeTag.SET: lambda store, key: store.get_all_set_members(key),
    TypeTag.ZSET: lambda store, key: store.get_sorted_set_range_with_scores(key),
    TypeTag.LIST: lambda store, key: store.get_full_list(key),
}


def _container(document: BackupDocument, tag: TypeTag) -> Dict[str, Any]:
    if tag in (TypeTag.STRING, TypeTag.LIST):
        return document.simple_keys
    if tag is TypeTag.HASH:
        return document.hash_keys
    if tag is TypeTag.SET:
        return document.set_keys
    return document.sorted_set_keys


def _to_text(value: Any) -> str:
    """Render a portable scalar as store text.

    Documents written by JSON-auto-parsing clients can hold numbers or
    objects where the store held their JSON text.
    """
    if isinstance(value, str):
        return value
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


def _to_score(key: str, value: Any) -> float:
    if isinstance(value, bool):
        raise CodecError(f"zset {key!r}: score {value!r} is not a number")
    try:
        score = float(value)
    except (TypeError, ValueError) as e:
        raise CodecError(f"zset {key!r}: score {value!r} is not a number") from e
    if math.isnan(score):
        raise CodecError(f"zset {key!r}: score is NaN")
    return score


async def read_value(store: BaseKVStore, key: str, tag: TypeTag) -> Any:
    """Fetch the native value of ``key`` with the read matching ``tag``."""
    return await _READERS[tag](store, key)


def encode(key: str, tag: TypeTag, raw: Any) -> Any:
    """Convert a native store value into its portable form."""
    if not isinstance(tag, TypeTag):
        raise CodecError(f"Unsupported type tag {tag!r} for key: {key}")

    if tag is TypeTag.STRING:
        return raw
    if tag is TypeTag.HASH:
        return dict(raw or {})
    if tag is TypeTag.SET:
        return list(raw or [])
    if tag is TypeTag.ZSET:
        # Store order is authoritative; pairs arrive sorted by score
        flat: List[Any] = []
        for member, score in raw or []:
            flat.extend([member, float(score)])
        return flat
    return {"_type": LIST_MARKER, "items": list(raw or [])}


def place(document: BackupDocument, key: str, tag: TypeTag, portable: Any) -> None:
    """Store a portable value in its container and record it in the manifest."""
    _container(document, tag)[key] = portable
    document.key_manifest.append(ManifestEntry(key=key, type=tag.value))


def extract(document: BackupDocument, key: str, tag: TypeTag) -> Any:
    """Look up the portable value a manifest entry refers to."""
    container = _container(document, tag)
    if key not in container:
        raise CodecError(f"{tag.value} key {key!r} is in the manifest but missing from its container")
    value = container[key]
    if tag is TypeTag.STRING and _is_list_wrapper(value):
        raise CodecError(f"string key {key!r} holds a list wrapper")
    return value


def _is_list_wrapper(portable: Any) -> bool:
    return isinstance(portable, dict) and portable.get("_type") == LIST_MARKER


def _zset_pairs(key: str, portable: Any) -> List[Tuple[str, float]]:
    if not isinstance(portable, list):
        raise CodecError(f"zset {key!r}: expected a member/score array, got {type(portable).__name__}")
    if len(portable) % 2:
        raise CodecError(f"zset {key!r}: member/score array has odd length {len(portable)}")
    return [
        (_to_text(member), _to_score(key, score))
        for member, score in zip(portable[0::2], portable[1::2])
    ]


def _list_items(key: str, portable: Any) -> List[Any]:
    if not _is_list_wrapper(portable):
        raise CodecError(f"list {key!r}: expected a {{'_type': 'list', 'items': [...]}} wrapper")
    items = portable.get("items")
    if not isinstance(items, list):
        raise CodecError(f"list {key!r}: 'items' must be an array")
    return items


async def decode(key: str, tag: TypeTag, portable: Any, store: BaseKVStore) -> bool:
    """Write a portable value back to the store.

    Container types are cleared before the bulk write so no stale fields,
    members or items survive. Empty containers are skipped without touching
    the key. The shape is validated before anything is deleted.

    Returns:
        True if the key was written, False if it was skipped.

    Raises:
        CodecError: if ``portable`` does not have the shape ``tag`` requires.
    """
    if not isinstance(tag, TypeTag):
        raise CodecError(f"Unsupported type tag {tag!r} for key: {key}")

    if tag is TypeTag.STRING:
        if portable is None:
            return False
        if _is_list_wrapper(portable):
            raise CodecError(f"string {key!r}: value is a list wrapper")
        await store.set_string(key, _to_text(portable))
        return True

    if tag is TypeTag.HASH:
        if not isinstance(portable, dict):
            raise CodecError(f"hash {key!r}: expected a field map, got {type(portable).__name__}")
        if not portable:
            return False
        fields = {str(name): _to_text(value) for name, value in portable.items()}
        await store.delete_key(key)
        await store.set_hash_fields(key, fields)
        return True

    if tag is TypeTag.SET:
        if not isinstance(portable, list):
            raise CodecError(f"set {key!r}: expected a member array, got {type(portable).__name__}")
        if not portable:
            return False
        members = [_to_text(member) for member in portable]
        await store.delete_key(key)
        await store.add_set_members(key, members)
        return True

    if tag is TypeTag.ZSET:
        pairs = _zset_pairs(key, portable)
        if not pairs:
            return False
        await store.delete_key(key)
        await store.add_sorted_set_members(key, pairs)
        return True

    items = [_to_text(item) for item in _list_items(key, portable)]
    if not items:
        return False
    await store.delete_key(key)
    await store.append_list_items(key, items)
    return True


def check_manifest(document: BackupDocument) -> List[str]:
    """Report mismatches between the manifest and the four containers.

    Returns a list of human-readable problems; empty when every container
    entry has exactly one manifest entry with the right tag and vice versa.
    """
    problems: List[str] = []
    seen: Dict[Tuple[str, str], int] = {}

    for entry in document.key_manifest:
        seen[(entry.key, entry.type)] = seen.get((entry.key, entry.type), 0) + 1

    for (key, type_name), count in seen.items():
        if count > 1:
            problems.append(f"{type_name} key {key!r} appears {count} times in the manifest")
        tag = TypeTag.parse(type_name)
        if tag is None:
            problems.append(f"key {key!r} has unknown type {type_name!r}")
        elif key not in _container(document, tag):
            problems.append(f"{type_name} key {key!r} is missing from its container")

    def expected_tag(container_name: str, value: Any) -> TypeTag:
        if container_name == "simpleKeys":
            if _is_list_wrapper(value):
                return TypeTag.LIST
            return TypeTag.STRING
        return {
            "hashKeys": TypeTag.HASH,
            "setKeys": TypeTag.SET,
            "sortedSetKeys": TypeTag.ZSET,
        }[container_name]

    containers = {
        "simpleKeys": document.simple_keys,
        "hashKeys": document.hash_keys,
        "setKeys": document.set_keys,
        "sortedSetKeys": document.sorted_set_keys,
    }
    for container_name, container in containers.items():
        for key, value in container.items():
            tag = expected_tag(container_name, value)
            if (key, tag.value) not in seen:
                problems.append(f"{container_name} key {key!r} has no {tag.value} manifest entry")

    return problems
