import logging
from datetime import date, datetime, timezone
from typing import Iterator, List, Sequence, TypeVar

logger = logging.getLogger("nano-kvbackup")

T = TypeVar("T")


def batched(items: Sequence[T], size: int) -> Iterator[List[T]]:
    """Yield consecutive slices of ``items`` with at most ``size`` elements."""
    if size <= 0:
        raise ValueError(f"batch size must be positive, got {size}")
    for start in range(0, len(items), size):
        yield list(items[start:start + size])


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def utc_today() -> date:
    return utc_now().date()


def isoformat_utc(moment: datetime) -> str:
    """Format as ISO-8601 with millisecond precision and a ``Z`` suffix."""
    moment = moment.astimezone(timezone.utc)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")
