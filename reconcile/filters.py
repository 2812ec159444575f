from typing import Callable, Iterable, Sequence, TypeVar

from .config import CANCELED_STATUS
from .models import TransactionRecord, UserLedger, CategoryAggregate

T = TypeVar("T")


def exclude_denylisted(rows: Iterable[TransactionRecord], denylist: Iterable[str]) -> list[TransactionRecord]:
    blocked = frozenset(denylist)
    return [row for row in rows if row.customer_id not in blocked]


def is_canceled(row: TransactionRecord) -> bool:
    return row.status == CANCELED_STATUS


def exclude_canceled(rows: Sequence[TransactionRecord], include_canceled: bool) -> list[TransactionRecord]:
    if include_canceled:
        return list(rows)
    return [row for row in rows if not is_canceled(row)]


def count_canceled(rows: Iterable[TransactionRecord]) -> int:
    return sum(1 for row in rows if is_canceled(row))


def filter_by_text(items: Sequence[T], term: str, labels: Callable[[T], Iterable[str]]) -> list[T]:
    """Case-insensitive substring match over each item's label fields.

    An empty term keeps everything; items are returned as-is, never copied.
    """
    if not term:
        return list(items)
    needle = term.lower()
    return [item for item in items if any(needle in (label or "").lower() for label in labels(item))]


def aggregate_labels(item: CategoryAggregate) -> tuple[str]:
    return (item.key,)


def ledger_labels(item: UserLedger) -> tuple[str, str]:
    return (item.name, item.id)
