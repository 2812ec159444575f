import re
from typing import Callable, Iterable

from .config import NO_MEMO_LABEL, NO_MERCHANT_LABEL, UNKNOWN_PRODUCT_LABEL
from .models import ZERO, TransactionRecord, CategoryAggregate, DateBucket

PRODUCT_NAME = re.compile(r"상품명\(([^)]+)\)")


def memo_label(row: TransactionRecord) -> str:
    label = row.admin_memo.strip().replace("\r", "").replace("\n", "")
    return label or NO_MEMO_LABEL


def merchant_label(row: TransactionRecord) -> str:
    return row.merchant or NO_MERCHANT_LABEL


def product_label(row: TransactionRecord) -> str:
    match = PRODUCT_NAME.search(row.user_memo)
    return match.group(1) if match else UNKNOWN_PRODUCT_LABEL


def _group(
    rows: Iterable[TransactionRecord],
    label: Callable[[TransactionRecord], str],
    by_date: bool = False,
) -> list[CategoryAggregate]:
    groups: dict[str, dict] = {}
    for row in rows:
        key = label(row)
        group = groups.get(key)
        if group is None:
            group = groups[key] = {"points": ZERO, "users": set(), "dates": {}}
        group["points"] += row.point_delta
        group["users"].add(row.customer_id)

        if by_date:
            day = row.processed_at[:10]
            bucket = group["dates"].setdefault(day, {"points": ZERO, "count": 0})
            bucket["points"] += row.point_delta
            bucket["count"] += 1

    return [
        CategoryAggregate(
            key=key,
            total_points=group["points"],
            user_count=len(group["users"]),
            dates=[
                DateBucket(date=day, points=bucket["points"], count=bucket["count"])
                for day, bucket in sorted(group["dates"].items())
            ],
        )
        for key, group in groups.items()
    ]


def earn_by_memo(rows: Iterable[TransactionRecord]) -> list[CategoryAggregate]:
    """Earn rows grouped by admin memo, largest totals first, with per-day buckets."""
    aggregates = _group((row for row in rows if not row.is_use), memo_label, by_date=True)
    aggregates.sort(key=lambda item: item.total_points, reverse=True)
    return aggregates


def use_by_merchant(rows: Iterable[TransactionRecord]) -> list[CategoryAggregate]:
    # ascending by total; use deltas are non-positive
    aggregates = _group((row for row in rows if row.is_use), merchant_label)
    aggregates.sort(key=lambda item: item.total_points)
    return aggregates


def use_by_product(rows: Iterable[TransactionRecord]) -> list[CategoryAggregate]:
    aggregates = _group((row for row in rows if row.is_use), product_label)
    aggregates.sort(key=lambda item: item.total_points)
    return aggregates
