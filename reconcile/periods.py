import re
from decimal import Decimal
from typing import Iterable, Optional, Sequence

from .errors import InvalidPeriodError
from .models import ZERO, TransactionRecord

PERIOD_KEY = re.compile(r"^\d{4}-\d{2}$")
TIMESTAMP_PERIOD = re.compile(r"(\d{4})[/\-.](\d{2})")


def validate_period(period: Optional[str]) -> Optional[str]:
    if period is None or PERIOD_KEY.match(period):
        return period
    raise InvalidPeriodError(f"Period must look like YYYY-MM, got {period!r}")


def period_of(row: TransactionRecord) -> str:
    """YYYY-MM of the row's timestamp, or "" when it carries no date."""
    match = TIMESTAMP_PERIOD.search(row.processed_at)
    if not match:
        return ""
    return f"{match.group(1)}-{match.group(2)}"


def available_periods(rows: Iterable[TransactionRecord]) -> list[str]:
    periods = {period_of(row) for row in rows}
    periods.discard("")
    return sorted(periods, reverse=True)


def initial_period(rows: Iterable[TransactionRecord]) -> Optional[str]:
    for row in rows:
        period = period_of(row)
        if period:
            return period
    return None


def sort_by_time(rows: Iterable[TransactionRecord]) -> list[TransactionRecord]:
    # stable: rows sharing a timestamp keep their input order
    return sorted(rows, key=lambda row: row.processed_at)


def rows_in_period(rows: Sequence[TransactionRecord], period: Optional[str]) -> list[TransactionRecord]:
    if not validate_period(period):
        return list(rows)
    return [row for row in rows if period_of(row) == period]


def rows_before_period(rows: Sequence[TransactionRecord], period: Optional[str]) -> list[TransactionRecord]:
    """Rows strictly before ``period``. Undated rows ("") count as earliest."""
    if not validate_period(period):
        return []
    return [row for row in rows if period_of(row) < period]


def last_reported_totals(rows: Iterable[TransactionRecord]) -> dict[str, Decimal]:
    """customer_id -> reported total of that customer's chronologically last row."""
    totals: dict[str, Decimal] = {}
    for row in sort_by_time(rows):
        totals[row.customer_id] = row.reported_total
    return totals


def prior_balances(rows: Sequence[TransactionRecord], period: Optional[str]) -> dict[str, Decimal]:
    return last_reported_totals(rows_before_period(rows, period))


def carryover(rows: Sequence[TransactionRecord], period: Optional[str]) -> Decimal:
    """Opening balance rolled into ``period``: sum of every user's last prior balance."""
    return sum(prior_balances(rows, period).values(), ZERO)
