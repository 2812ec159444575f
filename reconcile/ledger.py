"""
Per-user ledger reconciliation.

For every user active in a period the builder derives an opening balance,
the period's earn/use totals, the balance the source system last reported,
and a recomputed closing balance. Users whose recomputed balance drifts more
than ``MISMATCH_TOLERANCE`` from the reported one are flagged.
"""

from decimal import Decimal
from typing import Mapping, Sequence

from .config import MISMATCH_TOLERANCE
from .models import (
    ZERO,
    TransactionRecord,
    LedgerTransaction,
    UserLedger,
    PeriodTotals,
)
from .periods import sort_by_time


def period_totals(current_rows: Sequence[TransactionRecord], opening: Decimal) -> PeriodTotals:
    earned = used = ZERO
    earn_count = use_count = 0
    earners = set()
    for row in current_rows:
        if row.is_use:
            used += row.point_delta
            use_count += 1
        else:
            earned += row.point_delta
            earn_count += 1
            earners.add(row.customer_id)

    return PeriodTotals(
        carryover=opening,
        earned=earned,
        used=used,
        balance=opening + earned + used,
        earn_count=earn_count,
        use_count=use_count,
        earn_user_count=len(earners),
    )


def is_mismatch(computed: Decimal, observed: Decimal) -> bool:
    return abs(computed - observed) > MISMATCH_TOLERANCE


def build_user_ledgers(
    current_rows: Sequence[TransactionRecord],
    prior: Mapping[str, Decimal],
) -> list[UserLedger]:
    """Fold the period's rows into one ledger per user.

    ``prior`` maps customer_id to the last balance reported before the period.
    Users without prior history open at the balance implied by their first
    row in the period (reported total minus that row's delta).
    """
    states: dict[str, dict] = {}
    for row in sort_by_time(current_rows):
        state = states.get(row.customer_id)
        if state is None:
            state = states[row.customer_id] = {
                "name": row.customer_name,
                "earned": ZERO,
                "used": ZERO,
                "observed": ZERO,
                "last_seen": "",
                "transactions": [],
                "first": row,
            }
        state["name"] = row.customer_name

        if row.is_use:
            state["used"] += row.point_delta
        else:
            state["earned"] += row.point_delta

        # same timestamp: the smaller reported total wins
        if row.processed_at > state["last_seen"]:
            state["observed"] = row.reported_total
            state["last_seen"] = row.processed_at
        elif row.processed_at == state["last_seen"] and row.reported_total < state["observed"]:
            state["observed"] = row.reported_total

        state["transactions"].append(LedgerTransaction(
            processed_at=row.processed_at,
            kind=row.kind,
            point_delta=row.point_delta,
            reported_total=row.reported_total,
            memo=row.admin_memo or row.user_memo,
            status=row.status,
        ))

    ledgers = []
    for customer_id, state in states.items():
        if state["earned"] == 0 and state["used"] == 0:
            continue

        if customer_id in prior:
            start = prior[customer_id]
        else:
            first = state["first"]
            start = first.reported_total - first.point_delta

        computed = start + state["earned"] + state["used"]
        ledgers.append(UserLedger(
            id=customer_id,
            name=state["name"],
            start_point=start,
            earned_point=state["earned"],
            used_point=state["used"],
            observed_balance=state["observed"],
            computed_balance=computed,
            mismatch=is_mismatch(computed, state["observed"]),
            transactions=state["transactions"],
        ))

    ledgers.sort(key=lambda ledger: ledger.used_point)
    return ledgers


def count_mismatches(ledgers: Sequence[UserLedger]) -> int:
    return sum(1 for ledger in ledgers if ledger.mismatch)
