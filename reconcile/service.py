import logging
from datetime import date
from typing import Iterable, Optional, Sequence

from .aggregates import earn_by_memo, use_by_merchant, use_by_product
from .config import load_denylist
from .errors import ReconciliationError, InvalidPeriodError, UnknownViewError
from .export import export_view
from .filters import (
    exclude_denylisted,
    exclude_canceled,
    count_canceled,
    filter_by_text,
    aggregate_labels,
    ledger_labels,
)
from .ledger import period_totals, build_user_ledgers, count_mismatches
from .models import (
    ZERO,
    TransactionRecord,
    ReconciliationRequest,
    ReconciliationReport,
    PeriodListing,
    ExportTable,
)
from .periods import (
    available_periods,
    initial_period,
    rows_in_period,
    prior_balances,
    validate_period,
)

log = logging.getLogger("pointrecon.service")

__all__ = [
    "ReconciliationService",
    "ReconciliationError",
    "InvalidPeriodError",
    "UnknownViewError",
]


class ReconciliationService:
    """Recomputes every view from a full row set; remembers only the last answer."""

    def __init__(self, denylist: Optional[Iterable[str]] = None):
        self.denylist = frozenset(denylist) if denylist is not None else load_denylist()
        # (request key, report), replaced in a single assignment
        self._last: Optional[tuple[str, ReconciliationReport]] = None

    def real_rows(self, rows: Iterable[TransactionRecord]) -> list[TransactionRecord]:
        return exclude_denylisted(rows, self.denylist)

    def reconcile(self, request: ReconciliationRequest) -> ReconciliationReport:
        key = request.model_dump_json()
        last = self._last
        if last is not None and last[0] == key:
            log.debug("reusing report for period=%s", request.period)
            return last[1]

        report = self._build_report(request)
        self._last = (key, report)
        return report

    def _build_report(self, request: ReconciliationRequest) -> ReconciliationReport:
        period = validate_period(request.period)
        real = self.real_rows(request.rows)
        valid = exclude_canceled(real, request.include_canceled)
        current = rows_in_period(valid, period)

        prior = prior_balances(valid, period)
        totals = period_totals(current, opening=sum(prior.values(), ZERO))
        users = build_user_ledgers(current, prior)

        report = ReconciliationReport(
            period=period,
            available_periods=available_periods(valid),
            canceled_count=count_canceled(real),
            totals=totals,
            earn_categories=filter_by_text(earn_by_memo(current), request.search, aggregate_labels),
            merchants=filter_by_text(use_by_merchant(current), request.search, aggregate_labels),
            products=filter_by_text(use_by_product(current), request.search, aggregate_labels),
            users=filter_by_text(users, request.search, ledger_labels),
            mismatch_count=count_mismatches(users),
        )
        log.info(
            "reconciled period=%s rows=%d denylisted=%d current=%d users=%d mismatches=%d",
            period or "all", len(request.rows), len(request.rows) - len(real),
            len(current), len(users), report.mismatch_count,
        )
        return report

    def list_periods(self, rows: Sequence[TransactionRecord], include_canceled: bool = False) -> PeriodListing:
        real = self.real_rows(rows)
        return PeriodListing(
            available_periods=available_periods(exclude_canceled(real, include_canceled)),
            initial_period=initial_period(real),
        )

    def export(self, request: ReconciliationRequest, view: str, today: Optional[date] = None) -> ExportTable:
        return export_view(self.reconcile(request), view, today)
