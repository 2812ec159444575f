"""
Loyalty Point Reconciliation

This module provides:
- Immutable transaction records parsed from point-history sheets
- Denylist and cancellation filters
- Period partitioning and carried-over opening balances
- Per-user ledgers with mismatch detection against reported balances
- Earn-category, merchant and product aggregates
"""

from .models import (
    TransactionKind,
    TransactionRecord,
    UserLedger,
    CategoryAggregate,
    PeriodTotals,
    ReconciliationRequest,
    ReconciliationReport,
)
from .errors import ReconciliationError, InvalidPeriodError, UnknownViewError
from .service import ReconciliationService

__all__ = [
    "TransactionKind",
    "TransactionRecord",
    "UserLedger",
    "CategoryAggregate",
    "PeriodTotals",
    "ReconciliationRequest",
    "ReconciliationReport",
    "ReconciliationError",
    "InvalidPeriodError",
    "UnknownViewError",
    "ReconciliationService",
]
