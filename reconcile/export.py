from datetime import date
from typing import Any, Callable, Optional

from .config import ALL_PERIODS_LABEL
from .errors import UnknownViewError
from .models import CategoryAggregate, UserLedger, ReconciliationReport, ExportTable, as_number


def _earn_record(item: CategoryAggregate) -> dict[str, Any]:
    return {
        "적립유형(관리자메모)": item.key,
        "총적립포인트": as_number(item.total_points),
        "적립인원": item.user_count,
    }


def _merchant_record(item: CategoryAggregate) -> dict[str, Any]:
    return {
        "업체명": item.key,
        "사용포인트": as_number(item.total_points),
        "사용인원": item.user_count,
    }


def _product_record(item: CategoryAggregate) -> dict[str, Any]:
    return {
        "상품명": item.key,
        "사용포인트": as_number(item.total_points),
        "사용인원": item.user_count,
    }


def _user_record(item: UserLedger) -> dict[str, Any]:
    return {
        "고객ID": item.id,
        "고객명": item.name,
        "시작포인트": as_number(item.start_point),
        "적립포인트": as_number(item.earned_point),
        "사용포인트": as_number(item.used_point),
        "계산잔여": as_number(item.computed_balance),
        "실제잔여": as_number(item.observed_balance),
        "불일치": "O" if item.mismatch else "",
    }


# view -> (sheet name, column labels, report attribute, row mapper)
VIEWS: dict[str, tuple[str, list[str], str, Callable[[Any], dict[str, Any]]]] = {
    "earn": ("적립내역", ["적립유형(관리자메모)", "총적립포인트", "적립인원"], "earn_categories", _earn_record),
    "merchant": ("업체별", ["업체명", "사용포인트", "사용인원"], "merchants", _merchant_record),
    "product": ("상품별", ["상품명", "사용포인트", "사용인원"], "products", _product_record),
    "user": (
        "사용자별",
        ["고객ID", "고객명", "시작포인트", "적립포인트", "사용포인트", "계산잔여", "실제잔여", "불일치"],
        "users",
        _user_record,
    ),
}


def period_label(period: Optional[str]) -> str:
    """2024-03 -> '2024년 3월'."""
    if not period:
        return ""
    year, month = period.split("-")
    return f"{year}년 {int(month)}월"


def export_file_name(period: Optional[str], sheet_name: str, today: Optional[date] = None) -> str:
    today = today or date.today()
    return f"{period or ALL_PERIODS_LABEL}_{sheet_name}_{today.isoformat()}.xlsx"


def export_view(report: ReconciliationReport, view: str, today: Optional[date] = None) -> ExportTable:
    if view not in VIEWS:
        raise UnknownViewError(f"Unknown view {view!r}; expected one of {', '.join(VIEWS)}")

    sheet_name, columns, attribute, to_record = VIEWS[view]
    return ExportTable(
        view=view,
        sheet_name=sheet_name,
        file_name=export_file_name(report.period, sheet_name, today),
        columns=list(columns),
        records=[to_record(item) for item in getattr(report, attribute)],
    )
