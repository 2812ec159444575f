import math
import numbers
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Optional, Annotated
from pydantic import BaseModel, Field, ConfigDict, PlainSerializer, field_validator

from .config import USE_KIND_LABEL

ZERO = Decimal("0")


class TransactionKind(str, Enum):
    EARN = "EARN"
    USE = "USE"


def as_number(value: Any) -> Any:
    """Decimal to a plain JSON number: int when whole, float otherwise."""
    value = Decimal(value)
    if value == value.to_integral_value():
        return int(value)
    return float(value)


# exact inside the folds, plain numbers on the wire
Points = Annotated[Decimal, PlainSerializer(as_number, when_used="json")]


def coerce_points(value: Any) -> Decimal:
    """Numeric cell to an exact Decimal; anything unparseable counts as 0."""
    if value is None:
        return ZERO
    if isinstance(value, bool):
        return Decimal(int(value))
    if isinstance(value, Decimal):
        return value if value.is_finite() else ZERO
    if isinstance(value, numbers.Integral):
        return Decimal(int(value))
    if isinstance(value, numbers.Real):
        number = float(value)
        # str() keeps 0.1 as 0.1 rather than its binary expansion
        return Decimal(str(number)) if math.isfinite(number) else ZERO
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return ZERO
        try:
            number = Decimal(text)
        except InvalidOperation:
            return ZERO
        return number if number.is_finite() else ZERO
    return ZERO


def coerce_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        # spreadsheet readers hand numeric ids back as floats
        return str(int(value))
    return str(value)


class TransactionRecord(BaseModel):
    """One ingested row. Accepts snake_case names or the source sheet's column labels."""

    customer_id: str = Field(default="", alias="고객ID")
    customer_name: str = Field(default="", alias="고객명")
    processed_at: str = Field(default="", alias="처리일")
    kind: TransactionKind = Field(default=TransactionKind.EARN, alias="타입")
    point_delta: Points = Field(default=ZERO, alias="포인트")
    reported_total: Points = Field(default=ZERO, alias="토탈포인트")
    order_number: str = Field(default="", alias="주문번호")
    status: str = Field(default="", alias="주문상태")
    admin_memo: str = Field(default="", alias="관리자메모")
    user_memo: str = Field(default="", alias="사용자메모")
    merchant: str = Field(default="", alias="업체명")

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    @field_validator(
        "customer_id", "customer_name", "processed_at", "order_number",
        "status", "admin_memo", "user_memo", "merchant",
        mode="before",
    )
    @classmethod
    def _text(cls, value: Any) -> str:
        return coerce_text(value)

    @field_validator("point_delta", "reported_total", mode="before")
    @classmethod
    def _points(cls, value: Any) -> Decimal:
        return coerce_points(value)

    @field_validator("kind", mode="before")
    @classmethod
    def _kind(cls, value: Any) -> TransactionKind:
        if isinstance(value, TransactionKind):
            return value
        if value == USE_KIND_LABEL or value == TransactionKind.USE.value:
            return TransactionKind.USE
        return TransactionKind.EARN

    @property
    def is_use(self) -> bool:
        return self.kind == TransactionKind.USE


class LedgerTransaction(BaseModel):
    processed_at: str
    kind: TransactionKind
    point_delta: Points
    reported_total: Points
    memo: str = ""
    status: str = ""


class UserLedger(BaseModel):
    id: str
    name: str
    start_point: Points = ZERO
    earned_point: Points = ZERO
    used_point: Points = ZERO
    observed_balance: Points = ZERO
    computed_balance: Points = ZERO
    mismatch: bool = False
    transactions: list[LedgerTransaction] = Field(default_factory=list)


class DateBucket(BaseModel):
    date: str
    points: Points = ZERO
    count: int = 0


class CategoryAggregate(BaseModel):
    key: str
    total_points: Points = ZERO
    user_count: int = 0
    dates: list[DateBucket] = Field(default_factory=list)


class PeriodTotals(BaseModel):
    carryover: Points = ZERO
    earned: Points = ZERO
    used: Points = ZERO
    balance: Points = ZERO
    earn_count: int = 0
    use_count: int = 0
    earn_user_count: int = 0


class ReconciliationRequest(BaseModel):
    rows: list[TransactionRecord] = Field(default_factory=list)
    period: Optional[str] = Field(default=None, pattern=r"^\d{4}-\d{2}$", description="YYYY-MM, or null for all periods")
    include_canceled: bool = False
    search: str = ""

    model_config = ConfigDict(json_schema_extra={
        "example": {
            "rows": [
                {"고객ID": "C001", "고객명": "홍길동", "처리일": "2024/01/05 10:00:00",
                 "타입": "적립", "포인트": 100, "토탈포인트": 100, "관리자메모": "구매적립"},
                {"고객ID": "C001", "고객명": "홍길동", "처리일": "2024/01/10 12:30:00",
                 "타입": "사용", "포인트": -30, "토탈포인트": 70, "업체명": "카페",
                 "사용자메모": "상품명(아메리카노)"},
            ],
            "period": "2024-01",
            "include_canceled": False,
            "search": "",
        }
    })


class ReconciliationReport(BaseModel):
    period: Optional[str] = None
    available_periods: list[str] = Field(default_factory=list)
    canceled_count: int = 0
    totals: PeriodTotals
    earn_categories: list[CategoryAggregate] = Field(default_factory=list)
    merchants: list[CategoryAggregate] = Field(default_factory=list)
    products: list[CategoryAggregate] = Field(default_factory=list)
    users: list[UserLedger] = Field(default_factory=list)
    mismatch_count: int = 0


class PeriodListing(BaseModel):
    available_periods: list[str]
    initial_period: Optional[str] = None


class ExportTable(BaseModel):
    view: str
    sheet_name: str
    file_name: str
    columns: list[str]
    records: list[dict[str, Any]]
