"""
Unit Tests for the Reconciliation Service

Tests cover:
1. End-to-end report for a selected period
2. Denylisted accounts never reaching a view
3. Cancellation toggle
4. Search filtering
5. Determinism and memoization
6. Export tables
"""

import pytest
from concurrent.futures import ThreadPoolExecutor
from datetime import date

from reconcile.config import DEFAULT_TEST_ACCOUNT_IDS, CANCELED_STATUS
from reconcile.errors import UnknownViewError
from reconcile.export import period_label, export_file_name
from reconcile.models import ReconciliationRequest, TransactionRecord
from reconcile.periods import carryover
from reconcile.service import ReconciliationService


TEST_ID = DEFAULT_TEST_ACCOUNT_IDS[3]


def sheet_row(customer_id, name, stamp, kind, delta, total, **extra):
    row = {
        "고객ID": customer_id, "고객명": name, "처리일": stamp,
        "타입": kind, "포인트": delta, "토탈포인트": total,
    }
    row.update(extra)
    return row


ROWS = [
    sheet_row("C1", "Kim", "2023/12/20 08:00:00", "적립", 50, 50, 관리자메모="가입축하"),
    sheet_row("C1", "Kim", "2024/01/05 10:00:00", "적립", 100, 150, 관리자메모="구매적립"),
    sheet_row("C1", "Kim", "2024/01/10 09:00:00", "사용", -30, 120, 업체명="카페", 사용자메모="상품명(라떼)"),
    sheet_row("C2", "Lee", "2024/01/07 11:00:00", "적립", 200, 200, 관리자메모="구매적립"),
    sheet_row("C2", "Lee", "2024/01/08 11:00:00", "사용", -80, 120, 업체명="베이커리", 사용자메모="상품명(식빵)"),
    sheet_row("C2", "Lee", "2024/01/09 11:00:00", "사용", -20, 150, 업체명="카페", 사용자메모="상품명(라떼)", 주문상태=CANCELED_STATUS),
    sheet_row(TEST_ID, "QA", "2024/01/09 12:00:00", "사용", -999, 1, 업체명="카페", 사용자메모="상품명(라떼)"),
    sheet_row(TEST_ID, "QA", "2024/01/09 12:05:00", "적립", 999, 1000, 관리자메모="테스트"),
]


def request(**overrides):
    params = {"rows": ROWS, "period": "2024-01"}
    params.update(overrides)
    return ReconciliationRequest.model_validate(params)


class TestReport:
    """Tests for a full period report."""

    def test_period_report(self):
        """Totals, aggregates and ledgers for January."""
        service = ReconciliationService()

        report = service.reconcile(request())

        assert report.period == "2024-01"
        assert report.available_periods == ["2024-01", "2023-12"]
        assert report.canceled_count == 1

        assert report.totals.carryover == 50
        assert report.totals.earned == 300
        assert report.totals.used == -110
        assert report.totals.balance == 240

        assert [(c.key, c.total_points, c.user_count) for c in report.earn_categories] == [("구매적립", 300, 2)]
        assert [(m.key, m.total_points) for m in report.merchants] == [("베이커리", -80), ("카페", -30)]
        assert [(p.key, p.total_points) for p in report.products] == [("식빵", -80), ("라떼", -30)]

        by_id = {u.id: u for u in report.users}
        assert by_id["C1"].start_point == 50
        assert by_id["C1"].computed_balance == 120
        assert by_id["C1"].mismatch is False
        assert by_id["C2"].start_point == 0
        assert by_id["C2"].computed_balance == 120
        assert by_id["C2"].observed_balance == 120
        assert report.mismatch_count == 0

    def test_denylisted_accounts_never_appear(self):
        """Test accounts contribute to no view, whatever their kind or period."""
        service = ReconciliationService()

        for period in ("2024-01", "2023-12", None):
            report = service.reconcile(request(period=period, include_canceled=True))

            assert TEST_ID not in {u.id for u in report.users}
            assert "테스트" not in {c.key for c in report.earn_categories}
            assert sum(m.total_points for m in report.merchants) > -999

    def test_custom_denylist(self):
        """An injected denylist replaces the default."""
        service = ReconciliationService(denylist=["C2"])

        report = service.reconcile(request())

        assert {u.id for u in report.users} == {"C1", TEST_ID}

    def test_include_canceled(self):
        """Canceled rows join the views when requested."""
        service = ReconciliationService()

        report = service.reconcile(request(include_canceled=True))

        assert report.totals.used == -130
        by_id = {u.id: u for u in report.users}
        assert by_id["C2"].observed_balance == 150
        assert by_id["C2"].computed_balance == 100
        assert by_id["C2"].mismatch is True
        assert report.mismatch_count == 1

    def test_all_periods(self):
        """No period: everything is current and nothing carries over."""
        service = ReconciliationService()

        report = service.reconcile(request(period=None))

        assert report.period is None
        assert report.totals.carryover == 0
        assert report.totals.earned == 350
        assert {u.id: u.start_point for u in report.users}["C1"] == 0

    def test_carryover_matches_direct_computation(self):
        """Report carryover equals the calculator run on filtered raw rows."""
        service = ReconciliationService()
        rows = [TransactionRecord.model_validate(r) for r in ROWS]
        valid = [r for r in rows if r.customer_id != TEST_ID and r.status != CANCELED_STATUS]

        report = service.reconcile(request())

        assert report.totals.carryover == carryover(valid, "2024-01")

    def test_search_filters_views_but_not_mismatch_count(self):
        """Search narrows every view; the mismatch badge counts all users."""
        service = ReconciliationService()

        report = service.reconcile(request(include_canceled=True, search="KIM"))

        assert [u.id for u in report.users] == ["C1"]
        assert report.mismatch_count == 1
        assert report.merchants == []
        assert report.earn_categories == []


class TestDeterminism:
    """Tests for repeatability and the last-result memo."""

    def test_identical_inputs_identical_output(self):
        """Two independent services agree byte for byte."""
        first = ReconciliationService().reconcile(request())
        second = ReconciliationService().reconcile(request())

        assert first.model_dump_json() == second.model_dump_json()

    def test_last_result_is_reused(self):
        """Repeating a request returns the remembered report."""
        service = ReconciliationService()

        first = service.reconcile(request())

        assert service.reconcile(request()) is first
        assert service.reconcile(request(search="lee")) is not first

    def test_input_rows_untouched(self):
        """The pipeline never mutates ingested records."""
        req = request(include_canceled=True)
        before = [row.model_dump() for row in req.rows]

        ReconciliationService().reconcile(req)

        assert [row.model_dump() for row in req.rows] == before

    def test_shared_service_pairs_each_request_with_its_report(self):
        """Concurrent callers on one service each get the report for their own request."""
        service = ReconciliationService()
        periods = ["2024-01", "2023-12", None] * 40

        with ThreadPoolExecutor(max_workers=8) as pool:
            reports = list(pool.map(lambda period: service.reconcile(request(period=period)), periods))

        for period, report in zip(periods, reports):
            assert report.period == period
            expected_earned = {"2024-01": 300, "2023-12": 50, None: 350}[period]
            assert report.totals.earned == expected_earned


class TestPeriodListing:
    """Tests for period discovery."""

    def test_available_and_initial(self):
        """Periods exclude test accounts; the first row picks the initial one."""
        rows = [TransactionRecord.model_validate(r) for r in ROWS]

        listing = ReconciliationService().list_periods(rows)

        assert listing.available_periods == ["2024-01", "2023-12"]
        assert listing.initial_period == "2023-12"


class TestExport:
    """Tests for export tables."""

    def test_user_export_columns(self):
        """User sheet keeps the fixed column order and mismatch marker."""
        service = ReconciliationService()

        table = service.export(request(include_canceled=True), "user", today=date(2024, 2, 1))

        assert table.sheet_name == "사용자별"
        assert table.file_name == "2024-01_사용자별_2024-02-01.xlsx"
        assert table.columns == ["고객ID", "고객명", "시작포인트", "적립포인트", "사용포인트", "계산잔여", "실제잔여", "불일치"]
        records = {r["고객ID"]: r for r in table.records}
        assert list(records["C2"]) == table.columns
        assert records["C2"]["불일치"] == "O"
        assert records["C1"]["불일치"] == ""

    @pytest.mark.parametrize("view, sheet, first_column", [
        ("earn", "적립내역", "적립유형(관리자메모)"),
        ("merchant", "업체별", "업체명"),
        ("product", "상품별", "상품명"),
    ])
    def test_aggregate_exports(self, view, sheet, first_column):
        """Each aggregate view exports label, points and user count."""
        table = ReconciliationService().export(request(), view)

        assert table.sheet_name == sheet
        assert table.columns[0] == first_column
        assert len(table.records) > 0
        assert all(list(r) == table.columns for r in table.records)

    def test_unknown_view(self):
        """Unknown view names are rejected."""
        with pytest.raises(UnknownViewError):
            ReconciliationService().export(request(), "daily")

    def test_labels(self):
        """Period label and all-periods file name."""
        assert period_label("2024-03") == "2024년 3월"
        assert period_label(None) == ""
        assert export_file_name(None, "업체별", date(2024, 5, 6)) == "전체_업체별_2024-05-06.xlsx"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
