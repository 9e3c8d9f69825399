"""
Tests for CSV and JSON report exports.
"""

import csv
import io
import json
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from bookkeeper.models import Language, ReportPeriod, ReportType
from bookkeeper.reports import (
    CSV_HEADER,
    build_report,
    csv_filename,
    export_transactions_csv,
    report_filename,
    report_to_json,
)

from conftest import START, make_transaction


@pytest.fixture
def transactions():
    return [
        make_transaction("1500", "income", "Sales", START - timedelta(days=2), "Silk, wholesale", "3"),
        make_transaction("300", "expense", "Office Rent", START - timedelta(days=10), 'Stall "B12" rent', "2"),
        make_transaction("900", "income", "Consulting", START - timedelta(days=200), "Old job", "1"),
    ]


class TestCsvExport:
    """Tests for export_transactions_csv()."""

    def test_header_and_rows(self, transactions):
        """Test one row per transaction plus the header."""
        text = export_transactions_csv(transactions)
        rows = list(csv.reader(io.StringIO(text)))

        assert rows[0] == CSV_HEADER
        assert len(rows) == 4

    def test_row_values(self, transactions):
        """Test date format, amount and type columns."""
        rows = list(csv.reader(io.StringIO(export_transactions_csv(transactions))))
        assert rows[1] == ["2024-05-30 12:00", "Silk, wholesale", "Sales", "income", "1500", "cash"]

    def test_quoting(self, transactions):
        """Test that commas and quotes survive a CSV round trip."""
        text = export_transactions_csv(transactions)
        assert '"Silk, wholesale"' in text
        rows = list(csv.reader(io.StringIO(text)))
        assert rows[2][1] == 'Stall "B12" rent'

    def test_empty(self):
        """Test that an empty list still has the header."""
        assert export_transactions_csv([]) == ",".join(CSV_HEADER) + "\n"

    def test_filename(self):
        """Test the CSV file name."""
        assert csv_filename(START) == "transactions_2024-06-01.csv"


class TestReport:
    """Tests for build_report()."""

    def test_profit_loss(self, transactions):
        """Test totals over the last month."""
        report = build_report(transactions, ReportPeriod.MONTH, ReportType.PROFIT_LOSS, START)

        assert report.total_income == Decimal("1500")
        assert report.total_expenses == Decimal("300")
        assert report.net_profit == Decimal("1200")
        assert report.profit_margin == Decimal("80")
        assert report.transactions_count == 2
        assert report.cash_flow is None
        assert report.category_analysis is None

    def test_cash_flow_section(self, transactions):
        """Test that cash-flow reports carry the monthly series."""
        report = build_report(transactions, ReportPeriod.YEAR, ReportType.CASH_FLOW, START)
        assert [b.month for b in report.cash_flow] == ["2023-11", "2024-05"]
        assert report.category_analysis is None

    def test_category_section(self, transactions):
        """Test that category reports carry the top categories."""
        report = build_report(transactions, ReportPeriod.YEAR, ReportType.CATEGORY_ANALYSIS, START)
        top_income = report.category_analysis.top_income_categories
        assert [c.category for c in top_income] == ["Sales", "Consulting"]
        assert report.cash_flow is None

    def test_category_section_localized(self):
        """Test that mixed-language labels are merged and named in one language."""
        rows = [
            make_transaction("1000", "income", "Sales", START - timedelta(days=1), "", "3"),
            make_transaction("400", "income", "Продажи", START - timedelta(days=2), "", "2"),
            make_transaction("600", "income", "Услуги", START - timedelta(days=3), "", "1"),
        ]

        report = build_report(
            rows, ReportPeriod.MONTH, ReportType.CATEGORY_ANALYSIS, START, Language.RU
        )

        top_income = report.category_analysis.top_income_categories
        assert [(c.category, c.amount) for c in top_income] == [
            ("Продажи", Decimal("1400")),
            ("Услуги", Decimal("600")),
        ]

    def test_empty_period(self, transactions):
        """Test a period with no transactions."""
        report = build_report(transactions, ReportPeriod.WEEK, ReportType.PROFIT_LOSS, START + timedelta(days=30))
        assert report.transactions_count == 0
        assert report.profit_margin == Decimal("0")

    def test_generated_at_is_now(self, transactions):
        """Test that the report is stamped with the reference time."""
        report = build_report(transactions, ReportPeriod.WEEK, ReportType.PROFIT_LOSS, START)
        assert report.generated_at == START

    def test_json_keeps_unused_sections_as_null(self, transactions):
        """Test that every report type has the same document shape."""
        report = build_report(transactions, ReportPeriod.MONTH, ReportType.PROFIT_LOSS, START)
        document = json.loads(report_to_json(report))

        assert document["report_type"] == "profit-loss"
        assert document["period"] == "month"
        assert document["cash_flow"] is None
        assert document["category_analysis"] is None

    def test_report_filename(self):
        """Test the report file name."""
        now = datetime(2024, 6, 1, tzinfo=timezone.utc)
        name = report_filename(ReportType.CASH_FLOW, ReportPeriod.QUARTER, now)
        assert name == "cash-flow_report_quarter_2024-06-01.json"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
