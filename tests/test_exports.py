import csv
import json
from datetime import date, datetime, timezone
from decimal import Decimal
from io import StringIO

import pytest

from csv_utils import (
    export_report_csv,
    export_report_json,
    report_filename,
    sanitize_csv_value,
)
from models import TransactionType
from periods import PeriodSpec
from schemas import TransactionRecord
from services import ReportService


def _record(id_, type_, amount, on, category):
    return TransactionRecord(
        id=id_, user_id=1, type=type_, category=category, amount=Decimal(amount), date=on
    )


@pytest.fixture
def march_report(make_store):
    records = [
        _record(1, TransactionType.income, "5000", date(2024, 3, 1), "Salary"),
        _record(2, TransactionType.expense, "2000", date(2024, 3, 5), "Food"),
        _record(3, TransactionType.expense, "120.5", date(2024, 3, 7), "=SUM(A1:A9)"),
    ]
    return ReportService(make_store(records), user_id=1).build(
        PeriodSpec.month(2024, 3), today=date(2024, 3, 20)
    )


def test_csv_summary_and_breakdown(march_report) -> None:
    rows = list(csv.reader(StringIO(export_report_csv(march_report))))
    assert rows[0] == ["Financial Report Summary"]
    assert rows[1] == ["Period", "Income", "Expenses", "Balance"]
    assert rows[2] == ["March 2024", "5000.00", "2120.50", "2879.50"]
    assert rows[3] == []
    assert rows[4] == ["Category Breakdown"]
    assert rows[5] == ["Category", "Amount"]
    assert rows[6] == ["Food", "2000.00"]
    assert rows[7] == ["\t=SUM(A1:A9)", "120.50"]


def test_csv_without_expenses_has_no_breakdown(make_store) -> None:
    report = ReportService(make_store([]), user_id=1).build(
        PeriodSpec.year(2023), today=date(2024, 1, 1)
    )
    rows = list(csv.reader(StringIO(export_report_csv(report))))
    assert rows == [
        ["Financial Report Summary"],
        ["Period", "Income", "Expenses", "Balance"],
        ["2023", "0.00", "0.00", "0.00"],
    ]


def test_json_export(march_report) -> None:
    generated = datetime(2024, 3, 20, 8, 30, tzinfo=timezone.utc)
    data = json.loads(export_report_json(march_report, generated))
    assert data["period"] == "March 2024"
    assert data["type"] == "month"
    assert (data["start"], data["end"]) == ("2024-03-01", "2024-03-31")
    assert (data["income"], data["expenses"], data["balance"]) == (
        "5000.00",
        "2120.50",
        "2879.50",
    )
    assert data["categories"][0] == {"category": "Food", "amount": "2000.00"}
    assert [i["kind"] for i in data["insights"]] == ["caution", "informational"]
    assert data["generatedAt"] == "2024-03-20T08:30:00+00:00"


def test_report_filename(march_report) -> None:
    assert report_filename(march_report, "csv") == (
        "month-report-2024-03-01_2024-03-31.csv"
    )


@pytest.mark.parametrize(
    "value, expected",
    [
        ("Food", "Food"),
        ("  Food  ", "Food"),
        ("", ""),
        ("=1+1", "\t=1+1"),
        ("+44", "\t+44"),
        ("@cmd", "\t@cmd"),
        ("cmd /c calc", "\tcmd /c calc"),
        ("https://example.com", "\thttps://example.com"),
    ],
)
def test_sanitize_csv_value(value, expected) -> None:
    assert sanitize_csv_value(value) == expected
