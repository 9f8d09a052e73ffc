from datetime import date
from decimal import Decimal
from itertools import count

from aggregation import aggregate, monthly_series
from formatting import percent_of
from models import TransactionType
from periods import PeriodSpec, resolve
from schemas import TransactionRecord

_ids = count(1)


def _txn(
    type_: TransactionType, amount: str, on: date, category: str = "Other"
) -> TransactionRecord:
    return TransactionRecord(
        id=next(_ids),
        user_id=1,
        type=type_,
        category=category,
        amount=Decimal(amount),
        date=on,
    )


def _income(amount: str, on: date, category: str = "Salary") -> TransactionRecord:
    return _txn(TransactionType.income, amount, on, category)


def _expense(amount: str, on: date, category: str) -> TransactionRecord:
    return _txn(TransactionType.expense, amount, on, category)


def test_monthly_scenario_totals_and_breakdowns() -> None:
    transactions = [
        _income("5000", date(2024, 3, 1)),
        _expense("2000", date(2024, 3, 5), "Food"),
        _expense("500", date(2024, 3, 10), "Food"),
    ]
    report = aggregate(transactions, resolve(PeriodSpec.month(2024, 3)).interval)

    assert report.has_transactions is True
    assert report.totals == {"income": Decimal("5000"), "expense": Decimal("2500")}
    assert [(c.category, c.amount) for c in report.category_breakdown] == [
        ("Food", Decimal("2500"))
    ]
    assert report.category_breakdown[0].share == Decimal(100)
    assert report.savings_rate == Decimal(50)
    assert len(report.sub_period_breakdown) == 31
    fifth = report.sub_period_breakdown[4]
    assert fifth.label == "2024-03-05"
    assert fifth.expense == Decimal("2000")


def test_empty_input_is_a_distinct_non_error_result() -> None:
    period = resolve(PeriodSpec.year(2023)).interval
    report = aggregate([], period)
    assert report.has_transactions is False
    assert report.income == 0
    assert report.expense == 0
    assert report.category_breakdown == []
    assert report.sub_period_breakdown == []
    assert report.savings_rate == 0


def test_transactions_outside_the_interval_are_ignored() -> None:
    period = resolve(PeriodSpec.month(2024, 3)).interval
    transactions = [
        _expense("10", date(2024, 2, 29), "Food"),
        _expense("20", date(2024, 3, 1), "Food"),
        _expense("30", date(2024, 3, 31), "Food"),
        _expense("40", date(2024, 4, 1), "Food"),
    ]
    report = aggregate(transactions, period)
    assert report.expense == Decimal("50")

    only_outside = aggregate(transactions[:1] + transactions[3:], period)
    assert only_outside.has_transactions is False


def test_missing_kind_defaults_to_zero() -> None:
    period = resolve(PeriodSpec.month(2024, 3)).interval
    report = aggregate([_income("100", date(2024, 3, 2))], period)
    assert report.expense == 0
    assert report.category_breakdown == []


def test_category_breakdown_sorted_descending_with_stable_ties() -> None:
    period = resolve(PeriodSpec.month(2024, 3)).interval
    transactions = [
        _expense("100", date(2024, 3, 1), "Rent"),
        _expense("300", date(2024, 3, 2), "Food"),
        _expense("100", date(2024, 3, 3), "Fun"),
        _expense("50", date(2024, 3, 4), "Bills"),
        _income("999", date(2024, 3, 4), "Salary"),
    ]
    report = aggregate(transactions, period)
    assert [c.category for c in report.category_breakdown] == [
        "Food",
        "Rent",
        "Fun",
        "Bills",
    ]
    amounts = [c.amount for c in report.category_breakdown]
    assert amounts == sorted(amounts, reverse=True)
    assert sum(amounts) == report.expense


def test_category_variants_are_merged_under_first_spelling() -> None:
    period = resolve(PeriodSpec.month(2024, 3)).interval
    transactions = [
        _expense("10", date(2024, 3, 1), "food"),
        _expense("15", date(2024, 3, 2), "Food "),
        _expense("5", date(2024, 3, 3), "FOOD"),
        _expense("7", date(2024, 3, 3), "Eating  out"),
        _expense("8", date(2024, 3, 4), "eating out"),
    ]
    report = aggregate(transactions, period)
    assert [(c.category, c.amount) for c in report.category_breakdown] == [
        ("food", Decimal("30")),
        ("Eating out", Decimal("15")),
    ]


def test_yearly_breakdown_has_twelve_monthly_buckets() -> None:
    period = resolve(PeriodSpec.year(2023)).interval
    transactions = [
        _income("1000", date(2023, 1, 31)),
        _expense("200", date(2023, 1, 2), "Food"),
        _expense("300", date(2023, 7, 15), "Travel"),
    ]
    report = aggregate(transactions, period)
    buckets = report.sub_period_breakdown
    assert len(buckets) == 12
    assert [b.label for b in buckets][:3] == ["2023-01", "2023-02", "2023-03"]
    assert buckets[0].income == Decimal("1000")
    assert buckets[0].expense == Decimal("200")
    assert buckets[6].expense == Decimal("300")
    assert buckets[1].income == 0 and buckets[1].expense == 0


def test_weekly_breakdown_has_seven_daily_buckets() -> None:
    period = resolve(PeriodSpec.week(date(2024, 3, 6))).interval
    report = aggregate([_expense("12.50", date(2024, 3, 10), "Food")], period)
    assert len(report.sub_period_breakdown) == 7
    assert report.sub_period_breakdown[0].label == "2024-03-04"
    assert report.sub_period_breakdown[-1].expense == Decimal("12.50")


def test_custom_range_zero_fills_days_without_data() -> None:
    period = resolve(PeriodSpec.custom(date(2024, 3, 10), date(2024, 3, 12))).interval
    report = aggregate([_expense("42", date(2024, 3, 11), "Food")], period)
    buckets = report.sub_period_breakdown
    assert [b.label for b in buckets] == ["2024-03-10", "2024-03-11", "2024-03-12"]
    assert (buckets[0].income, buckets[0].expense) == (0, 0)
    assert buckets[1].expense == Decimal("42")
    assert (buckets[2].income, buckets[2].expense) == (0, 0)


def test_bucket_sums_round_trip_to_totals() -> None:
    period = resolve(PeriodSpec.month(2024, 2)).interval
    transactions = [
        _income("1200.10", date(2024, 2, 1)),
        _income("300.05", date(2024, 2, 29)),
        _expense("19.99", date(2024, 2, 3), "Food"),
        _expense("0.01", date(2024, 2, 3), "Food"),
        _expense("250", date(2024, 2, 14), "Gifts"),
    ]
    report = aggregate(transactions, period)
    assert len(report.sub_period_breakdown) == 29
    assert sum(b.income for b in report.sub_period_breakdown) == report.income
    assert sum(b.expense for b in report.sub_period_breakdown) == report.expense
    assert report.expense == Decimal("270.00")


def test_amounts_are_summed_exactly() -> None:
    period = resolve(PeriodSpec.month(2024, 3)).interval
    transactions = [_expense("0.10", date(2024, 3, 1), "Snacks") for _ in range(3)]
    assert aggregate(transactions, period).expense == Decimal("0.30")


def test_percent_of_guards_against_zero_total() -> None:
    assert percent_of(Decimal("5"), Decimal("0")) == 0
    assert percent_of(Decimal("1"), Decimal("4")) == Decimal(25)


def test_monthly_series_is_zero_filled_and_chronological() -> None:
    transactions = [
        _income("100", date(2024, 1, 5)),
        _expense("40", date(2024, 3, 9), "Food"),
        _expense("999", date(2023, 9, 1), "Old"),
    ]
    series = monthly_series(transactions, date(2024, 3, 20), months_back=6)
    assert [p.label for p in series] == [
        "2023-10",
        "2023-11",
        "2023-12",
        "2024-01",
        "2024-02",
        "2024-03",
    ]
    assert series[3].income == Decimal("100")
    assert series[5].expense == Decimal("40")
    assert sum(p.expense for p in series) == Decimal("40")
