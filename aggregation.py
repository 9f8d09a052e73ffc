from dataclasses import dataclass, field
from datetime import date, timedelta
from decimal import Decimal
from typing import Iterable, Protocol

from formatting import ZERO, percent_of
from models import Granularity, TransactionType
from periods import Period, add_months, month_start


class TransactionLike(Protocol):
    type: TransactionType
    category: str
    amount: Decimal
    date: date


@dataclass(frozen=True)
class CategoryTotal:
    category: str
    amount: Decimal
    share: Decimal


@dataclass(frozen=True)
class BucketTotal:
    label: str
    start: date
    income: Decimal = ZERO
    expense: Decimal = ZERO


@dataclass(frozen=True)
class AggregateReport:
    period: Period
    income: Decimal = ZERO
    expense: Decimal = ZERO
    category_breakdown: list[CategoryTotal] = field(default_factory=list)
    sub_period_breakdown: list[BucketTotal] = field(default_factory=list)
    has_transactions: bool = False

    @property
    def totals(self) -> dict[str, Decimal]:
        return {"income": self.income, "expense": self.expense}

    @property
    def net(self) -> Decimal:
        return self.income - self.expense

    @property
    def savings_rate(self) -> Decimal:
        return percent_of(self.net, self.income)


def category_key(category: str) -> str:
    """Key under which differently cased or spaced labels are merged."""
    return " ".join(category.split()).casefold()


def _bucket_starts(period: Period) -> list[date]:
    if period.granularity == Granularity.year:
        months: list[date] = []
        current = month_start(period.start)
        while current <= period.end:
            months.append(current)
            current = add_months(current, 1)
        return months
    return [period.start + timedelta(days=i) for i in range(period.days)]


def _bucket_label(start: date, granularity: Granularity) -> str:
    if granularity == Granularity.year:
        return f"{start.year:04d}-{start.month:02d}"
    return start.isoformat()


def _bucket_key(d: date, granularity: Granularity) -> date:
    if granularity == Granularity.year:
        return month_start(d)
    return d


def _breakdown_by_category(
    transactions: Iterable[TransactionLike], expense_total: Decimal
) -> list[CategoryTotal]:
    labels: dict[str, str] = {}
    sums: dict[str, Decimal] = {}
    for txn in transactions:
        if txn.type != TransactionType.expense:
            continue
        key = category_key(txn.category)
        if key not in sums:
            labels[key] = " ".join(txn.category.split())
            sums[key] = ZERO
        sums[key] += txn.amount

    # dicts keep first-seen order and sorted() is stable, so equal sums keep it
    ordered = sorted(sums.items(), key=lambda item: item[1], reverse=True)
    return [
        CategoryTotal(
            category=labels[key],
            amount=amount,
            share=percent_of(amount, expense_total),
        )
        for key, amount in ordered
    ]


def aggregate(
    transactions: Iterable[TransactionLike], period: Period
) -> AggregateReport:
    in_period = [txn for txn in transactions if period.contains(txn.date)]
    if not in_period:
        return AggregateReport(period=period)

    income = ZERO
    expense = ZERO
    bucket_income: dict[date, Decimal] = {}
    bucket_expense: dict[date, Decimal] = {}
    for txn in in_period:
        key = _bucket_key(txn.date, period.granularity)
        if txn.type == TransactionType.income:
            income += txn.amount
            bucket_income[key] = bucket_income.get(key, ZERO) + txn.amount
        else:
            expense += txn.amount
            bucket_expense[key] = bucket_expense.get(key, ZERO) + txn.amount

    buckets = [
        BucketTotal(
            label=_bucket_label(start, period.granularity),
            start=start,
            income=bucket_income.get(start, ZERO),
            expense=bucket_expense.get(start, ZERO),
        )
        for start in _bucket_starts(period)
    ]

    return AggregateReport(
        period=period,
        income=income,
        expense=expense,
        category_breakdown=_breakdown_by_category(in_period, expense),
        sub_period_breakdown=buckets,
        has_transactions=True,
    )


def monthly_series(
    transactions: Iterable[TransactionLike], end: date, *, months_back: int = 6
) -> list[BucketTotal]:
    """Income and expense per calendar month for the months ending with ``end``."""
    end_month = month_start(end)
    months = [add_months(end_month, -offset) for offset in reversed(range(months_back))]
    income: dict[date, Decimal] = {}
    expense: dict[date, Decimal] = {}
    for txn in transactions:
        key = month_start(txn.date)
        target = income if txn.type == TransactionType.income else expense
        target[key] = target.get(key, ZERO) + txn.amount
    return [
        BucketTotal(
            label=_bucket_label(month, Granularity.year),
            start=month,
            income=income.get(month, ZERO),
            expense=expense.get(month, ZERO),
        )
        for month in months
    ]
