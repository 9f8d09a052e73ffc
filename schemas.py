from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from formatting import round_percent
from models import Granularity, InsightKind, TransactionType


def _clean_category(value: str) -> str:
    return " ".join(value.split())


class TransactionIn(BaseModel):
    type: TransactionType
    category: str = Field(..., min_length=1, max_length=50)
    amount: Decimal = Field(..., gt=0, max_digits=10, decimal_places=2)
    date: date
    notes: Optional[str] = Field(default=None, max_length=1000)

    @field_validator("category")
    @classmethod
    def _strip_category(cls, value: str) -> str:
        cleaned = _clean_category(value)
        if not cleaned:
            raise ValueError("Category must not be blank")
        return cleaned

    @field_validator("notes")
    @classmethod
    def _strip_notes(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        return value.strip() or None


class TransactionRecord(BaseModel):
    """A validated transaction as handed out by a transaction store."""

    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: int
    user_id: int
    type: TransactionType
    category: str = Field(..., min_length=1)
    amount: Decimal = Field(..., gt=0)
    date: date
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class PeriodOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    granularity: Granularity
    start: date
    end: date
    label: str


class TotalsOut(BaseModel):
    income: Decimal
    expense: Decimal


class CategoryTotalOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    category: str
    amount: Decimal
    share: Decimal

    @field_validator("share")
    @classmethod
    def _round_share(cls, value: Decimal) -> Decimal:
        return round_percent(value)


class BucketOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    label: str
    start: date
    income: Decimal
    expense: Decimal


class AggregateOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    period: PeriodOut
    totals: TotalsOut
    net: Decimal
    savings_rate: Decimal
    category_breakdown: list[CategoryTotalOut]
    sub_period_breakdown: list[BucketOut]
    has_transactions: bool

    @field_validator("savings_rate")
    @classmethod
    def _round_savings_rate(cls, value: Decimal) -> Decimal:
        return round_percent(value)


class InsightOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    kind: InsightKind
    title: str
    message: str
    suggestion: str


class NavigationOut(BaseModel):
    previous: Optional[str] = None
    next: Optional[str] = None
    can_navigate_forward: bool = False


class ReportOut(BaseModel):
    current: AggregateOut
    previous: AggregateOut
    insights: list[InsightOut]
    navigation: NavigationOut
    message: Optional[str] = None


class MonthlyPointOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    label: str
    start: date
    income: Decimal
    expense: Decimal


class OverviewOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    totals: TotalsOut
    category_breakdown: list[CategoryTotalOut]
    monthly_series: list[MonthlyPointOut]
    has_transactions: bool
