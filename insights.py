from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from aggregation import AggregateReport
from formatting import format_amount, format_percent, percent_of
from models import Granularity, InsightKind

TOP_CATEGORY_SHARE_LIMIT = Decimal(40)
EXPENSE_CHANGE_THRESHOLD = Decimal(10)
LOW_SAVINGS_RATE = Decimal(10)
HIGH_SAVINGS_RATE = Decimal(30)

_PERIOD_NOUNS = {
    Granularity.week: "week",
    Granularity.month: "month",
    Granularity.year: "year",
    Granularity.custom: "period",
}


@dataclass(frozen=True)
class Insight:
    kind: InsightKind
    title: str
    message: str
    suggestion: str


def _top_category(current: AggregateReport) -> Optional[Insight]:
    if not current.category_breakdown or current.expense <= 0:
        return None
    top = current.category_breakdown[0]
    share = percent_of(top.amount, current.expense)
    if share > TOP_CATEGORY_SHARE_LIMIT:
        suggestion = "Consider reviewing and reducing expenses in this category."
    else:
        suggestion = "This seems reasonable for your spending pattern."
    return Insight(
        kind=InsightKind.caution,
        title="Highest Spending Category",
        message=(
            f"{top.category} accounts for {format_percent(share)} of your total "
            f"expenses ({format_amount(top.amount)})."
        ),
        suggestion=suggestion,
    )


def _expense_change(
    current: AggregateReport, previous: Optional[AggregateReport]
) -> Optional[Insight]:
    if previous is None or not previous.has_transactions or previous.expense == 0:
        return None
    delta = current.expense - previous.expense
    delta_pct = percent_of(delta, previous.expense)
    if abs(delta_pct) <= EXPENSE_CHANGE_THRESHOLD:
        return None

    noun = _PERIOD_NOUNS[current.period.granularity]
    increased = delta > 0
    direction = "increased" if increased else "decreased"
    return Insight(
        kind=InsightKind.caution if increased else InsightKind.informational,
        title=f"Spending {direction.capitalize()}",
        message=(
            f"Your expenses {direction} by {format_percent(abs(delta_pct))} "
            f"compared to last {noun} ({format_amount(delta, signed=True)})."
        ),
        suggestion=(
            "Consider reviewing your recent purchases to identify areas for "
            "cost reduction."
            if increased
            else "Great job on reducing your expenses!"
        ),
    )


def _savings_health(current: AggregateReport) -> Optional[Insight]:
    savings = current.net
    rate = current.savings_rate
    if savings < 0:
        return Insight(
            kind=InsightKind.critical,
            title="Spending Exceeds Income",
            message=(
                f"You spent {format_amount(abs(savings))} more than your income "
                "this period."
            ),
            suggestion=(
                "Review your expenses and consider creating a budget to avoid "
                "overspending."
            ),
        )
    if rate < LOW_SAVINGS_RATE:
        return Insight(
            kind=InsightKind.caution,
            title="Low Savings Rate",
            message=f"You saved only {format_percent(rate)} of your income this period.",
            suggestion=(
                "Consider increasing your savings rate to at least 20% for better "
                "financial health."
            ),
        )
    if rate > HIGH_SAVINGS_RATE:
        return Insight(
            kind=InsightKind.informational,
            title="Excellent Savings Rate",
            message=f"You saved {format_percent(rate)} of your income this period.",
            suggestion=(
                "Great financial discipline! Consider investing your savings for "
                "long-term growth."
            ),
        )
    return None


def derive_insights(
    current: AggregateReport, previous: Optional[AggregateReport] = None
) -> list[Insight]:
    """Rule-based observations about ``current``, optionally against ``previous``.

    Rules run in a fixed order (top category, change against the previous
    period, savings health) and each contributes at most one insight.
    """
    if not current.has_transactions:
        return []
    candidates = (
        _top_category(current),
        _expense_change(current, previous),
        _savings_health(current),
    )
    return [insight for insight in candidates if insight is not None]
