from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional
from zoneinfo import ZoneInfo

from rapidfuzz.distance import Levenshtein
from sqlalchemy import select
from sqlalchemy.orm import Session

from aggregation import AggregateReport, BucketTotal, aggregate, monthly_series
from config import get_settings
from insights import Insight, derive_insights
from models import Granularity, Transaction, TransactionType
from periods import (
    Period,
    PeriodSpec,
    ResolvedPeriod,
    can_navigate_forward,
    next_period,
    previous_period,
    resolve,
)
from schemas import TransactionIn
from store import TransactionStore

logger = logging.getLogger(__name__)

# Below this length a single edit changes too much of a label to merge on it.
FUZZY_MATCH_MIN_LENGTH = 5


def get_current_user_id() -> int:
    return get_settings().default_user_id


def local_today() -> date:
    return datetime.now(ZoneInfo(get_settings().timezone)).date()


class TransactionNotFound(ValueError):
    pass


@dataclass
class TransactionFilters:
    type: Optional[TransactionType] = None
    category: Optional[str] = None
    start: Optional[date] = None
    end: Optional[date] = None


class TransactionService:
    def __init__(self, session: Session, user_id: Optional[int] = None) -> None:
        self.session = session
        self.user_id = user_id or get_current_user_id()

    def categories(self) -> list[str]:
        stmt = (
            select(Transaction.category)
            .where(Transaction.user_id == self.user_id)
            .distinct()
            .order_by(Transaction.category)
        )
        return list(self.session.scalars(stmt).all())

    def canonical_category(self, name: str) -> str:
        """Reuse the spelling of an existing category the input clearly refers to.

        Exact case-insensitive matches win; otherwise a unique existing label
        within one edit is used. Anything else keeps the entered text.
        """
        existing = self.categories()
        lowered = name.casefold()
        for category in existing:
            if category.casefold() == lowered:
                return category

        if len(lowered) < FUZZY_MATCH_MIN_LENGTH:
            return name
        best_distance: Optional[int] = None
        best: list[str] = []
        for category in existing:
            dist = int(Levenshtein.distance(lowered, category.casefold()))
            if best_distance is None or dist < best_distance:
                best_distance = dist
                best = [category]
            elif dist == best_distance:
                best.append(category)
        if best_distance is not None and best_distance <= 1 and len(best) == 1:
            return best[0]
        return name

    def create(self, data: TransactionIn) -> Transaction:
        txn = Transaction(
            user_id=self.user_id,
            type=data.type,
            category=self.canonical_category(data.category),
            amount=data.amount,
            date=data.date,
            notes=data.notes,
        )
        self.session.add(txn)
        self.session.commit()
        self.session.refresh(txn)
        logger.info(f"transaction_created: user_id={self.user_id} id={txn.id}")
        return txn

    def get(self, transaction_id: int) -> Transaction:
        txn = self.session.get(Transaction, transaction_id)
        if not txn or txn.user_id != self.user_id:
            raise TransactionNotFound("Transaction not found")
        return txn

    def update(self, transaction_id: int, data: TransactionIn) -> Transaction:
        txn = self.get(transaction_id)
        txn.type = data.type
        txn.category = self.canonical_category(data.category)
        txn.amount = data.amount
        txn.date = data.date
        txn.notes = data.notes
        self.session.commit()
        self.session.refresh(txn)
        logger.info(f"transaction_updated: user_id={self.user_id} id={txn.id}")
        return txn

    def delete(self, transaction_id: int) -> None:
        txn = self.get(transaction_id)
        self.session.delete(txn)
        self.session.commit()
        logger.info(f"transaction_deleted: user_id={self.user_id} id={transaction_id}")

    def list(
        self,
        filters: Optional[TransactionFilters] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[Transaction]:
        filters = filters or TransactionFilters()
        stmt = (
            select(Transaction)
            .where(Transaction.user_id == self.user_id)
            .order_by(
                Transaction.date.desc(),
                Transaction.created_at.desc(),
                Transaction.id.desc(),
            )
            .offset(offset)
            .limit(limit)
        )
        if filters.type:
            stmt = stmt.where(Transaction.type == filters.type)
        if filters.category:
            stmt = stmt.where(Transaction.category == filters.category)
        if filters.start:
            stmt = stmt.where(Transaction.date >= filters.start)
        if filters.end:
            stmt = stmt.where(Transaction.date <= filters.end)
        return list(self.session.scalars(stmt).all())


@dataclass(frozen=True)
class PeriodReport:
    spec: PeriodSpec
    resolved: ResolvedPeriod
    current: AggregateReport
    previous: AggregateReport
    insights: list[Insight]
    previous_spec: Optional[PeriodSpec]
    next_spec: Optional[PeriodSpec]
    can_navigate_forward: bool


@dataclass(frozen=True)
class OverviewReport:
    all_time: AggregateReport
    monthly_series: list[BucketTotal]


class ReportService:
    def __init__(self, store: TransactionStore, user_id: Optional[int] = None) -> None:
        self.store = store
        self.user_id = user_id or get_current_user_id()

    def build(self, spec: PeriodSpec, *, today: Optional[date] = None) -> PeriodReport:
        today = today or local_today()
        # Resolve first so invalid input never reaches the store.
        resolved = resolve(spec, today)
        transactions = self.store.list_for_user(self.user_id)

        current = aggregate(transactions, resolved.interval)
        previous = aggregate(transactions, resolved.previous_interval)
        insights = derive_insights(current, previous)

        navigable = spec.granularity != Granularity.custom
        logger.info(
            f"report_built: user_id={self.user_id} granularity={spec.granularity.value} "
            f"start={resolved.interval.start} end={resolved.interval.end} "
            f"has_transactions={current.has_transactions} insights={len(insights)}"
        )
        return PeriodReport(
            spec=spec,
            resolved=resolved,
            current=current,
            previous=previous,
            insights=insights,
            previous_spec=previous_period(spec, today=today) if navigable else None,
            next_spec=next_period(spec, today=today) if navigable else None,
            can_navigate_forward=can_navigate_forward(spec, today),
        )

    def overview(
        self, *, today: Optional[date] = None, months_back: int = 6
    ) -> OverviewReport:
        today = today or local_today()
        transactions = self.store.list_for_user(self.user_id)
        if transactions:
            span = Period(
                Granularity.year,
                min(txn.date for txn in transactions),
                max(txn.date for txn in transactions),
            )
        else:
            span = Period(Granularity.year, today, today)
        return OverviewReport(
            all_time=aggregate(transactions, span),
            monthly_series=monthly_series(transactions, today, months_back=months_back),
        )
