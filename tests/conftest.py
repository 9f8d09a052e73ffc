import os

# Keep imports of the app modules from creating a SQLite file under ./data.
os.environ.setdefault("FINANCE_DATABASE_URL", "sqlite://")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session
from sqlalchemy.pool import StaticPool

from database import Base
from schemas import TransactionRecord


class InMemoryTransactionStore:
    """Transaction store double holding validated records per user."""

    def __init__(self, records: list[TransactionRecord]) -> None:
        self.records = list(records)
        self.calls: list[int] = []

    def list_for_user(self, user_id: int) -> list[TransactionRecord]:
        self.calls.append(user_id)
        return [r for r in self.records if r.user_id == user_id]


@pytest.fixture
def make_store():
    def factory(records: list[TransactionRecord]) -> InMemoryTransactionStore:
        return InMemoryTransactionStore(records)

    return factory


@pytest.fixture
def engine():
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session(engine):
    with Session(engine, expire_on_commit=False) as db:
        yield db
