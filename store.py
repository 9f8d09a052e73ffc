import logging
from typing import Protocol

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from models import Transaction
from schemas import TransactionRecord

logger = logging.getLogger(__name__)


class StoreUnavailableError(RuntimeError):
    pass


class TransactionStore(Protocol):
    def list_for_user(self, user_id: int) -> list[TransactionRecord]: ...


class SQLTransactionStore:
    def __init__(self, session: Session) -> None:
        self.session = session

    def list_for_user(self, user_id: int) -> list[TransactionRecord]:
        stmt = (
            select(Transaction)
            .where(Transaction.user_id == user_id)
            .order_by(Transaction.date.asc(), Transaction.id.asc())
        )
        try:
            rows = self.session.scalars(stmt).all()
        except SQLAlchemyError as exc:
            logger.error(f"store_fetch_failed: user_id={user_id} error={exc}")
            raise StoreUnavailableError(
                "Could not load transactions from the database"
            ) from exc
        return [TransactionRecord.model_validate(row) for row in rows]
