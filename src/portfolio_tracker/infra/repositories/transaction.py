"""SQLModel implementation of Transaction repository."""

from __future__ import annotations

from datetime import date
from typing import Optional

from sqlalchemy import delete, func
from sqlmodel import col, select

from ...domain.symbols import normalize_symbol
from ...models import REASON_TYPES, TRANSACTION_TYPES, Transaction
from ..database import SessionFactory


class SQLModelTransactionRepository:
    """SQLModel-based transaction repository implementation."""

    def __init__(self, session_factory: SessionFactory):
        """Initialize with a session factory."""
        self.session_factory = session_factory

    def get_by_id(self, transaction_id: int) -> Optional[Transaction]:
        """Retrieve a transaction by ID."""
        with self.session_factory() as session:
            return session.get(Transaction, transaction_id)

    def create(
        self,
        *,
        account_id: int,
        symbol: str,
        transaction_type: str,
        shares: float,
        price_per_share: float,
        transaction_date: date,
        total_amount: float | None = None,
        reason_type: str | None = None,
        reason_watchlist_id: int | None = None,
        reason_notes: str | None = None,
        reason_url: str | None = None,
    ) -> Transaction:
        """Record a trade; ``total_amount`` defaults to shares x price."""
        kind = transaction_type.upper()
        if kind not in TRANSACTION_TYPES:
            raise ValueError(f"transaction_type must be one of {', '.join(TRANSACTION_TYPES)}")
        if reason_type is not None and reason_type not in REASON_TYPES:
            raise ValueError(f"reason_type must be one of {', '.join(REASON_TYPES)}")
        if shares <= 0:
            raise ValueError("shares must be positive")

        with self.session_factory() as session:
            transaction = Transaction(
                account_id=account_id,
                symbol=normalize_symbol(symbol),
                transaction_type=kind,
                shares=shares,
                price_per_share=price_per_share,
                total_amount=total_amount if total_amount is not None else shares * price_per_share,
                transaction_date=transaction_date,
                reason_type=reason_type,
                reason_watchlist_id=reason_watchlist_id,
                reason_notes=reason_notes,
                reason_url=reason_url,
            )
            session.add(transaction)
            session.commit()
            session.refresh(transaction)
            return transaction

    def search(
        self,
        *,
        account_id: int | None = None,
        symbol: str | None = None,
        transaction_type: str | None = None,
        start_date: date | None = None,
        end_date: date | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[Transaction]:
        """Filter the log; newest trade first."""
        with self.session_factory() as session:
            statement = select(Transaction)
            if account_id is not None:
                statement = statement.where(Transaction.account_id == account_id)
            if symbol:
                statement = statement.where(Transaction.symbol == normalize_symbol(symbol))
            if transaction_type:
                statement = statement.where(Transaction.transaction_type == transaction_type.upper())
            if start_date is not None:
                statement = statement.where(Transaction.transaction_date >= start_date)
            if end_date is not None:
                statement = statement.where(Transaction.transaction_date <= end_date)
            statement = (
                statement.order_by(
                    col(Transaction.transaction_date).desc(), col(Transaction.id).desc()
                )
                .offset(offset)
                .limit(limit)
            )
            return list(session.exec(statement).all())

    def recent(self, limit: int = 10) -> list[Transaction]:
        return self.search(limit=limit)

    def count(self) -> int:
        with self.session_factory() as session:
            return int(session.exec(select(func.count()).select_from(Transaction)).one())

    def delete(self, transaction_id: int) -> bool:
        with self.session_factory() as session:
            result = session.execute(delete(Transaction).where(col(Transaction.id) == transaction_id))
            session.commit()
            return result.rowcount > 0

    def delete_all(self) -> int:
        with self.session_factory() as session:
            result = session.execute(delete(Transaction))
            session.commit()
            return result.rowcount
