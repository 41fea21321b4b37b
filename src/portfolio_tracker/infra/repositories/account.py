"""SQLModel implementation of Account repository."""

from __future__ import annotations

from typing import Optional

from sqlalchemy import delete, func
from sqlmodel import col, select

from ...models import Account, Position
from ..database import SessionFactory


class SQLModelAccountRepository:
    """SQLModel-based account repository implementation."""

    def __init__(self, session_factory: SessionFactory):
        """Initialize with a session factory."""
        self.session_factory = session_factory

    def get_by_id(self, account_id: int) -> Optional[Account]:
        """Retrieve an account by ID."""
        with self.session_factory() as session:
            return session.get(Account, account_id)

    def get_by_name(self, name: str) -> Optional[Account]:
        """Retrieve an account by its exact name."""
        with self.session_factory() as session:
            statement = select(Account).where(Account.name == name)
            return session.exec(statement).first()

    def list_all(self) -> list[Account]:
        """List all accounts."""
        with self.session_factory() as session:
            statement = select(Account).order_by(col(Account.name))
            return list(session.exec(statement).all())

    def create(
        self, name: str, *, account_number_suffix: str | None = None, broker: str | None = None
    ) -> Account:
        """Create a new account."""
        with self.session_factory() as session:
            account = Account(name=name, account_number_suffix=account_number_suffix, broker=broker)
            session.add(account)
            session.commit()
            session.refresh(account)
            return account

    def update(
        self,
        account_id: int,
        *,
        name: str | None = None,
        account_number_suffix: str | None = None,
        broker: str | None = None,
    ) -> Optional[Account]:
        """Patch the provided fields; returns None when the account is missing."""
        with self.session_factory() as session:
            account = session.get(Account, account_id)
            if account is None:
                return None
            if name:
                account.name = name
            if account_number_suffix:
                account.account_number_suffix = account_number_suffix
            if broker:
                account.broker = broker
            session.add(account)
            session.commit()
            session.refresh(account)
            return account

    def delete(self, account_id: int) -> bool:
        """Delete an account; positions and their links cascade."""
        with self.session_factory() as session:
            result = session.execute(delete(Account).where(col(Account.id) == account_id))
            session.commit()
            return result.rowcount > 0

    def count_positions(self, account_id: int) -> int:
        with self.session_factory() as session:
            statement = select(func.count()).select_from(Position).where(Position.account_id == account_id)
            return int(session.exec(statement).one())
