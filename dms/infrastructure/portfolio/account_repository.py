"""
Adapter: Account persistence.

Implements AccountRepository port on top of a SQLAlchemy session.
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from dms.domain.portfolio.entities import Account
from dms.domain.portfolio.ports import AccountRepository
from dms.infrastructure.portfolio.models import AccountModel


def _to_entity(row: AccountModel) -> Account:
    return Account(id=row.id, name=row.name)


class AccountRepositoryAdapter(AccountRepository):
    """SQLAlchemy implementation of the account repository."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def _active(self):
        return select(AccountModel).where(AccountModel.deleted_at.is_(None))

    def _get_row(self, account_id: str) -> Optional[AccountModel]:
        return self._session.scalars(
            self._active().where(AccountModel.id == account_id)
        ).first()

    def list_all(self) -> list[Account]:
        rows = self._session.scalars(self._active().order_by(AccountModel.name))
        return [_to_entity(row) for row in rows]

    def get_by_id(self, account_id: str) -> Optional[Account]:
        row = self._get_row(account_id)
        return _to_entity(row) if row else None

    def find_by_name(self, name: str) -> Optional[Account]:
        row = self._session.scalars(
            self._active().where(func.lower(AccountModel.name) == name.strip().lower())
        ).first()
        return _to_entity(row) if row else None

    def add(self, account: Account) -> Account:
        self._session.add(AccountModel(id=account.id, name=account.name))
        self._session.commit()
        return account

    def update(self, account: Account) -> Account:
        row = self._get_row(account.id)
        if row is None:
            return account
        row.name = account.name
        self._session.commit()
        return _to_entity(row)

    def delete(self, account_id: str) -> bool:
        row = self._get_row(account_id)
        if row is None:
            return False
        row.deleted_at = datetime.now(timezone.utc)
        self._session.commit()
        return True
