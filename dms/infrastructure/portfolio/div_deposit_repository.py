"""
Adapter: Dividend deposit persistence.

Implements DivDepositRepository and DivDepositTypeRepository ports on
top of a SQLAlchemy session.
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from dms.domain.portfolio.entities import DivDeposit, DivDepositType
from dms.domain.portfolio.ports import DivDepositRepository, DivDepositTypeRepository
from dms.infrastructure.portfolio.database import commit_or_raise
from dms.infrastructure.portfolio.models import DivDepositModel, DivDepositTypeModel

_FIELDS = ("date", "amount", "account_id", "div_deposit_type_id", "universe_id")


def _to_entity(row: DivDepositModel) -> DivDeposit:
    return DivDeposit(id=row.id, **{name: getattr(row, name) for name in _FIELDS})


class DivDepositRepositoryAdapter(DivDepositRepository):
    """SQLAlchemy implementation of the dividend deposit repository."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def _active(self):
        return select(DivDepositModel).where(DivDepositModel.deleted_at.is_(None))

    def _get_row(self, deposit_id: str) -> Optional[DivDepositModel]:
        return self._session.scalars(
            self._active().where(DivDepositModel.id == deposit_id)
        ).first()

    def list_for_account(self, account_id: str) -> list[DivDeposit]:
        rows = self._session.scalars(
            self._active()
            .where(DivDepositModel.account_id == account_id)
            .order_by(DivDepositModel.date.desc())
        )
        return [_to_entity(row) for row in rows]

    def get_by_id(self, deposit_id: str) -> Optional[DivDeposit]:
        row = self._get_row(deposit_id)
        return _to_entity(row) if row else None

    def find_matching(self, deposit: DivDeposit) -> Optional[DivDeposit]:
        universe_clause = (
            DivDepositModel.universe_id.is_(None)
            if deposit.universe_id is None
            else DivDepositModel.universe_id == deposit.universe_id
        )
        row = self._session.scalars(
            self._active().where(
                DivDepositModel.date == deposit.date,
                DivDepositModel.amount == deposit.amount,
                DivDepositModel.account_id == deposit.account_id,
                DivDepositModel.div_deposit_type_id == deposit.div_deposit_type_id,
                universe_clause,
            )
        ).first()
        return _to_entity(row) if row else None

    def add(self, deposit: DivDeposit) -> DivDeposit:
        self._session.add(
            DivDepositModel(
                id=deposit.id, **{name: getattr(deposit, name) for name in _FIELDS}
            )
        )
        commit_or_raise(self._session, "dividend deposit")
        return deposit

    def update(self, deposit: DivDeposit) -> DivDeposit:
        row = self._get_row(deposit.id)
        if row is None:
            return deposit
        for name in _FIELDS:
            setattr(row, name, getattr(deposit, name))
        commit_or_raise(self._session, "dividend deposit")
        return _to_entity(row)

    def delete(self, deposit_id: str) -> bool:
        row = self._get_row(deposit_id)
        if row is None:
            return False
        row.deleted_at = datetime.now(timezone.utc)
        commit_or_raise(self._session, "dividend deposit")
        return True


class DivDepositTypeRepositoryAdapter(DivDepositTypeRepository):
    """SQLAlchemy implementation of the deposit type lookup."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def find_by_name(self, name: str) -> Optional[DivDepositType]:
        row = self._session.scalars(
            select(DivDepositTypeModel).where(
                DivDepositTypeModel.name == name,
                DivDepositTypeModel.deleted_at.is_(None),
            )
        ).first()
        return DivDepositType(id=row.id, name=row.name) if row else None

    def add(self, deposit_type: DivDepositType) -> DivDepositType:
        self._session.add(DivDepositTypeModel(id=deposit_type.id, name=deposit_type.name))
        self._session.commit()
        return deposit_type
