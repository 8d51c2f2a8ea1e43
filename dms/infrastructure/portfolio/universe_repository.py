"""
Adapter: Universe persistence.

Implements UniverseRepository port on top of a SQLAlchemy session.
Symbols are unique across live and soft-deleted rows; re-adding a deleted
symbol revives its row.
"""

from dataclasses import asdict
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from dms.domain.portfolio.entities import Universe
from dms.domain.portfolio.errors import DuplicateSymbolError
from dms.domain.portfolio.ports import UniverseRepository
from dms.infrastructure.portfolio.models import UniverseModel

_FIELDS = (
    "symbol",
    "risk_group_id",
    "distribution",
    "distributions_per_year",
    "last_price",
    "ex_date",
    "most_recent_sell_date",
    "most_recent_sell_price",
    "expired",
    "is_closed_end_fund",
    "name",
)


def _to_entity(row: UniverseModel) -> Universe:
    return Universe(id=row.id, **{name: getattr(row, name) for name in _FIELDS})


def _copy_fields(universe: Universe, row: UniverseModel) -> None:
    for name in _FIELDS:
        setattr(row, name, getattr(universe, name))


class UniverseRepositoryAdapter(UniverseRepository):
    """SQLAlchemy implementation of the universe repository."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def _active(self):
        return select(UniverseModel).where(UniverseModel.deleted_at.is_(None))

    def _get_row(self, universe_id: str) -> Optional[UniverseModel]:
        return self._session.scalars(
            self._active().where(UniverseModel.id == universe_id)
        ).first()

    def list_all(self, include_deleted: bool = False) -> list[Universe]:
        statement = select(UniverseModel) if include_deleted else self._active()
        rows = self._session.scalars(statement.order_by(UniverseModel.symbol))
        return [_to_entity(row) for row in rows]

    def get_by_id(self, universe_id: str) -> Optional[Universe]:
        row = self._get_row(universe_id)
        return _to_entity(row) if row else None

    def find_by_symbol(self, symbol: str) -> Optional[Universe]:
        row = self._session.scalars(
            self._active().where(UniverseModel.symbol == symbol)
        ).first()
        return _to_entity(row) if row else None

    def add(self, universe: Universe) -> Universe:
        deleted = self._session.scalars(
            select(UniverseModel).where(
                UniverseModel.symbol == universe.symbol,
                UniverseModel.deleted_at.is_not(None),
            )
        ).first()
        if deleted is not None:
            _copy_fields(universe, deleted)
            deleted.deleted_at = None
            self._session.commit()
            return _to_entity(deleted)

        self._session.add(UniverseModel(**asdict(universe)))
        try:
            self._session.commit()
        except IntegrityError as exc:
            self._session.rollback()
            raise DuplicateSymbolError(universe.symbol) from exc
        return universe

    def update(self, universe: Universe) -> Universe:
        row = self._get_row(universe.id)
        if row is None:
            return universe
        _copy_fields(universe, row)
        self._session.commit()
        return _to_entity(row)

    def delete(self, universe_id: str) -> bool:
        row = self._get_row(universe_id)
        if row is None:
            return False
        row.deleted_at = datetime.now(timezone.utc)
        self._session.commit()
        return True

    def mark_expired_except(
        self, symbols: list[str], closed_end_funds_only: bool = False
    ) -> int:
        statement = (
            update(UniverseModel)
            .where(
                UniverseModel.deleted_at.is_(None),
                UniverseModel.expired.is_(False),
                UniverseModel.symbol.not_in(symbols),
            )
            .values(expired=True, updated_at=datetime.now(timezone.utc))
        )
        if closed_end_funds_only:
            statement = statement.where(UniverseModel.is_closed_end_fund.is_(True))
        result = self._session.execute(statement)
        self._session.commit()
        return result.rowcount
