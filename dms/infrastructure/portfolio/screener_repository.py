"""
Adapter: Screener persistence.

Implements ScreenerRepository port on top of a SQLAlchemy session.
"""

from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from dms.domain.portfolio.entities import ScreenerRow
from dms.domain.portfolio.ports import ScreenerRepository
from dms.infrastructure.portfolio.models import ScreenerModel

_FLAGS = ("has_volitility", "objectives_understood", "graph_higher_before_2008")


def _to_entity(row: ScreenerModel) -> ScreenerRow:
    return ScreenerRow(
        id=row.id,
        symbol=row.symbol,
        risk_group_id=row.risk_group_id,
        **{flag: getattr(row, flag) for flag in _FLAGS},
    )


class ScreenerRepositoryAdapter(ScreenerRepository):
    """SQLAlchemy implementation of the screener repository."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def list_all(self) -> list[ScreenerRow]:
        rows = self._session.scalars(select(ScreenerModel).order_by(ScreenerModel.symbol))
        return [_to_entity(row) for row in rows]

    def list_qualified(self) -> list[ScreenerRow]:
        rows = self._session.scalars(
            select(ScreenerModel)
            .where(*(getattr(ScreenerModel, flag).is_(True) for flag in _FLAGS))
            .order_by(ScreenerModel.symbol)
        )
        return [_to_entity(row) for row in rows]

    def get_by_id(self, row_id: str) -> Optional[ScreenerRow]:
        row = self._session.get(ScreenerModel, row_id)
        return _to_entity(row) if row else None

    def update(self, row: ScreenerRow) -> ScreenerRow:
        model = self._session.get(ScreenerModel, row.id)
        if model is None:
            return row
        for flag in _FLAGS:
            setattr(model, flag, getattr(row, flag))
        self._session.commit()
        return _to_entity(model)
