"""
Adapter: Trade persistence.

Implements TradeRepository port on top of a SQLAlchemy session.
"""

from datetime import date, datetime, timezone
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from dms.domain.portfolio.entities import Trade
from dms.domain.portfolio.ports import TradeRepository
from dms.infrastructure.portfolio.database import commit_or_raise
from dms.infrastructure.portfolio.models import TradeModel

_FIELDS = ("universe_id", "account_id", "buy", "sell", "buy_date", "quantity", "sell_date")


def _to_entity(row: TradeModel) -> Trade:
    return Trade(id=row.id, **{name: getattr(row, name) for name in _FIELDS})


class TradeRepositoryAdapter(TradeRepository):
    """SQLAlchemy implementation of the trade repository."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def _active(self):
        return select(TradeModel).where(TradeModel.deleted_at.is_(None))

    def _get_row(self, trade_id: str) -> Optional[TradeModel]:
        return self._session.scalars(self._active().where(TradeModel.id == trade_id)).first()

    def list_for_account(self, account_id: str) -> list[Trade]:
        rows = self._session.scalars(
            self._active()
            .where(TradeModel.account_id == account_id)
            .order_by(TradeModel.buy_date, TradeModel.created_at)
        )
        return [_to_entity(row) for row in rows]

    def list_open(self, account_id: Optional[str] = None) -> list[Trade]:
        statement = self._active().where(TradeModel.sell_date.is_(None))
        if account_id:
            statement = statement.where(TradeModel.account_id == account_id)
        return [_to_entity(row) for row in self._session.scalars(statement)]

    def get_by_id(self, trade_id: str) -> Optional[Trade]:
        row = self._get_row(trade_id)
        return _to_entity(row) if row else None

    def find_purchase(
        self,
        universe_id: str,
        account_id: str,
        buy: float,
        buy_date: date,
        quantity: float,
    ) -> Optional[Trade]:
        row = self._session.scalars(
            self._active().where(
                TradeModel.universe_id == universe_id,
                TradeModel.account_id == account_id,
                TradeModel.buy == buy,
                TradeModel.buy_date == buy_date,
                TradeModel.quantity == quantity,
            )
        ).first()
        return _to_entity(row) if row else None

    def find_open_trade(
        self, universe_id: str, account_id: str, quantity: float
    ) -> Optional[Trade]:
        row = self._session.scalars(
            self._active()
            .where(
                TradeModel.universe_id == universe_id,
                TradeModel.account_id == account_id,
                TradeModel.quantity == quantity,
                TradeModel.sell == 0,
                TradeModel.sell_date.is_(None),
            )
            .order_by(TradeModel.buy_date, TradeModel.created_at)
        ).first()
        return _to_entity(row) if row else None

    def add(self, trade: Trade) -> Trade:
        self._session.add(
            TradeModel(id=trade.id, **{name: getattr(trade, name) for name in _FIELDS})
        )
        commit_or_raise(self._session, "trade")
        return trade

    def update(self, trade: Trade) -> Trade:
        row = self._get_row(trade.id)
        if row is None:
            return trade
        for name in _FIELDS:
            setattr(row, name, getattr(trade, name))
        commit_or_raise(self._session, "trade")
        return _to_entity(row)

    def delete(self, trade_id: str) -> bool:
        row = self._get_row(trade_id)
        if row is None:
            return False
        row.deleted_at = datetime.now(timezone.utc)
        commit_or_raise(self._session, "trade")
        return True
