"""
Use cases: list, create, update and delete trades.

Sold trades are reported with their realised gain, formatted the way the
sold-positions screen shows it.
"""

import logging
from dataclasses import replace
from typing import Optional
from uuid import uuid4

from dms.application.portfolio.dtos import TradeCommand, TradeView
from dms.domain.portfolio.capital_gains import (
    calculate_capital_gains,
    classify_capital_gain,
    format_capital_gains_dollar,
    format_capital_gains_percentage,
)
from dms.domain.portfolio.entities import Trade
from dms.domain.portfolio.errors import (
    AccountNotFoundError,
    TradeNotFoundError,
    UniverseNotFoundError,
)
from dms.domain.portfolio.ports import AccountRepository, TradeRepository, UniverseRepository

logger = logging.getLogger(__name__)

OPEN = "open"
SOLD = "sold"


def to_trade_view(trade: Trade, symbol: Optional[str]) -> TradeView:
    if trade.is_open:
        return TradeView(trade=trade, symbol=symbol)
    gain, percentage = calculate_capital_gains(trade.buy, trade.sell, trade.quantity)
    return TradeView(
        trade=trade,
        symbol=symbol,
        capital_gain=gain,
        capital_gain_percentage=format_capital_gains_percentage(trade.buy, percentage),
        capital_gain_display=format_capital_gains_dollar(gain),
        gain_class=classify_capital_gain(gain),
    )


class ManageTradesUseCase:
    def __init__(
        self,
        trade_repo: TradeRepository,
        account_repo: AccountRepository,
        universe_repo: UniverseRepository,
    ) -> None:
        self._trade_repo = trade_repo
        self._account_repo = account_repo
        self._universe_repo = universe_repo

    def _symbols(self) -> dict[str, str]:
        universes = self._universe_repo.list_all(include_deleted=True)
        return {u.id: u.symbol for u in universes}

    def _check_refs(self, account_id: str, universe_id: str) -> None:
        if self._account_repo.get_by_id(account_id) is None:
            raise AccountNotFoundError(account_id)
        if self._universe_repo.get_by_id(universe_id) is None:
            raise UniverseNotFoundError(universe_id)

    def list_trades(self, account_id: str, status: Optional[str] = None) -> list[TradeView]:
        """List an account's trades; ``status`` may be ``open`` or ``sold``."""
        if self._account_repo.get_by_id(account_id) is None:
            raise AccountNotFoundError(account_id)
        trades = self._trade_repo.list_for_account(account_id)
        if status == OPEN:
            trades = [t for t in trades if t.is_open]
        elif status == SOLD:
            trades = [t for t in trades if not t.is_open]
        symbols = self._symbols()
        return [to_trade_view(t, symbols.get(t.universe_id)) for t in trades]

    def create(self, command: TradeCommand) -> TradeView:
        self._check_refs(command.account_id, command.universe_id)
        trade = self._trade_repo.add(
            Trade(
                id=str(uuid4()),
                universe_id=command.universe_id,
                account_id=command.account_id,
                buy=command.buy,
                sell=command.sell,
                buy_date=command.buy_date,
                quantity=command.quantity,
                sell_date=command.sell_date,
            )
        )
        logger.info("Created trade %s", trade.id)
        return to_trade_view(trade, self._symbols().get(trade.universe_id))

    def update(self, trade_id: str, command: TradeCommand) -> TradeView:
        existing = self._trade_repo.get_by_id(trade_id)
        if existing is None:
            raise TradeNotFoundError(trade_id)
        self._check_refs(command.account_id, command.universe_id)
        trade = self._trade_repo.update(
            replace(
                existing,
                universe_id=command.universe_id,
                account_id=command.account_id,
                buy=command.buy,
                sell=command.sell,
                buy_date=command.buy_date,
                quantity=command.quantity,
                sell_date=command.sell_date,
            )
        )
        return to_trade_view(trade, self._symbols().get(trade.universe_id))

    def delete(self, trade_id: str) -> None:
        if not self._trade_repo.delete(trade_id):
            raise TradeNotFoundError(trade_id)
