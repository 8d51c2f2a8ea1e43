"""
Use case: Add a single symbol to the universe.

Input:  AddSymbolCommand (symbol, risk_group_id)
Output: Universe
Side effects: Inserts a universe row populated with live market data.
Failure cases: DuplicateSymbolError, RiskGroupNotFoundError.
"""

import logging
from datetime import date
from typing import Callable
from uuid import uuid4

from dms.application.portfolio.dtos import AddSymbolCommand
from dms.application.portfolio.market_fields import fetch_market_fields
from dms.domain.portfolio.entities import Universe
from dms.domain.portfolio.errors import DuplicateSymbolError, RiskGroupNotFoundError
from dms.domain.portfolio.ports import MarketDataPort, RiskGroupRepository, UniverseRepository

logger = logging.getLogger(__name__)


class AddSymbolUseCase:
    def __init__(
        self,
        universe_repo: UniverseRepository,
        risk_group_repo: RiskGroupRepository,
        market_data: MarketDataPort,
        today: Callable[[], date] = date.today,
    ) -> None:
        self._universe_repo = universe_repo
        self._risk_group_repo = risk_group_repo
        self._market_data = market_data
        self._today = today

    def execute(self, command: AddSymbolCommand) -> Universe:
        """Create the universe row.

        Raises:
            DuplicateSymbolError: If the symbol is already tracked.
            RiskGroupNotFoundError: If the risk group does not exist.
        """
        symbol = command.symbol.strip().upper()
        if self._universe_repo.find_by_symbol(symbol) is not None:
            raise DuplicateSymbolError(symbol)
        if self._risk_group_repo.get_by_id(command.risk_group_id) is None:
            raise RiskGroupNotFoundError(command.risk_group_id)

        fields, _ = fetch_market_fields(self._market_data, symbol, self._today())
        logger.info("Adding symbol %s", symbol)
        return self._universe_repo.add(
            Universe(
                id=str(uuid4()),
                symbol=symbol,
                risk_group_id=command.risk_group_id,
                **fields,
            )
        )
