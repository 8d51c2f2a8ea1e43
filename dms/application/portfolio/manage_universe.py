"""
Use cases: list, edit and delete universe rows; list risk groups.

The listing enriches each row with its risk group name, yield and open
position, then applies the same filters and ordering the universe screen
offers.
"""

import logging
from dataclasses import asdict, replace
from typing import Any, Optional

from dms.application.portfolio.dtos import UniverseQuery, UniverseUpdateCommand
from dms.domain.portfolio.entities import RiskGroup, Universe
from dms.domain.portfolio.errors import (
    OpenPositionsError,
    RiskGroupNotFoundError,
    UniverseNotFoundError,
)
from dms.domain.portfolio.ports import RiskGroupRepository, TradeRepository, UniverseRepository
from dms.domain.portfolio.universe_filters import (
    Row,
    UniverseFilterCriteria,
    apply_expired_with_positions_filter,
    calculate_yield_percent,
    enrich_universe_with_risk_groups,
    filter_universes,
    sort_universes,
)

logger = logging.getLogger(__name__)

_EDITABLE = (
    "risk_group_id",
    "distribution",
    "distributions_per_year",
    "last_price",
    "ex_date",
    "expired",
    "is_closed_end_fund",
    "name",
)


class ManageUniverseUseCase:
    def __init__(
        self,
        universe_repo: UniverseRepository,
        risk_group_repo: RiskGroupRepository,
        trade_repo: TradeRepository,
    ) -> None:
        self._universe_repo = universe_repo
        self._risk_group_repo = risk_group_repo
        self._trade_repo = trade_repo

    def list_risk_groups(self) -> list[RiskGroup]:
        return self._risk_group_repo.list_all()

    def _positions(self, account_id: Optional[str]) -> dict[str, float]:
        positions: dict[str, float] = {}
        for trade in self._trade_repo.list_open(account_id):
            positions[trade.universe_id] = (
                positions.get(trade.universe_id, 0.0) + trade.buy * trade.quantity
            )
        return positions

    def list_universe(self, query: UniverseQuery) -> list[Row]:
        """Return universe rows as dicts, filtered and sorted per ``query``.

        Expired rows without an open position are hidden unless the query
        asks for a specific ``expired`` value.
        """
        positions = self._positions(query.account_id)
        rows: list[dict[str, Any]] = []
        for universe in self._universe_repo.list_all():
            row = asdict(universe)
            row["position"] = positions.get(universe.id, 0.0)
            row["yield_percent"] = calculate_yield_percent(row)
            rows.append(row)

        rows = enrich_universe_with_risk_groups(rows, self._risk_group_repo.list_all())
        rows = filter_universes(
            rows,
            UniverseFilterCriteria(
                symbol_filter=query.symbol,
                risk_group_filter=query.risk_group_id,
                expired_filter=query.expired,
                min_yield_filter=query.min_yield,
            ),
        )
        rows = apply_expired_with_positions_filter(rows, query.expired)
        return sort_universes(rows, query.sort, query.direction)

    def update(self, command: UniverseUpdateCommand) -> Universe:
        universe = self._universe_repo.get_by_id(command.universe_id)
        if universe is None:
            raise UniverseNotFoundError(command.universe_id)
        if (
            command.risk_group_id is not None
            and self._risk_group_repo.get_by_id(command.risk_group_id) is None
        ):
            raise RiskGroupNotFoundError(command.risk_group_id)

        changes = {
            name: getattr(command, name)
            for name in _EDITABLE
            if getattr(command, name) is not None
        }
        return self._universe_repo.update(replace(universe, **changes))

    def delete(self, universe_id: str) -> None:
        """Soft-delete a universe row.

        Raises:
            UniverseNotFoundError: If the row does not exist.
            OpenPositionsError: If any account still holds the symbol.
        """
        universe = self._universe_repo.get_by_id(universe_id)
        if universe is None:
            raise UniverseNotFoundError(universe_id)
        open_count = sum(
            1 for trade in self._trade_repo.list_open() if trade.universe_id == universe_id
        )
        if open_count:
            raise OpenPositionsError(universe.symbol, open_count)
        self._universe_repo.delete(universe_id)
        logger.info("Deleted universe symbol %s", universe.symbol)
