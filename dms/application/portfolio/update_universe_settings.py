"""
Use case: Assign symbol lists to the standard risk groups.

Input:  UniverseSettingsCommand
Output: UniverseSettingsResult
Side effects: Creates missing risk groups; adds or updates universe rows
              with live market data; expires closed-end funds that are in
              none of the lists.
"""

import logging
from dataclasses import replace
from datetime import date
from typing import Callable
from uuid import uuid4

from dms.application.portfolio.dtos import UniverseSettingsCommand, UniverseSettingsResult
from dms.application.portfolio.market_fields import fetch_market_fields
from dms.application.portfolio.risk_groups import ensure_standard_risk_groups
from dms.domain.portfolio.entities import Universe
from dms.domain.portfolio.ports import MarketDataPort, RiskGroupRepository, UniverseRepository
from dms.domain.portfolio.summary import EQUITIES, INCOME, TAX_FREE_INCOME

logger = logging.getLogger(__name__)


def parse_symbol_list(value: str) -> list[str]:
    """Split a newline separated symbol list, dropping blanks."""
    return [line.strip() for line in (value or "").splitlines() if line.strip()]


class UpdateUniverseSettingsUseCase:
    def __init__(
        self,
        risk_group_repo: RiskGroupRepository,
        universe_repo: UniverseRepository,
        market_data: MarketDataPort,
        today: Callable[[], date] = date.today,
    ) -> None:
        self._risk_group_repo = risk_group_repo
        self._universe_repo = universe_repo
        self._market_data = market_data
        self._today = today

    def execute(self, command: UniverseSettingsCommand) -> UniverseSettingsResult:
        groups = ensure_standard_risk_groups(self._risk_group_repo)
        assignments = (
            (groups[EQUITIES].id, command.equities),
            (groups[INCOME].id, command.income),
            (groups[TAX_FREE_INCOME].id, command.tax_free_income),
        )

        added = updated = 0
        today = self._today()
        all_symbols: list[str] = []
        for risk_group_id, symbols in assignments:
            for symbol in symbols:
                all_symbols.append(symbol)
                fields, _ = fetch_market_fields(self._market_data, symbol, today)
                existing = self._universe_repo.find_by_symbol(symbol)
                if existing is None:
                    self._universe_repo.add(
                        Universe(
                            id=str(uuid4()),
                            symbol=symbol,
                            risk_group_id=risk_group_id,
                            **fields,
                        )
                    )
                    added += 1
                else:
                    self._universe_repo.update(
                        replace(
                            existing,
                            risk_group_id=risk_group_id,
                            most_recent_sell_date=None,
                            expired=False,
                            **fields,
                        )
                    )
                    updated += 1

        marked_expired = self._universe_repo.mark_expired_except(
            all_symbols, closed_end_funds_only=True
        )
        logger.info(
            "Universe settings applied: added=%d, updated=%d, expired=%d",
            added,
            updated,
            marked_expired,
        )
        return UniverseSettingsResult(
            added=added, updated=updated, marked_expired=marked_expired
        )
