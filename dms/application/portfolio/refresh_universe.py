"""
Use case: Refresh prices and distributions of every universe row.

Input:  none
Output: RefreshResult
Side effects: Updates last_price on every row that got a quote; replaces
              the distribution of rows whose ex-date has passed when a
              later one is known.
"""

import logging
from dataclasses import replace
from datetime import date
from typing import Callable

from dms.application.portfolio.dtos import RefreshResult
from dms.domain.portfolio.ports import MarketDataPort, UniverseRepository

logger = logging.getLogger(__name__)


class RefreshUniverseUseCase:
    def __init__(
        self,
        universe_repo: UniverseRepository,
        market_data: MarketDataPort,
        today: Callable[[], date] = date.today,
    ) -> None:
        self._universe_repo = universe_repo
        self._market_data = market_data
        self._today = today

    def execute(self) -> RefreshResult:
        today = self._today()
        prices_updated = distributions_updated = 0

        for universe in self._universe_repo.list_all():
            changes: dict = {}

            last_price = self._market_data.get_last_price(universe.symbol)
            if last_price is not None:
                changes["last_price"] = last_price
                prices_updated += 1

            if universe.ex_date is None or universe.ex_date < today:
                distribution = self._market_data.get_distribution(universe.symbol)
                if distribution is not None and (
                    universe.ex_date is None or distribution.ex_date > universe.ex_date
                ):
                    changes.update(
                        distribution=distribution.distribution,
                        distributions_per_year=distribution.distributions_per_year,
                        ex_date=distribution.ex_date,
                    )
                    distributions_updated += 1

            if changes:
                self._universe_repo.update(replace(universe, **changes))

        logger.info(
            "Universe refresh complete: prices=%d, distributions=%d",
            prices_updated,
            distributions_updated,
        )
        return RefreshResult(
            prices_updated=prices_updated, distributions_updated=distributions_updated
        )
