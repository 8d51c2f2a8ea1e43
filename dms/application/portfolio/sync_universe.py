"""
Use case: Synchronise the universe with qualified screener rows.

Input:  none (reads the screener)
Output: SyncSummary
Side effects: Inserts and updates universe rows with live market data;
              marks universe rows outside the selection as expired.
Failure cases: FeatureDisabledError when screener sync is turned off.
"""

import logging
from dataclasses import replace
from datetime import date
from typing import Callable
from uuid import uuid4

from dms.application.portfolio.dtos import SyncSummary
from dms.application.portfolio.market_fields import fetch_market_fields
from dms.domain.portfolio.entities import ScreenerRow, Universe
from dms.domain.portfolio.errors import FeatureDisabledError
from dms.domain.portfolio.ports import MarketDataPort, ScreenerRepository, UniverseRepository
from dms.shared.logging import get_correlated_logger

logger = logging.getLogger(__name__)

SCREENER_SYNC_FEATURE = "useScreenerForUniverse"


class SyncUniverseFromScreenerUseCase:
    """Copies every fully qualified screener row into the universe.

    Each symbol is processed on its own: a failing market data lookup or
    write is logged and counted, and the sync moves on.
    """

    def __init__(
        self,
        screener_repo: ScreenerRepository,
        universe_repo: UniverseRepository,
        market_data: MarketDataPort,
        enabled: bool,
        today: Callable[[], date] = date.today,
    ) -> None:
        self._screener_repo = screener_repo
        self._universe_repo = universe_repo
        self._market_data = market_data
        self._enabled = enabled
        self._today = today

    def execute(self, correlation_id: str = "") -> SyncSummary:
        """Run the synchronisation.

        Args:
            correlation_id: Id tying together the log lines of this run;
                generated when empty.

        Raises:
            FeatureDisabledError: If screener sync is disabled.
        """
        correlation_id = correlation_id or str(uuid4())
        log = get_correlated_logger(__name__, correlation_id)

        if not self._enabled:
            log.info("Screener sync requested while disabled")
            raise FeatureDisabledError(SCREENER_SYNC_FEATURE)

        selected = self._screener_repo.list_qualified()
        log.info("Starting universe sync, selected=%d", len(selected))

        inserted = updated = failed = 0
        today = self._today()
        for row in selected:
            try:
                if self._sync_row(row, today):
                    inserted += 1
                else:
                    updated += 1
            except Exception:
                failed += 1
                log.exception("Sync of %s failed", row.symbol)

        marked_expired = self._universe_repo.mark_expired_except(
            [row.symbol for row in selected]
        )

        summary = SyncSummary(
            inserted=inserted,
            updated=updated,
            marked_expired=marked_expired,
            selected_count=len(selected),
            correlation_id=correlation_id,
            failed=failed,
        )
        log.info(
            "Universe sync complete: inserted=%d, updated=%d, expired=%d, failed=%d",
            inserted,
            updated,
            marked_expired,
            failed,
        )
        return summary

    def _sync_row(self, row: ScreenerRow, today: date) -> bool:
        """Upsert one symbol; returns True when a new row was inserted."""
        fields, _ = fetch_market_fields(self._market_data, row.symbol, today)
        existing = self._universe_repo.find_by_symbol(row.symbol)
        if existing is None:
            self._universe_repo.add(
                Universe(
                    id=str(uuid4()),
                    symbol=row.symbol,
                    risk_group_id=row.risk_group_id,
                    **fields,
                )
            )
            return True

        self._universe_repo.update(
            replace(existing, risk_group_id=row.risk_group_id, expired=False, **fields)
        )
        return False
