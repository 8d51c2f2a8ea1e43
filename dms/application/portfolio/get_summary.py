"""
Use case: Monthly summary, yearly graph and activity calendar of an account.

Input:  account id plus a month (``YYYY-MM``) or a year
Output: MonthlySummary, list[GraphPoint], list[MonthRef] or list[int]
Side effects: None.
Failure cases: AccountNotFoundError, InvalidMonthError.
"""

import logging

from dms.domain.portfolio.entities import MonthRef
from dms.domain.portfolio.errors import AccountNotFoundError
from dms.domain.portfolio.ports import (
    AccountRepository,
    DivDepositRepository,
    RiskGroupRepository,
    TradeRepository,
    UniverseRepository,
)
from dms.domain.portfolio.summary import (
    GraphPoint,
    MonthlySummary,
    activity_months,
    activity_years,
    build_year_graph,
    parse_month,
    summarize_month,
)

logger = logging.getLogger(__name__)


class GetSummaryUseCase:
    """Read-only views over one account's trades and deposits."""

    def __init__(
        self,
        account_repo: AccountRepository,
        trade_repo: TradeRepository,
        deposit_repo: DivDepositRepository,
        universe_repo: UniverseRepository,
        risk_group_repo: RiskGroupRepository,
    ) -> None:
        self._account_repo = account_repo
        self._trade_repo = trade_repo
        self._deposit_repo = deposit_repo
        self._universe_repo = universe_repo
        self._risk_group_repo = risk_group_repo

    def _require_account(self, account_id: str) -> None:
        if self._account_repo.get_by_id(account_id) is None:
            raise AccountNotFoundError(account_id)

    def _risk_group_by_universe(self) -> dict[str, str]:
        names = {group.id: group.name for group in self._risk_group_repo.list_all()}
        return {
            universe.id: names.get(universe.risk_group_id, "")
            for universe in self._universe_repo.list_all(include_deleted=True)
        }

    def summary(self, account_id: str, month: str) -> MonthlySummary:
        """Return the figures of ``month`` for the account.

        Raises:
            InvalidMonthError: If ``month`` is not ``YYYY-MM``.
            AccountNotFoundError: If the account does not exist.
        """
        start, end = parse_month(month)
        self._require_account(account_id)
        logger.info("Building summary for account=%s, month=%s", account_id, month)
        return summarize_month(
            self._trade_repo.list_for_account(account_id),
            self._deposit_repo.list_for_account(account_id),
            self._risk_group_by_universe(),
            start,
            end,
        )

    def graph(self, account_id: str, year: int) -> list[GraphPoint]:
        self._require_account(account_id)
        return build_year_graph(
            self._trade_repo.list_for_account(account_id),
            self._deposit_repo.list_for_account(account_id),
            year,
        )

    def months(self, account_id: str) -> list[MonthRef]:
        self._require_account(account_id)
        return activity_months(
            self._trade_repo.list_for_account(account_id),
            self._deposit_repo.list_for_account(account_id),
        )

    def years(self, account_id: str) -> list[int]:
        self._require_account(account_id)
        return activity_years(
            self._trade_repo.list_for_account(account_id),
            self._deposit_repo.list_for_account(account_id),
        )
