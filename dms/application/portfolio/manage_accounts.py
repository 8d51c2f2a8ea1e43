"""
Use cases: list, create, rename and delete brokerage accounts.
"""

import logging
from dataclasses import replace
from uuid import uuid4

from dms.application.portfolio.dtos import AccountView
from dms.domain.portfolio.entities import Account
from dms.domain.portfolio.errors import AccountNotFoundError
from dms.domain.portfolio.ports import AccountRepository, DivDepositRepository, TradeRepository
from dms.domain.portfolio.summary import activity_months

logger = logging.getLogger(__name__)


class ManageAccountsUseCase:
    def __init__(
        self,
        account_repo: AccountRepository,
        trade_repo: TradeRepository,
        deposit_repo: DivDepositRepository,
    ) -> None:
        self._account_repo = account_repo
        self._trade_repo = trade_repo
        self._deposit_repo = deposit_repo

    def _view(self, account: Account) -> AccountView:
        trades = self._trade_repo.list_for_account(account.id)
        deposits = self._deposit_repo.list_for_account(account.id)
        return AccountView(
            id=account.id,
            name=account.name,
            trades=[trade.id for trade in trades],
            div_deposits=[deposit.id for deposit in deposits],
            months=[
                {"year": ref.year, "month": ref.month}
                for ref in activity_months(trades, deposits)
            ],
        )

    def list_accounts(self) -> list[AccountView]:
        return [self._view(account) for account in self._account_repo.list_all()]

    def get(self, account_id: str) -> AccountView:
        account = self._account_repo.get_by_id(account_id)
        if account is None:
            raise AccountNotFoundError(account_id)
        return self._view(account)

    def create(self, name: str) -> AccountView:
        account = self._account_repo.add(Account(id=str(uuid4()), name=name.strip()))
        logger.info("Created account %s", account.id)
        return self._view(account)

    def rename(self, account_id: str, name: str) -> AccountView:
        account = self._account_repo.get_by_id(account_id)
        if account is None:
            raise AccountNotFoundError(account_id)
        return self._view(self._account_repo.update(replace(account, name=name.strip())))

    def delete(self, account_id: str) -> None:
        if not self._account_repo.delete(account_id):
            raise AccountNotFoundError(account_id)
        logger.info("Deleted account %s", account_id)
