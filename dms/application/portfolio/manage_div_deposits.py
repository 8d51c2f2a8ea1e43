"""
Use cases: list, create, update and delete dividend and cash deposits.
"""

import logging
from dataclasses import replace
from typing import Optional
from uuid import uuid4

from dms.application.portfolio.dtos import DivDepositCommand, DivDepositView
from dms.application.portfolio.import_fidelity import CASH_DEPOSIT_TYPE, DIVIDEND_TYPE
from dms.domain.portfolio.entities import DivDeposit, DivDepositType
from dms.domain.portfolio.errors import (
    AccountNotFoundError,
    DivDepositNotFoundError,
    UniverseNotFoundError,
)
from dms.domain.portfolio.ports import (
    AccountRepository,
    DivDepositRepository,
    DivDepositTypeRepository,
    UniverseRepository,
)

logger = logging.getLogger(__name__)


class ManageDivDepositsUseCase:
    """CRUD over deposits.

    When no deposit type is given, deposits with a symbol are typed
    "Dividend" and the others "Cash Deposit".
    """

    def __init__(
        self,
        deposit_repo: DivDepositRepository,
        deposit_type_repo: DivDepositTypeRepository,
        account_repo: AccountRepository,
        universe_repo: UniverseRepository,
    ) -> None:
        self._deposit_repo = deposit_repo
        self._deposit_type_repo = deposit_type_repo
        self._account_repo = account_repo
        self._universe_repo = universe_repo

    def _symbol(self, universe_id: Optional[str]) -> Optional[str]:
        if universe_id is None:
            return None
        universe = self._universe_repo.get_by_id(universe_id)
        return universe.symbol if universe else None

    def _type_id(self, command: DivDepositCommand) -> str:
        if command.div_deposit_type_id:
            return command.div_deposit_type_id
        name = DIVIDEND_TYPE if command.universe_id else CASH_DEPOSIT_TYPE
        deposit_type = self._deposit_type_repo.find_by_name(name)
        if deposit_type is None:
            deposit_type = self._deposit_type_repo.add(
                DivDepositType(id=str(uuid4()), name=name)
            )
        return deposit_type.id

    def _check_refs(self, command: DivDepositCommand) -> None:
        if self._account_repo.get_by_id(command.account_id) is None:
            raise AccountNotFoundError(command.account_id)
        if command.universe_id and self._universe_repo.get_by_id(command.universe_id) is None:
            raise UniverseNotFoundError(command.universe_id)

    def list_deposits(self, account_id: str) -> list[DivDepositView]:
        if self._account_repo.get_by_id(account_id) is None:
            raise AccountNotFoundError(account_id)
        universes = self._universe_repo.list_all(include_deleted=True)
        symbols = {u.id: u.symbol for u in universes}
        return [
            DivDepositView(deposit=d, symbol=symbols.get(d.universe_id))
            for d in self._deposit_repo.list_for_account(account_id)
        ]

    def create(self, command: DivDepositCommand) -> DivDepositView:
        self._check_refs(command)
        deposit = self._deposit_repo.add(
            DivDeposit(
                id=str(uuid4()),
                date=command.date,
                amount=command.amount,
                account_id=command.account_id,
                div_deposit_type_id=self._type_id(command),
                universe_id=command.universe_id or None,
            )
        )
        logger.info("Created deposit %s", deposit.id)
        return DivDepositView(deposit=deposit, symbol=self._symbol(deposit.universe_id))

    def update(self, deposit_id: str, command: DivDepositCommand) -> DivDepositView:
        existing = self._deposit_repo.get_by_id(deposit_id)
        if existing is None:
            raise DivDepositNotFoundError(deposit_id)
        self._check_refs(command)
        deposit = self._deposit_repo.update(
            replace(
                existing,
                date=command.date,
                amount=command.amount,
                account_id=command.account_id,
                div_deposit_type_id=self._type_id(command),
                universe_id=command.universe_id or None,
            )
        )
        return DivDepositView(deposit=deposit, symbol=self._symbol(deposit.universe_id))

    def delete(self, deposit_id: str) -> None:
        if not self._deposit_repo.delete(deposit_id):
            raise DivDepositNotFoundError(deposit_id)
