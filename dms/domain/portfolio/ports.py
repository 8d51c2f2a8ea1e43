"""
Port interfaces (ABCs) for the portfolio bounded context.

Ports define the contracts that the domain requires from the outside world.
Infrastructure adapters implement these interfaces.
The domain layer never depends on concrete implementations.
"""

from abc import ABC, abstractmethod
from datetime import date
from typing import Optional

from dms.domain.portfolio.entities import (
    Account,
    DivDeposit,
    DivDepositType,
    Distribution,
    RiskGroup,
    ScreenerRow,
    Trade,
    Universe,
)


class AccountRepository(ABC):
    """Port for persisting and retrieving brokerage accounts."""

    @abstractmethod
    def list_all(self) -> list[Account]:
        """Return every account that has not been deleted, ordered by name."""
        raise NotImplementedError

    @abstractmethod
    def get_by_id(self, account_id: str) -> Optional[Account]:
        """Return an account by its ID, or None if not found."""
        raise NotImplementedError

    @abstractmethod
    def find_by_name(self, name: str) -> Optional[Account]:
        """Return the account whose name matches case-insensitively."""
        raise NotImplementedError

    @abstractmethod
    def add(self, account: Account) -> Account:
        """Persist a new account."""
        raise NotImplementedError

    @abstractmethod
    def update(self, account: Account) -> Account:
        """Persist changes to an existing account."""
        raise NotImplementedError

    @abstractmethod
    def delete(self, account_id: str) -> bool:
        """Soft-delete an account. Returns False if it did not exist."""
        raise NotImplementedError


class RiskGroupRepository(ABC):
    """Port for risk group lookups."""

    @abstractmethod
    def list_all(self) -> list[RiskGroup]:
        raise NotImplementedError

    @abstractmethod
    def get_by_id(self, risk_group_id: str) -> Optional[RiskGroup]:
        raise NotImplementedError

    @abstractmethod
    def find_by_name(self, name: str) -> Optional[RiskGroup]:
        raise NotImplementedError

    @abstractmethod
    def add(self, risk_group: RiskGroup) -> RiskGroup:
        raise NotImplementedError


class UniverseRepository(ABC):
    """Port for persisting and retrieving universe symbols."""

    @abstractmethod
    def list_all(self, include_deleted: bool = False) -> list[Universe]:
        """Return every universe record that has not been deleted.

        ``include_deleted`` also returns soft-deleted records, for lookups
        from trades and deposits that outlive their symbol.
        """
        raise NotImplementedError

    @abstractmethod
    def get_by_id(self, universe_id: str) -> Optional[Universe]:
        raise NotImplementedError

    @abstractmethod
    def find_by_symbol(self, symbol: str) -> Optional[Universe]:
        raise NotImplementedError

    @abstractmethod
    def add(self, universe: Universe) -> Universe:
        """Persist a new universe record.

        Raises:
            DuplicateSymbolError: If the symbol already exists.
        """
        raise NotImplementedError

    @abstractmethod
    def update(self, universe: Universe) -> Universe:
        raise NotImplementedError

    @abstractmethod
    def delete(self, universe_id: str) -> bool:
        raise NotImplementedError

    @abstractmethod
    def mark_expired_except(
        self, symbols: list[str], closed_end_funds_only: bool = False
    ) -> int:
        """Flag every non-expired record whose symbol is not listed as expired.

        Args:
            symbols: Symbols that must stay active.
            closed_end_funds_only: Restrict the update to closed-end funds.

        Returns:
            Number of records marked expired.
        """
        raise NotImplementedError


class TradeRepository(ABC):
    """Port for persisting and retrieving trades."""

    @abstractmethod
    def list_for_account(self, account_id: str) -> list[Trade]:
        raise NotImplementedError

    @abstractmethod
    def list_open(self, account_id: Optional[str] = None) -> list[Trade]:
        """Return open trades, optionally restricted to one account."""
        raise NotImplementedError

    @abstractmethod
    def get_by_id(self, trade_id: str) -> Optional[Trade]:
        raise NotImplementedError

    @abstractmethod
    def find_purchase(
        self,
        universe_id: str,
        account_id: str,
        buy: float,
        buy_date: date,
        quantity: float,
    ) -> Optional[Trade]:
        """Return an existing trade identical to the given purchase."""
        raise NotImplementedError

    @abstractmethod
    def find_open_trade(
        self, universe_id: str, account_id: str, quantity: float
    ) -> Optional[Trade]:
        """Return the oldest unsold trade matching a sale."""
        raise NotImplementedError

    @abstractmethod
    def add(self, trade: Trade) -> Trade:
        raise NotImplementedError

    @abstractmethod
    def update(self, trade: Trade) -> Trade:
        raise NotImplementedError

    @abstractmethod
    def delete(self, trade_id: str) -> bool:
        raise NotImplementedError


class DivDepositRepository(ABC):
    """Port for persisting and retrieving dividend deposits."""

    @abstractmethod
    def list_for_account(self, account_id: str) -> list[DivDeposit]:
        raise NotImplementedError

    @abstractmethod
    def get_by_id(self, deposit_id: str) -> Optional[DivDeposit]:
        raise NotImplementedError

    @abstractmethod
    def find_matching(self, deposit: DivDeposit) -> Optional[DivDeposit]:
        """Return a stored deposit with the same date, amount, account, type and symbol."""
        raise NotImplementedError

    @abstractmethod
    def add(self, deposit: DivDeposit) -> DivDeposit:
        raise NotImplementedError

    @abstractmethod
    def update(self, deposit: DivDeposit) -> DivDeposit:
        raise NotImplementedError

    @abstractmethod
    def delete(self, deposit_id: str) -> bool:
        raise NotImplementedError


class DivDepositTypeRepository(ABC):
    """Port for dividend deposit type lookups."""

    @abstractmethod
    def find_by_name(self, name: str) -> Optional[DivDepositType]:
        raise NotImplementedError

    @abstractmethod
    def add(self, deposit_type: DivDepositType) -> DivDepositType:
        raise NotImplementedError


class ScreenerRepository(ABC):
    """Port for screener candidate rows."""

    @abstractmethod
    def list_all(self) -> list[ScreenerRow]:
        raise NotImplementedError

    @abstractmethod
    def list_qualified(self) -> list[ScreenerRow]:
        """Return rows whose qualification flags are all set."""
        raise NotImplementedError

    @abstractmethod
    def get_by_id(self, row_id: str) -> Optional[ScreenerRow]:
        raise NotImplementedError

    @abstractmethod
    def update(self, row: ScreenerRow) -> ScreenerRow:
        raise NotImplementedError


class MarketDataPort(ABC):
    """Port for quotes and distribution history from external providers."""

    @abstractmethod
    def get_last_price(self, symbol: str) -> Optional[float]:
        """Return the latest market price, or None when unavailable."""
        raise NotImplementedError

    @abstractmethod
    def get_distribution(self, symbol: str) -> Optional[Distribution]:
        """Return the upcoming (or most recent) distribution, or None."""
        raise NotImplementedError


class CusipResolverPort(ABC):
    """Port for translating CUSIP identifiers into ticker symbols."""

    @abstractmethod
    def resolve(self, cusips: list[str]) -> dict[str, str]:
        """Return a CUSIP -> ticker map for the identifiers that resolved."""
        raise NotImplementedError
