"""
Domain entities for the portfolio bounded context.

Entities represent core business objects with identity and lifecycle.
They contain no framework imports and no IO operations.
"""

from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Optional


class TransactionType(Enum):
    """Brokerage transaction kinds recognised by the importer."""

    PURCHASE = "YOU BOUGHT"
    SALE = "YOU SOLD"
    DIVIDEND = "DIVIDEND RECEIVED"
    CASH_DEPOSIT = "ELECTRONIC FUNDS TRANSFER"


@dataclass(frozen=True)
class Account:
    """A brokerage account owning trades and dividend deposits."""

    id: str
    name: str


@dataclass(frozen=True)
class RiskGroup:
    """A named category (Equities, Income, ...) attached to universe symbols."""

    id: str
    name: str


@dataclass(frozen=True)
class Universe:
    """A tracked ticker symbol with its distribution metadata."""

    id: str
    symbol: str
    risk_group_id: str
    distribution: float = 0.0
    distributions_per_year: int = 0
    last_price: float = 0.0
    ex_date: Optional[date] = None
    most_recent_sell_date: Optional[date] = None
    most_recent_sell_price: Optional[float] = None
    expired: bool = False
    is_closed_end_fund: bool = True
    name: Optional[str] = None


@dataclass(frozen=True)
class Trade:
    """An open or closed position in a universe symbol.

    A trade is open until it has a sell date.
    """

    id: str
    universe_id: str
    account_id: str
    buy: float
    sell: float
    buy_date: date
    quantity: float
    sell_date: Optional[date] = None

    @property
    def is_open(self) -> bool:
        """Return True when the position has not been sold."""
        return self.sell_date is None


@dataclass(frozen=True)
class DivDepositType:
    """Kind of deposit, e.g. "Dividend" or "Cash Deposit"."""

    id: str
    name: str


@dataclass(frozen=True)
class DivDeposit:
    """A dividend or cash deposit recorded against an account.

    Cash deposits carry no universe id.
    """

    id: str
    date: date
    amount: float
    account_id: str
    div_deposit_type_id: str
    universe_id: Optional[str] = None

    @property
    def is_dividend(self) -> bool:
        """Return True when the deposit was paid by a universe symbol."""
        return self.universe_id is not None


@dataclass(frozen=True)
class ScreenerRow:
    """A candidate symbol with its qualification flags."""

    id: str
    symbol: str
    risk_group_id: str
    has_volitility: bool = False
    objectives_understood: bool = False
    graph_higher_before_2008: bool = False

    @property
    def qualifies(self) -> bool:
        """Return True when every qualification flag is set."""
        return (
            self.has_volitility
            and self.objectives_understood
            and self.graph_higher_before_2008
        )


@dataclass(frozen=True)
class Distribution:
    """Distribution details for a symbol as reported by a market data source."""

    distribution: float
    ex_date: date
    distributions_per_year: int


@dataclass(frozen=True)
class MonthRef:
    """A calendar month with account activity."""

    year: int
    month: int

    @property
    def key(self) -> str:
        """Return the month as ``YYYY-MM``."""
        return f"{self.year:04d}-{self.month:02d}"

    @property
    def label(self) -> str:
        """Return the month as ``MM/YYYY`` for display."""
        return f"{self.month:02d}/{self.year:04d}"
