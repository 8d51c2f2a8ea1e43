"""
Data Transfer Objects for the portfolio application layer.

DTOs carry data between the interface and application layers.
They are plain dataclasses with no behavior.
"""

from dataclasses import dataclass, field
from datetime import date
from typing import Optional, Union

from dms.domain.portfolio.entities import DivDeposit, Trade


@dataclass(frozen=True)
class ImportResult:
    """Outcome of a Fidelity import.

    Attributes:
        success: False when any error was reported.
        imported: Number of transactions written or already present.
        errors: Blocking problems, one message each.
        warnings: Non-blocking observations, one message each.
    """

    success: bool
    imported: int
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class MappedTrade:
    """A purchase ready to be stored as a new trade."""

    row: int
    universe_id: str
    account_id: str
    buy: float
    buy_date: date
    quantity: float
    sell: float = 0.0


@dataclass(frozen=True)
class MappedSale:
    """A sale that closes an existing open trade."""

    row: int
    universe_id: str
    account_id: str
    sell: float
    sell_date: date
    quantity: float


@dataclass(frozen=True)
class MappedDivDeposit:
    """A dividend (with universe) or cash deposit (without)."""

    row: int
    account_id: str
    date: date
    amount: float
    div_deposit_type_id: str
    universe_id: Optional[str] = None


@dataclass(frozen=True)
class UnknownTransaction:
    row: int
    action: str
    symbol: str
    date: str


MappedTransaction = Union[MappedTrade, MappedSale, MappedDivDeposit, UnknownTransaction]


@dataclass(frozen=True)
class SyncSummary:
    """Counts reported by a screener to universe synchronisation."""

    inserted: int
    updated: int
    marked_expired: int
    selected_count: int
    correlation_id: str
    failed: int = 0


@dataclass(frozen=True)
class UniverseSettingsCommand:
    """Symbol lists to assign to the three standard risk groups."""

    equities: list[str]
    income: list[str]
    tax_free_income: list[str]


@dataclass(frozen=True)
class UniverseSettingsResult:
    added: int
    updated: int
    marked_expired: int


@dataclass(frozen=True)
class RefreshResult:
    prices_updated: int
    distributions_updated: int


@dataclass(frozen=True)
class AddSymbolCommand:
    symbol: str
    risk_group_id: str


@dataclass(frozen=True)
class UniverseQuery:
    """Filters and ordering for the universe listing.

    Attributes:
        account_id: When set, positions are computed for this account only.
        sort: Row field to sort on.
        direction: ``asc``, ``desc`` or empty for no sorting.
    """

    symbol: Optional[str] = None
    risk_group_id: Optional[str] = None
    expired: Optional[bool] = None
    min_yield: Optional[float] = None
    account_id: Optional[str] = None
    sort: Optional[str] = None
    direction: str = "asc"


@dataclass(frozen=True)
class UniverseUpdateCommand:
    """Editable universe fields; None leaves a field unchanged."""

    universe_id: str
    risk_group_id: Optional[str] = None
    distribution: Optional[float] = None
    distributions_per_year: Optional[int] = None
    last_price: Optional[float] = None
    ex_date: Optional[date] = None
    expired: Optional[bool] = None
    is_closed_end_fund: Optional[bool] = None
    name: Optional[str] = None


@dataclass(frozen=True)
class AccountView:
    """An account with the ids of its records and its active months."""

    id: str
    name: str
    trades: list[str]
    div_deposits: list[str]
    months: list[dict]


@dataclass(frozen=True)
class TradeView:
    """A trade with its symbol and, once sold, its realised gain."""

    trade: Trade
    symbol: Optional[str]
    capital_gain: Optional[float] = None
    capital_gain_percentage: Optional[str] = None
    capital_gain_display: Optional[str] = None
    gain_class: Optional[str] = None


@dataclass(frozen=True)
class TradeCommand:
    universe_id: str
    account_id: str
    buy: float
    buy_date: date
    quantity: float
    sell: float = 0.0
    sell_date: Optional[date] = None


@dataclass(frozen=True)
class DivDepositView:
    deposit: DivDeposit
    symbol: Optional[str]


@dataclass(frozen=True)
class DivDepositCommand:
    account_id: str
    date: date
    amount: float
    div_deposit_type_id: Optional[str] = None
    universe_id: Optional[str] = None
