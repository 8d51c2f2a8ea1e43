"""
Pydantic schemas for portfolio API request/response validation.

These schemas enforce input validation and define the API contract.
Fields that the web client reads in camelCase carry a serialization alias.
No business logic belongs here.
"""

import datetime as dt
from datetime import date
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

SYMBOL_PATTERN = r"^[A-Za-z0-9][A-Za-z0-9.\-]{0,31}$"


class CamelModel(BaseModel):
    """Accepts field names on input and serialises aliases on output."""

    model_config = ConfigDict(populate_by_name=True)


class ErrorResponse(BaseModel):
    """Standard error response body."""

    error: str
    message: str
    timestamp: str
    requestId: Optional[str] = None


class HealthResponse(BaseModel):
    status: str
    timestamp: str


class DetailedHealthResponse(BaseModel):
    """Health status with version, environment and per-dependency checks."""

    status: str
    timestamp: str
    version: str
    environment: str
    uptime_seconds: float
    checks: dict[str, str]


class FeatureFlagsResponse(CamelModel):
    use_screener_for_universe: bool = Field(alias="useScreenerForUniverse")


class ImportResponse(BaseModel):
    """Outcome of a Fidelity CSV import."""

    success: bool
    imported: int
    errors: list[str]
    warnings: list[str]


class SyncResponse(CamelModel):
    inserted: int
    updated: int
    marked_expired: int = Field(alias="markedExpired")
    selected_count: int = Field(alias="selectedCount")
    correlation_id: str = Field(alias="correlationId")


class UniverseSettingsRequest(BaseModel):
    """Newline separated symbol lists, one per standard risk group."""

    equities: str = ""
    income: str = ""
    tax_free_income: str = ""


class UniverseSettingsResponse(CamelModel):
    added: int
    updated: int
    marked_expired: int = Field(alias="markedExpired")


class RefreshResponse(CamelModel):
    prices_updated: int = Field(alias="pricesUpdated")
    distributions_updated: int = Field(alias="distributionsUpdated")


class AddSymbolRequest(BaseModel):
    symbol: str = Field(..., pattern=SYMBOL_PATTERN, description="Ticker symbol")
    risk_group_id: str = Field(..., min_length=1)


class UniverseItem(BaseModel):
    """A universe row as listed on the universe screen."""

    id: str
    symbol: str
    risk_group_id: str
    risk_group: Optional[str] = None
    distribution: Optional[float] = None
    distributions_per_year: Optional[int] = None
    last_price: Optional[float] = None
    ex_date: Optional[date] = None
    most_recent_sell_date: Optional[date] = None
    most_recent_sell_price: Optional[float] = None
    expired: bool = False
    is_closed_end_fund: bool = True
    name: Optional[str] = None
    position: float = 0.0
    yield_percent: float = 0.0


class UniverseUpdateRequest(BaseModel):
    risk_group_id: Optional[str] = None
    distribution: Optional[float] = Field(default=None, ge=0)
    distributions_per_year: Optional[int] = Field(default=None, ge=0, le=52)
    last_price: Optional[float] = Field(default=None, ge=0)
    ex_date: Optional[date] = None
    expired: Optional[bool] = None
    is_closed_end_fund: Optional[bool] = None
    name: Optional[str] = Field(default=None, max_length=255)


class RiskGroupItem(BaseModel):
    id: str
    name: str


class AccountMonthItem(BaseModel):
    year: int
    month: int


class AccountItem(CamelModel):
    id: str
    name: str
    trades: list[str]
    div_deposits: list[str] = Field(alias="divDeposits")
    months: list[AccountMonthItem]


class AccountRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)


class TradeItem(CamelModel):
    """A trade; realised gain fields are only set once it is sold."""

    id: str
    universe_id: str
    account_id: str
    symbol: Optional[str] = None
    buy: float
    sell: float
    buy_date: date
    sell_date: Optional[date] = None
    quantity: float
    capital_gain: Optional[float] = Field(default=None, alias="capitalGain")
    capital_gain_percentage: Optional[str] = Field(
        default=None, alias="capitalGainPercentage"
    )
    capital_gain_display: Optional[str] = Field(default=None, alias="capitalGainDisplay")
    gain_class: Optional[str] = Field(default=None, alias="gainClass")


class TradeRequest(BaseModel):
    universe_id: str = Field(..., min_length=1)
    account_id: str = Field(..., min_length=1)
    buy: float = Field(..., ge=0)
    sell: float = Field(default=0.0, ge=0)
    buy_date: date
    sell_date: Optional[date] = None
    quantity: float = Field(..., gt=0)


class DivDepositItem(BaseModel):
    id: str
    date: dt.date
    amount: float
    account_id: str
    div_deposit_type_id: str
    universe_id: Optional[str] = None
    symbol: Optional[str] = None


class DivDepositRequest(BaseModel):
    account_id: str = Field(..., min_length=1)
    date: dt.date
    amount: float
    div_deposit_type_id: Optional[str] = None
    universe_id: Optional[str] = None


class ScreenerItem(BaseModel):
    id: str
    symbol: str
    risk_group_id: str
    has_volitility: bool
    objectives_understood: bool
    graph_higher_before_2008: bool


class ScreenerPatchRequest(BaseModel):
    has_volitility: Optional[bool] = None
    objectives_understood: Optional[bool] = None
    graph_higher_before_2008: Optional[bool] = None


class SummaryResponse(CamelModel):
    deposits: float
    dividends: float
    capital_gains: float = Field(alias="capitalGains")
    equities: float
    income: float
    tax_free_income: float


class GraphPointItem(CamelModel):
    month: str
    deposits: float
    dividends: float
    capital_gains: float = Field(alias="capitalGains")


class MonthItem(BaseModel):
    """A month with activity; ``month`` is ``YYYY-MM``, ``label`` is ``MM/YYYY``."""

    month: str
    label: str
