"""
Domain-specific errors for the portfolio bounded context.

All errors raised from the domain layer must be defined here.
These are mapped to HTTP responses at the interface layer.
No framework imports allowed.
"""


class PortfolioDomainError(Exception):
    """Base error for all portfolio domain errors."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(self.message)


class AccountNotFoundError(PortfolioDomainError):
    """Raised when an account cannot be found."""

    def __init__(self, account_id: str) -> None:
        super().__init__(f"Account not found: {account_id}")
        self.account_id = account_id


class UniverseNotFoundError(PortfolioDomainError):
    """Raised when a universe record cannot be found."""

    def __init__(self, universe_id: str) -> None:
        super().__init__(f"Universe not found: {universe_id}")
        self.universe_id = universe_id


class RiskGroupNotFoundError(PortfolioDomainError):
    """Raised when a risk group cannot be found."""

    def __init__(self, risk_group_id: str) -> None:
        super().__init__(f"Risk group with ID {risk_group_id} not found")
        self.risk_group_id = risk_group_id


class TradeNotFoundError(PortfolioDomainError):
    """Raised when a trade cannot be found."""

    def __init__(self, trade_id: str) -> None:
        super().__init__(f"Trade not found: {trade_id}")
        self.trade_id = trade_id


class DivDepositNotFoundError(PortfolioDomainError):
    """Raised when a dividend deposit cannot be found."""

    def __init__(self, deposit_id: str) -> None:
        super().__init__(f"Dividend deposit not found: {deposit_id}")
        self.deposit_id = deposit_id


class ScreenerRowNotFoundError(PortfolioDomainError):
    """Raised when a screener row cannot be found."""

    def __init__(self, row_id: str) -> None:
        super().__init__(f"Screener row not found: {row_id}")
        self.row_id = row_id


class DuplicateSymbolError(PortfolioDomainError):
    """Raised when a symbol already exists in the universe."""

    def __init__(self, symbol: str) -> None:
        super().__init__(f"Symbol {symbol} already exists in universe")
        self.symbol = symbol


class OpenPositionsError(PortfolioDomainError):
    """Raised when a universe symbol cannot be removed because it is still held."""

    def __init__(self, symbol: str, open_count: int) -> None:
        super().__init__(
            f"Cannot delete {symbol}: {open_count} open position(s) exist"
        )
        self.symbol = symbol
        self.open_count = open_count


class InvalidMonthError(PortfolioDomainError):
    """Raised when a month string is not in YYYY-MM form."""

    def __init__(self, month: str) -> None:
        super().__init__(f"Invalid month: {month!r} (expected YYYY-MM)")
        self.month = month


class CsvFormatError(PortfolioDomainError):
    """Raised when a brokerage CSV export cannot be parsed."""


class ImportValidationError(PortfolioDomainError):
    """Raised when a parsed transaction cannot be mapped to a record."""


class FeatureDisabledError(PortfolioDomainError):
    """Raised when an operation is guarded by a disabled feature flag."""

    def __init__(self, feature: str) -> None:
        super().__init__(f"Feature disabled: {feature}")
        self.feature = feature


class PersistenceError(PortfolioDomainError):
    """Raised when the database rejects a write; the change is rolled back."""

    def __init__(self, entity: str) -> None:
        super().__init__(f"Database error while saving {entity}")
        self.entity = entity
