"""
Domain-specific exceptions for the log viewer.
"""


class LogDomainError(Exception):
    """Base exception for all log viewer domain errors."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InvalidPaginationError(LogDomainError):
    """Raised when a page number or page size is out of range."""

    def __init__(self, page: int, limit: int) -> None:
        super().__init__("Page must be >= 1 and limit must be between 1 and 1000")
        self.page = page
        self.limit = limit
