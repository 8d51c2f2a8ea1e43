"""
Domain service: validation of parsed Fidelity transaction rows.

Checks each row field by field and collects every problem instead of
stopping at the first one. Also detects repeated transactions within a
file and cash amounts that disagree with quantity x price.

No IO, no frameworks.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass, field
from datetime import date
from typing import Optional

from dms.domain.portfolio.entities import TransactionType
from dms.domain.portfolio.fidelity_csv import FidelityCsvRow

MIN_YEAR = 1950
AMOUNT_TOLERANCE = 0.01

VALID_ACTIONS = frozenset(t.value for t in TransactionType)
SYMBOL_PATTERN = re.compile(r"^[A-Z0-9][A-Z0-9.\-]{0,14}$")
_DATE_PATTERN = re.compile(r"^(\d{2})/(\d{2})/(\d{4})$")


@dataclass(frozen=True)
class ValidationError:
    """A field-level problem that prevents a row from being imported."""

    row: int
    field: str
    message: str

    def __str__(self) -> str:
        return f"Row {self.row}: {self.field}: {self.message}"


@dataclass(frozen=True)
class ValidationWarning:
    """A non-blocking observation about a row."""

    row: int
    message: str
    severity: str = "warning"

    def __str__(self) -> str:
        return f"Row {self.row}: {self.message}"


@dataclass(frozen=True)
class DuplicateRow:
    """A row repeating an earlier row of the same file."""

    row: int
    first_row: int
    severity: str = "warning"

    def __str__(self) -> str:
        return f"Row {self.row}: duplicate of row {self.first_row}, skipped"


@dataclass
class RowValidationReport:
    """Outcome of validating every row of an import.

    Attributes:
        valid_rows: ``(row_number, row)`` pairs that may be persisted.
        errors: Blocking errors, in row order.
        warnings: Duplicates, amount mismatches and unknown actions.
    """

    valid_rows: list[tuple[int, FidelityCsvRow]] = field(default_factory=list)
    errors: list[ValidationError] = field(default_factory=list)
    warnings: list[object] = field(default_factory=list)

    @property
    def errors_by_row(self) -> dict[int, list[ValidationError]]:
        grouped: dict[int, list[ValidationError]] = {}
        for error in self.errors:
            grouped.setdefault(error.row, []).append(error)
        return grouped


def _transaction_type(action: str) -> Optional[TransactionType]:
    try:
        return TransactionType(action)
    except ValueError:
        return None


def validate_date(value: str, today: Optional[date] = None) -> Optional[str]:
    """Return an error message for an invalid ``MM/DD/YYYY`` date, else None."""
    if not value or not value.strip():
        return "Date is required"

    match = _DATE_PATTERN.match(value)
    if match is None:
        return f'Invalid date format: "{value}" (expected MM/DD/YYYY)'

    month, day, year = (int(part) for part in match.groups())
    if not 1 <= month <= 12 or not 1 <= day <= 31:
        return f'Invalid date format: "{value}" has an out-of-range month or day'

    try:
        parsed = date(year, month, day)
    except ValueError:
        return f'Invalid date: "{value}" is not a real calendar date'

    if parsed > (today or date.today()):
        return f'Date cannot be in the future: "{value}"'
    if year < MIN_YEAR:
        return f'Date is too old: "{value}" (must be after {MIN_YEAR})'
    return None


def validate_action(action: str) -> Optional[str]:
    if action in VALID_ACTIONS:
        return None
    return f'Unknown transaction type "{action}"'


def validate_symbol(symbol: str, action: Optional[str] = None) -> Optional[str]:
    """Cash transfers may omit the symbol; everything else needs a ticker."""
    if not symbol:
        if action == TransactionType.CASH_DEPOSIT.value:
            return None
        return "Symbol is required"
    if not SYMBOL_PATTERN.match(symbol):
        return f'Symbol "{symbol}" is invalid'
    return None


def _validate_positive(
    value: float, label: str, tx_type: Optional[TransactionType]
) -> Optional[str]:
    if not math.isfinite(value):
        return f"{label} must be a valid number"
    if value < 0:
        return f"{label} must be positive"
    if tx_type in (TransactionType.PURCHASE, TransactionType.SALE) and value == 0:
        return f"{label} must be positive for purchases and sales"
    return None


def validate_quantity(
    quantity: float, tx_type: Optional[TransactionType] = None
) -> Optional[str]:
    return _validate_positive(quantity, "Quantity", tx_type)


def validate_price(
    price: float, tx_type: Optional[TransactionType] = None
) -> Optional[str]:
    return _validate_positive(price, "Price", tx_type)


def validate_amount(amount: float) -> Optional[str]:
    if not math.isfinite(amount):
        return "Amount must be a valid number"
    return None


def validate_row(
    row: FidelityCsvRow, row_number: int, today: Optional[date] = None
) -> list[ValidationError]:
    """Validate every field of ``row`` and return all errors found."""
    tx_type = _transaction_type(row.action)
    checks = (
        ("date", validate_date(row.date, today)),
        ("action", validate_action(row.action)),
        ("symbol", validate_symbol(row.symbol, row.action)),
        ("quantity", validate_quantity(row.quantity, tx_type)),
        ("price", validate_price(row.price, tx_type)),
        ("totalAmount", validate_amount(row.total_amount)),
    )
    return [
        ValidationError(row=row_number, field=name, message=message)
        for name, message in checks
        if message is not None
    ]


def _duplicate_key(row: FidelityCsvRow) -> tuple:
    return (row.date, row.action, row.symbol, row.quantity, row.price, row.account)


def find_duplicate_rows(
    rows: list[FidelityCsvRow], start: int = 2
) -> list[DuplicateRow]:
    """Report every row that repeats an earlier one.

    Args:
        rows: Parsed rows in file order.
        start: Row number of ``rows[0]``.
    """
    first_seen: dict[tuple, int] = {}
    duplicates: list[DuplicateRow] = []
    for offset, row in enumerate(rows):
        row_number = start + offset
        key = _duplicate_key(row)
        if key in first_seen:
            duplicates.append(DuplicateRow(row=row_number, first_row=first_seen[key]))
        else:
            first_seen[key] = row_number
    return duplicates


def check_amount_mismatch(
    quantity: float, price: float, total_amount: float, row: int
) -> Optional[ValidationWarning]:
    """Warn when ``|quantity x price|`` and ``|total_amount|`` differ by more than a cent."""
    expected = abs(quantity * price)
    if abs(expected - abs(total_amount)) <= AMOUNT_TOLERANCE:
        return None
    return ValidationWarning(
        row=row,
        message=(
            f"Amount {total_amount:.2f} doesn't match quantity x price "
            f"({quantity} x {price} = {expected:.2f})"
        ),
    )


def validate_rows(
    rows: list[FidelityCsvRow], start: int = 2, today: Optional[date] = None
) -> RowValidationReport:
    """Validate a whole file.

    Rows with an unrecognised action are reported as warnings and skipped.
    Repeated rows are reported as warnings and only the first is kept.
    Rows with field errors are excluded from ``valid_rows``.
    """
    report = RowValidationReport()
    duplicates = {dup.row: dup for dup in find_duplicate_rows(rows, start)}

    for offset, row in enumerate(rows):
        row_number = start + offset

        if validate_action(row.action) is not None:
            report.warnings.append(
                ValidationWarning(
                    row=row_number,
                    message=f'Unknown transaction type "{row.action}" for '
                    f"symbol {row.symbol or '-'} on {row.date}",
                )
            )
            continue

        if row_number in duplicates:
            report.warnings.append(duplicates[row_number])
            continue

        errors = validate_row(row, row_number, today)
        if errors:
            report.errors.extend(errors)
            continue

        if _transaction_type(row.action) in (
            TransactionType.PURCHASE,
            TransactionType.SALE,
        ):
            mismatch = check_amount_mismatch(
                row.quantity, row.price, row.total_amount, row_number
            )
            if mismatch is not None:
                report.warnings.append(mismatch)

        report.valid_rows.append((row_number, row))

    return report
