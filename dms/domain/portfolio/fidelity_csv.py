"""
Domain service: Fidelity transaction export parsing.

Turns the raw text of a Fidelity "Activity & Orders" CSV export into
typed rows. Both export flavours are recognised:

- web export: ``Run Date, Account, Action, Symbol, Description,
  Price ($), Quantity, Amount ($)``
- desktop export: ``Date, Description, Symbol, Quantity, Price, Amount,
  ..., Security Description, Account`` where ``Description`` holds the
  action and dates look like ``Dec-31-2025``.

No IO, no frameworks.
"""

from __future__ import annotations

import csv
import math
import re
from dataclasses import dataclass
from typing import Optional

from dms.domain.portfolio.errors import CsvFormatError

WEB_HEADER_MAP: dict[str, str] = {
    "Run Date": "date",
    "Account": "account",
    "Action": "action",
    "Symbol": "symbol",
    "Description": "description",
    "Price ($)": "price",
    "Quantity": "quantity",
    "Amount ($)": "amount",
}

DESKTOP_HEADER_MAP: dict[str, str] = {
    "Date": "date",
    "Account": "account",
    "Description": "action",
    "Symbol": "symbol",
    "Security Description": "description",
    "Price": "price",
    "Quantity": "quantity",
    "Amount": "amount",
}

MONTH_NUMBERS = {
    "Jan": "01", "Feb": "02", "Mar": "03", "Apr": "04",
    "May": "05", "Jun": "06", "Jul": "07", "Aug": "08",
    "Sep": "09", "Oct": "10", "Nov": "11", "Dec": "12",
}

_DESKTOP_DATE = re.compile(r"^(\w{3})-(\d{1,2})-(\d{4})$")


@dataclass(frozen=True)
class FidelityCsvRow:
    """One transaction line of a Fidelity export.

    Attributes:
        date: Transaction date as ``MM/DD/YYYY`` text (not yet validated).
        account: Account name as shown by Fidelity.
        action: Transaction action, e.g. ``YOU BOUGHT``.
        symbol: Ticker or CUSIP; empty for cash movements.
        description: Security description.
        quantity: Number of shares.
        price: Price per share.
        total_amount: Signed cash amount of the transaction.
    """

    date: str
    account: str
    action: str
    symbol: str
    description: str
    quantity: float
    price: float
    total_amount: float


def _split_line(line: str) -> list[str]:
    return next(csv.reader([line]))


def _parse_number(value: str, field_name: str) -> float:
    """Parse a money/quantity cell. Empty cells and ``--`` count as 0."""
    trimmed = value.strip()
    if not trimmed or trimmed == "--":
        return 0.0
    cleaned = trimmed.replace("$", "").replace(",", "")
    if not cleaned:
        return 0.0
    try:
        number = float(cleaned)
    except ValueError:
        number = math.nan
    if math.isnan(number):
        raise CsvFormatError(
            f'Invalid {field_name}: expected a number but got "{trimmed}"'
        )
    return number


def convert_desktop_date(value: str) -> str:
    """Convert ``Dec-31-2025`` to ``12/31/2025``; other text is returned as is."""
    match = _DESKTOP_DATE.match(value.strip())
    if not match:
        return value
    month = MONTH_NUMBERS.get(match.group(1))
    if month is None:
        return value
    return f"{month}/{match.group(2).zfill(2)}/{match.group(3)}"


def _column_map(
    header_index: dict[str, int], header_map: dict[str, str]
) -> Optional[dict[str, int]]:
    columns: dict[str, int] = {}
    for header, field_name in header_map.items():
        if header not in header_index:
            return None
        columns[field_name] = header_index[header]
    return columns


def _missing(header_index: dict[str, int], header_map: dict[str, str]) -> list[str]:
    return [header for header in header_map if header not in header_index]


def _detect_format(headers: list[str]) -> tuple[dict[str, int], bool]:
    """Return the field -> column map and whether the export is the desktop one."""
    header_index: dict[str, int] = {}
    for position, header in enumerate(headers):
        header_index.setdefault(header, position)

    web = _column_map(header_index, WEB_HEADER_MAP)
    if web is not None:
        return web, False

    desktop = _column_map(header_index, DESKTOP_HEADER_MAP)
    if desktop is not None:
        return desktop, True

    raise CsvFormatError(
        "Invalid CSV header: does not match web format "
        f"(missing: {', '.join(_missing(header_index, WEB_HEADER_MAP))}) "
        "or desktop format "
        f"(missing: {', '.join(_missing(header_index, DESKTOP_HEADER_MAP))})"
    )


def _parse_row(
    line: str, row_number: int, columns: dict[str, int], is_desktop: bool
) -> FidelityCsvRow:
    fields = _split_line(line)
    min_columns = max(columns.values()) + 1
    if len(fields) < min_columns:
        raise CsvFormatError(
            f"Row {row_number}: expected at least {min_columns} columns "
            f"but got {len(fields)}"
        )

    def cell(name: str) -> str:
        return fields[columns[name]]

    raw_date = cell("date").strip()
    return FidelityCsvRow(
        date=convert_desktop_date(raw_date) if is_desktop else raw_date,
        account=cell("account").strip(),
        action=cell("action").strip(),
        symbol=cell("symbol").strip(),
        description=cell("description").strip(),
        quantity=_parse_number(cell("quantity"), f"quantity at row {row_number}"),
        price=_parse_number(cell("price"), f"price at row {row_number}"),
        total_amount=_parse_number(
            cell("amount"), f"total amount at row {row_number}"
        ),
    )


def parse_fidelity_csv(text: str) -> list[FidelityCsvRow]:
    """Parse a Fidelity export into rows.

    Blank lines are ignored. Row numbers used in error messages count the
    header as row 1.

    Args:
        text: Raw CSV content.

    Returns:
        Parsed rows in file order; empty for blank or header-only input.

    Raises:
        CsvFormatError: If the header matches neither export format, a row
            is too short, or a numeric cell cannot be parsed.
    """
    lines = [line for line in text.strip().splitlines() if line.strip()]
    if not lines:
        return []

    headers = [header.strip() for header in _split_line(lines[0])]
    columns, is_desktop = _detect_format(headers)

    return [
        _parse_row(line, index + 2, columns, is_desktop)
        for index, line in enumerate(lines[1:])
    ]
