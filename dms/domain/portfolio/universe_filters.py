"""
Domain service: universe filtering and sorting.

Pure functions operating on lists of universe rows represented as dicts
(the shape returned by the universe listing endpoint). Every function
returns a new list and never mutates its input rows.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from functools import cmp_to_key
from typing import Any, Iterable, Optional

from dms.domain.portfolio.entities import RiskGroup

Row = dict[str, Any]


@dataclass(frozen=True)
class UniverseFilterCriteria:
    """Filter settings applied by :func:`filter_universes`.

    Attributes:
        symbol_filter: Case-insensitive substring of the symbol.
        risk_group_filter: Risk group id the rows must belong to.
        expired_filter: Required value of ``expired``; None disables it.
        min_yield_filter: Minimum yield percent; None or <= 0 disables it.
    """

    symbol_filter: Optional[str] = None
    risk_group_filter: Optional[str] = None
    expired_filter: Optional[bool] = None
    min_yield_filter: Optional[float] = None


def calculate_yield_percent(row: Row) -> float:
    """Return the annualised yield of a row as a percentage of its price."""
    last_price = row.get("last_price")
    if not last_price:
        return 0.0
    distribution = row.get("distribution") or 0
    per_year = row.get("distributions_per_year") or 0
    return distribution * per_year * 100 / last_price


def apply_symbol_filter(data: list[Row], symbol_filter: Optional[str]) -> list[Row]:
    if not symbol_filter:
        return list(data)
    needle = symbol_filter.lower()
    return [row for row in data if needle in (row.get("symbol") or "").lower()]


def apply_yield_filter(data: list[Row], min_yield: Optional[float]) -> list[Row]:
    """Keep rows whose ``yield_percent`` is set and at least ``min_yield``."""
    if min_yield is None or min_yield <= 0:
        return list(data)
    return [
        row
        for row in data
        if row.get("yield_percent") and row["yield_percent"] >= min_yield
    ]


def apply_risk_group_filter(data: list[Row], risk_group: Optional[str]) -> list[Row]:
    """Keep rows whose ``risk_group`` name equals ``risk_group`` exactly."""
    if not risk_group:
        return list(data)
    return [row for row in data if row.get("risk_group") == risk_group]


def apply_expired_filter(data: list[Row], expired: Optional[bool]) -> list[Row]:
    if expired is None:
        return list(data)
    return [row for row in data if bool(row.get("expired")) == expired]


def apply_expired_with_positions_filter(
    data: list[Row], explicit_expired: Optional[bool]
) -> list[Row]:
    """Hide expired rows that are no longer held.

    When the caller chose an explicit expired filter the data is returned
    unchanged.
    """
    if explicit_expired is not None:
        return list(data)
    return [
        row
        for row in data
        if not row.get("expired") or (row.get("position") or 0) > 0
    ]


def _compare_values(a: Any, b: Any, multiplier: int) -> int:
    if a is None and b is None:
        return 0
    # Missing values sort last in both directions.
    if a is None:
        return 1
    if b is None:
        return -1

    if isinstance(a, str) and isinstance(b, str):
        a, b = a.casefold(), b.casefold()
    elif isinstance(a, bool) or isinstance(b, bool):
        return 0
    elif isinstance(a, (int, float)) and isinstance(b, (int, float)):
        pass
    elif isinstance(a, (date, datetime)) and type(a) is type(b):
        pass
    else:
        return 0

    if a < b:
        return -multiplier
    if a > b:
        return multiplier
    return 0


def sort_universes(data: list[Row], field: Optional[str], direction: str) -> list[Row]:
    """Return ``data`` sorted by ``field``.

    Args:
        data: Universe rows.
        field: Key to sort on. Falsy leaves the order unchanged.
        direction: ``'asc'``, ``'desc'`` or ``''`` (unchanged).

    The sort is stable. Values of different types compare as equal.
    """
    if not field or direction == "":
        return list(data)

    multiplier = 1 if direction == "asc" else -1
    return sorted(
        data,
        key=cmp_to_key(
            lambda a, b: _compare_values(a.get(field), b.get(field), multiplier)
        ),
    )


def enrich_universe_with_risk_groups(
    universes: Iterable[Row], risk_groups: Iterable[RiskGroup]
) -> list[Row]:
    """Attach the risk group name to each row, falling back to its id."""
    names = {group.id: group.name for group in risk_groups or []}
    return [
        {**row, "risk_group": names.get(row.get("risk_group_id"), row.get("risk_group_id"))}
        for row in universes
    ]


def filter_universes(data: list[Row], criteria: UniverseFilterCriteria) -> list[Row]:
    """Apply symbol, risk group id, expired and minimum yield filters in turn."""
    result = apply_symbol_filter(data, criteria.symbol_filter)

    if criteria.risk_group_filter:
        result = [
            row for row in result if row.get("risk_group_id") == criteria.risk_group_filter
        ]

    result = apply_expired_filter(result, criteria.expired_filter)

    if criteria.min_yield_filter is not None and criteria.min_yield_filter > 0:
        result = [
            row
            for row in result
            if calculate_yield_percent(row) >= criteria.min_yield_filter
        ]
    return result
