"""
Domain service: monthly account summary.

Aggregates trades and deposits of one account into the figures shown on
the summary page and its yearly graph. Works on plain entity lists so it
can be tested without a database.
"""

import re
from dataclasses import dataclass
from datetime import date
from typing import Iterable

from dms.domain.portfolio.entities import DivDeposit, MonthRef, Trade
from dms.domain.portfolio.errors import InvalidMonthError

EQUITIES = "Equities"
INCOME = "Income"
TAX_FREE_INCOME = "Tax Free Income"

_MONTH_PATTERN = re.compile(r"^(\d{4})-(\d{2})$")


@dataclass(frozen=True)
class MonthlySummary:
    deposits: float
    dividends: float
    capital_gains: float
    equities: float
    income: float
    tax_free_income: float


@dataclass(frozen=True)
class GraphPoint:
    """One month of the yearly graph. ``deposits`` is a running total."""

    month: str
    deposits: float
    dividends: float
    capital_gains: float


def parse_month(month: str) -> tuple[date, date]:
    """Return the ``[start, end)`` range of a ``YYYY-MM`` month.

    Raises:
        InvalidMonthError: If the text is not a valid month.
    """
    match = _MONTH_PATTERN.match(month or "")
    if match is None:
        raise InvalidMonthError(month)
    year, number = int(match.group(1)), int(match.group(2))
    if not 1 <= number <= 12:
        raise InvalidMonthError(month)
    return month_range(year, number)


def month_range(year: int, month: int) -> tuple[date, date]:
    start = date(year, month, 1)
    end = date(year + 1, 1, 1) if month == 12 else date(year, month + 1, 1)
    return start, end


def _gain(trade: Trade) -> float:
    return (trade.sell - trade.buy) * trade.quantity


def _sold_between(trade: Trade, start: date, end: date) -> bool:
    return trade.sell_date is not None and start <= trade.sell_date < end


def summarize_month(
    trades: Iterable[Trade],
    deposits: Iterable[DivDeposit],
    risk_group_by_universe: dict[str, str],
    start: date,
    end: date,
) -> MonthlySummary:
    """Build the summary of one account for the month ``[start, end)``.

    Args:
        trades: All trades of the account.
        deposits: All deposits of the account.
        risk_group_by_universe: Universe id -> risk group name.
        start: First day of the month.
        end: First day of the next month.

    Returns:
        ``deposits`` is this month's cash deposits plus every earlier
        deposit and earlier realised gain. ``dividends`` and
        ``capital_gains`` cover this month only. The three risk group
        figures are the cost basis of positions open or sold this month.
    """
    trades = list(trades)
    deposits = list(deposits)

    month_deposits = [d for d in deposits if start <= d.date < end]
    prior_deposits = sum(d.amount for d in deposits if d.date < start)
    prior_gains = sum(
        _gain(t) for t in trades if t.sell_date is not None and t.sell_date < start
    )

    cost_basis: dict[str, float] = {}
    for trade in trades:
        if trade.is_open or _sold_between(trade, start, end):
            name = risk_group_by_universe.get(trade.universe_id)
            if name is not None:
                cost_basis[name] = cost_basis.get(name, 0.0) + trade.buy * trade.quantity

    return MonthlySummary(
        deposits=sum(d.amount for d in month_deposits if not d.is_dividend)
        + prior_deposits
        + prior_gains,
        dividends=sum(d.amount for d in month_deposits if d.is_dividend),
        capital_gains=sum(_gain(t) for t in trades if _sold_between(t, start, end)),
        equities=cost_basis.get(EQUITIES, 0.0),
        income=cost_basis.get(INCOME, 0.0),
        tax_free_income=cost_basis.get(TAX_FREE_INCOME, 0.0),
    )


def build_year_graph(
    trades: Iterable[Trade], deposits: Iterable[DivDeposit], year: int
) -> list[GraphPoint]:
    """Return twelve monthly points for ``year``.

    Each month's dividends and gains are folded into the running deposit
    total starting with the following month.
    """
    trades = list(trades)
    deposits = list(deposits)
    points: list[GraphPoint] = []
    running_total = 0.0
    pending = 0.0

    for month in range(1, 13):
        start, end = month_range(year, month)
        month_deposits = [d for d in deposits if start <= d.date < end]
        cash = sum(d.amount for d in month_deposits if not d.is_dividend)
        dividends = sum(d.amount for d in month_deposits if d.is_dividend)
        gains = sum(_gain(t) for t in trades if _sold_between(t, start, end))

        running_total += pending + cash
        points.append(
            GraphPoint(
                month=f"{month:02d}-{year}",
                deposits=running_total,
                dividends=dividends,
                capital_gains=gains,
            )
        )
        pending = dividends + gains
    return points


def activity_months(
    trades: Iterable[Trade], deposits: Iterable[DivDeposit]
) -> list[MonthRef]:
    """Distinct months with a sale or a deposit, most recent first."""
    months = {MonthRef(d.date.year, d.date.month) for d in deposits}
    months.update(
        MonthRef(t.sell_date.year, t.sell_date.month)
        for t in trades
        if t.sell_date is not None
    )
    return sorted(months, key=lambda ref: (ref.year, ref.month), reverse=True)


def activity_years(
    trades: Iterable[Trade], deposits: Iterable[DivDeposit]
) -> list[int]:
    return sorted({ref.year for ref in activity_months(trades, deposits)}, reverse=True)
