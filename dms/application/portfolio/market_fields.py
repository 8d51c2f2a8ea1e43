"""
Helpers turning market data lookups into universe field values.
"""

from datetime import date
from typing import Any, Optional

from dms.domain.portfolio.entities import Distribution
from dms.domain.portfolio.ports import MarketDataPort


def upcoming_ex_date(distribution: Optional[Distribution], today: date) -> Optional[date]:
    """Return the distribution's ex-date when it lies after ``today``."""
    if distribution is None or distribution.ex_date is None:
        return None
    return distribution.ex_date if distribution.ex_date > today else None


def fetch_market_fields(
    market_data: MarketDataPort, symbol: str, today: date
) -> tuple[dict[str, Any], Optional[Distribution]]:
    """Look up price and distribution of ``symbol``.

    Returns:
        Universe field values to apply, and the raw distribution. Missing
        data yields zero metrics; ``ex_date`` is only included when the
        next ex-date is in the future.
    """
    last_price = market_data.get_last_price(symbol)
    distribution = market_data.get_distribution(symbol)

    fields: dict[str, Any] = {"last_price": last_price or 0.0}
    if distribution is not None:
        fields["distribution"] = distribution.distribution
        fields["distributions_per_year"] = distribution.distributions_per_year
    ex_date = upcoming_ex_date(distribution, today)
    if ex_date is not None:
        fields["ex_date"] = ex_date
    return fields, distribution
