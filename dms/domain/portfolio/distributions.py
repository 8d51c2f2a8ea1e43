"""
Domain service: distribution schedule analysis.

Given a fund's distribution history, picks the distribution that matters
today and estimates how often the fund pays. No IO, no frameworks.
"""

from datetime import date
from typing import Optional

from dms.domain.portfolio.entities import Distribution

MONTHLY_MAX_INTERVAL_DAYS = 40
QUARTERLY_MAX_INTERVAL_DAYS = 120
RECENT_HISTORY_SIZE = 4

DistributionPoint = tuple[date, float]


def estimate_distributions_per_year(
    history: list[DistributionPoint], today: date
) -> int:
    """Estimate the yearly payment count from the average gap between ex-dates.

    Uses the most recent past ex-dates. An average gap under 40 days means
    monthly, under 120 days quarterly, otherwise annual.
    """
    if len(history) <= 1:
        return 1

    past = sorted(ex_date for ex_date, _ in history if ex_date < today)
    recent = past[-RECENT_HISTORY_SIZE:]
    if len(recent) <= 1:
        return 1

    gaps = [(later - earlier).days for earlier, later in zip(recent, recent[1:])]
    average = sum(gaps) / len(gaps)
    if average < MONTHLY_MAX_INTERVAL_DAYS:
        return 12
    if average < QUARTERLY_MAX_INTERVAL_DAYS:
        return 4
    return 1


def select_distribution(
    history: list[DistributionPoint], today: date
) -> Optional[Distribution]:
    """Return the next upcoming distribution, or the most recent past one.

    Args:
        history: ``(ex_date, amount)`` pairs in any order.
        today: Reference date.

    Returns:
        The selected distribution with its estimated yearly frequency, or
        None when the history is empty.
    """
    if not history:
        return None

    ordered = sorted(history, key=lambda point: point[0])
    upcoming = next((point for point in ordered if point[0] >= today), None)
    ex_date, amount = upcoming if upcoming is not None else ordered[-1]

    return Distribution(
        distribution=amount,
        ex_date=ex_date,
        distributions_per_year=estimate_distributions_per_year(ordered, today),
    )
