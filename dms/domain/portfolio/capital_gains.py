"""
Domain service: capital gain calculation and formatting.

Pure functions used by the sold-positions listing and the summary.
No IO, no frameworks.
"""

import math


def classify_capital_gain(capital_gain: float) -> str:
    """Return 'gain', 'loss' or 'neutral' for a capital gain amount."""
    if capital_gain > 0:
        return "gain"
    if capital_gain < 0:
        return "loss"
    return "neutral"


def calculate_capital_gains(
    buy: float, sell: float, quantity: float
) -> tuple[float, float]:
    """Compute the dollar gain and percentage gain of a closed trade.

    Args:
        buy: Purchase price per share.
        sell: Sale price per share.
        quantity: Number of shares.

    Returns:
        A ``(capital_gain, capital_gain_percentage)`` tuple. Non-finite
        inputs yield ``(0, 0)``; a zero buy price yields a percentage of 0.
    """
    if not all(math.isfinite(value) for value in (buy, sell, quantity)):
        return 0.0, 0.0

    capital_gain = (sell - buy) * quantity
    if buy == 0:
        return capital_gain, 0.0
    return capital_gain, (sell - buy) / buy * 100


def format_capital_gains_percentage(buy: float, percentage: float) -> str:
    """Format a percentage with two decimals, or 'N/A' when meaningless."""
    if not math.isfinite(buy) or buy == 0 or not math.isfinite(percentage):
        return "N/A"
    return f"{percentage:.2f}%"


def format_capital_gains_dollar(amount: float) -> str:
    """Format a dollar amount with thousands separators and 2 to 4 decimals.

    Examples:
        >>> format_capital_gains_dollar(1234.5678)
        '$1,234.5678'
        >>> format_capital_gains_dollar(-500.25)
        '-$500.25'
    """
    if not math.isfinite(amount):
        return "$0.00"

    text = f"{abs(amount):,.4f}"
    whole, decimals = text.split(".")
    decimals = decimals.rstrip("0").ljust(2, "0")
    sign = "-" if amount < 0 and text != "0.0000" else ""
    return f"{sign}${whole}.{decimals}"
