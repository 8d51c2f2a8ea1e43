"""
Domain service: CUSIP recognition.

Fidelity reports some holdings (bonds, money market funds, unlisted
shares) by CUSIP instead of ticker. These helpers decide whether a symbol
is a CUSIP so it can be translated before import.
"""

import re

_CUSIP_PATTERN = re.compile(r"^[0-9A-Z]{8}[0-9]$")


def cusip_check_digit(base: str) -> int:
    """Return the modulus-10 check digit for the first eight CUSIP characters."""
    total = 0
    for position, char in enumerate(base.upper()):
        if char.isdigit():
            value = int(char)
        elif char.isalpha():
            value = ord(char) - ord("A") + 10
        elif char == "*":
            value = 36
        elif char == "@":
            value = 37
        else:
            value = 38
        if position % 2 == 1:
            value *= 2
        total += value // 10 + value % 10
    return (10 - total % 10) % 10


def is_cusip(symbol: str) -> bool:
    """Return True when ``symbol`` is a well-formed CUSIP with a valid check digit.

    Pure-letter tickers never qualify even if they happen to be nine
    characters long.
    """
    candidate = (symbol or "").strip().upper()
    if not _CUSIP_PATTERN.match(candidate):
        return False
    if not any(char.isdigit() for char in candidate[:8]):
        return False
    return cusip_check_digit(candidate[:8]) == int(candidate[8])
