"""
Adapter: Market data from Yahoo Finance and CEF Connect.

Implements MarketDataPort. Last prices come from yfinance with a short
exponential backoff; distribution history comes from the CEF Connect JSON
API through httpx, throttled to one request per minute.
"""

import logging
import time
from datetime import date, timedelta
from typing import Any, Callable, Optional

import httpx
import yfinance as yf
from dateutil import parser as dateparser

from dms.domain.portfolio.distributions import DistributionPoint, select_distribution
from dms.domain.portfolio.entities import Distribution
from dms.domain.portfolio.ports import MarketDataPort

logger = logging.getLogger(__name__)

CEF_CONNECT_URL = "https://www.cefconnect.com/api/v3/distributionhistory/fund/{symbol}/{start}/{end}"
CEF_CONNECT_MIN_INTERVAL_SECONDS = 60.0
PRICE_MAX_ATTEMPTS = 3
PRICE_BACKOFF_SECONDS = 1.0
HTTP_TIMEOUT_SECONDS = 15.0

_BROWSER_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)


def _cef_date(value: date) -> str:
    """CEF Connect expects unpadded ``M-D-YYYY`` path segments."""
    return f"{value.month}-{value.day}-{value.year}"


def _cef_headers(symbol: str) -> dict[str, str]:
    return {
        "User-Agent": _BROWSER_USER_AGENT,
        "Accept": "application/json, text/plain, */*",
        "Accept-Language": "en-US,en;q=0.9",
        "Referer": f"https://www.cefconnect.com/fund/{symbol}",
        "Sec-Fetch-Dest": "empty",
        "Sec-Fetch-Mode": "cors",
        "Sec-Fetch-Site": "same-origin",
    }


def parse_distribution_rows(rows: list[dict[str, Any]]) -> list[DistributionPoint]:
    """Turn CEF Connect ``Data`` rows into ``(ex_date, amount)`` points.

    Rows without a parseable ex-date or amount are dropped.
    """
    points: list[DistributionPoint] = []
    for row in rows:
        try:
            ex_date = dateparser.parse(str(row["ExDivDateDisplay"])).date()
            amount = float(row["TotDiv"])
        except (KeyError, TypeError, ValueError, OverflowError):
            continue
        points.append((ex_date, amount))
    return sorted(points, key=lambda point: point[0])


class MarketDataAdapter(MarketDataPort):
    """Live market data provider.

    ``sleep``, ``clock`` and ``today`` are injectable so that tests can run
    without waiting or touching the network clock.
    """

    def __init__(
        self,
        http_client: Optional[httpx.Client] = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
        today: Callable[[], date] = date.today,
        min_interval: float = CEF_CONNECT_MIN_INTERVAL_SECONDS,
    ) -> None:
        self._http = http_client or httpx.Client(timeout=HTTP_TIMEOUT_SECONDS)
        self._sleep = sleep
        self._clock = clock
        self._today = today
        self._min_interval = min_interval
        self._last_request_at: Optional[float] = None

    # ------------------------------------------------------------------
    # Prices
    # ------------------------------------------------------------------

    def _fetch_quote(self, symbol: str) -> Optional[float]:
        ticker = yf.Ticker(symbol)
        price = ticker.fast_info.last_price
        if price is None:
            price = ticker.info.get("regularMarketPrice")
        return float(price) if price is not None else None

    def get_last_price(self, symbol: str) -> Optional[float]:
        delay = PRICE_BACKOFF_SECONDS
        for attempt in range(1, PRICE_MAX_ATTEMPTS + 1):
            try:
                return self._fetch_quote(symbol)
            except Exception as exc:
                logger.warning(
                    "Quote for %s failed (attempt %d/%d): %s",
                    symbol,
                    attempt,
                    PRICE_MAX_ATTEMPTS,
                    exc,
                )
                if attempt < PRICE_MAX_ATTEMPTS:
                    self._sleep(delay)
                    delay *= 2
        logger.error("No quote available for %s", symbol)
        return None

    # ------------------------------------------------------------------
    # Distributions
    # ------------------------------------------------------------------

    def _throttle(self) -> None:
        if self._last_request_at is not None:
            elapsed = self._clock() - self._last_request_at
            if elapsed < self._min_interval:
                self._sleep(self._min_interval - elapsed)
        self._last_request_at = self._clock()

    def get_distribution(self, symbol: str) -> Optional[Distribution]:
        self._throttle()
        today = self._today()
        url = CEF_CONNECT_URL.format(
            symbol=symbol,
            start=_cef_date(today - timedelta(days=365)),
            end=_cef_date(today),
        )

        try:
            response = self._http.get(url, headers=_cef_headers(symbol))
            response.raise_for_status()
            payload = response.json() or {}
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("Distribution history for %s unavailable: %s", symbol, exc)
            return Distribution(distribution=0.0, ex_date=today, distributions_per_year=1)

        points = parse_distribution_rows(payload.get("Data") or [])
        if not points:
            logger.info("No distribution history for %s", symbol)
            return None
        return select_distribution(points, today)
