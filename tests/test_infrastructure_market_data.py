"""
Tests for the market data and CUSIP resolver adapters.

HTTP traffic goes through httpx.MockTransport and yfinance is patched,
so no network access is needed.
"""

import json
from datetime import date
from unittest.mock import MagicMock, patch

import httpx

from dms.domain.portfolio.entities import Distribution
from dms.infrastructure.portfolio.cusip_resolver_adapter import OpenFigiCusipResolver
from dms.infrastructure.portfolio.market_data_adapter import (
    MarketDataAdapter,
    parse_distribution_rows,
)

TODAY = date(2024, 4, 20)
TICKER = "dms.infrastructure.portfolio.market_data_adapter.yf.Ticker"


def _adapter(handler=None, sleep=None, clock=None) -> MarketDataAdapter:
    client = httpx.Client(transport=httpx.MockTransport(handler or (lambda r: httpx.Response(404))))
    return MarketDataAdapter(
        http_client=client,
        sleep=sleep or (lambda seconds: None),
        clock=clock or (lambda: 0.0),
        today=lambda: TODAY,
        min_interval=60.0,
    )


def _ticker(last_price=None, info=None) -> MagicMock:
    ticker = MagicMock()
    ticker.fast_info.last_price = last_price
    ticker.info = info or {}
    return ticker


class TestLastPrice:
    """Tests for quotes from yfinance."""

    def test_fast_info_price(self) -> None:
        with patch(TICKER, return_value=_ticker(last_price=19.5)):
            assert _adapter().get_last_price("PDI") == 19.5

    def test_falls_back_to_regular_market_price(self) -> None:
        with patch(TICKER, return_value=_ticker(info={"regularMarketPrice": 20})):
            assert _adapter().get_last_price("PDI") == 20.0

    def test_retries_with_backoff_then_gives_up(self) -> None:
        """Three attempts with 1s then 2s pauses, then no price."""
        sleeps: list[float] = []
        with patch(TICKER, side_effect=RuntimeError("boom")) as ticker:
            assert _adapter(sleep=sleeps.append).get_last_price("PDI") is None
        assert ticker.call_count == 3
        assert sleeps == [1.0, 2.0]


class TestDistributionHistory:
    """Tests for distribution history from CEF Connect."""

    ROWS = [
        {"ExDivDateDisplay": "3/15/2024", "TotDiv": 0.2},
        {"ExDivDateDisplay": "1/15/2024", "TotDiv": 0.2},
        {"ExDivDateDisplay": "2/15/2024", "TotDiv": 0.2},
        {"ExDivDateDisplay": "4/15/2024", "TotDiv": 0.21},
        {"ExDivDateDisplay": "5/15/2024", "TotDiv": 0.22},
    ]

    def test_upcoming_distribution(self) -> None:
        """The request covers the last year and the next ex-date wins."""
        requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, json={"Data": self.ROWS})

        distribution = _adapter(handler).get_distribution("PDI")

        assert distribution == Distribution(
            distribution=0.22, ex_date=date(2024, 5, 15), distributions_per_year=12
        )
        (request,) = requests
        assert request.url.path.endswith("/fund/PDI/4-21-2023/4-20-2024")
        assert request.headers["Referer"] == "https://www.cefconnect.com/fund/PDI"

    def test_empty_history(self) -> None:
        adapter = _adapter(lambda request: httpx.Response(200, json={"Data": []}))
        assert adapter.get_distribution("SPY") is None

    def test_http_error_yields_placeholder(self) -> None:
        """A failed request reports a zero distribution paid once a year."""
        adapter = _adapter(lambda request: httpx.Response(503))
        assert adapter.get_distribution("PDI") == Distribution(
            distribution=0.0, ex_date=TODAY, distributions_per_year=1
        )

    def test_requests_are_throttled(self) -> None:
        """A second request within a minute waits out the remainder."""
        ticks = iter([100.0, 110.0, 160.0])
        sleeps: list[float] = []
        adapter = _adapter(
            lambda request: httpx.Response(200, json={"Data": []}),
            sleep=sleeps.append,
            clock=lambda: next(ticks),
        )

        adapter.get_distribution("PDI")
        adapter.get_distribution("ECC")

        assert sleeps == [50.0]

    def test_unparseable_rows_are_dropped(self) -> None:
        points = parse_distribution_rows(
            [
                {"ExDivDateDisplay": "2/15/2024", "TotDiv": "0.2"},
                {"ExDivDateDisplay": "not a date", "TotDiv": 0.2},
                {"ExDivDateDisplay": "1/15/2024"},
                {"ExDivDateDisplay": "1/15/2024", "TotDiv": 0.19},
            ]
        )
        assert points == [(date(2024, 1, 15), 0.19), (date(2024, 2, 15), 0.2)]


class TestOpenFigiResolver:
    """Tests for CUSIP resolution through OpenFIGI."""

    def test_batches_and_api_key(self) -> None:
        """Jobs go out ten at a time; a failed batch is skipped."""
        bodies: list[list[dict]] = []

        def handler(request: httpx.Request) -> httpx.Response:
            assert request.headers["X-OPENFIGI-APIKEY"] == "secret"
            jobs = json.loads(request.content)
            bodies.append(jobs)
            if len(bodies) == 2:
                return httpx.Response(500)
            return httpx.Response(
                200,
                json=[{"data": [{"ticker": "AAPL"}]}]
                + [{"warning": "No identifier found."}] * (len(jobs) - 1),
            )

        resolver = OpenFigiCusipResolver(
            api_key="secret",
            http_client=httpx.Client(transport=httpx.MockTransport(handler)),
        )
        cusips = ["037833100"] + [f"00000000{i}" for i in range(11)]

        assert resolver.resolve(cusips) == {"037833100": "AAPL"}
        assert [len(body) for body in bodies] == [10, 2]
        assert bodies[0][0] == {"idType": "ID_CUSIP", "idValue": "037833100"}

    def test_no_api_key_header_without_key(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=[{"data": []}])

        resolver = OpenFigiCusipResolver(
            http_client=httpx.Client(transport=httpx.MockTransport(handler))
        )
        assert resolver.resolve(["037833100"]) == {}
        assert "X-OPENFIGI-APIKEY" not in seen[0].headers
