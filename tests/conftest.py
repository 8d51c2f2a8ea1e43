"""
Shared fixtures.

The environment is set before ``dms`` is imported so that module level
settings (rate limiter, CORS policy) pick up the test values.
"""

import os

os.environ["NODE_ENV"] = "development"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["RESOLVE_CUSIPS"] = "false"
os.environ["USE_SCREENER_FOR_UNIVERSE"] = "false"
os.environ["LOG_DIR"] = ""

from typing import Optional  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from dms.domain.portfolio.entities import Distribution  # noqa: E402
from dms.domain.portfolio.ports import MarketDataPort  # noqa: E402
from dms.infrastructure.portfolio.database import (  # noqa: E402
    build_engine,
    build_session_factory,
    init_db,
    session_scope,
)
from dms.interfaces.portfolio.dependencies import (  # noqa: E402
    get_cusip_resolver,
    get_engine,
    get_market_data,
    get_session,
)


class FakeMarketData(MarketDataPort):
    """In-memory quotes and distributions keyed by symbol."""

    def __init__(self) -> None:
        self.prices: dict[str, float] = {}
        self.distributions: dict[str, Distribution] = {}
        self.failing: set[str] = set()

    def get_last_price(self, symbol: str) -> Optional[float]:
        if symbol in self.failing:
            raise RuntimeError(f"quote service down for {symbol}")
        return self.prices.get(symbol)

    def get_distribution(self, symbol: str) -> Optional[Distribution]:
        return self.distributions.get(symbol)


@pytest.fixture
def engine():
    engine = build_engine("sqlite://")
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session(engine):
    factory = build_session_factory(engine)
    yield from session_scope(factory)


@pytest.fixture
def market_data() -> FakeMarketData:
    return FakeMarketData()


@pytest.fixture
def client(engine, market_data):
    from dms.main import app

    factory = build_session_factory(engine)

    def override_session():
        yield from session_scope(factory)

    app.dependency_overrides[get_session] = override_session
    app.dependency_overrides[get_engine] = lambda: engine
    app.dependency_overrides[get_market_data] = lambda: market_data
    app.dependency_overrides[get_cusip_resolver] = lambda: None
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
