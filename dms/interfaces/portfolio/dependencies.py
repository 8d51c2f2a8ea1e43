"""
Dependency injection for the portfolio bounded context.

Provides FastAPI dependency functions that wire infrastructure
adapters into use cases via constructor injection.
These are the composition root for the portfolio context.
"""

from functools import lru_cache
from typing import Iterator, Optional

from fastapi import Depends
from sqlalchemy import Engine
from sqlalchemy.orm import Session, sessionmaker

from dms.application.portfolio.add_symbol import AddSymbolUseCase
from dms.application.portfolio.get_summary import GetSummaryUseCase
from dms.application.portfolio.import_fidelity import FidelityImportService
from dms.application.portfolio.manage_accounts import ManageAccountsUseCase
from dms.application.portfolio.manage_div_deposits import ManageDivDepositsUseCase
from dms.application.portfolio.manage_screener import ManageScreenerUseCase
from dms.application.portfolio.manage_trades import ManageTradesUseCase
from dms.application.portfolio.manage_universe import ManageUniverseUseCase
from dms.application.portfolio.refresh_universe import RefreshUniverseUseCase
from dms.application.portfolio.sync_universe import SyncUniverseFromScreenerUseCase
from dms.application.portfolio.update_universe_settings import UpdateUniverseSettingsUseCase
from dms.core.config import Settings, settings
from dms.domain.portfolio.ports import CusipResolverPort, MarketDataPort
from dms.infrastructure.portfolio.account_repository import AccountRepositoryAdapter
from dms.infrastructure.portfolio.cusip_resolver_adapter import OpenFigiCusipResolver
from dms.infrastructure.portfolio.database import (
    build_engine,
    build_session_factory,
    session_scope,
)
from dms.infrastructure.portfolio.div_deposit_repository import (
    DivDepositRepositoryAdapter,
    DivDepositTypeRepositoryAdapter,
)
from dms.infrastructure.portfolio.market_data_adapter import MarketDataAdapter
from dms.infrastructure.portfolio.risk_group_repository import RiskGroupRepositoryAdapter
from dms.infrastructure.portfolio.screener_repository import ScreenerRepositoryAdapter
from dms.infrastructure.portfolio.trade_repository import TradeRepositoryAdapter
from dms.infrastructure.portfolio.universe_repository import UniverseRepositoryAdapter


def get_settings() -> Settings:
    return settings


@lru_cache(maxsize=1)
def get_engine() -> Engine:
    """Build the SQLAlchemy engine once from application settings."""
    return build_engine(settings.database_url)


@lru_cache(maxsize=1)
def get_session_factory() -> sessionmaker[Session]:
    return build_session_factory(get_engine())


def get_session() -> Iterator[Session]:
    """Yield one session per request."""
    yield from session_scope(get_session_factory())


@lru_cache(maxsize=1)
def get_market_data() -> MarketDataPort:
    """Shared so that the CEF Connect throttle spans requests."""
    return MarketDataAdapter()


def get_cusip_resolver(
    app_settings: Settings = Depends(get_settings),
) -> Optional[CusipResolverPort]:
    if not app_settings.resolve_cusips:
        return None
    return OpenFigiCusipResolver(api_key=app_settings.openfigi_api_key)


def get_import_service(
    session: Session = Depends(get_session),
    cusip_resolver: Optional[CusipResolverPort] = Depends(get_cusip_resolver),
) -> FidelityImportService:
    """Build FidelityImportService with its infrastructure dependencies."""
    return FidelityImportService(
        account_repo=AccountRepositoryAdapter(session),
        universe_repo=UniverseRepositoryAdapter(session),
        risk_group_repo=RiskGroupRepositoryAdapter(session),
        trade_repo=TradeRepositoryAdapter(session),
        deposit_repo=DivDepositRepositoryAdapter(session),
        deposit_type_repo=DivDepositTypeRepositoryAdapter(session),
        cusip_resolver=cusip_resolver,
    )


def get_sync_universe_use_case(
    session: Session = Depends(get_session),
    market_data: MarketDataPort = Depends(get_market_data),
    app_settings: Settings = Depends(get_settings),
) -> SyncUniverseFromScreenerUseCase:
    """Build SyncUniverseFromScreenerUseCase with its infrastructure dependencies."""
    return SyncUniverseFromScreenerUseCase(
        screener_repo=ScreenerRepositoryAdapter(session),
        universe_repo=UniverseRepositoryAdapter(session),
        market_data=market_data,
        enabled=app_settings.use_screener_for_universe,
    )


def get_update_universe_settings_use_case(
    session: Session = Depends(get_session),
    market_data: MarketDataPort = Depends(get_market_data),
) -> UpdateUniverseSettingsUseCase:
    return UpdateUniverseSettingsUseCase(
        risk_group_repo=RiskGroupRepositoryAdapter(session),
        universe_repo=UniverseRepositoryAdapter(session),
        market_data=market_data,
    )


def get_refresh_universe_use_case(
    session: Session = Depends(get_session),
    market_data: MarketDataPort = Depends(get_market_data),
) -> RefreshUniverseUseCase:
    return RefreshUniverseUseCase(
        universe_repo=UniverseRepositoryAdapter(session),
        market_data=market_data,
    )


def get_add_symbol_use_case(
    session: Session = Depends(get_session),
    market_data: MarketDataPort = Depends(get_market_data),
) -> AddSymbolUseCase:
    return AddSymbolUseCase(
        universe_repo=UniverseRepositoryAdapter(session),
        risk_group_repo=RiskGroupRepositoryAdapter(session),
        market_data=market_data,
    )


def get_manage_universe_use_case(
    session: Session = Depends(get_session),
) -> ManageUniverseUseCase:
    return ManageUniverseUseCase(
        universe_repo=UniverseRepositoryAdapter(session),
        risk_group_repo=RiskGroupRepositoryAdapter(session),
        trade_repo=TradeRepositoryAdapter(session),
    )


def get_summary_use_case(session: Session = Depends(get_session)) -> GetSummaryUseCase:
    return GetSummaryUseCase(
        account_repo=AccountRepositoryAdapter(session),
        trade_repo=TradeRepositoryAdapter(session),
        deposit_repo=DivDepositRepositoryAdapter(session),
        universe_repo=UniverseRepositoryAdapter(session),
        risk_group_repo=RiskGroupRepositoryAdapter(session),
    )


def get_manage_accounts_use_case(
    session: Session = Depends(get_session),
) -> ManageAccountsUseCase:
    return ManageAccountsUseCase(
        account_repo=AccountRepositoryAdapter(session),
        trade_repo=TradeRepositoryAdapter(session),
        deposit_repo=DivDepositRepositoryAdapter(session),
    )


def get_manage_trades_use_case(
    session: Session = Depends(get_session),
) -> ManageTradesUseCase:
    return ManageTradesUseCase(
        trade_repo=TradeRepositoryAdapter(session),
        account_repo=AccountRepositoryAdapter(session),
        universe_repo=UniverseRepositoryAdapter(session),
    )


def get_manage_div_deposits_use_case(
    session: Session = Depends(get_session),
) -> ManageDivDepositsUseCase:
    return ManageDivDepositsUseCase(
        deposit_repo=DivDepositRepositoryAdapter(session),
        deposit_type_repo=DivDepositTypeRepositoryAdapter(session),
        account_repo=AccountRepositoryAdapter(session),
        universe_repo=UniverseRepositoryAdapter(session),
    )


def get_manage_screener_use_case(
    session: Session = Depends(get_session),
) -> ManageScreenerUseCase:
    return ManageScreenerUseCase(screener_repo=ScreenerRepositoryAdapter(session))
