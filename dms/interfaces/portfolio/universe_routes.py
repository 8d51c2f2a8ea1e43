"""
FastAPI routes for the universe, its risk groups, the screener and the
universe settings screen.

All routes delegate to use cases. No business logic here.
Error mapping is handled by centralized error handlers.
"""

import logging
from dataclasses import asdict
from typing import Optional
from uuid import uuid4

from fastapi import APIRouter, Depends, Query, Request, Response, status
from fastapi.responses import JSONResponse

from dms.application.portfolio.add_symbol import AddSymbolUseCase
from dms.application.portfolio.dtos import (
    AddSymbolCommand,
    UniverseQuery,
    UniverseSettingsCommand,
    UniverseUpdateCommand,
)
from dms.application.portfolio.manage_screener import ManageScreenerUseCase
from dms.application.portfolio.manage_universe import ManageUniverseUseCase
from dms.application.portfolio.refresh_universe import RefreshUniverseUseCase
from dms.application.portfolio.sync_universe import SyncUniverseFromScreenerUseCase
from dms.application.portfolio.update_universe_settings import (
    UpdateUniverseSettingsUseCase,
    parse_symbol_list,
)
from dms.domain.portfolio.entities import Universe
from dms.domain.portfolio.errors import FeatureDisabledError
from dms.interfaces.portfolio.dependencies import (
    get_add_symbol_use_case,
    get_manage_screener_use_case,
    get_manage_universe_use_case,
    get_refresh_universe_use_case,
    get_sync_universe_use_case,
    get_update_universe_settings_use_case,
)
from dms.interfaces.portfolio.schemas import (
    AddSymbolRequest,
    ErrorResponse,
    RefreshResponse,
    RiskGroupItem,
    ScreenerItem,
    ScreenerPatchRequest,
    SyncResponse,
    UniverseItem,
    UniverseSettingsRequest,
    UniverseSettingsResponse,
    UniverseUpdateRequest,
)
from dms.shared.security.rate_limiting import HEAVY_RATE_LIMIT, limiter

logger = logging.getLogger(__name__)

router = APIRouter(tags=["universe"])


def _universe_item(universe: Universe, blank_zero_metrics: bool = False) -> UniverseItem:
    """Map an entity to the response item.

    A freshly added symbol reports metrics it could not fetch as null.
    """

    def metric(value):
        return None if blank_zero_metrics and not value else value

    return UniverseItem(
        id=universe.id,
        symbol=universe.symbol,
        risk_group_id=universe.risk_group_id,
        distribution=metric(universe.distribution),
        distributions_per_year=metric(universe.distributions_per_year),
        last_price=metric(universe.last_price),
        ex_date=universe.ex_date,
        most_recent_sell_date=universe.most_recent_sell_date,
        most_recent_sell_price=universe.most_recent_sell_price,
        expired=universe.expired,
        is_closed_end_fund=universe.is_closed_end_fund,
        name=universe.name,
    )


@router.get(
    "/universe",
    response_model=list[UniverseItem],
    summary="List universe symbols",
    description=(
        "Rows enriched with risk group name, yield and open position, "
        "filtered and sorted by the query parameters."
    ),
)
def list_universe(
    symbol: Optional[str] = Query(default=None, max_length=32),
    risk_group_id: Optional[str] = None,
    expired: Optional[bool] = None,
    min_yield: Optional[float] = Query(default=None, ge=0),
    account_id: Optional[str] = None,
    sort: Optional[str] = Query(default=None, max_length=64),
    direction: str = Query(default="asc", pattern=r"^(asc|desc|)$"),
    use_case: ManageUniverseUseCase = Depends(get_manage_universe_use_case),
) -> list[UniverseItem]:
    rows = use_case.list_universe(
        UniverseQuery(
            symbol=symbol,
            risk_group_id=risk_group_id,
            expired=expired,
            min_yield=min_yield,
            account_id=account_id,
            sort=sort,
            direction=direction,
        )
    )
    return [UniverseItem(**row) for row in rows]


@router.post(
    "/universe/add-symbol",
    response_model=UniverseItem,
    status_code=status.HTTP_201_CREATED,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
    summary="Add a symbol to the universe",
)
def add_symbol(
    body: AddSymbolRequest,
    use_case: AddSymbolUseCase = Depends(get_add_symbol_use_case),
) -> UniverseItem:
    universe = use_case.execute(
        AddSymbolCommand(symbol=body.symbol, risk_group_id=body.risk_group_id)
    )
    return _universe_item(universe, blank_zero_metrics=True)


@router.put(
    "/universe/{universe_id}",
    response_model=UniverseItem,
    responses={404: {"model": ErrorResponse}},
    summary="Edit a universe row",
)
def update_universe(
    universe_id: str,
    body: UniverseUpdateRequest,
    use_case: ManageUniverseUseCase = Depends(get_manage_universe_use_case),
) -> UniverseItem:
    universe = use_case.update(
        UniverseUpdateCommand(universe_id=universe_id, **body.model_dump())
    )
    return _universe_item(universe)


@router.delete(
    "/universe/{universe_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
    summary="Delete a universe row without open positions",
)
def delete_universe(
    universe_id: str,
    use_case: ManageUniverseUseCase = Depends(get_manage_universe_use_case),
) -> Response:
    use_case.delete(universe_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/universe/sync-from-screener",
    response_model=SyncResponse,
    responses={403: {"model": SyncResponse}},
    summary="Synchronise the universe with qualified screener rows",
)
@limiter.limit(HEAVY_RATE_LIMIT)
def sync_from_screener(
    request: Request,
    use_case: SyncUniverseFromScreenerUseCase = Depends(get_sync_universe_use_case),
):
    """Disabled sync answers 403; an unexpected failure reports zero counts."""
    correlation_id = request.headers.get("x-request-id") or str(uuid4())
    try:
        summary = use_case.execute(correlation_id)
    except FeatureDisabledError:
        empty = SyncResponse(
            inserted=0,
            updated=0,
            marked_expired=0,
            selected_count=0,
            correlation_id=correlation_id,
        )
        return JSONResponse(
            status_code=status.HTTP_403_FORBIDDEN, content=empty.model_dump(by_alias=True)
        )
    except Exception:
        logger.exception("[%s] Universe sync failed", correlation_id)
        return SyncResponse(
            inserted=0,
            updated=0,
            marked_expired=0,
            selected_count=0,
            correlation_id=correlation_id,
        )
    return SyncResponse(
        inserted=summary.inserted,
        updated=summary.updated,
        marked_expired=summary.marked_expired,
        selected_count=summary.selected_count,
        correlation_id=summary.correlation_id,
    )


@router.post(
    "/settings",
    response_model=UniverseSettingsResponse,
    summary="Assign symbols to the standard risk groups",
)
@limiter.limit(HEAVY_RATE_LIMIT)
def update_settings(
    request: Request,
    body: UniverseSettingsRequest,
    use_case: UpdateUniverseSettingsUseCase = Depends(
        get_update_universe_settings_use_case
    ),
) -> UniverseSettingsResponse:
    result = use_case.execute(
        UniverseSettingsCommand(
            equities=parse_symbol_list(body.equities),
            income=parse_symbol_list(body.income),
            tax_free_income=parse_symbol_list(body.tax_free_income),
        )
    )
    return UniverseSettingsResponse(
        added=result.added, updated=result.updated, marked_expired=result.marked_expired
    )


@router.get(
    "/settings/update",
    response_model=RefreshResponse,
    summary="Refresh prices and distributions",
)
@limiter.limit(HEAVY_RATE_LIMIT)
def refresh_universe(
    request: Request,
    use_case: RefreshUniverseUseCase = Depends(get_refresh_universe_use_case),
) -> RefreshResponse:
    result = use_case.execute()
    return RefreshResponse(
        prices_updated=result.prices_updated,
        distributions_updated=result.distributions_updated,
    )


@router.get("/risk-groups", response_model=list[RiskGroupItem], summary="List risk groups")
def list_risk_groups(
    use_case: ManageUniverseUseCase = Depends(get_manage_universe_use_case),
) -> list[RiskGroupItem]:
    return [RiskGroupItem(id=g.id, name=g.name) for g in use_case.list_risk_groups()]


@router.get("/screener", response_model=list[ScreenerItem], summary="List screener rows")
def list_screener(
    use_case: ManageScreenerUseCase = Depends(get_manage_screener_use_case),
) -> list[ScreenerItem]:
    return [ScreenerItem(**asdict(row)) for row in use_case.list_rows()]


@router.patch(
    "/screener/{row_id}",
    response_model=ScreenerItem,
    responses={404: {"model": ErrorResponse}},
    summary="Update screener qualification flags",
)
def patch_screener(
    row_id: str,
    body: ScreenerPatchRequest,
    use_case: ManageScreenerUseCase = Depends(get_manage_screener_use_case),
) -> ScreenerItem:
    row = use_case.set_flags(row_id, **body.model_dump())
    return ScreenerItem(**asdict(row))
