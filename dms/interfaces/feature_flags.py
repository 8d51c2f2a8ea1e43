"""
Feature flag router.

Exposes the server-side switches the web client needs to adapt its UI.
"""

from fastapi import APIRouter, Depends

from dms.core.config import Settings
from dms.interfaces.portfolio.dependencies import get_settings
from dms.interfaces.portfolio.schemas import FeatureFlagsResponse

router = APIRouter(tags=["feature-flags"])


@router.get(
    "/feature-flags",
    response_model=FeatureFlagsResponse,
    summary="Feature flags",
)
def get_feature_flags(
    app_settings: Settings = Depends(get_settings),
) -> FeatureFlagsResponse:
    return FeatureFlagsResponse(
        use_screener_for_universe=app_settings.use_screener_for_universe
    )
