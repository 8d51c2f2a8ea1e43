"""
Aggregated FastAPI router for the portfolio bounded context.

Mounted under ``/api`` by the application factory.
"""

from fastapi import APIRouter

from dms.interfaces.portfolio.account_routes import router as account_router
from dms.interfaces.portfolio.import_routes import router as import_router
from dms.interfaces.portfolio.summary_routes import router as summary_router
from dms.interfaces.portfolio.universe_routes import router as universe_router

router = APIRouter()
router.include_router(universe_router)
router.include_router(account_router)
router.include_router(summary_router)
router.include_router(import_router)
