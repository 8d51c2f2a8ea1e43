"""
FastAPI routes for the account summary page.
"""

from fastapi import APIRouter, Depends, Query

from dms.application.portfolio.get_summary import GetSummaryUseCase
from dms.interfaces.portfolio.dependencies import get_summary_use_case
from dms.interfaces.portfolio.schemas import (
    ErrorResponse,
    GraphPointItem,
    MonthItem,
    SummaryResponse,
)

router = APIRouter(prefix="/summary", tags=["summary"])


@router.get(
    "",
    response_model=SummaryResponse,
    responses={404: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
    summary="Monthly summary of an account",
)
def get_summary(
    account_id: str,
    month: str,
    use_case: GetSummaryUseCase = Depends(get_summary_use_case),
) -> SummaryResponse:
    result = use_case.summary(account_id, month)
    return SummaryResponse(
        deposits=result.deposits,
        dividends=result.dividends,
        capital_gains=result.capital_gains,
        equities=result.equities,
        income=result.income,
        tax_free_income=result.tax_free_income,
    )


@router.get(
    "/graph",
    response_model=list[GraphPointItem],
    responses={404: {"model": ErrorResponse}},
    summary="Twelve monthly points for a year",
)
def get_graph(
    account_id: str,
    year: int = Query(..., ge=1950, le=9999),
    use_case: GetSummaryUseCase = Depends(get_summary_use_case),
) -> list[GraphPointItem]:
    return [
        GraphPointItem(
            month=point.month,
            deposits=point.deposits,
            dividends=point.dividends,
            capital_gains=point.capital_gains,
        )
        for point in use_case.graph(account_id, year)
    ]


@router.get(
    "/months",
    response_model=list[MonthItem],
    responses={404: {"model": ErrorResponse}},
    summary="Months with sales or deposits, most recent first",
)
def get_months(
    account_id: str,
    use_case: GetSummaryUseCase = Depends(get_summary_use_case),
) -> list[MonthItem]:
    return [MonthItem(month=ref.key, label=ref.label) for ref in use_case.months(account_id)]


@router.get(
    "/years",
    response_model=list[int],
    responses={404: {"model": ErrorResponse}},
    summary="Years with sales or deposits, most recent first",
)
def get_years(
    account_id: str,
    use_case: GetSummaryUseCase = Depends(get_summary_use_case),
) -> list[int]:
    return use_case.years(account_id)
