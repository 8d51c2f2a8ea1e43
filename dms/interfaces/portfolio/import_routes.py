"""
FastAPI route for the Fidelity CSV import.

Accepts the CSV either as a ``text/plain`` body or as a multipart upload
in the ``file`` field. The response always has the ImportResponse shape:
200 on success, 400 when the file or a row was rejected, 500 on an
unexpected failure.
"""

import logging

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from dms.application.portfolio.import_fidelity import FidelityImportService
from dms.interfaces.portfolio.dependencies import get_import_service
from dms.interfaces.portfolio.schemas import ImportResponse
from dms.shared.security.rate_limiting import HEAVY_RATE_LIMIT, limiter

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/import", tags=["import"])

NO_CONTENT_ERROR = "No file content provided"


async def _read_csv(request: Request) -> str:
    content_type = request.headers.get("content-type", "")
    if content_type.startswith("multipart/form-data"):
        form = await request.form()
        upload = form.get("file")
        if upload is None or isinstance(upload, str):
            return upload or ""
        raw = await upload.read()
    else:
        raw = await request.body()
    return raw.decode("utf-8-sig", errors="replace")


def _response(status_code: int, result: ImportResponse) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=result.model_dump())


@router.post(
    "/fidelity",
    response_model=ImportResponse,
    responses={400: {"model": ImportResponse}, 500: {"model": ImportResponse}},
    summary="Import a Fidelity transaction export",
)
@limiter.limit(HEAVY_RATE_LIMIT)
async def import_fidelity(
    request: Request,
    service: FidelityImportService = Depends(get_import_service),
) -> JSONResponse:
    try:
        text = await _read_csv(request)
        if not text.strip():
            return _response(
                status.HTTP_400_BAD_REQUEST,
                ImportResponse(
                    success=False, imported=0, errors=[NO_CONTENT_ERROR], warnings=[]
                ),
            )

        result = await run_in_threadpool(service.import_csv, text)
    except Exception:
        logger.exception("Fidelity import failed")
        return _response(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            ImportResponse(
                success=False,
                imported=0,
                errors=["Unexpected server error"],
                warnings=[],
            ),
        )

    return _response(
        status.HTTP_200_OK if result.success else status.HTTP_400_BAD_REQUEST,
        ImportResponse(
            success=result.success,
            imported=result.imported,
            errors=result.errors,
            warnings=result.warnings,
        ),
    )
