"""
Log viewer router.

Lists the server's JSON lines log files, pages through their entries and
deletes old files. Mounted under ``/api/logs``.
"""

from datetime import datetime
from typing import Any, Optional

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from dms.application.logs.view_logs import ViewLogsUseCase
from dms.core.config import Settings
from dms.domain.logs.entities import ErrorLogEntry, LogFilters
from dms.infrastructure.logs.log_file_store import LogFileStoreAdapter
from dms.interfaces.portfolio.dependencies import get_settings
from dms.interfaces.portfolio.schemas import CamelModel, ErrorResponse

router = APIRouter(prefix="/logs", tags=["logs"])


class LogFileItem(CamelModel):
    filename: str
    display_name: str = Field(alias="displayName")
    size: int
    last_modified: datetime = Field(alias="lastModified")


class LogFilesResponse(BaseModel):
    files: list[LogFileItem]


class DeleteLogFileResponse(BaseModel):
    success: bool
    message: str


class ErrorLogItem(CamelModel):
    id: str
    timestamp: datetime
    level: str
    message: str
    context: Optional[dict[str, Any]] = None
    request_id: Optional[str] = Field(default=None, alias="requestId")
    user_id: Optional[str] = Field(default=None, alias="userId")


class ErrorLogResponse(CamelModel):
    logs: list[ErrorLogItem]
    total_count: int = Field(alias="totalCount")
    current_page: int = Field(alias="currentPage")
    total_pages: int = Field(alias="totalPages")


def get_view_logs_use_case(
    app_settings: Settings = Depends(get_settings),
) -> ViewLogsUseCase:
    return ViewLogsUseCase(store=LogFileStoreAdapter(app_settings.log_dir))


def _error_log_item(entry: ErrorLogEntry) -> ErrorLogItem:
    return ErrorLogItem(
        id=entry.id,
        timestamp=entry.timestamp,
        level=entry.level,
        message=entry.message,
        context=entry.context,
        request_id=entry.request_id,
        user_id=entry.user_id,
    )


@router.get("/files", response_model=LogFilesResponse, summary="List log files")
def list_log_files(
    use_case: ViewLogsUseCase = Depends(get_view_logs_use_case),
) -> LogFilesResponse:
    return LogFilesResponse(
        files=[
            LogFileItem(
                filename=info.filename,
                display_name=info.display_name,
                size=info.size,
                last_modified=info.last_modified,
            )
            for info in use_case.list_files()
        ]
    )


@router.delete(
    "/files/{filename}",
    response_model=DeleteLogFileResponse,
    responses={400: {"model": DeleteLogFileResponse}},
    summary="Delete a log file",
)
def delete_log_file(
    filename: str,
    use_case: ViewLogsUseCase = Depends(get_view_logs_use_case),
):
    success, message = use_case.delete_file(filename)
    body = DeleteLogFileResponse(success=success, message=message)
    if not success:
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=body.model_dump())
    return body


@router.get(
    "/errors",
    response_model=ErrorLogResponse,
    responses={400: {"model": ErrorResponse}},
    summary="Page through log entries",
    description="Newest first; filter by level, time range, message text and file.",
)
def list_error_logs(
    page: int = 1,
    limit: int = 50,
    level: Optional[str] = Query(default=None, max_length=16),
    start: Optional[datetime] = Query(default=None, alias="from"),
    end: Optional[datetime] = Query(default=None, alias="to"),
    search: str = Query(default="", max_length=200),
    file: Optional[str] = Query(default=None, max_length=255),
    use_case: ViewLogsUseCase = Depends(get_view_logs_use_case),
) -> ErrorLogResponse:
    result = use_case.error_logs(
        LogFilters(level=level, start=start, end=end, search=search.strip()),
        page=page,
        limit=limit,
        filename=file,
    )
    return ErrorLogResponse(
        logs=[_error_log_item(entry) for entry in result.logs],
        total_count=result.total_count,
        current_page=result.current_page,
        total_pages=result.total_pages,
    )
