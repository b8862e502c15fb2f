import logging
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.exc import DBAPIError
from nativenest.domain.exceptions import (AppError, NotFound, Conflict, Unprocessable, Unauthorized, InvalidInput,
                                          Forbidden, CapacityExceeded, NoAvailableStall)
from nativenest.core.ctx import get_request_id

logger = logging.getLogger("nativenest.api")

MEDIA_TYPE = "application/problem+json"

_STATUS_BY_CLASS: dict[type[AppError], int] = {
    NotFound: status.HTTP_404_NOT_FOUND,
    Unauthorized: status.HTTP_401_UNAUTHORIZED,
    Forbidden: status.HTTP_403_FORBIDDEN,
    Conflict: status.HTTP_409_CONFLICT,
    InvalidInput: status.HTTP_400_BAD_REQUEST,
    Unprocessable: status.HTTP_422_UNPROCESSABLE_ENTITY,
    AppError: status.HTTP_400_BAD_REQUEST,
}

_TITLES: dict[type[AppError], str] = {
    NoAvailableStall: "No Available Stall",
    CapacityExceeded: "Capacity Exceeded",
    NotFound: "Not Found",
    Unauthorized: "Unauthorized",
    Forbidden: "Forbidden",
    Conflict: "Conflict",
    InvalidInput: "Bad Request",
    Unprocessable: "Unprocessable Entity",
    AppError: "Application Error",
}


def _status_for(exc: AppError) -> int:
    for cls in type(exc).mro():
        if cls in _STATUS_BY_CLASS:
            return _STATUS_BY_CLASS[cls]
    return status.HTTP_400_BAD_REQUEST


def _title_for(exc: AppError) -> str:
    for cls in type(exc).mro():
        if cls in _TITLES:
            return _TITLES[cls]
    return "Application Error"


def _problem(
    request: Request,
    *,
    http_status: int,
    title: str,
    detail: str | None = None,
    extra: dict | None = None,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    body = {
        "status": http_status,
        "title": title,
        "detail": detail,
        "instance": str(request.url),
    }
    req_id = get_request_id()
    if req_id:
        body["trace_id"] = req_id
    if extra:
        body.update({k: v for k, v in extra.items() if v is not None})
    return JSONResponse(status_code=http_status, content=body, media_type=MEDIA_TYPE, headers=headers or {})


def register_error_handler(app: FastAPI) -> None:
    @app.exception_handler(AppError)
    async def _app_error_handler(request: Request, exc: AppError):
        detail = str(exc) or None
        extra = {"context": exc.ctx} if exc.ctx else None

        headers: dict[str, str] | None = None
        if isinstance(exc, Unauthorized):
            headers = {"WWW-Authenticate": f'Bearer realm="api", error="invalid_token", error_description="{detail}"'}

        return _problem(
            request,
            http_status=_status_for(exc),
            title=_title_for(exc),
            detail=detail,
            extra=extra,
            headers=headers
        )

    @app.exception_handler(DBAPIError)
    async def _db_error_handler(request: Request, exc: DBAPIError):
        logger.exception("Database failure on %s %s", request.method, request.url.path)
        return _problem(
            request,
            http_status=status.HTTP_503_SERVICE_UNAVAILABLE,
            title="Service Unavailable",
            detail="Temporary storage failure, the operation was rolled back",
        )
