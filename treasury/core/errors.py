import logging
from typing import Any, Dict

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from .request_context import get_request_id

logger = logging.getLogger(__name__)

INTERNAL_ERROR_DETAIL = "Internal server error."


class TreasuryError(Exception):
    """Base class for errors raised by the dues and ledger services."""

    status_code = 500

    def __init__(self, detail: str = INTERNAL_ERROR_DETAIL) -> None:
        super().__init__(detail)
        self.detail = detail


class ValidationError(TreasuryError):
    status_code = 400


class NotFound(TreasuryError):
    status_code = 404


class AccessDenied(TreasuryError):
    status_code = 403


class ConflictError(TreasuryError):
    """Unique-key collision that could not be resolved as an update."""


class StoreError(TreasuryError):
    """The database rejected or aborted a unit of work; nothing was committed."""


def _public_detail(exc: TreasuryError) -> str:
    if exc.status_code >= 500:
        return INTERNAL_ERROR_DETAIL
    return exc.detail


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(TreasuryError)
    async def treasury_exception_handler(request: Request, exc: TreasuryError) -> JSONResponse:  # type: ignore[override]
        if exc.status_code >= 500:
            logger.error(
                "Request %s %s failed: %s",
                request.method,
                request.url.path,
                exc.detail,
                extra={"request_id": get_request_id(request)},
            )
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": _public_detail(exc), "path": str(request.url)},
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:  # type: ignore[override]
        return JSONResponse(
            status_code=400,
            content={
                "detail": "Validation failed.",
                "errors": jsonable_errors(exc),
                "path": str(request.url),
            },
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:  # type: ignore[override]
        logger.exception(
            "Unhandled error for %s %s",
            request.method,
            request.url.path,
            extra={"request_id": get_request_id(request)},
        )
        return JSONResponse(
            status_code=500,
            content={
                "detail": INTERNAL_ERROR_DETAIL,
                "path": str(request.url),
            },
        )

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:  # type: ignore[override]
        payload: Dict[str, Any] = {"detail": exc.detail or "HTTP error.", "path": str(request.url)}
        if exc.headers:
            payload["headers"] = exc.headers
        return JSONResponse(status_code=exc.status_code, content=payload, headers=exc.headers)


def jsonable_errors(exc: RequestValidationError) -> list:
    errors = []
    for error in exc.errors():
        errors.append(
            {
                "loc": list(error.get("loc", ())),
                "msg": error.get("msg"),
                "type": error.get("type"),
            }
        )
    return errors
