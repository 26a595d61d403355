"""
FastAPI application setup for cardflow.

Creates the FastAPI app instance, registers routes and installs exception
handlers that give every error the same JSON shape:

    {"code": "VALIDATION_ERROR", "message": "...", "request_id": "..."}
"""

import logging
import traceback
from enum import Enum

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from cardflow import __version__
from cardflow.api.routes import cron, modules
from cardflow.core.errors import CardflowError, ErrorKind

logger = logging.getLogger(__name__)


class ErrorCode(str, Enum):
    """Standard error codes for API responses."""

    # Client errors (4xx)
    VALIDATION_ERROR = "VALIDATION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    UNAUTHORIZED = "UNAUTHORIZED"

    # Server errors (5xx)
    INTERNAL_ERROR = "INTERNAL_ERROR"


class ErrorResponse(BaseModel):
    """Standard error response model."""

    code: ErrorCode
    message: str
    request_id: str | None = None


ERROR_KIND_TO_RESPONSE: dict[ErrorKind, tuple[int, ErrorCode]] = {
    ErrorKind.VALIDATION: (status.HTTP_400_BAD_REQUEST, ErrorCode.VALIDATION_ERROR),
    ErrorKind.NOT_FOUND: (status.HTTP_404_NOT_FOUND, ErrorCode.NOT_FOUND),
    ErrorKind.INTERNAL: (status.HTTP_500_INTERNAL_SERVER_ERROR, ErrorCode.INTERNAL_ERROR),
}

STATUS_TO_ERROR_CODE: dict[int, ErrorCode] = {
    status.HTTP_400_BAD_REQUEST: ErrorCode.VALIDATION_ERROR,
    status.HTTP_401_UNAUTHORIZED: ErrorCode.UNAUTHORIZED,
    status.HTTP_404_NOT_FOUND: ErrorCode.NOT_FOUND,
    status.HTTP_422_UNPROCESSABLE_ENTITY: ErrorCode.VALIDATION_ERROR,
}


def _error_response(
    request: Request, http_status: int, code: ErrorCode, message: str
) -> JSONResponse:
    body = ErrorResponse(code=code, message=message, request_id=str(id(request)))
    return JSONResponse(status_code=http_status, content=body.model_dump(mode="json"))


app = FastAPI(
    title="Cardflow API",
    description="Module instantiation and staged task release for kanban boards",
    version=__version__,
)

app.include_router(modules.router, prefix="/api", tags=["modules"])
app.include_router(cron.router, prefix="/api", tags=["cron"])


@app.get("/health")
async def health() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "healthy"}


@app.exception_handler(CardflowError)
async def cardflow_error_handler(request: Request, exc: CardflowError) -> JSONResponse:
    """
    Handle typed service errors.

    The HTTP status and error code come from the error kind. Internal errors
    never expose their message.
    """
    http_status, code = ERROR_KIND_TO_RESPONSE[exc.kind]
    if exc.kind == ErrorKind.INTERNAL:
        logger.error(
            "Internal error on %s %s: %s",
            request.method,
            request.url.path,
            exc.message,
            extra={"request_id": id(request)},
        )
        return _error_response(request, http_status, code, "An internal server error occurred")

    logger.info(
        "%s on %s %s: %s",
        code.value,
        request.method,
        request.url.path,
        exc.message,
        extra={"request_id": id(request)},
    )
    return _error_response(request, http_status, code, exc.message)


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """
    Handle FastAPI HTTPException with the standard error response format.
    """
    if exc.status_code >= 500:
        code = ErrorCode.INTERNAL_ERROR
        logger.error(
            "HTTP %d on %s %s: %s",
            exc.status_code,
            request.method,
            request.url.path,
            exc.detail,
            extra={"request_id": id(request)},
        )
    else:
        code = STATUS_TO_ERROR_CODE.get(exc.status_code, ErrorCode.VALIDATION_ERROR)
        logger.info(
            "HTTP %d on %s %s: %s",
            exc.status_code,
            request.method,
            request.url.path,
            exc.detail,
            extra={"request_id": id(request)},
        )

    detail_msg = exc.detail if isinstance(exc.detail, str) else str(exc.detail)
    return _error_response(request, exc.status_code, code, detail_msg)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """
    Handle validation errors from Pydantic models and request parameters.

    Reports the first offending field without exposing internals.
    """
    logger.warning(
        "Validation error on %s %s: %s",
        request.method,
        request.url.path,
        exc.errors(),
        extra={"request_id": id(request)},
    )

    first_error = exc.errors()[0] if exc.errors() else {}
    field = " -> ".join(str(loc) for loc in first_error.get("loc", []))
    error_msg = first_error.get("msg", "Invalid input")

    return _error_response(
        request,
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        ErrorCode.VALIDATION_ERROR,
        f"{field}: {error_msg}" if field else error_msg,
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Handle all uncaught exceptions.

    Logs the full traceback, returns an opaque 500.
    """
    logger.error(
        "Unhandled exception on %s %s: %s\n%s",
        request.method,
        request.url.path,
        str(exc),
        traceback.format_exc(),
        extra={"request_id": id(request)},
    )
    return _error_response(
        request,
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        ErrorCode.INTERNAL_ERROR,
        "An internal server error occurred",
    )
