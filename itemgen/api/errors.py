"""Error envelope of the item generation API.

Every error leaves the service as an ``ErrorResponse`` body carrying the
request ID. Regeneration errors have fixed status codes:

    ValidationError           400 VALIDATION_ERROR
    RegenerationPendingError  409 REGENERATION_PENDING
    BatchOperationError       502 BATCH_OPERATION_FAILED
"""

from typing import Any

import structlog
from fastapi import FastAPI, HTTPException, Request, status
from fastapi.responses import JSONResponse

from itemgen.api.schemas import ErrorResponse
from itemgen.domain.exceptions import (
    BatchOperationError,
    RegenerationError,
    RegenerationPendingError,
)

logger = structlog.get_logger()


def error_response(
    request: Request,
    status_code: int,
    error_code: str,
    message: str,
    details: list[dict[str, Any]] | None = None,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    """Render an ErrorResponse for the current request.

    Args:
        request: Request being answered, for its request ID.
        status_code: HTTP status.
        error_code: Machine-readable error code.
        message: Human-readable message.
        details: Field-level details.
        headers: Extra response headers.

    Returns:
        JSON response with the error envelope.
    """
    body = ErrorResponse(
        error_code=error_code,
        message=message,
        details=details or [],
        request_id=getattr(request.state, "request_id", None),
    )
    return JSONResponse(status_code=status_code, content=body.model_dump(), headers=headers)


def _field_details(details: dict[str, Any]) -> list[dict[str, Any]]:
    return [
        {"field": key, "message": str(value)}
        for key, value in details.items()
        if value not in (None, [], {})
    ]


def domain_error_to_http(error: RegenerationError) -> HTTPException:
    """Translate a regeneration error into an HTTPException.

    A BatchOperationError lists one detail per failed item, keyed by
    the phase it failed in.
    """
    if isinstance(error, BatchOperationError):
        details = [
            {"field": error.phase, "message": failure} for failure in error.failures
        ] or _field_details(error.details)
        status_code, error_code = status.HTTP_502_BAD_GATEWAY, "BATCH_OPERATION_FAILED"
    elif isinstance(error, RegenerationPendingError):
        details = _field_details(error.details)
        status_code, error_code = status.HTTP_409_CONFLICT, "REGENERATION_PENDING"
    else:
        details = _field_details(error.details)
        status_code, error_code = status.HTTP_400_BAD_REQUEST, "VALIDATION_ERROR"

    return HTTPException(
        status_code=status_code,
        detail={"error_code": error_code, "message": error.message, "details": details},
    )


def install_error_handlers(app: FastAPI) -> None:
    """Register the handlers that render errors in the envelope.

    Args:
        app: FastAPI application instance.
    """

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
        detail = exc.detail
        if isinstance(detail, dict):
            return error_response(
                request,
                exc.status_code,
                detail.get("error_code", "ERROR"),
                detail.get("message", str(detail)),
                detail.get("details"),
                headers=exc.headers,
            )
        return error_response(request, exc.status_code, "ERROR", str(detail), headers=exc.headers)

    @app.exception_handler(RegenerationError)
    async def regeneration_error_handler(
        request: Request, exc: RegenerationError
    ) -> JSONResponse:
        # Errors raised outside a router's own mapping, e.g. from a dependency
        logger.info(
            "Regeneration error",
            path=request.url.path,
            error_type=type(exc).__name__,
            error=exc.message,
        )
        return await http_exception_handler(request, domain_error_to_http(exc))
