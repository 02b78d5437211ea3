"""HTTP middleware of the item generation API.

Requests pass through, outermost first:
- RequestIdMiddleware: correlation ID in log context and response header
- ApiKeyMiddleware: Bearer key check on everything but health and docs
- ErrorHandlerMiddleware: unhandled exceptions become INTERNAL_ERROR
"""

import time
from collections.abc import Iterable
from typing import Callable
from uuid import uuid4

import structlog
from fastapi import FastAPI, Request, Response, status
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from itemgen.api.errors import error_response
from itemgen.infrastructure.config import settings

logger = structlog.get_logger()

REQUEST_ID_HEADER = "X-Request-ID"

# Health checks and API docs stay reachable without a key
PUBLIC_PATHS = frozenset({"/health", "/ready", "/docs", "/redoc", "/openapi.json"})


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Tags each request with an ID and logs one line when it completes.

    A caller-supplied ``X-Request-ID`` is reused so traces can span services.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid4())
        request.state.request_id = request_id
        structlog.contextvars.bind_contextvars(request_id=request_id)

        started = time.perf_counter()
        status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
        try:
            response = await call_next(request)
            status_code = response.status_code
        finally:
            logger.info(
                "Request completed",
                method=request.method,
                path=request.url.path,
                status_code=status_code,
                duration_ms=round((time.perf_counter() - started) * 1000, 2),
            )
            structlog.contextvars.unbind_contextvars("request_id")

        response.headers[REQUEST_ID_HEADER] = request_id
        return response


def bearer_token(header: str | None) -> str | None:
    """Extract the token of an ``Authorization: Bearer`` header.

    Args:
        header: Raw header value.

    Returns:
        The token, or None when the header is absent, empty or not Bearer.
    """
    if not header:
        return None
    scheme, _, token = header.partition(" ")
    token = token.strip()
    if scheme.lower() != "bearer" or not token:
        return None
    return token


class ApiKeyMiddleware(BaseHTTPMiddleware):
    """Guards the catalog endpoints with a shared API key."""

    def __init__(
        self,
        app: ASGIApp,
        api_key: str,
        public_paths: Iterable[str] = PUBLIC_PATHS,
    ) -> None:
        super().__init__(app)
        self.api_key = api_key
        self.public_paths = frozenset(public_paths)

    def is_public(self, path: str) -> bool:
        path = path.rstrip("/") or "/"
        return path in self.public_paths or path.startswith(("/docs", "/redoc"))

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if self.is_public(request.url.path):
            return await call_next(request)

        header = request.headers.get("Authorization")
        token = bearer_token(header)
        if token is None:
            message = (
                "Missing Authorization header" if not header
                else "Invalid Authorization header format. Use 'Bearer <api_key>'"
            )
            return self._reject(request, "UNAUTHORIZED", message)
        if token != self.api_key:
            return self._reject(request, "INVALID_API_KEY", "Invalid API key")

        return await call_next(request)

    @staticmethod
    def _reject(request: Request, error_code: str, message: str) -> Response:
        logger.warning(
            "Request rejected",
            reason=error_code,
            path=request.url.path,
            method=request.method,
        )
        return error_response(
            request,
            status.HTTP_401_UNAUTHORIZED,
            error_code,
            message,
            headers={"WWW-Authenticate": "Bearer"},
        )


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """Last line of defence for exceptions no handler rendered."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        try:
            return await call_next(request)
        except Exception as e:
            logger.exception(
                "Unhandled exception",
                path=request.url.path,
                method=request.method,
                error=str(e),
            )
            return error_response(
                request,
                status.HTTP_500_INTERNAL_SERVER_ERROR,
                "INTERNAL_ERROR",
                "An internal error occurred",
            )


def setup_middleware(app: FastAPI, api_key: str | None = None) -> None:
    """Install the middleware stack.

    Added innermost first: error handling, then authentication, then
    the request ID, so the ID is bound before anything logs.

    Args:
        app: FastAPI application instance.
        api_key: Accepted key, defaults to ``settings.api_key``.
    """
    app.add_middleware(ErrorHandlerMiddleware)
    app.add_middleware(ApiKeyMiddleware, api_key=api_key or settings.api_key)
    app.add_middleware(RequestIdMiddleware)
