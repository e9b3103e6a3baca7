"""Request/response logging middleware.

Each request gets a correlation ID, taken from X-Correlation-ID when the client
sends one. It tags every log line written while serving the request and is
echoed back on the response.
"""

import json
import time
from typing import Any, Callable, Dict, Iterable, Optional
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from ....infrastructure.logging import (
    generate_correlation_id,
    set_correlation_id,
    clear_correlation_id,
    get_logger,
    log_request,
    log_response
)

logger = get_logger(__name__)

CORRELATION_HEADER = "X-Correlation-ID"
REDACTED = "[REDACTED]"

REDACTED_HEADERS = frozenset({'authorization', 'proxy-authorization', 'cookie'})

# Request body fields holding client contact details
REDACTED_BODY_FIELDS = frozenset({'clientName', 'clientEmail', 'client_name', 'client_email'})

SKIPPED_PATHS = frozenset({'/health', '/docs', '/redoc', '/openapi.json', '/favicon.ico'})


def _elapsed_ms(started: float) -> float:
    return (time.perf_counter() - started) * 1000


class RequestResponseLoggingMiddleware(BaseHTTPMiddleware):
    """Log every API request and its response under a correlation ID."""

    def __init__(
        self,
        app: ASGIApp,
        log_request_body: bool = False,
        max_body_size: int = 1024,
        exclude_paths: Optional[Iterable[str]] = None
    ):
        """
        Args:
            app: The ASGI application
            log_request_body: Log JSON request bodies with client contact details redacted
            max_body_size: Bodies larger than this many bytes are logged by size only
            exclude_paths: Paths served without logging or correlation ID
        """
        super().__init__(app)
        self.log_request_body = log_request_body
        self.max_body_size = max_body_size
        self.exclude_paths = frozenset(exclude_paths) if exclude_paths is not None else SKIPPED_PATHS

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if request.url.path in self.exclude_paths:
            return await call_next(request)

        correlation_id = request.headers.get(CORRELATION_HEADER) or generate_correlation_id()
        set_correlation_id(correlation_id)
        started = time.perf_counter()

        try:
            log_request(logger, request.method, request.url.path, **await self._request_fields(request))

            try:
                response = await call_next(request)
            except Exception as exc:
                logger.error(
                    f"Unhandled error serving {request.method} {request.url.path}",
                    extra={
                        "request_method": request.method,
                        "request_path": request.url.path,
                        "duration_ms": round(_elapsed_ms(started), 2),
                        "error_type": type(exc).__name__
                    },
                    exc_info=True
                )
                raise

            response.headers[CORRELATION_HEADER] = correlation_id
            log_response(logger, request.method, request.url.path, response.status_code, _elapsed_ms(started))
            return response

        finally:
            clear_correlation_id()

    async def _request_fields(self, request: Request) -> Dict[str, Any]:
        fields: Dict[str, Any] = {
            "request_query": str(request.query_params) or None,
            "request_headers": {
                key: REDACTED if key.lower() in REDACTED_HEADERS else value
                for key, value in request.headers.items()
            },
            "client_host": request.client.host if request.client else "unknown",
        }
        if self.log_request_body:
            fields["request_body"] = await self._body_summary(request)
        return fields

    async def _body_summary(self, request: Request) -> Any:
        """The request body as logged: redacted JSON, or a size or type marker."""
        body = await request.body()
        if not body:
            return None
        if len(body) > self.max_body_size:
            return f"[{len(body)} bytes]"

        try:
            payload = json.loads(body)
        except ValueError:
            return "[non-JSON body]"

        if isinstance(payload, dict):
            return {
                key: REDACTED if key in REDACTED_BODY_FIELDS else value
                for key, value in payload.items()
            }
        return payload
