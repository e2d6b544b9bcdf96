# WORKFLOW: Structured logging middleware for request/response monitoring.
# Used by: All API endpoints, operational monitoring, debugging
# Functions:
# 1. _log_request() - Log incoming request details (method, path, redacted body)
# 2. _log_response() - Log response details (status, timing, content type)
# 3. _log_error() - Log error details with context
# 4. redact_payload() - Replace base64 document/image fields with their length
#
# Logging flow: Request -> Log request -> Process -> Log response/error
# Page images and documents are never written to the logs.

import json
import time
from typing import Any, Callable

import structlog
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

logger = structlog.get_logger()

REDACTED_FIELDS = {"content_base64", "image_base64"}
MAX_LOGGED_BODY_CHARS = 1000


def redact_payload(payload: Any) -> Any:
    """Recursively replace base64 payload fields with a size marker."""
    if isinstance(payload, dict):
        redacted = {}
        for key, value in payload.items():
            if key in REDACTED_FIELDS and isinstance(value, str):
                redacted[key] = f"<redacted {len(value)} chars>"
            else:
                redacted[key] = redact_payload(value)
        return redacted
    if isinstance(payload, list):
        return [redact_payload(item) for item in payload]
    return payload


class LoggingMiddleware(BaseHTTPMiddleware):
    """Middleware for structured request/response logging."""

    def __init__(self, app: ASGIApp):
        super().__init__(app)

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """Process request and log details."""
        start_time = time.time()

        await self._log_request(request)

        try:
            response = await call_next(request)
            process_time = time.time() - start_time
            await self._log_response(request, response, process_time)
            return response

        except Exception as e:
            process_time = time.time() - start_time
            await self._log_error(request, e, process_time)
            raise

    async def _log_request(self, request: Request):
        """Log incoming request details."""
        body = None
        if request.method in ["POST", "PUT", "PATCH"]:
            raw = await request.body()
            if raw:
                try:
                    body = redact_payload(json.loads(raw.decode()))
                except (UnicodeDecodeError, json.JSONDecodeError):
                    body = f"<{len(raw)} bytes, not JSON>"

        if isinstance(body, (dict, list)):
            body = json.dumps(body)[:MAX_LOGGED_BODY_CHARS]

        logger.info(
            "Incoming request",
            method=request.method,
            path=request.url.path,
            query_params=dict(request.query_params),
            body=body,
            client_ip=request.client.host if request.client else None,
            user_agent=request.headers.get("user-agent"),
        )

    async def _log_response(self, request: Request, response: Response, process_time: float):
        """Log response details."""
        logger.info(
            "Response sent",
            method=request.method,
            path=request.url.path,
            status_code=response.status_code,
            process_time_ms=round(process_time * 1000, 2),
            content_length=response.headers.get("content-length"),
            content_type=response.headers.get("content-type"),
        )

    async def _log_error(self, request: Request, error: Exception, process_time: float):
        """Log error details."""
        logger.error(
            "Request failed",
            method=request.method,
            path=request.url.path,
            error_type=type(error).__name__,
            error_message=str(error),
            process_time_ms=round(process_time * 1000, 2),
        )
