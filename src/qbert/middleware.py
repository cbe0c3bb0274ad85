"""Starlette middleware for request logging and crash recovery."""

from __future__ import annotations

import logging
import time
from http import HTTPStatus

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from qbert.utils.responses import error_response

logger = logging.getLogger(__name__)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log method, path, status and duration of every request."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000
        client = request.client.host if request.client else "-"
        logger.info(
            f'{client} "{request.method} {request.url.path}" '
            f"{response.status_code} in {elapsed_ms:.1f}ms"
        )
        return response


class RecoveryMiddleware(BaseHTTPMiddleware):
    """Turn any unhandled exception into a 500 response.

    The traceback is logged; the client gets the same JSON error body as
    any other 500.
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        try:
            return await call_next(request)
        except Exception:
            logger.exception(f"Unhandled error serving {request.method} {request.url.path}")
            return error_response(HTTPStatus.INTERNAL_SERVER_ERROR)
