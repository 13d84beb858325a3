# irms/middleware/request_logging.py
from __future__ import annotations

import logging
import time
import uuid
from typing import Iterable, Optional, Tuple

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from irms.services.audit import ip_from_request

logger = logging.getLogger("irms.request")


DEFAULT_IGNORED_PREFIXES: Tuple[str, ...] = (
    "/api/healthz",
    "/api/readyz",
    "/docs",
    "/redoc",
    "/openapi.json",
)


def _level_for(status: int) -> int:
    if status >= 500:
        return logging.ERROR
    if status >= 400:
        return logging.WARNING
    return logging.INFO


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    One log line per request: method, path, status, duration, actor and trace id.
    X-Request-ID is set on every response, including skipped paths.
    """

    def __init__(self, app, ignored_prefixes: Iterable[str] = DEFAULT_IGNORED_PREFIXES):
        super().__init__(app)
        self.ignored_prefixes = tuple(ignored_prefixes)

    def _skip(self, method: str, path: str) -> bool:
        return method == "OPTIONS" or path.startswith(self.ignored_prefixes)

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        path = request.url.path
        method = request.method.upper()

        trace_id = request.headers.get("x-request-id") or uuid.uuid4().hex
        request.state.trace_id = trace_id
        skip = self._skip(method, path)

        start = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            if not skip:
                logger.exception(
                    "request CRASH %s %s ip=%s dur_ms=%s trace_id=%s",
                    method,
                    path,
                    ip_from_request(request),
                    int((time.perf_counter() - start) * 1000),
                    trace_id,
                )
            raise

        response.headers["X-Request-ID"] = trace_id
        if skip:
            return response

        status = response.status_code
        user_id: Optional[int] = getattr(request.state, "user_id", None)
        logger.log(
            _level_for(status),
            "request %s %s -> %s user=%s ip=%s dur_ms=%s trace_id=%s",
            method,
            path,
            status,
            user_id if user_id is not None else "-",
            ip_from_request(request),
            int((time.perf_counter() - start) * 1000),
            trace_id,
        )
        return response
