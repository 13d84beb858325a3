# irms/core/errors.py
from __future__ import annotations

import logging
import uuid
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError
from starlette.exceptions import HTTPException as StarletteHTTPException

log = logging.getLogger("irms.errors")


# -----------------------------
# Trace / request id helpers
# -----------------------------
def _ensure_trace_id(request: Request) -> str:
    """
    Return a stable trace_id for this request.
    Prefer a value already set on request.state, then common headers,
    and finally generate a new one (and store it on request.state).
    """
    val = getattr(getattr(request, "state", object()), "trace_id", None)
    if val:
        return str(val)

    for h in ("x-request-id", "x-correlation-id", "x-trace-id"):
        v = request.headers.get(h)
        if v:
            request.state.trace_id = v
            return v

    new_id = uuid.uuid4().hex
    request.state.trace_id = new_id
    return new_id


def _payload(message: str, details: Optional[Any] = None) -> Dict[str, Any]:
    body: Dict[str, Any] = {"error": message}
    if details is not None:
        body["details"] = details
    return body


def validation_failed(field: str, message: str) -> HTTPException:
    """400 in the same shape as schema validation failures."""
    return HTTPException(
        status_code=400,
        detail={"message": "Validation failed", "details": [{"field": field, "message": message}]},
    )


def not_found(what: str) -> HTTPException:
    return HTTPException(status_code=404, detail=f"{what} not found")


def conflict(message: str, details: Optional[Any] = None) -> HTTPException:
    if details is None:
        return HTTPException(status_code=409, detail=message)
    return HTTPException(status_code=409, detail={"message": message, "details": details})


def _field_errors(errors: List[Dict[str, Any]]) -> List[Dict[str, str]]:
    """Flatten pydantic errors into [{field, message}]."""
    out: List[Dict[str, str]] = []
    for e in errors:
        loc = [str(p) for p in e.get("loc", ()) if p not in ("body", "query", "path")]
        out.append({"field": ".".join(loc) or "__root__", "message": e.get("msg", "")})
    return out


# -----------------------------
# Install / register handlers
# -----------------------------
def register_exception_handlers(app: FastAPI) -> None:
    """
    Registers consistent JSON error handlers: {"error": ..., "details": ...}.
    Also ensures X-Request-ID header is present on error responses.
    """

    @app.exception_handler(StarletteHTTPException)
    async def http_exc_handler(request: Request, exc: StarletteHTTPException):
        trace_id = _ensure_trace_id(request)
        status_code = int(exc.status_code)
        # detail can be str, dict, or other; keep a safe message
        if isinstance(exc.detail, str):
            message, details = exc.detail, None
        elif isinstance(exc.detail, dict):
            message = str(exc.detail.get("message") or "HTTP error")
            details = exc.detail.get("details", exc.detail)
        else:
            message, details = "HTTP error", exc.detail

        headers = dict(getattr(exc, "headers", None) or {})
        headers["X-Request-ID"] = trace_id

        level = logging.ERROR if status_code >= 500 else logging.WARNING
        log.log(
            level,
            "HTTPException %s %s -> %s | trace_id=%s | detail=%r",
            request.method,
            request.url.path,
            status_code,
            trace_id,
            exc.detail,
        )
        return JSONResponse(
            status_code=status_code,
            headers=headers,
            content=_payload(message, details),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exc_handler(request: Request, exc: RequestValidationError):
        trace_id = _ensure_trace_id(request)
        details = _field_errors(exc.errors())
        log.warning(
            "ValidationError %s %s -> 400 | trace_id=%s | errors=%s",
            request.method,
            request.url.path,
            trace_id,
            details,
        )
        return JSONResponse(
            status_code=400,
            headers={"X-Request-ID": trace_id},
            content=_payload("Validation failed", details),
        )

    @app.exception_handler(IntegrityError)
    async def integrity_exc_handler(request: Request, exc: IntegrityError):
        # unique/foreign-key race lost at flush time
        trace_id = _ensure_trace_id(request)
        log.warning(
            "IntegrityError %s %s -> 409 | trace_id=%s | %s",
            request.method,
            request.url.path,
            trace_id,
            exc.orig,
        )
        return JSONResponse(
            status_code=409,
            headers={"X-Request-ID": trace_id},
            content=_payload("Conflict with existing data"),
        )

    @app.exception_handler(Exception)
    async def unhandled_exc_handler(request: Request, exc: Exception):
        trace_id = _ensure_trace_id(request)
        # Full traceback to server logs; generic message to client
        log.exception(
            "Unhandled exception %s %s -> 500 | trace_id=%s",
            request.method,
            request.url.path,
            trace_id,
        )
        return JSONResponse(
            status_code=500,
            headers={"X-Request-ID": trace_id},
            content=_payload("Internal server error"),
        )
