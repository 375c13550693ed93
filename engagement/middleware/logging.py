"""
Request logging

One access log line per request, tagged with a request ID that every other
log record emitted while serving the request also carries. With
``json_format`` enabled the records are rendered as single-line JSON for the
log shipper.
"""

import json
import logging
import time
import uuid
from collections.abc import Callable
from contextvars import ContextVar
from datetime import datetime, timezone

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

request_id_var: ContextVar[str] = ContextVar("request_id", default="")

REQUEST_ID_HEADER = "X-Request-ID"

# Health checks and scrapes would drown out real traffic
QUIET_PATHS = frozenset({"/health", "/ready", "/metrics"})

# Attributes passed through ``extra=`` that are copied into the JSON record
CONTEXT_FIELDS = (
    "method",
    "path",
    "status_code",
    "duration_ms",
    "client_ip",
    "viewer",
    "error_code",
    "details",
)


class RequestIdFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        # The access line is written after the context is reset and passes its ID explicitly
        if not getattr(record, "request_id", ""):
            record.request_id = request_id_var.get("")
        return True


class JsonLogFormatter(logging.Formatter):
    """Render a log record as one JSON object."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "request_id": getattr(record, "request_id", ""),
        }
        payload.update({key: getattr(record, key) for key in CONTEXT_FIELDS if hasattr(record, key)})
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


def viewer_kind(request: Request) -> str:
    """Which identity the request carries, without decoding it."""
    if request.headers.get("Authorization"):
        return "user"
    if request.headers.get("X-Session-ID") or request.cookies.get("session_id"):
        return "session"
    return "anonymous"


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Assigns a request ID (reusing the caller's ``X-Request-ID`` when present),
    times the request and writes the access log line.
    """

    def __init__(self, app: ASGIApp, logger_name: str = "engagement.access"):
        super().__init__(app)
        self.logger = logging.getLogger(logger_name)

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        token = request_id_var.set(request_id)
        started = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            self._access_log(request, 500, started)
            raise
        finally:
            request_id_var.reset(token)

        response.headers[REQUEST_ID_HEADER] = request_id
        self._access_log(request, response.status_code, started, request_id)
        return response

    def _access_log(self, request: Request, status_code: int, started: float, request_id: str = "") -> None:
        if request.url.path in QUIET_PATHS:
            return

        duration_ms = round((time.perf_counter() - started) * 1000, 2)
        if status_code >= 500:
            level = logging.ERROR
        elif status_code >= 400:
            level = logging.WARNING
        else:
            level = logging.INFO

        self.logger.log(
            level,
            f"{request.method} {request.url.path} {status_code} {duration_ms}ms",
            extra={
                "method": request.method,
                "path": request.url.path,
                "status_code": status_code,
                "duration_ms": duration_ms,
                "client_ip": request.client.host if request.client else None,
                "viewer": viewer_kind(request),
                "request_id": request_id or request_id_var.get(""),
            },
        )


def configure_logging(log_level: str = "INFO", json_format: bool = True) -> None:
    """Install a single stream handler on the root logger."""
    handler = logging.StreamHandler()
    handler.addFilter(RequestIdFilter())
    if json_format:
        handler.setFormatter(JsonLogFormatter())
    else:
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s [%(request_id)s] %(message)s"))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(log_level.upper())
