"""
Request correlation and access logging.

Every request gets a request id. A caller-supplied X-Request-ID is kept when
it looks sane so a client retrying a reserve call can tie its attempts
together in the logs. The id is bound to structlog contextvars, which is how
reservation_created / overlap_detected events end up carrying it, and echoed
back on the response and inside error envelopes (via request.state).
"""

import re
import time
import uuid

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from reservation_api.core.logging import get_logger
from reservation_api.core.metrics import http_request_duration

logger = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"
_REQUEST_ID_PATTERN = re.compile(r"^[A-Za-z0-9._\-]{1,64}$")

# Scrapes and health checks are too chatty for the access log
QUIET_PATHS = frozenset({"/health", "/metrics"})


def resolve_request_id(request: Request) -> str:
    incoming = request.headers.get(REQUEST_ID_HEADER)
    if incoming and _REQUEST_ID_PATTERN.match(incoming):
        return incoming
    return uuid.uuid4().hex[:12]


def route_template(request: Request) -> str:
    """Path template (/api/v1/reservations/{reservation_id}) to keep label cardinality bounded."""
    route = request.scope.get("route")
    return getattr(route, "path", None) or "unmatched"


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = resolve_request_id(request)
        request.state.request_id = request_id

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id)

        started = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            elapsed = time.perf_counter() - started
            http_request_duration.labels(request.method, route_template(request), "5xx").observe(elapsed)
            logger.exception(
                "request_failed",
                method=request.method,
                path=request.url.path,
                duration_ms=round(elapsed * 1000, 2),
            )
            raise

        elapsed = time.perf_counter() - started
        status_class = f"{response.status_code // 100}xx"
        http_request_duration.labels(request.method, route_template(request), status_class).observe(elapsed)

        if request.url.path not in QUIET_PATHS:
            log = logger.warning if response.status_code >= 500 else logger.info
            log(
                "request_completed",
                method=request.method,
                path=request.url.path,
                status_code=response.status_code,
                duration_ms=round(elapsed * 1000, 2),
            )

        response.headers[REQUEST_ID_HEADER] = request_id
        return response
