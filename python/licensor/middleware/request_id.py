"""X-Request-ID middleware for request correlation and access logging.

This middleware:
- Accepts a well-formed incoming X-Request-ID or generates a UUID4
- Binds request_id, path and method into the logging context
- Echoes the ID in the response header
- Emits one ``http_request`` access log entry per request

Must be added last so it wraps every other middleware and handler.
"""

import re
import time
import uuid

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from licensor.logging import clear_request_context, get_logger, set_request_context

REQUEST_ID_HEADER = "X-Request-ID"

# UUIDs and opaque ids made of alphanumerics, dots, hyphens, underscores
VALID_REQUEST_ID_PATTERN = re.compile(r"[A-Za-z0-9._-]{1,128}")

logger = get_logger(__name__)


def resolve_request_id(incoming: str | None) -> str:
    """Return a normalized incoming ID, or a fresh UUID4 if it is missing or invalid."""
    if incoming and VALID_REQUEST_ID_PATTERN.fullmatch(incoming):
        try:
            return str(uuid.UUID(incoming))
        except ValueError:
            return incoming
    return str(uuid.uuid4())


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Middleware for X-Request-ID handling and access logging.

    Args:
        app: The ASGI application.
        log_requests: If True, log access entries for each request.
    """

    def __init__(self, app, log_requests: bool = True):
        super().__init__(app)
        self.log_requests = log_requests

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        start_time = time.monotonic()
        request_id = resolve_request_id(request.headers.get(REQUEST_ID_HEADER))
        request.state.request_id = request_id
        set_request_context(request_id, path=request.url.path, method=request.method)

        try:
            response = await call_next(request)
            response.headers[REQUEST_ID_HEADER] = request_id

            if self.log_requests:
                logger.info(
                    "http_request",
                    status_code=response.status_code,
                    provider=getattr(request.state, "provider", None),
                    duration_ms=round((time.monotonic() - start_time) * 1000, 2),
                )
            return response
        except Exception:
            logger.exception("request_failed")
            raise
        finally:
            clear_request_context()
