"""Response rendering and exception handlers.

The response format follows the URL: paths ending in ``.json`` get JSON,
everything else gets ``text/plain``.

- JSON success: the bare object
- JSON error: { "error": { "code": 404, "message": "Not Found", "request_id": "..." } }
- Plain success: the raw value (objects are serialized as JSON text)
- Plain error: the message

The request_id is included in JSON error bodies for debugging and support.
"""

import json
from typing import Any

from fastapi import Request
from fastapi.responses import JSONResponse, PlainTextResponse, Response
from pydantic import BaseModel

from licensor.errors import ApiError
from licensor.logging import get_logger, get_request_id

logger = get_logger(__name__)

JSON_SUFFIX = ".json"

# Wire texts for statuses raised outside the service layer.
STATUS_MESSAGES = {
    400: "Bad Request",
    401: "Unauthorized",
    403: "Forbidden",
    404: "Not Found",
    409: "Conflict",
    500: "Internal Server Error",
}


def wants_json(request: Request) -> bool:
    """True if the request path carries the ``.json`` format suffix."""
    return request.url.path.rstrip("/").endswith(JSON_SUFFIX)


def render(request: Request, data: Any, status_code: int = 200) -> Response:
    """Render a success body in the format selected by the URL."""
    if isinstance(data, BaseModel):
        data = data.model_dump()
    if wants_json(request):
        return JSONResponse(status_code=status_code, content=data)
    if not isinstance(data, str):
        data = json.dumps(data, separators=(",", ":"))
    return PlainTextResponse(data, status_code=status_code)


def error_response(status_code: int, message: str, request_id: str | None = None) -> dict[str, Any]:
    """Create a JSON error envelope.

    Args:
        status_code: HTTP status code, repeated in the body.
        message: Human-readable error message.
        request_id: Optional request ID (auto-populated from context if None).
    """
    if request_id is None:
        request_id = get_request_id()

    error: dict[str, Any] = {"code": status_code, "message": message}
    if request_id:
        error["request_id"] = request_id

    return {"error": error}


def render_error(request: Request, status_code: int, message: str) -> Response:
    """Render an error in the format selected by the URL."""
    if wants_json(request):
        request_id = getattr(request.state, "request_id", None)
        return JSONResponse(
            status_code=status_code, content=error_response(status_code, message, request_id)
        )
    return PlainTextResponse(message, status_code=status_code)


async def api_error_handler(request: Request, exc: ApiError) -> Response:
    """Handle ApiError exceptions."""
    if exc.status_code >= 500:
        logger.error("api_error", code=exc.code.value, status_code=exc.status_code)
    else:
        logger.info("api_error", code=exc.code.value, status_code=exc.status_code)
    return render_error(request, exc.status_code, exc.message)


async def http_exception_handler(request: Request, exc: Any) -> Response:
    """Handle Starlette HTTP exceptions (unknown routes, wrong methods).

    A method that no route accepts is reported as 404, like an unknown path.
    """
    status_code = 404 if exc.status_code == 405 else exc.status_code
    message = STATUS_MESSAGES.get(status_code) or str(exc.detail)
    return render_error(request, status_code, message)


async def unhandled_exception_handler(request: Request, exc: Exception) -> Response:
    """Handle unhandled exceptions and return 500.

    Logs the exception server-side but never leaks details to client.
    """
    logger.exception("unhandled_exception", error_type=type(exc).__name__)
    return render_error(request, 500, STATUS_MESSAGES[500])
