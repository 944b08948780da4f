"""FastAPI application creation and configuration.

This module creates and configures the FastAPI application instance.
It registers exception handlers, CORS and request-id middleware, and routes.

Each worker process builds its own LicenseServer in the lifespan hook, so
store connections and caches are never shared between workers. Tests pass a
prebuilt server to ``create_app`` instead.

Middleware Ordering:
- Middleware runs in reverse order of registration
- RequestIDMiddleware is added LAST so it runs FIRST (outermost)
- Every response, including errors, carries X-Request-ID
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from licensor.api.routes import create_api_router
from licensor.config import get_settings
from licensor.context import LicenseServer
from licensor.errors import ApiError
from licensor.logging import get_logger
from licensor.middleware.request_id import REQUEST_ID_HEADER, RequestIDMiddleware
from licensor.responses import (
    api_error_handler,
    http_exception_handler,
    unhandled_exception_handler,
)

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build (or adopt) this worker's LicenseServer and run its cache sweepers."""
    server: LicenseServer | None = getattr(app.state, "license_server", None)
    owned = server is None
    if owned:
        server = LicenseServer.from_settings(get_settings())
        app.state.license_server = server

    server.start()
    try:
        yield
    finally:
        server.close()
        if owned:
            app.state.license_server = None


def create_app(server: LicenseServer | None = None, log_requests: bool = True) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        server: Prebuilt LicenseServer (for testing). If None, one is built
            from settings at startup.
        log_requests: Whether to emit an access log entry per request.

    Returns:
        Configured FastAPI application instance.
    """
    app = FastAPI(
        title="Licensor",
        description="License issuance service for registered content providers",
        version="0.1.0",
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
        lifespan=lifespan,
    )
    app.state.license_server = server

    # Register exception handlers
    app.add_exception_handler(ApiError, api_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    app.include_router(create_api_router())

    # Any origin may call; the origin is echoed back with credentials allowed.
    app.add_middleware(
        CORSMiddleware,
        allow_origin_regex=".*",
        allow_credentials=True,
        allow_methods=["GET", "POST", "DELETE"],
        allow_headers=["*"],
        expose_headers=[REQUEST_ID_HEADER],
    )

    app.add_middleware(RequestIDMiddleware, log_requests=log_requests)
    logger.info("app_created")
    return app
