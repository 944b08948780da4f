"""API route definitions.

Uses a factory pattern to avoid import-time settings loading.
This allows tests to import modules without requiring all environment
variables to be configured upfront.
"""

from fastapi import APIRouter

from licensor.api.routes.health import router as health_router
from licensor.api.routes.licenses import router as licenses_router
from licensor.api.routes.providers import router as providers_router


def create_api_router() -> APIRouter:
    """Create and configure the API router.

    Returns:
        Configured APIRouter with all routes registered.
    """
    api_router = APIRouter()
    api_router.include_router(health_router, tags=["health"])
    api_router.include_router(licenses_router, tags=["licenses"])
    api_router.include_router(providers_router, tags=["providers"])
    return api_router


__all__ = ["create_api_router"]
