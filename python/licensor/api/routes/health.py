"""Health check endpoint."""

from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from licensor.api.deps import get_server
from licensor.context import LicenseServer
from licensor.logging import get_logger

logger = get_logger(__name__)

router = APIRouter()


@router.get("/health", response_class=PlainTextResponse)
def health_check(server: LicenseServer = Depends(get_server)) -> PlainTextResponse:
    """Readiness check.

    Runs ``SELECT 1`` against the registry store, then the secret store.
    Returns 200 ``OK`` or 500 naming the first store that failed.
    """
    for sessions, failure in (
        (server.context.registry_sessions, "Database connect error"),
        (server.context.secret_sessions, "Secret store connect error"),
    ):
        try:
            with sessions() as db:
                db.execute(text("SELECT 1"))
        except SQLAlchemyError as exc:
            logger.error("health_check_failed", detail=failure, error=str(exc))
            return PlainTextResponse(failure, status_code=500)
    return PlainTextResponse("OK")
