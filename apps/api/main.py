"""Thin API launcher.

This is the uvicorn entrypoint. All application logic lives in the licensor package.
Run with: python -m apps.api.main
Or:       uvicorn apps.api.main:app --workers 4 --ssl-keyfile ... --ssl-certfile ...

Each uvicorn worker is an independent process that imports this module,
builds its own LicenseServer in the app lifespan, and shares no memory with
its siblings. uvicorn's supervisor restarts workers that die.
"""

import uvicorn

from licensor.app import create_app
from licensor.config import get_settings
from licensor.logging import configure_logging

settings = get_settings()
configure_logging(json_format=settings.log_json, level=settings.log_level)

# Create the application instance
app = create_app()

__all__ = ["app"]


def main() -> None:
    """Run uvicorn with the configured workers and TLS files."""
    uvicorn.run(
        "apps.api.main:app",
        host=settings.http_host,
        port=settings.http_port,
        workers=settings.workers,
        ssl_keyfile=settings.ssl_keyfile,
        ssl_certfile=settings.ssl_certfile,
        log_config=None,
    )


if __name__ == "__main__":
    main()
