"""Main application entrypoint for hashvault."""

import logging

from fastapi import FastAPI

from hashvault.api.v1 import routes_health
from hashvault.api.v1.routes_uploads import router as uploads_router
from hashvault.core.config import settings
from hashvault.core.logging import setup_logging
from hashvault.middleware import BodySizeLimitMiddleware, HTTPErrorLoggingMiddleware

logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        FastAPI: Configured FastAPI application instance
    """
    # Initialize logging first
    setup_logging()

    app = FastAPI(
        title=settings.SERVICE_NAME,
        version=settings.SERVICE_VERSION,
    )

    # Last added runs first: size check happens inside the error logging
    app.add_middleware(BodySizeLimitMiddleware, max_bytes=settings.max_upload_bytes)
    app.add_middleware(HTTPErrorLoggingMiddleware)

    app.include_router(routes_health.router, tags=["health"])
    app.include_router(uploads_router)

    return app


# Export app instance for ASGI servers
app = create_app()


def run() -> None:
    """Serve the application on HOST:PORT."""
    import uvicorn

    logger.info(f"Listening on http://{settings.HOST}:{settings.PORT}/")
    uvicorn.run(app, host=settings.HOST, port=settings.PORT, log_config=None)


if __name__ == "__main__":
    run()
