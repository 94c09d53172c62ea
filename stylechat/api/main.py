"""FastAPI application main module.

This module defines the StyleChat FastAPI application: health and metrics
endpoints, the chat history and catalog search routers, the chat WebSocket
and the error handlers that render ``StyleChatException`` as JSON.
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from stylechat import __version__
from stylechat.api.deps import Services, build_services
from stylechat.api.logging_config import RequestLoggingMiddleware, setup_logging
from stylechat.api.routes import catalog, chat, ws
from stylechat.config import settings
from stylechat.exceptions import StyleChatException
from stylechat.metrics import metrics_service

# Configure module logger
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    setup_logging(settings.LOG_LEVEL)
    if getattr(app.state, "services", None) is None:
        app.state.services = build_services(settings)
    logger.info("StyleChat API started", extra={"version": __version__})
    yield
    embedder = app.state.services.embedder
    if hasattr(embedder, "aclose"):
        await embedder.aclose()


async def stylechat_exception_handler(request: Request, exc: StyleChatException) -> JSONResponse:
    level = logging.ERROR if exc.status_code >= 500 else logging.WARNING
    logger.log(
        level,
        exc.message,
        extra={
            "path": str(request.url.path),
            "status_code": exc.status_code,
            "error_type": type(exc).__name__,
        },
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": exc.message,
            "error_type": type(exc).__name__,
            "details": exc.details,
        },
    )


def create_app(services: Optional[Services] = None) -> FastAPI:
    """Create the application.

    Args:
        services: Pre-built services (tests pass in-memory stores and fake
            providers). When omitted they are built from settings at startup.
    """
    app = FastAPI(
        title="StyleChat API",
        description="Shopping-assistant chat backend with product similarity search",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.services = services

    app.add_middleware(RequestLoggingMiddleware)
    app.add_exception_handler(StyleChatException, stylechat_exception_handler)

    app.include_router(chat.router)
    app.include_router(catalog.router)
    app.include_router(ws.router)

    @app.get("/ping")
    def ping() -> Dict[str, str]:
        """Health check endpoint.

        Example:
            >>> response = client.get("/ping")
            >>> assert response.json() == {"status": "ok"}
        """
        return {"status": "ok"}

    @app.get("/metrics")
    def metrics() -> Dict[str, Any]:
        """Language-model call, throttle and fallback counters."""
        return metrics_service.get_metrics()

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "stylechat.api.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )
