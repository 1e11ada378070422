"""
FastAPI Relay Application Factory
=================================

Entry point for the relay that sits between the browser demo and the
Retell conversational-AI API.

Architecture:
    Browser → Relay (this service) → Retell API

Routes:
    - PROXY_PATH (default /api/retell-proxy) : the relay endpoint
    - /health                                : Health check endpoint
    - /                                      : Service metadata

Environment Variables:
    - RETELL_API_KEY: Retell credential (required for proxied calls)
    - ALLOWED_ORIGINS: Comma-separated CORS origins
    - ORIGIN_POLICY: allow_list (default) or open
    - ERROR_DETAIL: redacted (default) or verbose
    - LOG_LEVEL: Logging level (default: INFO)

Running the Service:
    Development:
        uvicorn relay.app.main:app --reload --host 0.0.0.0 --port 8080

    Production:
        uvicorn relay.app.main:app --host 0.0.0.0 --port 8080 --workers 4
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
import uvicorn

from relay.app import __version__
from relay.app.config import Settings, get_settings, validate_configuration
from relay.app.models import HealthResponse
from relay.app.proxy import PROXY_METHODS, method_not_allowed_handler, proxy_handler
from relay.app.proxy.upstream import RetellClient, create_http_client


def setup_logging(log_level: str = "INFO") -> None:
    """
    Configure structured logging for the application.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format='{"timestamp": "%(asctime)s", "level": "%(levelname)s", "logger": "%(name)s", "message": "%(message)s", "module": "%(module)s", "function": "%(funcName)s"}',
        handlers=[logging.StreamHandler(sys.stdout)]
    )


class AppState:
    """
    Application state container.

    Holds the shared upstream client for the lifetime of the process.
    """
    def __init__(self):
        self.settings: Optional[Settings] = None
        self.upstream_client: Optional[RetellClient] = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Startup: configure logging, report configuration problems, open the
    upstream HTTP client. Shutdown: close it.
    """
    settings = get_settings()
    setup_logging(settings.LOG_LEVEL)
    logger = logging.getLogger("relay.main")

    report = validate_configuration(settings)
    for error in report["errors"]:
        logger.error(f"Configuration error: {error}")
    for warning in report["warnings"]:
        logger.warning(f"Configuration warning: {warning}")

    http_client = create_http_client(settings)
    app_state: AppState = app.state.app_state
    app_state.settings = settings
    app_state.upstream_client = RetellClient(http_client, settings)

    logger.info(
        "Relay service started",
        extra={
            "proxy_path": settings.PROXY_PATH,
            "origin_policy": settings.ORIGIN_POLICY.value,
            "error_detail": settings.ERROR_DETAIL.value,
        }
    )

    yield

    logger.info("Shutting down relay service")
    await http_client.aclose()
    app_state.upstream_client = None


def create_app() -> FastAPI:
    """
    Application factory function.

    Creates the FastAPI application with lifespan management, the relay
    route, system endpoints and the fallback exception handler.
    """
    settings = get_settings()

    app = FastAPI(
        title="Retell Relay",
        description="Relay that keeps the Retell credential server-side",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.app_state = AppState()

    app.add_api_route(
        settings.PROXY_PATH,
        proxy_handler,
        methods=PROXY_METHODS,
        tags=["Retell Proxy"],
    )
    app.add_exception_handler(StarletteHTTPException, method_not_allowed_handler)

    @app.get("/health", tags=["System"], response_model=HealthResponse)
    async def health_check() -> Dict[str, str]:
        return {
            "status": "ok",
            "service": "relay",
            "version": __version__,
        }

    @app.get("/", tags=["System"])
    async def root() -> Dict[str, Any]:
        return {
            "service": "relay",
            "version": __version__,
            "endpoints": {
                "health": "/health",
                "proxy": settings.PROXY_PATH,
            },
        }

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Log unhandled errors and return the generic 500 body."""
        logger = logging.getLogger("relay.main")
        logger.error(
            f"Unhandled exception: {type(exc).__name__}",
            extra={
                "path": request.url.path,
                "method": request.method,
                "exception_type": type(exc).__name__
            },
            exc_info=True
        )
        return JSONResponse(status_code=500, content={"error": "Internal server error"})

    return app


app = create_app()


if __name__ == "__main__":
    settings = get_settings()

    uvicorn.run(
        "relay.app.main:app",
        host=settings.RELAY_HOST,
        port=settings.RELAY_PORT,
        log_level=settings.LOG_LEVEL.lower()
    )
