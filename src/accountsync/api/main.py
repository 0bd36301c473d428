"""
accountsync API Server - FastAPI application.

Design Pattern:
1. Create FastAPI with a lifespan that drains pending activity log writes
   and closes the MongoDB client on shutdown
2. Add middleware in specific order (logging, CSRF, CORS)
3. Define root and health endpoints
4. Register API routers

Middleware Order (runs in reverse):
1. CORS (runs first - rejects foreign origins, adds headers)
2. CSRF (double-submit token on state-changing /api/ requests)
3. Logging (logs all requests)

Endpoints:
- /                          : API information
- /health                    : Health check
- /api/webhooks/clerk        : Identity provider webhooks (signed, CSRF exempt)
- /api/csrf                  : CSRF token issuance
- /api/user                  : Self-service update / delete
- /api/admin/users           : Admin directory
- /docs                      : OpenAPI documentation

Running:
    # Development (auto-reload)
    accountsync serve --reload

    # Production
    uvicorn accountsync.api.main:app --host 0.0.0.0 --port 8000 --workers 4
"""

import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from loguru import logger
from starlette.middleware.base import BaseHTTPMiddleware

from ..security import CORSProtectionMiddleware, CSRFMiddleware
from ..services.activity_log import ActivityLogSink
from ..services.mongo import close_mongo_service, get_mongo_service
from ..settings import settings

VERSION = "0.1.0"


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Log all incoming HTTP requests and responses.

    Logs method, path, client and user-agent on the way in; status and
    duration on the way out.
    """

    async def dispatch(self, request: Request, call_next):
        start_time = time.time()

        client_host = request.client.host if request.client else "unknown"
        logger.info(
            f"→ REQUEST: {request.method} {request.url.path} | "
            f"Client: {client_host} | "
            f"User-Agent: {request.headers.get('user-agent', 'unknown')[:100]}"
        )

        response = await call_next(request)

        duration_ms = (time.time() - start_time) * 1000
        logger.info(
            f"← RESPONSE: {request.method} {request.url.path} | "
            f"Status: {response.status_code} | "
            f"Duration: {duration_ms:.2f}ms"
        )

        return response


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    The MongoDB connection opens lazily on first use; shutdown waits for
    outstanding activity log writes before closing it.
    """
    logger.info(f"Starting accountsync API ({settings.environment})")

    yield

    logger.info("Shutting down accountsync API")
    sink: ActivityLogSink = app.state.activity_sink
    if sink.pending:
        logger.info(f"Waiting for {sink.pending} activity log writes")
    await sink.drain()
    await close_mongo_service()


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns:
        Configured FastAPI application
    """
    app = FastAPI(
        title="accountsync API",
        description="User accounts kept in sync with the identity provider",
        version=VERSION,
        lifespan=lifespan,
        root_path=settings.root_path if settings.root_path else "",
    )

    app.state.activity_sink = ActivityLogSink(get_mongo_service())

    app.add_middleware(RequestLoggingMiddleware)

    app.add_middleware(CSRFMiddleware, enabled=settings.security.csrf_enabled)

    # Added LAST so it runs FIRST
    app.add_middleware(CORSProtectionMiddleware)

    @app.get("/")
    async def root():
        """API information endpoint."""
        return {
            "name": "accountsync API",
            "version": VERSION,
            "webhook_endpoint": "/api/webhooks/clerk",
            "docs": "/docs",
        }

    @app.get("/health")
    async def health():
        """Health check endpoint."""
        return {"status": "healthy", "version": VERSION}

    from .routers.admin import router as admin_router
    from .routers.csrf import router as csrf_router
    from .routers.users import router as users_router
    from .routers.webhooks import router as webhooks_router

    app.include_router(webhooks_router)
    app.include_router(csrf_router)
    app.include_router(users_router)
    app.include_router(admin_router)

    return app


# Create application instance
app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "accountsync.api.main:app",
        host=settings.api.host,
        port=settings.api.port,
        reload=settings.api.reload,
    )
