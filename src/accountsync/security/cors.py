"""
CORS protection middleware.

Unlike Starlette's CORSMiddleware, which only omits headers for foreign
origins, this middleware rejects them outright:

- Preflight (OPTIONS) from a disallowed origin -> 403
- Preflight for a method outside ALLOWED_METHODS -> 405
- Actual request from a disallowed origin -> 403
  {"error": "CORS policy violation", "origin": ...}

Requests without an Origin header (same-origin, server-to-server webhooks)
pass through. Allowed origins come from settings in production; outside
production the localhost development origins are used and any localhost
origin is accepted.

Usage:
    app.add_middleware(CORSProtectionMiddleware, path_prefix="/api/")
"""

from typing import Optional

from loguru import logger
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, PlainTextResponse, Response

from ..settings import settings

ALLOWED_METHODS = ["GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS"]
ALLOWED_HEADERS = [
    "Content-Type",
    "Authorization",
    "X-CSRF-Token",
    "X-Requested-With",
    "Origin",
    "Accept",
    "Cache-Control",
]
MAX_AGE = 86400

DEVELOPMENT_ORIGINS = [
    "http://localhost:3000",
    "http://localhost:3001",
    "http://127.0.0.1:3000",
    "http://127.0.0.1:3001",
    "https://localhost:3000",
    "https://localhost:3001",
]


def default_allowed_origins() -> list[str]:
    if settings.environment == "production":
        return list(settings.security.allowed_origins)
    return DEVELOPMENT_ORIGINS + list(settings.security.allowed_origins)


class CORSProtectionMiddleware(BaseHTTPMiddleware):
    """Origin allow-listing for API routes."""

    def __init__(
        self,
        app,
        allowed_origins: Optional[list[str]] = None,
        allow_localhost: Optional[bool] = None,
        path_prefix: str = "/api/",
    ):
        """
        Args:
            app: ASGI application
            allowed_origins: Exact origins to accept (environment default if None)
            allow_localhost: Accept any localhost origin (default: outside production)
            path_prefix: Only requests under this prefix are checked
        """
        super().__init__(app)
        self.allowed_origins = (
            default_allowed_origins() if allowed_origins is None else allowed_origins
        )
        self.allow_localhost = (
            settings.environment != "production"
            if allow_localhost is None
            else allow_localhost
        )
        self.path_prefix = path_prefix

    def is_origin_allowed(self, origin: Optional[str]) -> bool:
        if not origin:
            return True
        if origin in self.allowed_origins:
            return True
        return self.allow_localhost and ("localhost" in origin or "127.0.0.1" in origin)

    def apply_headers(self, response: Response, origin: Optional[str]) -> Response:
        # Credentials are allowed, so the origin is echoed rather than "*"
        if not origin or not self.is_origin_allowed(origin):
            return response
        response.headers["Access-Control-Allow-Origin"] = origin
        response.headers["Access-Control-Allow-Methods"] = ", ".join(ALLOWED_METHODS)
        response.headers["Access-Control-Allow-Headers"] = ", ".join(ALLOWED_HEADERS)
        response.headers["Access-Control-Max-Age"] = str(MAX_AGE)
        response.headers["Access-Control-Allow-Credentials"] = "true"
        response.headers["Vary"] = "Origin"
        return response

    async def dispatch(self, request: Request, call_next):
        if not request.url.path.startswith(self.path_prefix):
            return await call_next(request)

        origin = request.headers.get("origin")

        if request.method == "OPTIONS":
            return self._preflight(request, origin)

        if not self.is_origin_allowed(origin):
            logger.warning(f"CORS: request blocked, origin not allowed: {origin}")
            return JSONResponse(
                status_code=403,
                content={"error": "CORS policy violation", "origin": origin},
            )

        response = await call_next(request)
        return self.apply_headers(response, origin)

    def _preflight(self, request: Request, origin: Optional[str]) -> Response:
        requested_method = request.headers.get("access-control-request-method")

        if not self.is_origin_allowed(origin):
            logger.warning(f"CORS: preflight origin not allowed: {origin}")
            return PlainTextResponse("CORS policy violation", status_code=403)

        if requested_method and requested_method not in ALLOWED_METHODS:
            logger.warning(f"CORS: preflight method not allowed: {requested_method}")
            return PlainTextResponse("Method not allowed", status_code=405)

        logger.debug(f"CORS: preflight approved for {origin}")
        return self.apply_headers(Response(status_code=200), origin)
