"""
CSRF protection (double-submit cookie).

`GET /api/csrf` issues a timestamped token `{epoch_ms}.{64 hex chars}` and
sets it as the `__csrf-token` cookie. State-changing API requests must echo
the cookie value in the `X-CSRF-Token` header; the two must match and the
token must be younger than `settings.security.csrf_max_age`.

Webhook deliveries carry their own signatures and are exempt.
"""

import secrets
import time
from typing import Optional

from loguru import logger
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from ..settings import settings

COOKIE_NAME = "__csrf-token"
HEADER_NAME = "x-csrf-token"
TOKEN_BYTES = 32

PROTECTED_METHODS = frozenset({"POST", "PUT", "PATCH", "DELETE"})
EXEMPT_PREFIXES = ("/api/webhooks/", "/api/csrf")


def generate_csrf_token() -> str:
    return secrets.token_hex(TOKEN_BYTES)


def create_timestamped_token(now_ms: Optional[int] = None) -> str:
    timestamp = now_ms if now_ms is not None else int(time.time() * 1000)
    return f"{timestamp}.{generate_csrf_token()}"


def validate_timestamped_token(token: str, max_age: Optional[int] = None) -> bool:
    """Check format and age (max_age in seconds, default from settings)."""
    max_age = max_age if max_age is not None else settings.security.csrf_max_age
    timestamp_str, _, token_part = token.partition(".")
    if not timestamp_str or not token_part:
        return False
    try:
        timestamp = int(timestamp_str)
    except ValueError:
        return False

    now_ms = int(time.time() * 1000)
    if now_ms - timestamp > max_age * 1000:
        return False
    if len(token_part) != TOKEN_BYTES * 2:
        return False
    return all(c in "0123456789abcdef" for c in token_part)


def set_csrf_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        COOKIE_NAME,
        token,
        max_age=settings.security.csrf_max_age,
        path="/",
        secure=settings.security.csrf_cookie_secure,
        httponly=False,  # the frontend reads it to echo in the header
        samesite="lax",
    )


class CSRFMiddleware(BaseHTTPMiddleware):
    """
    Rejects state-changing API requests without a valid CSRF token.

    Usage:
        app.add_middleware(CSRFMiddleware, enabled=settings.security.csrf_enabled)
    """

    def __init__(
        self,
        app,
        enabled: bool = True,
        path_prefix: str = "/api/",
        exempt_prefixes: tuple[str, ...] = EXEMPT_PREFIXES,
    ):
        super().__init__(app)
        self.enabled = enabled
        self.path_prefix = path_prefix
        self.exempt_prefixes = exempt_prefixes

    def requires_token(self, request: Request) -> bool:
        path = request.url.path
        if not self.enabled or request.method not in PROTECTED_METHODS:
            return False
        if not path.startswith(self.path_prefix):
            return False
        return not any(path.startswith(p) for p in self.exempt_prefixes)

    async def dispatch(self, request: Request, call_next):
        if not self.requires_token(request):
            return await call_next(request)

        reason = self._validate(request)
        if reason is not None:
            logger.warning(
                f"CSRF validation failed for {request.method} {request.url.path}: {reason}"
            )
            return JSONResponse(
                status_code=403,
                content={
                    "error": "CSRF token validation failed",
                    "message": "Invalid or missing CSRF token. Please refresh the page and try again.",
                },
            )
        return await call_next(request)

    @staticmethod
    def _validate(request: Request) -> Optional[str]:
        cookie_token = request.cookies.get(COOKIE_NAME)
        if not cookie_token:
            return "no token in cookies"
        header_token = request.headers.get(HEADER_NAME)
        if not header_token:
            return "no token in request headers"
        if not secrets.compare_digest(cookie_token.encode(), header_token.encode()):
            return "token mismatch"
        if not validate_timestamped_token(cookie_token):
            return "invalid or expired token"
        return None
