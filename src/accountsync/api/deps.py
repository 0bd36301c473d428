"""
FastAPI dependencies.

Collaborators are resolved per request from process-wide services so that
tests can swap any of them through `app.dependency_overrides`.

Authentication:
- require_auth: verified session token (Bearer header or `__session` cookie)
- require_admin: require_auth + `private_metadata.role == "admin"` at the
  identity provider
"""

from functools import lru_cache
from typing import Optional

from fastapi import Depends, HTTPException, Request
from loguru import logger

from ..auth import AuthContext, SessionTokenError, SessionTokenVerifier
from ..services.activity_log import ActivityLogSink
from ..services.identity import IdentityClient, IdentityProviderError
from ..services.identity_events import (
    IdentityEventDispatcher,
    SessionNotifier,
    UserReconciler,
    WebhookVerifier,
)
from ..services.mongo import MongoService, get_mongo_service
from ..services.user_service import UserService
from ..settings import settings

SESSION_COOKIE = "__session"


def get_activity_sink(request: Request) -> ActivityLogSink:
    return request.app.state.activity_sink


def get_identity_client() -> Optional[IdentityClient]:
    """Backend API client, or None when no secret key is configured."""
    if not settings.clerk.secret_key:
        return None
    return IdentityClient()


def get_webhook_verifier() -> Optional[WebhookVerifier]:
    if not settings.clerk.webhook_secret:
        return None
    return WebhookVerifier()


@lru_cache
def get_session_token_verifier() -> SessionTokenVerifier:
    # Cached so the JWKS document is fetched once per process
    return SessionTokenVerifier()


def get_event_dispatcher(
    db: MongoService = Depends(get_mongo_service),
    sink: ActivityLogSink = Depends(get_activity_sink),
    identity_client: Optional[IdentityClient] = Depends(get_identity_client),
) -> IdentityEventDispatcher:
    return IdentityEventDispatcher(
        reconciler=UserReconciler(db, sink, identity_client),
        sessions=SessionNotifier(db, sink),
    )


def get_user_service(
    db: MongoService = Depends(get_mongo_service),
    identity_client: Optional[IdentityClient] = Depends(get_identity_client),
) -> UserService:
    return UserService(db, identity_client)


def _extract_token(request: Request) -> Optional[str]:
    authorization = request.headers.get("authorization", "")
    if authorization.lower().startswith("bearer "):
        return authorization[7:].strip()
    return request.cookies.get(SESSION_COOKIE)


async def require_auth(
    request: Request,
    verifier: SessionTokenVerifier = Depends(get_session_token_verifier),
) -> AuthContext:
    """
    Authenticate the caller from their session token.

    Raises:
        HTTPException 401: missing or invalid token
    """
    token = _extract_token(request)
    if not token:
        raise HTTPException(
            status_code=401,
            detail="Unauthorized",
            headers={"WWW-Authenticate": "Bearer"},
        )
    try:
        return await verifier.verify(token)
    except SessionTokenError as e:
        logger.warning(f"Rejected session token on {request.url.path}: {e}")
        raise HTTPException(
            status_code=401,
            detail="Unauthorized",
            headers={"WWW-Authenticate": "Bearer"},
        ) from e


async def require_admin(
    auth: AuthContext = Depends(require_auth),
    identity_client: Optional[IdentityClient] = Depends(get_identity_client),
) -> AuthContext:
    """
    Require the admin role, read from the provider's private metadata.

    Raises:
        HTTPException 403: caller is not an admin
        HTTPException 503: identity API not configured or unreachable
    """
    if identity_client is None:
        raise HTTPException(status_code=503, detail="Identity API not configured")
    try:
        identity = await identity_client.get_user(auth.user_id)
    except IdentityProviderError as e:
        logger.error(f"Admin check failed for {auth.user_id}: {e}")
        raise HTTPException(status_code=503, detail="Identity API unavailable") from e

    if identity.private_metadata.get("role") != "admin":
        logger.warning(f"Non-admin {auth.user_id} denied admin access")
        raise HTTPException(status_code=403, detail="Forbidden")
    return auth
