"""
Pytest configuration for integration tests.

Integration tests drive the FastAPI app through httpx's ASGI transport with
collaborators replaced via `app.dependency_overrides`: the in-memory Mongo
service, the fake identity client and a webhook verifier with a test secret.
"""

import time
import uuid

import pytest
from httpx import ASGITransport, AsyncClient

from accountsync.api.deps import (
    get_activity_sink,
    get_identity_client,
    get_webhook_verifier,
    require_auth,
)
from accountsync.api.main import create_app
from accountsync.auth import AuthContext
from accountsync.security.csrf import COOKIE_NAME, create_timestamped_token
from accountsync.services.identity_events import WebhookVerifier
from accountsync.services.mongo import get_mongo_service
from fakes import TEST_WEBHOOK_SECRET


@pytest.fixture
def verifier() -> WebhookVerifier:
    return WebhookVerifier(secret=TEST_WEBHOOK_SECRET)


@pytest.fixture
def app(mongo, sink, identity, verifier):
    application = create_app()
    application.state.activity_sink = sink
    application.dependency_overrides[get_mongo_service] = lambda: mongo
    application.dependency_overrides[get_activity_sink] = lambda: sink
    application.dependency_overrides[get_identity_client] = lambda: identity
    application.dependency_overrides[get_webhook_verifier] = lambda: verifier
    yield application
    application.dependency_overrides.clear()


@pytest.fixture
async def client(app):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as http:
        yield http


@pytest.fixture
def login(app):
    """Authenticate subsequent requests as the given identity."""

    def _login(user_id: str = "user_1"):
        app.dependency_overrides[require_auth] = lambda: AuthContext(
            user_id=user_id, session_id="sess_test"
        )

    return _login


@pytest.fixture
def signed(verifier):
    """Build signed webhook headers for a body."""

    def _signed(body: bytes, timestamp: int | None = None) -> dict:
        msg_id = f"msg_{uuid.uuid4().hex}"
        timestamp = int(time.time()) if timestamp is None else timestamp
        return {
            "svix-id": msg_id,
            "svix-timestamp": str(timestamp),
            "svix-signature": verifier.sign(msg_id, timestamp, body),
            "content-type": "application/json",
        }

    return _signed


@pytest.fixture
def csrf_headers():
    """Matching CSRF cookie and header for state-changing requests."""
    token = create_timestamped_token()
    return {"X-CSRF-Token": token, "Cookie": f"{COOKIE_NAME}={token}"}


def pytest_collection_modifyitems(items):
    """Add markers to integration tests."""
    for item in items:
        if "/integration/" in str(item.fspath):
            item.add_marker(pytest.mark.integration)
