"""Tests for session token verification with a locally generated RSA key."""

import time

import httpx
import pytest
from authlib.jose import JsonWebKey, jwt

from accountsync.auth import SessionTokenError, SessionTokenVerifier

JWKS_URL = "https://clerk.example.com/.well-known/jwks.json"
KID = "ins_test_key"


@pytest.fixture(scope="module")
def signing_key():
    return JsonWebKey.generate_key("RSA", 2048, is_private=True)


@pytest.fixture
def jwks_requests():
    return []


@pytest.fixture
def verifier(signing_key, jwks_requests):
    public = signing_key.as_dict(is_private=False)
    public["kid"] = KID
    public["alg"] = "RS256"

    def handler(request: httpx.Request) -> httpx.Response:
        jwks_requests.append(str(request.url))
        return httpx.Response(200, json={"keys": [public]})

    return SessionTokenVerifier(
        jwks_url=JWKS_URL,
        authorized_parties=["http://localhost:3000"],
        transport=httpx.MockTransport(handler),
    )


def make_token(key, kid: str = KID, **overrides) -> str:
    now = int(time.time())
    claims = {
        "sub": "user_1",
        "sid": "sess_1",
        "azp": "http://localhost:3000",
        "iat": now,
        "nbf": now - 5,
        "exp": now + 60,
    }
    claims.update(overrides)
    return jwt.encode({"alg": "RS256", "kid": kid}, claims, key).decode()


class TestSessionTokenVerifier:
    async def test_valid_token(self, verifier, signing_key, jwks_requests):
        context = await verifier.verify(make_token(signing_key))
        assert context.user_id == "user_1"
        assert context.session_id == "sess_1"
        assert jwks_requests == [JWKS_URL]

    async def test_key_set_is_cached(self, verifier, signing_key, jwks_requests):
        await verifier.verify(make_token(signing_key))
        await verifier.verify(make_token(signing_key))
        assert len(jwks_requests) == 1

    async def test_expired_token_rejected(self, verifier, signing_key):
        now = int(time.time())
        token = make_token(signing_key, iat=now - 600, nbf=now - 600, exp=now - 300)
        with pytest.raises(SessionTokenError):
            await verifier.verify(token)

    async def test_unauthorized_party_rejected(self, verifier, signing_key):
        with pytest.raises(SessionTokenError, match="Unauthorized party"):
            await verifier.verify(make_token(signing_key, azp="https://evil.example.com"))

    async def test_foreign_key_rejected(self, verifier):
        other_key = JsonWebKey.generate_key("RSA", 2048, is_private=True)
        with pytest.raises(SessionTokenError):
            await verifier.verify(make_token(other_key))

    async def test_unknown_kid_refetches_once(self, verifier, signing_key, jwks_requests):
        with pytest.raises(SessionTokenError):
            await verifier.verify(make_token(signing_key, kid="rotated"))
        assert len(jwks_requests) == 2

    async def test_garbage_rejected(self, verifier):
        with pytest.raises(SessionTokenError):
            await verifier.verify("not.a.token")

    async def test_missing_jwks_url(self):
        with pytest.raises(SessionTokenError, match="JWKS"):
            await SessionTokenVerifier(jwks_url="", authorized_parties=[]).verify("x.y.z")
