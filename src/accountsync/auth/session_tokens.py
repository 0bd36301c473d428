"""
Session token verification.

The identity provider issues short-lived RS256 session JWTs to the browser
(sent as `Authorization: Bearer <token>` or the `__session` cookie). Tokens
are verified with Authlib against the provider's JWKS document:

- signature (key selected by `kid`)
- `exp` / `nbf` / `iat` time claims
- `azp` against the configured authorized parties (when any are set)

The key set is fetched once with httpx and cached; an unknown `kid`
triggers one refetch to pick up rotated keys.
"""

from typing import Any, Optional

import httpx
from authlib.jose import JsonWebKey, JsonWebToken, KeySet
from authlib.jose.errors import JoseError
from loguru import logger
from pydantic import BaseModel

from ..settings import settings

jwt = JsonWebToken(["RS256"])


class SessionTokenError(Exception):
    """The session token is missing, malformed, expired or untrusted."""


class AuthContext(BaseModel):
    """Identity of the authenticated caller."""

    user_id: str
    session_id: Optional[str] = None
    claims: dict[str, Any] = {}


class SessionTokenVerifier:
    """
    Verifies identity provider session tokens.

    Args:
        jwks_url: JWKS document URL (defaults to settings.clerk.jwks_url)
        authorized_parties: Accepted `azp` values; empty accepts any
        transport: Optional httpx transport (tests use httpx.MockTransport)
        leeway: Clock skew tolerance in seconds for time claims
    """

    def __init__(
        self,
        jwks_url: Optional[str] = None,
        authorized_parties: Optional[list[str]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        leeway: int = 5,
    ):
        self.jwks_url = jwks_url or settings.clerk.jwks_url
        self.authorized_parties = (
            settings.clerk.authorized_parties
            if authorized_parties is None
            else authorized_parties
        )
        self.transport = transport
        self.leeway = leeway
        self._key_set: Optional[KeySet] = None

    async def _fetch_key_set(self) -> KeySet:
        if not self.jwks_url:
            raise SessionTokenError("JWKS URL is not configured (CLERK__JWKS_URL)")
        try:
            async with httpx.AsyncClient(
                timeout=settings.clerk.timeout, transport=self.transport
            ) as client:
                response = await client.get(self.jwks_url)
                response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error(f"Failed to fetch JWKS from {self.jwks_url}: {e}")
            raise SessionTokenError("Unable to fetch signing keys") from e

        self._key_set = JsonWebKey.import_key_set(response.json())
        logger.debug(f"Loaded {len(self._key_set.keys)} signing keys")
        return self._key_set

    async def verify(self, token: str) -> AuthContext:
        """
        Verify a session token.

        Raises:
            SessionTokenError: on any verification failure
        """
        if not token:
            raise SessionTokenError("Missing session token")

        key_set = self._key_set or await self._fetch_key_set()
        try:
            claims = jwt.decode(token, key_set)
        except ValueError:
            # Unknown kid: the provider may have rotated its keys
            key_set = await self._fetch_key_set()
            try:
                claims = jwt.decode(token, key_set)
            except (JoseError, ValueError) as e:
                raise SessionTokenError(f"Invalid session token: {e}") from e
        except JoseError as e:
            raise SessionTokenError(f"Invalid session token: {e}") from e

        try:
            claims.validate(leeway=self.leeway)
        except JoseError as e:
            raise SessionTokenError(f"Invalid session token: {e}") from e

        azp = claims.get("azp")
        if self.authorized_parties and azp and azp not in self.authorized_parties:
            raise SessionTokenError(f"Unauthorized party: {azp}")

        subject = claims.get("sub")
        if not subject:
            raise SessionTokenError("Session token has no subject")

        return AuthContext(user_id=subject, session_id=claims.get("sid"), claims=dict(claims))
