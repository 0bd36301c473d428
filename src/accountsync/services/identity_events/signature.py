"""
Webhook signature verification (Svix scheme).

The identity provider signs every delivery with a shared secret:

    signed_content = f"{svix_id}.{svix_timestamp}.{body}"
    signature      = base64(HMAC-SHA256(secret_key, signed_content))

and sends `svix-signature: v1,<signature> [v1,<signature> ...]` (several
entries during secret rotation). A delivery passes when any `v1` entry
matches and its timestamp is within the tolerance window in either
direction.
"""

import base64
import hashlib
import hmac
import time
from typing import Mapping, Optional

from loguru import logger

from ...settings import settings

SECRET_PREFIX = "whsec_"
SIGNATURE_VERSION = "v1"

ID_HEADER = "svix-id"
TIMESTAMP_HEADER = "svix-timestamp"
SIGNATURE_HEADER = "svix-signature"
REQUIRED_HEADERS = (ID_HEADER, TIMESTAMP_HEADER, SIGNATURE_HEADER)


class WebhookVerificationError(Exception):
    """The delivery is not authentic (missing headers, bad signature, stale)."""


def _decode_secret(secret: str) -> bytes:
    if secret.startswith(SECRET_PREFIX):
        secret = secret[len(SECRET_PREFIX):]
    try:
        return base64.b64decode(secret, validate=True)
    except (ValueError, TypeError) as e:
        raise ValueError("Webhook secret is not valid base64") from e


class WebhookVerifier:
    """
    Verifies signed webhook deliveries.

    Args:
        secret: Signing secret (`whsec_<base64>` or bare base64)
        tolerance_seconds: Maximum timestamp skew (default from settings)
    """

    def __init__(self, secret: Optional[str] = None, tolerance_seconds: Optional[int] = None):
        secret = secret if secret is not None else settings.clerk.webhook_secret
        if not secret:
            raise ValueError("Webhook secret is not configured (CLERK__WEBHOOK_SECRET)")
        self._key = _decode_secret(secret)
        self.tolerance_seconds = (
            settings.clerk.webhook_tolerance_seconds
            if tolerance_seconds is None
            else tolerance_seconds
        )

    def sign(self, msg_id: str, timestamp: int | str, payload: bytes | str) -> str:
        """Compute the `v1,<signature>` header value for a payload."""
        if isinstance(payload, bytes):
            payload = payload.decode("utf-8")
        content = f"{msg_id}.{timestamp}.{payload}".encode("utf-8")
        digest = hmac.new(self._key, content, hashlib.sha256).digest()
        return f"{SIGNATURE_VERSION},{base64.b64encode(digest).decode('ascii')}"

    def verify(self, payload: bytes | str, headers: Mapping[str, str]) -> None:
        """
        Check a delivery's authenticity.

        Args:
            payload: Raw request body, exactly as received
            headers: Request headers (case-insensitive mapping or lower-case keys)

        Raises:
            WebhookVerificationError: on any failed check
        """
        msg_id = headers.get(ID_HEADER)
        timestamp = headers.get(TIMESTAMP_HEADER)
        signature_header = headers.get(SIGNATURE_HEADER)
        if not msg_id or not timestamp or not signature_header:
            raise WebhookVerificationError("Missing required webhook headers")

        self._verify_timestamp(timestamp)

        try:
            expected = self.sign(msg_id, timestamp, payload).split(",", 1)[1]
        except UnicodeDecodeError as e:
            raise WebhookVerificationError("Payload is not valid UTF-8") from e

        for entry in signature_header.split(" "):
            version, _, signature = entry.partition(",")
            if version != SIGNATURE_VERSION or not signature:
                continue
            if hmac.compare_digest(signature.encode(), expected.encode()):
                return

        logger.warning(f"Webhook signature mismatch for message {msg_id}")
        raise WebhookVerificationError("No matching signature found")

    def _verify_timestamp(self, timestamp: str) -> None:
        try:
            sent_at = int(timestamp)
        except ValueError as e:
            raise WebhookVerificationError("Invalid signature timestamp") from e

        now = int(time.time())
        if now - sent_at > self.tolerance_seconds:
            raise WebhookVerificationError("Message timestamp too old")
        if sent_at - now > self.tolerance_seconds:
            raise WebhookVerificationError("Message timestamp too new")
