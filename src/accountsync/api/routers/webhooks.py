"""
Identity provider webhook endpoint.

Endpoint:
    POST /api/webhooks/clerk

Flow:
1. Reject empty bodies and deliveries without svix-* headers (400)
2. Verify the signature over the raw body (400 on failure)
3. Decode into a typed event (400 on malformed payloads)
4. Dispatch to the reconciliation / session handlers
   - any handler exception -> 500 {"error", "details"}, so the sender retries

Unknown event types are acknowledged with 200 and no side effects.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from loguru import logger

from ...models.events import InvalidEventPayload, parse_event
from ...services.identity_events import (
    IdentityEventDispatcher,
    WebhookVerificationError,
    WebhookVerifier,
)
from ...services.identity_events.signature import REQUIRED_HEADERS
from ..deps import get_event_dispatcher, get_webhook_verifier

router = APIRouter(prefix="/api/webhooks", tags=["webhooks"])


def _error(status_code: int, message: str, **extra) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message, **extra})


@router.post("/clerk")
async def clerk_webhook(
    request: Request,
    verifier: Optional[WebhookVerifier] = Depends(get_webhook_verifier),
    dispatcher: IdentityEventDispatcher = Depends(get_event_dispatcher),
):
    """Receive a signed identity provider event."""
    if verifier is None:
        logger.error("CLERK__WEBHOOK_SECRET is not set; rejecting webhook")
        return _error(500, "Webhook secret not configured")

    payload = await request.body()
    if not payload:
        return _error(400, "No payload provided")

    if not all(request.headers.get(name) for name in REQUIRED_HEADERS):
        return _error(400, "Error occurred -- no svix headers")

    try:
        verifier.verify(payload, request.headers)
    except WebhookVerificationError as e:
        logger.warning(f"Error verifying webhook: {e}")
        return _error(400, "Error occurred")

    try:
        event = parse_event(payload)
    except InvalidEventPayload as e:
        logger.warning(f"Invalid webhook payload: {e}")
        return _error(400, "Invalid payload", details=str(e))

    try:
        await dispatcher.dispatch(event)
    except InvalidEventPayload as e:
        # e.g. no primary email: malformed at the source, retrying cannot help
        logger.warning(f"Rejected {event.type} event: {e}")
        return _error(400, "Invalid payload", details=str(e))
    except Exception as e:
        logger.exception(f"Error processing webhook {event.type}: {e}")
        return _error(500, "Internal server error", details=str(e))

    return {"message": "Webhook processed successfully"}
