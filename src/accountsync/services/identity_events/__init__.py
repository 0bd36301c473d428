"""
Identity provider webhook processing.

- signature: Svix-scheme delivery verification
- dispatcher: event type routing
- reconciliation: user lifecycle events
- sessions: session notifications
"""

from .dispatcher import IdentityEventDispatcher
from .reconciliation import UserReconciler
from .sessions import SessionNotifier
from .signature import WebhookVerificationError, WebhookVerifier

__all__ = [
    "IdentityEventDispatcher",
    "SessionNotifier",
    "UserReconciler",
    "WebhookVerificationError",
    "WebhookVerifier",
]
