"""
Event routing.

Maps each decoded event class onto its handler. Types the service does not
handle arrive as `UnhandledEvent` and are acknowledged without side
effects. Handler exceptions propagate to the ingress endpoint.
"""

from typing import Any, Awaitable, Callable, Union

from loguru import logger

from ...models.events import (
    IdentityEvent,
    SessionCreatedEvent,
    SessionRemovedEvent,
    UnhandledEvent,
    UserCreatedEvent,
    UserDeletedEvent,
    UserUpdatedEvent,
)
from .reconciliation import UserReconciler
from .sessions import SessionNotifier


class IdentityEventDispatcher:
    """Routes identity events to reconciliation and session handlers."""

    def __init__(self, reconciler: UserReconciler, sessions: SessionNotifier):
        self.reconciler = reconciler
        self.sessions = sessions
        self._handlers: dict[type, Callable[[Any], Awaitable[Any]]] = {
            UserCreatedEvent: reconciler.handle_created,
            UserUpdatedEvent: reconciler.handle_updated,
            UserDeletedEvent: reconciler.handle_deleted,
            SessionCreatedEvent: sessions.handle_created,
            SessionRemovedEvent: sessions.handle_removed,
        }

    async def dispatch(self, event: Union[IdentityEvent, UnhandledEvent]) -> bool:
        """
        Run the handler for an event.

        Returns:
            True if a handler ran, False for ignored event types
        """
        handler = self._handlers.get(type(event))
        if handler is None:
            logger.info(f"Unhandled event type: {event.type}")
            return False

        logger.info(f"Received event: {event.type}")
        await handler(event.data)
        return True
