"""Session notifications: audit entries only, users are never mutated."""

from typing import Optional

from loguru import logger

from ...models.entities import User
from ...models.events import SessionData
from ..activity_log import ActivityLogSink
from ..mongo import MongoService
from ..users import find_by_clerk_id, users_repository
from .reconciliation import SOURCE


class SessionNotifier:
    def __init__(self, db: Optional[MongoService], sink: ActivityLogSink):
        self.users = users_repository(db)
        self.sink = sink

    async def _owner(self, session: SessionData, event: str) -> Optional[User]:
        user = await find_by_clerk_id(self.users, session.user_id)
        if user is None:
            # No placeholder users for sessions of unknown identities
            logger.info(f"Session {event} but user {session.user_id} not found")
        return user

    async def handle_created(self, session: SessionData) -> Optional[User]:
        user = await self._owner(session, "created")
        if user is None:
            return None
        logger.info(f"Session created for user {session.user_id}, session ID: {session.id}")
        self.sink.record(
            user.id,
            "session.created",
            {"session_id": session.id, "source": SOURCE, "details": session.rest()},
        )
        return user

    async def handle_removed(self, session: SessionData) -> Optional[User]:
        user = await self._owner(session, "removed")
        if user is None:
            return None
        logger.info(f"Session removed for user {session.user_id}, session ID: {session.id}")
        self.sink.record(
            user.id,
            "session.removed",
            {"session_id": session.id, "source": SOURCE},
        )
        return user
