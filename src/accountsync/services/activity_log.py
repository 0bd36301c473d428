"""
Activity log sink.

Writes audit entries without making the caller wait for, or fail on, the
write. Each `record()` schedules an independent asyncio task; a failing
write is logged inside its task and never propagates. Pending tasks are
tracked so shutdown (and tests) can `drain()` them.
"""

import asyncio
from typing import Any, Optional

from loguru import logger

from ..models.entities import ActivityDetails, ActivityLogEntry
from .mongo import ACTIVITY_LOGS_COLLECTION, MongoService, Repository


def describe(action: str) -> str:
    """Human-readable description stored with each entry."""
    return f"User {action} via Clerk webhook."


class ActivityLogSink:
    """Fire-and-forget writer for ActivityLogEntry documents."""

    def __init__(self, db: Optional[MongoService] = None):
        self.repo: Repository[ActivityLogEntry] = Repository(
            ActivityLogEntry, collection_name=ACTIVITY_LOGS_COLLECTION, db=db
        )
        self._pending: set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        return len(self._pending)

    def record(
        self, user_id: str, action: str, metadata: dict[str, Any]
    ) -> asyncio.Task:
        """
        Schedule an activity entry write and return immediately.

        Args:
            user_id: User document id the entry refers to
            action: Action tag (user.created, session.removed, ...)
            metadata: Free-form context stored under details.metadata

        Returns:
            The scheduled task (callers normally ignore it)
        """
        entry = ActivityLogEntry(
            user_id=user_id,
            action=action,
            details=ActivityDetails(
                description=describe(action),
                metadata=metadata,
                ip_address="webhook",
                user_agent="clerk-webhook",
            ),
        )
        task = asyncio.create_task(self._write(entry))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def _write(self, entry: ActivityLogEntry) -> None:
        try:
            await self.repo.create(entry)
            logger.debug(f"Activity logged: {entry.action} for user {entry.user_id}")
        except Exception as e:
            logger.error(
                f"Failed to write activity log {entry.action} for user {entry.user_id}: {e}"
            )

    async def drain(self) -> None:
        """Wait for every outstanding write to finish."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
