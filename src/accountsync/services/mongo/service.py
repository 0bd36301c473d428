"""
MongoService - document store connection management.

Owns one pooled Motor client per process:

Key Features:
- Lazy connection: nothing is opened until the first `connect()`
- Single initialization: concurrent first callers await the same in-flight
  task instead of opening duplicate clients
- Failed attempts are forgotten so the next caller retries
- Explicit teardown (`disconnect()`, `close_mongo_service()`) for shutdown
  and test isolation

Index bootstrap runs once as part of the first connection when
`settings.mongo.create_indexes` is enabled.
"""

import asyncio
from typing import Any, Callable, Optional

from loguru import logger
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import ASCENDING

from ...settings import settings

USERS_COLLECTION = "users"
ACTIVITY_LOGS_COLLECTION = "activity_logs"


async def ensure_indexes(db: AsyncIOMotorDatabase) -> None:
    """Create the unique and lookup indexes the data model relies on."""
    users = db[USERS_COLLECTION]
    await users.create_index([("clerk_id", ASCENDING)], unique=True)
    await users.create_index([("email", ASCENDING)], unique=True, sparse=True)

    logs = db[ACTIVITY_LOGS_COLLECTION]
    await logs.create_index([("user_id", ASCENDING)])
    await logs.create_index([("timestamp", ASCENDING)])
    logger.debug("MongoDB indexes ensured")


class MongoService:
    """
    MongoDB service.

    Manages the client lifecycle; repositories call `connect()` on every
    operation and get the cached database handle after the first call.
    """

    def __init__(
        self,
        uri: Optional[str] = None,
        database: Optional[str] = None,
        client_factory: Optional[Callable[..., Any]] = None,
        create_indexes: Optional[bool] = None,
    ):
        """
        Initialize MongoDB service.

        Args:
            uri: Connection URI (defaults to settings.mongo.uri)
            database: Database name (defaults to settings.mongo.database)
            client_factory: Client constructor, `AsyncIOMotorClient` by default
            create_indexes: Create indexes on first connection
        """
        self.uri = uri or settings.mongo.uri
        self.database_name = database or settings.mongo.database
        self.client_factory = client_factory or AsyncIOMotorClient
        self.create_indexes = (
            settings.mongo.create_indexes if create_indexes is None else create_indexes
        )

        self.client: Optional[Any] = None
        self._db: Optional[AsyncIOMotorDatabase] = None
        self._connecting: Optional[asyncio.Task] = None

    @property
    def connected(self) -> bool:
        return self._db is not None

    async def connect(self) -> AsyncIOMotorDatabase:
        """Return the database handle, opening the client on first use."""
        if self._db is not None:
            return self._db

        if self._connecting is None:
            self._connecting = asyncio.ensure_future(self._open())

        try:
            # shield: a cancelled caller must not cancel the shared attempt
            self._db = await asyncio.shield(self._connecting)
        except Exception:
            self._connecting = None
            raise
        return self._db

    async def _open(self) -> AsyncIOMotorDatabase:
        logger.info(f"Connecting to MongoDB database '{self.database_name}'")
        client = self.client_factory(
            self.uri,
            maxPoolSize=settings.mongo.max_pool_size,
            serverSelectionTimeoutMS=settings.mongo.server_selection_timeout_ms,
            socketTimeoutMS=settings.mongo.socket_timeout_ms,
            tz_aware=True,
        )
        db = client[self.database_name]
        try:
            if self.create_indexes:
                await ensure_indexes(db)
        except Exception:
            client.close()
            raise
        self.client = client
        logger.info("MongoDB connection established")
        return db

    async def disconnect(self) -> None:
        """Close the client and forget the cached handle."""
        if self._connecting is not None and not self._connecting.done():
            self._connecting.cancel()
        self._connecting = None
        self._db = None

        if self.client is not None:
            logger.info("Closing MongoDB connection")
            self.client.close()
            self.client = None


_mongo_service: Optional[MongoService] = None


def get_mongo_service() -> MongoService:
    """Process-wide MongoService (created on first call, connected lazily)."""
    global _mongo_service
    if _mongo_service is None:
        _mongo_service = MongoService()
    return _mongo_service


async def close_mongo_service() -> None:
    """Tear down the process-wide MongoService."""
    global _mongo_service
    if _mongo_service is not None:
        await _mongo_service.disconnect()
        _mongo_service = None
