"""MongoDB persistence: connection service and generic repository."""

from .repository import Page, Repository
from .service import (
    ACTIVITY_LOGS_COLLECTION,
    USERS_COLLECTION,
    MongoService,
    close_mongo_service,
    ensure_indexes,
    get_mongo_service,
)

__all__ = [
    "ACTIVITY_LOGS_COLLECTION",
    "USERS_COLLECTION",
    "MongoService",
    "Page",
    "Repository",
    "close_mongo_service",
    "ensure_indexes",
    "get_mongo_service",
]
