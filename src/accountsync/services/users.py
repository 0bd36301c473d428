"""
User queries.

Document-specific lookups expressed as free functions over a
`Repository[User]` rather than a User repository subclass.
"""

from typing import Any, Optional

from ..models.entities import User
from .mongo import USERS_COLLECTION, MongoService, Repository


def users_repository(db: Optional[MongoService] = None) -> Repository[User]:
    return Repository(User, collection_name=USERS_COLLECTION, db=db)


async def find_by_clerk_id(repo: Repository[User], clerk_id: str) -> Optional[User]:
    return await repo.find_one({"clerk_id": clerk_id})


async def find_by_email(repo: Repository[User], email: str) -> Optional[User]:
    """Lookup by email; the stored form is trimmed and lower-cased."""
    return await repo.find_one({"email": email.strip().lower()})


async def find_by_clerk_ids(
    repo: Repository[User], clerk_ids: list[str]
) -> list[User]:
    if not clerk_ids:
        return []
    return await repo.find({"clerk_id": {"$in": clerk_ids}})


async def update_by_clerk_id(
    repo: Repository[User], clerk_id: str, data: dict[str, Any]
) -> Optional[User]:
    return await repo.update_one({"clerk_id": clerk_id}, data)


async def delete_by_clerk_id(repo: Repository[User], clerk_id: str) -> Optional[User]:
    """Hard delete. Only the self-service account deletion uses this."""
    return await repo.delete_one({"clerk_id": clerk_id})
