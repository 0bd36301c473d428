"""
User Service - self-service profile management and the admin directory.

Self-service:
- Partial profile updates validated by `UserUpdate` (unknown fields rejected)
- Account deletion: identity provider first, then the local document

Admin directory:
- Lists the identity provider's users (a single page of up to 500)
- Filters, sorts and paginates in memory
- Merges each page entry with its local User document by clerk_id
"""

import math
from datetime import datetime
from typing import Any, Literal, Optional

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from ..models.entities import User, UserPlan, UserRole, normalize_email
from ..utils.date_utils import utc_now
from .identity import IdentityClient, IdentityProviderError, IdentityUser
from .mongo import MongoService
from .users import (
    delete_by_clerk_id,
    find_by_clerk_id,
    find_by_clerk_ids,
    update_by_clerk_id,
    users_repository,
)

DIRECTORY_LIMIT = 500


class UserUpdate(BaseModel):
    """Fields a user may change on their own record."""

    model_config = ConfigDict(extra="forbid", use_enum_values=True)

    email: Optional[str] = None
    name: Optional[str] = Field(default=None, min_length=2, max_length=50)
    role: Optional[UserRole] = None
    plan: Optional[UserPlan] = None
    status: Optional[Literal["active", "banned", "suspended"]] = None

    @field_validator("email")
    @classmethod
    def _normalize_email(cls, value: Optional[str]) -> Optional[str]:
        return normalize_email(value)


def field_errors(error: ValidationError) -> dict[str, list[str]]:
    """Group validation messages by top-level field name."""
    errors: dict[str, list[str]] = {}
    for item in error.errors():
        field = str(item["loc"][0]) if item["loc"] else "body"
        errors.setdefault(field, []).append(item["msg"])
    return errors


class DirectoryQuery(BaseModel):
    """Admin directory listing parameters."""

    page: int = Field(default=1, ge=1)
    limit: int = Field(default=10, ge=1, le=100)
    search: str = ""
    role: str = ""
    plan: str = ""
    status: str = ""
    subscription: str = ""
    sort_by: Literal["name", "role", "status", "subscription", "joinDate"] = "joinDate"
    sort_order: Literal["asc", "desc"] = "desc"


class AdminUserView(BaseModel):
    """Directory entry merged with the local User document (if any)."""

    clerk_id: str
    email: str
    name: str
    avatar: Optional[str] = None
    role: str
    plan: Optional[str] = None
    status: str
    subscription: str
    joined_at: Optional[datetime] = None
    user: Optional[User] = None


class Pagination(BaseModel):
    total: int
    page: int
    limit: int
    pages: int


class DirectoryPage(BaseModel):
    users: list[AdminUserView]
    pagination: Pagination


def _display_name(identity: IdentityUser) -> str:
    return identity.public_metadata.get("name") or identity.first_name or ""


# Sort keys mirror the defaults used when a metadata value is missing
_SORT_KEYS = {
    "name": lambda u: _display_name(u).lower(),
    "role": lambda u: u.private_metadata.get("role") or "user",
    "status": lambda u: u.private_metadata.get("status") or "active",
    "subscription": lambda u: u.private_metadata.get("subscription") or "free",
    "joinDate": lambda u: u.created_at or 0,
}


def _matches(value: Any, wanted: str) -> bool:
    return not wanted or wanted == "all" or value == wanted


def filter_directory(
    identities: list[IdentityUser], query: DirectoryQuery
) -> list[IdentityUser]:
    """Apply search, metadata filters and sorting (no pagination)."""
    needle = query.search.lower()
    result = []
    for identity in identities:
        if needle and not (
            needle in _display_name(identity).lower()
            or needle in identity.email.lower()
        ):
            continue
        private = identity.private_metadata
        if not (
            _matches(private.get("role"), query.role)
            and _matches(private.get("plan"), query.plan)
            and _matches(private.get("status"), query.status)
            and _matches(private.get("subscription"), query.subscription)
        ):
            continue
        result.append(identity)

    result.sort(key=_SORT_KEYS[query.sort_by], reverse=query.sort_order == "desc")
    return result


class UserService:
    """
    Service for self-service account operations and admin listings.

    Args:
        db: MongoService for the users collection
        identity_client: Backend API client; required for deletion and the
            directory listing
    """

    def __init__(
        self,
        db: Optional[MongoService] = None,
        identity_client: Optional[IdentityClient] = None,
    ):
        self.users = users_repository(db)
        self.identity_client = identity_client

    def _require_client(self) -> IdentityClient:
        if self.identity_client is None:
            raise IdentityProviderError("Identity API is not configured")
        return self.identity_client

    async def get_by_clerk_id(self, clerk_id: str) -> Optional[User]:
        return await find_by_clerk_id(self.users, clerk_id)

    async def update_profile(self, clerk_id: str, update: UserUpdate) -> Optional[User]:
        """
        Apply a partial update to the caller's record.

        Returns:
            Updated user, or None if there is no local record

        Raises:
            pymongo.errors.DuplicateKeyError: the new email belongs to another user
        """
        data = update.model_dump(exclude_unset=True)
        if not data:
            return await find_by_clerk_id(self.users, clerk_id)

        data["updated_at"] = utc_now()
        user = await update_by_clerk_id(self.users, clerk_id, data)
        if user is not None:
            logger.info(f"User {clerk_id} updated fields: {sorted(data)}")
        return user

    async def delete_account(self, clerk_id: str) -> Optional[User]:
        """
        Delete the account at the identity provider, then locally (hard delete).

        An identity already gone at the provider (404) does not stop the
        local deletion.
        """
        client = self._require_client()
        try:
            await client.delete_user(clerk_id)
        except IdentityProviderError as e:
            if e.status_code != 404:
                raise
            logger.info(f"Identity {clerk_id} already deleted at provider")

        user = await delete_by_clerk_id(self.users, clerk_id)
        if user is None:
            logger.info(f"No local user found for identity {clerk_id}")
        else:
            logger.info(f"User account deleted: {user.email}")
        return user

    async def list_directory(self, query: DirectoryQuery) -> DirectoryPage:
        client = self._require_client()
        identities = await client.list_users(limit=DIRECTORY_LIMIT)

        matched = filter_directory(identities, query)
        total = len(matched)
        start = (query.page - 1) * query.limit
        page_items = matched[start : start + query.limit]

        local_users = await find_by_clerk_ids(self.users, [u.id for u in page_items])
        by_clerk_id = {user.clerk_id: user for user in local_users}

        views = []
        for identity in page_items:
            local = by_clerk_id.get(identity.id)
            private = identity.private_metadata
            views.append(
                AdminUserView(
                    clerk_id=identity.id,
                    email=(local.email if local and local.email else identity.email),
                    name=_display_name(identity) or identity.full_name,
                    avatar=identity.image_url,
                    role=private.get("role") or (local.role if local else "user"),
                    plan=private.get("plan") or (local.plan if local else None),
                    status=private.get("status") or (local.status if local else "active"),
                    subscription=private.get("subscription") or "free",
                    joined_at=identity.joined_at,
                    user=local,
                )
            )

        return DirectoryPage(
            users=views,
            pagination=Pagination(
                total=total,
                page=query.page,
                limit=query.limit,
                pages=math.ceil(total / query.limit),
            ),
        )
