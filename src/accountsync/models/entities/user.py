"""
User - one account, one-to-one with an external identity.

Users are created and kept current by identity provider webhooks
(see services.identity_events). The `clerk_id` and `email` fields are
each unique across the collection; a deleted identity is soft-deleted
(`status = inactive`) so that a later recreation can reactivate or
re-link the same document.
"""

import re
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from ..core import CoreModel

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


class UserRole(str, Enum):
    ADMIN = "admin"
    USER = "user"


class UserPlan(str, Enum):
    FREE = "free"
    PREMIUM = "premium"


class UserStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    BANNED = "banned"
    SUSPENDED = "suspended"


class NotificationPreferences(BaseModel):
    email: bool = True
    push: bool = True
    marketing: bool = False


class UserPreferences(BaseModel):
    theme: str = "light"
    language: str = "en"
    notifications: NotificationPreferences = Field(
        default_factory=NotificationPreferences
    )


class UserStats(BaseModel):
    total_portfolios: int = 0
    total_views: int = 0
    total_projects: int = 0


def normalize_email(value: Optional[str]) -> Optional[str]:
    """Trim and lower-case an email address, rejecting malformed values."""
    if value is None:
        return None
    value = value.strip().lower()
    if not EMAIL_PATTERN.match(value):
        raise ValueError(f"{value} is not a valid email!")
    return value


class User(CoreModel):
    """
    User document.

    Mirrors the identity provider's profile fields (email, names, username,
    avatar) and adds locally owned state: role, plan, status, preferences
    and usage counters.
    """

    clerk_id: str = Field(
        ...,
        description="Identity provider user id (unique)",
    )
    email: Optional[str] = Field(
        default=None,
        description="Primary email address (unique, lower-cased)",
    )
    name: Optional[str] = Field(
        default=None,
        min_length=2,
        max_length=50,
        description="Display name",
    )
    first_name: str = Field(default="", description="Given name")
    last_name: str = Field(default="", description="Family name")
    username: Optional[str] = Field(default=None, description="Username")
    avatar: Optional[str] = Field(default=None, description="Avatar image URL")
    role: UserRole = Field(default=UserRole.USER, description="Authorization role")
    plan: UserPlan = Field(default=UserPlan.FREE, description="Subscription plan")
    status: UserStatus = Field(
        default=UserStatus.ACTIVE, description="Account status"
    )
    preferences: UserPreferences = Field(default_factory=UserPreferences)
    stats: UserStats = Field(default_factory=UserStats)

    @field_validator("email")
    @classmethod
    def _normalize_email(cls, value: Optional[str]) -> Optional[str]:
        return normalize_email(value)

    @field_validator("name")
    @classmethod
    def _strip_name(cls, value: Optional[str]) -> Optional[str]:
        return value.strip() if value is not None else None
