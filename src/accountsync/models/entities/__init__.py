"""
Stored document models.

- User: one account per external identity
- ActivityLogEntry: append-only audit trail
"""

from .activity_log import ActivityDetails, ActivityLogEntry
from .user import (
    NotificationPreferences,
    User,
    UserPlan,
    UserPreferences,
    UserRole,
    UserStats,
    UserStatus,
    normalize_email,
)

__all__ = [
    "ActivityDetails",
    "ActivityLogEntry",
    "NotificationPreferences",
    "User",
    "UserPlan",
    "UserPreferences",
    "UserRole",
    "UserStats",
    "UserStatus",
    "normalize_email",
]
