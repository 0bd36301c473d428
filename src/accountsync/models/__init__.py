"""
accountsync models

- core: CoreModel base for stored documents
- entities: User, ActivityLogEntry
- events: identity provider webhook events
"""

from .core import CoreModel
from .entities import ActivityLogEntry, User, UserPlan, UserRole, UserStatus

__all__ = [
    "CoreModel",
    "User",
    "UserRole",
    "UserPlan",
    "UserStatus",
    "ActivityLogEntry",
]
