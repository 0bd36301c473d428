"""
ActivityLogEntry - append-only audit record.

Written by the activity log sink for every reconciliation and session
notification outcome. Entries hold a non-owning reference to a User and are
never updated or deleted by this service.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from ...utils.date_utils import utc_now
from ..core import CoreModel


class ActivityDetails(BaseModel):
    description: str
    metadata: dict[str, Any] = Field(default_factory=dict)
    # Synthetic markers for events that did not originate from an HTTP client
    ip_address: str | None = None
    user_agent: str | None = None


class ActivityLogEntry(CoreModel):
    """Audit trail entry."""

    user_id: str = Field(..., description="Owning User document id")
    action: str = Field(..., description="Action tag, e.g. user.created")
    category: str = Field(default="auth")
    severity: str = Field(default="medium")
    resource: str = Field(default="user")
    details: ActivityDetails
    timestamp: datetime = Field(default_factory=utc_now)
