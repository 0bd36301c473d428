"""
CoreModel - Base model for all stored documents.

All documents (Users, ActivityLogEntries) inherit from CoreModel,
which provides:
- Identity (id - string uuid, stored as the document `_id`)
- Temporal tracking (created_at, updated_at)

Enum fields are stored by value so documents round-trip through the
document store without custom codecs.
"""

from datetime import datetime
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field

from ...utils.date_utils import utc_now


class CoreModel(BaseModel):
    """
    Base model for all stored documents.

    `id` is exposed as `id` in Python and serialized as `_id` when written
    to the store (`model_dump(by_alias=True)`).
    """

    model_config = ConfigDict(
        populate_by_name=True, use_enum_values=True, validate_default=True
    )

    id: str = Field(
        default_factory=lambda: str(uuid4()),
        alias="_id",
        description="Document identifier (generated if not provided)",
    )
    created_at: datetime = Field(
        default_factory=utc_now, description="Document creation timestamp"
    )
    updated_at: datetime = Field(
        default_factory=utc_now, description="Last update timestamp"
    )

    def to_document(self) -> dict:
        """Serialize for storage (`_id` key, enums by value)."""
        return self.model_dump(by_alias=True)
