"""
Identity provider webhook events.

Every delivery is an envelope `{"type": ..., "data": {...}}`. The five event
kinds this service reacts to are modelled as a discriminated union on `type`,
each with a typed payload validated at the boundary. Any other type decodes
to `UnhandledEvent` so the caller can acknowledge it without processing.

Payload shapes (subset consumed):
    user.created / user.updated:
        {id, email_addresses: [{id, email_address}], first_name, last_name,
         username, image_url, primary_email_address_id, updated_at?}
    user.deleted:
        {id}
    session.created:
        {id, user_id, ...rest}
    session.removed:
        {id, user_id}
"""

import json
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError


class InvalidEventPayload(ValueError):
    """The event body or payload is malformed (a client error, not retryable)."""


class EmailAddress(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    email_address: str


class IdentityUserData(BaseModel):
    """Profile payload of user.created / user.updated."""

    model_config = ConfigDict(extra="ignore")

    id: str
    email_addresses: list[EmailAddress] = Field(default_factory=list)
    primary_email_address_id: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    username: Optional[str] = None
    image_url: Optional[str] = None
    updated_at: Optional[int] = Field(
        default=None, description="Epoch milliseconds"
    )

    def find_primary_email(self) -> Optional[str]:
        for address in self.email_addresses:
            if address.id == self.primary_email_address_id:
                return address.email_address
        return None

    def primary_email(self) -> str:
        """
        Resolve the designated primary email address.

        Raises:
            InvalidEventPayload: if no address matches primary_email_address_id
        """
        email = self.find_primary_email()
        if email is None:
            raise InvalidEventPayload(
                f"No primary email found for identity {self.id}"
            )
        return email


class DeletedUserData(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    deleted: Optional[bool] = None


class SessionData(BaseModel):
    """Session payload; unknown fields are kept as opaque metadata."""

    model_config = ConfigDict(extra="allow")

    id: str
    user_id: str

    def rest(self) -> dict[str, Any]:
        """Everything except the session and user ids."""
        return self.model_dump(exclude={"id", "user_id"})


class UserCreatedEvent(BaseModel):
    type: Literal["user.created"]
    data: IdentityUserData


class UserUpdatedEvent(BaseModel):
    type: Literal["user.updated"]
    data: IdentityUserData


class UserDeletedEvent(BaseModel):
    type: Literal["user.deleted"]
    data: DeletedUserData


class SessionCreatedEvent(BaseModel):
    type: Literal["session.created"]
    data: SessionData


class SessionRemovedEvent(BaseModel):
    type: Literal["session.removed"]
    data: SessionData


IdentityEvent = Annotated[
    Union[
        UserCreatedEvent,
        UserUpdatedEvent,
        UserDeletedEvent,
        SessionCreatedEvent,
        SessionRemovedEvent,
    ],
    Field(discriminator="type"),
]

HANDLED_EVENT_TYPES = frozenset(
    {
        "user.created",
        "user.updated",
        "user.deleted",
        "session.created",
        "session.removed",
    }
)


class UnhandledEvent(BaseModel):
    """An event type this service intentionally ignores."""

    type: str
    data: Any = None


_event_adapter: TypeAdapter = TypeAdapter(IdentityEvent)


def parse_event(body: bytes | str) -> Union[IdentityEvent, UnhandledEvent]:
    """
    Decode a verified webhook body into a typed event.

    Raises:
        InvalidEventPayload: body is not a JSON envelope, or a handled event
            type carries a payload that does not match its shape
    """
    try:
        raw = json.loads(body)
    except (ValueError, UnicodeDecodeError) as e:
        raise InvalidEventPayload(f"Body is not valid JSON: {e}") from e

    if not isinstance(raw, dict) or not isinstance(raw.get("type"), str):
        raise InvalidEventPayload("Event envelope must be an object with a string 'type'")

    if raw["type"] not in HANDLED_EVENT_TYPES:
        try:
            return UnhandledEvent.model_validate(raw)
        except ValidationError as e:
            raise InvalidEventPayload(str(e)) from e

    try:
        return _event_adapter.validate_python(raw)
    except ValidationError as e:
        raise InvalidEventPayload(f"Invalid {raw['type']} payload: {e}") from e
