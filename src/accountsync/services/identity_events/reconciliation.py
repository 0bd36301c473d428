"""
User reconciliation.

Applies identity provider user lifecycle events to the local `users`
collection:

    user.created  -> reactivate | no-op | re-link by email | create
    user.updated  -> field-level merge (or creation if the user is unknown)
    user.deleted  -> soft delete (status = inactive)

Every branch is a read followed by a single-document write. Concurrent
deliveries for the same identity are not serialized; the unique indexes on
`clerk_id` and `email` are the backstop, and a unique violation while
creating is treated as a duplicate delivery.
"""

from typing import Any, Optional

from loguru import logger
from pydantic import ValidationError
from pymongo.errors import DuplicateKeyError

from ...models.entities import User, UserPlan, UserRole, UserStatus
from ...models.events import DeletedUserData, IdentityUserData, InvalidEventPayload
from ...utils.date_utils import from_epoch_ms, utc_now
from ..activity_log import ActivityLogSink
from ..identity import IdentityClient
from ..mongo import MongoService
from ..users import (
    find_by_clerk_id,
    find_by_email,
    update_by_clerk_id,
    users_repository,
)

SOURCE = "clerk_webhook"

# Projection of local authorization state mirrored to the provider
DEFAULT_PRIVATE_METADATA = {"role": UserRole.USER.value, "plan": UserPlan.FREE.value}


class UserReconciler:
    """
    Keeps User documents consistent with identity provider events.

    Args:
        db: MongoService used for the users collection
        sink: Activity log sink for audit entries
        identity_client: Backend API client for the metadata sync; the sync
            is skipped when None
    """

    def __init__(
        self,
        db: Optional[MongoService],
        sink: ActivityLogSink,
        identity_client: Optional[IdentityClient] = None,
    ):
        self.users = users_repository(db)
        self.sink = sink
        self.identity_client = identity_client

    def _log(self, user: User, action: str, **extra: Any) -> None:
        metadata = {"clerk_id": user.clerk_id, "email": user.email, "source": SOURCE}
        metadata.update(extra)
        self.sink.record(user.id, action, metadata)

    async def handle_created(self, data: IdentityUserData) -> Optional[User]:
        """
        Apply a creation event.

        Raises:
            InvalidEventPayload: no matching primary email, or an invalid profile
        """
        clerk_id = data.id
        email = data.primary_email()

        existing = await find_by_clerk_id(self.users, clerk_id)
        if existing is not None:
            if existing.status == UserStatus.INACTIVE.value:
                logger.info(f"Reactivating user {clerk_id}")
                user = await update_by_clerk_id(
                    self.users,
                    clerk_id,
                    {"status": UserStatus.ACTIVE, "updated_at": utc_now()},
                )
                if user is not None:
                    self._log(user, "user.reactivated")
                return user
            logger.info(f"User {clerk_id} already active")
            return existing

        # An identity deleted and recreated at the provider gets a new id
        by_email = await find_by_email(self.users, email)
        if by_email is not None:
            logger.info(
                f"User with email {email} exists under identity {by_email.clerk_id}; "
                f"re-linking to {clerk_id}"
            )
            try:
                user = await self.users.update(
                    by_email.id,
                    {
                        "clerk_id": clerk_id,
                        "status": UserStatus.ACTIVE,
                        "updated_at": utc_now(),
                    },
                )
            except DuplicateKeyError as e:
                # A concurrent delivery already stored this identity
                logger.warning(
                    f"Duplicate re-link of identity {clerk_id} ({email}) ignored: {e}"
                )
                return None
            if user is not None:
                self._log(user, "user.relinked")
            return user

        try:
            user = User(
                clerk_id=clerk_id,
                email=email,
                first_name=data.first_name or "",
                last_name=data.last_name or "",
                username=data.username or None,
                avatar=data.image_url or None,
                role=UserRole.USER,
                plan=UserPlan.FREE,
                status=UserStatus.ACTIVE,
            )
        except ValidationError as e:
            raise InvalidEventPayload(f"Invalid profile for identity {clerk_id}: {e}") from e

        try:
            await self.users.create(user)
        except DuplicateKeyError as e:
            logger.warning(
                f"Duplicate user for identity {clerk_id} ({email}) ignored: {e}"
            )
            return None

        logger.info(f"User created: {user.email}")
        self._log(user, "user.created")
        await self._sync_private_metadata(clerk_id)
        return user

    async def _sync_private_metadata(self, clerk_id: str) -> None:
        """Best effort; failures are logged and never raised."""
        if self.identity_client is None:
            logger.debug("Identity API not configured, skipping metadata sync")
            return

        try:
            identity = await self.identity_client.get_user(clerk_id)
            if identity.private_metadata == DEFAULT_PRIVATE_METADATA:
                logger.debug(f"Private metadata for {clerk_id} already in sync")
                return
            await self.identity_client.update_private_metadata(
                clerk_id, dict(DEFAULT_PRIVATE_METADATA)
            )
            logger.info(f"Private metadata synced for {clerk_id}")
        except Exception as e:
            logger.error(f"Failed to sync private metadata for {clerk_id}: {e}")

    async def handle_updated(self, data: IdentityUserData) -> Optional[User]:
        """
        Apply an update event.

        Unknown identities are created, which covers updates delivered before
        (or instead of) their creation event. Known users get a field-level
        merge: empty event values keep the stored value.

        Raises:
            InvalidEventPayload: the merged profile is not a valid User
        """
        clerk_id = data.id
        existing = await find_by_clerk_id(self.users, clerk_id)
        if existing is None:
            logger.info(f"User with identity {clerk_id} not found, creating")
            return await self.handle_created(data)

        email = data.find_primary_email()
        values = {
            "email": email.strip().lower() if email else existing.email,
            "first_name": data.first_name or existing.first_name,
            "last_name": data.last_name or existing.last_name,
            "username": data.username or existing.username,
            "avatar": data.image_url or existing.avatar,
        }
        # Stored documents are validated on every read, so reject what would not load
        try:
            merged = User.model_validate({**existing.model_dump(), **values})
        except ValidationError as e:
            raise InvalidEventPayload(f"Invalid profile for identity {clerk_id}: {e}") from e
        values = {field: getattr(merged, field) for field in values}

        changes = {
            field: value != getattr(existing, field) for field, value in values.items()
        }
        values["updated_at"] = from_epoch_ms(data.updated_at) or utc_now()

        try:
            user = await update_by_clerk_id(self.users, clerk_id, values)
        except DuplicateKeyError as e:
            logger.warning(f"Update for identity {clerk_id} conflicts with another user: {e}")
            return None
        if user is None:
            # Deleted between the lookup and the write
            logger.info(f"User with identity {clerk_id} disappeared during update")
            return None

        logger.info(f"User updated: {user.email}")
        self._log(user, "user.updated", changes=changes)
        return user

    async def handle_deleted(self, data: DeletedUserData) -> Optional[User]:
        """Soft delete; the document is kept so the identity can come back."""
        clerk_id = data.id
        existing = await find_by_clerk_id(self.users, clerk_id)
        if existing is None:
            logger.info(f"User with identity {clerk_id} not found")
            return None
        if existing.status == UserStatus.INACTIVE.value:
            logger.info(f"User {clerk_id} already inactive")
            return existing

        user = await update_by_clerk_id(
            self.users,
            clerk_id,
            {"status": UserStatus.INACTIVE, "updated_at": utc_now()},
        )
        if user is not None:
            logger.info(f"User soft deleted: {user.email}")
            self._log(user, "user.deleted")
        return user
