"""Profile service.

Profiles mirror the auth users one-to-one and carry the role used for
authorization (user, shop_owner, admin).
"""

from typing import Any
from uuid import uuid4

import structlog

from techspec.domain.entities import AuthUser, Profile
from techspec.domain.exceptions import NotAuthenticatedError, NotFoundError, ValidationFailedError
from techspec.domain.state_machines import UserRole
from techspec.infrastructure.backend_client import BackendClient

logger = structlog.get_logger()

AVATAR_BUCKET = "avatars"
MAX_AVATAR_BYTES = 2 * 1024 * 1024
AVATAR_EXTENSIONS = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
    "image/gif": "gif",
}
EDITABLE_FIELDS = ("full_name", "bio", "avatar_url")


class ProfileService:
    """Service for the signed-in user's profile."""

    def __init__(self, client: BackendClient) -> None:
        self.client = client

    def _table(self, user: AuthUser):
        return self.client.table("profiles", access_token=user.access_token)

    async def get_profile(self, user: AuthUser | None) -> Profile:
        """Get the profile of the signed-in user.

        Raises:
            NotAuthenticatedError: If nobody is signed in.
            NotFoundError: If the profile row is missing.
        """
        if user is None:
            raise NotAuthenticatedError("view your profile")
        row = (
            await self._table(user).select("*").eq("id", user.id).maybe_single()
        ).unwrap()
        if row is None:
            raise NotFoundError("Profile", user.id)
        return Profile.from_row(row)

    async def update_profile(self, user: AuthUser | None, changes: dict[str, Any]) -> Profile:
        """Update the editable profile fields.

        Args:
            user: Signed-in user.
            changes: New values; only full_name, bio and avatar_url are applied.

        Returns:
            The updated profile.
        """
        if user is None:
            raise NotAuthenticatedError("update your profile")
        payload = {k: v for k, v in changes.items() if k in EDITABLE_FIELDS}
        if not payload:
            return await self.get_profile(user)
        return await self._update(user, payload)

    async def set_role(self, user: AuthUser, role: UserRole) -> Profile:
        """Change the user's role."""
        profile = await self._update(user, {"role": role.value})
        logger.info("Profile role updated", user_id=user.id, role=role.value)
        return profile

    async def upload_avatar(
        self,
        user: AuthUser | None,
        content: bytes,
        content_type: str,
    ) -> Profile:
        """Store a new avatar image and point the profile at it.

        The previous avatar object is removed afterwards; failing to
        remove it is logged only.

        Args:
            user: Signed-in user.
            content: Image bytes.
            content_type: Image MIME type.

        Returns:
            The updated profile.

        Raises:
            NotAuthenticatedError: If nobody is signed in.
            ValidationFailedError: If the image is empty, too large or not
                a supported type.
            BackendCallError: If the upload or the profile update fails.
        """
        if user is None:
            raise NotAuthenticatedError("upload an avatar")
        extension = AVATAR_EXTENSIONS.get(content_type.split(";")[0].strip().lower())
        if extension is None:
            raise ValidationFailedError(
                f"Unsupported image type: {content_type}", field="content_type"
            )
        if not content:
            raise ValidationFailedError("Image is empty", field="content")
        if len(content) > MAX_AVATAR_BYTES:
            raise ValidationFailedError("Image is larger than 2 MB", field="content")

        previous = await self.get_profile(user)

        path = f"{user.id}/{uuid4()}.{extension}"
        (
            await self.client.storage.upload(
                AVATAR_BUCKET,
                path,
                content,
                content_type=content_type,
                access_token=user.access_token,
            )
        ).unwrap()

        profile = await self._update(
            user, {"avatar_url": self.client.storage.public_url(AVATAR_BUCKET, path)}
        )

        old_path = self._object_path(previous.avatar_url)
        if old_path and old_path != path:
            response = await self.client.storage.remove(
                AVATAR_BUCKET, [old_path], access_token=user.access_token
            )
            if not response.success:
                logger.warning(
                    "Failed to remove previous avatar",
                    user_id=user.id,
                    path=old_path,
                    error=response.error.message if response.error else None,
                )

        logger.info("Avatar updated", user_id=user.id, path=path)
        return profile

    def _object_path(self, url: str | None) -> str | None:
        """Object path of a URL pointing into the avatar bucket."""
        if not url:
            return None
        prefix = self.client.storage.public_url(AVATAR_BUCKET, "")
        if not url.startswith(prefix):
            return None
        return url[len(prefix):] or None

    async def _update(self, user: AuthUser, payload: dict[str, Any]) -> Profile:
        rows = (
            await self._table(user).select("*").eq("id", user.id).update(payload)
        ).unwrap()
        if not rows:
            raise NotFoundError("Profile", user.id)
        return Profile.from_row(rows[0])
