"""Shop service.

Shop registration by signed-in users and admin moderation of shops.
"""

from dataclasses import dataclass

import structlog

from techspec.application.profile_service import ProfileService
from techspec.domain.entities import AuthUser, Shop, slugify
from techspec.domain.exceptions import (
    BackendCallError,
    ConflictError,
    NotAuthenticatedError,
    NotFoundError,
    ValidationFailedError,
)
from techspec.domain.state_machines import ShopStatus, UserRole, validate_shop_transition
from techspec.infrastructure.backend_client import BackendClient

logger = structlog.get_logger()


# ============================================================================
# Data Transfer Objects
# ============================================================================


@dataclass
class ShopRegistration:
    """Shop registration form."""

    name: str
    description: str | None = None
    address: str | None = None
    phone: str | None = None
    email: str | None = None
    website: str | None = None


@dataclass
class RegistrationResult:
    """Result of registering a shop.

    ``role_updated`` is False when the shop row exists but the owner's
    role could not be raised to shop_owner.
    """

    shop: Shop
    role_updated: bool


# ============================================================================
# Shop Service
# ============================================================================


class ShopService:
    """Service for shops."""

    def __init__(self, client: BackendClient, profiles: ProfileService | None = None) -> None:
        """Initialize service.

        Args:
            client: Backend service client.
            profiles: Profile service used for the role update.
        """
        self.client = client
        self.profiles = profiles or ProfileService(client)

    async def register_shop(
        self, user: AuthUser | None, registration: ShopRegistration
    ) -> RegistrationResult:
        """Register a shop owned by the signed-in user.

        The shop is created pending approval. The owner's role is then
        raised to shop_owner unless they already have it or are an
        admin. The two writes are independent: if the role update fails
        the shop is kept and the failure is reported in the result.

        Raises:
            NotAuthenticatedError: If nobody is signed in.
            ValidationFailedError: If the shop name is empty.
            BackendCallError: If the shop insert fails.
        """
        if user is None:
            raise NotAuthenticatedError("register a shop")
        name = registration.name.strip()
        if not name:
            raise ValidationFailedError("Shop name is required", field="name")

        response = await self.client.table("shops", access_token=user.access_token).insert(
            {
                "owner_id": user.id,
                "name": name,
                "slug": slugify(name),
                "description": registration.description,
                "address": registration.address,
                "phone": registration.phone,
                "email": registration.email,
                "website": registration.website,
                "status": ShopStatus.PENDING.value,
            }
        )
        shop = Shop.from_row(response.first())
        logger.info("Shop registered", shop_id=shop.id, owner_id=user.id)

        role_updated = await self._elevate_owner(user)
        return RegistrationResult(shop=shop, role_updated=role_updated)

    async def _elevate_owner(self, user: AuthUser) -> bool:
        try:
            profile = await self.profiles.get_profile(user)
            if profile.role in (UserRole.ADMIN, UserRole.SHOP_OWNER):
                return True
            await self.profiles.set_role(user, UserRole.SHOP_OWNER)
        except (BackendCallError, NotFoundError) as e:
            logger.error("Failed to update owner role", user_id=user.id, error=e.message)
            return False
        return True

    async def list_all(self) -> list[Shop]:
        """Every shop, newest first."""
        rows = (
            await self.client.table("shops")
            .select("*")
            .order("created_at", desc=True)
            .execute()
        ).unwrap()
        return [Shop.from_row(row) for row in rows or []]

    async def moderate(self, shop_id: str, status: ShopStatus) -> Shop:
        """Move a pending shop to its next status.

        Raises:
            NotFoundError: If the shop does not exist.
            InvalidStateTransitionError: If the transition is not allowed.
            ConflictError: If the shop changed status meanwhile.
        """
        row = (
            await self.client.table("shops").select("id,status").eq("id", shop_id).maybe_single()
        ).unwrap()
        if row is None:
            raise NotFoundError("Shop", shop_id)

        current = ShopStatus(row["status"])
        validate_shop_transition(shop_id, current, status)

        rows = (
            await self.client.table("shops")
            .select("*")
            .eq("id", shop_id)
            .eq("status", current.value)
            .update({"status": status.value})
        ).unwrap()
        if not rows:
            raise ConflictError(
                f"Shop {shop_id} is no longer {current.value}",
                details={"shop_id": shop_id},
            )

        logger.info(
            "Shop moderated",
            shop_id=shop_id,
            from_status=current.value,
            to_status=status.value,
        )
        return Shop.from_row(rows[0])
