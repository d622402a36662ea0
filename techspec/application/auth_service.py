"""Auth service.

Thin layer over the backend's session auth. Local checks (required
fields, password length, confirmation) run before any remote call;
remote errors reach the caller with their message unchanged.
"""

from dataclasses import dataclass

import structlog

from techspec.domain.entities import AuthSession, AuthUser
from techspec.domain.exceptions import ValidationFailedError
from techspec.infrastructure.backend_client import BackendClient

logger = structlog.get_logger()

MIN_PASSWORD_LENGTH = 6
RESET_PASSWORD_PATH = "/reset-password"
OTP_TYPES = ("signup", "recovery", "magiclink", "invite", "email_change", "email")


def validate_new_password(password: str, confirm_password: str | None = None) -> None:
    """Check a new password before sending it.

    Raises:
        ValidationFailedError: If it is too short or does not match the
            confirmation.
    """
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationFailedError(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters", field="password"
        )
    if confirm_password is not None and password != confirm_password:
        raise ValidationFailedError("Passwords do not match", field="confirm_password")


def _require(value: str | None, field: str, label: str) -> str:
    if value is None or not value.strip():
        raise ValidationFailedError(f"{label} is required", field=field)
    return value.strip()


@dataclass
class SignUpResult:
    """Result of a sign up.

    ``session`` is None when the account must confirm its email first.
    """

    user: AuthUser | None
    session: AuthSession | None = None

    @property
    def confirmation_required(self) -> bool:
        return self.session is None


class AuthService:
    """Service for sign up, sign in and password management."""

    def __init__(self, client: BackendClient) -> None:
        self.client = client

    async def sign_up(self, email: str, password: str, full_name: str) -> SignUpResult:
        """Create an account.

        Args:
            email: Account email.
            password: Password (at least 6 characters).
            full_name: Display name stored in the user metadata.

        Returns:
            The created user and, when no confirmation is needed, a session.

        Raises:
            ValidationFailedError: If a field is missing or invalid.
            BackendCallError: With the backend's message if it refuses.
        """
        email = _require(email, "email", "Email")
        full_name = _require(full_name, "full_name", "Full name")
        validate_new_password(password)

        data = (
            await self.client.auth.sign_up(email, password, {"full_name": full_name})
        ).unwrap() or {}

        if data.get("access_token"):
            session = AuthSession.from_payload(data)
            logger.info("User signed up", user_id=session.user.id if session.user else None)
            return SignUpResult(user=session.user, session=session)

        user_data = data.get("user") if isinstance(data.get("user"), dict) else data
        user = AuthUser.from_payload(user_data) if user_data.get("id") else None
        logger.info("User signed up, confirmation pending", user_id=user.id if user else None)
        return SignUpResult(user=user)

    async def sign_in(self, email: str, password: str) -> AuthSession:
        """Sign in with email and password."""
        email = _require(email, "email", "Email")
        if not password:
            raise ValidationFailedError("Password is required", field="password")
        session = AuthSession.from_payload(
            (await self.client.auth.sign_in_with_password(email, password)).unwrap()
        )
        logger.info("User signed in", user_id=session.user.id if session.user else None)
        return session

    async def sign_out(self, access_token: str) -> None:
        (await self.client.auth.sign_out(access_token)).unwrap()

    async def get_user(self, access_token: str) -> AuthUser | None:
        """Resolve an access token to its user.

        Returns:
            The user, or None if the token is invalid or expired.

        Raises:
            BackendCallError: If the auth service fails for another reason.
        """
        response = await self.client.auth.get_user(access_token)
        if not response.success and response.error and response.error.status_code in (401, 403):
            return None
        data = response.unwrap()
        if not data or not data.get("id"):
            return None
        return AuthUser.from_payload(data, access_token=access_token)

    async def request_password_reset(self, email: str, site_url: str) -> None:
        """Send a recovery email linking to ``{site_url}/reset-password``."""
        email = _require(email, "email", "Email")
        redirect_to = f"{site_url.rstrip('/')}{RESET_PASSWORD_PATH}"
        (await self.client.auth.reset_password_for_email(email, redirect_to)).unwrap()
        logger.info("Password reset requested", redirect_to=redirect_to)

    async def update_password(
        self, access_token: str, password: str, confirm_password: str
    ) -> AuthUser:
        """Set a new password for the signed-in (or recovering) user."""
        validate_new_password(password, confirm_password)
        data = (
            await self.client.auth.update_user(access_token, {"password": password})
        ).unwrap()
        user = AuthUser.from_payload(data, access_token=access_token)
        logger.info("Password updated", user_id=user.id)
        return user

    async def verify_otp(
        self,
        otp_type: str,
        email: str | None = None,
        token: str | None = None,
        token_hash: str | None = None,
    ) -> AuthSession:
        """Exchange an emailed token (or token hash) for a session."""
        if otp_type not in OTP_TYPES:
            raise ValidationFailedError(f"Unknown verification type: {otp_type}", field="type")
        if not token_hash and not (email and token):
            raise ValidationFailedError(
                "Either token_hash or email and token are required", field="token"
            )
        data = (
            await self.client.auth.verify_otp(otp_type, email, token, token_hash)
        ).unwrap()
        return AuthSession.from_payload(data)
