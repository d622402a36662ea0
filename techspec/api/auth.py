"""Auth API endpoints.

Sign up, sign in and password management on top of the backend's
session auth. Backend error messages are returned unchanged.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Request, status

from techspec.api.dependencies import get_auth_service, require_access_token
from techspec.api.schemas import (
    ErrorResponse,
    MessageResponse,
    PasswordResetRequest,
    PasswordUpdateRequest,
    SessionResponse,
    SignInRequest,
    SignUpRequest,
    SignUpResponse,
    UserResponse,
    VerifyOtpRequest,
)
from techspec.application.auth_service import AuthService
from techspec.domain.entities import AuthSession, AuthUser
from techspec.infrastructure.config import settings

router = APIRouter(prefix="/auth", tags=["Auth"])

Service = Annotated[AuthService, Depends(get_auth_service)]
AccessToken = Annotated[str, Depends(require_access_token)]


def user_to_response(user: AuthUser) -> UserResponse:
    return UserResponse(
        id=user.id,
        email=user.email,
        full_name=user.metadata.get("full_name"),
    )


def session_to_response(session: AuthSession) -> SessionResponse:
    return SessionResponse(
        access_token=session.access_token,
        refresh_token=session.refresh_token,
        expires_in=session.expires_in,
        user=user_to_response(session.user) if session.user else None,
    )


def _site_url(request: Request) -> str:
    """Configured public site URL, or the origin the request came from."""
    if settings.site_url:
        return settings.site_url
    origin = request.headers.get("origin")
    if origin:
        return origin
    return str(request.base_url).rstrip("/")


@router.post(
    "/signup",
    response_model=SignUpResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}},
    summary="Sign up",
)
async def sign_up(request: SignUpRequest, service: Service) -> SignUpResponse:
    result = await service.sign_up(request.email, request.password, request.full_name)
    return SignUpResponse(
        user=user_to_response(result.user) if result.user else None,
        session=session_to_response(result.session) if result.session else None,
        confirmation_required=result.confirmation_required,
    )


@router.post(
    "/signin",
    response_model=SessionResponse,
    responses={400: {"model": ErrorResponse}},
    summary="Sign in",
)
async def sign_in(request: SignInRequest, service: Service) -> SessionResponse:
    session = await service.sign_in(request.email, request.password)
    return session_to_response(session)


@router.post(
    "/signout",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={401: {"model": ErrorResponse}},
    summary="Sign out",
)
async def sign_out(token: AccessToken, service: Service) -> None:
    await service.sign_out(token)


@router.post(
    "/password/reset",
    response_model=MessageResponse,
    responses={400: {"model": ErrorResponse}},
    summary="Request password reset",
    description="Email a link to the password reset page.",
)
async def request_password_reset(
    body: PasswordResetRequest,
    request: Request,
    service: Service,
) -> MessageResponse:
    await service.request_password_reset(body.email, _site_url(request))
    return MessageResponse(message="Check your email for the password reset link")


@router.put(
    "/password",
    response_model=UserResponse,
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
    },
    summary="Set new password",
)
async def update_password(
    request: PasswordUpdateRequest,
    token: AccessToken,
    service: Service,
) -> UserResponse:
    user = await service.update_password(token, request.password, request.confirm_password)
    return user_to_response(user)


@router.post(
    "/verify",
    response_model=SessionResponse,
    responses={400: {"model": ErrorResponse}},
    summary="Verify email token",
)
async def verify(request: VerifyOtpRequest, service: Service) -> SessionResponse:
    session = await service.verify_otp(
        request.type,
        email=request.email,
        token=request.token,
        token_hash=request.token_hash,
    )
    return session_to_response(session)
