"""
Authentication API routes.
"""
from typing import Optional

from fastapi import APIRouter, Depends, status
from sqlmodel.ext.asyncio.session import AsyncSession

from userhub.config import settings
from userhub.database import get_session
from userhub.services.auth_service import AuthService
from userhub.services.email_service import EmailService
from userhub.services.user_service import UserService
from userhub.schemas.auth import (
    RegisterRequest, RegisterResponse, LoginRequest, LoginResponse,
    RefreshRequest, TokenResponse, LogoutRequest, ForgotPasswordRequest,
    ResetPasswordRequest, VerifyEmailRequest, ResendVerificationRequest
)
from userhub.schemas.common import ErrorResponse, MessageResponse
from userhub.schemas.user import UserResponse
from userhub.api.deps import CurrentUser, get_current_user, get_email_service

router = APIRouter(
    prefix=f"{settings.API_PREFIX}/auth",
    tags=["auth"],
    responses={400: {"model": ErrorResponse}, 401: {"model": ErrorResponse}, 422: {"model": ErrorResponse}}
)


def get_auth_service(
    session: AsyncSession = Depends(get_session),
    email_service: EmailService = Depends(get_email_service)
) -> AuthService:
    return AuthService(session, email_service)


@router.post("/register", response_model=RegisterResponse, status_code=status.HTTP_201_CREATED)
async def register(
    request: RegisterRequest,
    auth_service: AuthService = Depends(get_auth_service)
):
    """Register a new user. The account starts unverified."""
    outcome = await auth_service.register(
        name=request.name,
        email=request.email,
        password=request.password,
        confirm_password=request.confirm_password
    )
    return RegisterResponse(
        user=UserResponse.model_validate(outcome.value),
        message="Registration successful. Please check your email to verify your account.",
        requires_verification=True
    )


@router.post("/login", response_model=LoginResponse)
async def login(
    request: LoginRequest,
    auth_service: AuthService = Depends(get_auth_service)
):
    """Login and get access + refresh tokens."""
    result = await auth_service.login(request.email, request.password)
    user = result.pop("user")
    return LoginResponse(user=UserResponse.model_validate(user), **result)


@router.get("/me", response_model=UserResponse)
async def me(
    current_user: CurrentUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session)
):
    """Get the authenticated user."""
    user = await UserService(session).find_by_id(current_user.id)
    return UserResponse.model_validate(user)


@router.post("/refresh", response_model=TokenResponse)
async def refresh_token(
    request: RefreshRequest,
    auth_service: AuthService = Depends(get_auth_service)
):
    """Rotate a refresh token: the old one stops working, a new pair is issued."""
    return TokenResponse(**await auth_service.refresh(request.refresh_token))


@router.post("/logout", response_model=MessageResponse)
async def logout(
    request: Optional[LogoutRequest] = None,
    current_user: CurrentUser = Depends(get_current_user),
    auth_service: AuthService = Depends(get_auth_service)
):
    """Logout by revoking the refresh token, if one is sent."""
    await auth_service.logout(request.refresh_token if request else None)
    return MessageResponse(message="Logged out successfully")


@router.post("/logout-all", response_model=MessageResponse)
async def logout_all(
    current_user: CurrentUser = Depends(get_current_user),
    auth_service: AuthService = Depends(get_auth_service)
):
    """Revoke every refresh token of the authenticated user."""
    await auth_service.logout_all(current_user.id)
    return MessageResponse(message="Logged out from all devices")


@router.post("/forgot-password", response_model=MessageResponse)
async def forgot_password(
    request: ForgotPasswordRequest,
    auth_service: AuthService = Depends(get_auth_service)
):
    """Send a password reset link."""
    await auth_service.forgot_password(request.email)
    return MessageResponse(message="Password reset email sent")


@router.post("/reset-password", response_model=MessageResponse)
async def reset_password(
    request: ResetPasswordRequest,
    auth_service: AuthService = Depends(get_auth_service)
):
    """Reset password using token."""
    await auth_service.reset_password(request.token, request.password, request.confirm_password)
    return MessageResponse(message="Password reset successfully")


@router.post("/verify-email", response_model=MessageResponse)
async def verify_email(
    request: VerifyEmailRequest,
    auth_service: AuthService = Depends(get_auth_service)
):
    """Verify email using token."""
    await auth_service.verify_email(request.token)
    return MessageResponse(message="Email verified successfully")


@router.post("/resend-verification", response_model=MessageResponse)
async def resend_verification(
    request: ResendVerificationRequest,
    auth_service: AuthService = Depends(get_auth_service)
):
    """Resend verification email."""
    await auth_service.resend_verification(request.email)
    return MessageResponse(message="Verification email sent")
