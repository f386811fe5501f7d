"""
Authentication schemas.
"""
from typing import Optional

from pydantic import EmailStr, Field

from userhub.schemas.common import CamelModel
from userhub.schemas.user import UserResponse


class RegisterRequest(CamelModel):
    """User registration request."""
    name: str = Field(min_length=1)
    email: EmailStr
    password: str = Field(min_length=6)
    confirm_password: str = Field(min_length=1)

    class Config:
        json_schema_extra = {
            "example": {
                "name": "John Doe",
                "email": "john@example.com",
                "password": "securepassword123",
                "confirmPassword": "securepassword123"
            }
        }


class RegisterResponse(CamelModel):
    user: UserResponse
    message: str
    requires_verification: bool = True


class LoginRequest(CamelModel):
    """User login request."""
    email: EmailStr
    password: str = Field(min_length=1)

    class Config:
        json_schema_extra = {
            "example": {
                "email": "john@example.com",
                "password": "securepassword123"
            }
        }


class TokenResponse(CamelModel):
    """Token pair issued by login and refresh."""
    access_token: str
    refresh_token: str
    expires_in: int  # seconds
    token_type: str = "Bearer"


class LoginResponse(TokenResponse):
    user: UserResponse


class RefreshRequest(CamelModel):
    """Refresh token request."""
    refresh_token: str = Field(min_length=1)


class ForgotPasswordRequest(CamelModel):
    """Request password reset."""
    email: EmailStr


class ResetPasswordRequest(CamelModel):
    """Confirm password reset with token."""
    token: str = Field(min_length=1)
    password: str = Field(min_length=6)
    confirm_password: str = Field(min_length=1)


class VerifyEmailRequest(CamelModel):
    """Verify email with token."""
    token: str = Field(min_length=1)


class ResendVerificationRequest(CamelModel):
    """Resend verification email."""
    email: EmailStr


class LogoutRequest(CamelModel):
    """Logout request; the refresh token is optional."""
    refresh_token: Optional[str] = None
