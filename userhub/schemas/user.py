"""
User schemas.
"""
from typing import List, Literal, Optional
from datetime import datetime
from pydantic import Field, field_validator

from userhub.core.pagination import Pagination
from userhub.schemas.common import CamelModel

Theme = Literal["light", "dark", "system"]
Language = Literal["vi", "en"]


class UserResponse(CamelModel):
    """User details response. Never includes the password hash or tokens."""
    id: str
    email: str
    name: str
    avatar: Optional[str] = None
    theme: str
    language: str
    role: str
    is_verified: bool
    created_at: datetime
    updated_at: datetime
    last_login_at: Optional[datetime] = None


class UserUpdate(CamelModel):
    """Update current user profile. Omitted fields are left unchanged."""
    name: Optional[str] = Field(default=None, min_length=1)
    avatar: Optional[str] = None
    theme: Optional[Theme] = None
    language: Optional[Language] = None

    @field_validator("avatar")
    @classmethod
    def avatar_is_url(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not value.startswith(("http://", "https://", "/")):
            raise ValueError("Avatar must be a URL")
        return value


class UserUpdateResponse(CamelModel):
    user: UserResponse
    message: str


class ThemeUpdate(CamelModel):
    theme: Theme


class LanguageUpdate(CamelModel):
    language: Language


class ChangePasswordRequest(CamelModel):
    """Change password for logged-in user."""
    old_password: str = Field(min_length=1)
    new_password: str = Field(min_length=6)
    confirm_password: str = Field(min_length=1)


class DeleteAccountRequest(CamelModel):
    password: str = Field(min_length=1)


class AvatarResponse(CamelModel):
    avatar_url: str


class UserList(CamelModel):
    users: List[UserResponse]
    pagination: Pagination


class UserListResponse(CamelModel):
    success: bool = True
    data: UserList


class UserDetail(CamelModel):
    user: UserResponse


class UserDetailResponse(CamelModel):
    success: bool = True
    data: UserDetail


class SuccessMessageResponse(CamelModel):
    success: bool = True
    message: str
