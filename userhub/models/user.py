"""
User model.
Holds credentials, profile preferences and the single-slot
verification / password-reset tokens.
"""
import uuid
from datetime import datetime, timezone
from typing import Optional, List, TYPE_CHECKING

from sqlmodel import SQLModel, Field, Relationship

if TYPE_CHECKING:
    from userhub.models.token import RefreshToken


ROLE_USER = "user"
ROLE_ADMIN = "admin"
THEME_DEFAULT = "system"
LANGUAGE_DEFAULT = "en"


def generate_id() -> str:
    return str(uuid.uuid4())


def utc_now() -> datetime:
    """Current time as an aware UTC datetime; timestamp columns reject naive values."""
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Treat a naive datetime read back from the database as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class User(SQLModel, table=True):
    """
    User model with authentication and profile info.
    """
    id: str = Field(default_factory=generate_id, primary_key=True)

    # Auth
    email: str = Field(unique=True, index=True)
    password_hash: str
    role: str = Field(default=ROLE_USER)  # user, admin

    # Profile
    name: str
    avatar: Optional[str] = None
    theme: str = Field(default=THEME_DEFAULT)  # light, dark, system
    language: str = Field(default=LANGUAGE_DEFAULT)  # vi, en

    # Verification status (one outstanding token at a time)
    is_verified: bool = Field(default=False)
    verification_token: Optional[str] = Field(default=None, index=True)
    verification_token_expires_at: Optional[datetime] = None

    # Password reset (one outstanding token at a time)
    reset_password_token: Optional[str] = Field(default=None, index=True)
    reset_password_token_expires_at: Optional[datetime] = None

    # Timestamps
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)
    last_login_at: Optional[datetime] = None

    # Relationships
    refresh_tokens: List["RefreshToken"] = Relationship(
        back_populates="user", cascade_delete=True
    )
