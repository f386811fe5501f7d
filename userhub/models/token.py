"""
Refresh token ledger model.
A row exists for every refresh token that has been issued and not yet
revoked; the token string itself is the primary key.
"""
from datetime import datetime
from typing import Optional, TYPE_CHECKING

from sqlmodel import SQLModel, Field, Relationship

from userhub.models.user import utc_now

if TYPE_CHECKING:
    from userhub.models.user import User


class RefreshToken(SQLModel, table=True):
    """
    Refresh token for obtaining new access tokens.
    Stored in DB for rotation and revocation.
    """
    __tablename__ = "refresh_token"

    token: str = Field(primary_key=True)  # The signed token string
    user_id: str = Field(foreign_key="user.id", index=True, ondelete="CASCADE")

    # Timestamps
    created_at: datetime = Field(default_factory=utc_now)
    expires_at: datetime

    # Relationships
    user: Optional["User"] = Relationship(back_populates="refresh_tokens")
