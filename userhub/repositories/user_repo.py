"""
User repository - the credential store.
"""
from typing import Optional, List, Tuple
from datetime import datetime

from sqlmodel import select, or_
from sqlmodel.ext.asyncio.session import AsyncSession
from sqlalchemy import func

from userhub.models.user import User, utc_now
from userhub.repositories.base import BaseRepository


class UserRepository(BaseRepository[User]):
    """Repository for User operations."""

    def __init__(self, session: AsyncSession):
        super().__init__(User, session)

    async def get_by_email(self, email: str) -> Optional[User]:
        """Get user by email (exact, case-sensitive match)."""
        query = select(User).where(User.email == email)
        result = await self.session.exec(query)
        return result.first()

    async def get_role(self, user_id: str) -> Optional[str]:
        """Current role straight from the store."""
        query = select(User.role).where(User.id == user_id)
        result = await self.session.exec(query)
        return result.first()

    async def get_by_verification_token(self, token: str) -> Optional[User]:
        """User whose verification slot holds this token and has not expired."""
        query = select(User).where(
            User.verification_token == token,
            User.verification_token_expires_at > utc_now()
        )
        result = await self.session.exec(query)
        return result.first()

    async def get_by_reset_token(self, token: str) -> Optional[User]:
        """User whose reset slot holds this token and has not expired."""
        query = select(User).where(
            User.reset_password_token == token,
            User.reset_password_token_expires_at > utc_now()
        )
        result = await self.session.exec(query)
        return result.first()

    async def update_last_login(self, user_id: str) -> None:
        """Update user's last login timestamp."""
        user = await self.get(user_id)
        if user:
            user.last_login_at = utc_now()
            self.session.add(user)
            await self.session.commit()

    async def set_verification_token(
        self, user_id: str, token: str, expires_at: datetime
    ) -> Optional[User]:
        """Overwrite the verification slot."""
        return await self.update(user_id, {
            "verification_token": token,
            "verification_token_expires_at": expires_at,
        })

    async def set_reset_token(
        self, user_id: str, token: str, expires_at: datetime
    ) -> Optional[User]:
        """Overwrite the password reset slot."""
        return await self.update(user_id, {
            "reset_password_token": token,
            "reset_password_token_expires_at": expires_at,
        })

    async def mark_verified(self, user_id: str) -> Optional[User]:
        """Mark user as verified and clear the verification slot."""
        return await self.update(user_id, {
            "is_verified": True,
            "verification_token": None,
            "verification_token_expires_at": None,
        })

    async def update_password(self, user_id: str, password_hash: str) -> Optional[User]:
        """Store a new password hash and clear any pending reset."""
        return await self.update(user_id, {
            "password_hash": password_hash,
            "reset_password_token": None,
            "reset_password_token_expires_at": None,
        })

    async def search(
        self,
        search: Optional[str] = None,
        offset: int = 0,
        limit: int = 10
    ) -> Tuple[List[User], int]:
        """
        Page of users, newest first, plus the total match count.
        Search is a case-insensitive substring match on name or email.
        """
        query = select(User)
        if search:
            pattern = f"%{search.lower()}%"
            query = query.where(or_(
                func.lower(User.name).like(pattern),
                func.lower(User.email).like(pattern),
            ))

        return await self.page(query, offset, limit)
