"""
Refresh token ledger.
Every issued refresh token has a row until it is revoked; a token is
valid only while its row exists and has not expired.
"""
import logging
from typing import Optional
from datetime import timedelta

from sqlalchemy import delete
from sqlalchemy.orm import selectinload
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from userhub.config import settings
from userhub.core.exceptions import NotFoundError
from userhub.core.security import create_refresh_token
from userhub.models.token import RefreshToken
from userhub.models.user import User, as_utc, utc_now
from userhub.repositories.base import BaseRepository

logger = logging.getLogger(__name__)


class RefreshTokenRepository(BaseRepository[RefreshToken]):
    """Repository for RefreshToken operations."""

    def __init__(self, session: AsyncSession):
        super().__init__(RefreshToken, session)

    async def issue(self, user_id: str) -> str:
        """
        Sign a refresh token for the user and record it in the ledger.

        The user is looked up before anything is signed or written, so a
        row can never exist for a missing user. Signing happens before the
        insert; if it fails nothing is persisted.
        """
        user = await self.session.get(User, user_id)
        if not user:
            raise NotFoundError("User", user_id)

        token = create_refresh_token(user.id, user.email)
        expires_at = utc_now() + timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS)

        self.session.add(RefreshToken(
            token=token,
            user_id=user.id,
            expires_at=expires_at
        ))
        await self.session.commit()
        return token

    async def validate(self, token: str) -> Optional[RefreshToken]:
        """
        Ledger row (with its user loaded) if present and not expired.
        Expired rows are left in place.
        """
        query = (
            select(RefreshToken)
            .where(RefreshToken.token == token)
            .options(selectinload(RefreshToken.user))
        )
        result = await self.session.exec(query)
        refresh_token = result.first()

        if not refresh_token or refresh_token.user is None:
            return None
        if as_utc(refresh_token.expires_at) <= utc_now():
            return None
        return refresh_token

    async def revoke(self, token: str) -> bool:
        """
        Delete a refresh token by value.
        Returns False (and logs) when no row matched, e.g. already revoked
        or lost a race with a concurrent revoke.
        """
        result = await self.session.execute(
            delete(RefreshToken).where(RefreshToken.token == token)
        )
        await self.session.commit()

        if result.rowcount == 0:
            logger.warning("Refresh token revoke matched no row")
            return False
        return True

    async def revoke_all_for_user(self, user_id: str) -> int:
        """Revoke every refresh token of a user (all devices)."""
        result = await self.session.execute(
            delete(RefreshToken).where(RefreshToken.user_id == user_id)
        )
        await self.session.commit()
        return result.rowcount

    async def purge_expired(self) -> int:
        """Remove rows whose expiry has passed. Never run implicitly."""
        result = await self.session.execute(
            delete(RefreshToken).where(RefreshToken.expires_at <= utc_now())
        )
        await self.session.commit()
        logger.info(f"Purged {result.rowcount} expired refresh tokens")
        return result.rowcount

    async def count_for_user(self, user_id: str) -> int:
        """Number of ledger rows held by a user."""
        query = select(RefreshToken).where(RefreshToken.user_id == user_id)
        result = await self.session.exec(query)
        return len(result.all())
