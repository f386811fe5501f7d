"""
User service - profile and admin user management operations.
"""
import logging
from typing import Optional

from sqlmodel.ext.asyncio.session import AsyncSession

from userhub.core.exceptions import (
    BadRequestError,
    IncorrectPasswordError,
    NotFoundError,
    PasswordMismatchError,
)
from userhub.core.pagination import clamp_page_params, create_pagination
from userhub.core.security import hash_password, verify_password
from userhub.models.user import User
from userhub.repositories.user_repo import UserRepository

logger = logging.getLogger(__name__)

PROFILE_FIELDS = ("name", "avatar", "theme", "language")
# Only these may be cleared with an explicit null
NULLABLE_PROFILE_FIELDS = ("avatar",)


class UserService:
    """Service for user operations."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.user_repo = UserRepository(session)

    async def find_by_id(self, user_id: str) -> User:
        """Get a user or raise 404."""
        user = await self.user_repo.get(user_id)
        if not user:
            raise NotFoundError("User")
        return user

    async def find_all(
        self,
        page: int = 1,
        limit: int = 10,
        search: Optional[str] = None
    ) -> dict:
        """Paginated user list for admins."""
        page, limit = clamp_page_params(page, limit)
        pagination_offset = (page - 1) * limit
        users, total = await self.user_repo.search(
            search=search or None,
            offset=pagination_offset,
            limit=limit
        )
        return {
            "users": users,
            "pagination": create_pagination(page, limit, total),
        }

    async def update_by_id(self, user_id: str, data: dict) -> User:
        """Update profile fields; keys absent from data are left unchanged."""
        changes = {
            key: value for key, value in data.items()
            if key in PROFILE_FIELDS and (value is not None or key in NULLABLE_PROFILE_FIELDS)
        }
        user = await self.user_repo.update(user_id, changes)
        if not user:
            raise NotFoundError("User")
        logger.info(f"Profile updated for user {user_id}: {sorted(changes)}")
        return user

    async def change_password(
        self,
        user_id: str,
        old_password: str,
        new_password: str,
        confirm_password: str
    ) -> None:
        """Change password for a logged-in user. Existing sessions stay valid."""
        if new_password != confirm_password:
            raise PasswordMismatchError("Password change failed", "CHANGE_PASSWORD_FAILED")

        user = await self.find_by_id(user_id)
        if not verify_password(old_password, user.password_hash):
            raise IncorrectPasswordError(
                "Password change failed", "CHANGE_PASSWORD_FAILED", field="oldPassword"
            )

        await self.user_repo.update_password(user_id, hash_password(new_password))
        logger.info(f"Password changed for user {user_id}")

    async def delete_by_id(self, user_id: str, acting_user_id: Optional[str] = None) -> None:
        """Admin hard delete. Refresh tokens go with the user."""
        if acting_user_id and acting_user_id == user_id:
            raise BadRequestError("Cannot delete your own account", code="DELETE_USER_FAILED")

        if not await self.user_repo.delete(user_id):
            raise NotFoundError("User")
        logger.info(f"User {user_id} deleted by {acting_user_id}")

    async def delete_account(self, user_id: str, password: str) -> User:
        """Self-service hard delete, confirmed with the current password."""
        user = await self.find_by_id(user_id)
        if not verify_password(password, user.password_hash):
            raise IncorrectPasswordError("Account deletion failed", "DELETE_ACCOUNT_FAILED")

        await self.user_repo.delete(user_id)
        logger.info(f"User {user_id} deleted their account")
        return user
