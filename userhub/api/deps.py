"""
API dependencies - shared across all routes.
"""
from dataclasses import dataclass
from typing import Callable

from fastapi import Depends, Request
from sqlmodel.ext.asyncio.session import AsyncSession

from userhub.database import get_session
from userhub.core.exceptions import ForbiddenError, UnauthenticatedError
from userhub.core.security import InvalidTokenError, verify_token
from userhub.repositories.user_repo import UserRepository
from userhub.services.email_service import EmailService
from userhub.services.upload_service import LocalUploadService

BEARER_PREFIX = "Bearer "


@dataclass(frozen=True)
class CurrentUser:
    """Identity of the authenticated caller."""
    id: str
    email: str
    name: str


def get_email_service(request: Request) -> EmailService:
    return request.app.state.email_service


def get_upload_service(request: Request) -> LocalUploadService:
    return request.app.state.upload_service


def get_bearer_token(request: Request) -> str:
    """Token from an `Authorization: Bearer <token>` header."""
    header = request.headers.get("Authorization")
    if not header or not header.startswith(BEARER_PREFIX):
        raise UnauthenticatedError("No token provided")

    token = header[len(BEARER_PREFIX):].strip()
    if not token:
        raise UnauthenticatedError("No token provided")
    return token


async def get_current_user(
    token: str = Depends(get_bearer_token),
    session: AsyncSession = Depends(get_session)
) -> CurrentUser:
    """Get current authenticated user from the access token."""
    try:
        payload = verify_token(token, "access")
    except InvalidTokenError:
        raise UnauthenticatedError("Invalid token")

    user_repo = UserRepository(session)
    user = await user_repo.get(payload["id"])
    if not user:
        raise UnauthenticatedError("User not found")

    return CurrentUser(id=user.id, email=user.email, name=user.name)


def require_roles(*roles: str) -> Callable:
    """
    Dependency factory allowing only the given roles.
    The role is read from the store on every call, so a demotion takes
    effect immediately even for tokens issued before it.
    """
    async def role_checker(
        current_user: CurrentUser = Depends(get_current_user),
        session: AsyncSession = Depends(get_session)
    ) -> CurrentUser:
        role = await UserRepository(session).get_role(current_user.id)
        if role not in roles:
            raise ForbiddenError("You do not have permission to access this resource")
        return current_user

    return role_checker
