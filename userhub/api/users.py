"""
User API routes: own profile for every user, user management for admins.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Query, UploadFile
from sqlmodel.ext.asyncio.session import AsyncSession

from userhub.config import settings
from userhub.database import get_session
from userhub.models.user import ROLE_ADMIN
from userhub.services.upload_service import LocalUploadService
from userhub.services.user_service import UserService
from userhub.schemas.common import ErrorResponse, MessageResponse
from userhub.schemas.user import (
    UserResponse, UserUpdate, UserUpdateResponse, ThemeUpdate, LanguageUpdate,
    ChangePasswordRequest, DeleteAccountRequest, AvatarResponse,
    UserList, UserListResponse, UserDetail, UserDetailResponse, SuccessMessageResponse
)
from userhub.api.deps import CurrentUser, get_current_user, get_upload_service, require_roles

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix=f"{settings.API_PREFIX}/users",
    tags=["users"],
    responses={401: {"model": ErrorResponse}, 403: {"model": ErrorResponse}, 422: {"model": ErrorResponse}}
)


def get_user_service(session: AsyncSession = Depends(get_session)) -> UserService:
    return UserService(session)


# Own profile
@router.get("/me", response_model=UserResponse)
async def get_profile(
    current_user: CurrentUser = Depends(get_current_user),
    user_service: UserService = Depends(get_user_service)
):
    """Get current user profile."""
    user = await user_service.find_by_id(current_user.id)
    return UserResponse.model_validate(user)


@router.put("/me", response_model=UserUpdateResponse)
async def update_profile(
    update_data: UserUpdate,
    current_user: CurrentUser = Depends(get_current_user),
    user_service: UserService = Depends(get_user_service)
):
    """Update current user profile."""
    user = await user_service.update_by_id(
        current_user.id,
        update_data.model_dump(exclude_unset=True)
    )
    return UserUpdateResponse(
        user=UserResponse.model_validate(user),
        message="Profile updated successfully"
    )


@router.put("/change-password", response_model=MessageResponse)
async def change_password(
    request: ChangePasswordRequest,
    current_user: CurrentUser = Depends(get_current_user),
    user_service: UserService = Depends(get_user_service)
):
    """Change password for logged-in user. Signs out every session."""
    await user_service.change_password(
        current_user.id,
        request.old_password,
        request.new_password,
        request.confirm_password
    )
    return MessageResponse(message="Password changed successfully")


@router.post("/upload-avatar", response_model=AvatarResponse)
async def upload_avatar(
    avatar: Optional[UploadFile] = File(None),
    current_user: CurrentUser = Depends(get_current_user),
    user_service: UserService = Depends(get_user_service),
    upload_service: LocalUploadService = Depends(get_upload_service)
):
    """Upload a new avatar image, replacing the previous one."""
    if avatar is None:
        data, filename, content_type = b"", None, None
    else:
        data = await avatar.read()
        filename, content_type = avatar.filename, avatar.content_type

    result = await upload_service.upload_file(filename, content_type, data)

    user = await user_service.find_by_id(current_user.id)
    previous_avatar = user.avatar
    await user_service.update_by_id(current_user.id, {"avatar": result.url})
    if previous_avatar:
        await upload_service.delete_by_url(previous_avatar)

    logger.info(f"Avatar uploaded for user {current_user.id}: {result.filename}")
    return AvatarResponse(avatar_url=result.url)


@router.delete("/avatar", response_model=MessageResponse)
async def delete_avatar(
    current_user: CurrentUser = Depends(get_current_user),
    user_service: UserService = Depends(get_user_service),
    upload_service: LocalUploadService = Depends(get_upload_service)
):
    """Remove the current avatar."""
    user = await user_service.find_by_id(current_user.id)
    previous_avatar = user.avatar
    await user_service.update_by_id(current_user.id, {"avatar": None})
    if previous_avatar:
        await upload_service.delete_by_url(previous_avatar)
    return MessageResponse(message="Avatar deleted successfully")


@router.patch("/theme", response_model=UserResponse)
async def update_theme(
    request: ThemeUpdate,
    current_user: CurrentUser = Depends(get_current_user),
    user_service: UserService = Depends(get_user_service)
):
    user = await user_service.update_by_id(current_user.id, {"theme": request.theme})
    return UserResponse.model_validate(user)


@router.patch("/language", response_model=UserResponse)
async def update_language(
    request: LanguageUpdate,
    current_user: CurrentUser = Depends(get_current_user),
    user_service: UserService = Depends(get_user_service)
):
    user = await user_service.update_by_id(current_user.id, {"language": request.language})
    return UserResponse.model_validate(user)


@router.delete("/delete-account", response_model=MessageResponse)
async def delete_account(
    request: DeleteAccountRequest,
    current_user: CurrentUser = Depends(get_current_user),
    user_service: UserService = Depends(get_user_service),
    upload_service: LocalUploadService = Depends(get_upload_service)
):
    """Permanently delete the current account, confirmed with the password."""
    user = await user_service.delete_account(current_user.id, request.password)
    if user.avatar:
        await upload_service.delete_by_url(user.avatar)
    return MessageResponse(message="Account deleted successfully")


# Admin
@router.get("", response_model=UserListResponse)
async def list_users(
    page: int = Query(1),
    limit: int = Query(10),
    search: Optional[str] = Query(None),
    current_user: CurrentUser = Depends(require_roles(ROLE_ADMIN)),
    user_service: UserService = Depends(get_user_service)
):
    """List users with search and pagination (admin only)."""
    result = await user_service.find_all(page=page, limit=limit, search=search)
    return UserListResponse(data=UserList(
        users=[UserResponse.model_validate(user) for user in result["users"]],
        pagination=result["pagination"]
    ))


@router.get("/{user_id}", response_model=UserDetailResponse)
async def get_user(
    user_id: str,
    current_user: CurrentUser = Depends(require_roles(ROLE_ADMIN)),
    user_service: UserService = Depends(get_user_service)
):
    """Get a user by id (admin only)."""
    user = await user_service.find_by_id(user_id)
    return UserDetailResponse(data=UserDetail(user=UserResponse.model_validate(user)))


@router.delete("/{user_id}", response_model=SuccessMessageResponse)
async def delete_user(
    user_id: str,
    current_user: CurrentUser = Depends(require_roles(ROLE_ADMIN)),
    user_service: UserService = Depends(get_user_service)
):
    """Delete a user and all of their sessions (admin only)."""
    await user_service.delete_by_id(user_id, acting_user_id=current_user.id)
    return SuccessMessageResponse(message="User deleted successfully")
