from fastapi import APIRouter, Depends, Path

from app.api.dependencies import get_user_repo, require_user
from app.models import User
from app.repositories.user_repository import UserRepository
from app.schemas import MessageResponse, UserListResponse, UserPublic, UserResponse, UserUpdateRequest
from app.services import user_service

# user 라우터 정의 (모든 엔드포인트는 로그인 필요)
router = APIRouter(prefix="/api/users", tags=["users"])


@router.get("", response_model=UserListResponse)
async def fetch_all_users(
    repo: UserRepository = Depends(get_user_repo),
    _: User = Depends(require_user),
):
    users = await user_service.list_users(repo)
    return UserListResponse(
        message="Successfully retrieved users",
        users=[UserPublic.model_validate(u) for u in users],
        count=len(users),
    )


@router.get("/{user_id}", response_model=UserResponse)
async def fetch_user_by_id(
    user_id: int = Path(..., gt=0),
    repo: UserRepository = Depends(get_user_repo),
    _: User = Depends(require_user),
):
    user = await user_service.get_user(repo, user_id)
    return UserResponse(message="User retrieved successfully", user=UserPublic.model_validate(user))


@router.put("/{user_id}", response_model=UserResponse)
async def update_user_by_id(
    changes: UserUpdateRequest,
    user_id: int = Path(..., gt=0),
    repo: UserRepository = Depends(get_user_repo),
    actor: User = Depends(require_user),
):
    user = await user_service.update_user(repo, actor, user_id, changes)
    return UserResponse(message="User updated successfully", user=UserPublic.model_validate(user))


@router.delete("/{user_id}", response_model=MessageResponse)
async def delete_user_by_id(
    user_id: int = Path(..., gt=0),
    repo: UserRepository = Depends(get_user_repo),
    actor: User = Depends(require_user),
):
    # ⚠️ 물리 삭제 (soft delete 는 아직 없음)
    await user_service.delete_user(repo, actor, user_id)
    return MessageResponse(message="User deleted successfully")
