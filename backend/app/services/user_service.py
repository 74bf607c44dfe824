"""User management rules on top of the user repository."""

import logging
from typing import List

from app.errors import ConflictError, NotFoundError, PermissionDeniedError, UniqueViolationError
from app.models import User
from app.repositories.user_repository import UserRepository
from app.schemas import UserUpdateRequest

logger = logging.getLogger(__name__)


async def list_users(repo: UserRepository) -> List[User]:
    return await repo.list_all()


async def get_user(repo: UserRepository, user_id: int) -> User:
    user = await repo.find_by_id(user_id)
    if user is None:
        raise NotFoundError("User not found")
    return user


async def update_user(repo: UserRepository, actor: User, user_id: int, changes: UserUpdateRequest) -> User:
    """
    일반 사용자는 본인 정보만 수정 가능, 역할(role) 변경은 관리자만 가능.
    """
    if not actor.is_admin and actor.id != user_id:
        raise PermissionDeniedError("You can only update your own information")

    update_data = changes.model_dump(exclude_unset=True, exclude_none=True)
    if "role" in update_data and not actor.is_admin:
        raise PermissionDeniedError("Only admin users can change user roles")

    existing = await get_user(repo, user_id)

    new_email = update_data.get("email")
    if new_email and new_email != existing.email:
        other = await repo.find_by_email(new_email)
        if other is not None and other.id != user_id:
            raise ConflictError("Email already in use")

    try:
        user = await repo.update(user_id, **update_data)
    except UniqueViolationError as e:
        raise ConflictError("Email already in use") from e
    if user is None:
        raise NotFoundError("User not found")

    logger.info("User updated", extra={"userId": user_id, "actorId": actor.id})
    return user


async def delete_user(repo: UserRepository, actor: User, user_id: int) -> None:
    if not actor.is_admin and actor.id != user_id:
        raise PermissionDeniedError("You can only delete your own account")

    if not await repo.delete(user_id):
        raise NotFoundError("User not found")

    logger.info("User deleted", extra={"userId": user_id, "actorId": actor.id})
