"""User persistence: protocol and SQLAlchemy implementation."""

import logging
from typing import Optional, Protocol

from sqlalchemy import delete, insert, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.errors import StorageError, UniqueViolationError
from app.models import User

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = ("name", "email", "role")


class UserRepository(Protocol):
    """Interface the auth and user services depend on."""

    async def find_by_email(self, email: str) -> Optional[User]:
        ...

    async def find_by_id(self, user_id: int) -> Optional[User]:
        ...

    async def create(self, email: str, password_hash: str, role: str = "user", name: Optional[str] = None) -> User:
        ...

    async def list_all(self) -> list[User]:
        ...

    async def update(self, user_id: int, **changes) -> Optional[User]:
        ...

    async def delete(self, user_id: int) -> bool:
        ...


class SqlUserRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    # ── read operations ──────────────────────────────────────

    async def find_by_email(self, email: str) -> Optional[User]:
        try:
            res = await self.db.execute(select(User).where(User.email == email.lower()))
            return res.scalar_one_or_none()
        except SQLAlchemyError as e:
            raise StorageError("Failed to look up user by email") from e

    async def find_by_id(self, user_id: int) -> Optional[User]:
        try:
            return await self.db.get(User, user_id)
        except SQLAlchemyError as e:
            raise StorageError("Failed to look up user by id") from e

    async def list_all(self) -> list[User]:
        try:
            res = await self.db.execute(select(User).order_by(User.id))
            return list(res.scalars().all())
        except SQLAlchemyError as e:
            raise StorageError("Failed to list users") from e

    # ── write operations ─────────────────────────────────────

    async def create(self, email: str, password_hash: str, role: str = "user", name: Optional[str] = None) -> User:
        stmt = (
            insert(User)
            .values(email=email.lower(), password_hash=password_hash, role=role, name=name)
            .returning(User)
        )
        try:
            res = await self.db.execute(stmt)
            user = res.scalar_one()
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            logger.warning("User creation rejected by constraint", extra={"email": email})
            raise UniqueViolationError("User violates a unique constraint") from e
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise StorageError("Failed to create user") from e

        logger.info("User created", extra={"userId": user.id, "email": user.email})
        return user

    async def update(self, user_id: int, **changes) -> Optional[User]:
        unknown = set(changes) - set(UPDATABLE_FIELDS)
        if unknown:
            raise ValueError(f"Cannot update fields: {sorted(unknown)}")

        try:
            user = await self.db.get(User, user_id)
            if user is None:
                return None
            for field, value in changes.items():
                setattr(user, field, value.lower() if field == "email" else value)
            await self.db.commit()
            await self.db.refresh(user)
        except IntegrityError as e:
            await self.db.rollback()
            raise UniqueViolationError("User violates a unique constraint") from e
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise StorageError("Failed to update user") from e

        logger.info("User updated", extra={"userId": user_id, "fields": sorted(changes)})
        return user

    async def delete(self, user_id: int) -> bool:
        try:
            res = await self.db.execute(delete(User).where(User.id == user_id))
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise StorageError("Failed to delete user") from e

        deleted = res.rowcount > 0
        if deleted:
            logger.info("User deleted", extra={"userId": user_id})
        return deleted
