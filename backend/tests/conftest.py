import os
from datetime import datetime, timezone
from typing import Optional

import pytest
from fastapi.testclient import TestClient

# 앱 모듈 import 전에 테스트용 환경 설정
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("LOG_TO_FILE", "false")
os.environ.setdefault("PASSWORD_HASH_ROUNDS", "1000")
os.environ.setdefault("ASYNC_DATABASE_URL", "sqlite+aiosqlite:///:memory:")

from app.api.dependencies import get_session_manager, get_user_repo  # noqa: E402
from app.config import Settings  # noqa: E402
from app.errors import UniqueViolationError  # noqa: E402
from app.main import app  # noqa: E402
from app.models import User  # noqa: E402
from app.services.auth_service import SessionManager  # noqa: E402


class FakeUserRepository:
    """In-memory UserRepository for route and service tests."""

    def __init__(self):
        self.store: dict[int, User] = {}
        self._next_id = 1

    async def find_by_email(self, email: str) -> Optional[User]:
        for user in self.store.values():
            if user.email == email.lower():
                return user
        return None

    async def find_by_id(self, user_id: int) -> Optional[User]:
        return self.store.get(user_id)

    async def create(self, email: str, password_hash: str, role: str = "user", name: Optional[str] = None) -> User:
        if await self.find_by_email(email):
            raise UniqueViolationError("User violates a unique constraint")
        now = datetime.now(timezone.utc)
        user = User(
            id=self._next_id,
            name=name,
            email=email.lower(),
            password_hash=password_hash,
            role=role,
            created_at=now,
            updated_at=now,
        )
        self.store[user.id] = user
        self._next_id += 1
        return user

    async def list_all(self) -> list[User]:
        return [self.store[k] for k in sorted(self.store)]

    async def update(self, user_id: int, **changes) -> Optional[User]:
        user = self.store.get(user_id)
        if user is None:
            return None
        if "email" in changes:
            other = await self.find_by_email(changes["email"])
            if other is not None and other.id != user_id:
                raise UniqueViolationError("User violates a unique constraint")
        for field, value in changes.items():
            setattr(user, field, value)
        user.updated_at = datetime.now(timezone.utc)
        return user

    async def delete(self, user_id: int) -> bool:
        return self.store.pop(user_id, None) is not None


class FrozenClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def settings() -> Settings:
    return Settings(environment="test", jwt_secret="test-secret", password_hash_rounds=1000)


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock(datetime(2025, 1, 1, 12, 0, 0, tzinfo=timezone.utc))


@pytest.fixture
def manager(settings, clock) -> SessionManager:
    return SessionManager(settings, clock=clock)


@pytest.fixture
def user_repo() -> FakeUserRepository:
    return FakeUserRepository()


@pytest.fixture
def make_client(user_repo):
    """Factory for TestClients sharing one fake repository; each has its own cookie jar."""
    app.dependency_overrides[get_user_repo] = lambda: user_repo
    clients = []

    def _make() -> TestClient:
        client = TestClient(app)
        clients.append(client)
        return client

    yield _make

    for client in clients:
        client.close()
    app.dependency_overrides.clear()


@pytest.fixture
def client(make_client) -> TestClient:
    return make_client()


@pytest.fixture
def app_manager() -> SessionManager:
    return get_session_manager()
