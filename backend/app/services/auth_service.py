"""Credential & session management.

Password hashing (passlib), JWT issue/verify (python-jose) and the session
cookie envelope, plus the sign-up / sign-in flows built on top of them.
No HTTP routing here: errors are raised as ``app.errors`` types and mapped to
status codes by the app-level handler.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional, Tuple

from fastapi import Response
from jose import JWTError, jwt
from passlib.context import CryptContext
from pydantic import ValidationError as PydanticValidationError

from app.config import Settings
from app.errors import (
    AuthenticationError,
    ConflictError,
    HashingError,
    TokenExpiredError,
    TokenInvalidError,
    UniqueViolationError,
)
from app.models import User
from app.repositories.user_repository import UserRepository
from app.schemas import SignInRequest, SignUpRequest, TokenClaims

logger = logging.getLogger(__name__)

REQUIRED_CLAIMS = ("sub", "role", "iat", "exp")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SessionManager:
    """
    비밀번호 해시/검증, 토큰 발급/검증, 세션 쿠키를 담당합니다.
    설정값과 시계(clock)만 보관하며 요청 간에 공유되는 가변 상태는 없습니다.
    """

    def __init__(self, settings: Settings, clock: Callable[[], datetime] = _utcnow):
        self.settings = settings
        self._clock = clock
        self._pwd_context = CryptContext(
            schemes=["pbkdf2_sha256"],
            deprecated="auto",
            pbkdf2_sha256__default_rounds=settings.password_hash_rounds,
        )
        self.token_ttl = timedelta(minutes=settings.access_token_expire_minutes)

    # ── passwords ────────────────────────────────────────────

    def hash_password(self, password: str) -> str:
        if not isinstance(password, (str, bytes)):
            raise TypeError("Password must be a string or bytes.")
        try:
            return self._pwd_context.hash(password)
        except (ValueError, OSError) as e:
            raise HashingError("Password hashing failed") from e

    def verify_password(self, password: str, password_hash: str) -> bool:
        try:
            return self._pwd_context.verify(password, password_hash)
        except (ValueError, TypeError) as e:
            raise HashingError("Stored password hash is malformed") from e

    def dummy_verify(self) -> None:
        """Spend the same time as a real verify against an unknown account."""
        self._pwd_context.dummy_verify()

    # ── tokens ───────────────────────────────────────────────

    def issue_token(self, user: User) -> str:
        # jose 는 초 단위로 잘라서 인코딩하므로 미리 맞춰 둔다
        now = self._clock().replace(microsecond=0)
        claims = {
            "sub": str(user.id),
            "email": user.email,
            "role": user.role,
            "iat": now,
            "exp": now + self.token_ttl,
        }
        return jwt.encode(claims, self.settings.jwt_secret, algorithm=self.settings.jwt_algorithm)

    def verify_token(self, token: str) -> TokenClaims:
        """
        Check the signature, then expiry against this manager's clock.

        Raises:
            TokenExpiredError: now >= exp
            TokenInvalidError: bad signature, malformed token or claims
        """
        if not token:
            raise TokenInvalidError("Missing session token")
        try:
            payload = jwt.decode(
                token,
                self.settings.jwt_secret,
                algorithms=[self.settings.jwt_algorithm],
                options={"verify_exp": False},
            )
        except JWTError as e:
            raise TokenInvalidError() from e

        missing = [name for name in REQUIRED_CLAIMS if name not in payload]
        if missing:
            raise TokenInvalidError(f"Session token is missing claims: {', '.join(missing)}")

        try:
            claims = TokenClaims.model_validate(payload)
        except PydanticValidationError as e:
            raise TokenInvalidError("Session token claims are malformed") from e

        if self._clock() >= claims.exp:
            raise TokenExpiredError()
        return claims

    # ── cookie envelope ──────────────────────────────────────

    def set_session_cookie(self, response: Response, token: str) -> None:
        response.set_cookie(
            key=self.settings.cookie_name,
            value=token,
            max_age=self.settings.cookie_max_age_minutes * 60,
            httponly=True,
            secure=self.settings.is_production,
            samesite=self.settings.cookie_samesite,
            path="/",
        )

    def clear_session_cookie(self, response: Response) -> None:
        response.delete_cookie(
            key=self.settings.cookie_name,
            httponly=True,
            secure=self.settings.is_production,
            samesite=self.settings.cookie_samesite,
            path="/",
        )


async def sign_up(repo: UserRepository, manager: SessionManager, payload: SignUpRequest) -> Tuple[User, str]:
    """Register a new user and issue their first session token.

    Raises:
        ConflictError: email already registered
        StorageError: persistence failure (propagated unchanged)
    """
    email = payload.email.lower()
    if await repo.find_by_email(email):
        logger.warning("Sign-up rejected: email already registered", extra={"email": email})
        raise ConflictError("User with this email already exists")

    password_hash = manager.hash_password(payload.password)
    try:
        user = await repo.create(email=email, password_hash=password_hash, role="user", name=payload.name)
    except UniqueViolationError as e:
        # 동시에 같은 이메일로 가입한 경우
        raise ConflictError("User with this email already exists") from e

    token = manager.issue_token(user)
    logger.info("User signed up", extra={"userId": user.id, "email": user.email, "role": user.role})
    return user, token


async def sign_in(repo: UserRepository, manager: SessionManager, payload: SignInRequest) -> Tuple[User, str]:
    """Authenticate by email and password.

    Unknown email and wrong password fail the same way so the response
    does not reveal whether the account exists.

    Raises:
        AuthenticationError: invalid credentials
    """
    email = payload.email.lower()
    user: Optional[User] = await repo.find_by_email(email)
    if user is None:
        manager.dummy_verify()
        logger.warning("Sign-in failed", extra={"email": email, "reason": "unknown_email"})
        raise AuthenticationError()

    if not manager.verify_password(payload.password, user.password_hash):
        logger.warning("Sign-in failed", extra={"userId": user.id, "reason": "bad_password"})
        raise AuthenticationError()

    token = manager.issue_token(user)
    logger.info("User signed in", extra={"userId": user.id, "email": user.email})
    return user, token
