import logging
from functools import lru_cache
from typing import Optional

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import get_settings
from app.db import get_db
from app.errors import AuthenticationError, TokenError
from app.models import User
from app.repositories.user_repository import SqlUserRepository, UserRepository
from app.schemas import TokenClaims
from app.services.auth_service import SessionManager

logger = logging.getLogger(__name__)


@lru_cache
def get_session_manager() -> SessionManager:
    return SessionManager(get_settings())


def get_user_repo(db: AsyncSession = Depends(get_db)) -> UserRepository:
    return SqlUserRepository(db)


async def get_current_claims(
    request: Request,
    manager: SessionManager = Depends(get_session_manager),
) -> Optional[TokenClaims]:
    """세션 쿠키의 토큰을 검증합니다. 없거나 유효하지 않으면 익명(None)으로 취급."""
    token = request.cookies.get(manager.settings.cookie_name)
    if not token:
        return None
    try:
        claims = manager.verify_token(token)
    except TokenError as e:
        logger.debug("Ignoring session token", extra={"reason": type(e).__name__})
        return None
    return claims


async def require_user(
    claims: Optional[TokenClaims] = Depends(get_current_claims),
    repo: UserRepository = Depends(get_user_repo),
) -> User:
    """
    토큰 검증 후 현재 DB 행을 다시 읽어 반환합니다.
    권한(role)은 토큰이 아닌 DB 값을 기준으로 판단합니다.
    """
    if claims is None:
        raise AuthenticationError("Authentication required")
    user = await repo.find_by_id(claims.user_id)
    if user is None:
        logger.info("Session token refers to a missing user", extra={"userId": claims.sub})
        raise AuthenticationError("Authentication required")
    return user
