import logging
from typing import Optional

from fastapi import APIRouter, Depends, Response, status

from app.api.dependencies import get_current_claims, get_session_manager, get_user_repo, require_user
from app.models import User
from app.repositories.user_repository import UserRepository
from app.schemas import AuthResponse, MessageResponse, SignInRequest, SignUpRequest, TokenClaims, UserPublic
from app.services import auth_service
from app.services.auth_service import SessionManager

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post("/sign-up", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def sign_up(
    payload: SignUpRequest,
    response: Response,
    repo: UserRepository = Depends(get_user_repo),
    manager: SessionManager = Depends(get_session_manager),
):
    user, token = await auth_service.sign_up(repo, manager, payload)
    manager.set_session_cookie(response, token)
    return AuthResponse(message="User registered", user=UserPublic.model_validate(user))


@router.post("/sign-in", response_model=AuthResponse)
async def sign_in(
    payload: SignInRequest,
    response: Response,
    repo: UserRepository = Depends(get_user_repo),
    manager: SessionManager = Depends(get_session_manager),
):
    user, token = await auth_service.sign_in(repo, manager, payload)
    manager.set_session_cookie(response, token)
    return AuthResponse(message="User signed in successfully", user=UserPublic.model_validate(user))


@router.post("/sign-out", response_model=MessageResponse)
async def sign_out(
    response: Response,
    claims: Optional[TokenClaims] = Depends(get_current_claims),
    manager: SessionManager = Depends(get_session_manager),
):
    # 세션이 없어도 항상 성공 (토큰 자체는 만료 전까지 유효함)
    manager.clear_session_cookie(response)
    logger.info("User signed out", extra={"userId": claims.sub if claims else None})
    return MessageResponse(message="User signed out successfully")


@router.get("/me", response_model=UserPublic)
async def get_my_info(current_user: User = Depends(require_user)):
    """현재 쿠키 세션의 사용자 정보를 반환합니다."""
    return current_user
