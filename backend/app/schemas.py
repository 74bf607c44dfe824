from __future__ import annotations
from typing import Optional, Literal, List
from pydantic import BaseModel, Field, EmailStr, field_validator, model_validator
from datetime import datetime

EMAIL_MAX_LENGTH = 255


def _normalize_email(value):
    # 이메일은 대소문자 구분 없이 식별하므로 입력 단계에서 정규화
    if isinstance(value, str):
        value = value.strip().lower()
        if len(value) > EMAIL_MAX_LENGTH:
            raise ValueError(f"Email must be at most {EMAIL_MAX_LENGTH} characters")
    return value


# 인증
class SignUpRequest(BaseModel):
    """
    POST /api/auth/sign-up 요청 스키마.
    """
    name: Optional[str] = Field(None, min_length=2, max_length=255)
    email: EmailStr
    # role 은 받지 않음: 가입은 항상 일반 사용자, 관리자 승격은 PUT /api/users/{id}
    password: str = Field(..., min_length=6, max_length=128)

    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, v):
        return _normalize_email(v)


class SignInRequest(BaseModel):
    """
    POST /api/auth/sign-in 요청 스키마.
    """
    email: EmailStr
    password: str = Field(..., min_length=1)

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, v):
        return _normalize_email(v)


class TokenClaims(BaseModel):
    """검증이 끝난 세션 토큰의 클레임."""
    sub: str = Field(..., min_length=1)
    email: Optional[str] = None
    role: Literal["user", "admin"]
    iat: datetime
    exp: datetime

    @property
    def user_id(self) -> int:
        return int(self.sub)


# 사용자
class UserPublic(BaseModel):
    """
    API 응답에서 비밀번호 해시를 제외하고
    안전하게 사용자 정보를 반환하기 위한 스키마.
    """
    id: int
    name: Optional[str] = None
    email: EmailStr
    role: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class UserUpdateRequest(BaseModel):
    name: Optional[str] = Field(None, min_length=2, max_length=255)
    email: Optional[EmailStr] = None
    role: Optional[Literal["user", "admin"]] = None

    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, v):
        return _normalize_email(v)

    @model_validator(mode="after")
    def at_least_one_field(self):
        if not self.model_dump(exclude_unset=True, exclude_none=True):
            raise ValueError("At least one field must be provided to update")
        return self


class MessageResponse(BaseModel):
    message: str


class AuthResponse(BaseModel):
    message: str
    user: UserPublic


class UserResponse(BaseModel):
    message: str
    user: UserPublic


class UserListResponse(BaseModel):
    message: str
    users: List[UserPublic]
    count: int
