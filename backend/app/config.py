# backend/app/config.py
from __future__ import annotations
import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Tuple

# 개발용 기본 시크릿 (production 에서는 사용 금지)
_DEV_JWT_SECRET = "dev-secret-change-me"


def _get_bool_env(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _get_positive_int_env(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError:
        raise RuntimeError(f"{name} must be an integer, got {raw!r}") from None
    # 0 이하면 토큰/쿠키가 즉시 만료되므로 시작 단계에서 거부
    if value <= 0:
        raise RuntimeError(f"{name} must be a positive integer, got {value}")
    return value


@dataclass(frozen=True)
class Settings:
    """
    프로세스 전체에서 공유하는 설정값.
    시작 시 한 번 만들어지고 이후 변경되지 않습니다.
    """
    environment: str = "development"
    jwt_secret: str = _DEV_JWT_SECRET
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 60 * 24
    cookie_name: str = "token"
    cookie_max_age_minutes: int = 15
    cookie_samesite: str = "strict"
    password_hash_rounds: int = 29000
    database_url: str = "postgresql+asyncpg://localhost/acquisitions"
    log_level: str = "INFO"
    log_dir: str = "logs"
    log_to_file: bool = True
    cors_origins: Tuple[str, ...] = ("http://localhost:3000",)

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @classmethod
    def from_env(cls) -> "Settings":
        environment = os.environ.get("APP_ENV", "development").strip().lower()
        secret = os.environ.get("JWT_SECRET")
        if not secret:
            if environment == "production":
                raise RuntimeError("JWT_SECRET environment variable is required in production")
            secret = _DEV_JWT_SECRET

        origins = tuple(
            part.strip()
            for part in os.environ.get("CORS_ORIGINS", "http://localhost:3000").split(",")
            if part.strip()
        )

        return cls(
            environment=environment,
            jwt_secret=secret,
            jwt_algorithm=os.environ.get("JWT_ALGORITHM", "HS256"),
            access_token_expire_minutes=_get_positive_int_env("ACCESS_TOKEN_EXPIRE_MINUTES", 60 * 24),
            cookie_name=os.environ.get("COOKIE_NAME", "token"),
            cookie_max_age_minutes=_get_positive_int_env("COOKIE_MAX_AGE_MINUTES", 15),
            cookie_samesite=os.environ.get("COOKIE_SAMESITE", "strict").lower(),
            password_hash_rounds=_get_positive_int_env("PASSWORD_HASH_ROUNDS", 29000),
            database_url=(
                os.environ.get("ASYNC_DATABASE_URL")
                or os.environ.get("DATABASE_URL")
                or "postgresql+asyncpg://localhost/acquisitions"
            ),
            log_level=os.environ.get("LOG_LEVEL", "INFO").upper(),
            log_dir=os.environ.get("LOG_DIR", "logs"),
            log_to_file=_get_bool_env("LOG_TO_FILE", True),
            cors_origins=origins,
        )


@lru_cache
def get_settings() -> Settings:
    return Settings.from_env()
