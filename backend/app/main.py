# /backend/app/main.py

from __future__ import annotations
import os
import time
import logging
from datetime import datetime, timezone
from dotenv import load_dotenv
load_dotenv(dotenv_path=os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), ".env"))

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager

from app.config import get_settings
from app.db import dispose_engine
from app.errors import AppError
from app.api.routers import auth, user
from app.utils.logging import setup_logging

settings = get_settings()
setup_logging(settings)

logger = logging.getLogger(__name__)

_started_at = time.monotonic()


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Acquisitions API starting", extra={"environment": settings.environment})
    try:
        yield
    finally:
        # 커넥션 풀 정리
        await dispose_engine()
        logger.info("Acquisitions API stopped")


app = FastAPI(
    title="Acquisitions API",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=list(settings.cors_origins),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def access_log(request: Request, call_next):
    started = time.perf_counter()
    # 처리 중 예외가 전파되어도 한 줄은 남김 (500 으로 기록)
    status = 500
    try:
        response = await call_next(request)
        status = response.status_code
        return response
    finally:
        logger.info(
            f"{request.method} {request.url.path} {status}",
            extra={
                "method": request.method,
                "path": request.url.path,
                "status": status,
                "duration_ms": round((time.perf_counter() - started) * 1000, 2),
            },
        )


def _error_response(status_code: int, message: str, exc: Exception) -> JSONResponse:
    content = {"error": message}
    if status_code >= 500 and not settings.is_production:
        content["detail"] = str(exc)
    return JSONResponse(status_code=status_code, content=content)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    if exc.status_code >= 500:
        logger.error(
            "Unhandled application error",
            exc_info=exc,
            extra={"path": request.url.path, "errorType": type(exc).__name__},
        )
        return _error_response(exc.status_code, "Internal server error", exc)
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    details = []
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "path", "query")]
        details.append({"field": ".".join(loc), "message": err.get("msg", "Invalid value")})
    return JSONResponse(status_code=400, content={"error": "Validation failed", "details": details})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.error("Unhandled exception", exc_info=exc, extra={"path": request.url.path})
    return _error_response(500, "Internal server error", exc)


app.include_router(auth.router)
app.include_router(user.router)


@app.get("/")
async def root():
    return {"message": "Hello from Acquisitions API!"}


@app.get("/health")
async def health():
    return {
        "status": "OK",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "uptime": round(time.monotonic() - _started_at, 3),
    }


@app.get("/api")
async def api_root():
    return {"message": "Acquisitions API is running!"}
