"""Structured JSON logging configuration."""

import json
import logging
import os
from datetime import datetime, timezone
from typing import Any, Dict

from app.config import Settings


class JSONFormatter(logging.Formatter):
    """Format log records as JSON lines."""

    # Standard LogRecord attributes that should not be included as extra fields
    _STANDARD_ATTRS = {
        'name', 'msg', 'args', 'created', 'filename', 'funcName', 'levelname',
        'levelno', 'lineno', 'module', 'msecs', 'message', 'pathname',
        'process', 'processName', 'relativeCreated', 'thread', 'threadName',
        'exc_info', 'exc_text', 'stack_info', 'taskName'
    }

    def __init__(self, service: str = "acquisitions-api"):
        super().__init__()
        self.service = service

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace('+00:00', 'Z'),
            "level": record.levelname,
            "logger": record.name,
            "service": self.service,
            "message": record.getMessage(),
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        # logger.info("...", extra={"userId": 1}) 로 넘긴 값은 record 속성으로 들어옴
        for key, value in record.__dict__.items():
            if key not in self._STANDARD_ATTRS and not callable(value):
                log_data[key] = value

        return json.dumps(log_data, default=str)


def setup_logging(settings: Settings) -> None:
    """Configure root logging once at startup.

    JSON files (error.log, combined.log) when file logging is on,
    plus a readable console stream outside production.
    """
    handlers: list[logging.Handler] = []

    if settings.log_to_file:
        os.makedirs(settings.log_dir, exist_ok=True)
        error_handler = logging.FileHandler(os.path.join(settings.log_dir, "error.log"))
        error_handler.setLevel(logging.ERROR)
        error_handler.setFormatter(JSONFormatter())
        combined_handler = logging.FileHandler(os.path.join(settings.log_dir, "combined.log"))
        combined_handler.setFormatter(JSONFormatter())
        handlers.extend([error_handler, combined_handler])

    if not settings.is_production or not handlers:
        console = logging.StreamHandler()
        if settings.is_production:
            console.setFormatter(JSONFormatter())
        else:
            console.setFormatter(logging.Formatter("%(asctime)s %(levelname)s [%(name)s] %(message)s"))
        handlers.append(console)

    root_logger = logging.getLogger()
    root_logger.setLevel(settings.log_level)
    root_logger.handlers = handlers

    # uvicorn access 로그는 미들웨어에서 직접 남기므로 경고 이상만
    uvicorn_access = logging.getLogger("uvicorn.access")
    uvicorn_access.handlers = handlers
    uvicorn_access.setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
