import sys
import logging
from typing import Dict, Any, Optional
from datetime import datetime, timezone
from bookify.config import settings

LOG_FORMAT = '%(asctime)s | %(levelname)s | %(name)s | %(message)s'

# Kept at WARNING whatever the app level is
QUIET_LOGGERS = (
    "uvicorn.access",
    "asyncpg",
    "python_multipart.multipart",
    "botocore",
    "boto3",
    "s3transfer",
    "httpcore",
    "httpx",
    "urllib3",
)


class ColoredFormatter(logging.Formatter):
    """Level name wrapped in an ANSI color, for terminals"""

    LEVEL_COLORS = {
        logging.DEBUG: '\033[36m',
        logging.INFO: '\033[32m',
        logging.WARNING: '\033[33m',
        logging.ERROR: '\033[31m',
        logging.CRITICAL: '\033[1;31m',
    }
    RESET = '\033[0m'

    def format(self, record: logging.LogRecord) -> str:
        plain = record.levelname
        color = self.LEVEL_COLORS.get(record.levelno)
        if color:
            record.levelname = f"{color}{plain:<8}{self.RESET}"
        try:
            return super().format(record)
        finally:
            record.levelname = plain


def setup_logging() -> logging.Logger:
    """Route every logger to stdout; DEBUG when settings.debug is on"""
    level = logging.DEBUG if settings.debug else logging.INFO

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    if sys.stdout.isatty():
        handler.setFormatter(ColoredFormatter(LOG_FORMAT, datefmt='%Y-%m-%d %H:%M:%S'))
    else:
        handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt='%Y-%m-%d %H:%M:%S'))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return root


def log_request_context(user_id: Optional[str] = None) -> Dict[str, Any]:
    """Timestamp plus a shortened user id, attached to error log records"""
    context: Dict[str, Any] = {"timestamp": datetime.now(timezone.utc).isoformat()}
    if user_id:
        context["user_id"] = f"{str(user_id)[:8]}..."
    return context
