"""Structured logging for KozyTrack.

JSON records go to logs/kozytrack.log (10MB rotation, 5 backups) and a
human-readable copy goes to the console. Every record passes through a
redaction filter so OAuth codes and tokens never reach either output.
"""

import logging
import re
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

from pythonjsonlogger import jsonlogger

DEFAULT_LOG_DIR = Path(__file__).resolve().parent.parent / "logs"
LOG_FILE_NAME = "kozytrack.log"

# Query/form parameters whose values are masked
SENSITIVE_PARAMS = (
    "code",
    "token",
    "secret",
    "refresh_token",
    "access_token",
    "client_secret",
    "authorization",
    "bearer",
)
_SENSITIVE_PATTERN = re.compile(rf"\b({'|'.join(SENSITIVE_PARAMS)})=([^&\s\"]+)")

# Third-party loggers that are too chatty at INFO
QUIET_LOGGERS = {
    "httpx": logging.WARNING,
    "httpcore": logging.WARNING,
    "discord": logging.WARNING,
    "discord.gateway": logging.ERROR,
    "lyricsgenius": logging.WARNING,
    "uvicorn.access": logging.WARNING,
    "uvicorn.error": logging.WARNING,
}


def redact_sensitive_data(text: str) -> str:
    """Mask sensitive parameter values in a URL, query string or form body.

    Examples:
        >>> redact_sensitive_data("/callback?code=abc&state=kozytrack-state")
        '/callback?code=***REDACTED***&state=kozytrack-state'
    """
    return _SENSITIVE_PATTERN.sub(r"\1=***REDACTED***", text)


class RedactingFilter(logging.Filter):
    """Redact the rendered message and string extra fields of each record."""

    def filter(self, record: logging.LogRecord) -> bool:
        if record.args:
            record.msg = record.getMessage()
            record.args = None
        if isinstance(record.msg, str):
            record.msg = redact_sensitive_data(record.msg)
        for key in ("url", "proxy", "error"):
            value = getattr(record, key, None)
            if isinstance(value, str):
                setattr(record, key, redact_sensitive_data(value))
        return True


class BotJsonFormatter(jsonlogger.JsonFormatter):
    """JSON formatter that tags every record with the service name."""

    def add_fields(self, log_record: dict[str, Any], record: logging.LogRecord, message_dict: dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record.setdefault("service", "kozytrack")
        log_record["level"] = record.levelname


def _file_handler(log_dir: Path) -> logging.Handler:
    handler = RotatingFileHandler(
        log_dir / LOG_FILE_NAME,
        maxBytes=10 * 1024 * 1024,
        backupCount=5,
        encoding="utf-8",
    )
    handler.setFormatter(
        BotJsonFormatter(
            "%(asctime)s %(name)s %(message)s %(filename)s %(lineno)d",
            timestamp=True,
        )
    )
    # File keeps everything the root logger lets through
    handler.setLevel(logging.DEBUG)
    return handler


def _console_handler(level: int) -> logging.Handler:
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    handler.setLevel(level)
    return handler


def setup_logging(log_level: str = "INFO", log_dir: Path | None = None) -> logging.Logger:
    """Configure the root logger for the bot.

    Args:
        log_level: Logging level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_dir: Directory for the JSON log file, defaults to <project>/logs

    Returns:
        Configured root logger
    """
    level = logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    log_dir = log_dir or DEFAULT_LOG_DIR
    log_dir.mkdir(parents=True, exist_ok=True)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    redactor = RedactingFilter()
    for handler in (_file_handler(log_dir), _console_handler(level)):
        handler.addFilter(redactor)
        root_logger.addHandler(handler)

    for name, quiet_level in QUIET_LOGGERS.items():
        logging.getLogger(name).setLevel(quiet_level)

    return root_logger


def set_log_level(log_level: str) -> None:
    """Apply a validated level to the root logger and the console.

    The JSON file handler stays at DEBUG and follows the root level.
    """
    level = logging.getLevelName(log_level.upper())
    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    for handler in root_logger.handlers:
        if not isinstance(handler, RotatingFileHandler):
            handler.setLevel(level)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def log_with_context(
    logger: logging.Logger,
    level: str,
    message: str,
    **extra_fields: Any,
) -> None:
    """Log a message with structured context fields.

    Args:
        logger: Logger instance
        level: Level name (debug, info, warning, error, critical)
        message: Log message
        **extra_fields: Fields added to the JSON record (e.g. event_type, track_id, channel_id)
    """
    getattr(logger, level.lower())(message, extra=extra_fields)
