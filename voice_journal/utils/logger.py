"""
Logging configuration for structured text logging.
"""
import logging
import sys
from typing import Dict
from voice_journal.config import settings

ROOT_LOGGER_NAME = "voice_journal"

# Attributes every LogRecord carries; anything else was passed as a structured field
_RECORD_ATTRIBUTES = {
    "name", "msg", "args", "created", "filename", "funcName",
    "levelname", "levelno", "lineno", "module", "msecs",
    "message", "pathname", "process", "processName", "relativeCreated",
    "thread", "threadName", "exc_info", "exc_text", "stack_info",
    "taskName"
}


class StructuredFormatter(logging.Formatter):
    """Custom formatter for structured text logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record with structured key-value pairs."""
        timestamp = self.formatTime(record, "%Y-%m-%d %H:%M:%S")
        base_msg = f"{timestamp}.{int(record.msecs):03d} | {record.levelname:8} | {record.name} | {record.getMessage()}"

        extra_fields = {
            key: value
            for key, value in record.__dict__.items()
            if key not in _RECORD_ATTRIBUTES
        }
        if extra_fields:
            base_msg += " | " + " ".join(f"{k}={v}" for k, v in extra_fields.items())

        if record.exc_info:
            base_msg += "\n" + self.formatException(record.exc_info)

        return base_msg


def setup_logging() -> logging.Logger:
    """
    Configure and return application logger.

    Supports per-module log level configuration via environment variables:
    - APP_LOG_LEVEL: Application logs (default: LOG_LEVEL)
    - SQLALCHEMY_LOG_LEVEL: SQLAlchemy logs (default: WARNING)
    - UVICORN_LOG_LEVEL: Uvicorn logs (default: INFO)
    - HTTPX_LOG_LEVEL: HTTPX logs (default: WARNING)
    - ASYNCPG_LOG_LEVEL: AsyncPG logs (default: WARNING)

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    app_log_level = (settings.APP_LOG_LEVEL or settings.LOG_LEVEL).upper()
    logger.setLevel(getattr(logging, app_log_level))

    # Remove existing handlers to avoid duplicates on reload
    logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(getattr(logging, app_log_level))
    console_handler.setFormatter(StructuredFormatter())
    logger.addHandler(console_handler)

    logger.propagate = False

    log_config = _configure_third_party_loggers()
    logger.debug(
        "Log levels configured",
        extra={"app_level": app_log_level, **log_config}
    )

    return logger


def _configure_third_party_loggers() -> Dict[str, str]:
    """
    Configure log levels for third-party libraries.

    Returns:
        Dictionary mapping library names to configured levels
    """
    levels = {
        "sqlalchemy": (settings.SQLALCHEMY_LOG_LEVEL or "WARNING").upper(),
        "uvicorn": (settings.UVICORN_LOG_LEVEL or "INFO").upper(),
        "httpx": (settings.HTTPX_LOG_LEVEL or "WARNING").upper(),
        "asyncpg": (settings.ASYNCPG_LOG_LEVEL or "WARNING").upper(),
    }

    # SQLAlchemy (database queries, connection pool)
    logging.getLogger("sqlalchemy.engine").setLevel(getattr(logging, levels["sqlalchemy"]))
    logging.getLogger("sqlalchemy.pool").setLevel(getattr(logging, levels["sqlalchemy"]))

    logging.getLogger("uvicorn").setLevel(getattr(logging, levels["uvicorn"]))
    logging.getLogger("uvicorn.access").setLevel(getattr(logging, levels["uvicorn"]))

    # HTTPX (speech-to-text client)
    logging.getLogger("httpx").setLevel(getattr(logging, levels["httpx"]))

    logging.getLogger("asyncpg").setLevel(getattr(logging, levels["asyncpg"]))

    return {f"{name}_level": level for name, level in levels.items()}


class StructuredLogger:
    """Wrapper around logging.Logger that supports keyword arguments for structured logging."""

    def __init__(self, logger: logging.Logger):
        self._logger = logger

    def _log(self, level: int, msg: str, *args, **kwargs):
        """Log with structured extra fields."""
        exc_info = kwargs.pop('exc_info', False)

        # Prefix reserved field names to avoid clobbering LogRecord attributes
        extra = {
            (f"ctx_{key}" if key in _RECORD_ATTRIBUTES else key): value
            for key, value in kwargs.items()
        }

        self._logger.log(level, msg, *args, extra=extra, exc_info=exc_info, stacklevel=3)

    def debug(self, msg: str, *args, **kwargs):
        self._log(logging.DEBUG, msg, *args, **kwargs)

    def info(self, msg: str, *args, **kwargs):
        self._log(logging.INFO, msg, *args, **kwargs)

    def warning(self, msg: str, *args, **kwargs):
        self._log(logging.WARNING, msg, *args, **kwargs)

    def error(self, msg: str, *args, **kwargs):
        self._log(logging.ERROR, msg, *args, **kwargs)

    def critical(self, msg: str, *args, **kwargs):
        self._log(logging.CRITICAL, msg, *args, **kwargs)


def get_logger(name: str) -> StructuredLogger:
    """
    Get a structured logger with the specified name under the package namespace.

    Args:
        name: Logger name (will be prefixed with 'voice_journal.')

    Returns:
        StructuredLogger instance
    """
    return StructuredLogger(logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}"))


# Initialize application logger
app_logger = setup_logging()
