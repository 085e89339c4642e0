"""Structured logging configuration using structlog.

- Development: Human-readable colored console output
- Production: JSON formatted output for log aggregation
- Files: backend.log for the application, sync.log for ingestion activity

Usage:
    from seismistats.core.logging import setup_logging, get_logger

    setup_logging()

    logger = get_logger(__name__)
    logger.info("backfill_started", chunks=12)
"""

import logging
import sys
import uuid
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

import structlog
from structlog.types import Processor

from seismistats.core.logging_filters import NonSyncLogFilter, SyncLogFilter


def get_log_level(level_name: str) -> int:
    """Convert log level name to logging constant."""
    levels = {
        "DEBUG": logging.DEBUG,
        "INFO": logging.INFO,
        "WARNING": logging.WARNING,
        "ERROR": logging.ERROR,
        "CRITICAL": logging.CRITICAL,
    }
    return levels.get(level_name.upper(), logging.INFO)


def _file_pre_chain() -> list[Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]


def setup_logging(
    log_level: str = "INFO",
    log_format: str = "auto",
    is_development: bool = True,
    logs_dir: str | None = None,
    log_to_file: bool = False,
    log_file_max_bytes: int = 10 * 1024 * 1024,
    log_file_backup_count: int = 5,
    for_celery: bool = False,
) -> None:
    """
    Configure structured logging for the application.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: Output format - 'auto' (based on environment), 'console', or 'json'
        is_development: Whether running in development mode
        logs_dir: Directory for log files (if log_to_file is True)
        log_to_file: Whether to also write logs to files
        log_file_max_bytes: Max size of each log file before rotation
        log_file_backup_count: Number of backup files to keep
        for_celery: Route Celery's own loggers through the same handlers
    """
    level = get_log_level(log_level)

    if log_format == "auto":
        use_json = not is_development
    else:
        use_json = log_format == "json"

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    structlog.configure(
        processors=shared_processors + [
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    if use_json:
        formatter = structlog.stdlib.ProcessorFormatter(
            processor=structlog.processors.JSONRenderer(),
            foreign_pre_chain=shared_processors,
        )
    else:
        formatter = structlog.stdlib.ProcessorFormatter(
            processor=structlog.dev.ConsoleRenderer(
                colors=True,
                exception_formatter=structlog.dev.plain_traceback,
            ),
            foreign_pre_chain=shared_processors,
        )

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers = []

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    console_handler.setLevel(level)
    root_logger.addHandler(console_handler)

    if log_to_file and logs_dir:
        _add_rotating_handler(
            root_logger,
            logs_dir=logs_dir,
            filename="backend.log",
            log_filter=NonSyncLogFilter(),
            level=level,
            max_bytes=log_file_max_bytes,
            backup_count=log_file_backup_count,
        )
        _add_rotating_handler(
            root_logger,
            logs_dir=logs_dir,
            filename="sync.log",
            log_filter=SyncLogFilter(),
            level=level,
            max_bytes=log_file_max_bytes,
            backup_count=log_file_backup_count,
        )

    _configure_library_loggers(level)

    if for_celery:
        _configure_celery_loggers(level)


def _add_rotating_handler(
    logger: logging.Logger,
    logs_dir: str,
    filename: str,
    log_filter: logging.Filter,
    level: int,
    max_bytes: int,
    backup_count: int,
) -> None:
    """Add a rotating JSON file handler restricted by log_filter."""
    log_path = Path(logs_dir)
    log_path.mkdir(parents=True, exist_ok=True)

    # Files are always JSON for machine parsing
    json_formatter = structlog.stdlib.ProcessorFormatter(
        processor=structlog.processors.JSONRenderer(),
        foreign_pre_chain=_file_pre_chain(),
    )

    handler = RotatingFileHandler(
        log_path / filename,
        maxBytes=max_bytes,
        backupCount=backup_count,
        encoding="utf-8",
    )
    handler.setFormatter(json_formatter)
    handler.setLevel(level)
    handler.addFilter(log_filter)
    logger.addHandler(handler)


def _configure_library_loggers(app_level: int) -> None:
    """Set appropriate log levels for third-party libraries."""
    noisy_loggers = [
        "uvicorn.access",
        "uvicorn.error",
        "sqlalchemy.engine",
        "sqlalchemy.pool",
        "httpx",
        "httpcore",
        "celery",
        "celery.worker",
        "celery.app.trace",
        "asyncio",
        "redis",
    ]

    min_level = max(logging.WARNING, app_level)

    for logger_name in noisy_loggers:
        logging.getLogger(logger_name).setLevel(min_level)

    # uvicorn.error should always show errors
    logging.getLogger("uvicorn.error").setLevel(logging.ERROR)


def _configure_celery_loggers(level: int) -> None:
    """Make Celery loggers propagate to the structlog-formatted root."""
    celery_loggers = [
        "celery",
        "celery.worker",
        "celery.task",
        "celery.app.trace",
        "celery.beat",
    ]

    for logger_name in celery_loggers:
        logger = logging.getLogger(logger_name)
        logger.setLevel(level)
        logger.handlers = []
        logger.propagate = True


def get_logger(name: str = __name__) -> structlog.stdlib.BoundLogger:
    """
    Get a structured logger instance.

    Args:
        name: Logger name (typically __name__ of the calling module)

    Returns:
        A bound logger instance with structured logging capabilities

    Example:
        logger = get_logger(__name__)
        logger.info("chunk_completed", index=3, events=120)
        logger.error("upstream_error", error=str(e), status_code=503)
    """
    return structlog.stdlib.get_logger(name)


class LoggingMiddleware:
    """
    ASGI middleware for request logging.

    Adds correlation ID and request context to all logs within a request.
    Skips logging for health check and progress polling endpoints.
    """

    SKIP_PATHS = {"/health", "/api/v1/health", "/api/v1/sync/seed/progress"}

    def __init__(self, app: Any) -> None:
        self.app = app
        self.logger = get_logger("http")

    async def __call__(self, scope: dict, receive: Any, send: Any) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        path = scope.get("path", "")

        if path in self.SKIP_PATHS:
            await self.app(scope, receive, send)
            return

        correlation_id = str(uuid.uuid4())[:8]

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            correlation_id=correlation_id,
            path=path,
            method=scope.get("method", ""),
        )

        status_code = 500

        async def send_wrapper(message: dict) -> None:
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = message.get("status", 500)
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        finally:
            log_method = self.logger.info if status_code < 400 else self.logger.warning
            log_method(
                "request_completed",
                status_code=status_code,
            )
            structlog.contextvars.clear_contextvars()
