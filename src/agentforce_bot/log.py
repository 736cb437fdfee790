"""Structured logging setup: structlog rendered through stdlib handlers."""

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

import structlog
from structlog.types import EventDict, WrappedLogger

from agentforce_bot.config import Settings

# Values under these keys never reach a handler.
SENSITIVE_KEYS: frozenset[str] = frozenset({
    "access_token",
    "authorization",
    "client_secret",
    "app_password",
    "password",
    "token",
})

REDACTED = "[REDACTED]"

# Libraries that log every request at INFO.
NOISY_LOGGERS = ("httpx", "httpcore")


def redact_secrets(_logger: WrappedLogger, _method_name: str, event_dict: EventDict) -> EventDict:
    for key in SENSITIVE_KEYS.intersection(event_dict):
        event_dict[key] = REDACTED
    return event_dict


def _handlers(settings: Settings) -> list[logging.Handler]:
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if settings.log_file:
        path = Path(settings.log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(
            RotatingFileHandler(
                filename=path,
                maxBytes=settings.log_file_max_bytes,
                backupCount=settings.log_file_backup_count,
                encoding="utf-8",
            )
        )
    return handlers


def configure_logging(settings: Settings) -> None:
    """Install handlers on the root logger and configure structlog.

    Without ``LOG_FILE`` events go to the console through structlog's
    ConsoleRenderer. With it, every handler emits JSON lines and the file
    rotates at ``LOG_FILE_MAX_BYTES``. Anything bound with
    ``structlog.contextvars`` is merged into each event, which is how the
    conversation id of the current turn reaches the session and client
    log lines.
    """
    level = getattr(logging, settings.log_level.upper(), logging.INFO)

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()
    for handler in _handlers(settings):
        handler.setLevel(level)
        handler.setFormatter(logging.Formatter("%(message)s"))
        root.addHandler(handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    renderer: Any = (
        structlog.processors.JSONRenderer()
        if settings.log_file
        else structlog.dev.ConsoleRenderer()
    )
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            redact_secrets,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
