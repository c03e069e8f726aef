"""structlog configuration for connector processes.

JSON output in production, human-readable console output otherwise.
Every event carries the connector name once one is bound, and the
transport libraries underneath ``HttpClient`` and ``PollingTask`` are kept
at WARNING unless the process runs at DEBUG.
"""

from __future__ import annotations

import logging

import structlog

from src.resolvers.config import Environment, Settings, get_settings

_SECRET_KEYS = {"authorization", "password", "client_secret", "access_token", "refresh_token", "api_key"}

# HttpClient and PollingTask already log these calls as structured events.
_NOISY_LOGGERS = ("httpx", "httpcore", "apscheduler")


def redact_secrets(logger, method_name, event_dict):
    """Mask credential-looking keys before rendering."""
    for key in list(event_dict):
        if key.lower() in _SECRET_KEYS:
            event_dict[key] = "***"
    return event_dict


def bind_connector(name: str) -> None:
    """Attach ``connector=name`` to every event logged from this context."""
    structlog.contextvars.bind_contextvars(connector=name)


def configure_structlog(
    settings: Settings | None = None,
    connector: str | None = None,
    json_logs: bool | None = None,
) -> None:
    """Configure structlog for a connector process.

    ``json_logs`` overrides the environment-based renderer choice.
    """
    settings = settings or get_settings()
    level = logging.getLevelName(settings.LOG_LEVEL.upper())
    if not isinstance(level, int):
        level = logging.INFO

    logging.basicConfig(format="%(message)s", level=level)
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(level if level <= logging.DEBUG else logging.WARNING)

    if json_logs is None:
        json_logs = settings.ENVIRONMENT == Environment.production

    processors: list = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        redact_secrets,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.JSONRenderer() if json_logs else structlog.dev.ConsoleRenderer(),
    ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    structlog.contextvars.clear_contextvars()
    if connector:
        bind_connector(connector)
