"""
Structured logging for connector invocations using structlog.

Every log line carries the service name, and while an invocation is running
also the connector, event type and region bound through contextvars.
"""

import logging
import sys
from functools import partial
from typing import Any, Optional

import structlog
from structlog.types import EventDict, Processor

from metric_connectors.config import get_settings

# Per-request chatter from the HTTP stack; backend calls are logged by the client.
_QUIET_LOGGERS = ("httpx", "httpcore")


def add_service(service: str, logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    event_dict.setdefault("service", service)
    return event_dict


def add_severity(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """Add severity level for log aggregators that do not read 'level'."""
    event_dict["severity"] = "WARNING" if method_name == "warn" else method_name.upper()
    return event_dict


def configure_logging(level: Optional[str] = None) -> None:
    """
    Configure structlog and the standard library root logger.

    JSON lines outside dev mode when log_format is 'json', a console renderer
    otherwise (uncoloured under test).

    Args:
        level: Overrides the configured log level
    """
    settings = get_settings()
    log_level = getattr(logging, (level or settings.log_level).upper(), logging.INFO)

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=log_level, force=True)
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(log_level, logging.WARNING))

    if settings.log_format == "json" and not settings.dev_mode:
        renderer: Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=not settings.testing)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            partial(add_service, settings.connector_name_prefix),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            add_severity,
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def bind_invocation_context(connector: str, event_type: Any, region: Optional[str]) -> None:
    """Attach invocation fields to every log line of the current request."""
    structlog.contextvars.bind_contextvars(
        connector=connector,
        event_type=event_type,
        region=region,
    )


def get_logger(name: str = __name__) -> structlog.BoundLogger:
    return structlog.get_logger(name)
