"""Utility modules for logging and request tracing."""

from metric_connectors.utils.logging import (
    bind_invocation_context,
    configure_logging,
    get_logger,
)

__all__ = ["bind_invocation_context", "configure_logging", "get_logger"]
