"""
Centralized logging configuration for the cart service.

Usage:
    from cartstore.logging import get_logger, bind_logger
    logger = get_logger(__name__)

    logger.info("Operation completed")
    log = bind_logger(logger, ctx)
    log.warning("Cart %s not found", cart_id)
"""

import logging
import os
import sys
from functools import cache
from typing import TYPE_CHECKING, Any, MutableMapping

if TYPE_CHECKING:
    from cartstore.context import RequestContext

# Default format for logs
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_FORMAT_SIMPLE = "%(levelname)s - %(name)s - %(message)s"


def _get_log_level() -> int:
    """Get log level from environment or default to INFO."""
    level_name = os.environ.get("LOG_LEVEL", "INFO").upper()
    return getattr(logging, level_name, logging.INFO)


def _configure_root_logger() -> None:
    """Configure root logger with appropriate handlers."""
    root = logging.getLogger()

    # Only configure if no handlers exist
    if root.handlers:
        return

    root.setLevel(_get_log_level())

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(_get_log_level())

    # Compact format in production, detailed locally
    is_production = os.environ.get("APP_ENV", "").lower() == "production"
    formatter = logging.Formatter(LOG_FORMAT_SIMPLE if is_production else LOG_FORMAT)
    handler.setFormatter(formatter)

    root.addHandler(handler)

    # Catalogue requests are logged by the client itself
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


# Configure once on module import
_configure_root_logger()


@cache
def get_logger(name: str) -> logging.Logger:
    """
    Get or create a logger with the given name.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured logger instance
    """
    return logging.getLogger(name)


class CorrelationAdapter(logging.LoggerAdapter):
    """Prefixes every message with the request's correlation id."""

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> tuple[Any, MutableMapping[str, Any]]:
        return f"[{self.extra['correlation_id']}] {msg}", kwargs


def bind_logger(logger: logging.Logger, ctx: "RequestContext") -> CorrelationAdapter:
    """Return a logger adapter bound to the correlation id of ctx."""
    return CorrelationAdapter(logger, {"correlation_id": ctx.correlation_id})


def _escape_log_injection(value: str) -> str:
    """
    Escape characters that could be used for log injection attacks (CWE-117).

    Args:
        value: String to escape

    Returns:
        Escaped string safe for logging
    """
    return (
        value.replace("\n", "\\n")
        .replace("\r", "\\r")
        .replace("\t", "\\t")
        .replace("\x00", "")
    )


def sanitize_id_for_logging(id_value: str | None, max_length: int = 36) -> str:
    """
    Sanitize a user-supplied id (cart id, sku) for safe logging.

    Escapes log injection characters and truncates overly long values.

    Args:
        id_value: ID value to sanitize (can be None)
        max_length: Maximum length to keep (default: 36, a UUID)

    Returns:
        Sanitized ID string or "N/A" if None/empty
    """
    if not id_value:
        return "N/A"
    safe_value = _escape_log_injection(str(id_value))
    return safe_value[:max_length] if len(safe_value) > max_length else safe_value


__all__ = [
    "LOG_FORMAT",
    "LOG_FORMAT_SIMPLE",
    "CorrelationAdapter",
    "bind_logger",
    "get_logger",
    "sanitize_id_for_logging",
]
