"""Structured logging configuration for the conformance harness.

This module configures structlog for structured logging with support for
both development (console) and machine-readable (JSON) output formats.

Environment Variables:
    VC_CONFORMANCE_LOG_FORMAT: Set to "json" for JSON output, "console" for colored output
    VC_CONFORMANCE_LOG_LEVEL: Set log level (DEBUG, INFO, WARNING, ERROR)

Example:
    >>> from vc_conformance.observability.logging import get_logger, configure_logging
    >>>
    >>> configure_logging(log_format="json", log_level="INFO")
    >>> logger = get_logger("vc_conformance.client")
    >>> logger.info("issuer.submit", implementation="acme")
"""

import logging
import os
import sys
from typing import Any

import structlog
from structlog.typing import Processor

DEFAULT_LOG_LEVEL = "WARNING"
DEFAULT_LOG_FORMAT = "console"
DEFAULT_SERVICE_NAME = "vc-conformance"

ENV_LOG_FORMAT = "VC_CONFORMANCE_LOG_FORMAT"
ENV_LOG_LEVEL = "VC_CONFORMANCE_LOG_LEVEL"

REDACTED_PLACEHOLDER = "***REDACTED***"

# Key substrings (case-insensitive) that indicate sensitive data to redact
_SENSITIVE_KEY_PATTERNS = frozenset(
    {"password", "token", "secret", "key", "authorization", "auth", "capability"}
)

_logging_configured = False


def _is_sensitive_key(key: str) -> bool:
    lower = key.lower()
    return any(pattern in lower for pattern in _SENSITIVE_KEY_PATTERNS)


def sanitize_for_logging(data: dict[str, Any]) -> dict[str, Any]:
    """Return a copy of ``data`` with sensitive values replaced.

    Keys matching (case-insensitive) password, token, secret, key,
    authorization, auth or capability have their values replaced with
    REDACTED_PLACEHOLDER. Nested dicts and lists of dicts are handled
    recursively.

    Example:
        >>> sanitize_for_logging({"Authorization": "Bearer abc", "accept": "json"})
        {'Authorization': '***REDACTED***', 'accept': 'json'}
    """
    if not data:
        return {}
    result: dict[str, Any] = {}
    for k, v in data.items():
        if _is_sensitive_key(k):
            result[k] = REDACTED_PLACEHOLDER
        elif isinstance(v, dict):
            result[k] = sanitize_for_logging(v)
        elif isinstance(v, list):
            result[k] = [
                sanitize_for_logging(item) if isinstance(item, dict) else item for item in v
            ]
        else:
            result[k] = v
    return result


def _get_shared_processors() -> list[Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]


def configure_logging(
    log_format: str | None = None,
    log_level: str | None = None,
    force: bool = False,
) -> None:
    """Configure structured logging for the harness.

    Logs go to stderr so that reports written to stdout stay parseable.

    Args:
        log_format: "json" or "console". Defaults to env var or "console"
        log_level: Minimum log level. Defaults to env var or "WARNING"
        force: If True, reconfigure even if already configured
    """
    global _logging_configured

    if _logging_configured and not force:
        return

    log_format = (log_format or os.environ.get(ENV_LOG_FORMAT, DEFAULT_LOG_FORMAT)).lower()
    log_level = (log_level or os.environ.get(ENV_LOG_LEVEL, DEFAULT_LOG_LEVEL)).upper()

    shared_processors = _get_shared_processors()

    if log_format == "json":
        renderer: Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(
            colors=sys.stderr.isatty(),
            exception_formatter=structlog.dev.plain_traceback,
        )

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, log_level, logging.WARNING))

    structlog.contextvars.bind_contextvars(service=DEFAULT_SERVICE_NAME)

    _logging_configured = True


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structured logger for the given name.

    Configures logging with default settings on first use.

    Example:
        >>> logger = get_logger(__name__)
        >>> logger = logger.bind(implementation="acme")
        >>> logger.info("scenario.passed", scenario="issue-valid")
    """
    if not _logging_configured:
        configure_logging()

    return structlog.stdlib.get_logger(name)


__all__ = [
    "REDACTED_PLACEHOLDER",
    "configure_logging",
    "get_logger",
    "sanitize_for_logging",
]
