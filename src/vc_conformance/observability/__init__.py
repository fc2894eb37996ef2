"""Observability helpers (structured logging)."""

from vc_conformance.observability.logging import (
    configure_logging,
    get_logger,
    sanitize_for_logging,
)

__all__ = ["configure_logging", "get_logger", "sanitize_for_logging"]
