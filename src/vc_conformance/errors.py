"""Error taxonomy for the VC issuer conformance harness.

Every failure the harness can observe falls into one of four families so
that a defect in an implementation under test is never confused with a
defect in the harness itself:

- ConfigurationError: an implementation entry cannot be used.
- TransportError: the implementation could not be reached.
- AssertionMismatch: the implementation answered, but not as required.
- HarnessInternalError: fixture or classification logic is broken.
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class FailureCause(str, Enum):
    """Why a scenario execution ended in a failed verdict."""

    CONFIGURATION = "configuration"
    TRANSPORT = "transport"
    ASSERTION_MISMATCH = "assertion-mismatch"
    HARNESS_INTERNAL = "harness-internal"


class ConformanceError(Exception):
    """Base exception for all harness errors.

    Attributes:
        code: Error code following the vc-conformance:<area>/<name> pattern
        message: Human-readable error message
        details: Optional additional error context
    """

    cause: FailureCause = FailureCause.HARNESS_INTERNAL

    def __init__(self, code: str, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Serialize to ``{code, message, details, cause}`` dict."""
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details,
            "cause": self.cause.value,
        }


class ConfigurationError(ConformanceError):
    """Raised when an implementation's configuration is incomplete or unusable.

    Fatal for that implementation's scenarios only; the rest of the run
    continues.
    """

    cause = FailureCause.CONFIGURATION

    def __init__(
        self, implementation: str, reason: str, details: dict[str, Any] | None = None
    ) -> None:
        message = f"Invalid configuration for '{implementation}': {reason}"
        super().__init__(
            code="vc-conformance:config/invalid",
            message=message,
            details={"implementation": implementation, **(details or {})},
        )
        self.implementation = implementation
        self.reason = reason


class TransportError(ConformanceError):
    """Raised when an implementation could not be reached.

    The Issuer Client never raises this itself; it reports transport failures
    as an error outcome, and classification turns them into this exception.
    """

    cause = FailureCause.TRANSPORT

    def __init__(
        self, reason: str, url: str | None = None, details: dict[str, Any] | None = None
    ) -> None:
        message = f"Transport failure: {reason}"
        if url:
            message = f"{message} (url={url})"
        super().__init__(
            code="vc-conformance:transport/failed",
            message=message,
            details={"url": url, **(details or {})},
        )
        self.reason = reason
        self.url = url


class AssertionMismatch(ConformanceError, AssertionError):
    """Raised when a response does not match a scenario's expected classification.

    Subclasses AssertionError so test runners report it as a failed
    assertion attributed to the implementation under test.

    Attributes:
        expectation: The classification the scenario required
        condition: The specific condition that was not met
    """

    cause = FailureCause.ASSERTION_MISMATCH

    def __init__(
        self, expectation: str, condition: str, details: dict[str, Any] | None = None
    ) -> None:
        message = f"Expected {expectation}: {condition}"
        super().__init__(
            code="vc-conformance:assertion/mismatch",
            message=message,
            details={"expectation": expectation, **(details or {})},
        )
        self.expectation = expectation
        self.condition = condition


class HarnessInternalError(ConformanceError):
    """Raised when fixture construction or classification logic is itself broken."""

    cause = FailureCause.HARNESS_INTERNAL

    def __init__(self, reason: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(
            code="vc-conformance:harness/internal",
            message=f"Harness defect: {reason}",
            details=details or {},
        )
        self.reason = reason


__all__ = [
    "AssertionMismatch",
    "ConfigurationError",
    "ConformanceError",
    "FailureCause",
    "HarnessInternalError",
    "TransportError",
]
