"""Pydantic models for the conformance harness.

All models inherit from HarnessBaseModel:
- Immutability (frozen=True) so a configuration or outcome can be shared
  between scenario executions without being altered
- Strict validation (extra="forbid") to catch typos in configuration files
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, HttpUrl, model_validator


class HarnessBaseModel(BaseModel):
    """Base model for all harness records."""

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        populate_by_name=True,
        validate_default=True,
    )


class Expectation(str, Enum):
    """Classification a scenario requires of the implementation's response."""

    ISSUED = "issued"
    GENERIC_SUCCESS = "generic-success"
    INVALID_INPUT = "invalid-input"


class ScenarioState(str, Enum):
    """Lifecycle of one (implementation, scenario) pair."""

    PENDING = "pending"
    SUBMITTED = "submitted"
    CLASSIFIED = "classified"
    PASSED = "passed"
    FAILED = "failed"
    SKIPPED = "skipped"


class ImplementationConfig(HarnessBaseModel):
    """Connection settings for one issuer implementation under test.

    Attributes:
        name: Unique name of the implementation in the registry
        id: Identity the harness is authorized to issue as (credential.issuer)
        endpoint: URL of the issue route, e.g. https://issuer.example/credentials/issue
        headers: Extra HTTP headers sent with every request
        bearer_token: Optional OAuth2 access token sent as Authorization header
        timeout_seconds: Per-request timeout
        tags: Free-form labels used to select implementations
    """

    name: str = Field(..., min_length=1)
    id: str = Field(..., min_length=1, description="Issuer identifier, usually a DID")
    endpoint: HttpUrl
    headers: dict[str, str] = Field(default_factory=dict)
    bearer_token: str | None = Field(default=None, repr=False)
    timeout_seconds: float = Field(default=30.0, gt=0)
    tags: tuple[str, ...] = Field(default_factory=tuple)

    def request_headers(self) -> dict[str, str]:
        """Headers for an issue request, including authorization if configured."""
        headers = {"Accept": "application/json", **self.headers}
        if self.bearer_token:
            headers["Authorization"] = f"Bearer {self.bearer_token}"
        return headers


class SuccessResult(HarnessBaseModel):
    """A 2xx response from an implementation."""

    status: int = Field(..., ge=200, le=299)
    data: dict[str, Any] | None = None


class ErrorInfo(HarnessBaseModel):
    """Why a submission did not succeed.

    ``kind`` separates a deliberate rejection (4xx) from a server fault (5xx)
    and from a failure to reach the implementation at all.
    """

    message: str
    kind: Literal["rejected", "server", "transport"]
    status: int | None = None
    data: Any = None


class Outcome(HarnessBaseModel):
    """Normalized result of a single submission.

    Exactly one of ``result`` or ``error`` is set for outcomes built through
    :meth:`success` and :meth:`failure`. An outcome with neither is accepted so
    that a broken transport can be represented, but every assertion rejects it.
    """

    result: SuccessResult | None = None
    error: ErrorInfo | None = None

    @model_validator(mode="after")
    def _check_exclusive(self) -> "Outcome":
        if self.result is not None and self.error is not None:
            raise ValueError("Outcome cannot carry both result and error")
        return self

    @classmethod
    def success(cls, status: int, data: dict[str, Any] | None = None) -> "Outcome":
        return cls(result=SuccessResult(status=status, data=data))

    @classmethod
    def failure(
        cls,
        message: str,
        *,
        kind: Literal["rejected", "server", "transport"],
        status: int | None = None,
        data: Any = None,
    ) -> "Outcome":
        return cls(error=ErrorInfo(message=message, kind=kind, status=status, data=data))

    @property
    def data(self) -> dict[str, Any] | None:
        """Response body of a successful submission (mirrors ``result.data``)."""
        return self.result.data if self.result is not None else None

    @property
    def status(self) -> int | None:
        if self.result is not None:
            return self.result.status
        if self.error is not None:
            return self.error.status
        return None


__all__ = [
    "ErrorInfo",
    "Expectation",
    "HarnessBaseModel",
    "ImplementationConfig",
    "Outcome",
    "ScenarioState",
    "SuccessResult",
]
