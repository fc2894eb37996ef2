"""Issuer client - one implementation's issue endpoint behind a single submit().

Whatever happens on the wire, submit() returns an Outcome: 2xx responses
become a success result, 4xx a rejection, 5xx a server error, and any
failure to exchange a request (connection refused, timeout, protocol error)
a transport error. Nothing is retried.
"""

from __future__ import annotations

import time
from types import TracebackType
from typing import Any

import httpx

from vc_conformance.models import ImplementationConfig, Outcome
from vc_conformance.observability.logging import get_logger, sanitize_for_logging

logger = get_logger(__name__)

_ERROR_MESSAGE_KEYS = ("message", "error", "detail", "title")


def _error_message(response: httpx.Response, data: Any) -> str:
    if isinstance(data, dict):
        for key in _ERROR_MESSAGE_KEYS:
            value = data.get(key)
            if isinstance(value, str) and value:
                return value
    reason = response.reason_phrase or "error"
    return f"HTTP {response.status_code} {reason}"


def _json_or_none(response: httpx.Response) -> Any:
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return None


class IssuerClient:
    """Submits issue requests to one implementation.

    Example:
        >>> async with IssuerClient(config) as issuer:
        ...     outcome = await issuer.submit(create_request_body(config.id))
    """

    def __init__(
        self,
        config: ImplementationConfig,
        *,
        client: httpx.AsyncClient | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            config: Implementation to talk to.
            client: Optional pre-built httpx client. It is not closed by this object.
            transport: Optional transport for the client this object creates
                (e.g. httpx.ASGITransport or httpx.MockTransport).
        """
        self.config = config
        self._client = client
        self._transport = transport
        self._owns_client = client is None
        self._log = logger.bind(implementation=config.name)

    @property
    def name(self) -> str:
        return self.config.name

    @property
    def issuer_id(self) -> str:
        return self.config.id

    @property
    def url(self) -> str:
        return str(self.config.endpoint)

    async def __aenter__(self) -> "IssuerClient":
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self.config.timeout_seconds, transport=self._transport
            )
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    async def submit(self, body: dict[str, Any]) -> Outcome:
        """POST ``body`` as JSON to the issue endpoint and normalize the result."""
        if self._client is None:
            raise RuntimeError("IssuerClient must be used as an async context manager")

        headers = self.config.request_headers()
        self._log.debug(
            "issuer.submit",
            url=self.url,
            headers=sanitize_for_logging(headers),
            body_keys=sorted(body) if isinstance(body, dict) else None,
        )

        start = time.perf_counter()
        try:
            response = await self._client.post(
                self.url,
                json=body,
                headers=headers,
                timeout=self.config.timeout_seconds,
            )
        except httpx.TimeoutException as e:
            self._log.warning("issuer.timeout", url=self.url, error=str(e))
            return Outcome.failure(
                f"Request timed out after {self.config.timeout_seconds}s: {e}", kind="transport"
            )
        except httpx.HTTPError as e:
            self._log.warning("issuer.unreachable", url=self.url, error=repr(e))
            return Outcome.failure(f"Request failed: {e!r}", kind="transport")
        elapsed_ms = (time.perf_counter() - start) * 1000

        data = _json_or_none(response)
        self._log.debug(
            "issuer.response",
            status=response.status_code,
            duration_ms=round(elapsed_ms, 2),
        )

        status = response.status_code
        if 200 <= status < 300:
            return Outcome.success(status, data if isinstance(data, dict) else None)
        if 400 <= status < 500:
            return Outcome.failure(
                _error_message(response, data), kind="rejected", status=status, data=data
            )
        if status >= 500:
            return Outcome.failure(
                _error_message(response, data), kind="server", status=status, data=data
            )
        # 1xx/3xx after redirects were not followed
        return Outcome.failure(
            f"Unexpected HTTP {status}", kind="server", status=status, data=data
        )


__all__ = ["IssuerClient"]
