"""Tests for IssuerClient outcome normalization."""

from __future__ import annotations

import httpx
import pytest

from vc_conformance.client import IssuerClient
from vc_conformance.fixtures import create_request_body

from tests.factories import TEST_ISSUER_ID, TEST_PROOF, create_compliant_issuer, make_config


def _mock(handler) -> httpx.MockTransport:  # type: ignore[no-untyped-def]
    return httpx.MockTransport(handler)


class TestIssuerClientKnownGood:
    @pytest.mark.asyncio
    async def test_valid_body_is_issued(self) -> None:
        config = make_config("compliant")
        transport = httpx.ASGITransport(app=create_compliant_issuer())

        async with IssuerClient(config, transport=transport) as issuer:
            outcome = await issuer.submit(create_request_body(issuer.issuer_id))

        assert outcome.error is None
        assert outcome.result is not None
        assert outcome.result.status == 201
        assert outcome.data is not None
        assert outcome.data["issuer"] == TEST_ISSUER_ID
        assert outcome.data["proof"] == TEST_PROOF

    @pytest.mark.asyncio
    async def test_invalid_body_is_rejected(self) -> None:
        config = make_config("compliant")
        transport = httpx.ASGITransport(app=create_compliant_issuer())
        body = create_request_body(TEST_ISSUER_ID)
        body["credential"]["type"] = 4

        async with IssuerClient(config, transport=transport) as issuer:
            outcome = await issuer.submit(body)

        assert outcome.result is None
        assert outcome.error is not None
        assert outcome.error.kind == "rejected"
        assert outcome.error.status == 422

    @pytest.mark.asyncio
    async def test_sends_json_and_authorization(self) -> None:
        seen: dict[str, object] = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["authorization"] = request.headers.get("authorization")
            seen["content_type"] = request.headers.get("content-type")
            seen["tenant"] = request.headers.get("x-tenant")
            seen["url"] = str(request.url)
            return httpx.Response(201, json={"ok": True})

        config = make_config("acme", bearer_token="tok", headers={"X-Tenant": "t1"})
        async with IssuerClient(config, transport=_mock(handler)) as issuer:
            await issuer.submit({"credential": {}})

        assert seen["authorization"] == "Bearer tok"
        assert seen["content_type"] == "application/json"
        assert seen["tenant"] == "t1"
        assert seen["url"] == "http://acme.test/credentials/issue"


class TestIssuerClientNormalization:
    @pytest.mark.asyncio
    async def test_connection_error_becomes_transport_outcome(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("Connection refused", request=request)

        async with IssuerClient(make_config("down"), transport=_mock(handler)) as issuer:
            outcome = await issuer.submit({"credential": {}})

        assert outcome.result is None
        assert outcome.error is not None
        assert outcome.error.kind == "transport"
        assert outcome.error.status is None
        assert "Connection refused" in outcome.error.message

    @pytest.mark.asyncio
    async def test_timeout_becomes_transport_outcome(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        async with IssuerClient(make_config("slow"), transport=_mock(handler)) as issuer:
            outcome = await issuer.submit({"credential": {}})

        assert outcome.error is not None
        assert outcome.error.kind == "transport"
        assert "timed out" in outcome.error.message

    @pytest.mark.asyncio
    async def test_server_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(503, json={"message": "maintenance"})

        async with IssuerClient(make_config("acme"), transport=_mock(handler)) as issuer:
            outcome = await issuer.submit({"credential": {}})

        assert outcome.error is not None
        assert outcome.error.kind == "server"
        assert outcome.error.status == 503
        assert outcome.error.message == "maintenance"

    @pytest.mark.asyncio
    async def test_malformed_json_success_has_no_data(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(201, content=b"{not json", headers={"content-type": "application/json"})

        async with IssuerClient(make_config("acme"), transport=_mock(handler)) as issuer:
            outcome = await issuer.submit({"credential": {}})

        assert outcome.result is not None
        assert outcome.result.status == 201
        assert outcome.data is None

    @pytest.mark.asyncio
    async def test_rejection_without_body(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(400)

        async with IssuerClient(make_config("acme"), transport=_mock(handler)) as issuer:
            outcome = await issuer.submit({"credential": {}})

        assert outcome.error is not None
        assert outcome.error.kind == "rejected"
        assert outcome.error.message == "HTTP 400 Bad Request"

    @pytest.mark.asyncio
    async def test_redirect_is_not_success(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(302, headers={"location": "http://elsewhere.test/"})

        async with IssuerClient(make_config("acme"), transport=_mock(handler)) as issuer:
            outcome = await issuer.submit({"credential": {}})

        assert outcome.result is None
        assert outcome.error is not None
        assert outcome.error.status == 302

    @pytest.mark.asyncio
    async def test_submit_requires_context_manager(self) -> None:
        issuer = IssuerClient(make_config("acme"))

        with pytest.raises(RuntimeError, match="context manager"):
            await issuer.submit({"credential": {}})

    @pytest.mark.asyncio
    async def test_injected_client_is_not_closed(self) -> None:
        client = httpx.AsyncClient(
            transport=_mock(lambda request: httpx.Response(201, json={}))
        )
        async with IssuerClient(make_config("acme"), client=client) as issuer:
            await issuer.submit({"credential": {}})

        assert not client.is_closed
        await client.aclose()
