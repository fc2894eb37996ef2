"""Shared fixtures for conformance harness tests."""

from __future__ import annotations

from collections.abc import Callable

import httpx
import pytest

from vc_conformance.client import IssuerClient
from vc_conformance.models import ImplementationConfig
from vc_conformance.registry import ImplementationRegistry

from tests.factories import (
    create_broken_issuer,
    create_compliant_issuer,
    create_lenient_issuer,
    make_config,
    refuse_connection,
)

pytest_plugins = ["pytester", "vc_conformance.pytest_plugin"]

IMPLEMENTATION_NAMES = ("compliant", "lenient", "broken", "unreachable")


@pytest.fixture
def transports() -> dict[str, httpx.AsyncBaseTransport]:
    """One in-process transport per reference implementation, keyed by name."""
    return {
        "compliant": httpx.ASGITransport(app=create_compliant_issuer()),
        "lenient": httpx.ASGITransport(app=create_lenient_issuer()),
        "broken": httpx.ASGITransport(app=create_broken_issuer()),
        "unreachable": httpx.MockTransport(refuse_connection),
    }


@pytest.fixture
def client_factory(
    transports: dict[str, httpx.AsyncBaseTransport],
) -> Callable[[ImplementationConfig], IssuerClient]:
    def _factory(config: ImplementationConfig) -> IssuerClient:
        return IssuerClient(config, transport=transports[config.name])

    return _factory


@pytest.fixture
def compliant_config() -> ImplementationConfig:
    return make_config("compliant")


@pytest.fixture
def registry() -> ImplementationRegistry:
    return ImplementationRegistry([make_config(name) for name in IMPLEMENTATION_NAMES])
