"""Pytest plugin for the VC issuer conformance harness.

Provides:
- Fixture: implementation_registry
- Fixture: issuer_case (parametrized over implementation x scenario)
- Marker: @pytest.mark.vc_conformance

Enable with ``pytest_plugins = ["vc_conformance.pytest_plugin"]`` in a
conftest.py, then write::

    @pytest.mark.vc_conformance
    async def test_issuer(issuer_case):
        await issuer_case.check()
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field

import httpx
import pytest

from vc_conformance.client import IssuerClient
from vc_conformance.errors import ConfigurationError, FailureCause, HarnessInternalError
from vc_conformance.models import ImplementationConfig, ScenarioState
from vc_conformance.registry import ENV_CONFIG_PATH, ImplementationRegistry, load_registry
from vc_conformance.report import ScenarioVerdict
from vc_conformance.runner import ScenarioMatrixRunner
from vc_conformance.scenarios import Scenario, default_scenarios, select_scenarios

MARKER_NAME = "vc_conformance"
MARKER_HELP = "Marks a test as a VC issuer conformance test."
CASE_FIXTURE = "issuer_case"


@dataclass(frozen=True)
class IssuerCase:
    """One cell of the conformance matrix, ready to execute.

    A case built from a registry entry that failed validation carries its
    ``configuration_error`` instead of a usable ``config`` and always fails.
    """

    config: ImplementationConfig | None
    scenario: Scenario
    transport: httpx.AsyncBaseTransport | None = field(default=None, compare=False, repr=False)
    configuration_error: ConfigurationError | None = field(default=None, compare=False)

    def __post_init__(self) -> None:
        if (self.config is None) == (self.configuration_error is None):
            raise HarnessInternalError(
                "issuer case needs exactly one of config or configuration_error"
            )

    @property
    def name(self) -> str:
        if self.configuration_error is not None:
            return self.configuration_error.implementation
        return self.config.name if self.config is not None else ""

    async def run(self) -> ScenarioVerdict:
        if self.config is None:
            error = self.configuration_error
            return ScenarioVerdict(
                implementation=self.name,
                scenario_id=self.scenario.id,
                title=self.scenario.title,
                state=ScenarioState.FAILED,
                message=error.message if error is not None else "",
                cause=FailureCause.CONFIGURATION,
            )
        runner = ScenarioMatrixRunner(ImplementationRegistry([self.config]), [self.scenario])
        async with IssuerClient(self.config, transport=self.transport) as client:
            return await runner.run_scenario(client, self.scenario)

    async def check(self) -> ScenarioVerdict:
        """Run the case and translate its verdict into a pytest outcome."""
        verdict = await self.run()
        if verdict.state is ScenarioState.SKIPPED:
            pytest.skip(verdict.message)
        if verdict.failed:
            cause = verdict.cause.value if verdict.cause else "unknown"
            pytest.fail(f"{self.scenario.title} [{cause}] {verdict.message}", pytrace=False)
        return verdict


def pytest_addoption(parser: pytest.Parser) -> None:
    """Register command-line options for the conformance harness."""
    group = parser.getgroup("vc-conformance", description="VC issuer conformance options")
    group.addoption(
        "--vc-config",
        action="store",
        dest="vc_config",
        default=os.environ.get(ENV_CONFIG_PATH),
        help=f"JSON implementations file (default: {ENV_CONFIG_PATH})",
    )
    group.addoption(
        "--vc-implementation",
        action="append",
        dest="vc_implementations",
        default=[],
        help="Only test this implementation (repeatable)",
    )
    group.addoption(
        "--vc-scenario",
        action="append",
        dest="vc_scenarios",
        default=[],
        help="Only run scenarios whose id matches this pattern (repeatable)",
    )
    group.addoption(
        "--vc-timeout",
        action="store",
        dest="vc_timeout",
        type=float,
        default=None,
        help="Override every implementation's request timeout (seconds)",
    )


def pytest_configure(config: pytest.Config) -> None:
    """Register the vc_conformance marker."""
    config.addinivalue_line("markers", f"{MARKER_NAME}: {MARKER_HELP}")


def _registry_from_options(config: pytest.Config) -> ImplementationRegistry:
    path = config.getoption("vc_config", default=None)
    if not path:
        return ImplementationRegistry()
    names = config.getoption("vc_implementations", default=[]) or None
    registry = load_registry(path).filter(names=names)
    timeout = config.getoption("vc_timeout", default=None)
    if timeout is None:
        return registry
    if timeout <= 0:
        raise ConfigurationError("*", "--vc-timeout must be positive")
    return ImplementationRegistry(
        [c.model_copy(update={"timeout_seconds": timeout}) for c in registry.values()],
        registry.invalid,
    )


def pytest_generate_tests(metafunc: pytest.Metafunc) -> None:
    """Parametrize ``issuer_case`` over every implementation and scenario."""
    if CASE_FIXTURE not in metafunc.fixturenames:
        return
    config = metafunc.config
    try:
        registry = _registry_from_options(config)
    except ConfigurationError as e:
        raise pytest.UsageError(e.message) from e

    scenarios = select_scenarios(
        default_scenarios(), include=config.getoption("vc_scenarios", default=[]) or None
    )
    cases = [IssuerCase(impl, s) for impl in registry.values() for s in scenarios]
    cases += [
        IssuerCase(None, s, configuration_error=error)
        for error in registry.invalid
        for s in scenarios
    ]
    ids = [f"{c.name}:{c.scenario.id}" for c in cases]
    metafunc.parametrize(CASE_FIXTURE, cases, ids=ids)


@pytest.fixture
def implementation_registry(request: pytest.FixtureRequest) -> ImplementationRegistry:
    """Provide the registry named by --vc-config or VC_CONFORMANCE_CONFIG.

    Skips the test when no configuration is available.
    """
    registry = _registry_from_options(request.config)
    if not registry and not registry.invalid:
        pytest.skip("no VC issuer implementations configured")
    return registry
