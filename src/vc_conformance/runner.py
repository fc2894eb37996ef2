"""Scenario matrix runner - every scenario against every registered implementation.

Each (implementation, scenario) pair moves through
pending -> submitted -> classified -> passed | failed (or straight to skipped)
and is one self-contained unit of work: its body is built fresh, submitted
once per repeat, classified, and turned into a ScenarioVerdict. Any exception
raised inside that unit ends up in the verdict, so a run always completes.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable, Sequence
from datetime import datetime, timezone

from vc_conformance.assertions import classify
from vc_conformance.client import IssuerClient
from vc_conformance.errors import ConfigurationError, ConformanceError, FailureCause
from vc_conformance.models import Expectation, ImplementationConfig, ScenarioState
from vc_conformance.observability.logging import get_logger
from vc_conformance.registry import ImplementationRegistry
from vc_conformance.report import ConformanceReport, ImplementationReport, ScenarioVerdict
from vc_conformance.scenarios import Scenario, default_scenarios

ClientFactory = Callable[[ImplementationConfig], IssuerClient]

logger = get_logger(__name__)


def _default_client_factory(config: ImplementationConfig) -> IssuerClient:
    return IssuerClient(config)


class ScenarioMatrixRunner:
    """Runs a scenario set against every implementation in a registry.

    Args:
        registry: Implementations under test, iterated in registry order.
        scenarios: Scenarios to run; defaults to the full issuance matrix.
        parallel: Run implementations concurrently. Scenarios for one
            implementation always run in order.
        client_factory: Builds the IssuerClient for an implementation. Tests
            use this to inject an httpx client with a custom transport.
    """

    def __init__(
        self,
        registry: ImplementationRegistry,
        scenarios: Sequence[Scenario] | None = None,
        *,
        parallel: bool = False,
        client_factory: ClientFactory | None = None,
    ) -> None:
        self.registry = registry
        self.scenarios = tuple(default_scenarios() if scenarios is None else scenarios)
        self.parallel = parallel
        self._client_factory = client_factory or _default_client_factory

    async def run(self) -> ConformanceReport:
        started_at = datetime.now(timezone.utc)
        configs = list(self.registry.values())
        logger.info(
            "matrix.start",
            implementations=len(configs),
            scenarios=len(self.scenarios),
            parallel=self.parallel,
        )

        if self.parallel:
            reports = list(await asyncio.gather(*(self.run_implementation(c) for c in configs)))
        else:
            reports = [await self.run_implementation(c) for c in configs]

        reports += [self._configuration_failures(e) for e in self.registry.invalid]

        report = ConformanceReport(
            implementations=reports,
            started_at=started_at,
            finished_at=datetime.now(timezone.utc),
        )
        logger.info(
            "matrix.finish", passed=report.passed, failures=len(report.failures())
        )
        return report

    async def run_implementation(self, config: ImplementationConfig) -> ImplementationReport:
        """Run every scenario against one implementation, sequentially.

        A failure to build, open or close the client fails every scenario not
        yet judged, so one implementation can never abort the run.
        """
        report = ImplementationReport(name=config.name)
        try:
            client = self._client_factory(config)
            async with client:
                for scenario in self.scenarios:
                    report.verdicts.append(await self.run_scenario(client, scenario))
        except ConformanceError as e:
            logger.warning(
                "implementation.failed", implementation=config.name, cause=e.cause.value
            )
            report.verdicts += self._failed_verdicts(
                config.name, self.scenarios[len(report.verdicts) :], e.cause, e.message
            )
        except Exception as e:
            logger.exception("implementation.harness_error", implementation=config.name)
            report.verdicts += self._failed_verdicts(
                config.name,
                self.scenarios[len(report.verdicts) :],
                FailureCause.HARNESS_INTERNAL,
                f"{type(e).__name__}: {e}",
            )
        return report

    async def run_scenario(self, client: IssuerClient, scenario: Scenario) -> ScenarioVerdict:
        """Execute one scenario against one implementation and return its verdict."""
        log = logger.bind(implementation=client.name, scenario=scenario.id)
        verdict = ScenarioVerdict(
            implementation=client.name,
            scenario_id=scenario.id,
            title=scenario.title,
            state=ScenarioState.PENDING,
        )
        if scenario.skip_reason:
            verdict.state = ScenarioState.SKIPPED
            verdict.message = scenario.skip_reason
            log.info("scenario.skipped", reason=scenario.skip_reason)
            return verdict

        start = time.perf_counter()
        try:
            body = scenario.build(client.issuer_id)
            submitted = body if scenario.expectation is Expectation.ISSUED else None
            for _ in range(scenario.repeat):
                verdict.state = ScenarioState.SUBMITTED
                outcome = await client.submit(body)
                verdict.status = outcome.status
                verdict.state = ScenarioState.CLASSIFIED
                classify(
                    outcome,
                    scenario.expectation,
                    submitted=submitted,
                    require_status=scenario.require_status,
                )
        except ConformanceError as e:
            verdict.state = ScenarioState.FAILED
            verdict.cause = e.cause
            verdict.message = e.message
            verdict.details = e.details
        except Exception as e:
            log.exception("scenario.harness_error")
            verdict.state = ScenarioState.FAILED
            verdict.cause = FailureCause.HARNESS_INTERNAL
            verdict.message = f"{type(e).__name__}: {e}"
        else:
            verdict.state = ScenarioState.PASSED
        finally:
            verdict.duration_ms = round((time.perf_counter() - start) * 1000, 2)

        if verdict.failed:
            log.warning(
                "scenario.failed",
                cause=verdict.cause.value if verdict.cause else None,
                message=verdict.message,
                status=verdict.status,
            )
        else:
            log.info("scenario.passed", status=verdict.status)
        return verdict

    def _configuration_failures(self, error: ConfigurationError) -> ImplementationReport:
        return ImplementationReport(
            name=error.implementation,
            verdicts=self._failed_verdicts(
                error.implementation, self.scenarios, FailureCause.CONFIGURATION, error.message
            ),
        )

    @staticmethod
    def _failed_verdicts(
        implementation: str,
        scenarios: Sequence[Scenario],
        cause: FailureCause,
        message: str,
    ) -> list[ScenarioVerdict]:
        return [
            ScenarioVerdict(
                implementation=implementation,
                scenario_id=s.id,
                title=s.title,
                state=ScenarioState.FAILED,
                cause=cause,
                message=message,
            )
            for s in scenarios
        ]


def run_matrix(
    registry: ImplementationRegistry,
    scenarios: Sequence[Scenario] | None = None,
    *,
    parallel: bool = False,
    client_factory: ClientFactory | None = None,
) -> ConformanceReport:
    """Synchronous wrapper around :meth:`ScenarioMatrixRunner.run`."""
    runner = ScenarioMatrixRunner(
        registry, scenarios, parallel=parallel, client_factory=client_factory
    )
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(runner.run())
    raise RuntimeError(
        "Cannot call sync run_matrix from inside a running event loop. "
        "Use ScenarioMatrixRunner.run."
    )


__all__ = ["ClientFactory", "ScenarioMatrixRunner", "run_matrix"]
