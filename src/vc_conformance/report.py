"""Run results - per-scenario verdicts grouped by implementation."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any

from vc_conformance.errors import FailureCause
from vc_conformance.models import ScenarioState

_STATE_LABELS = {
    ScenarioState.PASSED: "PASS",
    ScenarioState.FAILED: "FAIL",
    ScenarioState.SKIPPED: "SKIP",
}


@dataclass
class ScenarioVerdict:
    """Final state of one (implementation, scenario) pair."""

    implementation: str
    scenario_id: str
    title: str
    state: ScenarioState
    message: str = ""
    cause: FailureCause | None = None
    status: int | None = None
    duration_ms: float | None = None
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def passed(self) -> bool:
        return self.state is ScenarioState.PASSED

    @property
    def failed(self) -> bool:
        return self.state is ScenarioState.FAILED

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["state"] = self.state.value
        data["cause"] = self.cause.value if self.cause else None
        return data


@dataclass
class ImplementationReport:
    name: str
    verdicts: list[ScenarioVerdict] = field(default_factory=list)

    @property
    def passed(self) -> bool:
        return not any(v.failed for v in self.verdicts)

    def count(self, state: ScenarioState) -> int:
        return sum(1 for v in self.verdicts if v.state is state)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "passed": self.passed,
            "summary": {
                s.value: self.count(s)
                for s in (ScenarioState.PASSED, ScenarioState.FAILED, ScenarioState.SKIPPED)
            },
            "verdicts": [v.to_dict() for v in self.verdicts],
        }


@dataclass
class ConformanceReport:
    """Aggregated result of a matrix run."""

    implementations: list[ImplementationReport] = field(default_factory=list)
    started_at: datetime | None = None
    finished_at: datetime | None = None

    @property
    def passed(self) -> bool:
        return all(r.passed for r in self.implementations)

    @property
    def verdicts(self) -> list[ScenarioVerdict]:
        return [v for r in self.implementations for v in r.verdicts]

    def get(self, name: str) -> ImplementationReport | None:
        return next((r for r in self.implementations if r.name == name), None)

    def failures(self, cause: FailureCause | None = None) -> list[ScenarioVerdict]:
        return [v for v in self.verdicts if v.failed and (cause is None or v.cause is cause)]

    def to_dict(self) -> dict[str, Any]:
        return {
            "passed": self.passed,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "implementations": [r.to_dict() for r in self.implementations],
        }

    def render_text(self) -> str:
        """Human-readable report: one block per implementation, one line per scenario."""
        lines: list[str] = []
        for report in self.implementations:
            passed = report.count(ScenarioState.PASSED)
            failed = report.count(ScenarioState.FAILED)
            skipped = report.count(ScenarioState.SKIPPED)
            lines.append(
                f"Issuer: {report.name}  "
                f"({passed} passed, {failed} failed, {skipped} skipped)"
            )
            for v in report.verdicts:
                label = _STATE_LABELS.get(v.state, v.state.value.upper())
                line = f"  [{label}] {v.scenario_id}: {v.title}"
                if v.failed:
                    cause = v.cause.value if v.cause else "unknown"
                    line += f"\n         {cause}: {v.message}"
                elif v.state is ScenarioState.SKIPPED and v.message:
                    line += f"\n         skipped: {v.message}"
                lines.append(line)
            lines.append("")
        total_failed = len(self.failures())
        lines.append("PASSED" if self.passed else f"FAILED ({total_failed} failing scenarios)")
        return "\n".join(lines)


__all__ = ["ConformanceReport", "ImplementationReport", "ScenarioVerdict"]
