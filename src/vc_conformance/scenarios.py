"""Scenario catalog - one positive case plus every structural constraint violation.

A Scenario pairs a mutation of the canonical request body with the
classification the implementation's response must satisfy. Scenarios hold no
state and are shared by every implementation in a run.
"""

from __future__ import annotations

import fnmatch
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from functools import partial
from typing import Any

from vc_conformance.errors import HarnessInternalError
from vc_conformance.fixtures import (
    add_field,
    create_iso_timestamp,
    create_request_body,
    delete_field,
    one_year_from_now,
    rename_credential,
    replace_field,
)
from vc_conformance.models import Expectation

Mutation = Callable[[dict[str, Any]], dict[str, Any]]

# Values substituted for a field that must hold something else; the label is
# used in scenario ids.
INVALID_CONTEXT_ENTRIES: tuple[tuple[str, Any], ...] = (
    ("object", {"foo": True}),
    ("number", 4),
    ("boolean", False),
    ("null", None),
)
INVALID_TYPE_ENTRIES: tuple[tuple[str, Any], ...] = (
    ("null", None),
    ("boolean", True),
    ("number", 4),
    ("array", []),
)
INVALID_ISSUERS: tuple[tuple[str, Any], ...] = (
    ("null", None),
    ("boolean", True),
    ("number", 4),
    ("array", []),
)
INVALID_SUBJECTS: tuple[tuple[str, Any], ...] = (
    ("null", None),
    ("boolean", True),
    ("number", 4),
    ("array", []),
    ("string", "did:example:1234"),
)

ISSUANCE_DATE_SKIP_REASON = (
    "issuanceDate handling is implementation-defined; issuers may require it "
    "or supply a default"
)


def _unchanged(body: dict[str, Any]) -> dict[str, Any]:
    return body


def _with_issuance_date(body: dict[str, Any]) -> dict[str, Any]:
    return add_field(body, "issuanceDate", create_iso_timestamp())


def _with_expiration_one_year_ahead(body: dict[str, Any]) -> dict[str, Any]:
    return add_field(body, "expirationDate", one_year_from_now())


@dataclass(frozen=True)
class Scenario:
    """A named request mutation and its expected classification.

    Attributes:
        id: Stable identifier, used for selection and reporting
        title: Requirement under test, phrased as in the data model
        mutate: Pure function from the canonical body to the body to submit
        expectation: Classification the response must satisfy
        require_status: Exact success status required on top of the expectation
        repeat: Number of times the same body is submitted and classified
        skip_reason: When set, the scenario is reported as skipped
    """

    id: str
    title: str
    mutate: Mutation
    expectation: Expectation
    require_status: int | None = None
    repeat: int = 1
    skip_reason: str | None = None

    def build(self, issuer_id: str) -> dict[str, Any]:
        """Build the body to submit for an implementation issuing as ``issuer_id``."""
        body = self.mutate(create_request_body(issuer_id))
        if not isinstance(body, dict):
            raise HarnessInternalError(
                f"mutation for scenario '{self.id}' returned {type(body).__name__}",
                details={"scenario": self.id},
            )
        return body

    @property
    def negative(self) -> bool:
        return self.expectation is Expectation.INVALID_INPUT


def _invalid(scenario_id: str, title: str, mutate: Mutation) -> Scenario:
    return Scenario(
        id=scenario_id, title=title, mutate=mutate, expectation=Expectation.INVALID_INPUT
    )


def _type_variants(
    prefix: str, title: str, field: str, values: Iterable[tuple[str, Any]], *, wrap: bool
) -> list[Scenario]:
    return [
        _invalid(
            f"{prefix}-{label}",
            f"{title} ({label})",
            partial(replace_field, field=field, value=[value] if wrap else value),
        )
        for label, value in values
    ]


def default_scenarios() -> list[Scenario]:
    """The full issuance scenario matrix, in reporting order."""
    scenarios: list[Scenario] = [
        Scenario(
            id="issue-valid",
            title="MUST successfully issue a credential.",
            mutate=_unchanged,
            expectation=Expectation.ISSUED,
        ),
        Scenario(
            id="issue-valid-repeat",
            title="MUST issue the same valid credential on repeated requests.",
            mutate=_unchanged,
            expectation=Expectation.ISSUED,
            repeat=2,
        ),
        _invalid(
            "body-credential-required",
            'Request body MUST have property "credential".',
            rename_credential,
        ),
        _invalid(
            "context-required",
            'credential MUST have property "@context".',
            partial(delete_field, field="@context"),
        ),
        _invalid(
            "context-array",
            'credential "@context" MUST be an array.',
            partial(replace_field, field="@context", value=4),
        ),
    ]
    scenarios += _type_variants(
        "context-items-strings",
        'credential "@context" items MUST be strings',
        "@context",
        INVALID_CONTEXT_ENTRIES,
        wrap=True,
    )
    scenarios += [
        _invalid(
            "type-required",
            'credential MUST have property "type".',
            partial(delete_field, field="type"),
        ),
        _invalid(
            "type-array",
            '"credential.type" MUST be an array.',
            partial(replace_field, field="type", value=4),
        ),
    ]
    scenarios += _type_variants(
        "type-items-strings",
        '"credential.type" items MUST be strings',
        "type",
        INVALID_TYPE_ENTRIES,
        wrap=True,
    )
    scenarios.append(
        _invalid(
            "issuer-required",
            'credential MUST have property "issuer".',
            partial(delete_field, field="issuer"),
        )
    )
    scenarios += _type_variants(
        "issuer-string-or-object",
        '"credential.issuer" MUST be a string or an object',
        "issuer",
        INVALID_ISSUERS,
        wrap=False,
    )
    scenarios.append(
        _invalid(
            "subject-required",
            'credential MUST have property "credentialSubject".',
            partial(delete_field, field="credentialSubject"),
        )
    )
    scenarios += _type_variants(
        "subject-object",
        '"credential.credentialSubject" MUST be an object',
        "credentialSubject",
        INVALID_SUBJECTS,
        wrap=False,
    )
    scenarios += [
        Scenario(
            id="issuance-date-optional",
            title='credential MAY have property "issuanceDate".',
            mutate=_with_issuance_date,
            expectation=Expectation.GENERIC_SUCCESS,
            require_status=201,
            skip_reason=ISSUANCE_DATE_SKIP_REASON,
        ),
        Scenario(
            id="expiration-date-optional",
            title='credential MAY have property "expirationDate".',
            mutate=_with_expiration_one_year_ahead,
            expectation=Expectation.GENERIC_SUCCESS,
            require_status=201,
        ),
    ]
    return scenarios


def select_scenarios(
    scenarios: Sequence[Scenario],
    include: Sequence[str] | None = None,
    exclude: Sequence[str] | None = None,
) -> list[Scenario]:
    """Filter scenarios by id using shell-style patterns, preserving order."""

    def _matches(scenario: Scenario, patterns: Sequence[str]) -> bool:
        return any(fnmatch.fnmatchcase(scenario.id, p) for p in patterns)

    selected = [s for s in scenarios if not include or _matches(s, include)]
    return [s for s in selected if not exclude or not _matches(s, exclude)]


__all__ = [
    "Mutation",
    "Scenario",
    "default_scenarios",
    "select_scenarios",
]
