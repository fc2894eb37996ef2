"""Outcome classification.

Functions:
    assert_issued: 201 with an issued credential carrying a proof.
    assert_generic_success: any success result, no error.
    assert_invalid_input_rejected: the implementation declined with a 4xx.
    classify: dispatch on a scenario's Expectation.

Each assertion raises AssertionMismatch naming the unmet condition, or
TransportError when the implementation was never reached. An Outcome with
neither result nor error fails every assertion.
"""

from __future__ import annotations

from typing import Any

from vc_conformance.errors import AssertionMismatch, HarnessInternalError, TransportError
from vc_conformance.fixtures import CREDENTIAL_KEY, missing_required_fields
from vc_conformance.models import Expectation, Outcome

ISSUED_STATUS = 201
PROOF_FIELDS = ("proof",)
# Issuers may extend these with suite contexts or extra types.
EXTENSIBLE_FIELDS = ("@context", "type")
NO_EVIDENCE = "outcome has neither result nor error"


def _raise_for_transport(outcome: Outcome) -> None:
    if outcome.error is not None and outcome.error.kind == "transport":
        raise TransportError(outcome.error.message)


def _issuer_id(issuer: Any) -> Any:
    return issuer.get("id") if isinstance(issuer, dict) else issuer


def _retains_entries(sent: Any, received: Any) -> bool:
    """True when every entry of ``sent`` appears in ``received``, in the same order."""
    if not isinstance(sent, list):
        return sent == received
    if not isinstance(received, list):
        return False
    remaining = iter(received)
    return all(any(entry == candidate for candidate in remaining) for entry in sent)


def _has_proof(credential: dict[str, Any]) -> bool:
    for field in PROOF_FIELDS:
        proof = credential.get(field)
        if isinstance(proof, dict) and proof:
            return True
        if isinstance(proof, list) and proof and all(isinstance(p, dict) for p in proof):
            return True
    return False


def assert_issued(outcome: Outcome, *, submitted: dict[str, Any] | None = None) -> None:
    """Assert the implementation issued a credential.

    Args:
        outcome: Normalized submission outcome.
        submitted: The request body, if the echoed fields should be compared.

    Raises:
        AssertionMismatch: If there is no result, the status is not 201, the
            response has no credential, a required field is missing, a
            submitted field was not echoed, or no proof was added.
    """
    expectation = Expectation.ISSUED.value
    _raise_for_transport(outcome)
    if outcome.error is not None:
        raise AssertionMismatch(
            expectation,
            f"expected a result, got error: {outcome.error.message}",
            details={"status": outcome.error.status},
        )
    if outcome.result is None:
        raise AssertionMismatch(expectation, NO_EVIDENCE)
    status = outcome.result.status
    if status != ISSUED_STATUS:
        raise AssertionMismatch(
            expectation, f"expected status {ISSUED_STATUS}, got {status}", details={"status": status}
        )
    issued = outcome.data
    if not issued:
        raise AssertionMismatch(expectation, "response has no issued credential data")

    missing = missing_required_fields(issued)
    if missing:
        raise AssertionMismatch(
            expectation, f"issued credential is missing {', '.join(missing)}",
            details={"missing": missing},
        )
    if not _has_proof(issued):
        raise AssertionMismatch(expectation, "issued credential has no proof")

    if submitted is not None:
        credential = submitted.get(CREDENTIAL_KEY)
        if not isinstance(credential, dict):
            raise HarnessInternalError("submitted body has no credential to compare against")
        for field in EXTENSIBLE_FIELDS:
            if not _retains_entries(credential.get(field), issued.get(field)):
                raise AssertionMismatch(
                    expectation,
                    f"issued credential dropped or reordered '{field}' entries",
                    details={"sent": credential.get(field), "received": issued.get(field)},
                )
        if issued.get("credentialSubject") != credential.get("credentialSubject"):
            raise AssertionMismatch(
                expectation,
                "issued credential changed 'credentialSubject'",
                details={
                    "sent": credential.get("credentialSubject"),
                    "received": issued.get("credentialSubject"),
                },
            )
        if _issuer_id(issued.get("issuer")) != _issuer_id(credential.get("issuer")):
            raise AssertionMismatch(
                expectation,
                "issued credential has a different issuer",
                details={
                    "sent": credential.get("issuer"),
                    "received": issued.get("issuer"),
                },
            )


def assert_generic_success(outcome: Outcome, *, require_status: int | None = None) -> None:
    """Assert the submission succeeded, optionally with an exact status."""
    expectation = Expectation.GENERIC_SUCCESS.value
    _raise_for_transport(outcome)
    if outcome.error is not None:
        raise AssertionMismatch(
            expectation,
            f"expected a result, got error: {outcome.error.message}",
            details={"status": outcome.status},
        )
    if outcome.result is None:
        raise AssertionMismatch(expectation, NO_EVIDENCE)
    if require_status is not None and outcome.result.status != require_status:
        raise AssertionMismatch(
            expectation,
            f"expected status {require_status}, got {outcome.result.status}",
            details={"status": outcome.result.status},
        )


def assert_invalid_input_rejected(outcome: Outcome) -> None:
    """Assert the implementation rejected the request as invalid input.

    A 4xx error is a rejection. A success result of any kind, and in
    particular an issued credential, is a conformance failure. A 5xx means the
    implementation failed rather than validated, and is not accepted either.
    """
    expectation = Expectation.INVALID_INPUT.value
    _raise_for_transport(outcome)
    if outcome.result is not None:
        status = outcome.result.status
        condition = f"request was accepted with status {status}"
        if status == ISSUED_STATUS and outcome.data:
            condition = "a credential was issued despite invalid input"
        raise AssertionMismatch(expectation, condition, details={"status": status})

    error = outcome.error
    if error is None:
        raise AssertionMismatch(expectation, NO_EVIDENCE)
    if error.kind == "server":
        raise AssertionMismatch(
            expectation,
            f"expected a 4xx rejection, got server error {error.status}: {error.message}",
            details={"status": error.status},
        )
    if error.status is not None and not 400 <= error.status < 500:
        raise AssertionMismatch(
            expectation,
            f"expected a 4xx rejection, got {error.status}",
            details={"status": error.status},
        )


def classify(
    outcome: Outcome,
    expectation: Expectation,
    *,
    submitted: dict[str, Any] | None = None,
    require_status: int | None = None,
) -> None:
    """Judge ``outcome`` against ``expectation``.

    Raises:
        TransportError: If the implementation could not be reached.
        AssertionMismatch: If the response does not satisfy the expectation.
        HarnessInternalError: If ``expectation`` is not recognised.
    """
    if expectation is Expectation.ISSUED:
        assert_issued(outcome, submitted=submitted)
        if require_status is not None:
            assert_generic_success(outcome, require_status=require_status)
    elif expectation is Expectation.GENERIC_SUCCESS:
        assert_generic_success(outcome, require_status=require_status)
    elif expectation is Expectation.INVALID_INPUT:
        assert_invalid_input_rejected(outcome)
    else:
        raise HarnessInternalError(f"unknown expectation {expectation!r}")


__all__ = [
    "ISSUED_STATUS",
    "assert_generic_success",
    "assert_invalid_input_rejected",
    "assert_issued",
    "classify",
]
