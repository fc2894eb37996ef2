"""Request body factory and mutation builders.

The canonical body is rebuilt from a deep copy of a module-level template on
every call, and every mutation builder returns a new body. Nothing here ever
modifies its input, so one canonical body can seed any number of scenarios.
"""

from __future__ import annotations

import copy
import time
import uuid
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any

from vc_conformance.errors import HarnessInternalError

CREDENTIALS_V1_CONTEXT = "https://www.w3.org/2018/credentials/v1"
CREDENTIALS_EXAMPLES_V1_CONTEXT = "https://www.w3.org/2018/credentials/examples/v1"
VERIFIABLE_CREDENTIAL_TYPE = "VerifiableCredential"
EXAMPLE_SUBJECT_ID = "did:example:1234"

CREDENTIAL_KEY = "credential"
LEGACY_CREDENTIAL_KEY = "verifiableCredential"

REQUIRED_CREDENTIAL_FIELDS = ("@context", "type", "issuer", "credentialSubject")

ONE_YEAR_MILLIS = 365 * 24 * 60 * 60 * 1000

_CREDENTIAL_TEMPLATE: MappingProxyType[str, Any] = MappingProxyType(
    {
        "@context": (CREDENTIALS_V1_CONTEXT, CREDENTIALS_EXAMPLES_V1_CONTEXT),
        "type": (VERIFIABLE_CREDENTIAL_TYPE,),
        "credentialSubject": MappingProxyType({"id": EXAMPLE_SUBJECT_ID}),
    }
)


def _thaw(value: Any) -> Any:
    """Deep-copy a template value into plain JSON-compatible containers."""
    if isinstance(value, MappingProxyType | dict):
        return {k: _thaw(v) for k, v in value.items()}
    if isinstance(value, tuple | list):
        return [_thaw(v) for v in value]
    return copy.deepcopy(value)


def create_iso_timestamp(epoch_millis: int | float | None = None) -> str:
    """Format an instant as an ISO-8601 UTC timestamp without fractional seconds.

    Example:
        >>> create_iso_timestamp(0)
        '1970-01-01T00:00:00Z'
    """
    if epoch_millis is None:
        epoch_millis = time.time() * 1000
    instant = datetime.fromtimestamp(epoch_millis / 1000, tz=timezone.utc)
    return instant.replace(microsecond=0).strftime("%Y-%m-%dT%H:%M:%SZ")


def one_year_from_now(now_millis: int | float | None = None) -> str:
    """Timestamp 365 days after ``now_millis`` (defaults to the current time)."""
    if now_millis is None:
        now_millis = time.time() * 1000
    return create_iso_timestamp(now_millis + ONE_YEAR_MILLIS)


def create_request_body(
    issuer_id: str,
    *,
    credential_id: str | None = None,
    issuance_date: str | None = None,
) -> dict[str, Any]:
    """Build a minimal valid issue request for ``issuer_id``.

    Args:
        issuer_id: Identity the caller is authorized to issue as.
        credential_id: Optional credential ``id``; when omitted no id is sent.
        issuance_date: Optional ``issuanceDate``; when omitted the issuer is
            left to supply one.

    Returns:
        A fresh ``{"credential": {...}}`` dict owned by the caller.
    """
    if not issuer_id:
        raise HarnessInternalError("issuer id is required to build a request body")
    credential = _thaw(_CREDENTIAL_TEMPLATE)
    credential["issuer"] = issuer_id
    if credential_id is not None:
        credential["id"] = credential_id
    if issuance_date is not None:
        credential["issuanceDate"] = issuance_date
    return {CREDENTIAL_KEY: credential}


def new_credential_id() -> str:
    return f"urn:uuid:{uuid.uuid4()}"


def _credential_of(body: dict[str, Any]) -> dict[str, Any]:
    credential = body.get(CREDENTIAL_KEY)
    if not isinstance(credential, dict):
        raise HarnessInternalError(
            f"body has no '{CREDENTIAL_KEY}' object to mutate",
            details={"keys": sorted(body)},
        )
    return credential


def delete_field(body: dict[str, Any], field: str) -> dict[str, Any]:
    """Return a copy of ``body`` with ``credential[field]`` removed."""
    mutated = copy.deepcopy(body)
    credential = _credential_of(mutated)
    if field not in credential:
        raise HarnessInternalError(
            f"cannot delete missing credential field '{field}'", details={"field": field}
        )
    del credential[field]
    return mutated


def replace_field(body: dict[str, Any], field: str, value: Any) -> dict[str, Any]:
    """Return a copy of ``body`` with ``credential[field]`` set to ``value``."""
    mutated = copy.deepcopy(body)
    _credential_of(mutated)[field] = copy.deepcopy(value)
    return mutated


def add_field(body: dict[str, Any], field: str, value: Any) -> dict[str, Any]:
    """Return a copy of ``body`` with a new ``credential[field]`` set to ``value``."""
    mutated = copy.deepcopy(body)
    credential = _credential_of(mutated)
    if field in credential:
        raise HarnessInternalError(
            f"cannot add existing credential field '{field}'", details={"field": field}
        )
    credential[field] = copy.deepcopy(value)
    return mutated


def rename_credential(
    body: dict[str, Any], new_key: str = LEGACY_CREDENTIAL_KEY
) -> dict[str, Any]:
    """Return a copy of ``body`` with the top-level ``credential`` key renamed."""
    mutated = copy.deepcopy(body)
    mutated[new_key] = _credential_of(mutated)
    del mutated[CREDENTIAL_KEY]
    return mutated


def missing_required_fields(credential: Any) -> list[str]:
    """Names of required credential fields absent from ``credential``."""
    if not isinstance(credential, dict):
        return list(REQUIRED_CREDENTIAL_FIELDS)
    return [f for f in REQUIRED_CREDENTIAL_FIELDS if f not in credential]


__all__ = [
    "CREDENTIALS_EXAMPLES_V1_CONTEXT",
    "CREDENTIALS_V1_CONTEXT",
    "CREDENTIAL_KEY",
    "LEGACY_CREDENTIAL_KEY",
    "REQUIRED_CREDENTIAL_FIELDS",
    "add_field",
    "create_iso_timestamp",
    "create_request_body",
    "delete_field",
    "missing_required_fields",
    "new_credential_id",
    "one_year_from_now",
    "rename_credential",
    "replace_field",
]
