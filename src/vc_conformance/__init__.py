"""VC Issuer Conformance Harness.

Validates that third-party Verifiable Credential issuer services follow the
credential issuance data model. The same scenario matrix is replayed against
every configured implementation and each outcome is classified into a
uniform pass/fail verdict.
"""

__version__ = "0.3.0"
