"""
auth/errors.py -- Error taxonomy for authentication and authorization.

Every failure the provider reports is one of these types. Callers branch on
the class (or on the symbolic `code`) and never on backend exception types,
so swapping the database driver does not change the error surface.

Hierarchy:
  AuthError
    MissingField         -- credential field absent; raised before any I/O
    InvalidCredentials   -- unknown user OR wrong password (indistinguishable)
    AmbiguousIdentity    -- >1 row for one username; data-integrity problem
    BackendUnavailable   -- connection/query failure; wraps the cause
    UnsupportedAlgorithm -- digest not available in this runtime; config error
    MalformedPrincipal   -- corrupt or truncated serialized principal

Layer rule: no imports from db/ or core/.
"""

from __future__ import annotations


class AuthError(Exception):
    """Base class for all sqlauth errors."""

    code = "auth_error"


class MissingField(AuthError):
    code = "missing_field"

    def __init__(self, field: str) -> None:
        super().__init__(f"credentials must contain {field} in '{field}' field")
        self.field = field


class InvalidCredentials(AuthError):
    # One message for both unknown user and wrong password -- must not vary.
    code = "invalid_credentials"

    def __init__(self) -> None:
        super().__init__("Invalid username/password")


class AmbiguousIdentity(AuthError):
    code = "ambiguous_identity"

    def __init__(self, username: str, row_count: int) -> None:
        super().__init__(f"Failure in authentication: {row_count} rows matched one username")
        self.username = username
        self.row_count = row_count


class BackendUnavailable(AuthError):
    """Connection or query failure reported by the query executor.

    The original exception is chained as __cause__ and also kept on `cause`
    for diagnostics. It is never the primary type callers catch.
    """

    code = "backend_unavailable"

    def __init__(self, message: str, cause: BaseException | None = None) -> None:
        super().__init__(message)
        self.cause = cause


class UnsupportedAlgorithm(AuthError):
    code = "unsupported_algorithm"

    def __init__(self, algorithm: str) -> None:
        super().__init__(f"Hash algorithm {algorithm!r} is not available in this runtime")
        self.algorithm = algorithm


class MalformedPrincipal(AuthError):
    code = "malformed_principal"
