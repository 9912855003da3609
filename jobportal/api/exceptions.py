"""
JOBPORTAL - Exception Hierarchy
===============================

Structured exception types for the identity and audit core.

Exception Categories:
    - ConfigurationError: Startup configuration problems (fatal)
    - InvalidCredentialError: A credential failed verification
    - AccessError: Request-level authentication/authorization failures
    - AuditError: Audit trail persistence and integrity problems
"""

from typing import Any, Dict, Optional


class JobPortalError(Exception):
    """
    Base exception for all JOBPORTAL errors.

    Attributes:
        message: Human-readable error description
        code: Optional error code for programmatic handling
        details: Optional dict with additional context
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}

    def __str__(self) -> str:
        if self.code:
            return f"[{self.code}] {self.message}"
        return self.message


# =============================================================================
# CONFIGURATION ERRORS
# =============================================================================


class ConfigurationError(JobPortalError):
    """Invalid or missing configuration. The process must not serve traffic."""

    pass


# =============================================================================
# CREDENTIAL & ACCESS ERRORS
# =============================================================================


class InvalidCredentialError(JobPortalError):
    """
    Credential could not be verified.

    Raised for forged, malformed and expired credentials alike, always
    with the same message.
    """

    MESSAGE = "Invalid or expired token"

    def __init__(self) -> None:
        super().__init__(self.MESSAGE, code="invalid_credential")


class AccessError(JobPortalError):
    """Base exception for request access failures."""

    status_code: int = 500


class UnauthorizedError(AccessError):
    """No usable credential on the request (HTTP 401)."""

    status_code = 401

    def __init__(self, message: str = "Unauthorized") -> None:
        super().__init__(message, code="unauthorized")


class ForbiddenError(AccessError):
    """Valid credential, but the role is not allowed (HTTP 403)."""

    status_code = 403

    def __init__(self, message: str = "Forbidden") -> None:
        super().__init__(message, code="forbidden")


# =============================================================================
# AUDIT ERRORS
# =============================================================================


class AuditError(JobPortalError):
    """Base exception for audit trail errors."""

    pass


class AuditWriteFailedError(AuditError):
    """
    An audit entry could not be persisted.

    Non-fatal: callers log it and let the primary operation finish.
    """

    def __init__(self, message: str, cause: Optional[BaseException] = None, **kwargs):
        super().__init__(message, code="audit_write_failed", **kwargs)
        self.cause = cause


class ImmutableAuditLogError(AuditError):
    """Attempt to modify or delete a stored audit entry."""

    pass
