"""
FastAPI Dependencies

Common dependencies for dependency injection. Identity is always
resolved through the AccessGuard; handlers receive the Identity value.
"""

from typing import Iterable, Optional, Union

from fastapi import Depends, Request

from jobportal.api.access.audit import AuditRecorder, AuditStore
from jobportal.api.access.guard import AccessGuard
from jobportal.api.auth.identity import Identity, Role, parse_roles
from jobportal.api.auth.jwt import TokenService
from jobportal.api.config import Settings


def get_app_settings(request: Request) -> Settings:
    """Settings the application was created with."""
    return request.app.state.settings


def get_token_service(request: Request) -> TokenService:
    """Process-wide token service created at startup."""
    return request.app.state.token_service


def get_access_guard(request: Request) -> AccessGuard:
    """Process-wide access guard created at startup."""
    return request.app.state.access_guard


def get_audit_recorder(request: Request) -> AuditRecorder:
    """Process-wide audit recorder created at startup."""
    return request.app.state.audit_recorder


def get_audit_store(request: Request) -> AuditStore:
    """Read access to the audit trail."""
    return request.app.state.audit_store


async def get_current_identity(
    request: Request,
    guard: AccessGuard = Depends(get_access_guard),
) -> Identity:
    """
    Get the identity of the authenticated caller.

    Raises:
        UnauthorizedError: If the request has no valid credential
    """
    return guard.require_identity(request)


async def get_optional_identity(
    request: Request,
    guard: AccessGuard = Depends(get_access_guard),
) -> Optional[Identity]:
    """
    Get the caller's identity if authenticated, None otherwise.

    Useful for endpoints that behave differently for anonymous callers.
    """
    return guard.optional_identity(request)


class RoleChecker:
    """
    Role-based access control dependency.

    Usage:
        @router.get("/jobs/mine")
        async def my_jobs(identity: Identity = Depends(RoleChecker([Role.RECRUITER]))):
            ...
    """

    def __init__(self, allowed_roles: Iterable[Union[Role, str]]):
        self.allowed_roles = frozenset(parse_roles(allowed_roles))

    async def __call__(
        self,
        request: Request,
        guard: AccessGuard = Depends(get_access_guard),
    ) -> Identity:
        """
        Raises:
            UnauthorizedError: If the request has no valid credential
            ForbiddenError: If the caller's role is not allowed
        """
        return guard.require_role(request, self.allowed_roles)


require_admin = RoleChecker([Role.ADMIN])
