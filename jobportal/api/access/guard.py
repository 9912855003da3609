"""
JOBPORTAL - Access Guard

Resolves the caller's identity from an inbound request and enforces
role membership. This is the only authorization surface privileged
handlers may use.
"""

import logging
from typing import Iterable, Optional, Union

from starlette.requests import HTTPConnection

from jobportal.api.auth.identity import Identity, Role, parse_roles
from jobportal.api.auth.jwt import TokenService
from jobportal.api.exceptions import (
    ForbiddenError,
    InvalidCredentialError,
    UnauthorizedError,
)


logger = logging.getLogger(__name__)

BEARER_PREFIX = "bearer "
DEFAULT_COOKIE_NAME = "token"


def extract_credential(
    request: HTTPConnection,
    cookie_name: str = DEFAULT_COOKIE_NAME,
) -> Optional[str]:
    """
    Get the raw credential from a request.

    The Authorization bearer header takes priority over the cookie.

    Returns:
        Token string, or None if the request carries no credential
    """
    header = request.headers.get("authorization")
    if header and header[: len(BEARER_PREFIX)].lower() == BEARER_PREFIX:
        token = header[len(BEARER_PREFIX):].strip()
        if token:
            return token

    token = request.cookies.get(cookie_name)
    return token or None


class AccessGuard:
    """
    Identity and role enforcement for requests.

    Holds only the immutable token service; safe to share across
    concurrent requests.
    """

    def __init__(
        self,
        token_service: TokenService,
        cookie_name: str = DEFAULT_COOKIE_NAME,
    ):
        self.token_service = token_service
        self.cookie_name = cookie_name

    def extract_credential(self, request: HTTPConnection) -> Optional[str]:
        return extract_credential(request, self.cookie_name)

    def require_identity(self, request: HTTPConnection) -> Identity:
        """
        Resolve the caller's identity.

        Raises:
            UnauthorizedError: If no credential is present or it fails
                verification
        """
        token = self.extract_credential(request)
        if token is None:
            raise UnauthorizedError()

        try:
            return self.token_service.verify(token)
        except InvalidCredentialError:
            logger.info(
                "Rejected credential for %s %s",
                request.scope.get("method", "WS"),
                request.url.path,
            )
            raise UnauthorizedError() from None

    def require_role(
        self,
        request: HTTPConnection,
        allowed_roles: Iterable[Union[Role, str]],
    ) -> Identity:
        """
        Resolve the caller's identity and check its role.

        Raises:
            UnauthorizedError: Propagated from require_identity
            ForbiddenError: If the role is not in allowed_roles
        """
        allowed = parse_roles(allowed_roles)
        identity = self.require_identity(request)

        if identity.role not in allowed:
            logger.info(
                "Role %s denied for %s (allowed: %s)",
                identity.role.value,
                request.url.path,
                ", ".join(sorted(r.value for r in allowed)),
            )
            raise ForbiddenError()

        return identity

    def optional_identity(self, request: HTTPConnection) -> Optional[Identity]:
        """Resolve the caller's identity, or None if anonymous or invalid."""
        try:
            return self.require_identity(request)
        except UnauthorizedError:
            return None

