"""Authentication module."""

from jobportal.api.auth.identity import Identity, Role, parse_role, parse_roles
from jobportal.api.auth.jwt import TokenService

__all__ = ["Identity", "Role", "TokenService", "parse_role", "parse_roles"]
