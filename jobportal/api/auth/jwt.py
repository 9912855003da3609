"""
JWT Token Handling

Create and verify signed identity tokens.
"""

import binascii
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from jwt.exceptions import DecodeError, InvalidTokenError
from jwt.utils import base64url_decode, base64url_encode

from jobportal.api.auth.identity import Identity, parse_role
from jobportal.api.config import Settings
from jobportal.api.exceptions import ConfigurationError, InvalidCredentialError


logger = logging.getLogger(__name__)

REQUIRED_CLAIMS = ["sub", "email", "role", "iat", "exp"]


def _check_signature_encoding(token: str) -> None:
    """
    Reject signatures that are not in canonical base64url form.

    base64url tolerates non-zero padding bits in the last character, so
    two different strings can decode to the same signature bytes.
    """
    segments = token.split(".")
    if len(segments) != 3:
        raise DecodeError("Not enough segments")
    signature = segments[2].encode("ascii")
    try:
        canonical = base64url_encode(base64url_decode(signature))
    except (binascii.Error, ValueError) as e:
        raise DecodeError("Invalid signature padding") from e
    if canonical != signature:
        raise DecodeError("Non-canonical signature encoding")


class TokenService:
    """
    Issues and verifies identity tokens.

    The signing secret is fixed for the lifetime of the instance. An
    instance is built once at startup and shared by all requests.
    """

    def __init__(
        self,
        secret: str,
        algorithm: str = "HS256",
        lifetime: timedelta = timedelta(days=7),
    ):
        if not secret:
            raise ConfigurationError(
                "JWT signing secret is not configured",
                code="missing_jwt_secret",
            )
        self._secret = secret
        self._algorithm = algorithm
        self._lifetime = lifetime

    @classmethod
    def from_settings(cls, settings: Settings) -> "TokenService":
        """Build the service from application settings."""
        return cls(
            secret=settings.JWT_SECRET_KEY or "",
            algorithm=settings.JWT_ALGORITHM,
            lifetime=timedelta(days=settings.ACCESS_TOKEN_EXPIRE_DAYS),
        )

    @property
    def lifetime(self) -> timedelta:
        return self._lifetime

    @property
    def expires_in(self) -> int:
        """Token lifetime in seconds."""
        return int(self._lifetime.total_seconds())

    def issue(self, identity: Identity, issued_at: Optional[datetime] = None) -> str:
        """
        Create a new token for an identity.

        Args:
            identity: Verified user identity
            issued_at: Issue time (defaults to now, UTC)

        Returns:
            Encoded JWT
        """
        now = issued_at or datetime.now(timezone.utc)
        role = parse_role(identity.role)

        payload = {
            "sub": str(identity.user_id),
            "email": identity.email,
            "role": role.value,
            "iat": now,
            "exp": now + self._lifetime,
        }

        return jwt.encode(payload, self._secret, algorithm=self._algorithm)

    def verify(self, token: str) -> Identity:
        """
        Verify and decode a token.

        Args:
            token: JWT string

        Returns:
            Identity embedded in the token

        Raises:
            InvalidCredentialError: On any failure (signature, structure,
                claims, role or expiry)
        """
        try:
            _check_signature_encoding(token)
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                options={"require": REQUIRED_CLAIMS},
            )
            return Identity(
                user_id=str(payload["sub"]),
                email=str(payload["email"]),
                role=parse_role(payload["role"]),
            )
        except (InvalidTokenError, ValueError, TypeError, KeyError, AttributeError) as e:
            logger.debug("Token rejected: %s", type(e).__name__)
            raise InvalidCredentialError() from None
