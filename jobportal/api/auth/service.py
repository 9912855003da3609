"""
Authentication Service

Business logic for user authentication.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional
from uuid import UUID

import bcrypt
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from jobportal.api.auth.identity import Identity
from jobportal.api.auth.schemas import UserRegisterRequest
from jobportal.api.db.models import User


def hash_password(password: str) -> str:
    """Hash a password with bcrypt."""
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt()).decode()


def identity_for(user: User) -> Identity:
    """Identity to embed in a credential for this user."""
    return Identity(user_id=str(user.id), email=user.email, role=user.role)


def user_snapshot(user: User) -> Dict[str, Any]:
    """JSON-safe view of a user for audit snapshots (no password hash)."""
    return {
        "id": str(user.id),
        "email": user.email,
        "name": user.name,
        "role": user.role.value,
        "is_active": user.is_active,
    }


class AuthService:
    """Authentication service with password management."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def register(self, data: UserRegisterRequest) -> User:
        """
        Register a new user.

        Args:
            data: Registration data

        Returns:
            Created user

        Raises:
            ValueError: If email already exists
        """
        email = data.email.lower()
        existing = await self.get_user_by_email(email)
        if existing:
            raise ValueError("Email already registered")

        user = User(
            email=email,
            password_hash=hash_password(data.password),
            name=data.name.strip(),
            role=data.role,
        )

        self.db.add(user)
        await self.db.commit()
        await self.db.refresh(user)

        return user

    async def authenticate(
        self, email: str, password: str
    ) -> Optional[User]:
        """
        Authenticate user with email/password.

        Args:
            email: User's email
            password: Plain text password

        Returns:
            User if authenticated, None otherwise
        """
        user = await self.get_user_by_email(email.lower())

        if not user or not user.is_active:
            return None

        if not bcrypt.checkpw(password.encode(), user.password_hash.encode()):
            return None

        user.last_login_at = datetime.now(timezone.utc)
        await self.db.commit()
        await self.db.refresh(user)

        return user

    async def get_user_by_email(self, email: str) -> Optional[User]:
        """Get user by email address."""
        result = await self.db.execute(
            select(User).where(User.email == email)
        )
        return result.scalar_one_or_none()

    async def get_user_by_id(self, user_id: UUID) -> Optional[User]:
        """Get user by ID."""
        result = await self.db.execute(
            select(User).where(User.id == user_id)
        )
        return result.scalar_one_or_none()
