"""
Admin Service

Business logic for admin user management.
"""

from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from jobportal.api.access.audit import AuditActor, changed_fields
from jobportal.api.admin.schemas import UserUpdateRequest
from jobportal.api.auth.identity import Identity
from jobportal.api.auth.service import user_snapshot
from jobportal.api.db.models import User


class AdminService:
    """Admin operations on user accounts."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_user_by_id(self, user_id: UUID) -> Optional[User]:
        """Get user by ID."""
        result = await self.db.execute(
            select(User).where(User.id == user_id)
        )
        return result.scalar_one_or_none()

    async def actor_for(self, identity: Identity) -> AuditActor:
        """
        Audit actor for an admin identity.

        The display name comes from the user row when it still exists;
        otherwise the email is used.
        """
        name = None
        try:
            user = await self.get_user_by_id(UUID(identity.user_id))
        except ValueError:
            user = None
        if user is not None:
            name = user.name
        return AuditActor.from_identity(identity, name=name)

    async def update_user(
        self, user: User, data: UserUpdateRequest
    ) -> Tuple[Dict[str, Any], Dict[str, Any], List[str]]:
        """
        Apply an admin update to a user.

        Returns:
            Tuple of (before snapshot, after snapshot, changed field names)
        """
        before = user_snapshot(user)

        if data.name is not None:
            user.name = data.name.strip()
        if data.role is not None:
            user.role = data.role
        if data.is_active is not None:
            user.is_active = data.is_active

        await self.db.commit()
        await self.db.refresh(user)

        after = user_snapshot(user)
        return before, after, changed_fields(before, after)

    async def delete_user(self, user: User) -> Dict[str, Any]:
        """
        Delete a user.

        Returns:
            Snapshot of the deleted user
        """
        before = user_snapshot(user)
        await self.db.delete(user)
        await self.db.commit()
        return before
