"""
Admin Schemas

Pydantic models for admin user management and audit history.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from jobportal.api.access.audit import AuditAction, AuditEntityType, AuditEntry
from jobportal.api.auth.identity import Role


# ==================== User Management ====================


class UserUpdateRequest(BaseModel):
    """Admin update of a user account."""

    name: Optional[str] = Field(None, min_length=1, max_length=200)
    role: Optional[Role] = None
    is_active: Optional[bool] = None
    reason: Optional[str] = Field(None, max_length=500)


# ==================== Audit Logs ====================


class AuditLogResponse(BaseModel):
    """Single audit entry."""

    id: int
    action: AuditAction
    entity_type: AuditEntityType
    entity_id: Optional[str] = None
    user_id: str
    user_email: str
    user_name: str
    changes: Optional[Dict[str, Any]] = None
    reason: Optional[str] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    metadata: Dict[str, Any] = {}
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @classmethod
    def from_entry(cls, entry: AuditEntry) -> "AuditLogResponse":
        return cls(
            id=entry.id,
            action=entry.action,
            entity_type=entry.entity_type,
            entity_id=entry.entity_id,
            user_id=entry.actor.user_id,
            user_email=entry.actor.email,
            user_name=entry.actor.name,
            changes=entry.changes.to_dict() if entry.changes else None,
            reason=entry.reason,
            ip_address=entry.ip_address,
            user_agent=entry.user_agent,
            metadata=entry.metadata,
            created_at=entry.created_at,
        )


class AuditLogListResponse(BaseModel):
    """Paginated list of audit entries, newest first."""

    audit_logs: List[AuditLogResponse]
    total: int
    limit: int
    offset: int
