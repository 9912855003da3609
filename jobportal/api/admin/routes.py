"""
Admin Routes

API endpoints for user management and audit history.
All endpoints require the admin role.
"""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from jobportal.api.access.audit import (
    AuditAction,
    AuditEntityType,
    AuditLogFilter,
    AuditRecorder,
    AuditStore,
    RequestMetadata,
)
from jobportal.api.admin.schemas import (
    AuditLogListResponse,
    AuditLogResponse,
    UserUpdateRequest,
)
from jobportal.api.admin.service import AdminService
from jobportal.api.auth.identity import Identity
from jobportal.api.auth.schemas import MessageResponse, UserResponse
from jobportal.api.db.session import get_db
from jobportal.api.dependencies import get_audit_recorder, get_audit_store, require_admin


router = APIRouter()


# ==================== Audit Logs ====================


@router.get(
    "/audit-logs",
    response_model=AuditLogListResponse,
    summary="List audit log entries",
)
async def list_audit_logs(
    admin: Identity = Depends(require_admin),
    store: AuditStore = Depends(get_audit_store),
    action: Optional[AuditAction] = Query(None, description="Filter by action"),
    entity_type: Optional[AuditEntityType] = Query(None, description="Filter by entity type"),
    entity_id: Optional[str] = Query(None, description="Filter by entity ID"),
    user_id: Optional[str] = Query(None, description="Filter by actor ID"),
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
) -> AuditLogListResponse:
    """
    Get audit entries, newest first.

    Supports filtering by action, entity and actor.
    """
    entries, total = await store.query(
        AuditLogFilter(
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            user_id=user_id,
            limit=limit,
            offset=offset,
        )
    )

    return AuditLogListResponse(
        audit_logs=[AuditLogResponse.from_entry(e) for e in entries],
        total=total,
        limit=limit,
        offset=offset,
    )


@router.get(
    "/audit-logs/{entry_id}",
    response_model=AuditLogResponse,
    summary="Get an audit log entry",
)
async def get_audit_log(
    entry_id: int,
    admin: Identity = Depends(require_admin),
    store: AuditStore = Depends(get_audit_store),
) -> AuditLogResponse:
    """Get a single audit entry."""
    entry = await store.get(entry_id)
    if entry is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Audit log entry not found",
        )
    return AuditLogResponse.from_entry(entry)


# ==================== User Management ====================


@router.patch(
    "/users/{user_id}",
    response_model=UserResponse,
    summary="Update a user",
)
async def update_user(
    user_id: UUID,
    data: UserUpdateRequest,
    request: Request,
    admin: Identity = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    recorder: AuditRecorder = Depends(get_audit_recorder),
) -> UserResponse:
    """
    Update a user's name, role or active status.

    The change is written to the audit log with before/after snapshots.
    """
    service = AdminService(db)
    user = await service.get_user_by_id(user_id)

    if not user:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found",
        )

    actor = await service.actor_for(admin)
    before, after, fields = await service.update_user(user, data)

    if fields:
        await recorder.record_update(
            AuditEntityType.USER,
            str(user_id),
            actor,
            before=before,
            after=after,
            fields=fields,
            reason=data.reason,
            request_metadata=RequestMetadata.from_request(request),
        )

    return UserResponse.model_validate(user)


@router.delete(
    "/users/{user_id}",
    response_model=MessageResponse,
    summary="Delete a user",
)
async def delete_user(
    user_id: UUID,
    request: Request,
    reason: Optional[str] = Query(None, max_length=500),
    admin: Identity = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    recorder: AuditRecorder = Depends(get_audit_recorder),
) -> MessageResponse:
    """
    Delete a user account.

    The removed state is kept in the audit log.
    """
    if str(user_id) == admin.user_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Admins cannot delete their own account",
        )

    service = AdminService(db)
    user = await service.get_user_by_id(user_id)

    if not user:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found",
        )

    actor = await service.actor_for(admin)
    before = await service.delete_user(user)

    await recorder.record_delete(
        AuditEntityType.USER,
        str(user_id),
        actor,
        before=before,
        reason=reason,
        request_metadata=RequestMetadata.from_request(request),
    )

    return MessageResponse(message="User deleted")
