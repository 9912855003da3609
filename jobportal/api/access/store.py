"""
Audit Store

SQLAlchemy-backed append-only storage for audit entries.
"""

from datetime import datetime, timezone
from typing import Callable, List, Optional, Tuple

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from jobportal.api.access.audit import (
    AuditAction,
    AuditActor,
    AuditChanges,
    AuditEntityType,
    AuditEntry,
    AuditLogFilter,
)
from jobportal.api.db.models import AuditLog


class SqlAlchemyAuditStore:
    """
    Audit store on the audit_logs table.

    Every append runs in its own session and transaction, independent of
    the business transaction of the calling request.
    """

    def __init__(self, session_factory: Callable[[], AsyncSession]):
        self._session_factory = session_factory

    async def append(self, entry: AuditEntry) -> AuditEntry:
        row = AuditLog(
            action=entry.action.value,
            entity_type=entry.entity_type.value,
            entity_id=entry.entity_id,
            user_id=entry.actor.user_id,
            user_email=entry.actor.email,
            user_name=entry.actor.name,
            changes=entry.changes.to_dict() if entry.changes else None,
            reason=entry.reason,
            ip_address=entry.ip_address,
            user_agent=entry.user_agent,
            extra_metadata=entry.metadata or None,
            created_at=entry.created_at,
        )

        async with self._session_factory() as session:
            session.add(row)
            await session.flush()
            stored = _to_entry(row)
            await session.commit()

        return stored

    async def get(self, entry_id: int) -> Optional[AuditEntry]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(AuditLog).where(AuditLog.id == entry_id)
            )
            row = result.scalar_one_or_none()
            return _to_entry(row) if row else None

    async def query(self, criteria: AuditLogFilter) -> Tuple[List[AuditEntry], int]:
        conditions = []
        if criteria.action is not None:
            conditions.append(AuditLog.action == AuditAction(criteria.action).value)
        if criteria.entity_type is not None:
            conditions.append(AuditLog.entity_type == AuditEntityType(criteria.entity_type).value)
        if criteria.entity_id is not None:
            conditions.append(AuditLog.entity_id == criteria.entity_id)
        if criteria.user_id is not None:
            conditions.append(AuditLog.user_id == criteria.user_id)

        stmt = (
            select(AuditLog)
            .where(*conditions)
            .order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
            .limit(criteria.limit)
            .offset(criteria.offset)
        )
        count_stmt = select(func.count()).select_from(AuditLog).where(*conditions)

        async with self._session_factory() as session:
            rows = (await session.execute(stmt)).scalars().all()
            total = (await session.execute(count_stmt)).scalar_one()

        return [_to_entry(row) for row in rows], total


def _to_entry(row: AuditLog) -> AuditEntry:
    return AuditEntry(
        id=row.id,
        action=AuditAction(row.action),
        entity_type=AuditEntityType(row.entity_type),
        entity_id=row.entity_id,
        actor=AuditActor(
            user_id=row.user_id,
            email=row.user_email,
            name=row.user_name,
        ),
        changes=AuditChanges.from_dict(row.changes) if row.changes is not None else None,
        reason=row.reason,
        ip_address=row.ip_address,
        user_agent=row.user_agent,
        metadata=row.extra_metadata or {},
        created_at=_as_utc(row.created_at),
    )


def _as_utc(value: datetime) -> datetime:
    """SQLite drops the offset; stored timestamps are always UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value
