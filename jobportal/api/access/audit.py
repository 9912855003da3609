"""
JOBPORTAL - Audit Logging System

Append-only trail of privileged state changes: who did what, to which
entity, with what before/after values.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Protocol, Set, Tuple, Union

from starlette.requests import HTTPConnection

from jobportal.api.auth.identity import Identity
from jobportal.api.db.models import IP_ADDRESS_MAX_LENGTH, USER_AGENT_MAX_LENGTH
from jobportal.api.exceptions import AuditWriteFailedError


logger = logging.getLogger(__name__)


# ============================================================
# Audit Event Types
# ============================================================


class AuditAction(str, Enum):
    """Kinds of audited actions."""

    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    LOGIN = "login"
    LOGOUT = "logout"
    REGISTER = "register"


class AuditEntityType(str, Enum):
    """Entity types an audit entry can refer to."""

    USER = "user"
    COMPANY = "company"
    JOB = "job"
    CV = "cv"


# ============================================================
# Audit Event Structure
# ============================================================


@dataclass(frozen=True)
class AuditActor:
    """Who performed the action, copied at write time."""

    user_id: str
    email: str
    name: str

    @classmethod
    def from_identity(cls, identity: Identity, name: Optional[str] = None) -> "AuditActor":
        """Build an actor from a verified identity. Name falls back to email."""
        return cls(
            user_id=identity.user_id,
            email=identity.email,
            name=name or identity.email,
        )


@dataclass(frozen=True)
class AuditChanges:
    """Caller-supplied snapshots around a mutation."""

    before: Optional[Any] = None
    after: Optional[Any] = None
    fields: Optional[List[str]] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {}
        if self.before is not None:
            data["before"] = self.before
        if self.after is not None:
            data["after"] = self.after
        if self.fields is not None:
            data["fields"] = list(self.fields)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AuditChanges":
        return cls(
            before=data.get("before"),
            after=data.get("after"),
            fields=data.get("fields"),
        )


@dataclass(frozen=True)
class RequestMetadata:
    """Request context attached to an audit entry."""

    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    extras: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_request(cls, request: HTTPConnection, **extras: Any) -> "RequestMetadata":
        """
        Capture client IP and user agent from a request.

        Both come from client-controlled headers and are cut to the
        audit column sizes.
        """
        ip_address = get_client_ip(request)
        user_agent = request.headers.get("user-agent") or None
        return cls(
            ip_address=ip_address[:IP_ADDRESS_MAX_LENGTH] if ip_address else None,
            user_agent=user_agent[:USER_AGENT_MAX_LENGTH] if user_agent else None,
            extras=extras,
        )


@dataclass(frozen=True)
class AuditEntry:
    """Complete audit record."""

    action: AuditAction
    entity_type: AuditEntityType
    actor: AuditActor
    created_at: datetime
    entity_id: Optional[str] = None
    changes: Optional[AuditChanges] = None
    reason: Optional[str] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
    id: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for logging and API responses."""
        return {
            "id": self.id,
            "action": self.action.value,
            "entity_type": self.entity_type.value,
            "entity_id": self.entity_id,
            "user_id": self.actor.user_id,
            "user_email": self.actor.email,
            "user_name": self.actor.name,
            "changes": self.changes.to_dict() if self.changes else None,
            "reason": self.reason,
            "ip_address": self.ip_address,
            "user_agent": self.user_agent,
            "metadata": self.metadata,
            "created_at": self.created_at.isoformat(),
        }


@dataclass(frozen=True)
class AuditLogFilter:
    """Read-side filter for audit history."""

    action: Optional[AuditAction] = None
    entity_type: Optional[AuditEntityType] = None
    entity_id: Optional[str] = None
    user_id: Optional[str] = None
    limit: int = 100
    offset: int = 0


class AuditStore(Protocol):
    """Durable append-only storage for audit entries."""

    async def append(self, entry: AuditEntry) -> AuditEntry:
        """Persist an entry and return it with its generated id."""
        ...

    async def get(self, entry_id: int) -> Optional[AuditEntry]:
        ...

    async def query(self, criteria: AuditLogFilter) -> Tuple[List[AuditEntry], int]:
        """Return matching entries, newest first, and the total match count."""
        ...


# ============================================================
# Request helpers
# ============================================================


def get_client_ip(request: HTTPConnection) -> Optional[str]:
    """Get client IP address from proxy headers or the socket peer."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip
    if request.client:
        return request.client.host
    return None


def changed_fields(before: Dict[str, Any], after: Dict[str, Any]) -> List[str]:
    """Names of keys whose values differ between two snapshots."""
    keys = set(before) | set(after)
    return sorted(k for k in keys if before.get(k) != after.get(k))


# ============================================================
# Audit Recorder
# ============================================================


class AuditRecorder:
    """
    Builds and persists audit entries.

    Each write runs as a shielded task: cancelling the calling request
    does not abort a write already issued, and a write slower than
    write_timeout is reported as failed without blocking the caller.
    """

    def __init__(self, store: AuditStore, write_timeout: float = 5.0):
        self.store = store
        self.write_timeout = write_timeout
        self._pending: Set[asyncio.Task] = set()

    async def record(
        self,
        action: Union[AuditAction, str],
        entity_type: Union[AuditEntityType, str],
        actor: Union[AuditActor, Identity],
        *,
        entity_id: Optional[str] = None,
        changes: Optional[AuditChanges] = None,
        reason: Optional[str] = None,
        request_metadata: Optional[RequestMetadata] = None,
    ) -> AuditEntry:
        """
        Record one audit entry.

        Raises:
            ValueError: If action or entity_type is outside the known set
            AuditWriteFailedError: If the entry could not be persisted
        """
        action = AuditAction(action)
        entity_type = AuditEntityType(entity_type)
        if isinstance(actor, Identity):
            actor = AuditActor.from_identity(actor)
        meta = request_metadata or RequestMetadata()

        entry = AuditEntry(
            action=action,
            entity_type=entity_type,
            actor=actor,
            created_at=datetime.now(timezone.utc),
            entity_id=str(entity_id) if entity_id is not None else None,
            changes=changes,
            reason=reason,
            ip_address=meta.ip_address,
            user_agent=meta.user_agent,
            metadata=dict(meta.extras),
        )

        task = asyncio.ensure_future(self.store.append(entry))
        self._pending.add(task)
        task.add_done_callback(self._on_write_done)

        try:
            stored = await asyncio.wait_for(asyncio.shield(task), timeout=self.write_timeout)
        except asyncio.TimeoutError as e:
            raise AuditWriteFailedError(
                f"Audit write timed out after {self.write_timeout}s",
                cause=e,
                details={"action": action.value, "entity_type": entity_type.value},
            ) from e
        except Exception as e:
            raise AuditWriteFailedError(
                f"Failed to persist audit entry: {e}",
                cause=e,
                details={"action": action.value, "entity_type": entity_type.value},
            ) from e

        logger.info("AUDIT", extra={"audit_event": stored.to_dict()})
        return stored

    async def record_or_log(
        self,
        action: Union[AuditAction, str],
        entity_type: Union[AuditEntityType, str],
        actor: Union[AuditActor, Identity],
        **kwargs: Any,
    ) -> Optional[AuditEntry]:
        """Record an entry; log and swallow persistence failures."""
        try:
            return await self.record(action, entity_type, actor, **kwargs)
        except AuditWriteFailedError as e:
            logger.error(
                "Audit entry not persisted (%s %s by %s): %s",
                AuditAction(action).value,
                AuditEntityType(entity_type).value,
                actor.email,
                e.message,
            )
            return None

    async def record_create(
        self,
        entity_type: Union[AuditEntityType, str],
        entity_id: str,
        actor: Union[AuditActor, Identity],
        after: Any,
        **kwargs: Any,
    ) -> Optional[AuditEntry]:
        """Audit a creation with its resulting state."""
        return await self.record_or_log(
            AuditAction.CREATE,
            entity_type,
            actor,
            entity_id=entity_id,
            changes=AuditChanges(after=after),
            **kwargs,
        )

    async def record_update(
        self,
        entity_type: Union[AuditEntityType, str],
        entity_id: str,
        actor: Union[AuditActor, Identity],
        before: Any,
        after: Any,
        fields: Optional[List[str]] = None,
        **kwargs: Any,
    ) -> Optional[AuditEntry]:
        """Audit an update with before/after states."""
        return await self.record_or_log(
            AuditAction.UPDATE,
            entity_type,
            actor,
            entity_id=entity_id,
            changes=AuditChanges(before=before, after=after, fields=fields),
            **kwargs,
        )

    async def record_delete(
        self,
        entity_type: Union[AuditEntityType, str],
        entity_id: str,
        actor: Union[AuditActor, Identity],
        before: Any,
        **kwargs: Any,
    ) -> Optional[AuditEntry]:
        """Audit a deletion with the state that was removed."""
        return await self.record_or_log(
            AuditAction.DELETE,
            entity_type,
            actor,
            entity_id=entity_id,
            changes=AuditChanges(before=before),
            **kwargs,
        )

    async def drain(self) -> None:
        """Wait for every in-flight write to finish (used at shutdown)."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    def _on_write_done(self, task: asyncio.Task) -> None:
        self._pending.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.warning("Audit write task failed: %r", error)
