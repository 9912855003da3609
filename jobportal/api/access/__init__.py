"""
JOBPORTAL - Access & Accountability Module

Identity enforcement and audit logging.

Components:
- guard.py: Credential extraction, identity and role enforcement
- audit.py: Audit entry types and the audit recorder
- store.py: SQLAlchemy append-only audit store

Usage:
    from jobportal.api.access import AccessGuard, AuditRecorder, AuditAction
"""

from jobportal.api.access.guard import AccessGuard, extract_credential

from jobportal.api.access.audit import (
    AuditAction,
    AuditActor,
    AuditChanges,
    AuditEntityType,
    AuditEntry,
    AuditLogFilter,
    AuditRecorder,
    AuditStore,
    RequestMetadata,
    changed_fields,
    get_client_ip,
)

from jobportal.api.access.store import SqlAlchemyAuditStore

__all__ = [
    # Guard
    "AccessGuard",
    "extract_credential",

    # Audit
    "AuditAction",
    "AuditActor",
    "AuditChanges",
    "AuditEntityType",
    "AuditEntry",
    "AuditLogFilter",
    "AuditRecorder",
    "AuditStore",
    "RequestMetadata",
    "changed_fields",
    "get_client_ip",
    "SqlAlchemyAuditStore",
]
