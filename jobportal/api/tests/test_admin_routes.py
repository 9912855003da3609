"""
Admin Route Tests

Tests role gating of admin endpoints, audited user management and
reading the audit history back.
"""

import pytest
from httpx import AsyncClient

from jobportal.api.access.audit import AuditAction, AuditEntityType, AuditLogFilter, AuditRecorder
from jobportal.api.auth.service import identity_for
from jobportal.api.dependencies import get_audit_recorder


class BrokenAuditStore:
    """Audit store whose writes always fail."""

    async def append(self, entry):
        raise ConnectionError("audit database unreachable")

    async def get(self, entry_id):
        return None

    async def query(self, criteria):
        return [], 0


# ==================== Role Gating ====================


@pytest.mark.asyncio
async def test_audit_logs_require_credential(async_client: AsyncClient):
    response = await async_client.get("/api/v1/admin/audit-logs")

    assert response.status_code == 401
    assert response.json() == {"detail": "Unauthorized"}


@pytest.mark.asyncio
async def test_audit_logs_forbidden_for_recruiter(async_client: AsyncClient, recruiter_headers):
    response = await async_client.get("/api/v1/admin/audit-logs", headers=recruiter_headers)

    assert response.status_code == 403
    assert response.json() == {"detail": "Forbidden"}


@pytest.mark.asyncio
async def test_audit_logs_forbidden_for_job_seeker(async_client: AsyncClient, seeker_headers):
    response = await async_client.get("/api/v1/admin/audit-logs", headers=seeker_headers)
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_admin_via_cookie(async_client: AsyncClient, admin_user, token_service):
    token = token_service.issue(identity_for(admin_user))
    response = await async_client.get(
        "/api/v1/admin/audit-logs", headers={"Cookie": f"token={token}"}
    )
    assert response.status_code == 200


@pytest.mark.asyncio
async def test_update_user_forbidden_for_recruiter(
    async_client: AsyncClient, recruiter_headers, seeker_user, audit_store
):
    response = await async_client.patch(
        f"/api/v1/admin/users/{seeker_user.id}",
        json={"role": "recruiter"},
        headers=recruiter_headers,
    )

    assert response.status_code == 403
    _, total = await audit_store.query(AuditLogFilter())
    assert total == 0


# ==================== User Management ====================


@pytest.mark.asyncio
async def test_update_user_records_audit(
    async_client: AsyncClient, admin_user, admin_headers, recruiter_user, audit_store
):
    response = await async_client.patch(
        f"/api/v1/admin/users/{recruiter_user.id}",
        json={"role": "admin", "reason": "  Promoted to platform team  "},
        headers={**admin_headers, "User-Agent": "admin-console"},
    )

    assert response.status_code == 200
    assert response.json()["role"] == "admin"

    entries, total = await audit_store.query(AuditLogFilter(action=AuditAction.UPDATE))
    assert total == 1
    entry = entries[0]
    assert entry.entity_type == AuditEntityType.USER
    assert entry.entity_id == str(recruiter_user.id)
    assert entry.actor.user_id == str(admin_user.id)
    assert entry.actor.email == "admin@example.com"
    assert entry.actor.name == "Ada Admin"
    assert entry.changes.before["role"] == "recruiter"
    assert entry.changes.after["role"] == "admin"
    assert entry.changes.fields == ["role"]
    assert entry.reason == "  Promoted to platform team  "
    assert entry.user_agent == "admin-console"


@pytest.mark.asyncio
async def test_update_without_changes_not_audited(
    async_client: AsyncClient, admin_headers, recruiter_user, audit_store
):
    response = await async_client.patch(
        f"/api/v1/admin/users/{recruiter_user.id}",
        json={"role": "recruiter"},
        headers=admin_headers,
    )

    assert response.status_code == 200
    _, total = await audit_store.query(AuditLogFilter())
    assert total == 0


@pytest.mark.asyncio
async def test_update_unknown_user(async_client: AsyncClient, admin_headers):
    response = await async_client.patch(
        "/api/v1/admin/users/5f0c7a4e-2d7b-4a53-9a8e-0a4f5f1d2c3b",
        json={"name": "Nobody"},
        headers=admin_headers,
    )
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_delete_user_records_audit(
    async_client: AsyncClient, admin_user, admin_headers, seeker_user, audit_store
):
    seeker_id = str(seeker_user.id)
    response = await async_client.delete(
        f"/api/v1/admin/users/{seeker_id}",
        params={"reason": "Spam account"},
        headers=admin_headers,
    )

    assert response.status_code == 200

    entries, total = await audit_store.query(
        AuditLogFilter(action=AuditAction.DELETE, entity_id=seeker_id)
    )
    assert total == 1
    assert entries[0].changes.before["email"] == "seeker@example.com"
    assert entries[0].changes.after is None
    assert entries[0].reason == "Spam account"

    again = await async_client.delete(f"/api/v1/admin/users/{seeker_id}", headers=admin_headers)
    assert again.status_code == 404


@pytest.mark.asyncio
async def test_admin_cannot_delete_self(async_client: AsyncClient, admin_user, admin_headers):
    response = await async_client.delete(
        f"/api/v1/admin/users/{admin_user.id}", headers=admin_headers
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_entries_survive_actor_deletion(
    async_client: AsyncClient,
    token_service,
    admin_headers,
    second_admin,
    seeker_user,
    audit_store,
):
    """Entries keep the actor data after the actor's account is gone."""
    second_headers = {"Authorization": f"Bearer {token_service.issue(identity_for(second_admin))}"}
    second_id = str(second_admin.id)

    await async_client.patch(
        f"/api/v1/admin/users/{seeker_user.id}",
        json={"name": "Renamed Seeker"},
        headers=second_headers,
    )
    deleted = await async_client.delete(f"/api/v1/admin/users/{second_id}", headers=admin_headers)
    assert deleted.status_code == 200

    entries, total = await audit_store.query(AuditLogFilter(user_id=second_id))
    assert total == 1
    assert entries[0].actor.email == "admin2@example.com"
    assert entries[0].actor.name == "Ben Admin"
    assert entries[0].changes.after["name"] == "Renamed Seeker"


@pytest.mark.asyncio
async def test_audit_failure_does_not_block_update(
    app, async_client: AsyncClient, admin_headers, recruiter_user
):
    app.dependency_overrides[get_audit_recorder] = lambda: AuditRecorder(BrokenAuditStore())

    response = await async_client.patch(
        f"/api/v1/admin/users/{recruiter_user.id}",
        json={"is_active": False},
        headers=admin_headers,
    )

    assert response.status_code == 200
    assert response.json()["is_active"] is False


# ==================== Audit History ====================


@pytest.mark.asyncio
async def test_list_audit_logs_filters(
    async_client: AsyncClient, admin_headers, recruiter_user, seeker_user
):
    await async_client.patch(
        f"/api/v1/admin/users/{recruiter_user.id}", json={"name": "Rita R."}, headers=admin_headers
    )
    await async_client.patch(
        f"/api/v1/admin/users/{seeker_user.id}", json={"name": "Sam S."}, headers=admin_headers
    )
    await async_client.delete(f"/api/v1/admin/users/{seeker_user.id}", headers=admin_headers)

    response = await async_client.get("/api/v1/admin/audit-logs", headers=admin_headers)
    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 3
    assert data["limit"] == 100
    assert data["offset"] == 0
    assert [e["action"] for e in data["audit_logs"]] == ["delete", "update", "update"]

    response = await async_client.get(
        "/api/v1/admin/audit-logs",
        params={"action": "update", "entity_type": "user", "entity_id": str(seeker_user.id)},
        headers=admin_headers,
    )
    data = response.json()
    assert data["total"] == 1
    assert data["audit_logs"][0]["changes"]["after"]["name"] == "Sam S."

    response = await async_client.get(
        "/api/v1/admin/audit-logs", params={"limit": 1, "offset": 1}, headers=admin_headers
    )
    data = response.json()
    assert data["total"] == 3
    assert len(data["audit_logs"]) == 1
    assert data["audit_logs"][0]["action"] == "update"


@pytest.mark.asyncio
@pytest.mark.parametrize("params", [{"limit": 0}, {"limit": 501}, {"offset": -1}, {"action": "archive"}])
async def test_list_audit_logs_invalid_params(async_client: AsyncClient, admin_headers, params):
    response = await async_client.get("/api/v1/admin/audit-logs", params=params, headers=admin_headers)
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_get_audit_log(async_client: AsyncClient, admin_headers, recruiter_user, audit_store):
    await async_client.patch(
        f"/api/v1/admin/users/{recruiter_user.id}", json={"is_active": False}, headers=admin_headers
    )
    entries, _ = await audit_store.query(AuditLogFilter())

    response = await async_client.get(
        f"/api/v1/admin/audit-logs/{entries[0].id}", headers=admin_headers
    )
    assert response.status_code == 200
    data = response.json()
    assert data["id"] == entries[0].id
    assert data["user_email"] == "admin@example.com"
    assert data["changes"]["fields"] == ["is_active"]

    missing = await async_client.get("/api/v1/admin/audit-logs/99999", headers=admin_headers)
    assert missing.status_code == 404
    assert missing.json() == {"detail": "Audit log entry not found"}
