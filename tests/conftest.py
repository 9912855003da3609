"""
JOBPORTAL Test Configuration
============================

Pytest fixtures for unit tests of the identity and audit core.
"""

import asyncio
from dataclasses import replace
from typing import Dict, List, Optional, Tuple

import pytest
from starlette.requests import Request

from jobportal.api.access.audit import AuditEntry, AuditLogFilter, AuditRecorder
from jobportal.api.access.guard import AccessGuard
from jobportal.api.auth.identity import Identity, Role
from jobportal.api.auth.jwt import TokenService


TEST_SECRET = "unit-test-signing-secret-0123456789abcdef"


def build_request(
    headers: Optional[Dict[str, str]] = None,
    cookies: Optional[Dict[str, str]] = None,
    path: str = "/api/v1/resource",
    client: Tuple[str, int] = ("10.0.0.1", 5000),
) -> Request:
    """Build a Starlette request from plain headers and cookies."""
    raw_headers = [
        (k.lower().encode("latin-1"), v.encode("latin-1"))
        for k, v in (headers or {}).items()
    ]
    if cookies:
        cookie_header = "; ".join(f"{k}={v}" for k, v in cookies.items())
        raw_headers.append((b"cookie", cookie_header.encode("latin-1")))

    scope = {
        "type": "http",
        "method": "GET",
        "scheme": "http",
        "server": ("testserver", 80),
        "path": path,
        "root_path": "",
        "query_string": b"",
        "headers": raw_headers,
        "client": client,
    }
    return Request(scope)


class InMemoryAuditStore:
    """Audit store kept in a list, with optional failure and latency."""

    def __init__(self, delay: float = 0.0, error: Optional[Exception] = None):
        self.delay = delay
        self.error = error
        self.entries: List[AuditEntry] = []

    async def append(self, entry: AuditEntry) -> AuditEntry:
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        stored = replace(entry, id=len(self.entries) + 1)
        self.entries.append(stored)
        return stored

    async def get(self, entry_id: int) -> Optional[AuditEntry]:
        for entry in self.entries:
            if entry.id == entry_id:
                return entry
        return None

    async def query(self, criteria: AuditLogFilter) -> Tuple[List[AuditEntry], int]:
        matches = [
            e for e in reversed(self.entries)
            if (criteria.action is None or e.action == criteria.action)
            and (criteria.user_id is None or e.actor.user_id == criteria.user_id)
        ]
        return matches[criteria.offset:criteria.offset + criteria.limit], len(matches)


@pytest.fixture
def make_request():
    """Factory for Starlette requests."""
    return build_request


@pytest.fixture
def token_service() -> TokenService:
    """Token service with a fixed test secret."""
    return TokenService(TEST_SECRET)


@pytest.fixture
def access_guard(token_service) -> AccessGuard:
    """Access guard using the default cookie name."""
    return AccessGuard(token_service)


@pytest.fixture
def admin_identity() -> Identity:
    return Identity(user_id="u1", email="a@x.com", role=Role.ADMIN)


@pytest.fixture
def recruiter_identity() -> Identity:
    return Identity(user_id="u2", email="r@x.com", role=Role.RECRUITER)


@pytest.fixture
def seeker_identity() -> Identity:
    return Identity(user_id="u3", email="s@x.com", role=Role.JOB_SEEKER)


@pytest.fixture
def make_store():
    """Factory for in-memory audit stores."""
    return InMemoryAuditStore


@pytest.fixture
def audit_store() -> InMemoryAuditStore:
    return InMemoryAuditStore()


@pytest.fixture
def recorder(audit_store) -> AuditRecorder:
    return AuditRecorder(audit_store, write_timeout=1.0)
