"""
Test Configuration and Fixtures

Shared fixtures for JOBPORTAL API tests.
Provides an isolated database, the app, users and credentials.
"""

import uuid
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from jobportal.api.access.audit import AuditRecorder
from jobportal.api.access.store import SqlAlchemyAuditStore
from jobportal.api.auth.identity import Role
from jobportal.api.auth.jwt import TokenService
from jobportal.api.auth.service import hash_password, identity_for
from jobportal.api.config import Settings
from jobportal.api.db.models import Base, User
from jobportal.api.db.session import get_db
from jobportal.api.dependencies import get_audit_recorder, get_audit_store
from jobportal.api.main import create_app


TEST_PASSWORD = "Password123!"


# ==================== Database Fixtures ====================


@pytest_asyncio.fixture(scope="function")
async def async_engine():
    """Create async SQLite engine for testing."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture(scope="function")
def session_factory(async_engine) -> async_sessionmaker:
    return async_sessionmaker(
        async_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


@pytest_asyncio.fixture(scope="function")
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create database session for tests."""
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture(scope="function")
def audit_store(session_factory) -> SqlAlchemyAuditStore:
    """Audit store on the test database."""
    return SqlAlchemyAuditStore(session_factory)


# ==================== Application Fixtures ====================


@pytest.fixture(scope="function")
def test_settings() -> Settings:
    return Settings(
        JWT_SECRET_KEY="api-test-signing-secret-0123456789abcdef",
        DATABASE_URL="sqlite+aiosqlite:///:memory:",
        ENVIRONMENT="test",
    )


@pytest.fixture(scope="function")
def app(test_settings, db_session, audit_store) -> FastAPI:
    """Create FastAPI app with test database."""
    test_app = create_app(test_settings)
    recorder = AuditRecorder(audit_store, write_timeout=5.0)

    async def override_get_db():
        yield db_session

    test_app.dependency_overrides[get_db] = override_get_db
    test_app.dependency_overrides[get_audit_store] = lambda: audit_store
    test_app.dependency_overrides[get_audit_recorder] = lambda: recorder
    return test_app


@pytest_asyncio.fixture(scope="function")
async def async_client(app) -> AsyncGenerator[AsyncClient, None]:
    """Create async test client."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture(scope="function")
def token_service(app) -> TokenService:
    """Token service the app verifies credentials with."""
    return app.state.token_service


# ==================== User Fixtures ====================


async def _create_user(db_session: AsyncSession, email: str, name: str, role: Role) -> User:
    user = User(
        id=uuid.uuid4(),
        email=email,
        password_hash=hash_password(TEST_PASSWORD),
        name=name,
        role=role,
        is_active=True,
    )
    db_session.add(user)
    await db_session.commit()
    await db_session.refresh(user)
    return user


@pytest_asyncio.fixture(scope="function")
async def seeker_user(db_session) -> User:
    return await _create_user(db_session, "seeker@example.com", "Sam Seeker", Role.JOB_SEEKER)


@pytest_asyncio.fixture(scope="function")
async def recruiter_user(db_session) -> User:
    return await _create_user(db_session, "recruiter@example.com", "Rita Recruiter", Role.RECRUITER)


@pytest_asyncio.fixture(scope="function")
async def admin_user(db_session) -> User:
    return await _create_user(db_session, "admin@example.com", "Ada Admin", Role.ADMIN)


@pytest_asyncio.fixture(scope="function")
async def second_admin(db_session) -> User:
    return await _create_user(db_session, "admin2@example.com", "Ben Admin", Role.ADMIN)


def _headers(token_service: TokenService, user: User) -> dict:
    return {"Authorization": f"Bearer {token_service.issue(identity_for(user))}"}


@pytest.fixture(scope="function")
def seeker_headers(token_service, seeker_user) -> dict:
    """Authorization headers for a job seeker."""
    return _headers(token_service, seeker_user)


@pytest.fixture(scope="function")
def recruiter_headers(token_service, recruiter_user) -> dict:
    """Authorization headers for a recruiter."""
    return _headers(token_service, recruiter_user)


@pytest.fixture(scope="function")
def admin_headers(token_service, admin_user) -> dict:
    """Authorization headers for an admin."""
    return _headers(token_service, admin_user)
