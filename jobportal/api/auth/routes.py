"""
Authentication Routes

API endpoints for user authentication. These are the only places a
credential is issued.
"""

import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from jobportal.api.access.audit import (
    AuditAction,
    AuditActor,
    AuditChanges,
    AuditEntityType,
    AuditRecorder,
    RequestMetadata,
)
from jobportal.api.auth.identity import Identity
from jobportal.api.auth.jwt import TokenService
from jobportal.api.auth.schemas import (
    AuthResponse,
    MessageResponse,
    UserLoginRequest,
    UserRegisterRequest,
    UserResponse,
)
from jobportal.api.auth.service import AuthService, identity_for, user_snapshot
from jobportal.api.config import Settings
from jobportal.api.db.models import User
from jobportal.api.db.session import get_db
from jobportal.api.dependencies import (
    get_app_settings,
    get_audit_recorder,
    get_current_identity,
    get_optional_identity,
    get_token_service,
)


logger = logging.getLogger(__name__)

router = APIRouter()


def get_auth_service(db: AsyncSession = Depends(get_db)) -> AuthService:
    """Dependency to get auth service."""
    return AuthService(db)


def _actor(user: User) -> AuditActor:
    return AuditActor(user_id=str(user.id), email=user.email, name=user.name)


def _set_auth_cookie(
    response: Response, token: str, settings: Settings, token_service: TokenService
) -> None:
    response.set_cookie(
        key=settings.AUTH_COOKIE_NAME,
        value=token,
        max_age=token_service.expires_in,
        httponly=True,
        secure=settings.is_production,
        samesite="lax",
        path="/",
    )


@router.post(
    "/register",
    response_model=AuthResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a new user",
)
async def register(
    data: UserRegisterRequest,
    request: Request,
    response: Response,
    auth_service: AuthService = Depends(get_auth_service),
    token_service: TokenService = Depends(get_token_service),
    recorder: AuditRecorder = Depends(get_audit_recorder),
    settings: Settings = Depends(get_app_settings),
) -> AuthResponse:
    """
    Register a new user account and sign it in.

    - **email**: Valid email address (must be unique)
    - **password**: Minimum 8 characters
    - **name**: Display name
    - **role**: `job-seeker` (default) or `recruiter`
    """
    try:
        user = await auth_service.register(data)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        )

    token = token_service.issue(identity_for(user))

    await recorder.record_or_log(
        AuditAction.REGISTER,
        AuditEntityType.USER,
        _actor(user),
        entity_id=str(user.id),
        changes=AuditChanges(after=user_snapshot(user)),
        request_metadata=RequestMetadata.from_request(request),
    )

    _set_auth_cookie(response, token, settings, token_service)

    return AuthResponse(
        access_token=token,
        expires_in=token_service.expires_in,
        user=UserResponse.model_validate(user),
    )


@router.post(
    "/login",
    response_model=AuthResponse,
    summary="Login and get a token",
)
async def login(
    data: UserLoginRequest,
    request: Request,
    response: Response,
    auth_service: AuthService = Depends(get_auth_service),
    token_service: TokenService = Depends(get_token_service),
    recorder: AuditRecorder = Depends(get_audit_recorder),
    settings: Settings = Depends(get_app_settings),
) -> AuthResponse:
    """
    Authenticate with email and password.

    Returns the token (also set as an http-only cookie) and user data.
    """
    meta = RequestMetadata.from_request(request)
    user = await auth_service.authenticate(data.email, data.password)

    if not user:
        logger.warning("Failed login attempt: %s from %s", data.email, meta.ip_address)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    logger.info("Successful login: %s from %s", user.email, meta.ip_address)
    token = token_service.issue(identity_for(user))

    await recorder.record_or_log(
        AuditAction.LOGIN,
        AuditEntityType.USER,
        _actor(user),
        entity_id=str(user.id),
        request_metadata=meta,
    )

    _set_auth_cookie(response, token, settings, token_service)

    return AuthResponse(
        access_token=token,
        expires_in=token_service.expires_in,
        user=UserResponse.model_validate(user),
    )


@router.post(
    "/logout",
    response_model=MessageResponse,
    summary="Logout (clears the cookie)",
)
async def logout(
    request: Request,
    response: Response,
    identity: Optional[Identity] = Depends(get_optional_identity),
    recorder: AuditRecorder = Depends(get_audit_recorder),
    settings: Settings = Depends(get_app_settings),
) -> MessageResponse:
    """
    Logout the user.

    Tokens are stateless: the credential stays valid until it expires.
    Only the cookie is cleared.
    """
    if identity is not None:
        await recorder.record_or_log(
            AuditAction.LOGOUT,
            AuditEntityType.USER,
            identity,
            entity_id=identity.user_id,
            request_metadata=RequestMetadata.from_request(request),
        )

    response.delete_cookie(
        key=settings.AUTH_COOKIE_NAME,
        path="/",
        httponly=True,
        secure=settings.is_production,
        samesite="lax",
    )
    return MessageResponse(message="Successfully logged out")


@router.get(
    "/me",
    response_model=UserResponse,
    summary="Get the current user",
)
async def me(
    identity: Identity = Depends(get_current_identity),
    auth_service: AuthService = Depends(get_auth_service),
) -> UserResponse:
    """Get the profile of the authenticated caller."""
    try:
        user_id = UUID(identity.user_id)
    except ValueError:
        user_id = None

    user = await auth_service.get_user_by_id(user_id) if user_id else None
    if not user:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found",
        )

    return UserResponse.model_validate(user)
