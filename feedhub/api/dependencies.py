"""
API Dependencies
================

Request-scoped dependencies: database session, authenticated user,
active workspace and service factories. Tests replace these through
``app.dependency_overrides``.
"""

from dataclasses import dataclass
from typing import Annotated, Any, AsyncGenerator
from uuid import UUID

import jwt
from fastapi import Depends, Header, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from feedhub.config.settings import Settings, get_settings
from feedhub.db.connection import get_session
from feedhub.services.categories import CategoryService
from feedhub.services.exports import ExportService
from feedhub.services.fields import FieldService
from feedhub.services.ingestion import IngestionService, SessionFactory
from feedhub.services.mapping import MappingService
from feedhub.services.suppliers import SupplierService
from feedhub.services.workspaces import WorkspaceService
from feedhub.utils.errors import AuthenticationError, ValidationError
from feedhub.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class CurrentUser:
    """The caller, as identified by the access token."""

    id: UUID
    email: str | None = None


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """One session per request, committed when the handler succeeds."""
    async with get_session() as session:
        yield session


def get_session_factory() -> SessionFactory:
    return get_session


DbSession = Annotated[AsyncSession, Depends(get_db_session)]
AppSettings = Annotated[Settings, Depends(get_settings)]


# =============================================================================
# Authentication
# =============================================================================


def extract_bearer_token(authorization: str | None) -> str:
    raw = (authorization or "").strip()
    if not raw:
        raise AuthenticationError("Missing Authorization header")

    scheme, _, token = raw.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise AuthenticationError("Authorization must be: Bearer <token>")
    return token.strip()


def decode_access_token(token: str, settings: Settings) -> dict[str, Any]:
    """
    Verify an access token issued by the auth provider.

    Raises:
        AuthenticationError: If the token is invalid, expired or has no subject
    """
    options: dict[str, Any] = {"require": ["sub", "exp"]}
    if not settings.auth_jwt_audience:
        options["verify_aud"] = False
    try:
        return jwt.decode(
            token,
            settings.auth_jwt_secret,
            algorithms=[settings.auth_jwt_algorithm],
            audience=settings.auth_jwt_audience or None,
            options=options,
        )
    except jwt.ExpiredSignatureError as e:
        raise AuthenticationError("Access token has expired") from e
    except jwt.InvalidTokenError as e:
        logger.debug("access_token_rejected", error=str(e))
        raise AuthenticationError("Invalid access token") from e


async def get_current_user(
    settings: AppSettings,
    authorization: Annotated[str | None, Header()] = None,
) -> CurrentUser:
    payload = decode_access_token(extract_bearer_token(authorization), settings)
    try:
        user_id = UUID(str(payload["sub"]))
    except ValueError as e:
        raise AuthenticationError("Invalid access token subject") from e
    return CurrentUser(id=user_id, email=payload.get("email"))


CurrentUserDep = Annotated[CurrentUser, Depends(get_current_user)]


# =============================================================================
# Workspace
# =============================================================================


async def get_workspace_id(
    request: Request,
    user: CurrentUserDep,
    session: DbSession,
    settings: AppSettings,
    workspace_id: Annotated[UUID | None, Query()] = None,
) -> UUID:
    """
    Resolve the active workspace and check membership.

    The ``workspace_id`` query parameter wins over the active-workspace cookie.

    Raises:
        ValidationError: No workspace selected or malformed cookie
        WorkspaceAccessError: Caller is not a member
    """
    if workspace_id is None:
        cookie = request.cookies.get(settings.workspace_cookie_name)
        if not cookie:
            raise ValidationError("No active workspace selected")
        try:
            workspace_id = UUID(cookie)
        except ValueError as e:
            raise ValidationError("Invalid active workspace") from e

    await WorkspaceService(session).require_member(workspace_id, user.id)
    return workspace_id


WorkspaceId = Annotated[UUID, Depends(get_workspace_id)]


# =============================================================================
# Services
# =============================================================================


def get_workspace_service(session: DbSession) -> WorkspaceService:
    return WorkspaceService(session)


def get_supplier_service(session: DbSession, settings: AppSettings) -> SupplierService:
    return SupplierService(session, settings)


def get_ingestion_service(session: DbSession, settings: AppSettings) -> IngestionService:
    return IngestionService(session, settings)


def get_mapping_service(session: DbSession, settings: AppSettings) -> MappingService:
    return MappingService(session, settings)


def get_field_service(session: DbSession) -> FieldService:
    return FieldService(session)


def get_category_service(session: DbSession) -> CategoryService:
    return CategoryService(session)


def get_export_service(session: DbSession, settings: AppSettings) -> ExportService:
    return ExportService(session, settings)
