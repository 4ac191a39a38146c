"""
API Test Fixtures
=================

The app is created per test with authentication, workspace resolution
and services replaced through ``app.dependency_overrides``, so no
database is needed.
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import jwt
import pytest
from fastapi.testclient import TestClient

from feedhub.api.dependencies import (
    CurrentUser,
    get_category_service,
    get_current_user,
    get_export_service,
    get_field_service,
    get_ingestion_service,
    get_mapping_service,
    get_session_factory,
    get_supplier_service,
    get_workspace_id,
    get_workspace_service,
)
from feedhub.api.main import create_app
from feedhub.config.settings import get_settings
from feedhub.services.categories import CategoryService
from feedhub.services.exports import ExportService
from feedhub.services.fields import FieldService
from feedhub.services.ingestion import IngestionService
from feedhub.services.mapping import MappingService
from feedhub.services.suppliers import SupplierService
from feedhub.services.workspaces import WorkspaceService


def provide(value):
    return lambda: value


@pytest.fixture
def user() -> CurrentUser:
    return CurrentUser(id=uuid4(), email="owner@example.test")


@pytest.fixture
def services():
    """Mocked services keyed by the dependency they replace."""
    return {
        get_workspace_service: AsyncMock(spec=WorkspaceService),
        get_supplier_service: AsyncMock(spec=SupplierService),
        get_ingestion_service: AsyncMock(spec=IngestionService),
        get_mapping_service: AsyncMock(spec=MappingService),
        get_field_service: AsyncMock(spec=FieldService),
        get_category_service: AsyncMock(spec=CategoryService),
        get_export_service: MagicMock(spec=ExportService),
    }


@pytest.fixture
def app(services):
    """Create FastAPI app instance with mocked services."""
    app = create_app()
    for dependency, service in services.items():
        app.dependency_overrides[dependency] = provide(service)
    app.dependency_overrides[get_session_factory] = lambda: MagicMock()
    return app


@pytest.fixture
def authed_app(app, user, workspace_id):
    """App with a signed-in user and an active workspace."""
    app.dependency_overrides[get_current_user] = lambda: user
    app.dependency_overrides[get_workspace_id] = lambda: workspace_id
    return app


@pytest.fixture
def client(authed_app):
    """Create FastAPI test client."""
    with TestClient(authed_app) as client:
        yield client


@pytest.fixture
def anonymous_client(app):
    """Client without authentication overrides."""
    with TestClient(app) as client:
        yield client


@pytest.fixture
def token_factory():
    """Sign access tokens the way the auth provider does."""
    settings = get_settings()

    def make(expires_in: int = 3600, **claims):
        payload = {
            "sub": str(uuid4()),
            "aud": settings.auth_jwt_audience,
            "exp": datetime.now(timezone.utc) + timedelta(seconds=expires_in),
        }
        payload.update(claims)
        return jwt.encode(payload, settings.auth_jwt_secret, algorithm=settings.auth_jwt_algorithm)

    return make
