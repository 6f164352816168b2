# This project was developed with assistance from AI tools.
"""Fixtures for functional tests.

The real app from ``src.main`` is a module singleton. ``_clean_overrides``
ensures dependency_overrides are cleared after every test so persona
configuration from one test never leaks into the next.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from db import get_db
from fastapi.testclient import TestClient

from src.main import app as real_app
from src.schemas.auth import UserContext

from .mock_db import configure_app_for_persona


@pytest.fixture(autouse=True)
def _clean_overrides():
    """Clear app dependency overrides after each test."""
    yield
    real_app.dependency_overrides.clear()


@pytest.fixture
def app():
    """Return the real FastAPI app with all routers mounted."""
    return real_app


@pytest.fixture
def make_client(app):
    """Factory fixture: configure persona + mock DB, return TestClient."""

    def _make(user: UserContext, session: AsyncMock) -> TestClient:
        configure_app_for_persona(app, user, session)
        return TestClient(app)

    return _make


@pytest.fixture
def make_portal_client(app):
    """Factory fixture for token-authenticated actor routes (no persona)."""

    def _make(session: AsyncMock) -> TestClient:
        async def fake_db():
            yield session

        app.dependency_overrides[get_db] = fake_db
        return TestClient(app)

    return _make


@pytest.fixture
def mock_storage():
    """Patch the storage service used by document and contract uploads."""
    storage = MagicMock()
    storage.build_document_key.return_value = "policies/10/tenant/2/501-ine.pdf"
    storage.build_contract_key.return_value = "policies/10/contracts/501-contract.pdf"
    storage.upload_file = AsyncMock(side_effect=lambda data, key, content_type: key)
    storage.get_download_url = AsyncMock(return_value="https://files.example.com/signed")
    with (
        patch("src.services.documents.get_storage_service", return_value=storage),
        patch("src.services.policy.get_storage_service", return_value=storage),
        patch("src.routes.documents.get_storage_service", return_value=storage),
    ):
        yield storage
