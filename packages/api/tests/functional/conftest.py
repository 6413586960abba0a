# This project was developed with assistance from AI tools.
"""Fixtures for functional tests.

The real app from ``src.main`` is a module singleton. ``_clean_overrides``
ensures dependency_overrides are cleared after every test so persona
configuration from one test never leaks into the next.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from src.main import app as real_app
from src.schemas.auth import UserContext

from .mock_db import configure_app_for_persona


@pytest.fixture(autouse=True)
def _clean_overrides():
    """Clear app dependency overrides after each test."""
    yield
    real_app.dependency_overrides.clear()


@pytest.fixture(autouse=True)
def _no_notifications():
    """Swallow fire-and-forget notifications scheduled by policy operations."""
    with patch("src.services.policy.dispatch", new_callable=MagicMock) as mock_dispatch:
        yield mock_dispatch


@pytest.fixture
def app():
    """Return the real FastAPI app with all routers mounted."""
    return real_app


@pytest.fixture
def make_client(app):
    """Factory fixture: configure persona + mock DB, return TestClient.

    Pass ``user=None`` for an anonymous caller (actor portal tokens).
    """

    def _make(user: UserContext | None, session: AsyncMock) -> TestClient:
        configure_app_for_persona(app, user, session)
        return TestClient(app, raise_server_exceptions=False)

    return _make


@pytest.fixture
def make_upload_client(app):
    """Factory fixture: configure persona + mock DB + mock storage.

    Returns (TestClient, mock_storage). The storage patch is stopped after
    each test.
    """
    patchers = []

    def _make(user: UserContext | None, session: AsyncMock) -> tuple[TestClient, MagicMock]:
        configure_app_for_persona(app, user, session)

        mock_storage = MagicMock()
        mock_storage.build_object_key.return_value = "101/tenant/201/IDENTIFICATION/900-ine.pdf"
        mock_storage.generate_upload_url = AsyncMock(return_value="https://s3.test/upload?sig=1")
        mock_storage.get_download_url = AsyncMock(return_value="https://s3.test/download?sig=1")
        mock_storage.object_exists = AsyncMock(return_value=True)
        mock_storage.delete_object = AsyncMock()

        patcher_storage = patch(
            "src.services.document.get_storage_service", return_value=mock_storage
        )
        patcher_storage.start()
        patchers.append(patcher_storage)

        return TestClient(app, raise_server_exceptions=False), mock_storage

    yield _make

    for p in patchers:
        p.stop()
