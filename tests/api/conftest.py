"""Shared fixtures for API tests."""

import pytest
from fastapi.testclient import TestClient

from api.app import create_app
from api import dependencies as deps
from services import RewriteService


@pytest.fixture
def rewrite_service(test_config, mock_claude_client):
    """RewriteService backed by the mock Claude client."""
    return RewriteService(config=test_config, client=mock_claude_client)


@pytest.fixture
def app(test_config, rewrite_service):
    """Create a FastAPI test app with injected dependencies."""
    application = create_app()
    application.dependency_overrides[deps.get_config] = lambda: test_config
    application.dependency_overrides[deps.get_rewrite_service] = lambda: rewrite_service
    return application


@pytest.fixture
def client(app):
    """Create a test client."""
    return TestClient(app)
