"""Integration test fixtures: API client over the in-memory test database."""

from collections.abc import Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session, sessionmaker

from labour_ledger.api.app import create_app
from labour_ledger.api.dependencies import get_db_session


@pytest.fixture
def client(session_factory: sessionmaker[Session]) -> Generator[TestClient, None, None]:
    """HTTP client whose requests run against the test database."""
    app = create_app()

    def override_session() -> Generator[Session, None, None]:
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db_session] = override_session
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def labour(client: TestClient) -> dict:
    """A labour created through the API."""
    response = client.post("/api/v1/labours", json={"full_name": "Ramesh Kumar"})
    assert response.status_code == 201
    return response.json()
