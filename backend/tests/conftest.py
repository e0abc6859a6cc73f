"""Pytest configuration and fixtures."""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from database import Base, get_db
from main import app
from api.sync import get_sync_orchestrator
# Pytest fixtures - imported to make them available to tests
from tests.fixtures import (  # noqa: F401
    build_orchestrator,
    connection,
    family,
    linked_snapshot,
)
from tests.fixtures.mocks import (
    MockYodleeProvider,
    SAMPLE_YODLEE_ACCOUNTS,
    SAMPLE_YODLEE_INSTITUTIONS,
    SAMPLE_YODLEE_TRANSACTIONS,
)


@pytest.fixture(name="db")
def db_fixture():
    """Create an in-memory SQLite database for testing."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)

    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSessionLocal()

    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(name="mock_provider")
def mock_provider_fixture():
    """Create a mock Yodlee provider with sample data."""
    return MockYodleeProvider(
        accounts=SAMPLE_YODLEE_ACCOUNTS,
        transactions=SAMPLE_YODLEE_TRANSACTIONS,
        institutions=SAMPLE_YODLEE_INSTITUTIONS,
    )


def _client_with_provider(db, provider):
    def override_get_db():
        try:
            yield db
        finally:
            pass

    def override_get_sync_orchestrator():
        return build_orchestrator(provider)

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_sync_orchestrator] = override_get_sync_orchestrator
    return TestClient(app)


@pytest.fixture(name="client")
def client_fixture(db, mock_provider):
    """Create a test client with the test database and mock provider."""
    client = _client_with_provider(db, mock_provider)
    yield client
    app.dependency_overrides.clear()


@pytest.fixture(name="client_with_failing_sync")
def client_with_failing_sync_fixture(db):
    """Create a test client whose provider fails on the accounts fetch."""
    failing_provider = MockYodleeProvider(
        accounts=SAMPLE_YODLEE_ACCOUNTS,
        fail_on="accounts",
        failure_type="connection",
        failure_message="Yodlee API unavailable",
    )
    client = _client_with_provider(db, failing_provider)
    yield client
    app.dependency_overrides.clear()
