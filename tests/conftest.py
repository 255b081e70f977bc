"""
Shared test fixtures — SQLite test database, test client, seeded catalog.
"""

import os
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

# Point settings at the test database before importing app modules
os.environ["DATABASE_URL"] = "sqlite:///./test.db"

from fence_bom.database import Base, get_db
from fence_bom.main import app
from fence_bom.catalog_seed import build_memory_repository
from fence_bom.engine.interpreter import FormulaInterpreter


TEST_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


app.dependency_overrides[get_db] = override_get_db


@pytest.fixture(autouse=True)
def setup_database():
    """Create all tables before each test, drop after."""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client():
    """FastAPI test client."""
    return TestClient(app)


@pytest.fixture
def db():
    """Direct database session for test setup/assertions."""
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def seeded_client(client):
    """Test client with the default wood-vertical catalog seeded."""
    response = client.get("/api/catalog/seed")
    assert response.status_code == 200
    return client


@pytest.fixture
def repo():
    """Fresh in-memory copy of the default catalog."""
    return build_memory_repository()


@pytest.fixture
def interpreter(repo):
    return FormulaInterpreter(repo)
