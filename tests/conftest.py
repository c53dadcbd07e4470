"""
Pytest configuration and fixtures for Droxstock tests.
"""

import os
import tempfile

# Settings are read when the app modules are imported
_TEST_ROOT = tempfile.mkdtemp(prefix="droxstock_tests_")
os.environ["DB_URL"] = f"sqlite:///{os.path.join(_TEST_ROOT, 'app.db')}"
os.environ["UPLOAD_DIR"] = os.path.join(_TEST_ROOT, "uploads")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel import SQLModel

from app.database.session import get_session
from app.main import app
from app.models.import_models import CsvImportJob, CsvJobResult  # noqa: F401
from app.models.part import InventoryPart  # noqa: F401


@pytest.fixture(scope="function")
def session_factory():
    """Session factory bound to a fresh temporary sqlite database."""
    fd, temp_db = tempfile.mkstemp(suffix=".db")
    os.close(fd)

    engine = create_engine(f"sqlite:///{temp_db}", connect_args={"check_same_thread": False})
    SQLModel.metadata.create_all(bind=engine)

    try:
        yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    finally:
        engine.dispose()
        try:
            os.unlink(temp_db)
        except OSError:
            pass


@pytest.fixture(scope="function")
def isolated_db_session(session_factory):
    """Create an isolated database session for each test."""
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(isolated_db_session):
    """Create a test client with database dependency override."""

    def override_get_session():
        try:
            yield isolated_db_session
        finally:
            pass

    app.dependency_overrides[get_session] = override_get_session

    from fastapi.testclient import TestClient

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture
def write_csv(tmp_path):
    """Write CSV text to a temporary file and return its path."""

    def _write(content: str, name: str = "parts.csv", encoding: str = "utf-8") -> str:
        path = tmp_path / name
        path.write_bytes(content.encode(encoding))
        return str(path)

    return _write
