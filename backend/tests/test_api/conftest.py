"""
Shared pytest fixtures for API tests.

Each test module gets its own temp-file SQLite database; `api_client`
points get_db at it and wipes the tables after every test.
"""
import os
import tempfile
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from fastapi.testclient import TestClient

from main import app
from app.core.database import Base, get_db


def _create_test_database():
    """
    Create a temp-file test database engine and session factory.

    Returns:
        Tuple of (engine, SessionLocal, cleanup_func)
    """
    fd, path = tempfile.mkstemp(suffix=".db")
    os.close(fd)

    engine = create_engine(f"sqlite:///{path}", connect_args={"check_same_thread": False})
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    def cleanup():
        engine.dispose()
        if os.path.exists(path):
            os.remove(path)

    return engine, SessionLocal, cleanup


def _override_for(SessionLocal):
    def override_get_db():
        db = SessionLocal()
        try:
            yield db
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    return override_get_db


@pytest.fixture(scope="module")
def test_db():
    """
    Create a test database for the module.

    Tables are created at the start of the module and dropped at the end.
    """
    engine, SessionLocal, cleanup = _create_test_database()
    Base.metadata.create_all(bind=engine)

    yield {"engine": engine, "SessionLocal": SessionLocal}

    Base.metadata.drop_all(bind=engine)
    cleanup()


@pytest.fixture(scope="function")
def db_session(test_db):
    """Fresh session on the module database."""
    session = test_db["SessionLocal"]()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture(scope="function")
def api_client(test_db):
    """
    API test client bound to the module database.

    Clears all rows after the test (tables are kept).
    """
    SessionLocal = test_db["SessionLocal"]
    app.dependency_overrides[get_db] = _override_for(SessionLocal)

    yield TestClient(app)

    db = SessionLocal()
    try:
        for table in reversed(Base.metadata.sorted_tables):
            db.execute(table.delete())
        db.commit()
    finally:
        db.close()
    app.dependency_overrides.pop(get_db, None)
