"""Pytest fixtures and configuration for test suite

This module provides:
1. Database session fixtures for test isolation
2. Factory functions for creating test objects with sensible defaults
3. APNs key/config fixtures shared by the push tests

Factory Functions:
    - make_device(**overrides) -> ApnDevice

Each factory accepts an optional db_session parameter to persist objects.
"""
import pytest
import uuid
from datetime import datetime, timezone
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec

from app.core.database import Base
from app.models.device import ApnDevice
from app.services.push.models import APNSConfig


# =============================================================================
# Factory Functions for Test Objects
# =============================================================================

def make_device(
    db_session=None,
    id: str = None,
    user_id: str = "user-1",
    token: str = None,
    name: str = "Test iPhone",
    updated_at: datetime = None,
    **overrides
) -> ApnDevice:
    """
    Factory function to create ApnDevice instances for testing.

    Args:
        db_session: Optional SQLAlchemy session. If provided, adds and commits the device.
        id: UUID string. If None, generates a new UUID.
        user_id: Owner identity.
        token: Hex device token. If None, generates a random 64-char token.
        name: Device name.
        updated_at: Last registration time. If None, uses current UTC time.
        **overrides: Any additional ApnDevice model fields.

    Returns:
        ApnDevice instance (persisted if db_session provided).

    Example:
        device = make_device(user_id="alice")
        device = make_device(db_session=session, token="ab" * 32)
    """
    if id is None:
        id = str(uuid.uuid4())
    if token is None:
        token = uuid.uuid4().hex + uuid.uuid4().hex
    if updated_at is None:
        updated_at = datetime.now(timezone.utc)

    device = ApnDevice(
        id=id,
        user_id=user_id,
        token=token,
        name=name,
        created_at=overrides.pop("created_at", updated_at),
        updated_at=updated_at,
        **overrides
    )

    if db_session:
        db_session.add(device)
        db_session.commit()

    return device


# =============================================================================
# Database Session Fixtures
# =============================================================================

@pytest.fixture(scope="session", autouse=True)
def clear_app_overrides():
    """
    Ensure app.dependency_overrides is cleared at the start and end of the
    test session.
    """
    from main import app

    app.dependency_overrides.clear()
    yield
    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
def db_session():
    """
    Create an in-memory SQLite database for testing

    Yields:
        SQLAlchemy Session for test database

    Cleanup:
        Drops all tables after test completes
    """
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False}
    )
    Base.metadata.create_all(engine)

    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = SessionLocal()

    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(engine)
        engine.dispose()


@pytest.fixture
def sample_device(db_session):
    """Create a sample registered device using factory function."""
    return make_device(db_session=db_session)


# =============================================================================
# APNs Fixtures
# =============================================================================

@pytest.fixture
def test_key_file(tmp_path):
    """Create a temporary .p8 key file for testing."""
    private_key = ec.generate_private_key(ec.SECP256R1())
    pem = private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )

    key_file = tmp_path / "AuthKey_TEST.p8"
    key_file.write_bytes(pem)
    return str(key_file)


@pytest.fixture
def apns_config(test_key_file):
    """Create a test APNS configuration."""
    return APNSConfig(
        key_file=test_key_file,
        key_id="KEYID12345",
        team_id="TEAMID1234",
        bundle_id="com.example.gateway",
        use_sandbox=True,
    )
