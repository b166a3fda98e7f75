"""
Shared fixtures. Every test runs against a fresh in-memory SQLite database.
"""
import os

# Must be set before the app modules read settings
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["DEFAULT_TIMEZONE"] = "UTC"

import pytest
from fastapi.testclient import TestClient

from app.config.database import SessionLocal, engine
from app.models import Base

CLINICIAN = "clinician-1"
NEW_YORK = "America/New_York"


@pytest.fixture(autouse=True)
def tables():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client():
    from app.main import app

    with TestClient(app) as c:
        yield c
