import os

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# The app engine is built at import time; keep the startup hook off the real database file
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")

from slot_scheduler.database import Base, get_db
from slot_scheduler.main import app
from slot_scheduler.models.schemas import Batch, ScheduleAssignment, WeeklySlot
from slot_scheduler.services.catalog import SlotCatalog
from slot_scheduler.settings import DEFAULT_SLOT_TIMES

# Use in-memory DB for tests with StaticPool to share connection
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="session", autouse=True)
def setup_test_db():
    """Create tables before tests run."""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db_session():
    """Provide a transactional scope for each test."""
    connection = engine.connect()
    transaction = connection.begin()
    session = TestingSessionLocal(bind=connection)
    yield session
    session.close()
    transaction.rollback()
    connection.close()


@pytest.fixture
def client(db_session):
    """Test client with overridden dependency."""
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    # Entering the client runs the startup hook (reference zone, catalog, tables)
    with TestClient(app) as test_client:
        yield test_client
    del app.dependency_overrides[get_db]


@pytest.fixture
def catalog():
    return SlotCatalog(DEFAULT_SLOT_TIMES)


@pytest.fixture
def make_batch():
    """
    Factory for batches. ``slots`` are labels like "Mon 09:00 - 10:00";
    every slot gets the same participant list.
    """
    def _make(batch_id, slots, teacher_id=None, participants=(), course_id="C1", name=None, **fields):
        return Batch(
            id=batch_id,
            name=name or batch_id,
            course_id=course_id,
            teacher_id=teacher_id,
            schedule=[
                ScheduleAssignment(slot=WeeklySlot.parse(s), participant_ids=list(participants))
                for s in slots
            ],
            **fields,
        )
    return _make
