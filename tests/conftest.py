import pytest
import os
import sys
from itertools import count
from pathlib import Path
from unittest.mock import MagicMock

# Add project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

# Set test environment variables
os.environ["NODE_ENV"] = "test"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["OPENAI_API_KEY"] = ""
os.environ["LOG_LEVEL"] = "WARNING"

import requests
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from fastapi.testclient import TestClient

from app import app
from db import get_db
from models import Base
from schemas import ChatMessage, ChatSession, Course, Lesson, LessonType, Progress, Role, User
from services.data_service import DataService
from services.initial_data import default_bootstrap_data
from services.local_store import LocalBackend, LocalStore
from services.remote_store import RemoteStore
from services.session import AuthSession
from services.state_controller import AppStateController
from utils.passwords import hash_password

# Test database URL - use SQLite in memory for fast tests
SQLALCHEMY_TEST_DATABASE_URL = "sqlite://"


@pytest.fixture(scope="session")
def test_engine():
    """Create test database engine shared by every connection"""
    engine = create_engine(
        SQLALCHEMY_TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture(scope="function")
def test_db(test_engine):
    """Create test database session"""
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=test_engine)

    # Create fresh session for each test
    session = TestingSessionLocal()

    yield session

    # Cleanup after each test
    session.close()
    # Clear all tables
    with test_engine.begin() as connection:
        for table in reversed(Base.metadata.sorted_tables):
            connection.execute(table.delete())


@pytest.fixture(scope="function")
def client(test_db):
    """Create test client with test database"""

    def override_get_db():
        try:
            yield test_db
        finally:
            test_db.close()

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client

    # Clean up dependency override
    app.dependency_overrides.clear()


# ============================================================================
# CLIENT-SIDE PERSISTENCE
# ============================================================================


@pytest.fixture
def bootstrap():
    """Built-in bootstrap dataset (cached, never mutated in place)"""
    return default_bootstrap_data()


@pytest.fixture
def local_store(tmp_path):
    return LocalStore(str(tmp_path / "local"))


@pytest.fixture
def local_backend(local_store, bootstrap):
    return LocalBackend(local_store, bootstrap)


@pytest.fixture
def unreachable_session():
    """HTTP session whose every request fails as if the server were down"""
    session = MagicMock(spec=requests.Session)
    session.request.side_effect = requests.ConnectionError("Connection refused")
    return session


@pytest.fixture
def offline_remote(unreachable_session):
    return RemoteStore(base_url="http://unreachable.test/api", timeout=0.1, session=unreachable_session)


@pytest.fixture
def online_remote(client):
    """Remote store client talking to the in-process API"""
    return RemoteStore(base_url="http://testserver/api", session=client)


@pytest.fixture
def offline_service(offline_remote, local_backend, bootstrap):
    return DataService(remote=offline_remote, local=local_backend, bootstrap=bootstrap)


@pytest.fixture
def online_service(online_remote, local_backend, bootstrap):
    return DataService(remote=online_remote, local=local_backend, bootstrap=bootstrap)


@pytest.fixture
def clock():
    """Deterministic, strictly increasing ISO timestamps"""
    ticks = count(1)
    return lambda: f"2024-01-01T00:00:{next(ticks):02d}+00:00"


@pytest.fixture
def controller(offline_service, local_store, clock):
    """Application state controller loaded from the local tier"""
    state = AppStateController(offline_service, AuthSession(local_store), clock=clock)
    state.load()
    return state


# ============================================================================
# SAMPLE ENTITIES
# ============================================================================


@pytest.fixture
def sample_user():
    return User(
        id=501,
        name="Alice Liddell",
        username="alice",
        passwordHash=hash_password("wonderland"),
        role=Role.STUDENT,
        enrolledCourseIds=[],
    )


@pytest.fixture
def sample_course():
    return Course(
        id=7,
        title="Distributed Systems",
        description="Consensus, replication and failure",
        instructorIds=[1],
        lessons=[
            Lesson(id=71, title="Clocks", content="Lamport clocks", type=LessonType.TEXT),
            Lesson(id=72, title="Raft", content="Leader election", type=LessonType.VIDEO),
            Lesson(id=73, title="Check yourself", content="Quiz", type=LessonType.QUIZ),
        ],
    )


@pytest.fixture
def sample_progress():
    return Progress(userId=1, courseId=5, completedLessons=[10])


@pytest.fixture
def sample_chat_session():
    return ChatSession(
        id="session-1",
        courseId=1,
        studentId=103,
        messages=[
            ChatMessage(
                id="m1",
                senderId=103,
                senderName="Aaron",
                role=Role.STUDENT,
                content="Hello",
                timestamp="2024-01-01T00:00:00+00:00",
            )
        ],
        lastMessageAt="2024-01-01T00:00:00+00:00",
    )
