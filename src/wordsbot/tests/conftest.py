"""Test configuration."""
import os
from pathlib import Path

import httpx
import pytest
from dotenv import load_dotenv
from faker import Faker
from sqlalchemy.orm import sessionmaker

# Set test environment before any imports
os.environ["ENV"] = "test"

# Load test environment variables
test_env_path = Path(__file__).parent.parent.parent.parent / ".env.test"
load_dotenv(test_env_path)

# Import after environment setup
from wordsbot.models.base import create_db_engine, init_db  # noqa: E402
from wordsbot.services.api_client import ApiClient  # noqa: E402
from wordsbot.services.storage_service import StorageService  # noqa: E402
from wordsbot.tests.fake_server import BASE_URL, FakeWordsServer  # noqa: E402

fake = Faker()


@pytest.fixture
def server() -> FakeWordsServer:
    """Create an empty fake Words server."""
    return FakeWordsServer()


@pytest.fixture
def api(server: FakeWordsServer) -> ApiClient:
    """Create an API client wired to the fake server."""
    return ApiClient(BASE_URL, timeout=2.0, transport=httpx.MockTransport(server.handle))


@pytest.fixture
def session_factory() -> sessionmaker:
    """Create a fresh in-memory database for each test."""
    engine = create_db_engine("sqlite://")
    init_db(bind=engine)
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def store(session_factory: sessionmaker) -> StorageService:
    """Create a store in its own namespace."""
    return StorageService(str(fake.random_int()), session_factory)


@pytest.fixture
def username() -> str:
    """A valid, unique username."""
    return f"user_{fake.random_int(min=1000, max=999999)}"
