"""Pytest configuration and shared fixtures for ither tests."""

import sys
import uuid
from collections.abc import Generator
from datetime import datetime, timezone
from pathlib import Path

import pytest
from loguru import logger

from ither.app import CommunityApp
from ither.config import Environment, Settings
from ither.database import DocumentDatabase
from ither.mirror import LocalStorage
from ither.models import UserProfile
from ither.repository import RepositoryFactory, StoreRegistry, load_seed
from ither.seed import SeedData, make_seed

FROZEN_NOW = datetime(2024, 1, 15, 12, 0, 0, tzinfo=timezone.utc)


# =============================================================================
# Test Configuration
# =============================================================================


@pytest.fixture(scope="function", autouse=True)
def reset_loguru():
    """Reset loguru handlers before each test to prevent I/O errors."""
    logger.remove()
    logger.add(
        sys.stderr,
        level="ERROR",
        format="{time} {level} {message}",
        catch=True,
    )
    yield
    logger.remove()


@pytest.fixture
def test_settings() -> Settings:
    """Testing profile: mock mode, in-memory database, memory-only local storage."""
    return Settings(environment=Environment.TESTING, mock_mode=True, app_id="ither-test")


@pytest.fixture
def remote_settings() -> Settings:
    return Settings(environment=Environment.TESTING, mock_mode=False, app_id="ither-test")


@pytest.fixture
def seed() -> SeedData:
    """Fresh demo records for one test."""
    return make_seed(FROZEN_NOW)


# =============================================================================
# Database Fixtures
# =============================================================================


@pytest.fixture
def temp_db_path(tmp_path: Path) -> Path:
    return tmp_path / f"test_ither_{uuid.uuid4().hex[:8]}.db"


@pytest.fixture
def document_db(temp_db_path: Path) -> Generator[DocumentDatabase, None, None]:
    """File-backed document database, initialized and empty."""
    db = DocumentDatabase(temp_db_path)
    db.initialize()
    yield db
    db.close()


@pytest.fixture
def memory_db() -> Generator[DocumentDatabase, None, None]:
    db = DocumentDatabase(":memory:")
    db.initialize()
    yield db
    db.close()


# =============================================================================
# Store Fixtures
# =============================================================================


@pytest.fixture
def mock_stores(seed: SeedData) -> StoreRegistry:
    return StoreRegistry.build(RepositoryFactory(mock_mode=True, storage=LocalStorage(None)), seed)


@pytest.fixture
def remote_stores(memory_db: DocumentDatabase, seed: SeedData, remote_settings: Settings) -> StoreRegistry:
    load_seed(memory_db, seed, remote_settings.collection_path)
    factory = RepositoryFactory(
        mock_mode=False,
        database=memory_db,
        collection_path=remote_settings.collection_path,
    )
    return StoreRegistry.build(factory)


@pytest.fixture(params=["mock", "remote"])
def stores(request: pytest.FixtureRequest) -> StoreRegistry:
    """Both backends, seeded with the same records."""
    return request.getfixturevalue(f"{request.param}_stores")


# =============================================================================
# Application Fixtures
# =============================================================================


@pytest.fixture
def mock_app(test_settings: Settings, seed: SeedData) -> Generator[CommunityApp, None, None]:
    community = CommunityApp(test_settings, seed=seed)
    yield community
    community.close()


@pytest.fixture
def remote_app(remote_settings: Settings, seed: SeedData) -> Generator[CommunityApp, None, None]:
    community = CommunityApp(remote_settings)
    community.database.initialize()
    load_seed(community.database, seed, remote_settings.collection_path)
    yield community
    community.close()


@pytest.fixture(params=["mock", "remote"])
def community(request: pytest.FixtureRequest) -> CommunityApp:
    """A fresh app per backend; every feature test runs against both."""
    return request.getfixturevalue(f"{request.param}_app")


@pytest.fixture
def login(community: CommunityApp):
    """Switch the signed-in user without touching the stores."""

    def _login(user_id: str, nickname: str = "Tester", role: str = "QA") -> CommunityApp:
        profile = UserProfile(id=user_id, userId=user_id, nickname=nickname, role=role)
        community.session.sign_in(user_id, profile)
        return community

    return _login


@pytest.fixture
def signed_in(login) -> CommunityApp:
    """App signed in as seed user ``mock-1`` (Sophia)."""
    return login("mock-1", "Sophia", "Frontend Dev")
