import os

# Must be set before family_companion.config is imported
os.environ["MOCK_REDIS"] = "true"
os.environ["OPENAI_API_KEY"] = ""
os.environ["LOG_FILE"] = ""

import pytest
from fastapi.testclient import TestClient

from family_companion.config import settings
from family_companion.managers.database_manager import DatabaseManager
from family_companion.models.database import init_db


@pytest.fixture
def database_url(tmp_path):
    return f"sqlite+aiosqlite:///{tmp_path / 'companion.db'}"


@pytest.fixture
async def db(database_url):
    """Seeded database with Margaret (1), Sarah (2) and frame 1"""
    engine = await init_db(database_url)
    await engine.dispose()

    manager = DatabaseManager(database_url)
    await manager.seed_sample_data()
    yield manager
    await manager.close()


@pytest.fixture
def client(database_url, monkeypatch):
    monkeypatch.setattr(settings, "database_url", database_url)
    from family_companion.main import app

    with TestClient(app) as test_client:
        yield test_client
