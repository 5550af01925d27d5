"""Shared pytest fixtures"""
import asyncio

import pytest

from marlan.config import config
from marlan.db.database import init_db


@pytest.fixture
def db_path(tmp_path, monkeypatch):
    """Point the app at a fresh SQLite file for one test"""
    path = tmp_path / "marlan-test.db"
    monkeypatch.setattr(config, "DATABASE_PATH", str(path))
    monkeypatch.setattr(config, "LOG_DIR", str(tmp_path / "logs"))
    asyncio.run(init_db())
    return path


class FakeClock:
    """Manually advanced clock for TTL tests"""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()
