from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import create_engine

from backend.tpi_sync.repository import SQLTpiRepository
from tpi_dashboard.session import FileTokenStore


class StepClock:
    """Clock that moves forward one second on every call."""

    def __init__(self, start: datetime = datetime(2024, 1, 1, tzinfo=timezone.utc)):
        self.current = start

    def __call__(self) -> datetime:
        self.current += timedelta(seconds=1)
        return self.current


@pytest.fixture
def engine(tmp_path):
    engine = create_engine(f"sqlite:///{tmp_path / 'tpi.db'}")
    yield engine
    engine.dispose()


@pytest.fixture
def repository(engine):
    return SQLTpiRepository(engine, clock=StepClock())


@pytest.fixture
def token_store(tmp_path):
    return FileTokenStore(tmp_path / "auth.json")
