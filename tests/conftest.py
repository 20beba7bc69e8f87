"""
Shared test fixtures and configuration.

This module provides pytest fixtures for:
- A controllable clock for expiry and stats tests
- In-memory and JSON file stores
- Settings built without reading the environment's .env file
"""

from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from src.adapters.repository.json_file import JsonFileRegistrationRepository
from src.adapters.repository.memory import MemoryRegistrationRepository
from src.config.settings import Settings


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def memory_store(clock: FakeClock) -> MemoryRegistrationRepository:
    return MemoryRegistrationRepository(clock=clock)


@pytest.fixture
def json_store(tmp_path: Path, clock: FakeClock) -> JsonFileRegistrationRepository:
    return JsonFileRegistrationRepository(tmp_path, clock=clock)


@pytest.fixture
def make_settings(tmp_path: Path) -> Callable[..., Settings]:
    """Settings factory isolated from .env files and durable backends."""

    def _make(**overrides: object) -> Settings:
        values: dict[str, object] = {
            "storage_type": None,
            "data_dir": tmp_path / "data",
            "database_url": None,
            "db_host": None,
            "db_user": None,
            "db_password": None,
            "db_name": None,
            "supabase_url": None,
            "supabase_service_role_key": None,
            "supabase_anon_key": None,
            "vercel": False,
            "netlify": False,
            "aws_lambda_function_name": None,
            "resend_api_key": None,
            "db_connect_timeout": 0.5,
        }
        values.update(overrides)
        return Settings(_env_file=None, **values)

    return _make
