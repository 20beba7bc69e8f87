"""
Shared fixtures for adversarial tests.

Every attack runs against each store kind that can be built here: the
in-memory and JSON file stores always, PostgreSQL when configured and
reachable.
"""

from collections.abc import Iterator
from pathlib import Path

import pytest

from src.adapters.repository.json_file import JsonFileRegistrationRepository
from src.adapters.repository.memory import MemoryRegistrationRepository
from src.adapters.repository.postgres import create_postgres_repository
from src.config.settings import Settings
from src.domain.ports import RegistrationStore

# Module-level marker for all adversarial tests
pytestmark = pytest.mark.adversarial


@pytest.fixture(scope="session")
def postgres_repository():
    """Shared PostgreSQL store, or None without a reachable database."""
    settings = Settings()
    if not settings.has_db_config:
        yield None
        return
    try:
        repo = create_postgres_repository(settings)
    except Exception:
        yield None
        return
    yield repo
    repo.close()


@pytest.fixture(params=["memory", "file", "postgres"])
def store(request, tmp_path: Path, postgres_repository) -> Iterator[RegistrationStore]:
    """Store under attack, emptied before each test."""
    if request.param == "memory":
        yield MemoryRegistrationRepository()
    elif request.param == "file":
        yield JsonFileRegistrationRepository(tmp_path)
    else:
        if postgres_repository is None:
            pytest.skip("Database unavailable")
        postgres_repository.clear_registrations()
        yield postgres_repository
