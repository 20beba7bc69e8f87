"""
Store selector - picks and caches the active RegistrationStore.

Selection (first match wins):
1. Explicit ``STORAGE_TYPE`` override
2. Remote table URL and key present -> remote table store
3. Serverless host (Vercel, Netlify, AWS Lambda) -> JSON file in the temp dir
4. Incomplete relational configuration -> JSON file in ``DATA_DIR``
5. Otherwise -> PostgreSQL store

If creating the chosen store fails, the selector falls back to the
in-memory store and logs a warning: registration stays available but
nothing written is durable until the configuration is fixed.
"""

import logging
import tempfile
import threading
from pathlib import Path
from typing import Any

from src.config.settings import Settings
from src.domain.ports import RegistrationStore, StorageKind

from .json_file import JsonFileRegistrationRepository
from .memory import MemoryRegistrationRepository
from .postgres import create_postgres_repository
from .remote_table import create_remote_repository

logger = logging.getLogger(__name__)

_KIND_ALIASES = {
    "memory": StorageKind.MEMORY,
    "file": StorageKind.FILE,
    "json": StorageKind.FILE,
    "postgres": StorageKind.POSTGRES,
    "database": StorageKind.POSTGRES,
    "remote": StorageKind.REMOTE,
    "supabase": StorageKind.REMOTE,
}


class StoreSelector:
    """
    Holds at most one live store plus the kind it was created for.

    Built once at process start and passed down to request handling.
    ``get_storage()`` re-creates the store only when the detected kind
    changes; ``refresh()`` forces re-creation.
    """

    def __init__(self, settings: Settings) -> None:
        self.settings = settings
        self._lock = threading.Lock()
        self._storage: RegistrationStore | None = None
        self._kind: StorageKind | None = None
        self._fell_back = False

    def detect_kind(self) -> StorageKind:
        """Determine which store kind the configuration asks for."""
        settings = self.settings
        if settings.storage_type:
            requested = settings.storage_type.strip().lower()
            kind = _KIND_ALIASES.get(requested)
            if kind is None:
                logger.warning(f"Unknown storage type: {requested}, falling back to file storage")
                return StorageKind.FILE
            return kind

        if settings.has_remote_config:
            return StorageKind.REMOTE
        if settings.is_serverless or not settings.has_db_config:
            return StorageKind.FILE
        return StorageKind.POSTGRES

    def file_data_dir(self) -> Path:
        """JSON file location; serverless hosts only allow writes under the temp dir."""
        if self.settings.is_serverless:
            return Path(tempfile.gettempdir()) / "prelaunch-data"
        return self.settings.data_dir

    def get_storage(self) -> RegistrationStore:
        """
        Return the active store, creating it on first use or kind change.

        Never raises for a misconfigured durable store: creation failures
        downgrade to the in-memory store.
        """
        kind = self.detect_kind()
        with self._lock:
            if self._storage is not None and (self._kind == kind or self._fell_back):
                return self._storage

            self._close_current()
            logger.info(f"Initializing {kind.value} storage...")
            try:
                self._storage = self._create(kind)
                self._kind = kind
                self._fell_back = False
            except Exception as e:
                logger.warning(
                    f"Failed to initialize {kind.value} storage ({e}); "
                    "falling back to in-memory storage, registrations will not survive a restart"
                )
                self._storage = MemoryRegistrationRepository()
                self._kind = StorageKind.MEMORY
                self._fell_back = True
            return self._storage

    def refresh(self) -> RegistrationStore:
        """Discard the cached store (and its in-memory state) and select again."""
        with self._lock:
            self._close_current()
            self._storage = None
            self._kind = None
            self._fell_back = False
        return self.get_storage()

    @property
    def storage_kind(self) -> StorageKind:
        """Kind of the live store, or the detected kind before first use."""
        return self._kind or self.detect_kind()

    @property
    def fell_back(self) -> bool:
        """True when the live store is the in-memory fallback."""
        return self._fell_back

    def test_storage(self) -> bool:
        """Health probe: True if the active store answers a stats query."""
        try:
            storage = self.get_storage()
            test_connection = getattr(storage, "test_connection", None)
            if test_connection is not None:
                return test_connection()
            storage.get_stats()
            return True
        except Exception as e:
            logger.error(f"Storage test failed: {e}")
            return False

    def describe(self) -> dict[str, Any]:
        """Configuration summary for the health and admin endpoints."""
        return {
            "type": self.storage_kind.value,
            "fellBack": self._fell_back,
            "isServerless": self.settings.is_serverless,
            "hasDbConfig": self.settings.has_db_config,
            "hasRemoteConfig": self.settings.has_remote_config,
            "explicitType": self.settings.storage_type,
        }

    def close(self) -> None:
        with self._lock:
            self._close_current()
            self._storage = None
            self._kind = None

    def _create(self, kind: StorageKind) -> RegistrationStore:
        if kind == StorageKind.MEMORY:
            return MemoryRegistrationRepository()
        if kind == StorageKind.FILE:
            return JsonFileRegistrationRepository(self.file_data_dir())
        if kind == StorageKind.POSTGRES:
            return create_postgres_repository(self.settings)
        return create_remote_repository(self.settings)

    def _close_current(self) -> None:
        close = getattr(self._storage, "close", None)
        if close is not None:
            close()
