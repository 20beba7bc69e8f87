"""Repository adapters - RegistrationStore implementations and the store selector."""

from .json_file import JsonFileRegistrationRepository
from .memory import MemoryRegistrationRepository
from .postgres import PostgresRegistrationRepository, create_postgres_repository, run_migrations
from .remote_table import RemoteTableRegistrationRepository, create_remote_repository
from .selector import StoreSelector

__all__ = [
    "JsonFileRegistrationRepository",
    "MemoryRegistrationRepository",
    "PostgresRegistrationRepository",
    "RemoteTableRegistrationRepository",
    "StoreSelector",
    "create_postgres_repository",
    "create_remote_repository",
    "run_migrations",
]
