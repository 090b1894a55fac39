"""
Storage backends.
"""
from vendorhive.lib.settings import Settings
from vendorhive.storage.base import DuplicateRecordError, Storage, rounded_average
from vendorhive.storage.memory import MemoryStorage


def create_storage(settings: Settings) -> Storage:
    """Construct (but do not open) the backend named by ``settings.storage_backend``."""
    backend = settings.storage_backend
    if backend == "memory":
        return MemoryStorage()
    if backend == "sql":
        from vendorhive.storage.sql import SqlStorage
        return SqlStorage(settings.database_url, echo=settings.debug)
    if backend == "mongo":
        from vendorhive.storage.mongo import MongoStorage
        return MongoStorage(settings.mongodb_uri, settings.mongodb_database)
    raise ValueError(f"Unknown storage backend: {backend}")


__all__ = [
    "DuplicateRecordError",
    "MemoryStorage",
    "Storage",
    "create_storage",
    "rounded_average",
]
