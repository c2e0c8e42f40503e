"""Storage contract and its four backends."""

from library_system.storage.base import StorageBackend
from library_system.storage.caching import CachingStorage
from library_system.storage.file import FileStorage
from library_system.storage.memory import InMemoryStorage
from library_system.storage.sql import SqlStorage

__all__ = [
    "StorageBackend",
    "InMemoryStorage",
    "FileStorage",
    "CachingStorage",
    "SqlStorage",
]
