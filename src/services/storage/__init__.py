"""
Storage Services Package

Provides abstract interfaces and concrete implementations for data storage.
Records live in memory or in a local JSON file; both follow the same interface.
"""

from src.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    DuplicateEmailError,
    DuplicateError,
    NotFoundError,
    RecordStoreInterface,
    StorageError,
)
from src.services.storage.memory import (
    InMemoryAuditStorage,
    InMemoryRecordStore,
)
from src.services.storage.json_file import JsonFileRecordStore

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "RecordStoreInterface",
    # Exceptions
    "ConnectionError",
    "DuplicateEmailError",
    "DuplicateError",
    "NotFoundError",
    "StorageError",
    # Implementations
    "InMemoryAuditStorage",
    "InMemoryRecordStore",
    "JsonFileRecordStore",
]
