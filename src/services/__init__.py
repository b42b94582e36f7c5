"""Services package."""

from src.services.pricing import (
    PriceLookupService,
    fetch_digital_asset_price,
    fetch_equity_price,
)
from src.services.storage import (
    AuditStorageInterface,
    ConnectionError,
    DuplicateEmailError,
    DuplicateError,
    InMemoryAuditStorage,
    InMemoryRecordStore,
    JsonFileRecordStore,
    NotFoundError,
    RecordStoreInterface,
    StorageError,
)

__all__ = [
    # Pricing services
    "PriceLookupService",
    "fetch_digital_asset_price",
    "fetch_equity_price",
    # Storage services
    "AuditStorageInterface",
    "ConnectionError",
    "DuplicateEmailError",
    "DuplicateError",
    "InMemoryAuditStorage",
    "InMemoryRecordStore",
    "JsonFileRecordStore",
    "NotFoundError",
    "RecordStoreInterface",
    "StorageError",
]
