"""Services package."""

from finplan.services.persistence import (
    FinancialStorageInterface,
    HttpFinancialStorage,
    InMemoryFinancialStorage,
    NotFoundError,
    RequestFailedError,
    ResourceStorageInterface,
    StorageConnectionError,
    StorageError,
)

__all__ = [
    # Persistence services
    "FinancialStorageInterface",
    "HttpFinancialStorage",
    "InMemoryFinancialStorage",
    "NotFoundError",
    "RequestFailedError",
    "ResourceStorageInterface",
    "StorageConnectionError",
    "StorageError",
]
