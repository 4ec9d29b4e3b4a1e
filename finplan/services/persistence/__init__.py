"""
Persistence Services Package

Abstract interfaces for the remote copy of the plan plus two implementations:
the REST service adapter (httpx) and an in-memory store.
"""

from finplan.services.persistence.interface import (
    RESOURCE_MODELS,
    RESOURCE_PATHS,
    FinancialStorageInterface,
    NotFoundError,
    RequestFailedError,
    ResourceStorageInterface,
    StorageConnectionError,
    StorageError,
    WRITE_FIELDS,
    write_payload,
)
from finplan.services.persistence.http import (
    FinancialApiClient,
    HttpFinancialStorage,
    HttpResourceStorage,
)
from finplan.services.persistence.memory import (
    InMemoryFinancialStorage,
    InMemoryResourceStorage,
)

__all__ = [
    # Interfaces
    "FinancialStorageInterface",
    "ResourceStorageInterface",
    "RESOURCE_MODELS",
    "RESOURCE_PATHS",
    "WRITE_FIELDS",
    "write_payload",
    # Exceptions
    "NotFoundError",
    "RequestFailedError",
    "StorageConnectionError",
    "StorageError",
    # REST implementation
    "FinancialApiClient",
    "HttpFinancialStorage",
    "HttpResourceStorage",
    # In-memory implementation
    "InMemoryFinancialStorage",
    "InMemoryResourceStorage",
]
