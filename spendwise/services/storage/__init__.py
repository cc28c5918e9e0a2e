"""
Storage Services Package

Provides abstract interfaces and concrete implementations for data storage.
Currently implements in-memory stores, but designed to be swappable.
"""

from spendwise.services.storage.interface import (
    AuditStorageInterface,
    DuplicateError,
    ExpenseStorageInterface,
    NotFoundError,
    StorageError,
    UserStorageInterface,
)
from spendwise.services.storage.memory import (
    InMemoryAuditStorage,
    InMemoryExpenseStorage,
    InMemoryUserStorage,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "ExpenseStorageInterface",
    "UserStorageInterface",
    # Exceptions
    "DuplicateError",
    "NotFoundError",
    "StorageError",
    # In-memory implementation
    "InMemoryAuditStorage",
    "InMemoryExpenseStorage",
    "InMemoryUserStorage",
]
