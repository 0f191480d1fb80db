"""
Storage Services Package

Provides the abstract storage interface and its implementations:
an in-memory store and a Google Sheets backend.
"""

from budget_forecast.services.storage.interface import (
    DuplicateError,
    ForecastStorageInterface,
    NotFoundError,
    StorageConnectionError,
    StorageError,
)
from budget_forecast.services.storage.memory import InMemoryStorage
from budget_forecast.services.storage.google_sheets import (
    GoogleSheetsClient,
    GoogleSheetsStorage,
)

__all__ = [
    # Interfaces
    "ForecastStorageInterface",
    # Exceptions
    "DuplicateError",
    "NotFoundError",
    "StorageConnectionError",
    "StorageError",
    # Implementations
    "InMemoryStorage",
    "GoogleSheetsClient",
    "GoogleSheetsStorage",
]
