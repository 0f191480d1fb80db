"""Services package."""

from budget_forecast.services.backup import (
    ImportFormatError,
    export_data,
    export_json,
    import_data,
    parse_bundle,
)
from budget_forecast.services.storage import (
    DuplicateError,
    ForecastStorageInterface,
    GoogleSheetsClient,
    GoogleSheetsStorage,
    InMemoryStorage,
    NotFoundError,
    StorageConnectionError,
    StorageError,
)

__all__ = [
    # Backup
    "ImportFormatError",
    "export_data",
    "export_json",
    "import_data",
    "parse_bundle",
    # Storage services
    "DuplicateError",
    "ForecastStorageInterface",
    "GoogleSheetsClient",
    "GoogleSheetsStorage",
    "InMemoryStorage",
    "NotFoundError",
    "StorageConnectionError",
    "StorageError",
]
