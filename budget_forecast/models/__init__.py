"""
Data Models Package

This package contains all Pydantic models used in Budget Forecast.
All data flowing through the system must conform to these schemas.
"""

from budget_forecast.models.ledger import (
    DEFAULT_CATEGORIES,
    Account,
    AccountDraft,
    ChartPoint,
    ForecastMode,
    ForecastRow,
    Frequency,
    Granularity,
    Occurrence,
    PeriodBalance,
    PeriodGroup,
    RecurringTransaction,
    SummaryEntry,
    TransactionDraft,
    TransactionType,
    ValidationIssue,
    ValidationResult,
    new_id,
)
from budget_forecast.models.backup import (
    EXPORT_FORMAT_VERSION,
    ExportBundle,
    ImportReport,
    SkippedTransaction,
)
from budget_forecast.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Ledger models
    "DEFAULT_CATEGORIES",
    "Account",
    "AccountDraft",
    "ChartPoint",
    "ForecastMode",
    "ForecastRow",
    "Frequency",
    "Granularity",
    "Occurrence",
    "PeriodBalance",
    "PeriodGroup",
    "RecurringTransaction",
    "SummaryEntry",
    "TransactionDraft",
    "TransactionType",
    "ValidationIssue",
    "ValidationResult",
    "new_id",
    # Backup models
    "EXPORT_FORMAT_VERSION",
    "ExportBundle",
    "ImportReport",
    "SkippedTransaction",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
