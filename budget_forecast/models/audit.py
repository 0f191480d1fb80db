"""
Audit Models for Budget Forecast

Every mutation of accounts or rules, every import/export and every
forecast request produces an audit event.

DESIGN DECISION: Audit events are append-only. We never modify them.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Accounts
    ACCOUNT_CREATED = "account_created"
    ACCOUNT_UPDATED = "account_updated"
    ACCOUNT_DELETED = "account_deleted"

    # Recurring transactions
    TRANSACTION_CREATED = "transaction_created"
    TRANSACTION_UPDATED = "transaction_updated"
    TRANSACTION_DELETED = "transaction_deleted"
    OCCURRENCE_EDIT_REJECTED = "occurrence_edit_rejected"

    # Validation
    VALIDATION_FAILED = "validation_failed"

    # Backup
    DATA_EXPORTED = "data_exported"
    DATA_IMPORTED = "data_imported"
    TRANSACTION_IMPORT_SKIPPED = "transaction_import_skipped"

    # Forecasting
    FORECAST_COMPUTED = "forecast_computed"
    UNKNOWN_FREQUENCY = "unknown_frequency"

    # System events
    STORAGE_ERROR = "storage_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'account', 'transaction', 'forecast')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., one import)"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.account_created(account_id, name)
        event = AuditEventBuilder.data_imported(3, 7, 1, correlation_id)
    """

    @staticmethod
    def account_created(
        account_id: str,
        name: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ACCOUNT_CREATED,
            entity_type="account",
            entity_id=account_id,
            correlation_id=correlation_id,
            description=f"Account created: {name}",
            details={"name": name},
            is_user_action=True,
        )

    @staticmethod
    def account_updated(
        account_id: str,
        name: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ACCOUNT_UPDATED,
            entity_type="account",
            entity_id=account_id,
            correlation_id=correlation_id,
            description=f"Account updated: {name}",
            details={"name": name},
            is_user_action=True,
        )

    @staticmethod
    def account_deleted(
        account_id: str,
        transactions_deleted: int,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ACCOUNT_DELETED,
            entity_type="account",
            entity_id=account_id,
            correlation_id=correlation_id,
            description=(
                f"Account deleted with {transactions_deleted} "
                "associated transaction(s)"
            ),
            details={"transactions_deleted": transactions_deleted},
            is_user_action=True,
        )

    @staticmethod
    def transaction_changed(
        event_type: AuditEventType,
        transaction_id: str,
        name: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        verb = event_type.value.split("_")[-1]
        return AuditEvent(
            event_type=event_type,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description=f"Transaction {verb}: {name}",
            details={"name": name},
            is_user_action=True,
        )

    @staticmethod
    def occurrence_edit_rejected(
        base_id: str,
        occurrence_date: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.OCCURRENCE_EDIT_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type="transaction",
            entity_id=base_id,
            correlation_id=correlation_id,
            description="Single-occurrence edit rejected: only rule-level edits are supported",
            details={"date": occurrence_date},
            is_user_action=True,
        )

    @staticmethod
    def validation_failed(
        entity_type: str,
        stage: str,
        issues: list[dict],
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.VALIDATION_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type=entity_type,
            correlation_id=correlation_id,
            description=f"{stage.capitalize()} validation failed with {len(issues)} issues",
            details={
                "stage": stage,
                "issues": issues,
            },
        )

    @staticmethod
    def data_exported(
        account_count: int,
        transaction_count: int,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DATA_EXPORTED,
            entity_type="backup",
            correlation_id=correlation_id,
            description=f"Exported {account_count} accounts and {transaction_count} transactions",
            details={
                "accounts": account_count,
                "transactions": transaction_count,
            },
            is_user_action=True,
        )

    @staticmethod
    def data_imported(
        accounts_imported: int,
        transactions_imported: int,
        skipped: int,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DATA_IMPORTED,
            severity=AuditSeverity.WARNING if skipped else AuditSeverity.INFO,
            entity_type="backup",
            correlation_id=correlation_id,
            description=(
                f"Imported {accounts_imported} accounts and "
                f"{transactions_imported} transactions ({skipped} skipped)"
            ),
            details={
                "accounts": accounts_imported,
                "transactions": transactions_imported,
                "skipped": skipped,
            },
            is_user_action=True,
        )

    @staticmethod
    def transaction_import_skipped(
        transaction_id: str,
        account_id: str,
        reason: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_IMPORT_SKIPPED,
            severity=AuditSeverity.WARNING,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description=f"Transaction skipped on import: {reason}",
            details={"account_id": account_id},
        )

    @staticmethod
    def forecast_computed(
        mode: str,
        window_start: str,
        window_end: str,
        result_count: int,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.FORECAST_COMPUTED,
            severity=AuditSeverity.DEBUG,
            entity_type="forecast",
            correlation_id=correlation_id,
            description=f"Forecast computed: {mode} returned {result_count} results",
            details={
                "mode": mode,
                "window_start": window_start,
                "window_end": window_end,
                "result_count": result_count,
            },
        )

    @staticmethod
    def unknown_frequency(
        transaction_id: str,
        frequency: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.UNKNOWN_FREQUENCY,
            severity=AuditSeverity.WARNING,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description=f"Unknown frequency '{frequency}': rule produces no occurrences",
            details={"frequency": frequency},
        )

    @staticmethod
    def storage_error(
        operation: str,
        error_message: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STORAGE_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"Storage error during {operation}",
            error_message=error_message,
            details={"operation": operation},
            correlation_id=correlation_id,
        )
