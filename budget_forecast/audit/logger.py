"""
Audit Logger

DESIGN DECISION: Every mutation of accounts and rules, every import and
export, and every forecast request is logged.
This provides:
1. Complete traceability
2. Debugging capability
3. A recent-history view the presentation layer can show

The audit logger:
- Writes structured JSON logs through structlog
- Keeps a bounded in-memory trail of recent events
"""

import logging
from collections import deque
from typing import Optional
from uuid import UUID, uuid4

import structlog

from budget_forecast.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


def configure_logging(level: str = "INFO") -> None:
    """Route structlog output through stdlib logging at the given level."""
    logging.basicConfig(format="%(message)s", level=getattr(logging, level.upper(), logging.INFO))
    logging.getLogger("budget_forecast").setLevel(level.upper())


_LEVELS = {
    AuditSeverity.DEBUG: "debug",
    AuditSeverity.INFO: "info",
    AuditSeverity.WARNING: "warning",
    AuditSeverity.ERROR: "error",
    AuditSeverity.CRITICAL: "critical",
}


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. An in-memory trail of recent events (for user visibility)
    """

    def __init__(self, max_events: int = 500):
        self._logger = structlog.get_logger("budget_forecast.audit")
        self._events: deque[AuditEvent] = deque(maxlen=max_events)

    def log(self, event: AuditEvent) -> None:
        """Log an audit event."""
        self._events.append(event)
        log_method = getattr(self._logger, _LEVELS[event.severity])
        log_method("audit_event", **event.to_log_dict())

    def recent_events(self, limit: int = 100) -> list[AuditEvent]:
        """Most recent events, newest first."""
        return list(reversed(self._events))[:limit]

    def log_account_created(
        self,
        account_id: str,
        name: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.account_created(account_id, name, correlation_id))

    def log_account_updated(
        self,
        account_id: str,
        name: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.account_updated(account_id, name, correlation_id))

    def log_account_deleted(
        self,
        account_id: str,
        transactions_deleted: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.account_deleted(
            account_id, transactions_deleted, correlation_id
        ))

    def log_transaction_created(
        self,
        transaction_id: str,
        name: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.transaction_changed(
            AuditEventType.TRANSACTION_CREATED, transaction_id, name, correlation_id
        ))

    def log_transaction_updated(
        self,
        transaction_id: str,
        name: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.transaction_changed(
            AuditEventType.TRANSACTION_UPDATED, transaction_id, name, correlation_id
        ))

    def log_transaction_deleted(
        self,
        transaction_id: str,
        name: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.transaction_changed(
            AuditEventType.TRANSACTION_DELETED, transaction_id, name, correlation_id
        ))

    def log_occurrence_edit_rejected(
        self,
        base_id: str,
        occurrence_date: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.occurrence_edit_rejected(
            base_id, occurrence_date, correlation_id
        ))

    def log_validation_failed(
        self,
        entity_type: str,
        stage: str,
        issues: list[dict],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.validation_failed(
            entity_type, stage, issues, correlation_id
        ))

    def log_data_exported(
        self,
        account_count: int,
        transaction_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.data_exported(
            account_count, transaction_count, correlation_id
        ))

    def log_data_imported(
        self,
        accounts_imported: int,
        transactions_imported: int,
        skipped: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.data_imported(
            accounts_imported, transactions_imported, skipped, correlation_id
        ))

    def log_transaction_import_skipped(
        self,
        transaction_id: str,
        account_id: str,
        reason: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.transaction_import_skipped(
            transaction_id, account_id, reason, correlation_id
        ))

    def log_forecast_computed(
        self,
        mode: str,
        window_start: str,
        window_end: str,
        result_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.forecast_computed(
            mode, window_start, window_end, result_count, correlation_id
        ))

    def log_unknown_frequency(
        self,
        transaction_id: str,
        frequency: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.unknown_frequency(
            transaction_id, frequency, correlation_id
        ))

    def log_storage_error(
        self,
        operation: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.storage_error(
            operation, error_message, correlation_id
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a new user action (e.g., an import).
    Pass it through all subsequent operations.
    """
    return uuid4()
