"""
Two-Stage Validation Pipeline

DESIGN DECISION: Validation happens in two distinct stages:

STAGE 1 - SCHEMA VALIDATION:
- Required field presence (name, amount, account, start date)
- Value ranges (non-negative amount)
- This catches incomplete forms before anything reaches storage

STAGE 2 - SEMANTIC VALIDATION:
- End date before start date
- Unknown frequency (the rule would never produce an occurrence)
- Reference to an account that does not exist
- Month-end start dates that will be clamped in shorter months

IMPORTANT: Validation NEVER silently fixes issues.
It reports them; the flows decide whether to proceed.
"""

from decimal import Decimal
from typing import Optional

from budget_forecast.forecast.periods import is_known_frequency
from budget_forecast.models.ledger import (
    AccountDraft,
    Frequency,
    TransactionDraft,
    ValidationIssue,
    ValidationResult,
)


_MONTH_BASED = {Frequency.MONTHLY.value, Frequency.BIMONTHLY.value, Frequency.ANNUALLY.value}


def _result(schema_issues: list[ValidationIssue], semantic_issues: list[ValidationIssue]) -> ValidationResult:
    schema_valid = not any(i.severity == "error" for i in schema_issues)
    semantic_valid = schema_valid and not any(i.severity == "error" for i in semantic_issues)
    issues = schema_issues + semantic_issues
    return ValidationResult(
        schema_valid=schema_valid,
        semantic_valid=semantic_valid,
        is_valid=schema_valid and semantic_valid,
        issues=issues,
        warnings=[i.message for i in issues if i.severity == "warning"],
    )


class AccountValidator:
    """Validates account input. Only a name is required."""

    def validate(self, draft: AccountDraft) -> ValidationResult:
        issues = []
        if not draft.name:
            issues.append(ValidationIssue(
                field="name",
                issue_type="missing",
                message="Account name is required",
                severity="error",
            ))
        if draft.balance is not None and not draft.balance.is_finite():
            issues.append(ValidationIssue(
                field="balance",
                issue_type="invalid_value",
                message="Balance must be a finite number",
                severity="error",
            ))
        return _result(issues, [])


class RuleValidator:
    """
    Validates recurring transaction input through a two-stage pipeline.

    Stage 1: Schema validation (no context needed)
    Stage 2: Semantic validation (optionally checks account references)
    """

    def _validate_schema(self, draft: TransactionDraft) -> list[ValidationIssue]:
        issues = []

        if not draft.name:
            issues.append(ValidationIssue(
                field="name",
                issue_type="missing",
                message="Transaction name is required",
                severity="error",
            ))

        if draft.amount is None:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="missing",
                message="Amount is required",
                severity="error",
            ))
        elif not draft.amount.is_finite() or draft.amount < 0:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="invalid_value",
                message="Amount must be zero or more; use the type to record income or expense",
                severity="error",
                suggested_fix="Enter the amount without a sign",
            ))

        if draft.type is None:
            issues.append(ValidationIssue(
                field="type",
                issue_type="missing",
                message="Type (income or expense) is required",
                severity="error",
            ))

        if not draft.account_id:
            issues.append(ValidationIssue(
                field="account_id",
                issue_type="missing",
                message="An account is required",
                severity="error",
            ))

        if draft.start_date is None:
            issues.append(ValidationIssue(
                field="start_date",
                issue_type="missing",
                message="Start date is required",
                severity="error",
            ))

        return issues

    def _validate_semantic(
        self,
        draft: TransactionDraft,
        known_account_ids: Optional[set[str]],
    ) -> list[ValidationIssue]:
        issues = []

        if draft.start_date and draft.end_date and draft.end_date < draft.start_date:
            issues.append(ValidationIssue(
                field="end_date",
                issue_type="inconsistent",
                message="End date is before start date; the rule will never occur",
                severity="warning",
                suggested_fix="Clear the end date or move it after the start date",
            ))

        frequency = draft.frequency or Frequency.MONTHLY.value
        if not is_known_frequency(frequency):
            issues.append(ValidationIssue(
                field="frequency",
                issue_type="invalid_value",
                message=f"Unknown frequency '{frequency}'",
                severity="error",
                suggested_fix=", ".join(f.value for f in Frequency),
            ))

        if (
            known_account_ids is not None
            and draft.account_id
            and draft.account_id not in known_account_ids
        ):
            issues.append(ValidationIssue(
                field="account_id",
                issue_type="unknown_reference",
                message=f"Account {draft.account_id} does not exist",
                severity="warning",
                suggested_fix="Pick an existing account",
            ))

        if draft.start_date and draft.start_date.day >= 29 and frequency in _MONTH_BASED:
            issues.append(ValidationIssue(
                field="start_date",
                issue_type="month_end",
                message=(
                    f"Starts on day {draft.start_date.day}; in shorter months it "
                    "falls on the last day of the month"
                ),
                severity="info",
            ))

        if draft.amount is not None and draft.amount == Decimal("0"):
            issues.append(ValidationIssue(
                field="amount",
                issue_type="suspicious_value",
                message="Amount is zero; the rule will not change any balance",
                severity="warning",
            ))

        return issues

    def validate(
        self,
        draft: TransactionDraft,
        known_account_ids: Optional[set[str]] = None,
    ) -> ValidationResult:
        """
        Run full two-stage validation pipeline.

        Args:
            draft: The transaction input to validate
            known_account_ids: Existing account IDs; reference checks are
                skipped when None

        Returns:
            ValidationResult with all issues found
        """
        schema_issues = self._validate_schema(draft)
        semantic_issues = []
        # Only run stage 2 if stage 1 passes
        if not any(i.severity == "error" for i in schema_issues):
            semantic_issues = self._validate_semantic(draft, known_account_ids)
        return _result(schema_issues, semantic_issues)


def get_user_friendly_summary(result: ValidationResult) -> str:
    """Short text summary of a validation result."""
    if result.is_valid and not result.warnings:
        return "All checks passed."

    lines = []
    errors = [i for i in result.issues if i.severity == "error"]
    if errors:
        lines.append("Please fix the following:")
        for issue in errors:
            lines.append(f"  - {issue.message}")
            if issue.suggested_fix:
                lines.append(f"    ({issue.suggested_fix})")

    if result.warnings:
        lines.append("Please verify the following:")
        for warning in result.warnings:
            lines.append(f"  - {warning}")

    return "\n".join(lines)
