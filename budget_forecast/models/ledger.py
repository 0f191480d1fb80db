"""
Core Data Models for Budget Forecast

These models define the schemas for all data flowing through the system:
1. Persisted records: accounts and recurring transaction rules
2. Drafts: unvalidated user input on its way to becoming a record
3. Derived values: occurrences, forecast rows, period groups, chart points

DESIGN DECISION: Money is always Decimal. Amounts on rules are never
negative; the sign of an occurrence comes from its transaction type.

Derived models are frozen. They are recomputed on every forecast request
and must never be mutated in place.
"""

from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
)


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class TransactionType(str, Enum):
    """Direction of a transaction. Income adds, expense subtracts."""
    INCOME = "income"
    EXPENSE = "expense"


class Frequency(str, Enum):
    """
    Supported recurrence frequencies.

    The values are part of the export format and must not change.
    """
    ONCE = "Once"
    DAILY = "Daily"
    WEEKLY = "Weekly"
    BIWEEKLY = "Biweekly"
    MONTHLY = "Monthly"
    BIMONTHLY = "Bimonthly"
    ANNUALLY = "Annually"


class Granularity(str, Enum):
    """Period size for grouped ledgers."""
    MONTHLY = "monthly"
    ANNUAL = "annual"


class ForecastMode(str, Enum):
    """View requested by the presentation layer."""
    DETAILED = "detailed"
    MONTHLY = "monthly"
    ANNUAL = "annual"

    @property
    def granularity(self) -> Optional[Granularity]:
        """Grouping granularity, or None for the detailed view."""
        if self is ForecastMode.MONTHLY:
            return Granularity.MONTHLY
        if self is ForecastMode.ANNUAL:
            return Granularity.ANNUAL
        return None


DEFAULT_CATEGORIES = [
    "Mortgage",
    "Property taxes",
    "Natural Gas",
    "Electricity",
    "Water",
    "Pet food",
    "Vet",
    "Groceries",
    "Coffee",
    "Cell phone",
    "Home maintenance",
    "Home insurance",
    "Car repair",
    "Auto insurance",
    "Fuel",
    "Gifts",
    "Internet",
    "Clothing",
    "Dining out / takeout",
    "Online Subscriptions",
    "Lawn care / landscaping",
    "Medical / dental expenses",
    "Travel / vacations",
    "Savings",
    "Entertainment",
    "Hobbies",
    "Charitable donations",
    "Other/Miscellaneous",
    "Haircuts / personal grooming",
    "Gym membership or fitness classes",
    "Health insurance premiums",
    "Life insurance",
    "Childcare or school tuition",
    "School supplies / kids' activities",
    "House cleaning service",
    "HOA fees",
    "Parking / tolls",
    "Loan payments",
    "Business expenses",
    "Postage / shipping",
    "Home security / alarm system",
    "Banking fees",
    "Legal / accounting services",
]


def new_id() -> str:
    """Generate an opaque record identifier."""
    return uuid4().hex


def _coerce_identifier(v):
    # Older exports use auto-increment integers
    if isinstance(v, int) and not isinstance(v, bool):
        return str(v)
    return v


# =============================================================================
# PERSISTED RECORDS
# =============================================================================

class Account(BaseModel):
    """
    An account with its balance as of "now".

    The balance is the only seed for forward projection. It is not a
    historical snapshot.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(
        default_factory=new_id,
        min_length=1,
        description="Opaque unique identifier"
    )
    name: str = Field(
        ...,
        min_length=1,
        max_length=200,
        description="Display name"
    )
    balance: Decimal = Field(
        default=Decimal("0"),
        description="Current balance"
    )

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v):
        return _coerce_identifier(v)


class RecurringTransaction(BaseModel):
    """
    A recurring income or expense rule.

    This is a definition, not an event. Occurrences are derived from it
    on demand and never stored.

    The frequency is kept as a plain string so that rules written by other
    tools with an unknown frequency still load; the expander stops on them
    and validation flags them.
    """
    model_config = ConfigDict(str_strip_whitespace=True, populate_by_name=True)

    id: str = Field(
        default_factory=new_id,
        min_length=1,
        description="Opaque unique identifier"
    )
    name: str = Field(
        ...,
        min_length=1,
        max_length=200,
        description="Rule name, e.g. 'Rent'"
    )
    amount: Decimal = Field(
        ...,
        ge=0,
        description="Non-negative amount; sign comes from type"
    )
    type: TransactionType = Field(
        ...,
        description="Income or expense"
    )
    frequency: str = Field(
        default=Frequency.MONTHLY.value,
        description="One of the Frequency values"
    )
    account_id: str = Field(
        ...,
        alias="accountId",
        min_length=1,
        description="Account this rule books against"
    )
    category: str = Field(
        default="Other/Miscellaneous",
        max_length=200,
        description="Free-form category"
    )
    start_date: Optional[date] = Field(
        default=None,
        alias="startDate",
        description="First occurrence date"
    )
    end_date: Optional[date] = Field(
        default=None,
        alias="endDate",
        description="Last possible occurrence date; open-ended if absent"
    )

    @field_validator("id", "account_id", mode="before")
    @classmethod
    def coerce_ids(cls, v):
        return _coerce_identifier(v)

    @field_validator("frequency", mode="before")
    @classmethod
    def frequency_value(cls, v):
        if isinstance(v, Frequency):
            return v.value
        return v

    @field_validator("start_date", "end_date", mode="before")
    @classmethod
    def empty_date_is_none(cls, v):
        if v == "":
            return None
        return v


# =============================================================================
# DRAFTS - unvalidated input
# =============================================================================

class AccountDraft(BaseModel):
    """
    Account data as typed by the user.

    All fields are optional. The validator decides what is missing.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    name: Optional[str] = None
    balance: Optional[Decimal] = None


class TransactionDraft(BaseModel):
    """
    Recurring transaction data as typed by the user.

    CRITICAL: This is PROPOSED data. It must pass validation before a
    RecurringTransaction is built from it.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    name: Optional[str] = None
    amount: Optional[Decimal] = None
    type: Optional[TransactionType] = None
    frequency: Optional[str] = Frequency.MONTHLY.value
    account_id: Optional[str] = None
    category: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None

    @field_validator("account_id", mode="before")
    @classmethod
    def coerce_account_id(cls, v):
        return _coerce_identifier(v)

    @field_validator("frequency", mode="before")
    @classmethod
    def frequency_value(cls, v):
        if isinstance(v, Frequency):
            return v.value
        return v


# =============================================================================
# DERIVED VALUES
# =============================================================================

class Occurrence(BaseModel):
    """One concrete, dated instance of a rule."""
    model_config = ConfigDict(frozen=True)

    date: date
    amount: Decimal
    type: TransactionType
    account_id: str
    category: str
    base_id: str = Field(
        ...,
        description="ID of the rule that generated this occurrence"
    )

    @property
    def signed_amount(self) -> Decimal:
        """Amount with the sign applied to balances."""
        if self.type == TransactionType.INCOME:
            return self.amount
        return -self.amount


class ForecastRow(Occurrence):
    """An occurrence with its account resolved and the balance after it."""

    account_name: str
    balance: Decimal = Field(
        ...,
        description="Running balance of the account after this occurrence"
    )


class SummaryEntry(BaseModel):
    """Totals for one (account, category, type, rule) within a period."""
    model_config = ConfigDict(frozen=True)

    account_id: str
    account_name: str
    category: str
    type: TransactionType
    base_id: str
    total: Decimal
    occurrence_count: int = Field(ge=0)
    base_amount: Decimal


class PeriodBalance(BaseModel):
    """An account's balance at the end of a period."""
    model_config = ConfigDict(frozen=True)

    account_id: str
    account_name: str
    balance: Decimal


class PeriodGroup(BaseModel):
    """All activity within one calendar month or year of the window."""
    model_config = ConfigDict(frozen=True)

    label: str = Field(
        ...,
        description="Human label, e.g. 'January 2025' or '2025'"
    )
    start: date
    end: date
    summary_entries: list[SummaryEntry] = Field(default_factory=list)
    end_of_period_balances: list[PeriodBalance] = Field(default_factory=list)

    def balance_for(self, account_id: str) -> Optional[Decimal]:
        """End-of-period balance of one account, if recorded."""
        for entry in self.end_of_period_balances:
            if entry.account_id == account_id:
                return entry.balance
        return None


class ChartPoint(BaseModel):
    """One x-axis point of the balance chart."""
    model_config = ConfigDict(frozen=True)

    label: str
    balances: dict[str, Decimal] = Field(
        default_factory=dict,
        description="Balance per account name"
    )


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'invalid_value', 'inconsistent')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )
    suggested_fix: Optional[str] = Field(
        default=None,
        description="Suggested fix if available"
    )


class ValidationResult(BaseModel):
    """
    Result of the two-stage validation.

    Stage 1: Schema validation (required fields, value ranges)
    Stage 2: Semantic validation (dates, references, frequency)
    """

    schema_valid: bool = Field(
        ...,
        description="Did schema validation pass?"
    )
    semantic_valid: bool = Field(
        ...,
        description="Did semantic validation pass?"
    )
    is_valid: bool = Field(
        ...,
        description="Overall validation result"
    )
    issues: list[ValidationIssue] = Field(
        default_factory=list,
        description="All validation issues found"
    )
    warnings: list[str] = Field(
        default_factory=list,
        description="Non-blocking warnings"
    )

    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def error_count(self) -> int:
        """Count error-level issues."""
        return sum(1 for issue in self.issues if issue.severity == "error")
