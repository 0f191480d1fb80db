"""Validation package."""

from budget_forecast.validation.validator import (
    AccountValidator,
    RuleValidator,
    get_user_friendly_summary,
)

__all__ = [
    "AccountValidator",
    "RuleValidator",
    "get_user_friendly_summary",
]
