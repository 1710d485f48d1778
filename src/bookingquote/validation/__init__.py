"""Validation module for checking rule configurations before they are saved."""

from bookingquote.validation.validator import (
    RuleSetValidator,
    ValidationError,
    ValidationErrorType,
    ValidationResult,
)

__all__ = [
    "RuleSetValidator",
    "ValidationError",
    "ValidationErrorType",
    "ValidationResult",
]
