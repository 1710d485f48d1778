"""Validation of rule and override configurations.

The evaluator skips a malformed row at read time so one bad row cannot
block every booking. This module is the write-time counterpart: the admin
surface runs rule and override sets through it before saving, and gets back
every problem at once.
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from bookingquote.domain.errors import MalformedRule
from bookingquote.domain.keys import normalize_cleaning_type, normalize_service_type
from bookingquote.domain.models import PricingOverride, RuleType, SchedulingRule
from bookingquote.rules.records import parse_override, parse_rule


class ValidationErrorType(Enum):
    """Types of validation errors."""

    MALFORMED_RULE = "malformed_rule"
    MALFORMED_OVERRIDE = "malformed_override"
    DUPLICATE_RULE_ID = "duplicate_rule_id"
    MULTIPLE_ACTIVE_CUTOFFS = "multiple_active_cutoffs"
    MULTIPLE_ACTIVE_OVERTIME_WINDOWS = "multiple_active_overtime_windows"
    DUPLICATE_OVERRIDE = "duplicate_override"


@dataclass
class ValidationError:
    """A single validation error."""

    error_type: ValidationErrorType
    message: str
    rule_id: Optional[str] = None
    details: dict = field(default_factory=dict)

    def __str__(self) -> str:
        parts = [f"[{self.error_type.value}]"]
        if self.rule_id:
            parts.append(f"Rule {self.rule_id}:")
        parts.append(self.message)
        return " ".join(parts)


@dataclass
class ValidationResult:
    """Result of validating a rule or override set."""

    is_valid: bool
    errors: list[ValidationError] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def add_error(self, error: ValidationError) -> None:
        """Add an error and mark as invalid."""
        self.errors.append(error)
        self.is_valid = False

    def add_warning(self, warning: str) -> None:
        """Add a warning (doesn't affect validity)."""
        self.warnings.append(warning)

    def merge(self, other: "ValidationResult") -> "ValidationResult":
        """Fold another result into this one."""
        for error in other.errors:
            self.add_error(error)
        self.warnings.extend(other.warnings)
        return self


class RuleSetValidator:
    """Validates rule and override sets before they are saved.

    Example:
        >>> validator = RuleSetValidator()
        >>> result = validator.validate_rules(rows)
        >>> if not result.is_valid:
        ...     for error in result.errors:
        ...         print(error)
    """

    def validate_rules(self, rows: Iterable[Mapping]) -> ValidationResult:
        """Validate a complete set of scheduling rule rows.

        Args:
            rows: Raw rule rows as they would be stored.

        Returns:
            ValidationResult with is_valid flag and any errors.
        """
        result = ValidationResult(is_valid=True)
        rules: list[SchedulingRule] = []
        seen_ids: set[str] = set()

        for row in rows:
            try:
                rule = parse_rule(row)
            except MalformedRule as exc:
                result.add_error(
                    ValidationError(
                        error_type=ValidationErrorType.MALFORMED_RULE,
                        message=exc.args[0],
                        rule_id=exc.rule_id,
                        details={"defect": exc.defect.value},
                    )
                )
                continue

            if rule.id in seen_ids:
                result.add_error(
                    ValidationError(
                        error_type=ValidationErrorType.DUPLICATE_RULE_ID,
                        message="Rule id is used more than once",
                        rule_id=rule.id,
                    )
                )
            seen_ids.add(rule.id)
            rules.append(rule)

        self._validate_single_active(
            rules,
            RuleType.CUTOFF_TIME,
            ValidationErrorType.MULTIPLE_ACTIVE_CUTOFFS,
            result,
        )
        self._validate_single_active(
            rules,
            RuleType.OVERTIME_WINDOW,
            ValidationErrorType.MULTIPLE_ACTIVE_OVERTIME_WINDOWS,
            result,
        )

        active_types = {r.rule_type for r in rules if r.is_active}
        if RuleType.OVERTIME_WINDOW in active_types and RuleType.CUTOFF_TIME not in active_types:
            result.add_warning(
                "An overtime window is active but no cutoff time is configured; "
                "it will never apply"
            )

        return result

    def validate_overrides(self, rows: Iterable[Mapping]) -> ValidationResult:
        """Validate a set of pricing override rows.

        At most one override may exist per customer, service and cleaning
        type (service-wide overrides count as their own cleaning type).

        Args:
            rows: Raw override rows as they would be stored.

        Returns:
            ValidationResult with is_valid flag and any errors.
        """
        result = ValidationResult(is_valid=True)
        seen: dict[tuple, PricingOverride] = {}

        for row in rows:
            try:
                override = parse_override(row)
            except MalformedRule as exc:
                result.add_error(
                    ValidationError(
                        error_type=ValidationErrorType.MALFORMED_OVERRIDE,
                        message=exc.args[0],
                        rule_id=exc.rule_id,
                        details={"defect": exc.defect.value},
                    )
                )
                continue

            key = (
                override.customer_id,
                normalize_service_type(override.service_type),
                normalize_cleaning_type(override.cleaning_type),
            )
            if key in seen:
                result.add_error(
                    ValidationError(
                        error_type=ValidationErrorType.DUPLICATE_OVERRIDE,
                        message=(
                            f"Customer {override.customer_id} already has an override "
                            f"for {override.service_type}"
                            f"/{override.cleaning_type or 'all cleaning types'} "
                            f"({seen[key].id})"
                        ),
                        rule_id=override.id,
                        details={"conflicts_with": seen[key].id},
                    )
                )
                continue
            seen[key] = override

        return result

    def _validate_single_active(
        self,
        rules: list[SchedulingRule],
        rule_type: RuleType,
        error_type: ValidationErrorType,
        result: ValidationResult,
    ) -> None:
        """Check that at most one rule of a type is active."""
        active = [r for r in rules if r.rule_type is rule_type and r.is_active]
        if len(active) > 1:
            ids = [r.id for r in active]
            result.add_error(
                ValidationError(
                    error_type=error_type,
                    message=(
                        f"{len(active)} active {rule_type.value} rules; "
                        f"only one is used ({', '.join(ids)})"
                    ),
                    details={"rule_ids": ids},
                )
            )
