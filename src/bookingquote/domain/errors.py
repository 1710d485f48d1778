"""Error taxonomy for quote evaluation.

Exceptions abort an evaluation (``InvalidDuration``, ``RuleStoreUnavailable``)
or are recovered locally by the rule store (``MalformedRule``). A booking that
falls outside the configured hours is not an exception: it is reported on the
quote through ``RejectionReason``.
"""

from decimal import Decimal
from enum import Enum
from typing import Optional


class RejectionReason(Enum):
    """Why a quote is not bookable."""

    OUTSIDE_AVAILABLE_HOURS = "outside_available_hours"


class RuleDefect(Enum):
    """Ways a stored rule or override row can break its own invariants."""

    INVALID_RECORD = "invalid_record"  # Row failed type/shape validation
    UNKNOWN_RULE_TYPE = "unknown_rule_type"
    MISSING_START_TIME = "missing_start_time"
    MISSING_END_TIME = "missing_end_time"
    WINDOW_NOT_ORDERED = "window_not_ordered"  # start >= end (overnight or empty)
    MISSING_DAY_OF_WEEK = "missing_day_of_week"
    MISSING_SERVICE_TYPE = "missing_service_type"
    MISSING_CUSTOMER = "missing_customer"


class BookingQuoteError(Exception):
    """Base class for all engine errors."""


class InvalidDuration(BookingQuoteError, ValueError):
    """Raised when a booking duration is not a finite number above zero."""

    def __init__(self, duration_hours: Decimal):
        self.duration_hours = duration_hours
        super().__init__(
            f"Booking duration must be a finite number greater than zero "
            f"(got {duration_hours} hours)"
        )


class RuleStoreUnavailable(BookingQuoteError):
    """Raised when the rule data collaborator cannot be read.

    Evaluation fails closed: no price is produced when this is raised.
    """

    def __init__(self, operation: str, message: Optional[str] = None):
        self.operation = operation
        super().__init__(message or f"Rule store unavailable during {operation}")


class MalformedRule(BookingQuoteError, ValueError):
    """A stored rule or override fails its own invariants.

    Attributes:
        rule_id: Identifier of the offending row, if it had one.
        defect: Which invariant was broken.
    """

    def __init__(self, rule_id: Optional[str], defect: RuleDefect, message: str):
        self.rule_id = rule_id
        self.defect = defect
        super().__init__(message)

    def __str__(self) -> str:
        prefix = f"[{self.defect.value}]"
        if self.rule_id:
            prefix += f" Rule {self.rule_id}:"
        return f"{prefix} {self.args[0]}"
