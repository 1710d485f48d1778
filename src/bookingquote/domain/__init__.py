"""Domain models and business rules for pricing and scheduling."""

from bookingquote.domain.errors import (
    BookingQuoteError,
    InvalidDuration,
    MalformedRule,
    RejectionReason,
    RuleDefect,
    RuleStoreUnavailable,
)
from bookingquote.domain.models import (
    BookingQuote,
    CutoffTimeRule,
    DayPricingRule,
    ModifierType,
    OvertimeWindowRule,
    PriceAdjustment,
    PriceModifier,
    PricingOverride,
    QuoteRequest,
    RuleType,
    SchedulingRule,
    TimeSlotRule,
    TimeSurchargeRule,
    TimeWindow,
)
from bookingquote.domain.policies import (
    ModifierPolicy,
    SequentialModifierPolicy,
    SimultaneousModifierPolicy,
)

__all__ = [
    # Models
    "BookingQuote",
    "CutoffTimeRule",
    "DayPricingRule",
    "ModifierType",
    "OvertimeWindowRule",
    "PriceAdjustment",
    "PriceModifier",
    "PricingOverride",
    "QuoteRequest",
    "RuleType",
    "SchedulingRule",
    "TimeSlotRule",
    "TimeSurchargeRule",
    "TimeWindow",
    # Errors
    "BookingQuoteError",
    "InvalidDuration",
    "MalformedRule",
    "RejectionReason",
    "RuleDefect",
    "RuleStoreUnavailable",
    # Policies
    "ModifierPolicy",
    "SequentialModifierPolicy",
    "SimultaneousModifierPolicy",
]
