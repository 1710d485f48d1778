"""Domain models for the pricing and scheduling engine.

This module contains the core data structures used throughout the engine:
time windows, price modifiers, the typed scheduling rule variants, customer
pricing overrides, and the quote request/response pair.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from typing import ClassVar, Optional, Union

from bookingquote.domain.errors import RejectionReason

MINUTES_PER_DAY = 1440


class RuleType(Enum):
    """Kinds of scheduling rule an administrator can configure."""

    TIME_SLOT = "time_slot"  # Window in which bookings may start
    DAY_PRICING = "day_pricing"  # Modifier keyed to day of week
    CUTOFF_TIME = "cutoff_time"  # Latest standard finish time
    OVERTIME_WINDOW = "overtime_window"  # Modifier for bookings past cutoff
    TIME_SURCHARGE = "time_surcharge"  # Modifier keyed to time of day


class ModifierType(Enum):
    """How a price modifier amount is interpreted."""

    FIXED = "fixed"  # Amount in pounds
    PERCENTAGE = "percentage"  # Percent of the price it is applied to


def time_to_minutes(t: time) -> int:
    """Minutes from midnight for a time of day."""
    return t.hour * 60 + t.minute


def minutes_to_label(minutes: int) -> str:
    """Format minutes from midnight as HH:MM (hours may exceed 23)."""
    hours, mins = divmod(minutes, 60)
    return f"{hours:02d}:{mins:02d}"


def day_of_week_index(d: date) -> int:
    """Day-of-week index with Sunday as 0 and Saturday as 6."""
    return (d.weekday() + 1) % 7


@dataclass(frozen=True)
class TimeWindow:
    """A same-day, half-open window of time.

    Attributes:
        start_minutes: Minutes from midnight when the window opens (inclusive).
        end_minutes: Minutes from midnight when the window closes (exclusive).
    """

    start_minutes: int
    end_minutes: int

    @classmethod
    def from_times(cls, start: time, end: time) -> "TimeWindow":
        """Create a window from two times of day."""
        return cls(time_to_minutes(start), time_to_minutes(end))

    @property
    def duration_minutes(self) -> int:
        """Length of the window in minutes."""
        return self.end_minutes - self.start_minutes

    def contains(self, minute: int) -> bool:
        """Check if a minute-of-day falls within this window."""
        return self.start_minutes <= minute < self.end_minutes

    def overlaps(self, start_minutes: float, end_minutes: float) -> bool:
        """Check if an interval shares any time with this window."""
        return self.start_minutes < end_minutes and start_minutes < self.end_minutes

    def __repr__(self) -> str:
        return (
            f"TimeWindow({minutes_to_label(self.start_minutes)}-"
            f"{minutes_to_label(self.end_minutes)})"
        )


@dataclass(frozen=True)
class PriceModifier:
    """A signed price adjustment.

    Attributes:
        amount: Pounds for fixed modifiers, percent for percentage modifiers.
            Negative values are discounts.
        modifier_type: How ``amount`` is interpreted.
    """

    amount: Decimal
    modifier_type: ModifierType = ModifierType.FIXED

    @property
    def is_percentage(self) -> bool:
        return self.modifier_type is ModifierType.PERCENTAGE

    def describe(self) -> str:
        """Human-readable form, e.g. ``+15%`` or ``-£5.00``."""
        sign = "+" if self.amount >= 0 else "-"
        if self.is_percentage:
            return f"{sign}{abs(self.amount).normalize():f}%"
        return f"{sign}£{abs(self.amount):.2f}"


@dataclass(frozen=True)
class TimeSlotRule:
    """A window of the day during which bookings may start."""

    rule_type: ClassVar[RuleType] = RuleType.TIME_SLOT

    id: str
    window: TimeWindow
    label: str = ""
    is_active: bool = True
    display_order: int = 0
    description: Optional[str] = None


@dataclass(frozen=True)
class DayPricingRule:
    """A price modifier applied to bookings on one day of the week.

    Attributes:
        day_of_week: 0 (Sunday) to 6 (Saturday).
    """

    rule_type: ClassVar[RuleType] = RuleType.DAY_PRICING

    id: str
    day_of_week: int
    modifier: PriceModifier
    label: str = ""
    is_active: bool = True
    display_order: int = 0
    description: Optional[str] = None


@dataclass(frozen=True)
class CutoffTimeRule:
    """The latest standard finish time before overtime pricing applies."""

    rule_type: ClassVar[RuleType] = RuleType.CUTOFF_TIME

    id: str
    cutoff_minutes: int
    label: str = ""
    is_active: bool = True
    display_order: int = 0
    description: Optional[str] = None


@dataclass(frozen=True)
class OvertimeWindowRule:
    """The modifier applied when a booking finishes after the cutoff."""

    rule_type: ClassVar[RuleType] = RuleType.OVERTIME_WINDOW

    id: str
    window: TimeWindow
    modifier: PriceModifier
    label: str = ""
    is_active: bool = True
    display_order: int = 0
    description: Optional[str] = None


@dataclass(frozen=True)
class TimeSurchargeRule:
    """A price modifier for bookings that touch a time-of-day window."""

    rule_type: ClassVar[RuleType] = RuleType.TIME_SURCHARGE

    id: str
    window: TimeWindow
    modifier: PriceModifier
    label: str = ""
    is_active: bool = True
    display_order: int = 0
    description: Optional[str] = None


SchedulingRule = Union[
    TimeSlotRule,
    DayPricingRule,
    CutoffTimeRule,
    OvertimeWindowRule,
    TimeSurchargeRule,
]

RULE_CLASSES: dict[RuleType, type] = {
    RuleType.TIME_SLOT: TimeSlotRule,
    RuleType.DAY_PRICING: DayPricingRule,
    RuleType.CUTOFF_TIME: CutoffTimeRule,
    RuleType.OVERTIME_WINDOW: OvertimeWindowRule,
    RuleType.TIME_SURCHARGE: TimeSurchargeRule,
}


@dataclass(frozen=True)
class PricingOverride:
    """A customer-specific adjustment to the base hourly rate.

    Attributes:
        id: Unique identifier of the override.
        customer_id: Customer the override belongs to.
        service_type: Service the override applies to.
        cleaning_type: Cleaning type it applies to, or None for every
            cleaning type under the service.
        override_rate: Pounds per hour added to the base rate
            (negative = discount).
        updated_at: Last modification time, used to break ties.
    """

    id: str
    customer_id: str
    service_type: str
    override_rate: Decimal
    cleaning_type: Optional[str] = None
    updated_at: Optional[datetime] = None

    @property
    def is_service_wide(self) -> bool:
        return self.cleaning_type is None


@dataclass
class QuoteRequest:
    """A candidate booking to be priced and checked for availability.

    Attributes:
        customer_id: Customer making the booking.
        service_type: Service being booked (e.g. ``airbnb-cleaning``).
        cleaning_type: Cleaning type within the service, if any.
        booking_date: Calendar date of the booking.
        start_time: Time of day the booking starts.
        duration_hours: Length of the booking in hours.
        base_hourly_rate: Standard rate in pounds per hour before overrides.
    """

    customer_id: str
    service_type: str
    booking_date: date
    start_time: time
    duration_hours: Decimal
    base_hourly_rate: Decimal
    cleaning_type: Optional[str] = None

    def __post_init__(self):
        # Accept ints, floats and numeric strings; floats go through str()
        # so 2.5 becomes Decimal("2.5") rather than its binary expansion.
        if not isinstance(self.duration_hours, Decimal):
            self.duration_hours = Decimal(str(self.duration_hours))
        if not isinstance(self.base_hourly_rate, Decimal):
            self.base_hourly_rate = Decimal(str(self.base_hourly_rate))

    @property
    def start_minutes(self) -> int:
        """Minutes from midnight when the booking starts."""
        return time_to_minutes(self.start_time)

    @property
    def end_minutes(self) -> Decimal:
        """Minutes from midnight when the booking ends.

        Not wrapped at midnight: a booking running past 24:00 ends at a value
        above ``MINUTES_PER_DAY``.
        """
        return self.start_minutes + self.duration_hours * 60

    @property
    def day_of_week(self) -> int:
        """Day of week of the booking date (Sunday = 0)."""
        return day_of_week_index(self.booking_date)


@dataclass(frozen=True)
class PriceAdjustment:
    """One modifier's contribution to a quote.

    Attributes:
        rule_id: Rule that produced the adjustment.
        rule_type: Kind of rule.
        label: Display name of the rule.
        amount: Pounds added to the running total (negative = discount).
    """

    rule_id: str
    rule_type: RuleType
    label: str
    amount: Decimal

    @property
    def is_discount(self) -> bool:
        return self.amount < 0


@dataclass
class BookingQuote:
    """Result of evaluating a booking request.

    Attributes:
        is_bookable: Whether the booking may be made.
        is_overtime: Whether the booking finishes after the cutoff time.
        final_price: Price in pounds after all modifiers, never negative.
        applied_rule_ids: IDs of the pricing rules that changed the price,
            in application order.
        rejection_reason: Why the booking is not bookable, if it is not.
        effective_hourly_rate: Hourly rate after any customer override.
        override_applied: Whether a customer override was used.
        base_price: Effective rate multiplied by duration.
        adjustments: Breakdown of every applied modifier.
    """

    is_bookable: bool
    is_overtime: bool
    final_price: Decimal
    applied_rule_ids: list[str] = field(default_factory=list)
    rejection_reason: Optional[RejectionReason] = None
    effective_hourly_rate: Decimal = Decimal("0")
    override_applied: bool = False
    base_price: Decimal = Decimal("0")
    adjustments: list[PriceAdjustment] = field(default_factory=list)

    @property
    def total_surcharges(self) -> Decimal:
        """Sum of all positive adjustments."""
        return sum((a.amount for a in self.adjustments if a.amount > 0), Decimal("0"))

    @property
    def total_discounts(self) -> Decimal:
        """Sum of all negative adjustments, as a positive number."""
        return -sum((a.amount for a in self.adjustments if a.amount < 0), Decimal("0"))

    def to_dict(self) -> dict:
        """Plain-data form suitable for JSON responses."""
        return {
            "isBookable": self.is_bookable,
            "isOvertime": self.is_overtime,
            "finalPrice": str(self.final_price),
            "appliedRuleIds": list(self.applied_rule_ids),
            "rejectionReason": (
                self.rejection_reason.value if self.rejection_reason else None
            ),
            "effectiveHourlyRate": str(self.effective_hourly_rate),
            "overrideApplied": self.override_applied,
            "basePrice": str(self.base_price),
            "adjustments": [
                {
                    "ruleId": a.rule_id,
                    "ruleType": a.rule_type.value,
                    "label": a.label,
                    "amount": str(a.amount),
                }
                for a in self.adjustments
            ],
        }

