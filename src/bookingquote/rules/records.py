"""Parsing of raw rule and override rows into typed domain objects.

The data collaborator hands back loosely-typed rows, one shape for every rule
type, with fields that only matter for some types. Rows are validated with
pydantic and then narrowed into the rule variant for their ``rule_type``.
Any row that cannot be narrowed raises ``MalformedRule``.
"""

from collections.abc import Mapping
from datetime import datetime, time
from decimal import Decimal
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from bookingquote.domain.errors import MalformedRule, RuleDefect
from bookingquote.domain.models import (
    CutoffTimeRule,
    DayPricingRule,
    ModifierType,
    OvertimeWindowRule,
    PriceModifier,
    PricingOverride,
    RuleType,
    SchedulingRule,
    TimeSlotRule,
    TimeSurchargeRule,
    TimeWindow,
    minutes_to_label,
    time_to_minutes,
)


def _coerce_id(value: Any) -> Any:
    # Backends hand out integer and UUID keys; the engine treats all ids as text.
    if value is not None and not isinstance(value, (str, bool)):
        return str(value)
    return value


def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str) and not value.strip():
        return None
    return value


class SchedulingRuleRecord(BaseModel):
    """A scheduling rule row as stored by the backend.

    Field names are snake_case as stored; camelCase keys are accepted too.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    id: str
    rule_type: str
    day_of_week: Optional[int] = Field(default=None, ge=0, le=6)
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    price_modifier: Decimal = Decimal("0")
    modifier_type: ModifierType = ModifierType.FIXED
    is_active: bool = True
    display_order: int = 0
    label: Optional[str] = None
    description: Optional[str] = None

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, value: Any) -> Any:
        return _coerce_id(value)

    @field_validator("start_time", "end_time", "label", "description", mode="before")
    @classmethod
    def blank_is_missing(cls, value: Any) -> Any:
        return _blank_to_none(value)

    @field_validator("price_modifier", mode="before")
    @classmethod
    def missing_modifier_is_zero(cls, value: Any) -> Any:
        return Decimal("0") if value is None else value

    @field_validator("modifier_type", mode="before")
    @classmethod
    def missing_modifier_type_is_fixed(cls, value: Any) -> Any:
        return ModifierType.FIXED if value is None else value

    def to_rule(self) -> SchedulingRule:
        """Narrow this row into the rule variant for its type.

        Raises:
            MalformedRule: If the row breaks the invariants of its type.
        """
        try:
            rule_type = RuleType(self.rule_type)
        except ValueError:
            raise MalformedRule(
                self.id,
                RuleDefect.UNKNOWN_RULE_TYPE,
                f"Unknown rule type {self.rule_type!r}",
            ) from None

        common = {
            "id": self.id,
            "label": self.label or "",
            "is_active": self.is_active,
            "display_order": self.display_order,
            "description": self.description,
        }

        if rule_type is RuleType.TIME_SLOT:
            return TimeSlotRule(window=self._window(), **common)

        if rule_type is RuleType.DAY_PRICING:
            if self.day_of_week is None:
                raise MalformedRule(
                    self.id,
                    RuleDefect.MISSING_DAY_OF_WEEK,
                    "Day pricing rule has no day of week",
                )
            return DayPricingRule(
                day_of_week=self.day_of_week,
                modifier=self._modifier(),
                **common,
            )

        if rule_type is RuleType.CUTOFF_TIME:
            if self.end_time is None:
                raise MalformedRule(
                    self.id,
                    RuleDefect.MISSING_END_TIME,
                    "Cutoff rule has no end time",
                )
            return CutoffTimeRule(cutoff_minutes=time_to_minutes(self.end_time), **common)

        if rule_type is RuleType.OVERTIME_WINDOW:
            return OvertimeWindowRule(
                window=self._window(),
                modifier=self._modifier(),
                **common,
            )

        return TimeSurchargeRule(
            window=self._window(),
            modifier=self._modifier(),
            **common,
        )

    def _window(self) -> TimeWindow:
        if self.start_time is None:
            raise MalformedRule(
                self.id,
                RuleDefect.MISSING_START_TIME,
                f"{self.rule_type} rule has no start time",
            )
        if self.end_time is None:
            raise MalformedRule(
                self.id,
                RuleDefect.MISSING_END_TIME,
                f"{self.rule_type} rule has no end time",
            )
        window = TimeWindow.from_times(self.start_time, self.end_time)
        if window.start_minutes >= window.end_minutes:
            raise MalformedRule(
                self.id,
                RuleDefect.WINDOW_NOT_ORDERED,
                (
                    f"Window {minutes_to_label(window.start_minutes)}-"
                    f"{minutes_to_label(window.end_minutes)} does not start before "
                    f"it ends (overnight windows are not supported)"
                ),
            )
        return window

    def _modifier(self) -> PriceModifier:
        return PriceModifier(amount=self.price_modifier, modifier_type=self.modifier_type)


class PricingOverrideRecord(BaseModel):
    """A customer pricing override row as stored by the backend."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    id: str
    customer_id: Optional[str] = None
    service_type: Optional[str] = None
    cleaning_type: Optional[str] = None
    override_rate: Decimal
    updated_at: Optional[datetime] = None

    @field_validator("id", "customer_id", mode="before")
    @classmethod
    def coerce_ids(cls, value: Any) -> Any:
        return _coerce_id(value)

    @field_validator("customer_id", "service_type", "cleaning_type", mode="before")
    @classmethod
    def blank_is_missing(cls, value: Any) -> Any:
        return _blank_to_none(value)

    def to_override(self) -> PricingOverride:
        """Convert this row into a ``PricingOverride``.

        Raises:
            MalformedRule: If the customer or service type is missing.
        """
        if self.customer_id is None:
            raise MalformedRule(
                self.id,
                RuleDefect.MISSING_CUSTOMER,
                "Pricing override has no customer",
            )
        if self.service_type is None:
            raise MalformedRule(
                self.id,
                RuleDefect.MISSING_SERVICE_TYPE,
                "Pricing override has no service type",
            )
        return PricingOverride(
            id=self.id,
            customer_id=self.customer_id,
            service_type=self.service_type,
            cleaning_type=self.cleaning_type,
            override_rate=self.override_rate,
            updated_at=self.updated_at,
        )


def _row_id(row: Mapping) -> Optional[str]:
    value = row.get("id") if isinstance(row, Mapping) else None
    return None if value is None else str(value)


def _describe_validation_error(exc: ValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(p) for p in error.get("loc", ())) or "row"
        parts.append(f"{location}: {error.get('msg')}")
    return "; ".join(parts)


def parse_rule(row: Mapping) -> SchedulingRule:
    """Parse one raw scheduling rule row.

    Raises:
        MalformedRule: If the row is invalid for any reason.
    """
    try:
        record = SchedulingRuleRecord.model_validate(row)
    except ValidationError as exc:
        raise MalformedRule(
            _row_id(row), RuleDefect.INVALID_RECORD, _describe_validation_error(exc)
        ) from exc
    return record.to_rule()


def parse_override(row: Mapping) -> PricingOverride:
    """Parse one raw pricing override row.

    Raises:
        MalformedRule: If the row is invalid for any reason.
    """
    try:
        record = PricingOverrideRecord.model_validate(row)
    except ValidationError as exc:
        raise MalformedRule(
            _row_id(row), RuleDefect.INVALID_RECORD, _describe_validation_error(exc)
        ) from exc
    return record.to_override()
