"""Schedule and price evaluator.

This module provides the high-level QuoteEvaluator that decides whether a
candidate booking can be made and what it costs, by combining the time-slot
and cutoff rules with the customer's hourly rate and the pricing modifiers.
"""

import logging
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from bookingquote.domain.errors import InvalidDuration, RejectionReason
from bookingquote.domain.models import (
    BookingQuote,
    CutoffTimeRule,
    OvertimeWindowRule,
    PriceAdjustment,
    QuoteRequest,
    RuleType,
    SchedulingRule,
)
from bookingquote.domain.policies import ModifierPolicy, modifier_policy_for
from bookingquote.pricing.rate_resolver import RateResolver
from bookingquote.rules.store import RuleStore

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


@dataclass
class QuoteConfig:
    """Configuration for quote evaluation.

    Attributes:
        price_places: Decimal places prices are rounded to.
        rounding: Decimal rounding mode used for prices.
        default_timeout_seconds: Rule store timeout when the caller gives none.
        modifier_policy: ``sequential`` (percentages compound on the running
            total) or ``simultaneous`` (percentages taken from the base price).
    """

    price_places: int = 2
    rounding: str = ROUND_HALF_UP
    default_timeout_seconds: Optional[float] = None
    modifier_policy: str = "sequential"

    @property
    def quantum(self) -> Decimal:
        return Decimal(1).scaleb(-self.price_places)

    def round_price(self, amount: Decimal) -> Decimal:
        return amount.quantize(self.quantum, rounding=self.rounding)


class QuoteEvaluator:
    """Prices candidate bookings and checks them against the schedule rules.

    Evaluation is a pure read-then-compute step: rules and overrides are read
    from the store on every call and nothing is written back, so one
    evaluator can serve concurrent requests.

    Example:
        >>> evaluator = QuoteEvaluator(RuleStore(source))
        >>> quote = evaluator.evaluate(QuoteRequest(
        ...     customer_id="42",
        ...     service_type="domestic-cleaning",
        ...     booking_date=date(2024, 6, 1),
        ...     start_time=time(9, 0),
        ...     duration_hours=Decimal("3"),
        ...     base_hourly_rate=Decimal("20"),
        ... ))
        >>> quote.final_price
        Decimal('60.00')
    """

    def __init__(
        self,
        store: RuleStore,
        resolver: Optional[RateResolver] = None,
        modifier_policy: Optional[ModifierPolicy] = None,
        config: Optional[QuoteConfig] = None,
    ):
        """Initialize the evaluator.

        Args:
            store: Rule store to read scheduling rules from.
            resolver: Rate resolver; defaults to one over the same store.
            modifier_policy: Compounding policy; defaults to the one named in
                the config.
            config: Evaluation settings.
        """
        self.store = store
        self.config = config or QuoteConfig()
        self.resolver = resolver or RateResolver(store)
        self.modifier_policy = modifier_policy or modifier_policy_for(
            self.config.modifier_policy
        )

    def evaluate(
        self,
        request: QuoteRequest,
        timeout: Optional[float] = None,
    ) -> BookingQuote:
        """Evaluate a booking request.

        Args:
            request: The candidate booking.
            timeout: Seconds to wait on each rule store read.

        Returns:
            A quote. Bookings outside the configured time slots come back
            with ``is_bookable=False`` and a rejection reason rather than
            raising.

        Raises:
            InvalidDuration: If the duration is zero or negative.
            RuleStoreUnavailable: If rules or overrides cannot be read.
        """
        # NaN cannot be compared and Infinity cannot be rounded to pence
        if not request.duration_hours.is_finite() or request.duration_hours <= 0:
            raise InvalidDuration(request.duration_hours)

        if timeout is None:
            timeout = self.config.default_timeout_seconds

        start = request.start_minutes
        end = request.end_minutes

        # Step 1: slot validity and overtime
        is_overtime = self._is_overtime(end, timeout)

        if not self._start_is_available(start, timeout):
            logger.info(
                "quote_rejected",
                extra={
                    "extra": {
                        "customer_id": request.customer_id,
                        "reason": RejectionReason.OUTSIDE_AVAILABLE_HOURS.value,
                        "start_time": request.start_time.isoformat(timespec="minutes"),
                    }
                },
            )
            return BookingQuote(
                is_bookable=False,
                is_overtime=is_overtime,
                final_price=self.config.round_price(ZERO),
                rejection_reason=RejectionReason.OUTSIDE_AVAILABLE_HOURS,
            )

        # Step 2: base price
        resolution = self.resolver.resolve(
            request.customer_id,
            request.service_type,
            request.cleaning_type,
            request.base_hourly_rate,
            timeout=timeout,
        )
        base_price = resolution.rate * request.duration_hours

        # Step 3: modifiers, in fixed order
        applicable: list[SchedulingRule] = []
        applicable.extend(
            rule
            for rule in self.store.list_rules(RuleType.DAY_PRICING, timeout=timeout)
            if rule.day_of_week == request.day_of_week
        )
        applicable.extend(
            rule
            for rule in self.store.list_rules(RuleType.TIME_SURCHARGE, timeout=timeout)
            if rule.window.overlaps(start, end)
        )
        if is_overtime:
            overtime_rule = self._overtime_rule(timeout)
            if overtime_rule is not None:
                applicable.append(overtime_rule)

        running_total = base_price
        adjustments = []
        for rule in applicable:
            amount = self.modifier_policy.adjustment(rule.modifier, running_total, base_price)
            running_total += amount
            adjustments.append(
                PriceAdjustment(
                    rule_id=rule.id,
                    rule_type=rule.rule_type,
                    label=rule.label or rule.rule_type.value,
                    amount=self.config.round_price(amount),
                )
            )

        quote = BookingQuote(
            is_bookable=True,
            is_overtime=is_overtime,
            final_price=self.config.round_price(max(ZERO, running_total)),
            applied_rule_ids=[rule.id for rule in applicable],
            effective_hourly_rate=resolution.rate,
            override_applied=resolution.override_applied,
            base_price=self.config.round_price(base_price),
            adjustments=adjustments,
        )
        logger.debug(
            "quote_evaluated",
            extra={
                "extra": {
                    "customer_id": request.customer_id,
                    "final_price": str(quote.final_price),
                    "is_overtime": is_overtime,
                    "applied_rule_ids": quote.applied_rule_ids,
                }
            },
        )
        return quote

    def _start_is_available(self, start: int, timeout: Optional[float]) -> bool:
        """Check the start time against the configured time slots.

        With no time slots configured every start time is allowed.
        """
        time_slots = self.store.list_rules(RuleType.TIME_SLOT, timeout=timeout)
        if not time_slots:
            return True
        return any(slot.window.contains(start) for slot in time_slots)

    def _is_overtime(self, end: Decimal, timeout: Optional[float]) -> bool:
        """Check whether a booking ending at ``end`` runs past the cutoff."""
        cutoff = self._cutoff_rule(timeout)
        if cutoff is None:
            return False
        return end > cutoff.cutoff_minutes

    def _cutoff_rule(self, timeout: Optional[float]) -> Optional[CutoffTimeRule]:
        rules = self.store.list_rules(RuleType.CUTOFF_TIME, timeout=timeout)
        return self._first_of(rules, RuleType.CUTOFF_TIME)

    def _overtime_rule(self, timeout: Optional[float]) -> Optional[OvertimeWindowRule]:
        rules = self.store.list_rules(RuleType.OVERTIME_WINDOW, timeout=timeout)
        return self._first_of(rules, RuleType.OVERTIME_WINDOW)

    @staticmethod
    def _first_of(rules: list, rule_type: RuleType):
        """Pick the single meaningful rule of a one-per-system type.

        The store has already ordered rules by display order (ties by source
        order), so the first rule wins.
        """
        if not rules:
            return None
        if len(rules) > 1:
            logger.warning(
                "multiple_active_rules",
                extra={
                    "extra": {
                        "rule_type": rule_type.value,
                        "rule_ids": [r.id for r in rules],
                        "chosen": rules[0].id,
                    }
                },
            )
        return rules[0]
