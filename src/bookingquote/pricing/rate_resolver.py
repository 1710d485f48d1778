"""Rate resolver for customer-specific hourly rates.

Picks the pricing override that applies to a booking, if any, and folds it
into the base hourly rate.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from bookingquote.domain.keys import normalize_cleaning_type, normalize_service_type
from bookingquote.domain.models import PricingOverride
from bookingquote.rules.store import RuleStore

ZERO = Decimal("0")


@dataclass(frozen=True)
class RateResolution:
    """The hourly rate for a booking and where it came from.

    Attributes:
        rate: Effective hourly rate in pounds, never negative.
        override_applied: Whether a customer override changed the rate.
        override: The override used, if any.
    """

    rate: Decimal
    override_applied: bool = False
    override: Optional[PricingOverride] = None


def _recency_key(indexed: tuple[int, PricingOverride]) -> tuple:
    # Most recently updated first; rows without a timestamp after those with
    # one; then source order.
    index, override = indexed
    updated = override.updated_at
    if updated is None:
        return (1, 0.0, index)
    return (0, -_timestamp(updated), index)


def _timestamp(value: datetime) -> float:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.timestamp()


def select_override(
    overrides: list[PricingOverride],
    service_type: str,
    cleaning_type: Optional[str],
) -> Optional[PricingOverride]:
    """Choose the override for a service and cleaning type.

    An override for the exact cleaning type beats a service-wide one
    (``cleaning_type`` of None). Ties go to the most recently updated
    override.

    Args:
        overrides: Candidate overrides, all for the same customer.
        service_type: Service of the booking.
        cleaning_type: Cleaning type of the booking, if any.

    Returns:
        The winning override, or None if nothing matches.
    """
    service_key = normalize_service_type(service_type)
    cleaning_key = normalize_cleaning_type(cleaning_type)
    if service_key is None:
        return None

    specific = []
    service_wide = []
    for index, override in enumerate(overrides):
        if normalize_service_type(override.service_type) != service_key:
            continue
        if override.is_service_wide:
            service_wide.append((index, override))
        elif cleaning_key is not None and (
            normalize_cleaning_type(override.cleaning_type) == cleaning_key
        ):
            specific.append((index, override))

    for candidates in (specific, service_wide):
        if candidates:
            return min(candidates, key=_recency_key)[1]
    return None


class RateResolver:
    """Resolves the effective hourly rate for a customer booking.

    Example:
        >>> resolver = RateResolver(store)
        >>> resolution = resolver.resolve("42", "airbnb-cleaning", "deep", Decimal("20"))
        >>> resolution.rate
        Decimal('17')
    """

    def __init__(self, store: RuleStore):
        self.store = store

    def resolve(
        self,
        customer_id: str,
        service_type: str,
        cleaning_type: Optional[str],
        base_rate: Decimal,
        timeout: Optional[float] = None,
    ) -> RateResolution:
        """Resolve the hourly rate for a booking.

        Makes exactly one store call. The base rate is not validated; a
        resolved rate is clamped at zero so large discounts never produce a
        negative rate.

        Raises:
            RuleStoreUnavailable: If overrides cannot be read.
        """
        overrides = self.store.list_overrides(customer_id, timeout=timeout)
        override = select_override(overrides, service_type, cleaning_type)
        if override is None:
            return RateResolution(rate=base_rate)
        return RateResolution(
            rate=max(ZERO, base_rate + override.override_rate),
            override_applied=True,
            override=override,
        )
