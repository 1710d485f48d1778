"""Policy definitions for applying price modifiers.

Policies decide how a single modifier turns into a pound amount. They are
kept separate from the evaluator so the compounding behaviour can be tested
and swapped independently.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal

from bookingquote.domain.models import PriceModifier

HUNDRED = Decimal("100")


class ModifierPolicy(ABC):
    """Abstract base class for modifier compounding policies."""

    @abstractmethod
    def adjustment(
        self,
        modifier: PriceModifier,
        running_total: Decimal,
        base_price: Decimal,
    ) -> Decimal:
        """Get the pound amount a modifier adds to the price.

        Args:
            modifier: The modifier being applied.
            running_total: Price after every modifier applied so far.
            base_price: Price before any modifier was applied.

        Returns:
            Signed amount to add to the running total.
        """
        pass


@dataclass
class SequentialModifierPolicy(ModifierPolicy):
    """Percentages compound on the running total.

    Two +10% modifiers on £100 give 100 -> 110 -> 121.
    """

    def adjustment(
        self,
        modifier: PriceModifier,
        running_total: Decimal,
        base_price: Decimal,
    ) -> Decimal:
        if modifier.is_percentage:
            return running_total * modifier.amount / HUNDRED
        return modifier.amount


@dataclass
class SimultaneousModifierPolicy(ModifierPolicy):
    """Percentages are all taken from the original base price.

    Two +10% modifiers on £100 give 100 + 10 + 10 = 120.
    """

    def adjustment(
        self,
        modifier: PriceModifier,
        running_total: Decimal,
        base_price: Decimal,
    ) -> Decimal:
        if modifier.is_percentage:
            return base_price * modifier.amount / HUNDRED
        return modifier.amount


MODIFIER_POLICIES: dict[str, type] = {
    "sequential": SequentialModifierPolicy,
    "simultaneous": SimultaneousModifierPolicy,
}


def modifier_policy_for(name: str) -> ModifierPolicy:
    """Create a modifier policy by name (``sequential`` or ``simultaneous``)."""
    try:
        return MODIFIER_POLICIES[name]()
    except KeyError:
        raise ValueError(
            f"Unknown modifier policy {name!r}; "
            f"expected one of {', '.join(sorted(MODIFIER_POLICIES))}"
        ) from None
