"""Tests for customer rate resolution."""

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from bookingquote.domain.errors import RuleStoreUnavailable
from bookingquote.domain.models import PricingOverride
from bookingquote.pricing.rate_resolver import RateResolver, select_override
from bookingquote.rules.sources import InMemoryRuleSource, RuleSource
from bookingquote.rules.store import RuleStore

BASE = Decimal("20")


def _override(override_id, service, rate, cleaning=None, customer="42", updated=None):
    return PricingOverride(
        id=override_id,
        customer_id=customer,
        service_type=service,
        cleaning_type=cleaning,
        override_rate=Decimal(rate),
        updated_at=updated,
    )


class CountingSource(InMemoryRuleSource):
    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.override_calls = 0

    def fetch_overrides(self, customer_id=None, timeout=None):
        self.override_calls += 1
        return super().fetch_overrides(customer_id=customer_id, timeout=timeout)


class TestSelectOverride:
    """Tests for picking the applicable override."""

    def test_specific_beats_service_wide(self):
        overrides = [
            _override("wide", "domestic", "-1"),
            _override("deep", "domestic", "5", cleaning="deep_cleaning"),
        ]
        chosen = select_override(overrides, "domestic", "deep_cleaning")
        assert chosen.id == "deep"

    def test_service_wide_used_when_no_specific_match(self):
        overrides = [
            _override("wide", "domestic", "-1"),
            _override("light", "domestic", "5", cleaning="light_cleaning"),
        ]
        chosen = select_override(overrides, "domestic", "deep_cleaning")
        assert chosen.id == "wide"

    def test_specific_override_ignored_without_cleaning_type(self):
        overrides = [_override("deep", "domestic", "5", cleaning="deep_cleaning")]
        assert select_override(overrides, "domestic", None) is None

    def test_other_service_never_matches(self):
        overrides = [_override("office", "office-cleaning", "-5")]
        assert select_override(overrides, "domestic", None) is None

    def test_airbnb_service_names_are_one_family(self):
        overrides = [_override("bnb", "airbnb-cleaning", "-3")]
        assert select_override(overrides, "Airbnb Cleaning", None).id == "bnb"
        assert select_override(overrides, "airbnb", "deep").id == "bnb"

    def test_cleaning_type_synonyms_match(self):
        overrides = [_override("cio", "airbnb", "4", cleaning="checkin-checkout")]
        chosen = select_override(overrides, "airbnb", "check_in_check_out")
        assert chosen.id == "cio"

    def test_most_recently_updated_wins_ties(self):
        overrides = [
            _override("old", "domestic", "1",
                      updated=datetime(2024, 1, 1, tzinfo=timezone.utc)),
            _override("new", "domestic", "2",
                      updated=datetime(2024, 5, 1, tzinfo=timezone.utc)),
            _override("undated", "domestic", "3"),
        ]
        assert select_override(overrides, "domestic", None).id == "new"

    def test_source_order_breaks_remaining_ties(self):
        overrides = [
            _override("first", "domestic", "1"),
            _override("second", "domestic", "2"),
        ]
        assert select_override(overrides, "domestic", None).id == "first"


class TestRateResolver:
    """Tests for RateResolver."""

    def _resolver(self, overrides):
        return RateResolver(RuleStore(InMemoryRuleSource(overrides=overrides)))

    def test_no_override_returns_base_rate(self):
        resolution = self._resolver([]).resolve("42", "domestic", None, BASE)
        assert resolution.rate == BASE
        assert resolution.override_applied is False
        assert resolution.override is None

    def test_service_wide_override_applies_to_any_cleaning_type(self):
        """A service-wide -3 on airbnb-cleaning discounts a deep clean."""
        resolver = self._resolver([
            {"id": "o1", "customer_id": "42", "service_type": "airbnb-cleaning",
             "cleaning_type": None, "override_rate": -3},
        ])
        resolution = resolver.resolve("42", "airbnb-cleaning", "deep", BASE)
        assert resolution.rate == Decimal("17")
        assert resolution.override_applied is True
        assert resolution.override.id == "o1"

    def test_other_customers_overrides_ignored(self):
        resolver = self._resolver([
            {"id": "o1", "customer_id": "7", "service_type": "domestic",
             "override_rate": -3},
        ])
        assert resolver.resolve("42", "domestic", None, BASE).rate == BASE

    def test_rate_is_clamped_at_zero(self):
        resolver = self._resolver([
            {"id": "o1", "customer_id": "42", "service_type": "domestic",
             "override_rate": -50},
        ])
        resolution = resolver.resolve("42", "domestic", None, BASE)
        assert resolution.rate == Decimal("0")
        assert resolution.override_applied is True

    def test_single_store_call(self):
        source = CountingSource(overrides=[])
        RateResolver(RuleStore(source)).resolve("42", "domestic", None, BASE)
        assert source.override_calls == 1

    def test_store_failure_propagates(self):
        class DownSource(RuleSource):
            def fetch_rules(self, rule_type, active_only=True, timeout=None):
                raise ConnectionError("down")

            def fetch_overrides(self, customer_id=None, timeout=None):
                raise ConnectionError("down")

        resolver = RateResolver(RuleStore(DownSource()))
        with pytest.raises(RuleStoreUnavailable):
            resolver.resolve("42", "domestic", None, BASE)
