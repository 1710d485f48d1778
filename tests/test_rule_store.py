"""Tests for the rule store."""

import logging

import pytest

from bookingquote.domain.errors import RuleStoreUnavailable
from bookingquote.domain.models import RuleType
from bookingquote.rules.sources import InMemoryRuleSource, RuleSource
from bookingquote.rules.store import RuleStore


class FailingSource(RuleSource):
    """A source whose backend is down."""

    def __init__(self, exc: Exception):
        self.exc = exc

    def fetch_rules(self, rule_type, active_only=True, timeout=None):
        raise self.exc

    def fetch_overrides(self, customer_id=None, timeout=None):
        raise self.exc


class RecordingSource(InMemoryRuleSource):
    """An in-memory source that records the arguments of each call."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.calls = []

    def fetch_rules(self, rule_type, active_only=True, timeout=None):
        self.calls.append(("fetch_rules", rule_type, active_only, timeout))
        return super().fetch_rules(rule_type, active_only=active_only, timeout=timeout)

    def fetch_overrides(self, customer_id=None, timeout=None):
        self.calls.append(("fetch_overrides", customer_id, timeout))
        return super().fetch_overrides(customer_id=customer_id, timeout=timeout)


class LeakySource(InMemoryRuleSource):
    """A source that ignores every filter it is given."""

    def fetch_rules(self, rule_type, active_only=True, timeout=None):
        return [dict(row) for row in self._rules]


def _slot(rule_id, start, end, order=0, active=True):
    return {
        "id": rule_id,
        "rule_type": "time_slot",
        "start_time": start,
        "end_time": end,
        "display_order": order,
        "is_active": active,
    }


class TestListRules:
    """Tests for RuleStore.list_rules."""

    def test_ordered_by_display_order(self):
        source = InMemoryRuleSource(rules=[
            _slot("c", "12:00", "13:00", order=2),
            _slot("a", "07:00", "08:00", order=0),
            _slot("b", "09:00", "10:00", order=1),
        ])
        rules = RuleStore(source).list_rules(RuleType.TIME_SLOT)
        assert [r.id for r in rules] == ["a", "b", "c"]

    def test_equal_display_order_keeps_source_order(self):
        source = InMemoryRuleSource(rules=[
            _slot("second", "12:00", "13:00", order=1),
            _slot("first", "07:00", "08:00", order=1),
            _slot("zero", "09:00", "10:00", order=0),
        ])
        rules = RuleStore(source).list_rules(RuleType.TIME_SLOT)
        assert [r.id for r in rules] == ["zero", "second", "first"]

    def test_inactive_rules_excluded(self):
        source = InMemoryRuleSource(rules=[
            _slot("on", "07:00", "08:00"),
            _slot("off", "09:00", "10:00", active=False),
        ])
        rules = RuleStore(source).list_rules(RuleType.TIME_SLOT)
        assert [r.id for r in rules] == ["on"]

    def test_inactive_rules_listed_when_requested(self):
        source = InMemoryRuleSource(rules=[
            _slot("on", "07:00", "08:00"),
            _slot("off", "09:00", "10:00", active=False),
        ])
        rules = RuleStore(source).list_rules(RuleType.TIME_SLOT, active_only=False)
        assert {r.id for r in rules} == {"on", "off"}

    def test_filters_even_when_source_does_not(self):
        """Other types and inactive rows never leak through the store."""
        source = LeakySource(rules=[
            _slot("on", "07:00", "08:00"),
            _slot("off", "09:00", "10:00", active=False),
            {"id": "cut", "rule_type": "cutoff_time", "end_time": "18:00"},
        ])
        rules = RuleStore(source).list_rules(RuleType.TIME_SLOT)
        assert [r.id for r in rules] == ["on"]

    def test_no_rules_is_empty_list(self):
        assert RuleStore(InMemoryRuleSource()).list_rules(RuleType.CUTOFF_TIME) == []

    def test_malformed_rows_are_skipped_with_warning(self, caplog):
        source = InMemoryRuleSource(rules=[
            _slot("good", "07:00", "08:00"),
            _slot("overnight", "22:00", "02:00"),
            {"id": "no-start", "rule_type": "time_slot", "end_time": "10:00"},
        ])
        with caplog.at_level(logging.WARNING, logger="bookingquote.rules.store"):
            rules = RuleStore(source).list_rules(RuleType.TIME_SLOT)

        assert [r.id for r in rules] == ["good"]
        skipped = [r for r in caplog.records if r.getMessage() == "malformed_rule_skipped"]
        assert len(skipped) == 2
        assert skipped[0].extra["rule_id"] == "overnight"
        assert skipped[0].extra["defect"] == "window_not_ordered"

    def test_timeout_passed_to_source(self):
        source = RecordingSource(rules=[_slot("a", "07:00", "08:00")])
        RuleStore(source).list_rules(RuleType.TIME_SLOT, timeout=1.5)
        assert source.calls == [("fetch_rules", RuleType.TIME_SLOT, True, 1.5)]

    def test_store_default_timeout_used(self):
        source = RecordingSource()
        RuleStore(source, timeout=3.0).list_rules(RuleType.CUTOFF_TIME)
        assert source.calls[0][3] == 3.0

    def test_source_failure_raises_unavailable(self, caplog):
        store = RuleStore(FailingSource(ConnectionError("connection refused")))
        with caplog.at_level(logging.ERROR, logger="bookingquote.rules.store"):
            with pytest.raises(RuleStoreUnavailable) as exc_info:
                store.list_rules(RuleType.TIME_SLOT)

        assert exc_info.value.operation == "list_rules(time_slot)"
        assert isinstance(exc_info.value.__cause__, ConnectionError)
        assert any(r.getMessage() == "rule_store_unavailable" for r in caplog.records)

    def test_timeout_raises_unavailable(self):
        store = RuleStore(FailingSource(TimeoutError("timed out")))
        with pytest.raises(RuleStoreUnavailable):
            store.list_rules(RuleType.CUTOFF_TIME, timeout=0.1)

    def test_non_list_result_raises_unavailable(self):
        class DictSource(InMemoryRuleSource):
            def fetch_rules(self, rule_type, active_only=True, timeout=None):
                return {"rows": []}

        with pytest.raises(RuleStoreUnavailable):
            RuleStore(DictSource()).list_rules(RuleType.TIME_SLOT)


class TestListOverrides:
    """Tests for RuleStore.list_overrides."""

    @pytest.fixture
    def source(self):
        return InMemoryRuleSource(overrides=[
            {"id": "o1", "customer_id": 1, "service_type": "domestic", "override_rate": 2},
            {"id": "o2", "customer_id": 2, "service_type": "domestic", "override_rate": -1},
            {"id": "bad", "customer_id": 1, "override_rate": 5},
        ])

    def test_for_one_customer(self, source):
        overrides = RuleStore(source).list_overrides("1")
        assert [o.id for o in overrides] == ["o1"]

    def test_all_customers(self, source):
        overrides = RuleStore(source).list_overrides()
        assert [o.id for o in overrides] == ["o1", "o2"]

    def test_source_failure_raises_unavailable(self):
        store = RuleStore(FailingSource(OSError("network down")))
        with pytest.raises(RuleStoreUnavailable) as exc_info:
            store.list_overrides("1")
        assert exc_info.value.operation == "list_overrides"
