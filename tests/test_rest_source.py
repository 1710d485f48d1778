"""Tests for the HTTP rule source."""

import httpx
import pytest

from bookingquote.domain.errors import RuleStoreUnavailable
from bookingquote.domain.models import RuleType
from bookingquote.rules.rest_source import RestRuleSource
from bookingquote.rules.store import RuleStore
from bookingquote.settings import RuleSourceSettings

RULE_ROWS = [
    {"id": 1, "rule_type": "time_slot", "start_time": "07:00:00", "end_time": "12:00:00",
     "price_modifier": None, "modifier_type": None, "is_active": True, "display_order": 0,
     "label": "Morning", "day_of_week": None},
]
OVERRIDE_ROWS = [
    {"id": "9f0c", "customer_id": 42, "service_type": "airbnb-cleaning",
     "cleaning_type": None, "override_rate": "-3.00",
     "updated_at": "2024-05-01T09:00:00+00:00"},
]


def make_source(handler, **kwargs):
    return RestRuleSource(
        base_url="https://project.example.co/",
        api_key="secret-key",
        transport=httpx.MockTransport(handler),
        **kwargs,
    )


class TestRestRuleSource:
    """Tests for RestRuleSource requests and responses."""

    def test_fetch_rules_request(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=RULE_ROWS)

        with make_source(handler) as source:
            rows = source.fetch_rules(RuleType.TIME_SLOT)

        assert rows == RULE_ROWS
        request = seen[0]
        assert request.url.path == "/rest/v1/scheduling_rules"
        assert request.url.params["rule_type"] == "eq.time_slot"
        assert request.url.params["is_active"] == "eq.true"
        assert request.url.params["order"] == "display_order.asc"
        assert request.headers["apikey"] == "secret-key"
        assert request.headers["authorization"] == "Bearer secret-key"

    def test_fetch_rules_including_inactive(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json=[])

        with make_source(handler) as source:
            source.fetch_rules(RuleType.CUTOFF_TIME, active_only=False)

        assert "is_active" not in seen[0].url.params

    def test_fetch_overrides_for_customer(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json=OVERRIDE_ROWS)

        with make_source(handler, overrides_table="overrides") as source:
            rows = source.fetch_overrides("42")

        assert rows == OVERRIDE_ROWS
        assert seen[0].url.path == "/rest/v1/overrides"
        assert seen[0].url.params["customer_id"] == "eq.42"
        assert seen[0].url.params["order"] == "updated_at.desc"

    def test_fetch_all_overrides(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json=[])

        with make_source(handler) as source:
            source.fetch_overrides()

        assert "customer_id" not in seen[0].url.params

    def test_timeout_is_sent_with_request(self):
        seen = []

        def handler(request):
            seen.append(request.extensions["timeout"])
            return httpx.Response(200, json=[])

        with make_source(handler, default_timeout=5.0) as source:
            source.fetch_rules(RuleType.TIME_SLOT, timeout=1.5)
            source.fetch_rules(RuleType.TIME_SLOT)

        assert seen[0]["read"] == 1.5
        assert seen[1]["read"] == 5.0

    def test_non_list_payload_raises(self):
        def handler(request):
            return httpx.Response(200, json={"message": "not a table"})

        with make_source(handler) as source:
            with pytest.raises(ValueError, match="Expected a JSON array"):
                source.fetch_rules(RuleType.TIME_SLOT)


class TestRestSourceThroughStore:
    """Backend failures surface as RuleStoreUnavailable."""

    def test_rows_are_parsed(self):
        def handler(request):
            if request.url.path.endswith("scheduling_rules"):
                return httpx.Response(200, json=RULE_ROWS)
            return httpx.Response(200, json=OVERRIDE_ROWS)

        with make_source(handler) as source:
            store = RuleStore(source)
            slots = store.list_rules(RuleType.TIME_SLOT)
            overrides = store.list_overrides("42")

        assert [s.id for s in slots] == ["1"]
        assert overrides[0].customer_id == "42"
        assert overrides[0].updated_at is not None

    def test_server_error(self):
        def handler(request):
            return httpx.Response(500, json={"message": "boom"})

        with make_source(handler) as source:
            with pytest.raises(RuleStoreUnavailable) as exc_info:
                RuleStore(source).list_rules(RuleType.TIME_SLOT)

        assert isinstance(exc_info.value.__cause__, httpx.HTTPStatusError)

    def test_timeout(self):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        with make_source(handler) as source:
            with pytest.raises(RuleStoreUnavailable) as exc_info:
                RuleStore(source).list_overrides("42", timeout=0.5)

        assert isinstance(exc_info.value.__cause__, httpx.TimeoutException)

    def test_connection_error(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        with make_source(handler) as source:
            with pytest.raises(RuleStoreUnavailable):
                RuleStore(source).list_rules(RuleType.CUTOFF_TIME)


class TestFromSettings:
    """Tests for building a source from settings."""

    def test_unconfigured_settings_raise(self):
        settings = RuleSourceSettings(rest_url=None, api_key=None)
        with pytest.raises(ValueError, match="BOOKINGQUOTE_REST_URL"):
            RestRuleSource.from_settings(settings)

    def test_configured_settings(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json=[])

        settings = RuleSourceSettings(
            rest_url="https://project.example.co/",
            api_key="k",
            rules_table="rules",
            timeout_seconds=2.0,
        )
        with RestRuleSource.from_settings(settings, transport=httpx.MockTransport(handler)) as source:
            source.fetch_rules(RuleType.TIME_SLOT)
            assert source.default_timeout == 2.0

        assert seen[0].url.path == "/rest/v1/rules"

    def test_settings_from_environment(self, monkeypatch):
        monkeypatch.setenv("BOOKINGQUOTE_REST_URL", "https://env.example.co/")
        monkeypatch.setenv("BOOKINGQUOTE_API_KEY", "env-key")
        monkeypatch.setenv("BOOKINGQUOTE_TIMEOUT_SECONDS", "3")

        settings = RuleSourceSettings(_env_file=None)

        assert settings.rest_url == "https://env.example.co"
        assert settings.api_key == "env-key"
        assert settings.timeout_seconds == 3.0
        assert settings.is_configured is True
