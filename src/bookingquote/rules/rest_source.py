"""HTTP rule source for a PostgREST-style backend.

Reads the ``scheduling_rules`` and ``customer_pricing_overrides`` tables
through the REST interface exposed by hosted Postgres backends such as
Supabase. Transport errors, timeouts and non-2xx responses are raised as
httpx exceptions; the rule store converts them into ``RuleStoreUnavailable``.
"""

import logging
from collections.abc import Mapping
from typing import Optional

import httpx

from bookingquote.domain.models import RuleType
from bookingquote.rules.sources import RuleSource
from bookingquote.settings import RuleSourceSettings

logger = logging.getLogger(__name__)

REST_PREFIX = "/rest/v1"


class RestRuleSource(RuleSource):
    """Fetches rule rows over HTTP.

    Args:
        base_url: Backend URL, e.g. ``https://project.supabase.co``.
        api_key: Key sent as both ``apikey`` and bearer token.
        rules_table: Table holding scheduling rules.
        overrides_table: Table holding customer pricing overrides.
        default_timeout: Seconds to wait when the caller gives no timeout.
        transport: Optional httpx transport (used by tests).
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        rules_table: str = "scheduling_rules",
        overrides_table: str = "customer_pricing_overrides",
        default_timeout: float = 5.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.rules_table = rules_table
        self.overrides_table = overrides_table
        self.default_timeout = default_timeout
        self._client = httpx.Client(
            base_url=base_url.rstrip("/") + REST_PREFIX,
            headers={
                "apikey": api_key,
                "Authorization": f"Bearer {api_key}",
                "Accept": "application/json",
            },
            timeout=default_timeout,
            transport=transport,
        )

    @classmethod
    def from_settings(
        cls,
        settings: Optional[RuleSourceSettings] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> "RestRuleSource":
        """Build a source from environment settings."""
        settings = settings or RuleSourceSettings()
        if not settings.is_configured:
            raise ValueError(
                "BOOKINGQUOTE_REST_URL and BOOKINGQUOTE_API_KEY must be set "
                "to use the REST rule source"
            )
        return cls(
            base_url=settings.rest_url,
            api_key=settings.api_key,
            rules_table=settings.rules_table,
            overrides_table=settings.overrides_table,
            default_timeout=settings.timeout_seconds,
            transport=transport,
        )

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "RestRuleSource":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def fetch_rules(
        self,
        rule_type: RuleType,
        active_only: bool = True,
        timeout: Optional[float] = None,
    ) -> list[Mapping]:
        params = {
            "select": "*",
            "rule_type": f"eq.{rule_type.value}",
            "order": "display_order.asc",
        }
        if active_only:
            params["is_active"] = "eq.true"
        return self._get(self.rules_table, params, timeout)

    def fetch_overrides(
        self,
        customer_id: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> list[Mapping]:
        params = {"select": "*", "order": "updated_at.desc"}
        if customer_id is not None:
            params["customer_id"] = f"eq.{customer_id}"
        return self._get(self.overrides_table, params, timeout)

    def _get(self, table: str, params: dict, timeout: Optional[float]) -> list[Mapping]:
        response = self._client.get(
            f"/{table}",
            params=params,
            timeout=timeout if timeout is not None else self.default_timeout,
        )
        response.raise_for_status()
        payload = response.json()
        if not isinstance(payload, list):
            raise ValueError(f"Expected a JSON array from {table}, got {type(payload).__name__}")
        logger.debug(
            "rule_source_fetch",
            extra={"extra": {"table": table, "rows": len(payload)}},
        )
        return payload
