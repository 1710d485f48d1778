"""Rule store: typed, ordered views over a rule source.

The store is the single I/O boundary of the engine. It asks its source for
raw rows, parses them into typed rules, drops rows that break their own
invariants (with a warning), and orders the result for evaluation.
"""

import logging
from typing import Optional

from bookingquote.domain.errors import MalformedRule, RuleStoreUnavailable
from bookingquote.domain.models import PricingOverride, RuleType, SchedulingRule
from bookingquote.rules.records import parse_override, parse_rule
from bookingquote.rules.sources import RuleSource

logger = logging.getLogger(__name__)


class RuleStore:
    """Provides active-only, display-ordered rules and overrides.

    The store keeps no rule data between calls; every call reads the source
    once. Any error raised by the source, including a timeout, is re-raised
    as ``RuleStoreUnavailable`` so that callers never mistake a backend
    failure for "no rules configured".

    Example:
        >>> store = RuleStore(InMemoryRuleSource(rules=rows))
        >>> slots = store.list_rules(RuleType.TIME_SLOT)
    """

    def __init__(self, source: RuleSource, timeout: Optional[float] = None):
        """Initialize the store.

        Args:
            source: Data collaborator supplying raw rows.
            timeout: Default seconds to wait for the source per call.
        """
        self.source = source
        self.timeout = timeout

    def list_rules(
        self,
        rule_type: RuleType,
        active_only: bool = True,
        timeout: Optional[float] = None,
    ) -> list[SchedulingRule]:
        """List rules of one type, ordered by display order.

        Ties in display order keep the order the source returned them in.

        Args:
            rule_type: Type of rule to list.
            active_only: If True (default), inactive rules are excluded.
            timeout: Seconds to wait for the source; overrides the store default.

        Returns:
            Typed rules; empty if none are configured.

        Raises:
            RuleStoreUnavailable: If the source cannot be read.
        """
        rows = self._read(
            f"list_rules({rule_type.value})",
            lambda t: self.source.fetch_rules(rule_type, active_only=active_only, timeout=t),
            timeout,
        )

        rules = []
        for row in rows:
            try:
                rule = parse_rule(row)
            except MalformedRule as exc:
                self._log_malformed(exc, "scheduling_rule")
                continue
            if rule.rule_type is not rule_type:
                # Source ignored the type filter; never let another type through.
                continue
            if active_only and not rule.is_active:
                continue
            rules.append(rule)

        # sorted() is stable, so equal display orders keep source order
        return sorted(rules, key=lambda r: r.display_order)

    def list_overrides(
        self,
        customer_id: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> list[PricingOverride]:
        """List pricing overrides.

        Args:
            customer_id: Customer to list overrides for. If omitted, every
                override is returned (administrative view).
            timeout: Seconds to wait for the source; overrides the store default.

        Returns:
            Overrides in source order.

        Raises:
            RuleStoreUnavailable: If the source cannot be read.
        """
        rows = self._read(
            "list_overrides",
            lambda t: self.source.fetch_overrides(customer_id=customer_id, timeout=t),
            timeout,
        )

        overrides = []
        for row in rows:
            try:
                override = parse_override(row)
            except MalformedRule as exc:
                self._log_malformed(exc, "pricing_override")
                continue
            if customer_id is not None and override.customer_id != str(customer_id):
                continue
            overrides.append(override)
        return overrides

    def _read(self, operation: str, fetch, timeout: Optional[float]) -> list:
        effective_timeout = timeout if timeout is not None else self.timeout
        try:
            rows = fetch(effective_timeout)
        except Exception as exc:
            logger.error(
                "rule_store_unavailable",
                extra={"extra": {"operation": operation, "error": repr(exc)}},
            )
            raise RuleStoreUnavailable(
                operation, f"Rule store unavailable during {operation}: {exc}"
            ) from exc
        if not isinstance(rows, list):
            raise RuleStoreUnavailable(
                operation,
                f"Rule source returned {type(rows).__name__} instead of a list during {operation}",
            )
        return rows

    @staticmethod
    def _log_malformed(exc: MalformedRule, kind: str) -> None:
        logger.warning(
            "malformed_rule_skipped",
            extra={
                "extra": {
                    "kind": kind,
                    "rule_id": exc.rule_id,
                    "defect": exc.defect.value,
                    "reason": str(exc),
                }
            },
        )
