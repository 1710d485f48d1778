"""Data collaborators that supply raw rule and override rows.

A ``RuleSource`` is the engine's only view of the backend. Each method is a
single I/O call that returns raw rows; parsing and ordering happen in the
``RuleStore``. Sources may raise whatever their transport raises: the store
turns any failure into ``RuleStoreUnavailable``.
"""

import copy
import json
from abc import ABC, abstractmethod
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Optional, Union

from bookingquote.domain.models import RuleType


class RuleSource(ABC):
    """Abstract base class for rule data collaborators."""

    @abstractmethod
    def fetch_rules(
        self,
        rule_type: RuleType,
        active_only: bool = True,
        timeout: Optional[float] = None,
    ) -> list[Mapping]:
        """Fetch raw scheduling rule rows of one type.

        Args:
            rule_type: Type of rule to fetch.
            active_only: If True, only rows with ``is_active`` set.
            timeout: Seconds to wait for the backend, or None for no limit.

        Returns:
            Rows in backend order.
        """
        pass

    @abstractmethod
    def fetch_overrides(
        self,
        customer_id: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> list[Mapping]:
        """Fetch raw pricing override rows.

        Args:
            customer_id: Restrict to one customer, or None for every override.
            timeout: Seconds to wait for the backend, or None for no limit.

        Returns:
            Rows in backend order.
        """
        pass


def _row_value(row: Mapping, snake: str, camel: str, default=None):
    if snake in row:
        return row[snake]
    return row.get(camel, default)


class InMemoryRuleSource(RuleSource):
    """A read-only snapshot of rule and override rows held in memory.

    Rows are deep-copied on construction, so later changes to the caller's
    data do not leak into evaluations. Useful for tests, the CLI, and for
    callers that load rule configuration once per request.

    Example:
        >>> source = InMemoryRuleSource(
        ...     rules=[{"id": "1", "rule_type": "cutoff_time", "end_time": "18:00"}],
        ... )
        >>> store = RuleStore(source)
    """

    def __init__(
        self,
        rules: Optional[Iterable[Mapping]] = None,
        overrides: Optional[Iterable[Mapping]] = None,
    ):
        self._rules = [copy.deepcopy(dict(row)) for row in rules or []]
        self._overrides = [copy.deepcopy(dict(row)) for row in overrides or []]

    @classmethod
    def from_json_file(cls, path: Union[str, Path]) -> "InMemoryRuleSource":
        """Load a snapshot from a JSON document.

        The document has the shape ``{"rules": [...], "overrides": [...]}``;
        either key may be omitted.
        """
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError(f"{path}: expected a JSON object with 'rules'/'overrides'")
        return cls(rules=data.get("rules", []), overrides=data.get("overrides", []))

    def fetch_rules(
        self,
        rule_type: RuleType,
        active_only: bool = True,
        timeout: Optional[float] = None,
    ) -> list[Mapping]:
        rows = []
        for row in self._rules:
            if _row_value(row, "rule_type", "ruleType") != rule_type.value:
                continue
            if active_only and not _row_value(row, "is_active", "isActive", True):
                continue
            rows.append(copy.deepcopy(row))
        return rows

    def fetch_overrides(
        self,
        customer_id: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> list[Mapping]:
        rows = []
        for row in self._overrides:
            row_customer = _row_value(row, "customer_id", "customerId")
            if customer_id is not None and str(row_customer) != str(customer_id):
                continue
            rows.append(copy.deepcopy(row))
        return rows
