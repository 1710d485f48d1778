"""Rule storage: data collaborators, record parsing and the rule store."""

from bookingquote.rules.records import parse_override, parse_rule
from bookingquote.rules.rest_source import RestRuleSource
from bookingquote.rules.sources import InMemoryRuleSource, RuleSource
from bookingquote.rules.store import RuleStore

__all__ = [
    "InMemoryRuleSource",
    "RestRuleSource",
    "RuleSource",
    "RuleStore",
    "parse_override",
    "parse_rule",
]
