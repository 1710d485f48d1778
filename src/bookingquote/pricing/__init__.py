"""Pricing engine: rate resolution and quote evaluation."""

from bookingquote.pricing.evaluator import QuoteConfig, QuoteEvaluator
from bookingquote.pricing.rate_resolver import RateResolution, RateResolver, select_override

__all__ = [
    "QuoteConfig",
    "QuoteEvaluator",
    "RateResolution",
    "RateResolver",
    "select_override",
]
