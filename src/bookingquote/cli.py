"""Command-line interface for the booking quote engine."""

import argparse
import json
import logging
import sys
from datetime import date, datetime, timedelta
from decimal import Decimal, InvalidOperation
from typing import Optional

from bookingquote.domain.errors import BookingQuoteError
from bookingquote.domain.models import BookingQuote, QuoteRequest
from bookingquote.domain.policies import MODIFIER_POLICIES
from bookingquote.pricing.evaluator import QuoteConfig, QuoteEvaluator
from bookingquote.rules.rest_source import RestRuleSource
from bookingquote.rules.sources import InMemoryRuleSource, RuleSource
from bookingquote.rules.store import RuleStore
from bookingquote.validation.validator import RuleSetValidator


def create_sample_rules() -> dict:
    """Create a sample rule configuration for demos.

    Bookings may start between 07:00 and 17:00, standard hours end at 18:00
    with a £10 overtime charge, weekends cost more, early starts carry a
    surcharge, and one customer has a discounted Airbnb rate.
    """
    rules = [
        {"id": "slot-morning", "rule_type": "time_slot", "start_time": "07:00",
         "end_time": "12:00", "label": "Morning", "display_order": 0},
        {"id": "slot-afternoon", "rule_type": "time_slot", "start_time": "12:00",
         "end_time": "17:00", "label": "Afternoon", "display_order": 1},
        {"id": "cutoff", "rule_type": "cutoff_time", "end_time": "18:00",
         "label": "Standard Hours End"},
        {"id": "overtime", "rule_type": "overtime_window", "start_time": "18:00",
         "end_time": "22:00", "price_modifier": 10, "modifier_type": "fixed",
         "label": "Overtime Window"},
        {"id": "saturday", "rule_type": "day_pricing", "day_of_week": 6,
         "price_modifier": 15, "modifier_type": "percentage", "label": "Saturday"},
        {"id": "sunday", "rule_type": "day_pricing", "day_of_week": 0,
         "price_modifier": 20, "modifier_type": "percentage", "label": "Sunday"},
        {"id": "early-bird", "rule_type": "time_surcharge", "start_time": "07:00",
         "end_time": "09:00", "price_modifier": 5, "modifier_type": "fixed",
         "label": "Early start"},
    ]
    overrides = [
        {"id": "ovr-1", "customer_id": "1001", "service_type": "airbnb-cleaning",
         "cleaning_type": None, "override_rate": -3},
    ]
    return {"rules": rules, "overrides": overrides}


def format_quote(quote: BookingQuote) -> str:
    """Render a quote as a short human-readable report."""
    lines = []
    if not quote.is_bookable:
        lines.append("  Not bookable: this time is not available")
        lines.append(f"  Reason: {quote.rejection_reason.value}")
        return "\n".join(lines)

    rate_note = " (customer rate)" if quote.override_applied else ""
    lines.append(f"  Hourly rate: £{quote.effective_hourly_rate:.2f}{rate_note}")
    lines.append(f"  Base price:  £{quote.base_price:.2f}")
    for adjustment in quote.adjustments:
        sign = "-" if adjustment.is_discount else "+"
        lines.append(f"    {sign} £{abs(adjustment.amount):.2f}  {adjustment.label}")
    if quote.is_overtime:
        lines.append("  Overtime: finishes after standard hours")
    lines.append(f"  Total:       £{quote.final_price:.2f}")
    return "\n".join(lines)


def _build_source(rules_path: Optional[str], use_rest: bool) -> RuleSource:
    if use_rest:
        return RestRuleSource.from_settings()
    if rules_path:
        return InMemoryRuleSource.from_json_file(rules_path)
    sample = create_sample_rules()
    return InMemoryRuleSource(rules=sample["rules"], overrides=sample["overrides"])


def _parse_decimal(value: str) -> Decimal:
    try:
        number = Decimal(value)
    except InvalidOperation:
        raise argparse.ArgumentTypeError(f"not a number: {value!r}") from None
    if not number.is_finite():
        raise argparse.ArgumentTypeError(f"not a finite number: {value!r}")
    return number


def _parse_date(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected YYYY-MM-DD, got {value!r}") from None


def _parse_time(value: str):
    try:
        return datetime.strptime(value, "%H:%M").time()
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected HH:MM, got {value!r}") from None


def run_quote(args: argparse.Namespace) -> int:
    """Evaluate a single booking and print the quote."""
    config = QuoteConfig(
        default_timeout_seconds=args.timeout,
        modifier_policy=args.policy,
    )
    request = QuoteRequest(
        customer_id=args.customer,
        service_type=args.service,
        cleaning_type=args.cleaning_type,
        booking_date=args.date,
        start_time=args.start,
        duration_hours=args.hours,
        base_hourly_rate=args.rate,
    )

    source = _build_source(args.rules, args.rest)
    try:
        evaluator = QuoteEvaluator(RuleStore(source), config=config)
        quote = evaluator.evaluate(request)
    except BookingQuoteError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    finally:
        if isinstance(source, RestRuleSource):
            source.close()

    if args.json:
        print(json.dumps(quote.to_dict(), indent=2))
    else:
        print(f"\nQuote for {request.booking_date:%A %d %B %Y} at "
              f"{request.start_time:%H:%M} ({request.duration_hours}h)")
        print(format_quote(quote))
    return 0


def run_validate(args: argparse.Namespace) -> int:
    """Validate a rules file and print any problems."""
    with open(args.rules, encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, dict):
        print(
            f"Error: {args.rules}: expected a JSON object with 'rules'/'overrides'",
            file=sys.stderr,
        )
        return 1

    validator = RuleSetValidator()
    result = validator.validate_rules(data.get("rules", []))
    result.merge(validator.validate_overrides(data.get("overrides", [])))

    for warning in result.warnings:
        print(f"  Warning: {warning}")

    if result.is_valid:
        print("Validation: PASSED")
        return 0

    print(f"Validation: FAILED ({len(result.errors)} errors)")
    for error in result.errors:
        print(f"    - {error}")
    return 1


def run_demo(args: argparse.Namespace) -> int:
    """Quote the same booking on each day of the coming week."""
    source = _build_source(None, False)
    evaluator = QuoteEvaluator(RuleStore(source))

    start_date = date.today()
    print("Sample week: 3h domestic clean at £20/h")
    print(f"{'=' * 60}")
    for offset in range(7):
        booking_date = start_date + timedelta(days=offset)
        for start in ("08:00", "13:00", "16:00", "18:00"):
            request = QuoteRequest(
                customer_id="2002",
                service_type="domestic-cleaning",
                booking_date=booking_date,
                start_time=_parse_time(start),
                duration_hours=Decimal("3"),
                base_hourly_rate=Decimal("20"),
            )
            quote = evaluator.evaluate(request)
            if quote.is_bookable:
                flags = " overtime" if quote.is_overtime else ""
                outcome = f"£{quote.final_price:>7.2f}{flags}"
            else:
                outcome = "unavailable"
            print(f"  {booking_date} ({booking_date:%a}) {start}: {outcome}")
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point for CLI."""
    parser = argparse.ArgumentParser(
        description="Booking quote engine - pricing and scheduling rules",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s demo                                   Quote a sample week
  %(prog)s quote --date 2024-06-01 --start 09:00 --hours 2 --rate 20
  %(prog)s quote --rules rules.json --customer 1001 --service airbnb-cleaning \\
           --cleaning-type deep --date 2024-06-01 --start 09:00 --hours 3 --rate 20
  %(prog)s quote --rest ...                       Read rules from BOOKINGQUOTE_REST_URL
  %(prog)s validate rules.json                    Check a rules file before saving
        """,
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Log rule store and evaluation details",
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    subparsers.add_parser("demo", help="Quote a sample week with sample rules")

    quote_parser = subparsers.add_parser("quote", help="Quote a single booking")
    source_group = quote_parser.add_mutually_exclusive_group()
    source_group.add_argument(
        "--rules", "-r",
        type=str,
        help="JSON file with 'rules' and 'overrides' (default: sample rules)",
    )
    source_group.add_argument(
        "--rest",
        action="store_true",
        help="Read rules from the REST backend configured in the environment",
    )
    quote_parser.add_argument("--customer", "-c", type=str, default="guest",
                              help="Customer id (default: guest)")
    quote_parser.add_argument("--service", "-s", type=str, default="domestic-cleaning",
                              help="Service type (default: domestic-cleaning)")
    quote_parser.add_argument("--cleaning-type", "-t", type=str, default=None,
                              help="Cleaning type within the service")
    quote_parser.add_argument("--date", "-d", type=_parse_date, required=True,
                              help="Booking date (YYYY-MM-DD)")
    quote_parser.add_argument("--start", type=_parse_time, required=True,
                              help="Start time (HH:MM)")
    quote_parser.add_argument("--hours", type=_parse_decimal, required=True,
                              help="Duration in hours")
    quote_parser.add_argument("--rate", type=_parse_decimal, required=True,
                              help="Base hourly rate in pounds")
    quote_parser.add_argument(
        "--policy", "-p",
        type=str,
        default="sequential",
        choices=sorted(MODIFIER_POLICIES),
        help="How percentage modifiers compound (default: sequential)",
    )
    quote_parser.add_argument("--timeout", type=float, default=None,
                              help="Seconds to wait for the rule store")
    quote_parser.add_argument("--json", action="store_true",
                              help="Print the quote as JSON")

    validate_parser = subparsers.add_parser(
        "validate",
        help="Validate a rules file",
    )
    validate_parser.add_argument("rules", type=str, help="JSON rules file")

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if args.command == "demo":
        return run_demo(args)
    elif args.command == "quote":
        return run_quote(args)
    elif args.command == "validate":
        return run_validate(args)
    else:
        parser.print_help()
        return 1


if __name__ == "__main__":
    sys.exit(main())
