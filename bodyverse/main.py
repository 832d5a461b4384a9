"""
CLI entry point for the BodyVerse pricing tools.

Looks up localized plan prices, converts amounts, resolves locations and
shows the current exchange rate table from the command line.
"""

import argparse
import logging
import math
import sys
from pathlib import Path
from typing import List, Optional

from bodyverse.pricing.regional_pricing import BillingPeriod
from bodyverse.services.pricing_resolver import PricingResolver
from bodyverse.utils.config_loader import load_config, load_env
from bodyverse.utils.logging_config import setup_logging


logger = logging.getLogger(__name__)


def finite_amount(value: str) -> float:
    """argparse type for amounts: a finite number."""
    try:
        amount = float(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid amount: {value!r}")
    if not math.isfinite(amount):
        raise argparse.ArgumentTypeError(f"amount must be a finite number: {value!r}")
    return amount


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """
    Parse command line arguments.

    Returns:
        argparse.Namespace: Parsed command line arguments.
    """
    parser = argparse.ArgumentParser(
        description="BodyVerse localized pricing tools",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    python -m bodyverse.main pricing --currency NGN
    python -m bodyverse.main pricing --currency GBP --period quarterly
    python -m bodyverse.main convert 12.99 USD EUR
    python -m bodyverse.main locate --ip 8.8.8.8
    python -m bodyverse.main rates
        """,
    )

    parser.add_argument(
        "--config", "-c",
        type=Path,
        default=Path("config/config.yaml"),
        help="Path to configuration file",
    )

    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose logging",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    pricing_parser = subparsers.add_parser("pricing", help="Show plan prices for a currency")
    pricing_parser.add_argument("--currency", default="USD", help="ISO currency code")
    pricing_parser.add_argument(
        "--period",
        choices=[p.value for p in BillingPeriod],
        help="Show a single plan quote instead of the full table",
    )

    convert_parser = subparsers.add_parser("convert", help="Convert an amount between currencies")
    convert_parser.add_argument("amount", type=finite_amount)
    convert_parser.add_argument("from_currency")
    convert_parser.add_argument("to_currency")

    locate_parser = subparsers.add_parser("locate", help="Resolve country and currency")
    locate_parser.add_argument("--ip", help="IP address to look up (default: this host)")

    subparsers.add_parser("rates", help="Show the USD exchange rate table")

    return parser.parse_args(argv)


def run_pricing(resolver: PricingResolver, args: argparse.Namespace) -> int:
    if args.period:
        quote = resolver.quote(args.currency, BillingPeriod(args.period))
        print(f"{quote.currency} {quote.period.value}: {quote.formatted}")
        if quote.period is not BillingPeriod.MONTHLY:
            print(f"  ({quote.formatted_monthly_equivalent}/month)")
        return 0

    pricing = resolver.localized_pricing(args.currency)
    data = pricing.to_dict()
    print(f"Plans for {pricing.currency} [{data['rule']}]")
    for period in BillingPeriod:
        line = f"  {period.value:<10} {data['formatted'][period.value]}"
        if period is not BillingPeriod.MONTHLY:
            line += f"  ({data['monthly_equivalent'][period.value]}/month)"
        print(line)
    return 0


def run_convert(resolver: PricingResolver, args: argparse.Namespace) -> int:
    result = resolver.convert_base_price(args.amount, args.to_currency, from_currency=args.from_currency)
    if not result.converted:
        print(f"No rate for {result.from_currency}->{result.to_currency}; amount unchanged")
    print(result.formatted)
    return 0


def run_locate(resolver: PricingResolver, args: argparse.Namespace) -> int:
    location = resolver.resolve_location(args.ip)
    print(f"Country: {location.country_code}")
    print(f"Currency: {location.currency_code}")
    return 0


def run_rates(resolver: PricingResolver, args: argparse.Namespace) -> int:
    rates = resolver.get_rates()
    if not rates:
        print("No exchange rates available")
        return 1
    for code in sorted(rates):
        print(f"  {code}  {rates[code]:.6g}")
    print(f"\n{len(rates)} rates (base {resolver.config.rates.base_currency})")
    return 0


COMMANDS = {
    "pricing": run_pricing,
    "convert": run_convert,
    "locate": run_locate,
    "rates": run_rates,
}


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main entry point.

    Returns:
        int: Exit code.
    """
    load_env()

    args = parse_args(argv)
    config = load_config(args.config)

    log_level = "DEBUG" if args.verbose else config.logging.level
    setup_logging(level=log_level, log_format=config.logging.format, log_file=config.logging.file)

    resolver = PricingResolver(config)

    try:
        return COMMANDS[args.command](resolver, args)
    except KeyboardInterrupt:
        print("\n\nOperation cancelled by user.")
        return 130
    except Exception as e:
        logger.exception(f"Fatal error: {e}")
        print(f"\n✗ Fatal error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
