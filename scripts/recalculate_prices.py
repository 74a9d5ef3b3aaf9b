#!/usr/bin/env python3
"""
Recalculate catalog prices from stored supplier prices.

Converts the purchase / retail / list prices kept in product custom fields
into base-currency catalog prices using the current currency factors.

Usage:
    python scripts/recalculate_prices.py                       # retail prices
    python scripts/recalculate_prices.py --dry-run             # count only
    python scripts/recalculate_prices.py --price-type all --limit 100
"""

import argparse
import os
import sys

# Allow imports from the project root when running as a script
_root_dir = os.path.join(os.path.dirname(__file__), "..")
sys.path.insert(0, _root_dir)

from dotenv import load_dotenv
load_dotenv(os.path.join(_root_dir, ".env"))

from config import get_admin_client
from exceptions import AppError
from models.apply import RecalcPriceType
from services.catalog_store import SupabaseCatalogStore
from services.recalculation_service import RecalculationService, get_recalculation_service


def build_service() -> RecalculationService:
    """Prefer the service role client; fall back to the anon key."""
    admin = get_admin_client()
    if admin is None:
        return get_recalculation_service()
    return RecalculationService(SupabaseCatalogStore(admin))


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(
        description="Recalculate product prices from custom fields using current exchange rates."
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Show what would be updated without writing",
    )
    parser.add_argument(
        "--limit", "-l",
        type=int,
        default=None,
        help="Limit number of products to process",
    )
    parser.add_argument(
        "--price-type", "-t",
        choices=[t.value for t in RecalcPriceType],
        default=RecalcPriceType.RETAIL.value,
        help="Which price to recalculate (default: retail)",
    )
    args = parser.parse_args(argv)

    if args.limit is not None and args.limit < 1:
        parser.error("--limit must be a positive integer")

    print(f"Recalculating {args.price_type} prices{' (dry run)' if args.dry_run else ''}")

    try:
        stats = build_service().recalculate(
            RecalcPriceType(args.price_type),
            limit=args.limit,
            dry_run=args.dry_run,
        )
    except AppError as e:
        print(f"Error: {e.message}")
        return 1

    print(f"  Processed: {stats.processed}")
    print(f"  Updated:   {stats.updated}")
    print(f"  Skipped:   {stats.skipped}")
    print(f"  Errors:    {stats.errors}")

    return 1 if stats.errors else 0


if __name__ == "__main__":
    sys.exit(main())
