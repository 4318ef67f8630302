#!/usr/bin/env python3
"""
Reset every product's reference cost to the weighted average of its most
recent purchase receipts.  Products without purchase history keep their
stored cost.

Usage:
  python3 scripts/rebaseline_costs.py [--sample-size N] [--db-url URL]

The database URL defaults to DATABASE_URL.
"""

import argparse
import sys
from pathlib import Path
from uuid import UUID, uuid4

ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))


def _parse_args(argv=None) -> argparse.Namespace:
    from mfg_config import get_database_url

    p = argparse.ArgumentParser(description="Re-baseline product reference costs")
    p.add_argument(
        "--sample-size",
        type=int,
        default=None,
        help="Receipts averaged per product (default: inventory.weighted_average_window)",
    )
    p.add_argument("--db-url", default=get_database_url(), help="Database URL")
    p.add_argument("--actor-id", type=UUID, default=None, help="Actor recorded on updated rows")
    return p.parse_args(argv)


def main(argv=None) -> int:
    args = _parse_args(argv)

    from mfg_kernel.db.engine import get_session, init_engine_from_url
    from mfg_kernel.db.immutability import register_immutability_listeners
    from mfg_kernel.exceptions import ValidationError
    from mfg_modules._orm_registry import create_all_tables
    from mfg_modules.inventory import InventoryService

    init_engine_from_url(args.db_url, echo=False)
    create_all_tables(install_triggers=True)
    register_immutability_listeners()

    session = get_session()
    try:
        summary = InventoryService(session).rebaseline_reference_costs(
            actor_id=args.actor_id or uuid4(),
            sample_size=args.sample_size,
        )
    except ValidationError as exc:
        print(f"  ERROR: {exc}", file=sys.stderr)
        return 1
    finally:
        session.close()

    print(f"  Window:  {summary.sample_size} receipts")
    print(f"  Updated: {summary.updated}")
    print(f"  Skipped: {summary.skipped} (no purchase history)")
    for sku, cost in sorted(summary.costs.items()):
        print(f"    {sku:<20} {cost:>12}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
