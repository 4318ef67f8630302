#!/usr/bin/env python3
"""
Re-express every stored cost rate in another currency.

Usage:
  python3 scripts/convert_currency.py FROM TO RATE [--db-url URL]

RATE is the number of TO units per one FROM unit.  Active machine
categories and CURRENCY-typed parameters are converted in one transaction;
nothing changes if any step fails.
"""

import argparse
import sys
from decimal import Decimal, InvalidOperation
from pathlib import Path
from uuid import UUID, uuid4

ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))


def _decimal(value: str) -> Decimal:
    try:
        return Decimal(value)
    except InvalidOperation as exc:
        raise argparse.ArgumentTypeError(f"not a number: {value!r}") from exc


def _parse_args(argv=None) -> argparse.Namespace:
    from mfg_config import get_database_url

    p = argparse.ArgumentParser(description="Convert stored cost rates to another currency")
    p.add_argument("from_currency", help="Currency the rates are stored in now, e.g. USD")
    p.add_argument("to_currency", help="Target currency, e.g. PEN")
    p.add_argument("rate", type=_decimal, help="TO units per one FROM unit")
    p.add_argument("--db-url", default=get_database_url(), help="Database URL")
    p.add_argument("--actor-id", type=UUID, default=None, help="Actor recorded on updated rows")
    return p.parse_args(argv)


def main(argv=None) -> int:
    args = _parse_args(argv)

    from mfg_kernel.db.engine import get_session, init_engine_from_url
    from mfg_kernel.exceptions import ValidationError
    from mfg_modules._orm_registry import create_all_tables
    from mfg_modules.costing import CostingService

    init_engine_from_url(args.db_url, echo=False)
    create_all_tables(install_triggers=True)

    session = get_session()
    try:
        result = CostingService(session).convert_currency(
            args.from_currency, args.to_currency, args.rate, args.actor_id or uuid4(),
        )
    except ValidationError as exc:
        print(f"  ERROR: {exc}", file=sys.stderr)
        return 1
    finally:
        session.close()

    print(f"  {result.from_currency} -> {result.to_currency} @ {result.rate} ({result.direction})")
    print(f"  Categories converted: {result.categories_converted}")
    print(f"  Parameters converted: {result.params_converted}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
