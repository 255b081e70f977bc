"""
V1 vs V2 comparison from the command line.

    python -m fence_bom.compare_cli                  # every reference SKU, built-in catalog
    python -m fence_bom.compare_cli A01 C05 --length 150 --lines 2
    python -m fence_bom.compare_cli --db             # catalog from DATABASE_URL

Exits 1 if any SKU has a DIFFERENT or MISSING_V2 component, so it can gate
a migration step in CI.
"""

import argparse
import logging
import sys

from .config import settings
from .engine.comparison import compare_sku, format_report
from .engine.errors import UnresolvedCatalogEntryError
from .engine.interpreter import FormulaInterpreter

logger = logging.getLogger("fence_bom.compare_cli")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="fence_bom.compare_cli",
        description="Compare V1 (hardcoded) and V2 (formula) BOM quantities per SKU.",
    )
    parser.add_argument("skus", nargs="*", help="SKU codes to compare (default: all catalogued SKUs)")
    parser.add_argument("--length", type=float, default=100.0, help="Net fence length in feet (default 100)")
    parser.add_argument("--lines", type=int, default=4, help="Number of fence lines (default 4)")
    parser.add_argument("--gates", type=int, default=0, help="Number of gates (default 0)")
    parser.add_argument("--db", action="store_true", help="Read the catalog from the database instead of the built-in seed")
    return parser


def _run(repository, args) -> int:
    interpreter = FormulaInterpreter(repository)
    skus = [repository.require_sku(code) for code in args.skus] if args.skus else repository.list_skus()
    if not skus:
        print("No SKUs to compare.")
        return 1

    failed = []
    print(f"V1 vs V2 comparison: {args.length:g} ft, {args.lines} lines, {args.gates} gates")
    for sku in skus:
        report = compare_sku(interpreter, sku, args.length, args.lines, args.gates)
        print()
        print(format_report(report))
        if not report.passed:
            failed.append(sku.sku_code)

    print()
    if failed:
        print(f"FAILED: {', '.join(failed)} ({len(failed)} of {len(skus)} SKUs)")
        return 1
    print(f"PASSED: all {len(skus)} SKUs within tolerance")
    return 0


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        if args.db:
            from .database import SessionLocal
            from .engine.repository import SqlTemplateRepository
            db = SessionLocal()
            try:
                return _run(SqlTemplateRepository(db), args)
            finally:
                db.close()

        from .catalog_seed import build_memory_repository
        return _run(build_memory_repository(), args)
    except UnresolvedCatalogEntryError as e:
        logger.error("%s", e)
        return 2


if __name__ == "__main__":
    sys.exit(main())
