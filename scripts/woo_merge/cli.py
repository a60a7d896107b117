"""
Command line entry point for the product merger.

The command line is the only way to start a merge; there is no HTTP trigger.

Usage:
    woo-merge --config scripts/merge_configs/kas_limonade_pet.json --dry-run
    woo-merge --config scripts/merge_configs/kas_limonade_pet.json
"""

import argparse
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from .catalog import CatalogError, CatalogService
from .config import ConfigError, MergeConfig, MergeError, load_config, load_store_credentials
from .merger import MergeResult, ProductMerger
from .woocommerce import WooCommerceClient


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Merge simple WooCommerce products into one variable product"
    )
    parser.add_argument(
        "--config", "-c",
        required=True,
        help="Merge configuration JSON file",
    )
    parser.add_argument(
        "--sources",
        default=None,
        help="CSV with source products (columns: id, label, cart_description, <attribute slugs>)",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Log every intended change without writing to the store",
    )
    parser.add_argument(
        "--report",
        default=None,
        help="Write the run log to this file",
    )
    parser.add_argument(
        "--keep-config",
        action="store_true",
        help="Do not delete the config file after a successful run",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Show HTTP request details",
    )
    return parser.parse_args(argv)


def write_report(result: MergeResult, config_path: Path, report_path: Path) -> Path:
    """Write the run log with a short header."""
    lines = [
        "=" * 70,
        "WOOCOMMERCE PRODUCT MERGE REPORT",
        f"Generated: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}",
        f"Config: {config_path}",
        f"Mode: {'DRY RUN' if result.dry_run else 'LIVE'}",
        "=" * 70,
        "",
    ]
    lines.extend(result.messages)
    report_path.parent.mkdir(parents=True, exist_ok=True)
    report_path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return report_path


def delete_config_file(config: MergeConfig, config_path: Path, result: MergeResult, keep: bool) -> bool:
    """One-shot guard: remove the config after a successful live run."""
    if result.dry_run or keep or not config.options.auto_delete_config:
        return False
    config_path.unlink(missing_ok=True)
    return True


def main(argv: Optional[List[str]] = None, catalog: Optional[CatalogService] = None) -> int:
    args = parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(message)s",
        stream=sys.stdout,
    )
    if not args.verbose:
        logging.getLogger("urllib3").setLevel(logging.WARNING)

    config_path = Path(args.config)

    print("=" * 70)
    print("WooCommerce Product Merger")
    print("=" * 70)
    print(f"Config: {config_path}")

    try:
        config = load_config(config_path, sources_csv=Path(args.sources) if args.sources else None)
        if args.dry_run:
            config = config.with_overrides(dry_run=True)
        if catalog is None:
            catalog = WooCommerceClient.from_credentials(load_store_credentials())
    except ConfigError as exc:
        print(f"❌ Configuration error: {exc}")
        return 1

    print(f"Mode:   {'DRY-RUN (no changes)' if config.options.dry_run else 'LIVE (writes enabled)'}")
    print(f"Sources: {len(config.source_products)}, attributes: {', '.join(config.attribute_slugs)}")
    print()

    merger = ProductMerger(config, catalog)
    try:
        result = merger.run()
    except MergeError as exc:
        print(f"\n❌ Merge aborted: {exc}")
        return 1
    except CatalogError as exc:
        print(f"\n❌ Store error: {exc}")
        if exc.body:
            print(exc.body)
        print("The store may now hold a partial variable product. Inspect it before re-running.")
        return 1

    if args.report:
        report_path = write_report(result, config_path, Path(args.report))
        print(f"\nReport saved: {report_path}")

    if delete_config_file(config, config_path, result, args.keep_config):
        print(f"Config deleted: {config_path}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
