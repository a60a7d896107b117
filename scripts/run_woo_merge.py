#!/usr/bin/env python3
"""
WooCommerce Product Merger Runner

Merges simple products into one variable product, as described by a config file.

Usage:
    python scripts/run_woo_merge.py --config scripts/merge_configs/kas_limonade_pet.json --dry-run
    python scripts/run_woo_merge.py --config scripts/merge_configs/kas_limonade_pet.json

Options:
    --config FILE       Merge configuration JSON
    --sources CSV       Source products from CSV instead of the config's list
    --dry-run           Log intended changes only
    --report FILE       Write the run log to FILE
    --keep-config       Keep the config file after a successful live run
    --verbose           Show HTTP request details

Store credentials are read from .env (WOO_URL, WOO_CONSUMER_KEY, WOO_CONSUMER_SECRET).
"""

import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent))

from woo_merge.cli import main


if __name__ == "__main__":
    sys.exit(main())
