"""
WooCommerce Product Merger

Merges simple products into one variable product: attribute taxonomies and
terms, the parent product, one variation per source, SEO meta for Rank Math
and Yoast, tags, and drafting or deleting the originals.

Usage:
    python scripts/run_woo_merge.py --config scripts/merge_configs/kas_limonade_pet.json --dry-run
"""

from .catalog import CatalogError, CatalogService
from .config import ConfigError, MergeConfig, MergeError, load_config
from .merger import AttributeSetupError, MergeResult, NoSourceProductsError, ProductMerger
from .woocommerce import WooCommerceClient

__version__ = "1.0.0"
__all__ = [
    "AttributeSetupError",
    "CatalogError",
    "CatalogService",
    "ConfigError",
    "MergeConfig",
    "MergeError",
    "MergeResult",
    "NoSourceProductsError",
    "ProductMerger",
    "WooCommerceClient",
    "load_config",
]
