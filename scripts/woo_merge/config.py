"""
Merge Configuration

Immutable description of one merge run: which simple products to merge, the
variable product to create, its attributes, SEO fields, tags and run options.
Loaded from a JSON file in ``scripts/merge_configs/``; store credentials come
from the repository ``.env``.
"""

import json
import logging
import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

import pandas as pd
from dotenv import load_dotenv

from .text import slugify

log = logging.getLogger(__name__)

WORKSPACE = Path(__file__).resolve().parent.parent.parent

SKU_POLICIES = ("transfer", "suffix", "none")

PLACEHOLDER_TOKENS = (
    "example.com",
    "your_consumer",
    "your-store",
    "ck_xxxx",
    "cs_xxxx",
    "changeme",
)

Identifier = Union[int, str]


class MergeError(Exception):
    """Base class for errors that abort a merge run."""


class ConfigError(MergeError):
    """The merge configuration is invalid."""


@dataclass(frozen=True)
class AttributeDefinition:
    """A product characteristic the variations are built on (e.g. size, flavor)."""
    name: str
    slug: str
    visible: bool = True
    variation: bool = True

    @property
    def taxonomy(self) -> str:
        return f"pa_{self.slug}"


@dataclass(frozen=True)
class SourceProductDescriptor:
    """A simple product to merge and the attribute values it maps to."""
    identifier: Identifier
    attributes: Tuple[Tuple[str, str], ...]
    label: str = ""
    cart_description: str = ""

    @property
    def is_numeric_id(self) -> bool:
        return isinstance(self.identifier, int)

    @property
    def values(self) -> Dict[str, str]:
        return dict(self.attributes)

    @property
    def display_label(self) -> str:
        return self.label or " × ".join(value for _, value in self.attributes)

    def combination(self, attribute_slugs: List[str]) -> Tuple[str, ...]:
        """Slugified attribute values in attribute order."""
        values = self.values
        return tuple(slugify(values.get(slug, "")) for slug in attribute_slugs)


@dataclass(frozen=True)
class VariableProductSettings:
    name: str
    slug: str
    status: str = "publish"
    short_description: str = ""
    description: str = ""
    combined_intro: str = "Choose your preferred variant:"


@dataclass(frozen=True)
class SeoSettings:
    focus_keyword: str = ""
    title: str = ""
    description: str = ""
    image_alt: str = ""

    @property
    def is_empty(self) -> bool:
        return not (self.focus_keyword or self.title or self.description)


@dataclass(frozen=True)
class MergeOptions:
    copy_images: bool = True
    copy_categories: bool = True
    copy_tags: bool = True
    set_image_alt: bool = True
    combine_descriptions: bool = False
    delete_source_products: bool = False
    draft_source_products: bool = False
    auto_delete_config: bool = True
    dry_run: bool = False
    sku_policy: str = "transfer"


@dataclass(frozen=True)
class MergeConfig:
    """Complete configuration for one merge run."""
    source_products: Tuple[SourceProductDescriptor, ...]
    variable_product: VariableProductSettings
    attributes: Tuple[AttributeDefinition, ...]
    seo: SeoSettings = field(default_factory=SeoSettings)
    tags: Tuple[str, ...] = ()
    options: MergeOptions = field(default_factory=MergeOptions)

    @property
    def attribute_slugs(self) -> List[str]:
        return [a.slug for a in self.attributes]

    @property
    def is_multi_attribute(self) -> bool:
        return len(self.attributes) > 1

    @property
    def disposal(self) -> Optional[str]:
        """'delete', 'draft' or None. Delete wins when both are set."""
        if self.options.delete_source_products:
            return "delete"
        if self.options.draft_source_products:
            return "draft"
        return None

    def with_overrides(self, **options) -> "MergeConfig":
        """Copy of this config with some run options replaced."""
        return replace(self, options=replace(self.options, **options))

    def validate(self) -> "MergeConfig":
        """Raise ConfigError when the configuration cannot produce a consistent merge."""
        if not self.attributes:
            raise ConfigError("At least one attribute must be configured")
        if not self.source_products:
            raise ConfigError("At least one source product must be configured")
        if not self.variable_product.name:
            raise ConfigError("variable_product.name is required")

        slugs = self.attribute_slugs
        if len(set(slugs)) != len(slugs):
            raise ConfigError(f"Duplicate attribute slugs: {slugs}")

        if self.options.sku_policy not in SKU_POLICIES:
            raise ConfigError(
                f"Unknown sku_policy '{self.options.sku_policy}' (expected one of {', '.join(SKU_POLICIES)})"
            )

        identifiers = [s.identifier for s in self.source_products]
        repeated = sorted({str(i) for i in identifiers if identifiers.count(i) > 1})
        if repeated:
            raise ConfigError(f"Source products listed more than once: {', '.join(repeated)}")

        seen: Dict[Tuple[str, ...], Identifier] = {}
        for source in self.source_products:
            values = source.values
            missing = [s for s in slugs if not str(values.get(s, "")).strip()]
            if missing:
                raise ConfigError(f"Source product {source.identifier} has no value for: {', '.join(missing)}")
            unknown = [s for s in values if s not in slugs]
            if unknown:
                raise ConfigError(f"Source product {source.identifier} uses unknown attributes: {', '.join(unknown)}")

            combo = source.combination(slugs)
            if combo in seen:
                raise ConfigError(
                    f"Source products {seen[combo]} and {source.identifier} map to the same combination {combo}"
                )
            seen[combo] = source.identifier

        if self.options.delete_source_products and self.options.draft_source_products:
            log.warning("Both delete_source_products and draft_source_products are set; source products will be deleted")

        return self


# ============================================================================
# LOADING
# ============================================================================

def parse_identifier(raw) -> Identifier:
    """Numeric identifiers are product IDs, anything else is a SKU."""
    if isinstance(raw, bool):
        raise ConfigError(f"Invalid product identifier: {raw!r}")
    if isinstance(raw, int):
        return raw
    if isinstance(raw, float) and raw.is_integer():
        return int(raw)
    value = str(raw).strip()
    if not value:
        raise ConfigError("Empty product identifier")
    if value.isdigit():
        return int(value)
    return value


def _source_from_dict(data: Dict, attributes: List[AttributeDefinition]) -> SourceProductDescriptor:
    if "id" not in data:
        raise ConfigError(f"Source product entry without 'id': {data}")

    if "attributes" in data:
        values = data["attributes"] or {}
        if not isinstance(values, dict):
            raise ConfigError(f"'attributes' of source product {data['id']} must be an object")
    elif "variation_value" in data:
        # Single-attribute shorthand
        if len(attributes) != 1:
            raise ConfigError("'variation_value' can only be used with exactly one attribute")
        values = {attributes[0].slug: data["variation_value"]}
    else:
        raise ConfigError(f"Source product {data['id']} has no attribute values")

    return SourceProductDescriptor(
        identifier=parse_identifier(data["id"]),
        attributes=tuple((str(k), str(v)) for k, v in values.items()),
        label=data.get("label") or data.get("variation_label") or "",
        cart_description=data.get("cart_description") or "",
    )


def _attributes_from_dict(data: Dict) -> List[AttributeDefinition]:
    raw = data.get("attributes")
    if raw is None and "attribute" in data:
        raw = [data["attribute"]]
    attributes = []
    for entry in raw or []:
        if not entry.get("name"):
            raise ConfigError(f"Attribute without name: {entry}")
        attributes.append(AttributeDefinition(
            name=entry["name"],
            slug=entry.get("slug") or slugify(entry["name"]),
            visible=bool(entry.get("visible", True)),
            variation=bool(entry.get("variation", True)),
        ))
    return attributes


def _options_from_dict(data: Dict) -> MergeOptions:
    data = dict(data or {})
    # Older configs name the one-shot guard after the script file
    if "auto_delete_script" in data and "auto_delete_config" not in data:
        data["auto_delete_config"] = data.pop("auto_delete_script")
    data.pop("auto_delete_script", None)

    known = set(MergeOptions.__dataclass_fields__)
    unknown = sorted(set(data) - known)
    if unknown:
        raise ConfigError(f"Unknown options: {', '.join(unknown)}")
    return MergeOptions(**data)


def _seo_from_dict(data: Optional[Dict]) -> SeoSettings:
    data = data or {}
    unknown = sorted(set(data) - set(SeoSettings.__dataclass_fields__))
    if unknown:
        raise ConfigError(f"Unknown seo fields: {', '.join(unknown)}")
    return SeoSettings(**data)


def config_from_dict(data: Dict, sources: Optional[List[SourceProductDescriptor]] = None) -> MergeConfig:
    """
    Build a MergeConfig from its JSON representation.

    ``sources`` replaces the ``source_products`` section (used for CSV sources).
    """
    attributes = _attributes_from_dict(data)

    if sources is None:
        sources = [_source_from_dict(s, attributes) for s in data.get("source_products") or []]

    product = data.get("variable_product") or {}
    if not product.get("name"):
        raise ConfigError("variable_product.name is required")

    config = MergeConfig(
        source_products=tuple(sources),
        variable_product=VariableProductSettings(
            name=product["name"],
            slug=product.get("slug") or slugify(product["name"]),
            status=product.get("status", "publish"),
            short_description=product.get("short_description", ""),
            description=product.get("description", ""),
            combined_intro=product.get("combined_intro", VariableProductSettings.combined_intro),
        ),
        attributes=tuple(attributes),
        seo=_seo_from_dict(data.get("seo")),
        tags=tuple(data.get("tags") or ()),
        options=_options_from_dict(data.get("options")),
    )
    return config.validate()


def load_sources_csv(path: Path, attribute_slugs: List[str]) -> List[SourceProductDescriptor]:
    """
    Load source descriptors from a CSV.

    Columns: ``id``, optional ``label`` and ``cart_description``, and one
    column per attribute slug.
    """
    path = Path(path)
    if not path.exists():
        raise ConfigError(f"Sources CSV not found: {path}")

    df = pd.read_csv(path, dtype=str)
    df.columns = [c.strip() for c in df.columns]
    if "id" not in df.columns:
        raise ConfigError(f"Sources CSV missing required column: id ({path})")

    missing = [s for s in attribute_slugs if s not in df.columns]
    if missing:
        raise ConfigError(f"Sources CSV missing attribute columns: {', '.join(missing)}")

    sources = []
    for _, row in df.iterrows():
        if pd.isna(row["id"]) or not str(row["id"]).strip():
            continue
        values = tuple(
            (slug, str(row[slug]).strip()) for slug in attribute_slugs if pd.notna(row[slug])
        )
        sources.append(SourceProductDescriptor(
            identifier=parse_identifier(row["id"]),
            attributes=values,
            label=str(row["label"]).strip() if "label" in df.columns and pd.notna(row["label"]) else "",
            cart_description=(
                str(row["cart_description"]).strip()
                if "cart_description" in df.columns and pd.notna(row["cart_description"])
                else ""
            ),
        ))
    return sources


def load_config(path: Path, sources_csv: Optional[Path] = None) -> MergeConfig:
    """Load and validate a merge configuration JSON file."""
    path = Path(path)
    if not path.exists():
        raise ConfigError(f"Config file not found: {path}")

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ConfigError(f"Config file is not valid JSON: {path}: {exc}") from exc

    csv_path = sources_csv or data.get("sources_csv")
    sources = None
    if csv_path:
        csv_path = Path(csv_path)
        if not csv_path.is_absolute():
            csv_path = path.parent / csv_path
        attributes = _attributes_from_dict(data)
        sources = load_sources_csv(csv_path, [a.slug for a in attributes])

    return config_from_dict(data, sources=sources)


# ============================================================================
# STORE CREDENTIALS
# ============================================================================

@dataclass(frozen=True)
class StoreCredentials:
    url: str
    consumer_key: str
    consumer_secret: str
    timeout: int = 30


def require_non_placeholder(credentials: StoreCredentials) -> None:
    for label, value in (
        ("WOO_URL", credentials.url),
        ("WOO_CONSUMER_KEY", credentials.consumer_key),
        ("WOO_CONSUMER_SECRET", credentials.consumer_secret),
    ):
        if any(token in value.lower() for token in PLACEHOLDER_TOKENS):
            raise ConfigError(f"{label} appears to be a placeholder in .env. Set the real value before running.")


def load_store_credentials(env_path: Optional[Path] = None) -> StoreCredentials:
    """Read WooCommerce REST credentials from the environment (``.env`` loaded first)."""
    load_dotenv(env_path or WORKSPACE / ".env")

    url = os.getenv("WOO_URL", "").strip().rstrip("/")
    key = os.getenv("WOO_CONSUMER_KEY", "").strip()
    secret = os.getenv("WOO_CONSUMER_SECRET", "").strip()
    if not url or not key or not secret:
        raise ConfigError("Missing store env vars: WOO_URL, WOO_CONSUMER_KEY, WOO_CONSUMER_SECRET")

    try:
        timeout = int(os.getenv("WOO_TIMEOUT", "30"))
    except ValueError as exc:
        raise ConfigError("WOO_TIMEOUT must be an integer number of seconds") from exc

    credentials = StoreCredentials(url=url, consumer_key=key, consumer_secret=secret, timeout=timeout)
    require_non_placeholder(credentials)
    return credentials
