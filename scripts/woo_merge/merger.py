"""
Simple → Variable Product Merger

Merges a set of simple products into one variable product with one variation
per source product, then drafts or deletes the originals.

Steps run strictly in order and nothing is rolled back: a failure halfway
leaves a partial variable product that has to be cleaned up by hand before
re-running.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from .catalog import (
    AttributeTaxonomy,
    AttributeTerm,
    CatalogError,
    CatalogProduct,
    CatalogService,
    ProductAttributeSpec,
    VariableProductSpec,
    VariationSpec,
)
from .config import (
    AttributeDefinition,
    Identifier,
    MergeConfig,
    MergeError,
    SeoSettings,
    SourceProductDescriptor,
)
from .text import combine_descriptions, slugify

log = logging.getLogger(__name__)

DRY_RUN_PRODUCT_ID = 0
SKU_TRANSFER_SUFFIX = "-merged"
SKU_VARIATION_SUFFIX = "-VAR"
CART_DESCRIPTION_META_KEYS = ("_mini_desc", "_variation_description")


class NoSourceProductsError(MergeError):
    """None of the configured source products could be found."""


class AttributeSetupError(MergeError):
    """An attribute taxonomy or one of its terms could not be created."""


def seo_meta(seo: SeoSettings) -> Dict[str, str]:
    """Post-meta for Rank Math and Yoast; both get the same three values."""
    return {
        "rank_math_focus_keyword": seo.focus_keyword,
        "rank_math_title": seo.title,
        "rank_math_description": seo.description,
        "_yoast_wpseo_focuskw": seo.focus_keyword,
        "_yoast_wpseo_title": seo.title,
        "_yoast_wpseo_metadesc": seo.description,
    }


@dataclass
class ResolvedSource:
    """A configured source product together with its store record."""
    descriptor: SourceProductDescriptor
    product: CatalogProduct


@dataclass
class PreparedAttribute:
    """An attribute taxonomy with the terms this merge uses."""
    definition: AttributeDefinition
    taxonomy: Optional[AttributeTaxonomy]  # None only in dry runs when it would be created
    values: List[str] = field(default_factory=list)
    terms: Dict[str, AttributeTerm] = field(default_factory=dict)  # slug -> term

    @property
    def options(self) -> List[str]:
        """Term names in first-seen order, as attached to the parent."""
        names = []
        for value in self.values:
            term = self.terms.get(slugify(value))
            names.append(term.name if term else value)
        return names


@dataclass
class MergeResult:
    """Outcome of a merge run."""
    product_id: int
    variation_ids: List[int]
    resolved: List[ResolvedSource]
    skipped: List[Identifier]
    disposed: List[int]
    disposal: Optional[str]
    dry_run: bool
    permalink: str = ""
    admin_url: str = ""
    messages: List[str] = field(default_factory=list)

    @property
    def variation_count(self) -> int:
        return len(self.resolved) if self.dry_run else len(self.variation_ids)


class ProductMerger:
    """
    Runs one merge against a CatalogService.

    Usage:
        merger = ProductMerger(config, WooCommerceClient.from_credentials(creds))
        result = merger.run()
    """

    def __init__(self, config: MergeConfig, catalog: CatalogService):
        self.config = config
        self.catalog = catalog
        self.messages: List[str] = []

    @property
    def dry_run(self) -> bool:
        return self.config.options.dry_run

    def _log(self, message: str, level: int = logging.INFO) -> None:
        self.messages.append(message)
        log.log(level, message)

    def run(self) -> MergeResult:
        self._log("=== WooCommerce Product Merger ===")
        if self.dry_run:
            self._log("⚠️  DRY RUN MODE - No changes will be made")

        # Step 1: Load source products
        sources, skipped = self.resolve_sources()
        if not sources:
            self._log("❌ No source products found!", logging.ERROR)
            raise NoSourceProductsError("None of the configured source products could be resolved")

        # Step 2: Create/verify attributes and terms
        prepared = self.ensure_attributes(sources)

        # Step 3: Create variable product
        product_id = self.create_variable_product(sources, prepared)

        # Step 4: Create variations
        variation_ids = self.create_variations(product_id, sources, prepared)

        # Step 5: SEO meta
        self.set_seo_meta(product_id)

        # Step 6: Tags and image alt text
        self.set_tags(product_id)
        self.set_image_alt(product_id, sources)

        # Step 7: Handle source products
        disposed = self.dispose_sources(sources)

        # Step 8: Sync and clear caches
        self.sync(product_id)

        result = MergeResult(
            product_id=product_id,
            variation_ids=variation_ids,
            resolved=sources,
            skipped=skipped,
            disposed=disposed,
            disposal=self.config.disposal,
            dry_run=self.dry_run,
            messages=self.messages,
        )
        if not self.dry_run:
            created = self.catalog.get_product(product_id)
            result.permalink = created.permalink if created else ""
            result.admin_url = self.catalog.admin_url(product_id)

        self._log_summary(result)
        return result

    # ------------------------------------------------------------------
    # Step 1
    # ------------------------------------------------------------------

    def resolve_sources(self):
        """Return (resolved sources, identifiers that could not be found)."""
        resolved: List[ResolvedSource] = []
        skipped: List[Identifier] = []
        seen_ids = set()

        for descriptor in self.config.source_products:
            if descriptor.is_numeric_id:
                product_id = descriptor.identifier
            else:
                product_id = self.catalog.find_product_id_by_sku(descriptor.identifier)

            product = self.catalog.get_product(product_id) if product_id else None
            if product is None:
                self._log(f"⚠️  Product not found: {descriptor.identifier}", logging.WARNING)
                skipped.append(descriptor.identifier)
                continue

            if product.id in seen_ids:
                self._log(f"⚠️  Product {product.id} already loaded, skipping duplicate: {descriptor.identifier}", logging.WARNING)
                skipped.append(descriptor.identifier)
                continue
            if product.type != "simple":
                self._log(f"⚠️  {product.name} is a {product.type} product, not simple", logging.WARNING)

            seen_ids.add(product.id)
            resolved.append(ResolvedSource(descriptor=descriptor, product=product))
            self._log(f"✅ Loaded: {product.name} (ID: {product.id})")

        return resolved, skipped

    # ------------------------------------------------------------------
    # Step 2
    # ------------------------------------------------------------------

    def ensure_attributes(self, sources: List[ResolvedSource]) -> List[PreparedAttribute]:
        self._log("\n⏳ Setting up attributes...")
        prepared = []

        for definition in self.config.attributes:
            taxonomy = self._ensure_taxonomy(definition)

            values: List[str] = []
            seen = set()
            for source in sources:
                value = source.descriptor.values[definition.slug]
                if slugify(value) not in seen:
                    seen.add(slugify(value))
                    values.append(value)

            attribute = PreparedAttribute(definition=definition, taxonomy=taxonomy, values=values)
            for value in values:
                term = self._ensure_term(attribute, value)
                if term is not None:
                    attribute.terms[term.slug] = term
            prepared.append(attribute)

        return prepared

    def _ensure_taxonomy(self, definition: AttributeDefinition) -> Optional[AttributeTaxonomy]:
        try:
            taxonomy = self.catalog.find_attribute(definition.slug)
        except CatalogError as exc:
            self._log(f"❌ Error: {exc}", logging.ERROR)
            raise AttributeSetupError(f"Could not look up attribute '{definition.name}': {exc}") from exc

        if taxonomy is not None:
            self._log(f"  ✅ Attribute exists: {definition.name} ({taxonomy.taxonomy})")
            return taxonomy

        if self.dry_run:
            self._log(f"  [DRY RUN] Would create attribute taxonomy '{definition.name}' ({definition.taxonomy})")
            return None

        self._log(f"  ⏳ Creating attribute taxonomy '{definition.name}'...")
        try:
            taxonomy = self.catalog.create_attribute(definition.name, definition.slug)
        except CatalogError as exc:
            self._log(f"❌ Error: {exc}", logging.ERROR)
            raise AttributeSetupError(f"Failed to create attribute '{definition.name}': {exc}") from exc

        self._log(f"  ✅ Attribute created: {definition.name}")
        return taxonomy

    def _ensure_term(self, attribute: PreparedAttribute, value: str) -> Optional[AttributeTerm]:
        slug = slugify(value)

        if attribute.taxonomy is not None:
            try:
                term = self.catalog.find_term(attribute.taxonomy, slug)
            except CatalogError as exc:
                self._log(f"❌ Error: {exc}", logging.ERROR)
                raise AttributeSetupError(f"Could not look up term '{value}' in {attribute.taxonomy.taxonomy}: {exc}") from exc
            if term is not None:
                self._log(f"  ✅ Term exists: {value}")
                return term

        if self.dry_run:
            self._log(f"  [DRY RUN] Would create term: {value} ({slug})")
            return None

        try:
            term = self.catalog.create_term(attribute.taxonomy, value, slug)
        except CatalogError as exc:
            self._log(f"❌ Error: {exc}", logging.ERROR)
            raise AttributeSetupError(f"Failed to create term '{value}' in {attribute.definition.taxonomy}: {exc}") from exc

        self._log(f"  ✅ Term created: {value}")
        return term

    # ------------------------------------------------------------------
    # Step 3
    # ------------------------------------------------------------------

    def build_product_spec(self, sources: List[ResolvedSource], prepared: List[PreparedAttribute]) -> VariableProductSpec:
        settings = self.config.variable_product
        options = self.config.options
        first = sources[0].product

        description = settings.description
        if options.combine_descriptions:
            description = combine_descriptions(
                settings.name,
                settings.combined_intro,
                [(s.descriptor.display_label, s.product.description) for s in sources],
            )

        return VariableProductSpec(
            name=settings.name,
            slug=settings.slug,
            status=settings.status,
            short_description=settings.short_description,
            description=description,
            image_id=first.image_id if options.copy_images else None,
            category_ids=list(first.category_ids) if options.copy_categories else [],
            attributes=[
                ProductAttributeSpec(
                    attribute_id=attr.taxonomy.id if attr.taxonomy else 0,
                    name=attr.definition.taxonomy,
                    options=attr.options,
                    position=position,
                    visible=attr.definition.visible,
                    variation=attr.definition.variation,
                )
                for position, attr in enumerate(prepared)
            ],
        )

    def create_variable_product(self, sources: List[ResolvedSource], prepared: List[PreparedAttribute]) -> int:
        self._log("\n⏳ Creating variable product...")
        spec = self.build_product_spec(sources, prepared)

        if self.dry_run:
            self._log(f"  [DRY RUN] Would create variable product '{spec.name}' (slug: {spec.slug}, status: {spec.status})")
            return DRY_RUN_PRODUCT_ID

        product_id = self.catalog.create_variable_product(spec)
        self._log(f"✅ Variable product created (ID: {product_id})")
        return product_id

    # ------------------------------------------------------------------
    # Step 4
    # ------------------------------------------------------------------

    def variation_sku(self, product: CatalogProduct) -> str:
        """SKU the variation should carry; empty when none is copied."""
        policy = self.config.options.sku_policy
        if self.config.is_multi_attribute or not product.sku or policy == "none":
            return ""
        if policy == "suffix":
            return f"{product.sku}{SKU_VARIATION_SUFFIX}"
        return product.sku

    def build_variation_spec(self, source: ResolvedSource, prepared: List[PreparedAttribute]) -> VariationSpec:
        original = source.product
        descriptor = source.descriptor
        values = descriptor.values

        meta: Dict[str, str] = {}
        if descriptor.cart_description:
            description = descriptor.cart_description
            meta = {key: descriptor.cart_description for key in CART_DESCRIPTION_META_KEYS}
        elif original.short_description:
            description = f"{descriptor.display_label} - {original.short_description}"
        else:
            description = ""

        return VariationSpec(
            attributes={
                attr.taxonomy.id if attr.taxonomy else 0: slugify(values[attr.definition.slug])
                for attr in prepared
            },
            regular_price=original.regular_price,
            sale_price=original.sale_price or "",
            sku=self.variation_sku(original),
            stock_status=original.stock_status,
            manage_stock=original.manage_stock,
            stock_quantity=original.stock_quantity if original.manage_stock else None,
            image_id=original.image_id if self.config.options.copy_images else None,
            status="publish",
            description=description,
            meta_data=meta,
        )

    def create_variations(self, parent_id: int, sources: List[ResolvedSource], prepared: List[PreparedAttribute]) -> List[int]:
        self._log("\n⏳ Creating variations...")
        variation_ids = []

        for source in sources:
            label = source.descriptor.display_label
            spec = self.build_variation_spec(source, prepared)

            if self.dry_run:
                sku_note = f", SKU: {spec.sku}" if spec.sku else ""
                if spec.sku and spec.sku == source.product.sku:
                    temporary = f"{spec.sku}{SKU_TRANSFER_SUFFIX}-<new product id>"
                    self._log(f"  [DRY RUN] Would rename SKU {spec.sku} on product {source.product.id} to {temporary}")
                self._log(f"  [DRY RUN] Would create variation: {label}{sku_note}")
                continue

            if spec.sku and spec.sku == source.product.sku:
                variation_id = self._create_with_sku_transfer(parent_id, source.product, spec)
            else:
                variation_id = self.catalog.create_variation(parent_id, spec)

            variation_ids.append(variation_id)
            self._log(f"  ✅ Variation: {label} (ID: {variation_id}, {spec.regular_price or 'no price'})")

        return variation_ids

    def _create_with_sku_transfer(self, parent_id: int, original: CatalogProduct, spec: VariationSpec) -> int:
        """
        Move the source SKU onto the new variation.

        Phase 1 renames the source SKU so the store's uniqueness check passes,
        phase 2 creates the variation with the original SKU. Between the two
        calls neither product carries the SKU. If phase 2 fails the source SKU
        is restored before the error propagates.
        """
        sku = original.sku
        temporary = f"{sku}{SKU_TRANSFER_SUFFIX}-{parent_id}"
        self.catalog.update_product_sku(original.id, temporary)
        self._log(f"  ⏳ SKU {sku} released from product {original.id} (now {temporary})")

        try:
            return self.catalog.create_variation(parent_id, spec)
        except CatalogError:
            self._log(f"  ❌ Variation failed, restoring SKU {sku} on product {original.id}", logging.ERROR)
            self.catalog.update_product_sku(original.id, sku)
            raise

    # ------------------------------------------------------------------
    # Steps 5-6
    # ------------------------------------------------------------------

    def set_seo_meta(self, product_id: int) -> None:
        seo = self.config.seo
        if seo.is_empty:
            return

        if self.dry_run:
            self._log(f"\n[DRY RUN] Would set SEO meta (Rank Math + Yoast): {seo.title}")
            return

        self._log("\n⏳ Setting SEO meta...")
        self.catalog.update_product_meta(product_id, seo_meta(seo))
        self._log("✅ SEO meta set")

    def set_tags(self, product_id: int) -> None:
        tags = list(self.config.tags)
        if not tags or not self.config.options.copy_tags:
            return

        if self.dry_run:
            self._log(f"\n[DRY RUN] Would set tags: {', '.join(tags)}")
            return

        self._log("\n⏳ Setting product tags...")
        self.catalog.set_product_tags(product_id, tags)
        self._log(f"✅ Tags set: {', '.join(tags)}")

    def set_image_alt(self, product_id: int, sources: List[ResolvedSource]) -> None:
        options = self.config.options
        alt = self.config.seo.image_alt
        image_id = sources[0].product.image_id
        if not (options.set_image_alt and options.copy_images and alt and image_id):
            return

        if self.dry_run:
            self._log(f"\n[DRY RUN] Would set image alt text on image {image_id}: {alt}")
            return

        self.catalog.set_image_alt(product_id, image_id, alt)
        self._log(f"✅ Image alt text set: {alt}")

    # ------------------------------------------------------------------
    # Steps 7-8
    # ------------------------------------------------------------------

    def dispose_sources(self, sources: List[ResolvedSource]) -> List[int]:
        disposal = self.config.disposal
        if disposal is None:
            return []

        disposed = []
        if disposal == "delete":
            self._log("\n⏳ Deleting source products...")
            for source in sources:
                if self.dry_run:
                    self._log(f"  [DRY RUN] Would delete: {source.product.name}")
                    continue
                self.catalog.delete_product(source.product.id)
                disposed.append(source.product.id)
                self._log(f"  🗑️  Deleted: {source.product.name}")
        else:
            self._log("\n⏳ Setting source products to draft...")
            for source in sources:
                if self.dry_run:
                    self._log(f"  [DRY RUN] Would draft: {source.product.name}")
                    continue
                self.catalog.set_product_status(source.product.id, "draft")
                disposed.append(source.product.id)
                self._log(f"  📝 Drafted: {source.product.name}")

        return disposed

    def sync(self, product_id: int) -> None:
        if self.dry_run:
            self._log("\n[DRY RUN] Would sync variable product and clear caches")
            return
        self.catalog.sync_variable_product(product_id)

    def _log_summary(self, result: MergeResult) -> None:
        self._log("\n" + "=" * 60)
        self._log("🧪 DRY RUN COMPLETE" if result.dry_run else "🎉 SUCCESS!")
        self._log("=" * 60)
        if result.dry_run:
            self._log(f"\nVariations planned: {result.variation_count}")
        else:
            self._log(f"\nNew Product ID: {result.product_id}")
            self._log(f"Variations created: {result.variation_count}")
            self._log(f"URL: {result.permalink}")
            self._log(f"Admin: {result.admin_url}")
        if result.skipped:
            self._log(f"Skipped (not found): {', '.join(str(s) for s in result.skipped)}")
