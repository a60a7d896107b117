"""Shared fixtures: an in-memory catalog and merge configs."""

from collections import defaultdict
from dataclasses import replace
from typing import Dict, List, Optional

import pytest

from woo_merge.catalog import (
    AttributeTaxonomy,
    AttributeTerm,
    CatalogError,
    CatalogProduct,
    CatalogService,
    VariableProductSpec,
    VariationSpec,
)
from woo_merge.config import config_from_dict


class FakeCatalog(CatalogService):
    """In-memory store. Every mutating call is recorded in ``calls``."""

    def __init__(self, products: Optional[List[CatalogProduct]] = None):
        self.products: Dict[int, CatalogProduct] = {p.id: p for p in products or []}
        self.attributes: Dict[str, AttributeTaxonomy] = {}
        self.terms: Dict[int, Dict[str, AttributeTerm]] = defaultdict(dict)
        self.variable_products: Dict[int, VariableProductSpec] = {}
        self.variations: Dict[int, Dict[int, VariationSpec]] = defaultdict(dict)
        self.meta: Dict[int, Dict[str, str]] = defaultdict(dict)
        self.tags: Dict[int, List[str]] = {}
        self.image_alts: Dict[int, str] = {}
        self.deleted: List[int] = []
        self.synced: List[int] = []
        self.calls: List[str] = []
        self.fail_on = set()
        self._next_id = 1000

    def _new_id(self) -> int:
        self._next_id += 1
        return self._next_id

    def _record(self, name: str) -> None:
        self.calls.append(name)
        if name in self.fail_on:
            raise CatalogError(f"{name} failed", status_code=500, body="boom")

    def _sku_in_use(self, sku: str) -> bool:
        if any(p.sku == sku for p in self.products.values()):
            return True
        return any(v.sku == sku for children in self.variations.values() for v in children.values())

    # Reads

    def get_product(self, product_id):
        if product_id in self.products:
            return replace(self.products[product_id])
        if product_id in self.variable_products:
            spec = self.variable_products[product_id]
            return CatalogProduct(
                id=product_id,
                name=spec.name,
                type="variable",
                status=spec.status,
                permalink=f"https://shop.test/product/{spec.slug}/",
            )
        return None

    def find_product_id_by_sku(self, sku):
        for product in self.products.values():
            if product.sku == sku:
                return product.id
        return None

    def find_attribute(self, slug):
        return self.attributes.get(slug)

    def find_term(self, attribute, slug):
        return self.terms[attribute.id].get(slug)

    def admin_url(self, product_id):
        return f"https://shop.test/wp-admin/post.php?post={product_id}&action=edit"

    # Writes

    def create_attribute(self, name, slug):
        self._record("create_attribute")
        attribute = AttributeTaxonomy(id=self._new_id(), name=name, slug=f"pa_{slug}")
        self.attributes[slug] = attribute
        return attribute

    def create_term(self, attribute, name, slug):
        self._record("create_term")
        if slug in self.terms[attribute.id]:
            raise CatalogError("term_exists", status_code=400)
        term = AttributeTerm(id=self._new_id(), name=name, slug=slug)
        self.terms[attribute.id][slug] = term
        return term

    def create_variable_product(self, spec):
        self._record("create_variable_product")
        product_id = self._new_id()
        self.variable_products[product_id] = spec
        return product_id

    def create_variation(self, parent_id, spec):
        self._record("create_variation")
        if spec.sku and self._sku_in_use(spec.sku):
            raise CatalogError(f"Invalid or duplicated SKU: {spec.sku}", status_code=400)
        variation_id = self._new_id()
        self.variations[parent_id][variation_id] = spec
        return variation_id

    def update_product_sku(self, product_id, sku):
        self._record("update_product_sku")
        self.products[product_id] = replace(self.products[product_id], sku=sku)

    def update_product_meta(self, product_id, meta):
        self._record("update_product_meta")
        self.meta[product_id].update(meta)

    def set_product_tags(self, product_id, tags):
        self._record("set_product_tags")
        self.tags[product_id] = list(tags)

    def set_image_alt(self, product_id, image_id, alt):
        self._record("set_image_alt")
        self.image_alts[image_id] = alt

    def set_product_status(self, product_id, status):
        self._record("set_product_status")
        self.products[product_id] = replace(self.products[product_id], status=status)

    def delete_product(self, product_id):
        self._record("delete_product")
        del self.products[product_id]
        self.deleted.append(product_id)

    def sync_variable_product(self, product_id):
        self._record("sync_variable_product")
        self.synced.append(product_id)


def make_product(product_id, name, sku="", price="2.49", **kwargs) -> CatalogProduct:
    defaults = dict(
        regular_price=price,
        stock_status="instock",
        image_id=product_id + 5000,
        category_ids=[15, 27],
        short_description=f"{name} kurz",
        description=f"<p>{name} Beschreibung</p>",
    )
    defaults.update(kwargs)
    return CatalogProduct(id=product_id, name=name, sku=sku, **defaults)


@pytest.fixture
def flavor_products():
    return [
        make_product(43894, "ARO Orange 2L", sku="ARO-ORANGE-2L", sale_price="1.99"),
        make_product(43893, "ARO Zitrone 2L", sku="ARO-ZITRONE-2L", manage_stock=True, stock_quantity=12),
    ]


@pytest.fixture
def size_flavor_products():
    return [
        make_product(44882, "KAS Orange 1L", sku="KAS-O-1"),
        make_product(44883, "KAS Zitrone 1L", sku="KAS-Z-1"),
        make_product(44885, "KAS Orange 0,5L", sku="KAS-O-05"),
        make_product(44884, "KAS Zitrone 0,5L", sku="KAS-Z-05"),
    ]


@pytest.fixture
def flavor_config_data():
    return {
        "source_products": [
            {"id": 43894, "variation_value": "Orange", "variation_label": "🍊 Orange"},
            {"id": 43893, "variation_value": "Zitrone", "variation_label": "🍋 Zitrone"},
        ],
        "variable_product": {
            "name": "ARO Limonade 2L",
            "slug": "aro-limonade-2l",
            "short_description": "Erfrischende ARO Limonade",
            "status": "publish",
        },
        "attribute": {"name": "Geschmack", "slug": "geschmack"},
        "seo": {
            "focus_keyword": "ARO Limonade",
            "title": "ARO Limonade 2L kaufen",
            "description": "ARO Limonade im 2L Format",
        },
        "options": {"auto_delete_config": False},
    }


@pytest.fixture
def size_flavor_config_data():
    return {
        "source_products": [
            {"id": 44882, "attributes": {"groesse": "12x1L", "geschmack": "Orange"},
             "cart_description": "KAS Orange 1L - Klassisch!"},
            {"id": 44883, "attributes": {"groesse": "12x1L", "geschmack": "Zitrone"}},
            {"id": 44885, "attributes": {"groesse": "12x0,5L", "geschmack": "Orange"}},
            {"id": 44884, "attributes": {"groesse": "12x0,5L", "geschmack": "Zitrone"}},
        ],
        "variable_product": {
            "name": "KAS Limonade PET-Flaschen",
            "slug": "kas-limonade-pet-flaschen",
            "description": "<h2>KAS Limonade PET-Flaschen</h2>",
        },
        "attributes": [
            {"name": "Größe", "slug": "groesse"},
            {"name": "Geschmack", "slug": "geschmack"},
        ],
        "seo": {
            "focus_keyword": "KAS Limonade PET",
            "title": "KAS Limonade PET | Alle Größen",
            "description": "KAS Limonade PET-Flaschen",
            "image_alt": "KAS Limonade PET-Flaschen verschiedene Größen",
        },
        "tags": ["KAS", "Limonade", "PET"],
        "options": {"draft_source_products": True, "auto_delete_config": False},
    }


@pytest.fixture
def flavor_config(flavor_config_data):
    return config_from_dict(flavor_config_data)


@pytest.fixture
def size_flavor_config(size_flavor_config_data):
    return config_from_dict(size_flavor_config_data)
