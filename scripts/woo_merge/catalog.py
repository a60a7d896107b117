"""
Catalog Service Interface

The narrow set of store operations the merger needs. ``WooCommerceClient``
implements it over the REST API; tests use an in-memory implementation.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, List, Optional


class CatalogError(Exception):
    """A store call failed."""

    def __init__(self, message: str, status_code: Optional[int] = None, body: str = ""):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


@dataclass
class CatalogProduct:
    """A product as read from the store."""
    id: int
    name: str
    sku: str = ""
    type: str = "simple"
    status: str = "publish"
    regular_price: str = ""
    sale_price: str = ""
    stock_status: str = "instock"
    manage_stock: bool = False
    stock_quantity: Optional[int] = None
    image_id: Optional[int] = None
    category_ids: List[int] = field(default_factory=list)
    short_description: str = ""
    description: str = ""
    permalink: str = ""

    @classmethod
    def from_api(cls, data: Dict) -> "CatalogProduct":
        """Create CatalogProduct from a WooCommerce REST product payload."""
        images = data.get("images") or []
        return cls(
            id=int(data["id"]),
            name=data.get("name", ""),
            sku=data.get("sku") or "",
            type=data.get("type", "simple"),
            status=data.get("status", "publish"),
            regular_price=data.get("regular_price") or "",
            sale_price=data.get("sale_price") or "",
            stock_status=data.get("stock_status", "instock"),
            manage_stock=bool(data.get("manage_stock")),
            stock_quantity=data.get("stock_quantity"),
            image_id=images[0].get("id") if images else None,
            category_ids=[c["id"] for c in data.get("categories") or []],
            short_description=data.get("short_description") or "",
            description=data.get("description") or "",
            permalink=data.get("permalink") or "",
        )


@dataclass
class AttributeTaxonomy:
    """A global product attribute (``pa_<slug>``)."""
    id: int
    name: str
    slug: str

    @property
    def taxonomy(self) -> str:
        return self.slug if self.slug.startswith("pa_") else f"pa_{self.slug}"


@dataclass
class AttributeTerm:
    """One allowed value of an attribute taxonomy."""
    id: int
    name: str
    slug: str


@dataclass
class ProductAttributeSpec:
    """An attribute attached to the variable product."""
    attribute_id: int
    name: str
    options: List[str]
    position: int = 0
    visible: bool = True
    variation: bool = True


@dataclass
class VariableProductSpec:
    """Everything needed to create the parent variable product."""
    name: str
    slug: str
    status: str
    short_description: str = ""
    description: str = ""
    catalog_visibility: str = "visible"
    image_id: Optional[int] = None
    category_ids: List[int] = field(default_factory=list)
    attributes: List[ProductAttributeSpec] = field(default_factory=list)


@dataclass
class VariationSpec:
    """Everything needed to create one variation."""
    attributes: Dict[int, str]  # attribute id -> term slug
    regular_price: str = ""
    sale_price: str = ""
    sku: str = ""
    stock_status: str = "instock"
    manage_stock: bool = False
    stock_quantity: Optional[int] = None
    image_id: Optional[int] = None
    status: str = "publish"
    description: str = ""
    meta_data: Dict[str, str] = field(default_factory=dict)


class CatalogService(ABC):
    """Store operations used by ``ProductMerger``."""

    # Reads

    @abstractmethod
    def get_product(self, product_id: int) -> Optional[CatalogProduct]:
        """Return the product or None when it does not exist."""

    @abstractmethod
    def find_product_id_by_sku(self, sku: str) -> Optional[int]:
        """Return the id of the product carrying ``sku``, or None."""

    @abstractmethod
    def find_attribute(self, slug: str) -> Optional[AttributeTaxonomy]:
        """Return the global attribute with ``slug`` (without ``pa_``), or None."""

    @abstractmethod
    def find_term(self, attribute: AttributeTaxonomy, slug: str) -> Optional[AttributeTerm]:
        """Return the term with ``slug`` in ``attribute``, or None."""

    # Writes

    @abstractmethod
    def create_attribute(self, name: str, slug: str) -> AttributeTaxonomy:
        ...

    @abstractmethod
    def create_term(self, attribute: AttributeTaxonomy, name: str, slug: str) -> AttributeTerm:
        ...

    @abstractmethod
    def create_variable_product(self, spec: VariableProductSpec) -> int:
        ...

    @abstractmethod
    def create_variation(self, parent_id: int, spec: VariationSpec) -> int:
        ...

    @abstractmethod
    def update_product_sku(self, product_id: int, sku: str) -> None:
        ...

    @abstractmethod
    def update_product_meta(self, product_id: int, meta: Dict[str, str]) -> None:
        ...

    @abstractmethod
    def set_product_tags(self, product_id: int, tags: List[str]) -> None:
        ...

    @abstractmethod
    def set_image_alt(self, product_id: int, image_id: int, alt: str) -> None:
        ...

    @abstractmethod
    def set_product_status(self, product_id: int, status: str) -> None:
        ...

    @abstractmethod
    def delete_product(self, product_id: int) -> None:
        """Delete permanently, bypassing the trash."""

    @abstractmethod
    def sync_variable_product(self, product_id: int) -> None:
        """Recompute price/stock aggregates and drop cached representations."""

    def admin_url(self, product_id: int) -> str:
        return ""
