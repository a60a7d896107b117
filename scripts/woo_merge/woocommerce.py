"""
WooCommerce REST API Client

``CatalogService`` implementation over ``/wp-json/wc/v3``.

API keys: WooCommerce > Settings > Advanced > REST API (Read/Write).
"""

import logging
from typing import Any, Dict, List, Optional

import requests
from requests.auth import HTTPBasicAuth

from .catalog import (
    AttributeTaxonomy,
    AttributeTerm,
    CatalogError,
    CatalogProduct,
    CatalogService,
    VariableProductSpec,
    VariationSpec,
)
from .config import StoreCredentials
from .text import slugify

log = logging.getLogger(__name__)


class WooCommerceClient(CatalogService):
    """
    Talks to a WooCommerce store through its REST API.

    Every non-2xx response raises CatalogError; nothing is retried.
    """

    def __init__(
        self,
        site_url: str,
        consumer_key: str,
        consumer_secret: str,
        timeout: int = 30,
        session: Optional[requests.Session] = None,
    ):
        self.site_url = site_url.rstrip("/")
        self.api_url = f"{self.site_url}/wp-json/wc/v3"
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.auth = HTTPBasicAuth(consumer_key, consumer_secret)
        self.session.headers.update({"Accept": "application/json"})

    @classmethod
    def from_credentials(cls, credentials: StoreCredentials) -> "WooCommerceClient":
        return cls(
            credentials.url,
            credentials.consumer_key,
            credentials.consumer_secret,
            timeout=credentials.timeout,
        )

    def get_api_url(self, endpoint: str) -> str:
        """Build full API URL."""
        return f"{self.api_url}/{endpoint.lstrip('/')}"

    def _request(
        self,
        method: str,
        endpoint: str,
        params: Optional[Dict] = None,
        payload: Optional[Dict] = None,
        allow_404: bool = False,
    ) -> Any:
        url = self.get_api_url(endpoint)
        log.debug("%s %s params=%s", method, url, params)
        try:
            response = self.session.request(method, url, params=params, json=payload, timeout=self.timeout)
        except requests.RequestException as exc:
            raise CatalogError(f"{method} {endpoint} failed: {exc}") from exc

        if allow_404 and response.status_code == 404:
            return None
        if response.status_code not in (200, 201):
            raise CatalogError(
                f"{method} {endpoint} returned {response.status_code}",
                status_code=response.status_code,
                body=response.text,
            )
        return response.json()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_product(self, product_id: int) -> Optional[CatalogProduct]:
        data = self._request("GET", f"products/{product_id}", allow_404=True)
        if not data:
            return None
        return CatalogProduct.from_api(data)

    def find_product_id_by_sku(self, sku: str) -> Optional[int]:
        products = self._request("GET", "products", params={"sku": sku, "status": "any"})
        for product in products or []:
            if product.get("sku") == sku:
                return int(product["id"])
        return None

    def find_attribute(self, slug: str) -> Optional[AttributeTaxonomy]:
        taxonomy = f"pa_{slug}"
        for attribute in self._request("GET", "products/attributes") or []:
            if attribute.get("slug") in (taxonomy, slug):
                return AttributeTaxonomy(id=int(attribute["id"]), name=attribute["name"], slug=attribute["slug"])
        return None

    def find_term(self, attribute: AttributeTaxonomy, slug: str) -> Optional[AttributeTerm]:
        terms = self._request(
            "GET",
            f"products/attributes/{attribute.id}/terms",
            params={"slug": slug, "hide_empty": False},
        )
        for term in terms or []:
            if term.get("slug") == slug:
                return AttributeTerm(id=int(term["id"]), name=term["name"], slug=term["slug"])
        return None

    def admin_url(self, product_id: int) -> str:
        return f"{self.site_url}/wp-admin/post.php?post={product_id}&action=edit"

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create_attribute(self, name: str, slug: str) -> AttributeTaxonomy:
        data = self._request("POST", "products/attributes", payload={
            "name": name,
            "slug": slug,
            "type": "select",
            "order_by": "menu_order",
            "has_archives": False,
        })
        return AttributeTaxonomy(id=int(data["id"]), name=data["name"], slug=data["slug"])

    def create_term(self, attribute: AttributeTaxonomy, name: str, slug: str) -> AttributeTerm:
        data = self._request(
            "POST",
            f"products/attributes/{attribute.id}/terms",
            payload={"name": name, "slug": slug},
        )
        return AttributeTerm(id=int(data["id"]), name=data["name"], slug=data["slug"])

    def create_variable_product(self, spec: VariableProductSpec) -> int:
        payload: Dict[str, Any] = {
            "type": "variable",
            "name": spec.name,
            "slug": spec.slug,
            "status": spec.status,
            "catalog_visibility": spec.catalog_visibility,
            "short_description": spec.short_description,
            "description": spec.description,
            "attributes": [
                {
                    "id": attr.attribute_id,
                    "position": attr.position,
                    "visible": attr.visible,
                    "variation": attr.variation,
                    "options": list(attr.options),
                }
                for attr in spec.attributes
            ],
        }
        if spec.image_id:
            payload["images"] = [{"id": spec.image_id}]
        if spec.category_ids:
            payload["categories"] = [{"id": cid} for cid in spec.category_ids]

        data = self._request("POST", "products", payload=payload)
        return int(data["id"])

    def create_variation(self, parent_id: int, spec: VariationSpec) -> int:
        payload: Dict[str, Any] = {
            "attributes": [{"id": attr_id, "option": option} for attr_id, option in spec.attributes.items()],
            "regular_price": spec.regular_price,
            "stock_status": spec.stock_status,
            "manage_stock": spec.manage_stock,
            "status": spec.status,
            "description": spec.description,
        }
        if spec.sale_price:
            payload["sale_price"] = spec.sale_price
        if spec.sku:
            payload["sku"] = spec.sku
        if spec.manage_stock and spec.stock_quantity is not None:
            payload["stock_quantity"] = spec.stock_quantity
        if spec.image_id:
            payload["image"] = {"id": spec.image_id}
        if spec.meta_data:
            payload["meta_data"] = [{"key": k, "value": v} for k, v in spec.meta_data.items()]

        data = self._request("POST", f"products/{parent_id}/variations", payload=payload)
        return int(data["id"])

    def update_product_sku(self, product_id: int, sku: str) -> None:
        self._request("PUT", f"products/{product_id}", payload={"sku": sku})

    def update_product_meta(self, product_id: int, meta: Dict[str, str]) -> None:
        self._request("PUT", f"products/{product_id}", payload={
            "meta_data": [{"key": k, "value": v} for k, v in meta.items()],
        })

    def _ensure_tag(self, name: str) -> int:
        slug = slugify(name)
        for tag in self._request("GET", "products/tags", params={"slug": slug}) or []:
            if tag.get("slug") == slug:
                return int(tag["id"])
        data = self._request("POST", "products/tags", payload={"name": name, "slug": slug})
        return int(data["id"])

    def set_product_tags(self, product_id: int, tags: List[str]) -> None:
        tag_ids = [self._ensure_tag(name) for name in tags]
        self._request("PUT", f"products/{product_id}", payload={"tags": [{"id": tid} for tid in tag_ids]})

    def set_image_alt(self, product_id: int, image_id: int, alt: str) -> None:
        # WooCommerce writes _wp_attachment_image_alt when an image entry carries "alt";
        # the list replaces the gallery, so only the featured image is sent.
        self._request("PUT", f"products/{product_id}", payload={"images": [{"id": image_id, "alt": alt}]})

    def set_product_status(self, product_id: int, status: str) -> None:
        self._request("PUT", f"products/{product_id}", payload={"status": status})

    def delete_product(self, product_id: int) -> None:
        self._request("DELETE", f"products/{product_id}", params={"force": True})

    def sync_variable_product(self, product_id: int) -> None:
        # An empty update re-saves the parent: WC_Product_Variable::sync runs and
        # the product transients are cleared.
        self._request("PUT", f"products/{product_id}", payload={})
