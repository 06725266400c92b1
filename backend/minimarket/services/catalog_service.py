# Overview: Catalog writes (store first, cache second) and the product list filters.

from __future__ import annotations

import json
import logging
import uuid
from dataclasses import replace
from typing import Optional

from ..codec import to_wire_keys
from ..models import Product, ProductRecord, compute_profit_percentage
from ..state import AddProduct, DeleteProduct, StateContainer, UpdateProduct
from ..validation import (
    ConflictError,
    ModelValidationPolicy,
    ValidationError,
    enforce_rules_product,
    validate_payload,
)

logger = logging.getLogger(__name__)


PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={
        "code",
        "name",
        "description",
        "category",
        "brand",
        "cost_price",
        "sale_price",
        "current_stock",
        "min_stock",
        "max_stock",
        "expiration_date",
        "image_url",
    },
    required_on_create={"code", "name", "cost_price", "sale_price"},
)

STOCK_STATUSES = ("all", "low", "normal", "high")


def _wire_payload(payload) -> dict:
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    try:
        return to_wire_keys(payload)
    except KeyError as e:
        raise ValidationError(f"Unknown field: {e.args[0]}")


OPTIONAL_TEXT = ("description", "category", "brand")


def _blank_text(patch: dict) -> dict:
    """Optional text fields are stored as empty strings, never null."""
    for key in OPTIONAL_TEXT:
        if key in patch and patch[key] is None:
            patch[key] = ""
    return patch


def _snapshot(product: Product) -> str:
    return json.dumps(product.to_dict())


def stock_status(product: Product) -> str:
    if product.current_stock <= product.min_stock:
        return "low"
    if product.current_stock >= product.max_stock:
        return "high"
    return "normal"


class CatalogService:
    """
    Product writes for one app.

    WHY: the Product Store is authoritative. The local cache is touched only
    after the store call returned, so a failed call leaves it as it was.
    """

    def __init__(self, store, container: StateContainer):
        self.store = store
        self.container = container

    @property
    def cache(self):
        return self.container.products

    def refresh(self) -> list[Product]:
        products = self.store.list()
        self.cache.load(products)
        logger.info("Loaded %d products from the Product Store", len(products))
        return products

    def add_product(self, payload: dict) -> Product:
        patch = _blank_text(validate_payload(
            model=ProductRecord,
            payload=_wire_payload(payload),
            policy=PRODUCT_POLICY,
            partial=False,
        ))
        row = {
            "description": "",
            "category": "",
            "brand": "",
            "current_stock": 0,
            "min_stock": 0,
            "max_stock": 0,
            "expiration_date": None,
            "image_url": None,
            **patch,
        }
        enforce_rules_product(row)
        self._check_code_free(row["code"])

        now = self.container.now()
        product = Product(
            id=str(uuid.uuid4()),
            profit_percentage=compute_profit_percentage(row["cost_price"], row["sale_price"]),
            created_at=now,
            updated_at=now,
            **row,
        )

        saved = self.store.insert(product)
        self.container.dispatch(AddProduct(saved))
        self.container.audit("CREATE", "product", saved.id, f"Producto creado: {saved.name}", new_value=_snapshot(saved))
        return saved

    def update_product(self, product_id: str, payload: dict) -> Product:
        current = self.cache.get(product_id) or self.store.get(product_id)
        if current is None:
            raise ValidationError("Product not found")

        patch = _blank_text(validate_payload(
            model=ProductRecord,
            payload=_wire_payload(payload),
            policy=PRODUCT_POLICY,
            partial=True,
        ))
        merged = replace(current, **patch)
        enforce_rules_product({
            "cost_price": merged.cost_price,
            "sale_price": merged.sale_price,
            "current_stock": merged.current_stock,
            "min_stock": merged.min_stock,
            "max_stock": merged.max_stock,
        })
        if "code" in patch:
            self._check_code_free(merged.code, exclude_id=product_id)

        merged = replace(
            merged,
            profit_percentage=compute_profit_percentage(merged.cost_price, merged.sale_price),
            updated_at=self.container.now(),
        )

        saved = self.store.update(merged)
        self.container.dispatch(UpdateProduct(saved))
        self.container.audit(
            "UPDATE",
            "product",
            saved.id,
            f"Producto actualizado: {saved.name}",
            old_value=_snapshot(current),
            new_value=_snapshot(saved),
        )
        return saved

    def delete_product(self, product_id: str) -> None:
        current = self.cache.get(product_id)
        self.store.delete(product_id)
        self.container.dispatch(DeleteProduct(product_id))
        self.container.audit(
            "DELETE",
            "product",
            product_id,
            f"Producto eliminado: {current.name if current else product_id}",
            old_value=_snapshot(current) if current else None,
        )

    def filter_products(
        self,
        *,
        search: str = "",
        category: str = "all",
        status: str = "all",
    ) -> list[Product]:
        return filter_products(self.cache.snapshot(), search=search, category=category, status=status)

    def categories(self) -> list[str]:
        return categories(self.cache.snapshot())

    def _check_code_free(self, code: str, exclude_id: Optional[str] = None) -> None:
        for product in self.cache.snapshot():
            if product.code == code and product.id != exclude_id:
                raise ConflictError(f"Product code '{code}' already exists")


def filter_products(products, *, search: str = "", category: str = "all", status: str = "all") -> list[Product]:
    """Search over name / code / brand, then category, then stock status."""
    if status not in STOCK_STATUSES:
        raise ValidationError(f"status must be one of: {', '.join(STOCK_STATUSES)}")

    term = (search or "").strip().lower()
    result = []
    for product in products:
        if term and not (
            term in product.name.lower()
            or term in product.code.lower()
            or term in product.brand.lower()
        ):
            continue
        if category and category != "all" and product.category != category:
            continue
        if status != "all" and stock_status(product) != status:
            continue
        result.append(product)
    return result


def categories(products) -> list[str]:
    """Distinct non-empty categories in first-seen order."""
    seen = []
    for product in products:
        if product.category and product.category not in seen:
            seen.append(product.category)
    return seen
