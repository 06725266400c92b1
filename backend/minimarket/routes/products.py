# Overview: Flask API routes for catalog operations; parses input and returns JSON responses.

# backend/minimarket/routes/products.py
"""
Product catalog routes.

SECURITY:
- Any logged-in user can read the catalog (the register needs it)
- Writes and the kardex need the `products` view (admin, supervisor)

Writes go to the Product Store first; the local cache only changes after
the store call succeeded.
"""

from flask import Blueprint, g, jsonify, request

from ..decorators import require_login, require_view

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
@require_login
def list_products_route():
    """
    List products, newest first.

    Query params:
    - search: str (optional) - matches name, code or brand
    - category: str (optional, default "all")
    - status: all | low | normal | high (optional)
    """
    products = g.runtime.catalog.filter_products(
        search=request.args.get("search", ""),
        category=request.args.get("category", "all"),
        status=request.args.get("status", "all"),
    )
    return jsonify({
        "items": [p.to_dict() for p in products],
        "count": len(products),
    })


@products_bp.get("/categories")
@require_login
def list_categories_route():
    return jsonify({"categories": g.runtime.catalog.categories()})


@products_bp.get("/<product_id>")
@require_login
def get_product_route(product_id: str):
    product = g.runtime.cache.get(product_id)
    if product is None:
        return jsonify({"error": "Product not found"}), 404
    return jsonify(product.to_dict())


@products_bp.post("")
@require_login
@require_view("products")
def create_product_route():
    """
    Create a product.

    Body uses the client's camelCase keys (code, name, costPrice,
    salePrice, currentStock, ...). Sale price must exceed cost price.
    """
    payload = request.get_json(silent=True) or {}
    created = g.runtime.catalog.add_product(payload)
    return jsonify(created.to_dict()), 201


@products_bp.put("/<product_id>")
@require_login
@require_view("products")
def update_product_route(product_id: str):
    payload = request.get_json(silent=True) or {}
    if g.runtime.cache.get(product_id) is None:
        return jsonify({"error": "Product not found"}), 404
    updated = g.runtime.catalog.update_product(product_id, payload)
    return jsonify(updated.to_dict())


@products_bp.delete("/<product_id>")
@require_login
@require_view("products")
def delete_product_route(product_id: str):
    if g.runtime.cache.get(product_id) is None:
        return jsonify({"error": "Product not found"}), 404
    g.runtime.catalog.delete_product(product_id)
    return jsonify({"ok": True})


@products_bp.get("/<product_id>/kardex")
@require_login
@require_view("products")
def product_kardex_route(product_id: str):
    """Stock movements for one product, newest first."""
    entries = [
        e for e in g.runtime.container.state.kardex_entries
        if e.product_id == product_id
    ]
    entries.sort(key=lambda e: e.created_at, reverse=True)
    return jsonify({"items": [e.to_dict() for e in entries]})
