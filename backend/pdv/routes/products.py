# Overview: Flask API routes for the product catalog; parses input and returns JSON responses.

# backend/pdv/routes/products.py
"""
Product catalog routes.

- GET /api/products: active catalog for the sale screen (any role)
- /api/admin/products: catalog management (MANAGE_CATALOG)

stock_on_hand is read-only here. Stock only changes through the ledger
(/api/stock/movements) or a sale.
"""
from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_auth, require_permission
from ..errors import PdvError
from ..services import catalog_service
from .common import error_response, json_body

products_bp = Blueprint("products", __name__, url_prefix="/api/products")
admin_products_bp = Blueprint("admin_products", __name__, url_prefix="/api/admin/products")


@products_bp.get("")
@require_auth
@require_permission("VIEW_CATALOG")
def list_catalog():
    """Active products ordered by name."""
    try:
        products = catalog_service.list_active_catalog()
        return jsonify([p.to_catalog_dict() for p in products]), 200
    except Exception:
        current_app.logger.exception("Failed to list catalog")
        return jsonify({"error": "Internal server error"}), 500


@admin_products_bp.get("")
@require_auth
@require_permission("MANAGE_CATALOG")
def list_products_route():
    """
    All products, including inactive ones.

    Query params:
    - include_inactive: "true" (default) | "false"
    """
    include_inactive = request.args.get("include_inactive", "true").lower() != "false"
    try:
        products = catalog_service.list_products(include_inactive=include_inactive)
        return jsonify([p.to_dict() for p in products]), 200
    except Exception:
        current_app.logger.exception("Failed to list products")
        return jsonify({"error": "Internal server error"}), 500


@admin_products_bp.get("/<int:product_id>")
@require_auth
@require_permission("MANAGE_CATALOG")
def get_product_route(product_id: int):
    try:
        product = catalog_service.get_product(product_id)
        return jsonify(product.to_dict()), 200
    except PdvError as e:
        return error_response(e)


@admin_products_bp.post("")
@require_auth
@require_permission("MANAGE_CATALOG")
def create_product_route():
    """
    Create a product.

    Body: {sku, name, price_cents, cost_cents?, image_url?, category?,
    is_active?, stock_on_hand?}. stock_on_hand is the opening quantity and is
    written to the ledger as an IN movement.
    """
    try:
        product = catalog_service.create_product(g.identity, json_body())
        return jsonify(product.to_dict()), 201
    except PdvError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create product")
        return jsonify({"error": "Internal server error"}), 500


@admin_products_bp.patch("/<int:product_id>")
@require_auth
@require_permission("MANAGE_CATALOG")
def update_product_route(product_id: int):
    """Partial update of catalog fields."""
    try:
        product = catalog_service.update_product(g.identity, product_id, json_body())
        return jsonify(product.to_dict()), 200
    except PdvError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update product %s", product_id)
        return jsonify({"error": "Internal server error"}), 500


@admin_products_bp.delete("/<int:product_id>")
@require_auth
@require_permission("MANAGE_CATALOG")
def delete_product_route(product_id: int):
    """
    Delete a product.

    Products with ledger or sale history are deactivated instead; the
    response says which happened.
    """
    try:
        result = catalog_service.delete_product(g.identity, product_id)
        return jsonify(result), 200
    except PdvError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to delete product %s", product_id)
        return jsonify({"error": "Internal server error"}), 500
