# Overview: Flask API routes for sales operations; parses input and returns JSON responses.

# backend/pdv/routes/sales.py
"""Sales API routes with permission enforcement"""

from flask import Blueprint, request, jsonify, g
from flask import current_app

from ..decorators import require_auth, require_permission
from ..errors import PdvError, ValidationError
from ..services import sales_service
from ..validation import coerce_int
from .common import error_response, json_body


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")
admin_sales_bp = Blueprint("admin_sales", __name__, url_prefix="/api/admin/sales")


@sales_bp.post("")
@require_auth
@require_permission("CREATE_SALE")
def create_sale_route():
    """
    Create a PAID sale in one atomic unit of work.

    Body: {payment_method: PIX|CASH|CARD, buyer_name?, items: [{product_id, qty}]}

    Requires: CREATE_SALE permission
    Available to: ADMIN, CAIXA
    """
    try:
        data = json_body()
        sale = sales_service.create_sale(
            g.identity,
            data.get("payment_method"),
            data.get("items"),
            buyer_name=data.get("buyer_name"),
        )
        return jsonify({"sale": sale.to_dict()}), 201

    except PdvError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create sale")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.get("/mine")
@require_auth
def my_sales_route():
    """The caller's own sales, newest first."""
    try:
        sales = sales_service.list_sales_for_seller(g.identity.user_id)
        return jsonify([sale.to_dict() for sale in sales]), 200
    except Exception:
        current_app.logger.exception("Failed to list sales")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.get("/<int:sale_id>")
@require_auth
def get_sale_route(sale_id: int):
    """Sale detail; the seller or a report viewer only."""
    try:
        sale = sales_service.get_sale(sale_id, g.identity)
        return jsonify({"sale": sale.to_dict()}), 200
    except PdvError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to load sale %s", sale_id)
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.patch("/<int:sale_id>")
@require_auth
def edit_sale_route(sale_id: int):
    """
    Edit buyer_name and/or payment_method.

    Only the original seller, only while the sale is PAID. Any other key is
    rejected: items and prices are immutable.
    """
    try:
        data = json_body()
        unknown = sorted(set(data) - {"buyer_name", "payment_method"})
        if unknown:
            raise ValidationError(f"Field not allowed: {', '.join(unknown)}")

        sale = sales_service.edit_sale(
            sale_id,
            g.identity,
            buyer_name=data.get("buyer_name") if "buyer_name" in data else sales_service.UNSET,
            payment_method=data.get("payment_method") if "payment_method" in data else sales_service.UNSET,
        )
        return jsonify({"sale": sale.to_dict()}), 200

    except PdvError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to edit sale %s", sale_id)
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.post("/<int:sale_id>/cancel")
@require_auth
def cancel_sale_route(sale_id: int):
    """
    Cancel a sale and return its items to stock.

    Only the original seller. Canceling twice answers 409.
    """
    try:
        sale = sales_service.cancel_sale(sale_id, g.identity)
        return jsonify({"sale": sale.to_dict()}), 200

    except PdvError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to cancel sale %s", sale_id)
        return jsonify({"error": "Internal server error"}), 500


@admin_sales_bp.get("")
@require_auth
@require_permission("VIEW_REPORTS")
def recent_sales_route():
    """
    Most recent sales across sellers.

    Query params:
    - take: int (default 20, max 100)
    """
    try:
        take = request.args.get("take")
        take = coerce_int(take, "take") if take else None
        sales = sales_service.list_recent_sales(take)
        return jsonify([sale.to_dict() for sale in sales]), 200
    except PdvError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to list recent sales")
        return jsonify({"error": "Internal server error"}), 500
