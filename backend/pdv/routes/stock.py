# Overview: Flask API routes for stock movements; parses input and returns JSON responses.

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_auth, require_permission
from ..errors import PdvError
from ..services import stock_service
from ..validation import coerce_int
from .common import error_response, json_body

stock_bp = Blueprint("stock", __name__, url_prefix="/api/stock")

MOVEMENTS_MAX_LIMIT = 500


@stock_bp.post("/movements")
@require_auth
@require_permission("MANAGE_STOCK")
def record_movement_route():
    """
    Record an operator stock movement.

    Body: {product_id, type: "IN" | "ADJUST", quantity, note?}
    - IN: quantity > 0
    - ADJUST: signed, non-zero; rejected if on-hand would go negative
    """
    try:
        data = json_body()
        movement = stock_service.adjust_stock(
            g.identity,
            product_id=data.get("product_id"),
            movement_type=data.get("type"),
            quantity=data.get("quantity"),
            note=data.get("note"),
        )
        on_hand = stock_service.current_on_hand(movement.product_id)
        return jsonify({"movement": movement.to_dict(), "stock_on_hand": on_hand}), 201
    except PdvError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to record stock movement")
        return jsonify({"error": "Internal server error"}), 500


@stock_bp.get("/movements")
@require_auth
@require_permission("MANAGE_STOCK")
def list_movements_route():
    """
    Ledger history, newest first.

    Query params:
    - product_id: int (optional)
    - limit: int (default 100, max 500)
    """
    try:
        product_id = request.args.get("product_id")
        product_id = coerce_int(product_id, "product_id") if product_id else None
        limit = request.args.get("limit")
        limit = coerce_int(limit, "limit") if limit else 100
        limit = max(1, min(limit, MOVEMENTS_MAX_LIMIT))

        movements = stock_service.list_movements(product_id=product_id, limit=limit)
        return jsonify([m.to_dict() for m in movements]), 200
    except PdvError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to list stock movements")
        return jsonify({"error": "Internal server error"}), 500
