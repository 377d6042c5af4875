# backend/pdv/services/catalog_service.py
"""
Catalog Service

Products are created and edited here (price, name, metadata, active flag).
stock_on_hand is NOT a catalog field: initial stock is written as an IN
movement through stock_service in the same unit of work as the product row,
and every later change goes through the ledger.
"""
from __future__ import annotations

from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..errors import DuplicateSkuError, ProductNotFoundError
from ..extensions import db
from ..models import Product, SaleItem, StockMovement
from ..permissions import require_permission
from ..validation import ModelValidationPolicy, enforce_rules_product, validate_payload
from pdv.time_utils import utcnow
from .concurrency import lock_for_update, run_in_transaction
from .stock_service import apply_movement

PRODUCT_MUTABLE_FIELDS = {"sku", "name", "price_cents", "cost_cents", "is_active", "image_url", "category"}

PRODUCT_CREATE_POLICY = ModelValidationPolicy(
    writable_fields=PRODUCT_MUTABLE_FIELDS,
    required_on_create={"sku", "name", "price_cents"},
    extra_fields={"stock_on_hand": int},
)

PRODUCT_UPDATE_POLICY = ModelValidationPolicy(writable_fields=PRODUCT_MUTABLE_FIELDS)


def apply_product_patch(p: Product, patch: dict) -> None:
    for k, v in patch.items():
        if k not in PRODUCT_MUTABLE_FIELDS:
            continue
        setattr(p, k, v)


def sku_exists(sku: str, exclude_id: int | None = None) -> bool:
    query = db.session.query(Product.id).filter(Product.sku == sku)
    if exclude_id is not None:
        query = query.filter(Product.id != exclude_id)
    return query.first() is not None


def list_active_catalog() -> list[Product]:
    """Catalog query surface for the sale UI: active products by name."""
    return (
        db.session.query(Product)
        .filter(Product.is_active.is_(True))
        .order_by(Product.name.asc(), Product.id.asc())
        .all()
    )


def list_products(include_inactive: bool = True) -> list[Product]:
    query = db.session.query(Product)
    if not include_inactive:
        query = query.filter(Product.is_active.is_(True))
    return query.order_by(Product.name.asc(), Product.id.asc()).all()


def get_product(product_id: int) -> Product:
    product = db.session.get(Product, product_id)
    if product is None:
        raise ProductNotFoundError(product_id)
    return product


def create_product(actor, payload: dict) -> Product:
    """
    Create a product from a raw payload.

    Optional "stock_on_hand" is the opening quantity; it is recorded as an
    IN movement so the ledger sum matches from the first row.
    """
    require_permission(actor, "MANAGE_CATALOG")
    patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_CREATE_POLICY, partial=False)
    enforce_rules_product(patch)
    opening_stock = patch.pop("stock_on_hand", 0) or 0

    def _op():
        if sku_exists(patch["sku"]):
            raise DuplicateSkuError(patch["sku"])

        now = utcnow()
        product = Product(stock_on_hand=0, is_active=True, created_at=now, updated_at=now)
        apply_product_patch(product, patch)
        db.session.add(product)
        try:
            db.session.flush()
        except IntegrityError as exc:
            raise DuplicateSkuError(patch["sku"]) from exc

        if opening_stock > 0:
            apply_movement(
                product_id=product.id,
                movement_type="IN",
                quantity=opening_stock,
                note="Initial stock",
                actor_user_id=actor.user_id,
            )
        return product

    product = run_in_transaction(_op)
    current_app.logger.info("Product %s (%s) created by %s", product.id, product.sku, actor.user_id)
    return product


def update_product(actor, product_id: int, payload: dict) -> Product:
    """
    Partial update of catalog fields. stock_on_hand is rejected here; use
    stock adjustments instead.
    """
    require_permission(actor, "MANAGE_CATALOG")
    patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_UPDATE_POLICY, partial=True)
    enforce_rules_product(patch)

    def _op():
        product = lock_for_update(db.session.query(Product).filter(Product.id == product_id)).first()
        if product is None:
            raise ProductNotFoundError(product_id)
        if "sku" in patch and sku_exists(patch["sku"], exclude_id=product_id):
            raise DuplicateSkuError(patch["sku"])
        apply_product_patch(product, patch)
        product.updated_at = utcnow()
        try:
            db.session.flush()
        except IntegrityError as exc:
            raise DuplicateSkuError(patch.get("sku", product.sku)) from exc
        return product

    return run_in_transaction(_op)


def delete_product(actor, product_id: int) -> dict:
    """
    Delete a product that has never moved stock or been sold; otherwise
    deactivate it so the ledger and sale history keep their references.
    """
    require_permission(actor, "MANAGE_CATALOG")

    def _op():
        product = lock_for_update(db.session.query(Product).filter(Product.id == product_id)).first()
        if product is None:
            raise ProductNotFoundError(product_id)

        referenced = (
            db.session.query(StockMovement.id).filter(StockMovement.product_id == product_id).first() is not None
            or db.session.query(SaleItem.id).filter(SaleItem.product_id == product_id).first() is not None
        )
        if referenced:
            product.is_active = False
            product.updated_at = utcnow()
            return {"product_id": product_id, "deleted": False, "deactivated": True}

        db.session.delete(product)
        return {"product_id": product_id, "deleted": True, "deactivated": False}

    result = run_in_transaction(_op)
    current_app.logger.info("Product %s removed by %s: %s", product_id, actor.user_id, result)
    return result
