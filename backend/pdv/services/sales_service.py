"""
Sale Transaction Engine

Creates a multi-item sale against finite stock as ONE atomic unit of work,
cancels it with compensating IN movements, and allows restricted edits.

Concurrency model:
- The whole check-and-decrement runs inside run_in_transaction(): SQLite
  takes the database write lock up front (BEGIN IMMEDIATE); other dialects
  lock the product rows with SELECT ... FOR UPDATE in ascending id order.
- Every decrement is a conditional UPDATE (stock_service.apply_movement);
  its affected-row count is authoritative, so two racing checkouts can never
  both consume the same units even if a lock were missing.
- Any failure rolls back the Sale, its items and every ledger row together.
"""

from __future__ import annotations

import secrets
import string

from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..errors import (
    DuplicateSaleCodeError,
    ForbiddenError,
    InsufficientStockError,
    InvalidStateError,
    ProductNotFoundError,
    SaleNotFoundError,
    ValidationError,
    WouldGoNegativeError,
)
from ..extensions import db
from ..models import Product, Sale, SaleItem
from ..permissions import has_permission, require_permission
from ..validation import parse_buyer_name, parse_cart, parse_payment_method
from pdv.time_utils import utcnow
from .concurrency import lock_for_update, run_in_transaction
from .stock_service import apply_movement

CODE_ALPHABET = string.digits + string.ascii_uppercase
CODE_SUFFIX_LENGTH = 5

# Sentinel for "field not provided" in edit_sale
UNSET = object()


class _SaleCodeTaken(Exception):
    """Internal: the generated code hit the unique constraint at flush."""


def generate_sale_code(prefix: str | None = None) -> str:
    """Human-readable code: PREFIX-YYYYMMDD-XXXXX."""
    if prefix is None:
        prefix = current_app.config["SALE_CODE_PREFIX"]
    suffix = "".join(secrets.choice(CODE_ALPHABET) for _ in range(CODE_SUFFIX_LENGTH))
    return f"{prefix}-{utcnow():%Y%m%d}-{suffix}"


def _load_products_locked(product_ids: list[int]) -> dict[int, Product]:
    """Active products only, locked in ascending id order to avoid deadlocks."""
    query = (
        db.session.query(Product)
        .filter(Product.id.in_(product_ids), Product.is_active.is_(True))
        .order_by(Product.id.asc())
    )
    return {p.id: p for p in lock_for_update(query).all()}


def _validate_stock(lines, products: dict[int, Product]) -> None:
    # Every check happens before the first write
    requested: dict[int, int] = {}
    for line in lines:
        if line.product_id not in products:
            raise ProductNotFoundError(line.product_id)
        requested[line.product_id] = requested.get(line.product_id, 0) + line.quantity

    for product_id, qty in requested.items():
        on_hand = products[product_id].stock_on_hand
        if on_hand < qty:
            raise InsufficientStockError(product_id, requested=qty, on_hand=on_hand)


def _create_sale_locked(seller, payment_method: str, buyer_name: str | None, lines) -> Sale:
    products = _load_products_locked(sorted({line.product_id for line in lines}))
    _validate_stock(lines, products)

    items = []
    for line in lines:
        unit_price = products[line.product_id].price_cents
        items.append(
            SaleItem(
                product_id=line.product_id,
                quantity=line.quantity,
                unit_price_cents=unit_price,
                total_cents=unit_price * line.quantity,
            )
        )

    code = generate_sale_code()
    if db.session.query(Sale.id).filter(Sale.code == code).first() is not None:
        raise _SaleCodeTaken(code)

    now = utcnow()
    sale = Sale(
        code=code,
        seller_user_id=seller.user_id,
        payment_method=payment_method,
        buyer_name=buyer_name,
        total_cents=sum(item.total_cents for item in items),
        status="PAID",
        created_at=now,
        updated_at=now,
    )
    sale.items = items
    db.session.add(sale)
    try:
        db.session.flush()
    except IntegrityError as exc:
        if "code" not in str(exc.orig).lower():
            raise
        raise _SaleCodeTaken(code) from exc

    for item in items:
        try:
            apply_movement(
                product_id=item.product_id,
                movement_type="OUT",
                quantity=item.quantity,
                note=f"Sale {sale.code}",
                actor_user_id=seller.user_id,
            )
        except WouldGoNegativeError as exc:
            # A concurrent writer won the race; the conditional update is authoritative
            raise InsufficientStockError(item.product_id, requested=item.quantity) from exc

    return sale


def create_sale(seller, payment_method, items, buyer_name=None) -> Sale:
    """
    Validate a cart and atomically commit it as a PAID sale.

    Input validation happens before any storage access. Raises
    ValidationError, ForbiddenError, ProductNotFoundError,
    InsufficientStockError, DuplicateSaleCodeError or TransientStorageError;
    on any of them nothing was persisted.
    """
    require_permission(seller, "CREATE_SALE")
    payment_method = parse_payment_method(payment_method)
    buyer_name = parse_buyer_name(buyer_name)
    lines = parse_cart(items)

    max_attempts = current_app.config["SALE_CODE_MAX_ATTEMPTS"]
    for attempt in range(1, max_attempts + 1):
        try:
            sale = run_in_transaction(
                lambda: _create_sale_locked(seller, payment_method, buyer_name, lines)
            )
        except _SaleCodeTaken as exc:
            current_app.logger.warning(
                "Sale code collision on %s (attempt %d/%d)", exc.args[0], attempt, max_attempts
            )
            continue

        current_app.logger.info(
            "Sale %s created by %s: %d item(s), total_cents=%d",
            sale.code, sale.seller_user_id, len(lines), sale.total_cents,
        )
        return sale

    raise DuplicateSaleCodeError(max_attempts)


def _get_owned_sale_locked(sale_id: int, caller) -> Sale:
    sale = lock_for_update(db.session.query(Sale).filter(Sale.id == sale_id)).first()
    if sale is None:
        raise SaleNotFoundError(sale_id)
    if caller is None or sale.seller_user_id != caller.user_id:
        raise ForbiddenError(
            "Only the original seller can change this sale",
            details={"sale_id": sale_id},
        )
    return sale


def edit_sale(sale_id: int, caller, *, buyer_name=UNSET, payment_method=UNSET) -> Sale:
    """
    Edit buyer name and/or payment method of a PAID sale.

    Items, quantities and prices are never editable.
    """
    changes = {}
    if buyer_name is not UNSET:
        changes["buyer_name"] = parse_buyer_name(buyer_name)
    if payment_method is not UNSET:
        changes["payment_method"] = parse_payment_method(payment_method)
    if not changes:
        raise ValidationError("Nothing to update: provide buyer_name and/or payment_method")

    def _op():
        sale = _get_owned_sale_locked(sale_id, caller)
        if sale.status != "PAID":
            raise InvalidStateError(
                "Canceled sales cannot be edited",
                details={"sale_id": sale_id, "status": sale.status},
            )
        for key, value in changes.items():
            setattr(sale, key, value)
        sale.updated_at = utcnow()
        return sale

    sale = run_in_transaction(_op)
    current_app.logger.info("Sale %s edited by %s: %s", sale.code, caller.user_id, sorted(changes))
    return sale


def cancel_sale(sale_id: int, caller) -> Sale:
    """
    Compensating transaction: put every item back on hand, then mark CANCELED.

    The sale and its items stay for audit. Canceling twice is rejected.
    """
    def _op():
        sale = _get_owned_sale_locked(sale_id, caller)
        if sale.status == "CANCELED":
            raise InvalidStateError(
                "Sale is already canceled",
                details={"sale_id": sale_id, "status": sale.status},
            )

        # Same ascending product order as create_sale takes its locks in
        for item in sorted(sale.items, key=lambda i: (i.product_id, i.id)):
            apply_movement(
                product_id=item.product_id,
                movement_type="IN",
                quantity=item.quantity,
                note=f"Reversal of sale {sale.code}",
                actor_user_id=caller.user_id,
            )

        now = utcnow()
        sale.status = "CANCELED"
        sale.canceled_at = now
        sale.canceled_by_user_id = caller.user_id
        sale.updated_at = now
        return sale

    sale = run_in_transaction(_op)
    current_app.logger.info("Sale %s canceled by %s", sale.code, caller.user_id)
    return sale


def get_sale(sale_id: int, caller=None) -> Sale:
    """
    Load a sale with its items.

    When a caller is given, only the seller or a report viewer may read it.
    """
    sale = db.session.get(Sale, sale_id)
    if sale is None:
        raise SaleNotFoundError(sale_id)
    if caller is not None and sale.seller_user_id != caller.user_id:
        if not has_permission(caller, "VIEW_REPORTS"):
            raise ForbiddenError("You can only view your own sales", details={"sale_id": sale_id})
    return sale


def list_sales_for_seller(seller_user_id: str) -> list[Sale]:
    """The seller's own sales, newest first, both PAID and CANCELED."""
    return (
        db.session.query(Sale)
        .filter(Sale.seller_user_id == seller_user_id)
        .order_by(Sale.created_at.desc(), Sale.id.desc())
        .all()
    )


def list_recent_sales(take: int | None = None) -> list[Sale]:
    """Most recent sales across all sellers (admin view)."""
    default_take = current_app.config["RECENT_SALES_DEFAULT"]
    max_take = current_app.config["RECENT_SALES_MAX"]
    take = default_take if take is None else take
    take = max(1, min(take, max_take))
    return (
        db.session.query(Sale)
        .order_by(Sale.created_at.desc(), Sale.id.desc())
        .limit(take)
        .all()
    )
