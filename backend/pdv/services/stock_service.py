# Overview: Service-layer operations for the stock ledger; the only writer of Product.stock_on_hand.

from __future__ import annotations

from flask import current_app
from sqlalchemy import func, update
from sqlalchemy.orm.util import identity_key

from ..errors import InvalidDeltaError, ProductNotFoundError, ValidationError, WouldGoNegativeError
from ..extensions import db
from ..models import MOVEMENT_TYPES, Product, StockMovement
from ..permissions import require_permission
from ..validation import coerce_int
from pdv.time_utils import utcnow
from .concurrency import run_in_transaction
"""
Stock Ledger Invariants (authoritative)

- StockMovement is append-only: rows are inserted, never updated or deleted.
- Product.stock_on_hand == SUM(StockMovement.quantity_delta) for the product.
- The ledger insert and the cached quantity update happen in the SAME
  transaction (apply_movement never commits on its own).
- On-hand can never go negative. This is enforced at write time by a
  conditional UPDATE whose affected-row count is authoritative:

      UPDATE products
         SET stock_on_hand = stock_on_hand + :delta
       WHERE id = :id AND stock_on_hand + :delta >= 0

  Zero rows affected means "product missing" or "would go negative"; no
  read-then-write window exists for a concurrent writer to slip through.

Sign convention:
- IN:     caller passes a positive magnitude, stored positive
- OUT:    caller passes a positive "quantity sold", stored negative
- ADJUST: caller passes any non-zero signed value, stored as-is
"""

OPERATOR_MOVEMENT_TYPES = ("IN", "ADJUST")


def signed_delta(movement_type: str, quantity: int) -> int:
    """Translate a caller-facing quantity into the stored signed delta."""
    if movement_type not in MOVEMENT_TYPES:
        raise ValidationError(
            f"type must be one of {' | '.join(MOVEMENT_TYPES)}",
            details={"type": movement_type},
        )
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity == 0:
        raise InvalidDeltaError(movement_type, quantity)

    if movement_type == "ADJUST":
        return quantity
    if quantity < 0:
        raise InvalidDeltaError(movement_type, quantity)
    return quantity if movement_type == "IN" else -quantity


def apply_movement(
    *,
    product_id: int,
    movement_type: str,
    quantity: int,
    note: str | None,
    actor_user_id: str,
) -> StockMovement:
    """
    Append a ledger row and move the cached on-hand quantity.

    Must run inside an open unit of work; the caller commits. Raises
    ProductNotFoundError / WouldGoNegativeError with nothing written.
    """
    delta = signed_delta(movement_type, quantity)

    stmt = (
        update(Product)
        .where(Product.id == product_id, Product.stock_on_hand + delta >= 0)
        .values(stock_on_hand=Product.stock_on_hand + delta, updated_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    result = db.session.execute(stmt)
    if result.rowcount != 1:
        on_hand = db.session.query(Product.stock_on_hand).filter(Product.id == product_id).scalar()
        if on_hand is None:
            raise ProductNotFoundError(product_id)
        raise WouldGoNegativeError(product_id, delta, on_hand=on_hand)

    movement = StockMovement(
        product_id=product_id,
        type=movement_type,
        quantity_delta=delta,
        note=note,
        actor_user_id=actor_user_id,
        created_at=utcnow(),
    )
    db.session.add(movement)
    db.session.flush()

    # Any Product instance already in this session holds a stale cached quantity
    product = db.session.identity_map.get(identity_key(Product, product_id))
    if product is not None:
        db.session.expire(product, ["stock_on_hand", "updated_at"])

    return movement


def record(
    product_id: int,
    movement_type: str,
    quantity: int,
    note: str | None,
    actor_user_id: str,
) -> StockMovement:
    """
    Record one stock movement as its own atomic unit of work.

    Returns the persisted (committed) StockMovement.
    """
    signed_delta(movement_type, quantity)

    def _op():
        return apply_movement(
            product_id=product_id,
            movement_type=movement_type,
            quantity=quantity,
            note=note,
            actor_user_id=actor_user_id,
        )

    movement = run_in_transaction(_op)
    current_app.logger.info(
        "Stock movement %s product=%s delta=%+d actor=%s",
        movement.type, movement.product_id, movement.quantity_delta, movement.actor_user_id,
    )
    return movement


def adjust_stock(identity, *, product_id, movement_type, quantity, note=None) -> StockMovement:
    """
    Operator entry point: IN receipts and signed ADJUST corrections.

    OUT is reserved for the sale engine.
    """
    require_permission(identity, "MANAGE_STOCK")

    movement_type = str(movement_type or "").strip().upper()
    if movement_type not in OPERATOR_MOVEMENT_TYPES:
        raise ValidationError(
            f"type must be one of {' | '.join(OPERATOR_MOVEMENT_TYPES)}",
            details={"type": movement_type},
        )
    product_id = coerce_int(product_id, "product_id")
    quantity = coerce_int(quantity, "quantity")
    note = (str(note).strip() or None) if note is not None else None
    if note is not None and len(note) > 255:
        raise ValidationError("note exceeds max length 255")

    return record(product_id, movement_type, quantity, note, identity.user_id)


def current_on_hand(product_id: int) -> int:
    """Cached on-hand quantity (always equal to the ledger sum)."""
    on_hand = db.session.query(Product.stock_on_hand).filter(Product.id == product_id).scalar()
    if on_hand is None:
        raise ProductNotFoundError(product_id)
    return int(on_hand)


def ledger_sum(product_id: int) -> int:
    q = db.session.query(
        func.coalesce(func.sum(StockMovement.quantity_delta), 0)
    ).filter(StockMovement.product_id == product_id)
    return int(q.scalar() or 0)


def list_movements(product_id: int | None = None, limit: int = 100) -> list[StockMovement]:
    """Ledger history, newest first."""
    query = db.session.query(StockMovement)
    if product_id is not None:
        if db.session.get(Product, product_id) is None:
            raise ProductNotFoundError(product_id)
        query = query.filter(StockMovement.product_id == product_id)
    return (
        query.order_by(StockMovement.created_at.desc(), StockMovement.id.desc())
        .limit(limit)
        .all()
    )


def verify_ledger() -> list[dict]:
    """
    Return every product whose cached on-hand disagrees with its ledger sum.

    An empty list means the ledger invariant holds.
    """
    sums = (
        db.session.query(
            StockMovement.product_id.label("product_id"),
            func.sum(StockMovement.quantity_delta).label("ledger_sum"),
        )
        .group_by(StockMovement.product_id)
        .subquery()
    )
    rows = (
        db.session.query(
            Product.id,
            Product.sku,
            Product.stock_on_hand,
            func.coalesce(sums.c.ledger_sum, 0).label("ledger_sum"),
        )
        .outerjoin(sums, sums.c.product_id == Product.id)
        .order_by(Product.id.asc())
        .all()
    )
    return [
        {
            "product_id": row.id,
            "sku": row.sku,
            "stock_on_hand": int(row.stock_on_hand),
            "ledger_sum": int(row.ledger_sum),
        }
        for row in rows
        if int(row.stock_on_hand) != int(row.ledger_sum)
    ]
