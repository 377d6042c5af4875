from __future__ import annotations

from ..extensions import db
from pdv.time_utils import to_utc_z, utcnow

PAYMENT_METHODS = ("PIX", "CASH", "CARD")
SALE_STATUSES = ("PAID", "CANCELED")


class Sale(db.Model):
    """
    Sale document.

    A sale is born PAID (payment is settled before the engine is called) and
    may only move to CANCELED, which is terminal. Cancellation is a
    compensating transaction: the row and its items stay for audit.

    total_cents == SUM(items.total_cents), fixed at creation.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.CheckConstraint("total_cents >= 0", name="ck_sales_total_non_negative"),
        # Reporting scans by status + time window
        db.Index("ix_sales_status_created", "status", "created_at"),
        db.Index("ix_sales_seller_created", "seller_user_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # Human-readable code (e.g., "EDL-20260101-7QX2K")
    code = db.Column(db.String(64), nullable=False, unique=True, index=True)

    seller_user_id = db.Column(db.String(128), nullable=False)
    payment_method = db.Column(db.String(16), nullable=False, index=True)
    total_cents = db.Column(db.BigInteger, nullable=False)
    buyer_name = db.Column(db.String(120), nullable=True)

    status = db.Column(db.String(16), nullable=False, default="PAID", index=True)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    # Cancellation audit trail
    canceled_at = db.Column(db.DateTime, nullable=True)
    canceled_by_user_id = db.Column(db.String(128), nullable=True)

    items = db.relationship(
        "SaleItem",
        back_populates="sale",
        order_by="SaleItem.id",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<Sale id={self.id} code={self.code!r} status={self.status} total_cents={self.total_cents}>"

    def to_dict(self, include_items: bool = True) -> dict:
        data = {
            "id": self.id,
            "code": self.code,
            "seller_user_id": self.seller_user_id,
            "payment_method": self.payment_method,
            "total_cents": self.total_cents,
            "buyer_name": self.buyer_name,
            "status": self.status,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "canceled_at": to_utc_z(self.canceled_at) if self.canceled_at else None,
            "canceled_by_user_id": self.canceled_by_user_id,
        }
        if include_items:
            data["items"] = [item.to_dict() for item in self.items]
        return data


class SaleItem(db.Model):
    """Line on a sale. unit_price_cents is a frozen snapshot of the product price."""
    __tablename__ = "sale_items"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_sale_items_quantity_positive"),
        db.CheckConstraint("total_cents = quantity * unit_price_cents", name="ck_sale_items_total"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    total_cents = db.Column(db.BigInteger, nullable=False)

    sale = db.relationship("Sale", back_populates="items")
    product = db.relationship("Product", lazy="joined")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_id": self.sale_id,
            "product_id": self.product_id,
            "product_name": self.product.name if self.product is not None else None,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "total_cents": self.total_cents,
        }
