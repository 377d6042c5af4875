from __future__ import annotations

from ..extensions import db
from pdv.time_utils import to_utc_z, utcnow

MOVEMENT_TYPES = ("IN", "OUT", "ADJUST")


class StockMovement(db.Model):
    """
    Append-only stock ledger entry.

    Sign convention of quantity_delta:
    - IN:     positive
    - OUT:    negative
    - ADJUST: any non-zero signed value

    SUM(quantity_delta) per product equals Product.stock_on_hand.
    Rows are never updated or deleted.
    """
    __tablename__ = "stock_movements"
    __table_args__ = (
        db.CheckConstraint("quantity_delta <> 0", name="ck_stock_movements_delta_non_zero"),
        db.Index("ix_stock_movements_product_created", "product_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    type = db.Column(db.String(16), nullable=False, index=True)
    quantity_delta = db.Column(db.Integer, nullable=False)

    note = db.Column(db.String(255), nullable=True)

    # Identity from the external identity provider
    actor_user_id = db.Column(db.String(128), nullable=False, index=True)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow, index=True)

    product = db.relationship("Product", backref=db.backref("movements", lazy="dynamic"))

    def __repr__(self) -> str:
        return f"<StockMovement id={self.id} product_id={self.product_id} {self.type} {self.quantity_delta:+d}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "type": self.type,
            "quantity_delta": self.quantity_delta,
            "note": self.note,
            "actor_user_id": self.actor_user_id,
            "created_at": to_utc_z(self.created_at),
        }
