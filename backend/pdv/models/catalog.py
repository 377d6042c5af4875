from __future__ import annotations

from ..extensions import db
from pdv.time_utils import to_utc_z, utcnow


class Product(db.Model):
    """
    Product master data.

    STOCK DESIGN DECISION:
    stock_on_hand is a cached projection of the stock ledger (StockMovement).
    - It is written ONLY by services.stock_service, in the same transaction
      as the ledger row that explains the change.
    - Catalog edits (price, name, active flag, metadata) never touch it.
    - The CHECK constraint is a last line of defence; the ledger's conditional
      update rejects negative results before the database has to.

    Products referenced by ledger rows or sale items are never physically
    deleted; deletion degrades to deactivation.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.CheckConstraint("stock_on_hand >= 0", name="ck_products_stock_non_negative"),
        db.CheckConstraint("price_cents >= 0", name="ck_products_price_non_negative"),
        db.Index("ix_products_active_name", "is_active", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    sku = db.Column(db.String(64), nullable=False, unique=True, index=True)
    name = db.Column(db.String(255), nullable=False)

    # Authoritative storage in cents (frontend may only format for display)
    price_cents = db.Column(db.Integer, nullable=False)
    cost_cents = db.Column(db.Integer, nullable=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    # Cached ledger sum, see class docstring
    stock_on_hand = db.Column(db.Integer, nullable=False, default=0)

    # Display metadata for the sale UI
    image_url = db.Column(db.String(512), nullable=True)
    category = db.Column(db.String(120), nullable=True, index=True)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    def __repr__(self) -> str:
        return f"<Product id={self.id} sku={self.sku!r} name={self.name!r} on_hand={self.stock_on_hand}>"

    def to_catalog_dict(self) -> dict:
        """Shape consumed by the sale UI."""
        return {
            "id": self.id,
            "sku": self.sku,
            "name": self.name,
            "price_cents": self.price_cents,
            "stock_on_hand": self.stock_on_hand,
            "image_url": self.image_url,
            "category": self.category,
        }

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sku": self.sku,
            "name": self.name,
            "price_cents": self.price_cents,
            "cost_cents": self.cost_cents,
            "is_active": self.is_active,
            "stock_on_hand": self.stock_on_hand,
            "image_url": self.image_url,
            "category": self.category,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
