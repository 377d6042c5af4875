"""
Catalog tests: creation with opening stock, patch rules, delete-or-deactivate.
"""

import pytest

from pdv.errors import DuplicateSkuError, ForbiddenError, ProductNotFoundError, ValidationError
from pdv.extensions import db
from pdv.models import Product, StockMovement
from pdv.services import catalog_service, sales_service, stock_service

from conftest import ADMIN, CASHIER, STOCK_KEEPER


class TestCreateProduct:

    def test_create_with_opening_stock(self, app):
        product = catalog_service.create_product(ADMIN, {
            "sku": "EDL-BROCHE",
            "name": "Broche FEJEMG",
            "price_cents": "1500",
            "cost_cents": 600,
            "stock_on_hand": 40,
            "category": "Acessorios",
            "image_url": "https://cdn.example.com/broche.png",
        })

        assert product.id is not None
        assert product.price_cents == 1500
        assert product.is_active is True
        assert product.stock_on_hand == 40
        assert stock_service.ledger_sum(product.id) == 40

    def test_create_without_stock_has_no_movement(self, app):
        product = catalog_service.create_product(ADMIN, {"sku": "X-1", "name": "Thing", "price_cents": 100})
        assert product.stock_on_hand == 0
        assert db.session.query(StockMovement).filter_by(product_id=product.id).count() == 0

    def test_duplicate_sku(self, shirt):
        with pytest.raises(DuplicateSkuError):
            catalog_service.create_product(ADMIN, {"sku": shirt.sku, "name": "Copy", "price_cents": 1})
        assert db.session.query(Product).count() == 1

    @pytest.mark.parametrize(
        "payload",
        [
            {"name": "No SKU", "price_cents": 100},
            {"sku": "A", "name": "Neg price", "price_cents": -1},
            {"sku": "A", "name": "Float price", "price_cents": 10.5},
            {"sku": "A", "name": "  ", "price_cents": 100},
            {"sku": "A", "name": "Neg stock", "price_cents": 100, "stock_on_hand": -5},
            {"sku": "A", "name": "Unknown", "price_cents": 100, "color": "red"},
            {"sku": "A", "name": "Id", "price_cents": 100, "id": 5},
        ],
    )
    def test_invalid_payloads(self, app, payload):
        with pytest.raises(ValidationError):
            catalog_service.create_product(ADMIN, payload)
        assert db.session.query(Product).count() == 0

    @pytest.mark.parametrize("identity", [CASHIER, STOCK_KEEPER])
    def test_requires_manage_catalog(self, app, identity):
        with pytest.raises(ForbiddenError):
            catalog_service.create_product(identity, {"sku": "A", "name": "A", "price_cents": 1})


class TestUpdateProduct:

    def test_patch_price_and_metadata(self, shirt):
        updated = catalog_service.update_product(ADMIN, shirt.id, {"price_cents": 5500, "category": "Vestuario"})
        assert updated.price_cents == 5500
        assert updated.category == "Vestuario"
        assert updated.stock_on_hand == 10

    def test_stock_is_not_a_catalog_field(self, shirt):
        with pytest.raises(ValidationError):
            catalog_service.update_product(ADMIN, shirt.id, {"stock_on_hand": 99})
        assert stock_service.current_on_hand(shirt.id) == 10

    def test_sku_clash(self, shirt, mug):
        with pytest.raises(DuplicateSkuError):
            catalog_service.update_product(ADMIN, mug.id, {"sku": shirt.sku})

    def test_missing_product(self, app):
        with pytest.raises(ProductNotFoundError):
            catalog_service.update_product(ADMIN, 404, {"name": "Ghost"})

    def test_deactivated_product_leaves_active_catalog(self, shirt, mug):
        catalog_service.update_product(ADMIN, shirt.id, {"is_active": False})

        assert [p.id for p in catalog_service.list_active_catalog()] == [mug.id]
        assert {p.id for p in catalog_service.list_products()} == {shirt.id, mug.id}


class TestDeleteProduct:

    def test_unreferenced_product_is_deleted(self, app):
        product = catalog_service.create_product(ADMIN, {"sku": "TMP", "name": "Temp", "price_cents": 1})

        result = catalog_service.delete_product(ADMIN, product.id)

        assert result == {"product_id": product.id, "deleted": True, "deactivated": False}
        with pytest.raises(ProductNotFoundError):
            catalog_service.get_product(product.id)

    def test_sold_product_is_deactivated(self, shirt):
        sales_service.create_sale(CASHIER, "PIX", [(shirt.id, 1)])

        result = catalog_service.delete_product(ADMIN, shirt.id)

        assert result == {"product_id": shirt.id, "deleted": False, "deactivated": True}
        product = catalog_service.get_product(shirt.id)
        assert product.is_active is False
        assert product.stock_on_hand == 9

    def test_product_with_ledger_history_is_deactivated(self, mug):
        result = catalog_service.delete_product(ADMIN, mug.id)
        assert result["deactivated"] is True
        assert stock_service.verify_ledger() == []

    def test_requires_manage_catalog(self, mug):
        with pytest.raises(ForbiddenError):
            catalog_service.delete_product(CASHIER, mug.id)
