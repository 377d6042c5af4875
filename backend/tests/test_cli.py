"""
CLI command tests (flask system / catalog / stock).
"""

from pdv.extensions import db
from pdv.models import Product, StockMovement
from pdv.permissions import PermissionCategory, get_all_permission_codes
from pdv.services import stock_service


class TestCatalogSeed:

    def test_seed_is_idempotent(self, app):
        runner = app.test_cli_runner()

        first = runner.invoke(args=["catalog", "seed"])
        assert first.exit_code == 0, first.output
        assert "8 product(s) created" in first.output

        second = runner.invoke(args=["catalog", "seed"])
        assert second.exit_code == 0
        assert "0 product(s) created" in second.output

        assert db.session.query(Product).count() == 8
        assert db.session.query(StockMovement).filter_by(note="Initial stock").count() == 8
        adesivo = db.session.query(Product).filter_by(sku="EDL-ADESIVO").one()
        assert adesivo.stock_on_hand == 100
        assert stock_service.verify_ledger() == []

    def test_list(self, app, shirt):
        result = app.test_cli_runner().invoke(args=["catalog", "list"])
        assert result.exit_code == 0
        assert "EDL-CAMISETA-M" in result.output


class TestStockCommands:

    def test_adjust(self, app, shirt):
        result = app.test_cli_runner().invoke(
            args=["stock", "adjust", "--product-id", str(shirt.id), "--delta", "-4", "--note", "Inventory count"]
        )
        assert result.exit_code == 0, result.output
        assert "on hand now 6" in result.output
        assert stock_service.current_on_hand(shirt.id) == 6

    def test_adjust_rejects_negative_result(self, app, shirt):
        result = app.test_cli_runner().invoke(
            args=["stock", "adjust", "--product-id", str(shirt.id), "--delta", "-11"]
        )
        assert result.exit_code != 0
        assert "WOULD_GO_NEGATIVE" in result.output
        assert stock_service.current_on_hand(shirt.id) == 10

    def test_check_ledger(self, app, shirt):
        runner = app.test_cli_runner()

        ok = runner.invoke(args=["stock", "check-ledger"])
        assert ok.exit_code == 0
        assert "PASS" in ok.output

        db.session.query(Product).filter_by(id=shirt.id).update({"stock_on_hand": 3})
        db.session.commit()

        drift = runner.invoke(args=["stock", "check-ledger"])
        assert drift.exit_code == 1
        assert "FAIL product" in drift.output


class TestSystemCommands:

    def test_reset_db(self, app, shirt):
        result = app.test_cli_runner().invoke(args=["system", "reset-db", "--yes"])
        assert result.exit_code == 0
        assert db.session.query(Product).count() == 0

    def test_init_db(self, app):
        result = app.test_cli_runner().invoke(args=["system", "init-db"])
        assert result.exit_code == 0
        assert "PASS" in result.output

    def test_permissions_listing(self, app):
        result = app.test_cli_runner().invoke(args=["system", "permissions"])
        assert result.exit_code == 0, result.output
        for category in PermissionCategory.ALL:
            assert f"[{category}]" in result.output
        for code in get_all_permission_codes():
            assert code in result.output
        assert "roles=ADMIN,CAIXA" in result.output
        assert f"PASS {len(get_all_permission_codes())} of {len(get_all_permission_codes())}" in result.output

    def test_permissions_for_role(self, app):
        result = app.test_cli_runner().invoke(args=["system", "permissions", "--role", "estoquista"])
        assert result.exit_code == 0, result.output
        assert "MANAGE_STOCK" in result.output
        assert "CREATE_SALE" not in result.output
        assert "[SALES]" not in result.output
        assert "PASS 2 of" in result.output

    def test_permissions_unknown_role(self, app):
        result = app.test_cli_runner().invoke(args=["system", "permissions", "--role", "manager"])
        assert result.exit_code != 0
        assert "Unknown role" in result.output
