"""
Token authorizer and role permission mapping.
"""

import pytest

from pdv import create_app
from pdv.authorizer import Identity, TokenAuthorizer, parse_token_table
from pdv.permissions import get_role_permissions, has_permission


class TestTokenTable:

    def test_parse(self):
        table = parse_token_table("abc:maria:caixa; def:joao:ADMIN ;")
        assert table == {
            "abc": Identity("maria", "CAIXA"),
            "def": Identity("joao", "ADMIN"),
        }

    @pytest.mark.parametrize("raw", ["abc:maria", "abc::CAIXA", "abc:maria:OWNER"])
    def test_rejects_malformed_entries(self, raw):
        with pytest.raises(ValueError):
            parse_token_table(raw)

    def test_resolve(self):
        authorizer = TokenAuthorizer.from_config("s3cret:maria:CAIXA")
        assert authorizer.resolve("s3cret") == Identity("maria", "CAIXA")
        assert authorizer.resolve("S3CRET") is None
        assert authorizer.resolve("") is None

    def test_app_builds_authorizer_from_config(self, tmp_path):
        app = create_app({
            "TESTING": True,
            "SQLALCHEMY_DATABASE_URI": f"sqlite:///{tmp_path / 'cfg.sqlite3'}",
            "API_TOKENS": "kiosk:estoque-9:ESTOQUISTA",
        })
        assert app.extensions["pdv_authorizer"].resolve("kiosk") == Identity("estoque-9", "ESTOQUISTA")


class TestRolePermissions:

    @pytest.mark.parametrize(
        "role,code,allowed",
        [
            ("ADMIN", "CREATE_SALE", True),
            ("ADMIN", "VIEW_REPORTS", True),
            ("CAIXA", "CREATE_SALE", True),
            ("CAIXA", "MANAGE_STOCK", False),
            ("ESTOQUISTA", "MANAGE_STOCK", True),
            ("ESTOQUISTA", "CREATE_SALE", False),
            ("SUPPORT", "VIEW_CATALOG", True),
            ("SUPPORT", "VIEW_REPORTS", False),
            ("UNKNOWN", "VIEW_CATALOG", False),
        ],
    )
    def test_matrix(self, role, code, allowed):
        assert has_permission(Identity("u", role), code) is allowed

    def test_role_names_are_case_insensitive(self):
        assert get_role_permissions("caixa") == get_role_permissions("CAIXA")
