"""
Pytest fixtures for the PDV backend tests.

Every test gets its own SQLite file, so write locks and unit-of-work
behavior match a real deployment (an in-memory database cannot be shared
between the worker threads used by the concurrency tests).
"""

import pytest

from pdv import create_app
from pdv.authorizer import Identity, TokenAuthorizer
from pdv.extensions import db
from pdv.permissions import ROLE_ADMIN, ROLE_CASHIER, ROLE_STOCK_KEEPER, ROLE_SUPPORT
from pdv.services import catalog_service


ADMIN = Identity("admin-1", ROLE_ADMIN)
CASHIER = Identity("caixa-1", ROLE_CASHIER)
OTHER_CASHIER = Identity("caixa-2", ROLE_CASHIER)
STOCK_KEEPER = Identity("estoque-1", ROLE_STOCK_KEEPER)
SUPPORT = Identity("suporte-1", ROLE_SUPPORT)

TOKENS = {
    "admin-token": ADMIN,
    "cashier-token": CASHIER,
    "cashier2-token": OTHER_CASHIER,
    "stock-token": STOCK_KEEPER,
    "support-token": SUPPORT,
}


@pytest.fixture(scope='function')
def app(tmp_path):
    """Create application for testing."""
    app = create_app(
        {
            'TESTING': True,
            'SQLALCHEMY_DATABASE_URI': f"sqlite:///{tmp_path / 'pdv.sqlite3'}",
            'UNIT_OF_WORK_RETRY_BACKOFF_SECONDS': 0.01,
        },
        authorizer=TokenAuthorizer(TOKENS),
    )

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()
        db.engine.dispose()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    return db.session


def _headers(token):
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_headers():
    return _headers("admin-token")


@pytest.fixture
def cashier_headers():
    return _headers("cashier-token")


@pytest.fixture
def other_cashier_headers():
    return _headers("cashier2-token")


@pytest.fixture
def stock_headers():
    return _headers("stock-token")


@pytest.fixture
def support_headers():
    return _headers("support-token")


@pytest.fixture
def make_product(app):
    """Factory: create a product through the catalog service (opening stock goes to the ledger)."""
    counter = {"n": 0}

    def _make(price_cents=1000, stock=10, name=None, **extra):
        counter["n"] += 1
        payload = {
            "sku": extra.pop("sku", f"SKU-{counter['n']:03d}"),
            "name": name or f"Product {counter['n']}",
            "price_cents": price_cents,
            "stock_on_hand": stock,
        }
        payload.update(extra)
        return catalog_service.create_product(ADMIN, payload)

    return _make


@pytest.fixture
def shirt(make_product):
    return make_product(price_cents=5000, stock=10, name="Camiseta EDL - M", sku="EDL-CAMISETA-M")


@pytest.fixture
def mug(make_product):
    return make_product(price_cents=3500, stock=5, name="Caneca FEJEMG", sku="EDL-CANECA")
