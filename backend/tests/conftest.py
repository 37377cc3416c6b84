"""
Pytest fixtures for repledger backend tests.

Service tests run against both data store backends: the `app` fixture is
parametrized over "memory" and "sql" (SQLite in-memory), and `repo` is the
repository that app selected at startup.
"""

import pytest

from repledger import create_app
from repledger.extensions import db
from repledger.records import (
    CUSTOMERS,
    PRODUCTS,
    Customer,
    Order,
    OrderItem,
    Product,
    new_id,
)
from repledger.repository import EXTENSION_KEY


def _make_app(backend: str):
    return create_app({
        'TESTING': True,
        'SECRET_KEY': 'test',
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'REPLEDGER_STORE': backend,
        'REPLEDGER_SEED_DEMO_DATA': False,
        'LOG_LEVEL': 'DEBUG',
    })


@pytest.fixture(scope='function', params=['memory', 'sql'])
def app(request):
    """Application with a fresh, empty data store of each backend."""
    app = _make_app(request.param)
    with app.app_context():
        if request.param == 'sql':
            db.create_all()
        yield app
        if request.param == 'sql':
            db.session.remove()
            db.drop_all()


@pytest.fixture(scope='function')
def memory_app():
    """Application on the in-process store only."""
    app = _make_app('memory')
    with app.app_context():
        yield app


@pytest.fixture(scope='function')
def repo(app):
    return app.extensions[EXTENSION_KEY]


@pytest.fixture(scope='function')
def memory_repo(memory_app):
    return memory_app.extensions[EXTENSION_KEY]


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def make_product(repo):
    def _make(product_id='p1', name=None, stock=100, price_cents=1000):
        product = Product(
            id=product_id,
            name=name or f"Product {product_id}",
            base_price_cents=price_cents,
            stock=stock,
        )
        return repo.insert(PRODUCTS, product)
    return _make


@pytest.fixture(scope='function')
def customer(repo):
    return repo.insert(CUSTOMERS, Customer(id='c1', name='Al-Amal Pharmacy', brick='Downtown'))


def line(product_id, quantity, bonus=0, price_cents=1000, condition=None, name=''):
    """Order line priced without discount."""
    return OrderItem(
        product_id=product_id,
        product_name=name,
        quantity=quantity,
        bonus_quantity=bonus,
        unit_price_cents=price_cents,
        subtotal_cents=price_cents * quantity,
        condition=condition,
    )


def order_of(*items, customer_id='c1', is_draft=False, is_return=False, total=None, order_id=None):
    subtotal = sum(i.subtotal_cents for i in items)
    if total is None:
        total = -subtotal if is_return else subtotal
    return Order(
        id=order_id or new_id("ORD"),
        customer_id=customer_id,
        items=tuple(items),
        total_amount_cents=total,
        is_draft=is_draft,
        is_return=is_return,
    )


def stock_of(repo, product_id):
    return repo.get(PRODUCTS, product_id).stock
