import os
import uuid
from decimal import Decimal

import pytest

# Services run against SQLite unless TEST_DATABASE_URL points elsewhere
# (row-lock tests need PostgreSQL and skip otherwise)
os.environ.setdefault('TEST_DATABASE_URL', 'sqlite://')

from storefront import create_app
from storefront.database import Base, create_all, drop_all, get_session
from storefront.models import (
    Cart, CartItem, CartStatus, Employee, Product, Sale, SaleLine, SalePaymentMethod, SaleStatus
)


@pytest.fixture(scope='session')
def app():
    """Create application instance for testing."""
    app = create_app('config.TestConfig')
    with app.app_context():
        drop_all()
        create_all()
        yield app
        get_session().remove()
        drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


def _clear_tables(session):
    for table in reversed(Base.metadata.sorted_tables):
        session.execute(table.delete())
    session.commit()


@pytest.fixture(scope='function')
def session(app):
    """Database session on empty tables."""
    session = get_session()
    _clear_tables(session)
    yield session
    session.rollback()
    _clear_tables(session)
    session.remove()


@pytest.fixture
def is_postgres(app):
    return get_session().get_bind().dialect.name == 'postgresql'


@pytest.fixture
def make_product(session):
    """Factory: persisted product with the given price and stock."""
    def _make(name=None, price='10.00', stock=10, active=True):
        product = Product(
            name=name or f'Product {uuid.uuid4().hex[:8]}',
            price=Decimal(str(price)),
            stock=stock,
            active=active,
        )
        session.add(product)
        session.commit()
        return product
    return _make


@pytest.fixture
def make_sale(session):
    """Factory: empty completed in-store sale."""
    def _make(payment_method=SalePaymentMethod.CASH.value):
        sale = Sale(
            total=Decimal('0.00'),
            payment_method=payment_method,
            status=SaleStatus.COMPLETED.value,
            employee_name_snapshot='Test Cashier',
        )
        session.add(sale)
        session.commit()
        return sale
    return _make


@pytest.fixture
def make_cart(session):
    """
    Factory: cart with items given as (product, quantity[, stored_subtotal]).

    The stored subtotal defaults to price * quantity; pass another value to
    simulate a tampered or stale client subtotal.
    """
    def _make(items=(), status=CartStatus.ACTIVE.value, customer_temp_id=None):
        cart = Cart(
            customer_temp_id=customer_temp_id or f'anon-{uuid.uuid4().hex[:12]}',
            status=status,
            total=Decimal('0.00'),
        )
        session.add(cart)
        session.flush()

        for entry in items:
            product, quantity = entry[0], entry[1]
            subtotal = entry[2] if len(entry) > 2 else product.price * quantity
            session.add(CartItem(
                cart_id=cart.id,
                product_id=product.id,
                quantity=quantity,
                subtotal=Decimal(str(subtotal)),
            ))
        session.commit()
        return cart
    return _make


@pytest.fixture
def make_sale_line(session):
    """Factory: sale line inserted directly (no stock movement)."""
    def _make(sale, product, quantity, unit_price=None):
        unit_price = Decimal(str(unit_price if unit_price is not None else product.price))
        line = SaleLine(
            sale_id=sale.id,
            product_id=product.id,
            product_name_snapshot=product.name,
            quantity=quantity,
            unit_price=unit_price,
            subtotal=unit_price * quantity,
        )
        session.add(line)
        session.commit()
        return line
    return _make


@pytest.fixture
def employee(session):
    employee = Employee(name='Ana Cashier', active=True)
    session.add(employee)
    session.commit()
    return employee
