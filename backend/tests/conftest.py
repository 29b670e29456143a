"""
Pytest configuration and fixtures for backend tests.
"""

import os

# Keep the application engine off disk and the Redis relay detached
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["REDIS_URL"] = ""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from pos_api.main import app
from pos_api.models import (
    AddOnItem,
    AddOnSelection,
    Address,
    Base,
    CartLine,
    Charge,
    ChargeOrderType,
    ChargeSelection,
    Customer,
    Employee,
    Order,
    Product,
)
from pos_api.services.domain import (
    CatalogService,
    MultiSelection,
    OrderAggregateService,
    PricingRules,
    PricingService,
    get_multi_selection,
)
from shared.config.constants import OrderStatus, OrderType
from shared.infrastructure.db import enable_sqlite_foreign_keys, get_db
from shared.infrastructure.events import OrderChangeBus
from shared.infrastructure.locks import OrderLockManager


# SQLite in-memory database for testing
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
enable_sqlite_foreign_keys(engine)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="function")
def db_session():
    """
    Create a fresh database session for each test.
    Uses SQLite in-memory for isolation.
    """
    Base.metadata.create_all(bind=engine)

    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def session_factory(db_session):
    """Factory for extra sessions on the test database."""
    return TestingSessionLocal


@pytest.fixture
def locks():
    return OrderLockManager(timeout=1.0, cleanup_threshold=100)


@pytest.fixture
def bus():
    return OrderChangeBus()


@pytest.fixture
def multi_selection():
    return MultiSelection()


@pytest.fixture
def recorded_changes(bus):
    """Every OrderChange published on the test bus."""
    changes = []
    bus.subscribe(changes.append)
    return changes


@pytest.fixture
def service(db_session, session_factory, locks, bus, multi_selection):
    """OrderAggregateService wired to the test database and private state."""
    return OrderAggregateService(
        db_session,
        locks=locks,
        bus=bus,
        multi_selection=multi_selection,
        pricing_rules=PricingRules(),
        session_factory=session_factory,
    )


@pytest.fixture
def catalog_service(db_session, locks, bus):
    return CatalogService(db_session, locks=locks, bus=bus)


@pytest.fixture(scope="function")
def client(db_session):
    """
    Create a test client with database session override.
    """
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    get_multi_selection().deselect()

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
    get_multi_selection().deselect()


# =============================================================================
# Seed data
# =============================================================================


@pytest.fixture
def seed_products(db_session):
    """Catalog products keyed by name. Product 3 costs 100."""
    products = {
        "tea": Product(id=3, name="Masala Tea", price=100),
        "coffee": Product(id=4, name="Filter Coffee", price=50),
        "sandwich": Product(id=5, name="Veg Sandwich", price=90),
    }
    db_session.add_all(products.values())
    db_session.commit()
    return products


@pytest.fixture
def seed_add_ons(db_session):
    add_ons = {
        "cheese": AddOnItem(name="Extra Cheese", price=25, is_applicable=True),
        "napkins": AddOnItem(name="Napkins", price=10, is_applicable=False),
    }
    db_session.add_all(add_ons.values())
    db_session.commit()
    return add_ons


def _charge(name: str, amount: int, order_types: list[OrderType], is_applicable: bool = True) -> Charge:
    charge = Charge(name=name, amount=amount, is_applicable=is_applicable)
    charge.order_types = [ChargeOrderType(order_type=t.value) for t in order_types]
    return charge


@pytest.fixture
def seed_charges(db_session):
    """Service charge 20 (DineIn), delivery 40 (Delivery), packing 15 (DineOut, Delivery)."""
    charges = {
        "service": _charge("Service Charge", 20, [OrderType.DINE_IN]),
        "delivery": _charge("Delivery Charge", 40, [OrderType.DELIVERY]),
        "packing": _charge("Packing Charge", 15, [OrderType.DINE_OUT, OrderType.DELIVERY]),
    }
    db_session.add_all(charges.values())
    db_session.commit()
    return charges


@pytest.fixture
def seed_customer(db_session):
    customer = Customer(phone="9876543210", name="Asha")
    db_session.add(customer)
    db_session.commit()
    return customer


@pytest.fixture
def seed_address(db_session):
    address = Address(name="Green Park Apartments", short_name="GPA")
    db_session.add(address)
    db_session.commit()
    return address


@pytest.fixture
def seed_employee(db_session):
    employee = Employee(name="Ravi", phone="9800000001")
    db_session.add(employee)
    db_session.commit()
    return employee


@pytest.fixture
def make_order(db_session):
    """
    Factory inserting an order with lines and selections and a price row
    computed by the pricing engine.

    Usage:
        order = make_order(lines=[(tea, 2)], charges=[service], order_id=7)
    """
    def _make(
        lines=(),
        add_ons=(),
        charges=(),
        order_type: OrderType = OrderType.DINE_IN,
        status: str = OrderStatus.PROCESSING,
        order_id: int | None = None,
        charges_included: bool = False,
        customer=None,
        address=None,
        created_at=None,
    ) -> Order:
        order = Order(
            id=order_id,
            order_type=order_type.value,
            order_status=status,
            charges_included=charges_included,
            customer_id=customer.id if customer else None,
            address_id=address.id if address else None,
        )
        if created_at is not None:
            order.created_at = created_at
        db_session.add(order)
        db_session.flush()

        for product, quantity in lines:
            db_session.add(CartLine(order_id=order.id, product_id=product.id, quantity=quantity))
        for item in add_ons:
            db_session.add(AddOnSelection(order_id=order.id, add_on_item_id=item.id))
        for charge in charges:
            db_session.add(ChargeSelection(order_id=order.id, charge_id=charge.id))
        db_session.flush()

        PricingService(db_session, PricingRules()).recompute(order.id)
        db_session.commit()
        return order

    return _make
