"""
Seed data for development and testing.
Creates a small demo catalog: products, add-ons, charges, addresses and a
delivery partner.
"""

from sqlalchemy import select
from sqlalchemy.orm import Session

from pos_api.models import AddOnItem, Address, Charge, ChargeOrderType, Employee, Product
from shared.config.constants import OrderType
from shared.config.logging import get_logger

logger = get_logger(__name__)


# (name, price)
DEMO_PRODUCTS = [
    ("Masala Tea", 30),
    ("Filter Coffee", 40),
    ("Veg Sandwich", 90),
    ("Paneer Roll", 120),
    ("Chicken Biryani", 220),
    ("Gulab Jamun", 60),
]

DEMO_ADD_ONS = [
    ("Extra Cheese", 25),
    ("Takeaway Box", 10),
]

# (name, amount, order types)
DEMO_CHARGES = [
    ("Packing Charge", 15, [OrderType.DINE_OUT, OrderType.DELIVERY]),
    ("Delivery Charge", 40, [OrderType.DELIVERY]),
    ("Service Charge", 20, [OrderType.DINE_IN]),
]

DEMO_ADDRESSES = [
    ("Green Park Apartments, Block A", "GPA-A"),
    ("Lake View Residency", "LVR"),
]


def seed(db: Session) -> bool:
    """
    Seed the database with the demo catalog.
    Idempotent: only inserts if no product exists yet.

    Returns:
        True if data was inserted.
    """
    if db.scalar(select(Product.id).limit(1)):
        logger.info("Database already seeded, skipping")
        return False

    logger.info("Seeding database")

    db.add_all([Product(name=name, price=price) for name, price in DEMO_PRODUCTS])
    db.add_all([AddOnItem(name=name, price=price) for name, price in DEMO_ADD_ONS])

    for name, amount, order_types in DEMO_CHARGES:
        charge = Charge(name=name, amount=amount)
        charge.order_types = [ChargeOrderType(order_type=t.value) for t in order_types]
        db.add(charge)

    db.add_all([Address(name=name, short_name=short) for name, short in DEMO_ADDRESSES])
    db.add(Employee(name="Ravi", phone="9800000001"))

    db.commit()
    logger.info(
        "Database seeded",
        products=len(DEMO_PRODUCTS),
        add_ons=len(DEMO_ADD_ONS),
        charges=len(DEMO_CHARGES),
    )
    return True
