"""
Quantity Domain Service.

Mutates the quantity of one cart line. A line never holds quantity 0: the
decrement that would reach 0 deletes it. Each change recomputes the order's
price row in the same transaction and commits, all while holding the
order's write lock.
"""

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from pos_api.models import CartLine, Order
from pos_api.repositories import CartRepository, OrderRepository, ProductRepository
from pos_api.services.domain.pricing_service import PricingService
from shared.config.constants import Limits, OrderStatus
from shared.config.logging import get_logger
from shared.infrastructure.db import safe_commit
from shared.infrastructure.locks import OrderLockManager, get_order_lock_manager
from shared.utils.exceptions import InvalidStateError, StoreError, ValidationError
from shared.utils.schemas import QuantityChange
from shared.utils.validators import validate_quantity

logger = get_logger(__name__)


class QuantityService:
    """
    Domain service for cart line quantities.

    Missing orders, products and lines are benign no-ops (None is returned):
    they mean the UI raced a concurrent delete.
    """

    def __init__(
        self,
        db: Session,
        locks: OrderLockManager | None = None,
        pricing: PricingService | None = None,
    ):
        self._db = db
        self._locks = locks or get_order_lock_manager()
        self._pricing = pricing or PricingService(db)
        self._orders = OrderRepository(db)
        self._products = ProductRepository(db)
        self._cart = CartRepository(db)

    def increase(self, order_id: int, product_id: int) -> QuantityChange | None:
        """Add one unit, creating the line with quantity 1 if needed."""
        return self.adjust(order_id, product_id, 1)

    def decrease(self, order_id: int, product_id: int) -> QuantityChange | None:
        """Remove one unit; a line at quantity 1 is deleted."""
        return self.adjust(order_id, product_id, -1)

    def adjust(self, order_id: int, product_id: int, delta: int) -> QuantityChange | None:
        """
        Apply |delta| unit steps in one lock hold and one transaction.

        Decrements stop at removal of the line.

        Raises:
            ValidationError: delta is 0, too large, or the result exceeds the maximum
            InvalidStateError: the order has been placed
            OrderBusyError: the order lock could not be acquired
            StoreError: the store write failed (rolled back)
        """
        if delta == 0 or abs(delta) > Limits.MAX_QUANTITY_DELTA:
            raise ValidationError(
                f"Quantity change must be between 1 and {Limits.MAX_QUANTITY_DELTA} units",
                order_id=order_id,
                product_id=product_id,
                delta=delta,
            )

        with self._locks.hold(order_id):
            try:
                change = self._apply(order_id, product_id, delta)
                if change is None:
                    self._db.rollback()
                    return None
                safe_commit(self._db)
            except SQLAlchemyError as e:
                self._db.rollback()
                raise StoreError(
                    "update the cart",
                    order_id=order_id,
                    product_id=product_id,
                    error=str(e),
                ) from e
            except (ValidationError, InvalidStateError):
                self._db.rollback()
                raise

        logger.info(
            "Cart line updated",
            order_id=order_id,
            product_id=product_id,
            delta=delta,
            quantity=change.quantity,
            removed=change.removed,
        )
        return change

    def _apply(self, order_id: int, product_id: int, delta: int) -> QuantityChange | None:
        order = self._orders.find_by_id(order_id)
        if order is None:
            logger.info("Quantity change ignored, order no longer exists", order_id=order_id)
            return None
        self._ensure_mutable(order)

        line = self._cart.get_line(order_id, product_id)
        if delta > 0:
            quantity = self._increment(order_id, product_id, line, delta)
            if quantity is None:
                return None
            removed = False
        else:
            if line is None:
                logger.debug("Decrease ignored, product not in cart", order_id=order_id, product_id=product_id)
                return None
            quantity = line.quantity + delta
            removed = quantity <= 0
            if removed:
                quantity = 0
                self._cart.remove_line(line)
            else:
                line.quantity = quantity

        order.touch()
        self._db.flush()
        price = self._pricing.recompute(order_id)
        return QuantityChange(
            order_id=order_id,
            product_id=product_id,
            quantity=quantity,
            removed=removed,
            price=price,
        )

    def _increment(self, order_id: int, product_id: int, line: CartLine | None, delta: int) -> int | None:
        if line is None:
            if self._products.find_by_id(product_id) is None:
                logger.info("Quantity change ignored, product no longer exists", product_id=product_id)
                return None
            quantity = self._checked(delta, order_id, product_id)
            self._cart.add_line(order_id, product_id, quantity)
            return quantity

        quantity = self._checked(line.quantity + delta, order_id, product_id)
        line.quantity = quantity
        return quantity

    @staticmethod
    def _checked(quantity: int, order_id: int, product_id: int) -> int:
        try:
            return validate_quantity(quantity)
        except ValueError as e:
            raise ValidationError(str(e), order_id=order_id, product_id=product_id) from e

    @staticmethod
    def _ensure_mutable(order: Order) -> None:
        if order.is_placed:
            raise InvalidStateError(
                "Order",
                order.order_status,
                [OrderStatus.PROCESSING],
                order_id=order.id,
            )

    def quantity_of(self, order_id: int, product_id: int) -> int:
        return self._cart.quantity_of(order_id, product_id)
