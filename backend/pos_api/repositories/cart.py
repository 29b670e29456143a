"""
Cart Repository - Data access for cart lines.
"""

from typing import Sequence

from sqlalchemy import select

from pos_api.models import CartLine, Product
from .base import BaseRepository


class CartRepository(BaseRepository[CartLine]):
    """
    Repository for CartLine rows.

    Lines are addressed by (order_id, product_id); the unique constraint
    guarantees at most one line per pair.
    """

    @property
    def model(self) -> type[CartLine]:
        return CartLine

    def get_line(self, order_id: int, product_id: int) -> CartLine | None:
        return self._db.scalar(
            select(CartLine).where(
                CartLine.order_id == order_id,
                CartLine.product_id == product_id,
            )
        )

    def quantity_of(self, order_id: int, product_id: int) -> int:
        """Quantity of a product in an order, 0 when absent."""
        quantity = self._db.scalar(
            select(CartLine.quantity).where(
                CartLine.order_id == order_id,
                CartLine.product_id == product_id,
            )
        )
        return quantity or 0

    def add_line(self, order_id: int, product_id: int, quantity: int) -> CartLine:
        return self.add(CartLine(order_id=order_id, product_id=product_id, quantity=quantity))

    def remove_line(self, line: CartLine) -> None:
        self._db.delete(line)
        self._db.flush()

    def priced_lines(self, order_id: int) -> list[tuple[int, int]]:
        """(unit_price, quantity) of every line, using live product prices."""
        rows = self._db.execute(
            select(Product.price, CartLine.quantity)
            .join(Product, Product.id == CartLine.product_id)
            .where(CartLine.order_id == order_id)
            .order_by(CartLine.id)
        )
        return [(price, quantity) for price, quantity in rows]

    def order_ids_with_product(self, product_id: int) -> list[int]:
        rows = self._db.execute(
            select(CartLine.order_id).where(CartLine.product_id == product_id).distinct()
        )
        return sorted(row[0] for row in rows)

    def lines_for_orders(self, order_ids: Sequence[int]) -> list[tuple[CartLine, Product]]:
        """Lines with their products for several orders, in one query."""
        if not order_ids:
            return []
        rows = self._db.execute(
            select(CartLine, Product)
            .join(Product, Product.id == CartLine.product_id)
            .where(CartLine.order_id.in_(order_ids))
            .order_by(CartLine.order_id, CartLine.id)
        )
        return [(line, product) for line, product in rows]
