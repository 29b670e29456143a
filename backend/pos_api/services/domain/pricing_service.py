"""
Pricing Domain Service.

compute_price() is a pure function over plain values; PricingService loads
the live lines and selections of an order inside the caller's transaction,
computes, and upserts the order's price row.

Rule table
----------
Line subtotal     Σ(unit_price × quantity), live product prices.
Add-ons           + price of each selected add-on with is_applicable=True,
                  once per order (not per unit). Non-applicable add-ons are
                  complimentary and add 0.
Charges           + amount of each selected charge with is_applicable=True
                  whose charge_order_type rows include the order type.
Discount          the applicable charge sum, when either
                    - the order has charges_included (charges already in
                      the menu prices), or
                    - free delivery: Delivery order whose line subtotal is
                      at least free_delivery_min_subtotal (0 disables).
                  Applied at most once; otherwise 0.
Total             subtotal − discount, clamped to 0 with a warning.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Sequence

from sqlalchemy.orm import Session

from pos_api.models import Order
from pos_api.repositories import AddOnSelectionRepository, CartRepository, ChargeSelectionRepository, PriceRepository
from shared.config.constants import Messages, OrderType
from shared.config.logging import get_logger
from shared.config.settings import settings
from shared.utils.schemas import PriceBreakdown

logger = get_logger(__name__)


@dataclass(frozen=True)
class PricedLine:
    unit_price: int
    quantity: int

    @property
    def total(self) -> int:
        return self.unit_price * self.quantity


@dataclass(frozen=True)
class PricedAddOn:
    price: int
    is_applicable: bool = True


@dataclass(frozen=True)
class PricedCharge:
    amount: int
    is_applicable: bool = True
    order_types: frozenset[str] = field(default_factory=frozenset)

    def applies_to(self, order_type: OrderType | str) -> bool:
        return self.is_applicable and OrderType(order_type).value in self.order_types


@dataclass(frozen=True)
class PricingRules:
    """Configured discount rules."""

    free_delivery_min_subtotal: int = 0

    @classmethod
    def from_settings(cls) -> "PricingRules":
        return cls(free_delivery_min_subtotal=settings.free_delivery_min_subtotal)

    def free_delivery(self, order_type: OrderType, line_subtotal: int) -> bool:
        return (
            self.free_delivery_min_subtotal > 0
            and order_type is OrderType.DELIVERY
            and line_subtotal >= self.free_delivery_min_subtotal
        )


def compute_price(
    lines: Iterable[PricedLine],
    add_ons: Iterable[PricedAddOn],
    charges: Iterable[PricedCharge],
    order_type: OrderType | str,
    *,
    charges_included: bool = False,
    rules: PricingRules | None = None,
) -> PriceBreakdown:
    """
    Price an order from its lines, selected add-ons and selected charges.

    All values are integer currency units. Never raises for a negative
    result: the total is clamped to 0 and the anomaly reported in
    PriceBreakdown.warnings.
    """
    rules = rules or PricingRules()
    order_type = OrderType(order_type)

    line_subtotal = sum(line.total for line in lines)
    add_on_total = sum(a.price for a in add_ons if a.is_applicable)
    charge_total = sum(c.amount for c in charges if c.applies_to(order_type))

    subtotal = line_subtotal + add_on_total + charge_total

    discount = 0
    if charges_included or rules.free_delivery(order_type, line_subtotal):
        discount = charge_total

    warnings: list[str] = []
    total = subtotal - discount
    if total < 0:
        logger.warning(
            "Negative order total clamped to 0",
            subtotal=subtotal,
            discount=discount,
            order_type=order_type.value,
        )
        warnings.append(Messages.NEGATIVE_TOTAL)
        total = 0

    return PriceBreakdown(
        subtotal=max(subtotal, 0),
        discount=max(discount, 0),
        total=total,
        warnings=warnings,
    )


class PricingService:
    """
    Keeps each order's price row in step with its lines and selections.

    Works inside the caller's transaction: flushes, never commits.
    """

    def __init__(self, db: Session, rules: PricingRules | None = None):
        self._db = db
        self._rules = rules or PricingRules.from_settings()
        self._cart = CartRepository(db)
        self._add_ons = AddOnSelectionRepository(db)
        self._charges = ChargeSelectionRepository(db)
        self._prices = PriceRepository(db)

    @property
    def rules(self) -> PricingRules:
        return self._rules

    def price_of(self, order: Order) -> PriceBreakdown:
        """Compute the price of an order from live rows without storing it."""
        lines = [PricedLine(price, quantity) for price, quantity in self._cart.priced_lines(order.id)]
        add_ons = [PricedAddOn(item.price, item.is_applicable) for item in self._add_ons.selected_items(order.id)]
        charges = [
            PricedCharge(charge.amount, charge.is_applicable, order_types)
            for charge, order_types in self._charges.selected_charges(order.id)
        ]
        return compute_price(
            lines,
            add_ons,
            charges,
            order.order_type,
            charges_included=order.charges_included,
            rules=self._rules,
        )

    def recompute(self, order_id: int) -> PriceBreakdown | None:
        """
        Recompute and store the price row of an order.

        Returns None when the order no longer exists.
        """
        order = self._db.get(Order, order_id)
        if order is None:
            return None

        price = self.price_of(order)
        self._prices.upsert(order_id, price)
        logger.debug(
            "Order price recomputed",
            order_id=order_id,
            subtotal=price.subtotal,
            discount=price.discount,
            total=price.total,
        )
        return price

    def recompute_many(self, order_ids: Sequence[int]) -> dict[int, PriceBreakdown]:
        """Recompute several orders; missing ones are skipped."""
        results = {}
        for order_id in sorted(set(order_ids)):
            price = self.recompute(order_id)
            if price is not None:
                results[order_id] = price
        return results
