"""
Tests for QuantityService - cart line quantities.

Tests cover:
- Increase creates a line, decrease removes it at zero
- Price recomputed in the same transaction
- Benign no-ops for missing orders, products and lines
- Placed orders and quantity bounds
"""

import pytest

from pos_api.models import CartLine
from pos_api.repositories import CartRepository, PriceRepository
from pos_api.services.domain import PricingRules, PricingService, QuantityService
from shared.config.constants import Limits, OrderStatus
from shared.utils.exceptions import InvalidStateError, OrderBusyError, ValidationError


@pytest.fixture
def quantities(db_session, locks):
    return QuantityService(db_session, locks, PricingService(db_session, PricingRules()))


class TestQuantityIncrease:
    def test_increase_creates_line_with_quantity_one(self, quantities, make_order, seed_products):
        order = make_order()

        change = quantities.increase(order.id, seed_products["tea"].id)

        assert change.quantity == 1
        assert change.removed is False
        assert change.price.total == 100

    def test_increase_existing_line(self, quantities, make_order, seed_products):
        order = make_order(lines=[(seed_products["tea"], 2)])

        change = quantities.increase(order.id, seed_products["tea"].id)

        assert change.quantity == 3
        assert quantities.quantity_of(order.id, seed_products["tea"].id) == 3

    def test_increase_keeps_one_line_per_product(self, quantities, db_session, make_order, seed_products):
        order = make_order()

        for _ in range(3):
            quantities.increase(order.id, seed_products["coffee"].id)

        lines = db_session.query(CartLine).filter_by(order_id=order.id).all()
        assert len(lines) == 1
        assert lines[0].quantity == 3

    def test_increase_missing_order_is_noop(self, quantities, seed_products):
        assert quantities.increase(999, seed_products["tea"].id) is None

    def test_increase_missing_product_is_noop(self, quantities, db_session, make_order):
        order = make_order()

        assert quantities.increase(order.id, 999) is None
        assert CartRepository(db_session).quantity_of(order.id, 999) == 0

    def test_increase_placed_order_raises(self, quantities, make_order, seed_products):
        order = make_order(status=OrderStatus.PLACED)

        with pytest.raises(InvalidStateError):
            quantities.increase(order.id, seed_products["tea"].id)

    def test_increase_beyond_maximum_raises(self, quantities, make_order, seed_products):
        order = make_order(lines=[(seed_products["tea"], Limits.MAX_QUANTITY)])

        with pytest.raises(ValidationError):
            quantities.increase(order.id, seed_products["tea"].id)

        assert quantities.quantity_of(order.id, seed_products["tea"].id) == Limits.MAX_QUANTITY


class TestQuantityDecrease:
    def test_scenario_decrease_to_removal(
        self, quantities, db_session, make_order, seed_products, seed_charges
    ):
        """220 -> 120 -> line removed, total 20 (the charge alone)."""
        order = make_order(
            order_id=7,
            lines=[(seed_products["tea"], 2)],
            charges=[seed_charges["service"]],
        )

        first = quantities.decrease(7, seed_products["tea"].id)
        assert first.quantity == 1
        assert first.price.total == 120

        second = quantities.decrease(7, seed_products["tea"].id)
        assert second.removed is True
        assert second.quantity == 0
        assert second.price.total == 20

        assert CartRepository(db_session).get_line(order.id, seed_products["tea"].id) is None
        assert PriceRepository(db_session).get(order.id).total == 20

    def test_decrease_absent_line_is_noop(self, quantities, make_order, seed_products):
        order = make_order()

        assert quantities.decrease(order.id, seed_products["tea"].id) is None

    def test_decrease_missing_order_is_noop(self, quantities, seed_products):
        assert quantities.decrease(999, seed_products["tea"].id) is None

    def test_increase_then_decrease_restores_quantity(self, quantities, make_order, seed_products):
        tea = seed_products["tea"]
        order = make_order(lines=[(tea, 2)])

        for _ in range(5):
            quantities.increase(order.id, tea.id)
        for _ in range(5):
            quantities.decrease(order.id, tea.id)

        assert quantities.quantity_of(order.id, tea.id) == 2


class TestQuantityAdjust:
    def test_adjust_by_delta(self, quantities, make_order, seed_products):
        order = make_order(lines=[(seed_products["coffee"], 1)])

        change = quantities.adjust(order.id, seed_products["coffee"].id, 4)

        assert change.quantity == 5
        assert change.price.total == 250

    def test_negative_delta_past_zero_removes_line(self, quantities, make_order, seed_products):
        order = make_order(lines=[(seed_products["coffee"], 2)])

        change = quantities.adjust(order.id, seed_products["coffee"].id, -10)

        assert change.removed is True
        assert change.price.total == 0

    @pytest.mark.parametrize("delta", [0, Limits.MAX_QUANTITY_DELTA + 1, -(Limits.MAX_QUANTITY_DELTA + 1)])
    def test_invalid_delta_raises(self, quantities, make_order, seed_products, delta):
        order = make_order()

        with pytest.raises(ValidationError):
            quantities.adjust(order.id, seed_products["tea"].id, delta)

    def test_busy_order_raises(self, quantities, locks, make_order, seed_products):
        order = make_order()

        with locks.hold(order.id):
            with pytest.raises(OrderBusyError):
                quantities.adjust(order.id, seed_products["tea"].id, 1)
