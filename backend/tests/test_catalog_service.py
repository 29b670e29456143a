"""
Tests for CatalogService.

Tests cover:
- CRUD for products, add-ons and charges
- Cascading deletes keep order prices consistent
- Price edits reprice open orders but not placed ones
- Customer and address lookups
- Cart writes landing between the affected-order lookup and the locks
"""

import pytest

from pos_api.services.domain import CatalogService, MultiSelection, OrderAggregateService, PricingRules
from shared.config.constants import ChangeKind, OrderStatus, OrderType
from shared.infrastructure.locks import OrderLockManager
from shared.utils.exceptions import NotFoundError, ValidationError
from shared.utils.schemas import (
    AddOnInput,
    AddOnUpdate,
    ChargeInput,
    ChargeUpdate,
    ProductInput,
    ProductUpdate,
)


class TestProducts:
    def test_create_and_get(self, catalog_service):
        created = catalog_service.create_product(ProductInput(name="Lassi", price=60))

        fetched = catalog_service.get_product(created.id)

        assert fetched.name == "Lassi"
        assert fetched.price == 60
        assert fetched.is_available is True

    def test_get_missing_raises(self, catalog_service):
        with pytest.raises(NotFoundError):
            catalog_service.get_product(999)

    def test_list_available_only(self, catalog_service, seed_products):
        catalog_service.update_product(seed_products["coffee"].id, ProductUpdate(is_available=False))

        names = [p.name for p in catalog_service.list_products(available_only=True)]

        assert "Filter Coffee" not in names
        assert "Masala Tea" in names

    def test_price_change_reprices_processing_orders_only(
        self, catalog_service, service, make_order, seed_products, recorded_changes
    ):
        tea = seed_products["tea"]
        open_order = make_order(lines=[(tea, 2)])
        placed = make_order(lines=[(tea, 2)], status=OrderStatus.PLACED)

        catalog_service.update_product(tea.id, ProductUpdate(price=150))

        assert service.get_order(open_order.id).price.total == 300
        assert service.get_order(placed.id).price.total == 200
        assert recorded_changes[-1].kind == ChangeKind.CATALOG_CHANGED
        assert recorded_changes[-1].order_ids == (open_order.id,)

    def test_rename_does_not_reprice(self, catalog_service, make_order, seed_products, recorded_changes):
        make_order(lines=[(seed_products["tea"], 1)])

        catalog_service.update_product(seed_products["tea"].id, ProductUpdate(name="Chai"))

        assert recorded_changes[-1].order_ids == ()

    def test_delete_removes_lines_and_reprices(
        self, catalog_service, service, make_order, seed_products, seed_charges
    ):
        order = make_order(
            lines=[(seed_products["tea"], 2), (seed_products["coffee"], 1)],
            charges=[seed_charges["service"]],
        )

        affected = catalog_service.delete_product(seed_products["tea"].id)

        aggregate = service.get_order(order.id)
        assert affected == [order.id]
        assert [line.product_id for line in aggregate.lines] == [seed_products["coffee"].id]
        assert aggregate.price.total == 70

    def test_delete_missing_raises(self, catalog_service):
        with pytest.raises(NotFoundError):
            catalog_service.delete_product(999)


class TestAddOns:
    def test_create_and_list(self, catalog_service):
        catalog_service.create_add_on(AddOnInput(name="Extra Sauce", price=15))

        assert [a.name for a in catalog_service.list_add_ons()] == ["Extra Sauce"]

    def test_applicability_change_reprices(self, catalog_service, service, make_order, seed_products, seed_add_ons):
        cheese = seed_add_ons["cheese"]
        order = make_order(lines=[(seed_products["tea"], 1)], add_ons=[cheese])
        assert service.get_order(order.id).price.total == 125

        catalog_service.update_add_on(cheese.id, AddOnUpdate(is_applicable=False))

        assert service.get_order(order.id).price.total == 100

    def test_delete_removes_selection(self, catalog_service, service, make_order, seed_products, seed_add_ons):
        cheese = seed_add_ons["cheese"]
        order = make_order(lines=[(seed_products["tea"], 1)], add_ons=[cheese])

        catalog_service.delete_add_on(cheese.id)

        aggregate = service.get_order(order.id)
        assert aggregate.add_on_ids == []
        assert aggregate.price.total == 100


class TestCharges:
    def test_create_defaults_to_every_order_type(self, catalog_service):
        charge = catalog_service.create_charge(ChargeInput(name="GST", amount=5))

        assert sorted(charge.order_types) == sorted(OrderType)

    def test_create_with_order_types(self, catalog_service):
        charge = catalog_service.create_charge(
            ChargeInput(name="Delivery", amount=30, order_types=[OrderType.DELIVERY])
        )

        assert charge.order_types == [OrderType.DELIVERY]
        assert [c.name for c in catalog_service.list_charges()] == ["Delivery"]

    def test_order_type_change_reprices(self, catalog_service, service, make_order, seed_products, seed_charges):
        packing = seed_charges["packing"]
        order = make_order(lines=[(seed_products["tea"], 1)], charges=[packing])
        assert service.get_order(order.id).price.total == 100

        updated = catalog_service.update_charge(
            packing.id,
            ChargeUpdate(order_types=[OrderType.DINE_IN, OrderType.DINE_OUT]),
        )

        assert sorted(updated.order_types) == sorted([OrderType.DINE_IN, OrderType.DINE_OUT])
        assert service.get_order(order.id).price.total == 115

    def test_amount_change_reprices(self, catalog_service, service, make_order, seed_products, seed_charges):
        order = make_order(lines=[(seed_products["tea"], 1)], charges=[seed_charges["service"]])

        catalog_service.update_charge(seed_charges["service"].id, ChargeUpdate(amount=35))

        assert service.get_order(order.id).price.total == 135

    def test_delete_removes_selection(self, catalog_service, service, make_order, seed_products, seed_charges):
        charge = seed_charges["service"]
        order = make_order(lines=[(seed_products["tea"], 1)], charges=[charge])

        affected = catalog_service.delete_charge(charge.id)

        assert affected == [order.id]
        assert service.get_order(order.id).charge_ids == []
        assert service.get_order(order.id).price.total == 100


class TestCustomersAndAddresses:
    def test_find_customer_normalizes_phone(self, catalog_service, seed_customer):
        customer = catalog_service.find_customer("(987) 654-3210")

        assert customer.id == seed_customer.id

    def test_unknown_customer_is_none(self, catalog_service):
        assert catalog_service.find_customer("1111111111") is None

    def test_blank_phone_raises(self, catalog_service):
        with pytest.raises(ValidationError):
            catalog_service.find_customer("  -  ")

    def test_list_addresses(self, catalog_service, seed_address):
        assert [a.short_name for a in catalog_service.list_addresses()] == ["GPA"]


class CartWriteBeforeLocks(OrderLockManager):
    """Lock manager that runs one cart write right before the first hold_many()."""

    def __init__(self, cart_write):
        super().__init__(timeout=1.0, cleanup_threshold=100)
        self._cart_write = cart_write

    def hold_many(self, order_ids, timeout=None):
        if self._cart_write is not None:
            cart_write, self._cart_write = self._cart_write, None
            cart_write()
        return super().hold_many(order_ids, timeout)


class TestCartWritesRacingCatalogEdits:
    @pytest.fixture
    def racing_catalog(self, db_session, session_factory, bus):
        """
        Build a CatalogService whose edit is preceded by a cart write from
        another session, after the edit looked up the affected orders.
        """
        def _build(cart_write):
            def run_cart_write():
                other = session_factory()
                try:
                    terminal = OrderAggregateService(
                        other,
                        locks=OrderLockManager(timeout=1.0),
                        bus=bus,
                        multi_selection=MultiSelection(),
                        pricing_rules=PricingRules(),
                        session_factory=session_factory,
                    )
                    assert cart_write(terminal).success
                finally:
                    other.close()

            return CatalogService(db_session, locks=CartWriteBeforeLocks(run_cart_write), bus=bus)

        return _build

    def test_price_change_reprices_line_added_before_lock(
        self, racing_catalog, service, make_order, seed_products, recorded_changes
    ):
        order = make_order(lines=[(seed_products["coffee"], 1)])
        catalog = racing_catalog(lambda terminal: terminal.increase_quantity(order.id, seed_products["tea"].id))

        catalog.update_product(seed_products["tea"].id, ProductUpdate(price=150))

        aggregate = service.get_order(order.id)
        assert [(line.product_id, line.quantity) for line in aggregate.lines] == [
            (seed_products["coffee"].id, 1),
            (seed_products["tea"].id, 1),
        ]
        assert aggregate.price.total == 200
        assert recorded_changes[-1].kind == ChangeKind.CATALOG_CHANGED
        assert recorded_changes[-1].order_ids == (order.id,)

    def test_delete_reprices_line_added_before_lock(self, racing_catalog, service, make_order, seed_products):
        order = make_order(lines=[(seed_products["coffee"], 1)])
        catalog = racing_catalog(lambda terminal: terminal.increase_quantity(order.id, seed_products["tea"].id))

        affected = catalog.delete_product(seed_products["tea"].id)

        aggregate = service.get_order(order.id)
        assert affected == [order.id]
        assert [line.product_id for line in aggregate.lines] == [seed_products["coffee"].id]
        assert aggregate.price.total == 50

    def test_add_on_price_change_reprices_selection_made_before_lock(
        self, racing_catalog, service, make_order, seed_products, seed_add_ons
    ):
        cheese = seed_add_ons["cheese"]
        order = make_order(lines=[(seed_products["coffee"], 1)])
        catalog = racing_catalog(lambda terminal: terminal.toggle_add_on(order.id, cheese.id))

        catalog.update_add_on(cheese.id, AddOnUpdate(price=40))

        aggregate = service.get_order(order.id)
        assert aggregate.add_on_ids == [cheese.id]
        assert aggregate.price.total == 90

    def test_charge_amount_change_reprices_selection_made_before_lock(
        self, racing_catalog, service, make_order, seed_products, seed_charges
    ):
        charge = seed_charges["service"]
        order = make_order(lines=[(seed_products["coffee"], 1)])
        catalog = racing_catalog(lambda terminal: terminal.toggle_charge(order.id, charge.id))

        catalog.update_charge(charge.id, ChargeUpdate(amount=35))

        assert service.get_order(order.id).price.total == 85
