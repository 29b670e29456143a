"""
Order Aggregate Domain Service.

Orchestrates the query layer, quantity manager, pricing engine and
selection state behind one contract used by the routers:

    service = OrderAggregateService(db)
    result = service.mutate_quantity(order_id=7, product_id=3, delta=-1)
    if not result.success:
        show_error(result.message)

Every mutating call:
  1. applies the store write while holding the affected orders' locks,
  2. recomputes the price row when the write affects price,
  3. commits (rolling back on failure),
  4. publishes an OrderChange so open feeds re-query,
  5. returns an OperationResult. Known failures never raise.

Not-found targets are benign no-ops: success=True with a message, since they
mean the UI raced a concurrent delete.
"""

from __future__ import annotations

import threading
from collections.abc import Callable, Iterator, Sequence
from contextlib import contextmanager

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from pos_api.models import Order
from pos_api.repositories import (
    AddOnItemRepository,
    AddOnSelectionRepository,
    AddressRepository,
    CartRepository,
    ChargeRepository,
    ChargeSelectionRepository,
    CustomerRepository,
    EmployeeRepository,
    OrderFilters,
    OrderQueryRepository,
    OrderRepository,
    ProductRepository,
    group_by_date_bucket,
)
from pos_api.services.domain.pricing_service import PricingRules, PricingService
from pos_api.services.domain.quantity_service import QuantityService
from pos_api.services.domain.selection_service import ActiveOrderSelection, MultiSelection
from pos_api.services.order_feed import OrderFeed, UpdateHandler, session_loader
from shared.config.constants import ChangeKind, Limits, Messages, OrderStatus, OrderType
from shared.config.logging import mask_phone, orders_logger as logger
from shared.infrastructure.db import SessionLocal, safe_commit
from shared.infrastructure.events import OrderChange, OrderChangeBus, get_order_change_bus
from shared.infrastructure.locks import OrderLockManager, get_order_lock_manager
from shared.utils.exceptions import (
    AppException,
    InvalidStateError,
    NotFoundError,
    OrderBusyError,
    StoreError,
)
from shared.utils.schemas import (
    OperationResult,
    OrderAggregate,
    OrderGroup,
    OrderUpsertRequest,
    PriceBreakdown,
)
from shared.utils.validators import normalize_phone


# An action returns its result and the ids of the orders it actually changed
ActionOutcome = tuple[OperationResult, list[int]]


_multi_selection: MultiSelection | None = None
_multi_selection_lock = threading.Lock()


def get_multi_selection() -> MultiSelection:
    """The terminal's bulk-action selection (one per process)."""
    global _multi_selection
    if _multi_selection is None:
        with _multi_selection_lock:
            if _multi_selection is None:
                _multi_selection = MultiSelection()
    return _multi_selection


class OrderAggregateService:
    """
    Domain service for order aggregates.

    Constructed per database session; the lock manager, change bus and
    multi-selection are process-wide and shared by every instance.
    """

    def __init__(
        self,
        db: Session,
        *,
        locks: OrderLockManager | None = None,
        bus: OrderChangeBus | None = None,
        multi_selection: MultiSelection | None = None,
        pricing_rules: PricingRules | None = None,
        session_factory: Callable[[], Session] | None = None,
    ):
        self._db = db
        self._locks = locks or get_order_lock_manager()
        self._bus = bus or get_order_change_bus()
        self._multi = multi_selection if multi_selection is not None else get_multi_selection()
        self._session_factory = session_factory or SessionLocal

        self._pricing = PricingService(db, pricing_rules)
        self._quantities = QuantityService(db, self._locks, self._pricing)
        self._active = ActiveOrderSelection(db)

        self._query = OrderQueryRepository(db)
        self._orders = OrderRepository(db)
        self._products = ProductRepository(db)
        self._cart = CartRepository(db)
        self._add_on_items = AddOnItemRepository(db)
        self._charge_items = ChargeRepository(db)
        self._add_ons = AddOnSelectionRepository(db)
        self._charges = ChargeSelectionRepository(db)
        self._customers = CustomerRepository(db)
        self._addresses = AddressRepository(db)
        self._employees = EmployeeRepository(db)

    @property
    def multi_selection(self) -> MultiSelection:
        return self._multi

    # =========================================================================
    # Reads
    # =========================================================================

    def query_orders(self, search: str | None = None, view_all: bool = False) -> list[OrderGroup]:
        """Snapshot of the grouped order list."""
        aggregates = self._query.find_aggregates(OrderFilters(search=search, view_all=view_all))
        return group_by_date_bucket(aggregates)

    def list_orders(
        self,
        search: str | None = None,
        view_all: bool = False,
        on_update: UpdateHandler | None = None,
    ) -> OrderFeed:
        """
        Open a feed of the grouped order list. The first result is delivered
        before this returns; later ones after every committed change.
        The caller must close() the feed.
        """
        feed = OrderFeed(
            session_loader(self._session_factory),
            OrderFilters(search=search, view_all=view_all),
            on_update=on_update,
            bus=self._bus,
        )
        return feed.start()

    def get_order(self, order_id: int) -> OrderAggregate | None:
        """None when the order no longer exists."""
        return self._query.find_aggregate(order_id)

    def get_active_order(self) -> OrderAggregate | None:
        order_id = self._active.get()
        if order_id is None:
            return None
        return self._query.find_aggregate(order_id)

    def get_product_quantity(self, order_id: int, product_id: int) -> int:
        return self._cart.quantity_of(order_id, product_id)

    # =========================================================================
    # Cart lines
    # =========================================================================

    def mutate_quantity(self, order_id: int, product_id: int, delta: int) -> OperationResult:
        """Change a cart line by delta units (negative removes units)."""
        try:
            change = self._quantities.adjust(order_id, product_id, delta)
            if change is None:
                return OperationResult.ok(message=self._missing_line_message(order_id, product_id))
            warnings = list(change.price.warnings) if change.price else []
            order = self._orders.find_by_id(order_id)
            if order is not None:
                warnings += self._order_warnings(order)
        except AppException as e:
            return self._failure(e)
        except SQLAlchemyError as e:
            self._db.rollback()
            return self._failure(StoreError("update the cart", order_id=order_id, error=str(e)))

        self._publish(ChangeKind.CART_CHANGED, [order_id])
        return OperationResult.ok(data=change, warnings=warnings)

    def increase_quantity(self, order_id: int, product_id: int) -> OperationResult:
        return self.mutate_quantity(order_id, product_id, 1)

    def decrease_quantity(self, order_id: int, product_id: int) -> OperationResult:
        return self.mutate_quantity(order_id, product_id, -1)

    def _missing_line_message(self, order_id: int, product_id: int) -> str:
        if not self._orders.exists(order_id):
            return Messages.ORDER_NOT_FOUND
        if not self._products.exists(product_id):
            return Messages.PRODUCT_NOT_FOUND
        return Messages.PRODUCT_NOT_IN_CART

    # =========================================================================
    # Add-on and charge selections
    # =========================================================================

    def toggle_add_on(self, order_id: int, add_on_id: int) -> OperationResult:
        return self._mutate(
            ChangeKind.ADD_ONS_CHANGED,
            [order_id],
            "toggle the add-on",
            lambda: self._toggle_add_on(order_id, add_on_id),
            order_id=order_id,
            add_on_id=add_on_id,
        )

    def _toggle_add_on(self, order_id: int, add_on_id: int) -> ActionOutcome:
        order = self._orders.find_by_id(order_id)
        if order is None:
            return OperationResult.ok(message=Messages.ORDER_NOT_FOUND), []
        self._ensure_mutable(order)
        if not self._add_on_items.exists(add_on_id):
            return OperationResult.ok(message=Messages.ADD_ON_NOT_FOUND), []

        if self._add_ons.is_selected(order_id, add_on_id):
            self._add_ons.deselect(order_id, add_on_id)
            selected = False
        else:
            self._add_ons.select(order_id, add_on_id)
            selected = True

        price = self._touch_and_price(order)
        logger.info("Add-on toggled", order_id=order_id, add_on_id=add_on_id, selected=selected)
        return (
            OperationResult.ok(
                data={"order_id": order_id, "add_on_id": add_on_id, "selected": selected, "price": price},
                warnings=price.warnings + self._order_warnings(order),
            ),
            [order_id],
        )

    def toggle_charge(self, order_id: int, charge_id: int) -> OperationResult:
        return self._mutate(
            ChangeKind.CHARGES_CHANGED,
            [order_id],
            "toggle the charge",
            lambda: self._toggle_charge(order_id, charge_id),
            order_id=order_id,
            charge_id=charge_id,
        )

    def _toggle_charge(self, order_id: int, charge_id: int) -> ActionOutcome:
        order = self._orders.find_by_id(order_id)
        if order is None:
            return OperationResult.ok(message=Messages.ORDER_NOT_FOUND), []
        self._ensure_mutable(order)
        if not self._charge_items.exists(charge_id):
            return OperationResult.ok(message=Messages.CHARGE_NOT_FOUND), []

        if self._charges.is_selected(order_id, charge_id):
            self._charges.deselect(order_id, charge_id)
            selected = False
        else:
            self._charges.select(order_id, charge_id)
            selected = True

        price = self._touch_and_price(order)
        logger.info("Charge toggled", order_id=order_id, charge_id=charge_id, selected=selected)
        return (
            OperationResult.ok(
                data={"order_id": order_id, "charge_id": charge_id, "selected": selected, "price": price},
                warnings=price.warnings + self._order_warnings(order),
            ),
            [order_id],
        )

    # =========================================================================
    # Order lifecycle
    # =========================================================================

    def create_or_update_order(self, request: OrderUpsertRequest) -> OperationResult:
        """
        Create an order (request.order_id is None) or update one.

        The customer is reused by phone and the address by name, creating
        them when new. Add-on and charge selections are synchronized to
        exactly the requested ids; unknown ids are skipped. A newly created
        order becomes the active one.
        """
        creating = request.order_id is None
        return self._mutate(
            ChangeKind.ORDER_CREATED if creating else ChangeKind.ORDER_UPDATED,
            [] if creating else [request.order_id],
            "save the order",
            lambda: self._save_order(request),
            order_id=request.order_id,
        )

    def _save_order(self, request: OrderUpsertRequest) -> ActionOutcome:
        creating = request.order_id is None
        if creating:
            order = self._orders.add(
                Order(
                    order_type=request.order_type.value,
                    order_status=OrderStatus.PROCESSING,
                    charges_included=request.charges_included,
                )
            )
        else:
            order = self._orders.find_by_id(request.order_id)
            if order is None:
                return OperationResult.ok(message=Messages.ORDER_NOT_FOUND), []
            self._ensure_mutable(order)
            order.order_type = request.order_type.value
            order.charges_included = request.charges_included
            order.touch()

        warnings: list[str] = []

        phone = normalize_phone(request.customer_phone)
        if phone:
            order.customer_id = self._customers.add_or_get(phone, request.customer_name).id
        else:
            order.customer_id = None

        address_name = (request.address_name or "").strip()
        if address_name:
            order.address_id = self._addresses.add_or_get(address_name, request.address_short_name).id
        else:
            order.address_id = None

        if request.delivery_partner_id is not None and not self._employees.exists(request.delivery_partner_id):
            warnings.append(Messages.DELIVERY_PARTNER_NOT_FOUND)
            order.delivery_partner_id = None
        else:
            order.delivery_partner_id = request.delivery_partner_id

        add_on_ids = self._known_ids(self._add_on_items.existing_ids(request.add_on_ids), request.add_on_ids, "add-on")
        charge_ids = self._known_ids(self._charge_items.existing_ids(request.charge_ids), request.charge_ids, "charge")
        self._add_ons.replace(order.id, add_on_ids)
        self._charges.replace(order.id, charge_ids)

        self._db.flush()
        price = self._pricing.recompute(order.id)
        if creating:
            self._active.select(order.id)

        warnings += price.warnings + self._order_warnings(order)
        aggregate = self._query.find_aggregate(order.id)
        logger.info(
            "Order created" if creating else "Order updated",
            order_id=order.id,
            order_type=order.order_type,
            customer_phone=mask_phone(phone),
            add_ons=len(add_on_ids),
            charges=len(charge_ids),
        )
        return (
            OperationResult.ok(
                message="Order created" if creating else "Order updated",
                data=aggregate,
                warnings=warnings,
            ),
            [order.id],
        )

    @staticmethod
    def _known_ids(existing: set[int], requested: Sequence[int], entity: str) -> list[int]:
        unknown = sorted(set(requested) - existing)
        if unknown:
            logger.info("Skipping unknown ids", entity=entity, ids=unknown)
        return sorted(existing)

    def place_order(self, order_id: int) -> OperationResult:
        return self.place_orders([order_id])

    def place_orders(self, order_ids: Sequence[int]) -> OperationResult:
        """
        Move orders to PLACED. When the active order is placed, the marker
        moves to the most recent PROCESSING order, or is cleared if none.
        """
        ids = sorted(set(order_ids))
        if not ids:
            return OperationResult.error(Messages.NO_ORDERS_SELECTED)
        return self._mutate(
            ChangeKind.ORDER_PLACED,
            ids,
            "place the orders",
            lambda: self._place(ids),
            order_ids=ids,
        )

    def _place(self, order_ids: list[int]) -> ActionOutcome:
        if not self._orders.existing_ids(order_ids):
            return OperationResult.ok(message=Messages.ORDER_NOT_FOUND), []

        placed = self._orders.set_status(order_ids, OrderStatus.PLACED)
        self._db.flush()

        active_id = self._active.get()
        if active_id in placed:
            successor = self._orders.latest_processing(exclude_ids=placed)
            if successor is not None:
                self._active.select(successor.id)
            else:
                self._active.clear()
            active_id = self._active.get()

        logger.info("Orders placed", order_ids=placed, active_order_id=active_id)
        message = Messages.ORDER_ALREADY_PLACED if not placed else f"Placed {len(placed)} order(s)"
        return (
            OperationResult.ok(message=message, data={"placed_ids": placed, "active_order_id": active_id}),
            placed,
        )

    def update_delivery_partner(self, order_id: int, employee_id: int | None) -> OperationResult:
        return self._mutate(
            ChangeKind.ORDER_UPDATED,
            [order_id],
            "assign the delivery partner",
            lambda: self._assign_partner(order_id, employee_id),
            order_id=order_id,
            employee_id=employee_id,
        )

    def _assign_partner(self, order_id: int, employee_id: int | None) -> ActionOutcome:
        order = self._orders.find_by_id(order_id)
        if order is None:
            return OperationResult.ok(message=Messages.ORDER_NOT_FOUND), []
        if employee_id is not None and not self._employees.exists(employee_id):
            return OperationResult.ok(message=Messages.DELIVERY_PARTNER_NOT_FOUND), []
        if order.delivery_partner_id == employee_id:
            return OperationResult.ok(), []

        order.delivery_partner_id = employee_id
        order.touch()
        return OperationResult.ok(data={"order_id": order_id, "delivery_partner_id": employee_id}), [order_id]

    def delete_orders(self, order_ids: Sequence[int]) -> OperationResult:
        """
        Delete orders with all their lines, selections and price rows.
        Clears the active marker when it pointed at a deleted order.
        """
        ids = sorted(set(order_ids))
        if not ids:
            return OperationResult.error(Messages.NO_ORDERS_SELECTED)
        if len(ids) > Limits.MAX_BULK_ORDER_IDS:
            return OperationResult.error(f"Cannot delete more than {Limits.MAX_BULK_ORDER_IDS} orders at once")

        result = self._mutate(
            ChangeKind.ORDER_DELETED,
            ids,
            "delete the orders",
            lambda: self._delete(ids),
            order_ids=ids,
        )
        if result.success:
            self._multi.discard(ids)
        return result

    def _delete(self, order_ids: list[int]) -> ActionOutcome:
        existing = sorted(self._orders.existing_ids(order_ids))
        if not existing:
            return OperationResult.ok(message=Messages.ORDER_NOT_FOUND), []

        active_cleared = self._active.clear_if_in(existing)
        deleted = self._orders.delete_many(existing)
        logger.info("Orders deleted", order_ids=existing, active_cleared=active_cleared)
        return (
            OperationResult.ok(
                message=f"Deleted {deleted} order(s)",
                data={"deleted_ids": existing, "active_cleared": active_cleared},
            ),
            existing,
        )

    # =========================================================================
    # Selection
    # =========================================================================

    def select_active_order(self, order_id: int) -> OperationResult:
        return self._mutate(
            ChangeKind.SELECTION_CHANGED,
            [order_id],
            "select the order",
            lambda: self._select(order_id),
            order_id=order_id,
        )

    def _select(self, order_id: int) -> ActionOutcome:
        try:
            changed = self._active.select(order_id)
        except InvalidStateError:
            return OperationResult.error(Messages.UNABLE_TO_SELECT_PLACED), []

        if not changed:
            active = self._active.get()
            message = None if active == order_id else Messages.ORDER_NOT_FOUND
            return OperationResult.ok(message=message, data={"active_order_id": active}), []
        return OperationResult.ok(data={"active_order_id": order_id}), [order_id]

    def toggle_multi_select(self, order_id: int) -> bool:
        return self._multi.toggle(order_id)

    def select_all_visible(self, search: str | None = None, view_all: bool = False) -> list[int]:
        """Put every order currently visible under the filters into the multi-select set."""
        visible = [a.id for a in self._query.find_aggregates(OrderFilters(search=search, view_all=view_all))]
        self._multi.select_all(visible)
        return self._multi.ids

    def deselect_all(self) -> None:
        self._multi.deselect()

    def delete_selected(self) -> OperationResult:
        """Delete every order in the multi-select set, then empty the set."""
        ids = self._multi.ids
        if not ids:
            return OperationResult.error(Messages.NO_ORDERS_SELECTED)
        result = self.delete_orders(ids)
        if result.success:
            self._multi.deselect()
        return result

    # =========================================================================
    # Internals
    # =========================================================================

    def _mutate(
        self,
        kind: str,
        lock_ids: Sequence[int],
        operation: str,
        action: Callable[[], ActionOutcome],
        **log_context,
    ) -> OperationResult:
        try:
            with self._locks.hold_many(lock_ids), self._unit_of_work(operation, **log_context):
                result, changed_ids = action()
        except AppException as e:
            return self._failure(e)

        if changed_ids:
            self._publish(kind, changed_ids)
        return result

    @contextmanager
    def _unit_of_work(self, operation: str, **log_context) -> Iterator[None]:
        """Commit on success; roll back and raise StoreError on store failure."""
        try:
            yield
            safe_commit(self._db)
        except SQLAlchemyError as e:
            self._db.rollback()
            raise StoreError(operation, error=str(e), **log_context) from e
        except AppException:
            self._db.rollback()
            raise

    def _touch_and_price(self, order: Order) -> PriceBreakdown:
        order.touch()
        self._db.flush()
        return self._pricing.recompute(order.id)

    @staticmethod
    def _ensure_mutable(order: Order) -> None:
        if order.is_placed:
            raise InvalidStateError(
                "Order",
                order.order_status,
                [OrderStatus.PROCESSING],
                order_id=order.id,
            )

    def _order_warnings(self, order: Order) -> list[str]:
        """Soft order-type/address checks. Never block the write."""
        order_type = OrderType(order.order_type)
        if not order_type.requires_address:
            return []

        warnings = []
        if order.address_id is None:
            warnings.append(Messages.ADDRESS_REQUIRED.format(order_type=order_type.value))
        if order.customer_id is None:
            warnings.append(Messages.PHONE_REQUIRED.format(order_type=order_type.value))
        for warning in warnings:
            logger.warning("Order validation warning", order_id=order.id, warning=warning)
        return warnings

    @staticmethod
    def _failure(error: AppException) -> OperationResult:
        if isinstance(error, NotFoundError):
            return OperationResult.ok(message=error.detail)
        if isinstance(error, OrderBusyError):
            return OperationResult.error(Messages.ORDER_BUSY, status_code=error.status_code)
        return OperationResult.error(error.detail, status_code=error.status_code)

    def _publish(self, kind: str, order_ids: Sequence[int]) -> None:
        self._bus.publish(OrderChange(kind, tuple(order_ids)))
