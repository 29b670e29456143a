"""
Catalog Domain Service.

Maintains products, add-on items and charges (with their order-type
applicability rows), and looks up customers and addresses.

Price rows stay in step with catalog edits:
- deleting a product, add-on or charge cascades through the store to the
  lines/selections that referenced it; every affected order is recomputed
  in the same transaction;
- changing a price, amount or applicability recomputes the PROCESSING
  orders that reference the row. Placed orders keep the price they were
  placed with;
- the referencing orders are collected only once the catalog row is
  locked and their order locks are held, so a cart write racing the edit
  is either repriced here or sees the new price itself.

Usage:
    service = CatalogService(db)
    product = service.create_product(ProductInput(name="Tea", price=30))
    service.update_product(product.id, ProductUpdate(price=35))
"""

from __future__ import annotations

from collections.abc import Callable, Sequence

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from pos_api.models import AddOnItem, Charge, Order, Product
from pos_api.repositories import (
    AddOnItemRepository,
    AddOnSelectionRepository,
    AddressRepository,
    CartRepository,
    ChargeRepository,
    ChargeSelectionRepository,
    CustomerRepository,
    ProductRepository,
)
from pos_api.services.domain.pricing_service import PricingService
from shared.config.constants import ChangeKind, OrderStatus
from shared.config.logging import catalog_logger as logger, mask_phone
from shared.infrastructure.db import safe_commit
from shared.infrastructure.events import OrderChange, OrderChangeBus, get_order_change_bus
from shared.infrastructure.locks import OrderLockManager, get_order_lock_manager
from shared.utils.exceptions import NotFoundError, StoreError, ValidationError
from shared.utils.schemas import (
    AddOnInput,
    AddOnOutput,
    AddOnUpdate,
    AddressOutput,
    ChargeInput,
    ChargeOutput,
    ChargeUpdate,
    CustomerOutput,
    ProductInput,
    ProductOutput,
    ProductUpdate,
)
from shared.utils.validators import normalize_phone

# Catalog rows whose edits can reprice orders
CatalogRow = Product | AddOnItem | Charge


class CatalogService:
    """
    Service for catalog management.

    Raises NotFoundError / ValidationError / StoreError; the catalog router
    lets FastAPI turn them into HTTP responses.
    """

    def __init__(
        self,
        db: Session,
        *,
        locks: OrderLockManager | None = None,
        bus: OrderChangeBus | None = None,
    ):
        self._db = db
        self._locks = locks or get_order_lock_manager()
        self._bus = bus or get_order_change_bus()
        self._pricing = PricingService(db)
        self._products = ProductRepository(db)
        self._add_on_items = AddOnItemRepository(db)
        self._charge_items = ChargeRepository(db)
        self._cart = CartRepository(db)
        self._add_ons = AddOnSelectionRepository(db)
        self._charges = ChargeSelectionRepository(db)
        self._customers = CustomerRepository(db)
        self._addresses = AddressRepository(db)

    # =========================================================================
    # Products
    # =========================================================================

    def list_products(self, available_only: bool = False) -> list[ProductOutput]:
        products = self._products.find_available() if available_only else self._products.find_all()
        return [ProductOutput.model_validate(p) for p in products]

    def get_product(self, product_id: int) -> ProductOutput:
        return ProductOutput.model_validate(self._require(self._products.find_by_id(product_id), "Product", product_id))

    def create_product(self, data: ProductInput) -> ProductOutput:
        product, _ = self._write(
            "create the product",
            lambda: self._products.add(Product(**data.model_dump())),
        )
        logger.info("Product created", product_id=product.id, price=product.price)
        return ProductOutput.model_validate(product)

    def update_product(self, product_id: int, data: ProductUpdate) -> ProductOutput:
        product = self._require(self._products.find_by_id(product_id), "Product", product_id)
        changes = data.model_dump(exclude_unset=True, exclude_none=True)

        def apply() -> Product:
            for field, value in changes.items():
                setattr(product, field, value)
            self._db.flush()
            return product

        _, affected = self._write(
            "update the product",
            apply,
            row=product,
            find_affected=(
                (lambda: self._processing(self._cart.order_ids_with_product(product_id)))
                if "price" in changes
                else None
            ),
        )
        logger.info("Product updated", product_id=product_id, fields=sorted(changes), recomputed=len(affected))
        return ProductOutput.model_validate(product)

    def delete_product(self, product_id: int) -> list[int]:
        """Delete a product and its cart lines. Returns the recomputed order ids."""
        product = self._require(self._products.find_by_id(product_id), "Product", product_id)
        _, affected = self._write(
            "delete the product",
            lambda: self._delete_row(product),
            row=product,
            find_affected=lambda: self._cart.order_ids_with_product(product_id),
        )
        logger.info("Product deleted", product_id=product_id, affected_orders=affected)
        return affected

    # =========================================================================
    # Add-on items
    # =========================================================================

    def list_add_ons(self) -> list[AddOnOutput]:
        return [AddOnOutput.model_validate(a) for a in self._add_on_items.find_all()]

    def create_add_on(self, data: AddOnInput) -> AddOnOutput:
        item, _ = self._write("create the add-on", lambda: self._add_on_items.add(AddOnItem(**data.model_dump())))
        logger.info("Add-on created", add_on_id=item.id, price=item.price)
        return AddOnOutput.model_validate(item)

    def update_add_on(self, add_on_id: int, data: AddOnUpdate) -> AddOnOutput:
        item = self._require(self._add_on_items.find_by_id(add_on_id), "Add-on", add_on_id)
        changes = data.model_dump(exclude_unset=True, exclude_none=True)
        price_fields = {"price", "is_applicable"} & changes.keys()

        def apply() -> AddOnItem:
            for field, value in changes.items():
                setattr(item, field, value)
            self._db.flush()
            return item

        _, affected = self._write(
            "update the add-on",
            apply,
            row=item,
            find_affected=(
                (lambda: self._processing(self._add_ons.order_ids_with(add_on_id))) if price_fields else None
            ),
        )
        logger.info("Add-on updated", add_on_id=add_on_id, fields=sorted(changes), recomputed=len(affected))
        return AddOnOutput.model_validate(item)

    def delete_add_on(self, add_on_id: int) -> list[int]:
        item = self._require(self._add_on_items.find_by_id(add_on_id), "Add-on", add_on_id)
        _, affected = self._write(
            "delete the add-on",
            lambda: self._delete_row(item),
            row=item,
            find_affected=lambda: self._add_ons.order_ids_with(add_on_id),
        )
        logger.info("Add-on deleted", add_on_id=add_on_id, affected_orders=affected)
        return affected

    # =========================================================================
    # Charges
    # =========================================================================

    def list_charges(self) -> list[ChargeOutput]:
        return [self._charge_output(c) for c in self._charge_items.find_all()]

    def create_charge(self, data: ChargeInput) -> ChargeOutput:
        def apply() -> Charge:
            charge = self._charge_items.add(
                Charge(name=data.name, amount=data.amount, is_applicable=data.is_applicable)
            )
            self._charge_items.set_order_types(charge, [t.value for t in data.order_types])
            self._db.flush()
            return charge

        charge, _ = self._write("create the charge", apply)
        logger.info("Charge created", charge_id=charge.id, amount=charge.amount)
        return self._charge_output(charge)

    def update_charge(self, charge_id: int, data: ChargeUpdate) -> ChargeOutput:
        charge = self._require(self._charge_items.find_by_id(charge_id), "Charge", charge_id)
        changes = data.model_dump(exclude_unset=True, exclude_none=True)
        order_types = changes.pop("order_types", None)
        reprices = bool({"amount", "is_applicable"} & changes.keys()) or order_types is not None

        def apply() -> Charge:
            for field, value in changes.items():
                setattr(charge, field, value)
            if order_types is not None:
                self._charge_items.set_order_types(charge, [t.value for t in order_types])
            self._db.flush()
            return charge

        _, affected = self._write(
            "update the charge",
            apply,
            row=charge,
            find_affected=(lambda: self._processing(self._charges.order_ids_with(charge_id))) if reprices else None,
        )
        logger.info("Charge updated", charge_id=charge_id, recomputed=len(affected))
        return self._charge_output(charge)

    def delete_charge(self, charge_id: int) -> list[int]:
        charge = self._require(self._charge_items.find_by_id(charge_id), "Charge", charge_id)
        _, affected = self._write(
            "delete the charge",
            lambda: self._delete_row(charge),
            row=charge,
            find_affected=lambda: self._charges.order_ids_with(charge_id),
        )
        logger.info("Charge deleted", charge_id=charge_id, affected_orders=affected)
        return affected

    @staticmethod
    def _charge_output(charge: Charge) -> ChargeOutput:
        return ChargeOutput(
            id=charge.id,
            name=charge.name,
            amount=charge.amount,
            is_applicable=charge.is_applicable,
            order_types=charge.order_type_values,
        )

    # =========================================================================
    # Customers and addresses
    # =========================================================================

    def find_customer(self, phone: str) -> CustomerOutput | None:
        normalized = normalize_phone(phone)
        if not normalized:
            raise ValidationError("Phone number is empty", field="phone")
        customer = self._customers.find_by_phone(normalized)
        logger.debug("Customer lookup", phone=mask_phone(normalized), found=customer is not None)
        return CustomerOutput.model_validate(customer) if customer else None

    def list_addresses(self) -> list[AddressOutput]:
        return [AddressOutput.model_validate(a) for a in self._addresses.find_all()]

    # =========================================================================
    # Internals
    # =========================================================================

    @staticmethod
    def _require(entity, name: str, entity_id: int):
        if entity is None:
            raise NotFoundError(name, entity_id)
        return entity

    def _processing(self, order_ids: Sequence[int]) -> list[int]:
        if not order_ids:
            return []
        rows = self._db.execute(
            select(Order.id).where(
                Order.id.in_(order_ids),
                Order.order_status == OrderStatus.PROCESSING,
            )
        )
        return sorted(row[0] for row in rows)

    def _delete_row(self, entity) -> None:
        self._db.delete(entity)
        self._db.flush()

    def _lock_row(self, row: CatalogRow) -> None:
        """
        Take the store's write lock on a catalog row.

        Cart writes that reference the row wait for this transaction from
        here on, so orders collected afterwards are complete.
        """
        model = type(row)
        self._db.execute(select(model.id).where(model.id == row.id).with_for_update())
        row.touch()
        self._db.flush()

    def _write(
        self,
        operation: str,
        apply: Callable,
        *,
        row: CatalogRow | None = None,
        find_affected: Callable[[], list[int]] | None = None,
    ):
        """
        Apply a catalog write, recompute the affected orders and commit.

        The affected orders are collected after the catalog row is locked,
        while their order locks are held. If an order started referencing
        the row between the first look and the lock, the transaction is
        rolled back and retried holding the larger set of order locks.

        Returns the apply() result and the recomputed order ids.
        """
        held = find_affected() if find_affected else []
        while True:
            with self._locks.hold_many(held):
                try:
                    affected: list[int] = []
                    if row is not None and find_affected is not None:
                        self._lock_row(row)
                        affected = find_affected()
                    if set(affected) <= set(held):
                        result = apply()
                        self._pricing.recompute_many(affected)
                        safe_commit(self._db)
                        break
                    self._db.rollback()
                except IntegrityError as e:
                    self._db.rollback()
                    raise ValidationError(f"Could not {operation}: conflicting data", error=str(e.orig)) from e
                except SQLAlchemyError as e:
                    self._db.rollback()
                    raise StoreError(operation, error=str(e)) from e

            logger.info(
                "Affected orders changed before lock, retrying",
                operation=operation,
                added=sorted(set(affected) - set(held)),
            )
            held = sorted(set(held) | set(affected))

        self._bus.publish(OrderChange(ChangeKind.CATALOG_CHANGED, tuple(affected)))
        return result, affected
