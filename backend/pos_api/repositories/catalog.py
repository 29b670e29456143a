"""
Catalog Repositories - Products, add-on items, charges and the parties
(customers, addresses, delivery partners) orders refer to.
"""

from typing import Sequence

from sqlalchemy import Select, select
from sqlalchemy.orm import selectinload

from pos_api.models import Address, AddOnItem, Charge, ChargeOrderType, Customer, Employee, Product
from .base import BaseRepository


class ProductRepository(BaseRepository[Product]):
    @property
    def model(self) -> type[Product]:
        return Product

    def _base_query(self) -> Select:
        return select(Product).order_by(Product.name, Product.id)

    def find_available(self) -> Sequence[Product]:
        query = self._base_query().where(Product.is_available.is_(True))
        return self._db.execute(query).scalars().all()


class AddOnItemRepository(BaseRepository[AddOnItem]):
    @property
    def model(self) -> type[AddOnItem]:
        return AddOnItem

    def _base_query(self) -> Select:
        return select(AddOnItem).order_by(AddOnItem.name, AddOnItem.id)


class ChargeRepository(BaseRepository[Charge]):
    """
    Repository for Charge entities.

    Guarantees eager loading of the applicability rows.
    """

    @property
    def model(self) -> type[Charge]:
        return Charge

    def _base_query(self) -> Select:
        return (
            select(Charge)
            .options(selectinload(Charge.order_types))
            .order_by(Charge.name, Charge.id)
        )

    def set_order_types(self, charge: Charge, order_types: Sequence[str]) -> None:
        """Replace the applicability rows of a charge."""
        wanted = set(order_types)
        current = {row.order_type: row for row in charge.order_types}

        for order_type, row in current.items():
            if order_type not in wanted:
                charge.order_types.remove(row)
        for order_type in sorted(wanted - current.keys()):
            charge.order_types.append(ChargeOrderType(order_type=order_type))


class CustomerRepository(BaseRepository[Customer]):
    @property
    def model(self) -> type[Customer]:
        return Customer

    def find_by_phone(self, phone: str) -> Customer | None:
        return self._db.scalar(select(Customer).where(Customer.phone == phone))

    def add_or_get(self, phone: str, name: str | None = None) -> Customer:
        """
        Reuse the customer with this phone, or create it.

        A non-empty name updates the stored one.
        """
        customer = self.find_by_phone(phone)
        if customer is None:
            return self.add(Customer(phone=phone, name=name))
        if name and customer.name != name:
            customer.name = name
        return customer


class AddressRepository(BaseRepository[Address]):
    @property
    def model(self) -> type[Address]:
        return Address

    def _base_query(self) -> Select:
        return select(Address).order_by(Address.name)

    def find_by_name(self, name: str) -> Address | None:
        return self._db.scalar(select(Address).where(Address.name == name))

    def add_or_get(self, name: str, short_name: str | None = None) -> Address:
        address = self.find_by_name(name)
        if address is None:
            return self.add(Address(name=name, short_name=short_name))
        if short_name and address.short_name != short_name:
            address.short_name = short_name
        return address


class EmployeeRepository(BaseRepository[Employee]):
    @property
    def model(self) -> type[Employee]:
        return Employee
