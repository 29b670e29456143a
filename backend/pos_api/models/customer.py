"""
Party Models: Customer, Address, Employee.
"""

from __future__ import annotations

from typing import Optional

from sqlalchemy import Text
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, IdType, TimestampMixin


class Customer(TimestampMixin, Base):
    """A customer identified by phone number (added or reused per order)."""

    __tablename__ = "customer"

    id: Mapped[int] = mapped_column(IdType, primary_key=True)
    phone: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    name: Mapped[Optional[str]] = mapped_column(Text)
    email: Mapped[Optional[str]] = mapped_column(Text)

    def __repr__(self) -> str:
        return f"<Customer(id={self.id})>"


class Address(TimestampMixin, Base):
    """A delivery/pick-up address, unique by name."""

    __tablename__ = "address"

    id: Mapped[int] = mapped_column(IdType, primary_key=True)
    name: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    short_name: Mapped[Optional[str]] = mapped_column(Text)


class Employee(TimestampMixin, Base):
    """Staff member; delivery partners are assigned to Delivery orders."""

    __tablename__ = "employee"

    id: Mapped[int] = mapped_column(IdType, primary_key=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    phone: Mapped[Optional[str]] = mapped_column(Text)
