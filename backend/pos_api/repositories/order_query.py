"""
Order Query Repository - Read-optimized order aggregates.

One joined query selects the order headers with their customer and address
text; lines, selections and prices are then batch loaded with one query per
child table and stitched together in memory. No N+1.
"""

from collections import defaultdict
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone, tzinfo
from typing import Iterable, Sequence

from sqlalchemy import Select, String, case, cast, func, or_, select

from pos_api.models import Address, Customer, Order, SelectedOrder
from shared.config.constants import OrderStatus, SELECTED_ORDER_ROW_ID
from shared.utils.schemas import CartLineOutput, OrderAggregate, OrderGroup, PriceBreakdown
from shared.utils.validators import escape_like_pattern
from .base import BaseRepository, RepositoryFilters
from .cart import CartRepository
from .price import PriceRepository
from .selections import AddOnSelectionRepository, ChargeSelectionRepository


@dataclass
class OrderFilters(RepositoryFilters):
    """Filters for the order list."""

    # False: only PROCESSING orders. True: every order.
    view_all: bool = False


class OrderQueryRepository(BaseRepository[Order]):
    """
    Repository assembling OrderAggregate views.

    Ordering: the active order first (when it is in the result set), then
    most recent activity (updated, else created), then highest id.
    """

    @property
    def model(self) -> type[Order]:
        return Order

    def _aggregate_query(self, filters: OrderFilters) -> Select:
        selected_id = (
            select(SelectedOrder.order_id)
            .where(SelectedOrder.id == SELECTED_ORDER_ROW_ID)
            .scalar_subquery()
        )
        is_selected = case((Order.id == selected_id, 1), else_=0)
        last_activity = func.coalesce(Order.updated_at, Order.created_at)

        query = (
            select(
                Order,
                Customer.phone,
                Customer.name,
                Address.name,
                Address.short_name,
                is_selected.label("is_selected"),
            )
            .outerjoin(Customer, Customer.id == Order.customer_id)
            .outerjoin(Address, Address.id == Order.address_id)
            .order_by(is_selected.desc(), last_activity.desc(), Order.id.desc())
        )

        if not filters.view_all:
            query = query.where(Order.order_status == OrderStatus.PROCESSING)

        if filters.search:
            pattern = f"%{escape_like_pattern(filters.search)}%"
            query = query.where(
                or_(
                    *(
                        column.ilike(pattern, escape="\\")
                        for column in (
                            cast(Order.id, String),
                            Order.order_type,
                            Order.order_status,
                            Customer.phone,
                            Customer.name,
                            Address.name,
                            Address.short_name,
                        )
                    )
                )
            )

        return query

    def find_aggregates(self, filters: OrderFilters | None = None) -> list[OrderAggregate]:
        """
        Orders matching the filters, fully assembled and sorted.

        A search matching nothing returns an empty list.
        """
        filters = filters or OrderFilters()
        rows = self._db.execute(self._aggregate_query(filters)).all()
        return self._assemble(rows)

    def find_aggregate(self, order_id: int) -> OrderAggregate | None:
        """One order regardless of status. None when it no longer exists."""
        query = self._aggregate_query(OrderFilters(view_all=True)).where(Order.id == order_id)
        aggregates = self._assemble(self._db.execute(query).all())
        return aggregates[0] if aggregates else None

    def _assemble(self, rows: Sequence) -> list[OrderAggregate]:
        if not rows:
            return []

        order_ids = [row[0].id for row in rows]

        lines: dict[int, list[CartLineOutput]] = defaultdict(list)
        for line, product in CartRepository(self._db).lines_for_orders(order_ids):
            lines[line.order_id].append(
                CartLineOutput(
                    product_id=product.id,
                    name=product.name,
                    unit_price=product.price,
                    quantity=line.quantity,
                    line_total=product.price * line.quantity,
                )
            )
        add_on_ids = AddOnSelectionRepository(self._db).ids_by_order(order_ids)
        charge_ids = ChargeSelectionRepository(self._db).ids_by_order(order_ids)
        prices = PriceRepository(self._db).by_order(order_ids)

        aggregates = []
        for order, phone, customer_name, address_name, short_name, is_selected in rows:
            record = prices.get(order.id)
            price = (
                PriceBreakdown(subtotal=record.subtotal, discount=record.discount, total=record.total)
                if record is not None
                else PriceBreakdown()
            )
            aggregates.append(
                OrderAggregate(
                    id=order.id,
                    order_type=order.order_type,
                    order_status=order.order_status,
                    charges_included=order.charges_included,
                    created_at=order.created_at,
                    updated_at=order.updated_at,
                    customer_id=order.customer_id,
                    customer_phone=phone,
                    customer_name=customer_name,
                    address_id=order.address_id,
                    address_name=address_name,
                    address_short_name=short_name,
                    delivery_partner_id=order.delivery_partner_id,
                    lines=lines.get(order.id, []),
                    add_on_ids=add_on_ids.get(order.id, []),
                    charge_ids=charge_ids.get(order.id, []),
                    price=price,
                    is_selected=bool(is_selected),
                )
            )
        return aggregates


# =============================================================================
# Date grouping (derived view, not stored)
# =============================================================================


def date_bucket_label(day: date, today: date) -> str:
    if day == today:
        return "Today"
    if day == today - timedelta(days=1):
        return "Yesterday"
    return day.strftime("%d %b %Y")


def local_day(moment: datetime, tz: tzinfo | None = None) -> date:
    """
    Calendar day of a stored timestamp in the given zone (the machine's
    local zone when None). Naive values are UTC, as SQLite drops the offset.
    """
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(tz).date()


def group_by_date_bucket(
    aggregates: Iterable[OrderAggregate],
    today: date | None = None,
    tz: tzinfo | None = None,
) -> list[OrderGroup]:
    """
    Group an already sorted sequence by the local day of its last activity.

    Groups appear in order of first appearance, so the active order's
    bucket comes first and the sort inside each group is preserved.
    """
    today = today or local_day(datetime.now(timezone.utc), tz)
    groups: dict[str, OrderGroup] = {}
    for aggregate in aggregates:
        label = date_bucket_label(local_day(aggregate.last_activity, tz), today)
        groups.setdefault(label, OrderGroup(label=label)).orders.append(aggregate)
    return list(groups.values())
