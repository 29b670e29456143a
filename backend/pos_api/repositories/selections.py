"""
Selection Repositories - Add-on and charge selections of orders.

Both are plain association rows with composite keys; toggling inserts or
deletes the row.
"""

from collections import defaultdict
from typing import Sequence

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from pos_api.models import AddOnItem, AddOnSelection, Charge, ChargeOrderType, ChargeSelection


class AddOnSelectionRepository:
    def __init__(self, db: Session):
        self._db = db

    def is_selected(self, order_id: int, add_on_item_id: int) -> bool:
        return self._db.get(AddOnSelection, (order_id, add_on_item_id)) is not None

    def select(self, order_id: int, add_on_item_id: int) -> None:
        self._db.add(AddOnSelection(order_id=order_id, add_on_item_id=add_on_item_id))
        self._db.flush()

    def deselect(self, order_id: int, add_on_item_id: int) -> None:
        self._db.execute(
            delete(AddOnSelection).where(
                AddOnSelection.order_id == order_id,
                AddOnSelection.add_on_item_id == add_on_item_id,
            )
        )

    def selected_ids(self, order_id: int) -> list[int]:
        rows = self._db.execute(
            select(AddOnSelection.add_on_item_id)
            .where(AddOnSelection.order_id == order_id)
            .order_by(AddOnSelection.add_on_item_id)
        )
        return [row[0] for row in rows]

    def replace(self, order_id: int, add_on_item_ids: Sequence[int]) -> bool:
        """Synchronize the selection to exactly the given ids. Returns True if it changed."""
        current = set(self.selected_ids(order_id))
        wanted = set(add_on_item_ids)
        if current == wanted:
            return False
        for add_on_item_id in current - wanted:
            self.deselect(order_id, add_on_item_id)
        for add_on_item_id in sorted(wanted - current):
            self._db.add(AddOnSelection(order_id=order_id, add_on_item_id=add_on_item_id))
        self._db.flush()
        return True

    def selected_items(self, order_id: int) -> list[AddOnItem]:
        """Live add-on items selected for an order."""
        return list(
            self._db.execute(
                select(AddOnItem)
                .join(AddOnSelection, AddOnSelection.add_on_item_id == AddOnItem.id)
                .where(AddOnSelection.order_id == order_id)
                .order_by(AddOnItem.id)
            ).scalars()
        )

    def ids_by_order(self, order_ids: Sequence[int]) -> dict[int, list[int]]:
        """Selected add-on ids for several orders, in one query."""
        result: dict[int, list[int]] = defaultdict(list)
        if not order_ids:
            return result
        rows = self._db.execute(
            select(AddOnSelection.order_id, AddOnSelection.add_on_item_id)
            .where(AddOnSelection.order_id.in_(order_ids))
            .order_by(AddOnSelection.order_id, AddOnSelection.add_on_item_id)
        )
        for order_id, add_on_item_id in rows:
            result[order_id].append(add_on_item_id)
        return result

    def order_ids_with(self, add_on_item_id: int) -> list[int]:
        rows = self._db.execute(
            select(AddOnSelection.order_id).where(AddOnSelection.add_on_item_id == add_on_item_id)
        )
        return sorted(row[0] for row in rows)


class ChargeSelectionRepository:
    def __init__(self, db: Session):
        self._db = db

    def is_selected(self, order_id: int, charge_id: int) -> bool:
        return self._db.get(ChargeSelection, (order_id, charge_id)) is not None

    def select(self, order_id: int, charge_id: int) -> None:
        self._db.add(ChargeSelection(order_id=order_id, charge_id=charge_id))
        self._db.flush()

    def deselect(self, order_id: int, charge_id: int) -> None:
        self._db.execute(
            delete(ChargeSelection).where(
                ChargeSelection.order_id == order_id,
                ChargeSelection.charge_id == charge_id,
            )
        )

    def selected_ids(self, order_id: int) -> list[int]:
        rows = self._db.execute(
            select(ChargeSelection.charge_id)
            .where(ChargeSelection.order_id == order_id)
            .order_by(ChargeSelection.charge_id)
        )
        return [row[0] for row in rows]

    def replace(self, order_id: int, charge_ids: Sequence[int]) -> bool:
        """Synchronize the selection to exactly the given ids. Returns True if it changed."""
        current = set(self.selected_ids(order_id))
        wanted = set(charge_ids)
        if current == wanted:
            return False
        for charge_id in current - wanted:
            self.deselect(order_id, charge_id)
        for charge_id in sorted(wanted - current):
            self._db.add(ChargeSelection(order_id=order_id, charge_id=charge_id))
        self._db.flush()
        return True

    def selected_charges(self, order_id: int) -> list[tuple[Charge, frozenset[str]]]:
        """Live charges selected for an order, each with the order types it applies to."""
        charges = list(
            self._db.execute(
                select(Charge)
                .join(ChargeSelection, ChargeSelection.charge_id == Charge.id)
                .where(ChargeSelection.order_id == order_id)
                .order_by(Charge.id)
            ).scalars()
        )
        if not charges:
            return []

        types: dict[int, set[str]] = defaultdict(set)
        rows = self._db.execute(
            select(ChargeOrderType.charge_id, ChargeOrderType.order_type).where(
                ChargeOrderType.charge_id.in_([c.id for c in charges])
            )
        )
        for charge_id, order_type in rows:
            types[charge_id].add(order_type)
        return [(charge, frozenset(types[charge.id])) for charge in charges]

    def ids_by_order(self, order_ids: Sequence[int]) -> dict[int, list[int]]:
        """Selected charge ids for several orders, in one query."""
        result: dict[int, list[int]] = defaultdict(list)
        if not order_ids:
            return result
        rows = self._db.execute(
            select(ChargeSelection.order_id, ChargeSelection.charge_id)
            .where(ChargeSelection.order_id.in_(order_ids))
            .order_by(ChargeSelection.order_id, ChargeSelection.charge_id)
        )
        for order_id, charge_id in rows:
            result[order_id].append(charge_id)
        return result

    def order_ids_with(self, charge_id: int) -> list[int]:
        rows = self._db.execute(
            select(ChargeSelection.order_id).where(ChargeSelection.charge_id == charge_id)
        )
        return sorted(row[0] for row in rows)
