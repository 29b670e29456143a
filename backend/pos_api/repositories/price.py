"""
Price Repository - The denormalized price row of each order.
"""

from typing import Sequence

from sqlalchemy import select
from sqlalchemy.orm import Session

from pos_api.models import PriceRecord, utcnow
from shared.utils.schemas import PriceBreakdown


class PriceRepository:
    def __init__(self, db: Session):
        self._db = db

    def get(self, order_id: int) -> PriceRecord | None:
        return self._db.get(PriceRecord, order_id)

    def upsert(self, order_id: int, price: PriceBreakdown) -> PriceRecord:
        """Create or overwrite the price row of an order. Flushes, never commits."""
        record = self.get(order_id)
        if record is None:
            record = PriceRecord(order_id=order_id)
            self._db.add(record)
        record.subtotal = price.subtotal
        record.discount = price.discount
        record.total = price.total
        record.updated_at = utcnow()
        self._db.flush()
        return record

    def by_order(self, order_ids: Sequence[int]) -> dict[int, PriceRecord]:
        """Price rows of several orders, in one query."""
        if not order_ids:
            return {}
        rows = self._db.execute(select(PriceRecord).where(PriceRecord.order_id.in_(order_ids)))
        return {record.order_id: record for record in rows.scalars()}
