"""
Event Schema.

Defines the OrderChange dataclass published after every committed write.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, asdict, field
from datetime import datetime, timezone

from shared.config.constants import ChangeKind
from shared.infrastructure.correlation import get_request_id

# Events larger than this are rejected before reaching Redis
MAX_EVENT_SIZE = 64 * 1024


@dataclass(frozen=True)
class OrderChange:
    """
    Notification that one or more orders changed.

    order_ids is empty for changes that are not tied to specific orders
    (catalog edits). Subscribers re-query rather than patching state, so the
    payload only says what changed, never the new values.
    """

    kind: str
    order_ids: tuple[int, ...] = field(default_factory=tuple)
    ts: str | None = None
    # Correlation id of the request or CLI run that made the change
    request_id: str | None = None
    v: int = 1  # Schema version for future compatibility

    def __post_init__(self) -> None:
        """Validate fields so malformed changes never reach subscribers."""
        if self.kind not in ChangeKind.ALL:
            raise ValueError(f"Unknown change kind: {self.kind!r}")

        # Accept any iterable of ids, store a tuple
        ids = tuple(self.order_ids)
        if any(not isinstance(i, int) or i <= 0 for i in ids):
            raise ValueError("OrderChange order_ids must be positive integers")
        object.__setattr__(self, "order_ids", ids)

        if self.ts is None:
            object.__setattr__(self, "ts", datetime.now(timezone.utc).isoformat())
        if self.request_id is None:
            object.__setattr__(self, "request_id", get_request_id())

    def touches(self, order_id: int) -> bool:
        """True when the change concerns the given order (or all orders)."""
        return not self.order_ids or order_id in self.order_ids

    def to_json(self) -> str:
        """Serialize change to JSON string."""
        data = asdict(self)
        data["order_ids"] = list(self.order_ids)
        return json.dumps(data, ensure_ascii=False)

    @classmethod
    def from_json(cls, json_str: str) -> "OrderChange":
        """Deserialize change from JSON string. Validation runs in __post_init__."""
        data = json.loads(json_str)
        data["order_ids"] = tuple(data.get("order_ids") or ())
        return cls(**data)
