"""
Order Event Publisher Abstract Base Class

Events are published by the fulfillment service after an operation has
been committed and the order lock released. A failed operation never
publishes anything.

Author: Khalil Bannouri
Version: 1.0.0
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

ORDER_PLACED = "order.placed"
ORDER_STATUS_CHANGED = "order.status_changed"
ORDER_COMPLETED = "order.completed"


@dataclass(frozen=True)
class OrderEvent:
    """
    Something that happened to an order.

    Attributes:
        name: Event name (order.placed, order.status_changed, order.completed)
        order_id: Order identifier
        order_number: Human readable order number
        payload: JSON-serializable details
        occurred_at: When the operation committed
    """
    name: str
    order_id: str
    order_number: str
    payload: dict[str, Any] = field(default_factory=dict)
    occurred_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "order_id": self.order_id,
            "order_number": self.order_number,
            "payload": dict(self.payload),
            "occurred_at": self.occurred_at.isoformat(),
        }


class BaseEventPublisher(ABC):
    """Abstract base class for event delivery."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the publisher name (e.g. "memory", "celery")."""
        pass

    @abstractmethod
    async def publish(self, event: OrderEvent) -> None:
        """Deliver one event."""
        pass
