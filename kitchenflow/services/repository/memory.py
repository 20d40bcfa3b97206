"""
In-Memory Order Repository

Keeps deep copies of the aggregates in a dictionary. Used in development
mode and by the test-suite; behaves like the SQL backend, version checks
included.

Author: Khalil Bannouri
Version: 1.0.0
"""

import copy
import logging
from typing import Iterable, Optional

from kitchenflow.core.exceptions import ConcurrentModification, NotFound, PreconditionFailed
from kitchenflow.models import OrderStatus
from kitchenflow.services.fulfillment.aggregate import Order
from kitchenflow.services.repository.base import BaseOrderRepository

logger = logging.getLogger(__name__)


class InMemoryOrderRepository(BaseOrderRepository):
    """Dictionary-backed order storage."""

    def __init__(self):
        self._orders: dict[str, Order] = {}
        logger.info("InMemoryOrderRepository initialized")

    @property
    def provider_name(self) -> str:
        return "memory"

    async def add(self, order: Order) -> Order:
        if order.id in self._orders:
            raise PreconditionFailed(f"Order {order.id!r} already exists", code="duplicate_order")
        order.version = 1
        self._orders[order.id] = copy.deepcopy(order)
        return order

    async def get(self, order_id: str) -> Order:
        try:
            return copy.deepcopy(self._orders[order_id])
        except KeyError:
            raise NotFound(f"Order {order_id!r} not found", code="order_not_found")

    async def save(self, order: Order) -> Order:
        stored = self._orders.get(order.id)
        if stored is None:
            raise NotFound(f"Order {order.id!r} not found", code="order_not_found")
        if stored.version != order.version:
            raise ConcurrentModification(
                f"Order #{order.order_number} was modified concurrently "
                f"(expected version {order.version}, found {stored.version})"
            )
        order.version += 1
        self._orders[order.id] = copy.deepcopy(order)
        return order

    async def list(self, statuses: Optional[Iterable[OrderStatus]] = None) -> list[Order]:
        wanted = set(statuses) if statuses is not None else None
        orders = [
            copy.deepcopy(order) for order in self._orders.values()
            if wanted is None or order.status in wanted
        ]
        return sorted(orders, key=lambda o: o.order_date)

    async def health_check(self) -> bool:
        return True

    def clear(self) -> None:
        """Forget every order (tests and session resets)."""
        self._orders.clear()
