"""
Order Repository Abstract Base Class

Order aggregates are loaded and stored whole. ``get`` hands out a private
copy; nothing the engine does to it is visible to anyone until ``save``
succeeds, which is what makes a failed operation leave no trace.

Every stored order carries a version. ``save`` only succeeds when the
copy being saved was loaded at the current version and bumps it by one.

Author: Khalil Bannouri
Version: 1.0.0
"""

from abc import ABC, abstractmethod
from typing import Iterable, Optional

from kitchenflow.models import OrderStatus
from kitchenflow.services.fulfillment.aggregate import Order


class BaseOrderRepository(ABC):
    """Abstract base class for order storage backends."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the backend name (e.g. "memory", "sql")."""
        pass

    @abstractmethod
    async def add(self, order: Order) -> Order:
        """
        Store a new order.

        Returns:
            The stored order with its first version assigned
        """
        pass

    @abstractmethod
    async def get(self, order_id: str) -> Order:
        """
        Load an order.

        Raises:
            NotFound: No order with this id
        """
        pass

    @abstractmethod
    async def save(self, order: Order) -> Order:
        """
        Replace the stored order with ``order``.

        Raises:
            NotFound: The order was never added
            ConcurrentModification: The stored version moved on since ``order`` was loaded
        """
        pass

    @abstractmethod
    async def list(self, statuses: Optional[Iterable[OrderStatus]] = None) -> list[Order]:
        """Orders (optionally filtered by status), oldest first."""
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """Verify the backend is reachable."""
        pass
