"""
In-Process Event Publisher

Development and test delivery: events are kept in a list and, when a
ledger is attached, handled right away in a worker thread.

Author: Khalil Bannouri
Version: 1.0.0
"""

import asyncio
import logging
from collections import deque
from typing import Optional

from kitchenflow.services.events.base import BaseEventPublisher, OrderEvent
from kitchenflow.services.events.handlers import handle_order_event
from kitchenflow.services.settlement_ledger import SettlementLedger

logger = logging.getLogger(__name__)


class InMemoryEventPublisher(BaseEventPublisher):
    """
    Records the most recent published events.

    Attributes:
        events: The last ``max_events`` published events, oldest first
        ledger: Settlement ledger receiving order.completed (optional)
    """

    def __init__(self, ledger: Optional[SettlementLedger] = None, max_events: int = 1000):
        self.events: deque[OrderEvent] = deque(maxlen=max_events)
        self.ledger = ledger
        logger.info("InMemoryEventPublisher initialized")

    @property
    def provider_name(self) -> str:
        return "memory"

    async def publish(self, event: OrderEvent) -> None:
        self.events.append(event)
        logger.debug(f"Event {event.name} for order #{event.order_number}")

        if self.ledger is not None:
            # Excel I/O is blocking
            await asyncio.to_thread(handle_order_event, event.to_dict(), self.ledger)

    def names(self) -> list[str]:
        return [event.name for event in self.events]

    def clear(self) -> None:
        self.events.clear()
