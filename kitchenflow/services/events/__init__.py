"""
Event Publisher Factory

Provides a single entry point for order event delivery.

Environment Switching:
    - ENV_MODE=development -> InMemoryEventPublisher (settles in process)
    - ENV_MODE=staging/production -> CeleryEventPublisher (Redis + worker)

Author: Khalil Bannouri
Version: 1.0.0
"""

import logging
from functools import lru_cache

from kitchenflow.core.config import get_settings
from kitchenflow.services.events.base import (
    ORDER_COMPLETED,
    ORDER_PLACED,
    ORDER_STATUS_CHANGED,
    BaseEventPublisher,
    OrderEvent,
)
from kitchenflow.services.events.celery_publisher import CeleryEventPublisher
from kitchenflow.services.events.handlers import handle_order_event
from kitchenflow.services.events.memory import InMemoryEventPublisher

logger = logging.getLogger(__name__)


@lru_cache()
def get_event_publisher() -> BaseEventPublisher:
    """Get the configured event publisher instance."""
    settings = get_settings()

    if settings.use_real_services:
        logger.info("Event Publisher: Using Celery")
        return CeleryEventPublisher()

    from kitchenflow.services.settlement_ledger import get_settlement_ledger

    logger.info("Event Publisher: Using in-process delivery (development mode)")
    return InMemoryEventPublisher(ledger=get_settlement_ledger())


def reset_event_publisher() -> None:
    """Clear the cached publisher instance."""
    get_event_publisher.cache_clear()
    logger.debug("Event publisher cache cleared")


__all__ = [
    "get_event_publisher",
    "reset_event_publisher",
    "handle_order_event",
    "BaseEventPublisher",
    "OrderEvent",
    "InMemoryEventPublisher",
    "CeleryEventPublisher",
    "ORDER_PLACED",
    "ORDER_STATUS_CHANGED",
    "ORDER_COMPLETED",
]
